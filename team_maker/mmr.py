"""
Skill rating adjustments using an ELO-like formula.
Pure functions; the skill scale is 1-100 with results clamped to 20-100.
"""

import math

K_FACTOR = 32
SKILL_MIN = 20
SKILL_MAX = 100

DOMINANT_WIN_MULTIPLIER = 1.2
CLOSE_LOSS_MULTIPLIER = 0.8

# (games won by winner, games won by loser) -> flat bonus for the winner
BLOWOUT_BONUS = {(4, 0): 3, (4, 1): 2}


def expected(ra: float, rb: float) -> float:
    """
    Calculate the expected score for player A against player B.

    Args:
        ra: Rating of player A
        rb: Rating of player B

    Returns:
        Expected score (probability) for player A to win (0.0 to 1.0)
    """
    return 1 / (1 + math.pow(10, (rb - ra) / 400))


def opponent_average(opponent1_skill: float, opponent2_skill: float) -> float:
    return (opponent1_skill + opponent2_skill) / 2


def skill_adjustment(
    player_skill: float,
    opponent_avg: float,
    is_winner: bool,
    games_won: int,
    games_lost: int,
    k: int = K_FACTOR,
) -> int:
    """
    Calculate the skill change for one player after a match.

    Args:
        player_skill: The player's skill before the match
        opponent_avg: Mean skill of the two opponents
        is_winner: Whether the player's team won
        games_won: Games won by the player's team
        games_lost: Games won by the opposing team
        k: K-factor determining maximum rating change per match

    Returns:
        Signed integer delta, before clamping
    """
    actual = 1 if is_winner else 0
    multiplier = 1.0
    if is_winner and games_won == 4 and games_lost <= 1:
        multiplier = DOMINANT_WIN_MULTIPLIER
    elif not is_winner and games_won == 3 and games_lost == 4:
        multiplier = CLOSE_LOSS_MULTIPLIER

    delta = round(k * (actual - expected(player_skill, opponent_avg)) * multiplier)

    if is_winner:
        delta += BLOWOUT_BONUS.get((games_won, games_lost), 0)
    else:
        delta -= BLOWOUT_BONUS.get((games_lost, games_won), 0)
    return delta


def clamp_skill(skill: float) -> int:
    return int(max(SKILL_MIN, min(SKILL_MAX, skill)))
