"""
Post-match updates: points, streaks, games and skill for the four players.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Sequence

from .logging_config import get_logger
from .mmr import clamp_skill, opponent_average, skill_adjustment
from .models import InvalidInputError, Match, Player
from .rules import MatchStateError

log = get_logger(__name__)

WIN_POINTS = 10
CLOSE_LOSS_POINTS = 2  # lost 3-4
REGULAR_LOSS_POINTS = 1  # lost 2-4
BAD_LOSS_POINTS = 0  # lost 0-4 or 1-4


def match_points(games_won: int, games_lost: int, is_winner: bool) -> int:
    if is_winner:
        return WIN_POINTS
    if games_won == 3 and games_lost == 4:
        return CLOSE_LOSS_POINTS
    if games_won == 2 and games_lost == 4:
        return REGULAR_LOSS_POINTS
    return BAD_LOSS_POINTS


def next_streak(streak: int, won: bool) -> int:
    if won:
        return streak + 1 if streak >= 0 else 1
    return streak - 1 if streak <= 0 else -1


def update_player_stats(player: Player, games_won: int, games_lost: int, is_winner: bool, match_date: str) -> Player:
    s = player.stats
    stats = replace(
        s,
        matches_played=s.matches_played + 1,
        matches_won=s.matches_won + (1 if is_winner else 0),
        matches_lost=s.matches_lost + (0 if is_winner else 1),
        games_won=s.games_won + games_won,
        games_lost=s.games_lost + games_lost,
        points=s.points + match_points(games_won, games_lost, is_winner),
        current_streak=next_streak(s.current_streak, is_winner),
        last_played=match_date,
    )
    return replace(player, stats=stats)


def update_player_skill(
    player: Player,
    opponent1_skill: float,
    opponent2_skill: float,
    is_winner: bool,
    games_won: int,
    games_lost: int,
) -> Player:
    delta = skill_adjustment(
        player.skill,
        opponent_average(opponent1_skill, opponent2_skill),
        is_winner,
        games_won,
        games_lost,
    )
    return replace(player, skill=clamp_skill(player.skill + delta))


def apply_match_completion(match: Match, players: Sequence[Player]) -> list[Player]:
    """
    Apply a finished match to its four players.

    Args:
        match: A match with status 'completed' and a winner.
        players: Any collection containing at least the four participants.

    Returns:
        The four updated players, team A first. Every skill change is computed
        from the skills the players had before this match.
    """
    if match.status != "completed" or match.winner not in ("team_a", "team_b"):
        raise MatchStateError(f"Match {match.id} is not completed")

    by_id = {p.id: p for p in players}
    missing = [pid for pid in match.player_ids if pid not in by_id]
    if missing:
        raise InvalidInputError(f"Unknown players in match {match.id}: {', '.join(missing)}")

    played_at = match.end_time or match.start_time or ""
    sides = (
        (match.team_a, match.team_b, match.winner == "team_a"),
        (match.team_b, match.team_a, match.winner == "team_b"),
    )

    updated: list[Player] = []
    for own, other, won in sides:
        opp1, opp2 = (by_id[pid].skill for pid in other.ids)
        for pid in own.ids:
            before = by_id[pid]
            after = update_player_stats(before, own.games_won, other.games_won, won, played_at)
            after = update_player_skill(after, opp1, opp2, won, own.games_won, other.games_won)
            log.info(
                "Player %s: skill %s -> %s, points +%s",
                before.name, before.skill, after.skill, after.stats.points - before.stats.points,
            )
            updated.append(after)
    return updated
