"""
Tests for the live-match state machine, Elo-style skill changes, post-match
updates and leaderboard helpers.
"""

import random

import pytest

from team_maker.mmr import expected, skill_adjustment
from team_maker.models import InvalidInputError, Match, MatchSide, Player, PlayerStats
from team_maker.ratings import (
    apply_match_completion,
    match_points,
    next_streak,
    update_player_skill,
    update_player_stats,
)
from team_maker.rules import MatchStateError, is_finished, score_game, start_match, undo_last
from team_maker.stats import (
    format_streak,
    games_win_rate,
    match_summary,
    partners,
    rank_players,
    team_chemistry,
    top_performers,
    win_rate,
)


def _clock():
    ticks = iter(range(1000))
    return lambda: f"2024-06-01T10:00:{next(ticks):02d}+00:00"


def _match(status="waiting"):
    return Match(
        id="m1", session_id="s1", round=1, court="A",
        team_a=MatchSide("a1", "a2"), team_b=MatchSide("b1", "b2"), status=status,
    )


def _play(match, sides, clock):
    for side in sides:
        match = score_game(match, side, clock)
    return match


def _players(skill=50):
    return [Player(id=pid, name=pid.upper(), skill=skill) for pid in ("a1", "a2", "b1", "b2")]


# --- State machine ---

def test_is_finished():
    assert is_finished(4, 2) == (True, "team_a")
    assert is_finished(1, 4) == (True, "team_b")
    assert is_finished(3, 3) == (False, None)


def test_start_then_score_to_completion():
    print("🧪 Testing live match flow...")
    clock = _clock()
    match = start_match(_match(), clock)
    assert match.status == "live"
    assert match.start_time == "2024-06-01T10:00:00+00:00"

    match = _play(match, ["team_a", "team_b", "team_a", "team_a"], clock)
    assert match.status == "live"
    assert (match.team_a.games_won, match.team_b.games_won) == (3, 1)
    assert [(h.team_a_score, h.team_b_score) for h in match.history] == [(0, 0), (1, 0), (1, 1), (2, 1)]
    assert match.history[1].action == "team_b_score"

    match = score_game(match, "team_a", clock)
    assert match.status == "completed"
    assert match.winner == "team_a"
    assert match.end_time == match.history[-1].timestamp
    print("    ✅ Match completes at 4 games")


def test_illegal_transitions():
    clock = _clock()
    with pytest.raises(MatchStateError):
        score_game(_match(), "team_a", clock)

    live = start_match(_match(), clock)
    with pytest.raises(MatchStateError):
        start_match(live, clock)
    with pytest.raises(InvalidInputError):
        score_game(live, "team_c", clock)

    done = _play(live, ["team_b"] * 4, clock)
    with pytest.raises(MatchStateError):
        score_game(done, "team_a", clock)


def test_undo_reopens_completed_match():
    clock = _clock()
    done = _play(start_match(_match(), clock), ["team_a", "team_b", "team_b", "team_b", "team_b"], clock)
    assert done.winner == "team_b"

    reopened = undo_last(done)
    assert reopened.status == "live"
    assert reopened.winner is None
    assert reopened.end_time is None
    assert (reopened.team_a.games_won, reopened.team_b.games_won) == (1, 3)
    assert len(reopened.history) == 4


def test_undo_without_history_is_noop():
    match = start_match(_match(), _clock())
    assert undo_last(match) is match


def test_undo_is_left_inverse_of_score():
    rng = random.Random(4)
    for _ in range(50):
        clock = _clock()
        match = start_match(_match(), clock)
        # Random live position short of 4 games
        while True:
            side = rng.choice(["team_a", "team_b"])
            if match.side(side).games_won == 3:
                break
            match = score_game(match, side, clock)
            if rng.random() < 0.3:
                break
        for side in ("team_a", "team_b"):
            scored = score_game(match, side, clock)
            restored = undo_last(scored)
            assert restored.team_a.games_won == match.team_a.games_won
            assert restored.team_b.games_won == match.team_b.games_won
            assert len(restored.history) == len(match.history)
            assert restored.status == match.status == "live"


# --- Points, streaks, skill ---

def test_winner_always_gets_ten_points():
    for loser_games in range(4):
        assert match_points(4, loser_games, True) == 10


def test_loser_points_grid():
    print("🧪 Testing loser points grid...")
    for games_won in range(4):
        for games_lost in range(1, 5):
            pts = match_points(games_won, games_lost, False)
            if (games_won, games_lost) == (3, 4):
                assert pts == 2
            elif (games_won, games_lost) == (2, 4):
                assert pts == 1
            else:
                assert pts == 0
    print("    ✅ 3-4 → +2, 2-4 → +1, otherwise 0")


def test_streaks():
    assert next_streak(0, True) == 1
    assert next_streak(3, True) == 4
    assert next_streak(-2, True) == 1
    assert next_streak(0, False) == -1
    assert next_streak(-2, False) == -3
    assert next_streak(5, False) == -1


def test_expected_score():
    assert expected(50, 50) == 0.5
    assert expected(80, 40) > 0.5


def test_skill_adjustment_multipliers_and_bonus():
    # Equal skills: base change is 32 * 0.5 = 16
    assert skill_adjustment(50, 50, True, 4, 2) == 16
    assert skill_adjustment(50, 50, False, 2, 4) == -16
    assert skill_adjustment(50, 50, True, 4, 0) == 19 + 3
    assert skill_adjustment(50, 50, True, 4, 1) == 19 + 2
    assert skill_adjustment(50, 50, False, 0, 4) == -16 - 3
    assert skill_adjustment(50, 50, False, 1, 4) == -16 - 2
    assert skill_adjustment(50, 50, False, 3, 4) == -13


def test_skill_is_clamped():
    rng = random.Random(8)
    for _ in range(50):
        opp1, opp2 = rng.randint(1, 100), rng.randint(1, 100)
        loser_games = rng.randint(0, 3)
        top = update_player_skill(Player("x", "X", 99), opp1, opp2, True, 4, loser_games)
        assert 99 <= top.skill <= 100
        bottom = update_player_skill(Player("y", "Y", 21), opp1, opp2, False, loser_games, 4)
        assert 20 <= bottom.skill <= 21


def test_update_player_stats():
    player = Player("x", "X", 50, stats=PlayerStats(matches_played=2, matches_won=2, current_streak=2, points=20))
    lost = update_player_stats(player, 3, 4, False, "2024-06-01")
    assert lost.stats.matches_played == 3
    assert lost.stats.matches_lost == 1
    assert lost.stats.games_won == 3
    assert lost.stats.games_lost == 4
    assert lost.stats.points == 22
    assert lost.stats.current_streak == -1
    assert lost.stats.last_played == "2024-06-01"
    assert player.stats.points == 20  # input untouched


def test_apply_match_completion():
    clock = _clock()
    match = _play(start_match(_match(), clock), ["team_a", "team_b"] * 3 + ["team_a"], clock)
    assert (match.team_a.games_won, match.team_b.games_won) == (4, 3)

    a1, a2, b1, b2 = apply_match_completion(match, _players())
    for winner in (a1, a2):
        assert winner.skill == 66
        assert winner.stats.points == 10
        assert winner.stats.matches_won == 1
        assert winner.stats.current_streak == 1
        assert winner.stats.last_played == match.end_time
    for loser in (b1, b2):
        assert loser.skill == 37  # round(-16 * 0.8) = -13
        assert loser.stats.points == 2
        assert loser.stats.games_won == 3
        assert loser.stats.games_lost == 4
        assert loser.stats.current_streak == -1


def test_apply_match_completion_requires_completed_match():
    live = start_match(_match(), _clock())
    with pytest.raises(MatchStateError):
        apply_match_completion(live, _players())

    clock = _clock()
    done = _play(start_match(_match(), clock), ["team_a"] * 4, clock)
    with pytest.raises(InvalidInputError):
        apply_match_completion(done, _players()[:3])


# --- Leaderboard helpers ---

def _with_stats(pid, name, **stats):
    return Player(pid, name, 50, stats=PlayerStats(**stats))


def test_win_rates():
    assert win_rate(0, 0) == 0
    assert win_rate(2, 3) == 67
    assert games_win_rate(0, 0) == 0
    assert games_win_rate(12, 16) == 75


def test_rank_players():
    players = [
        _with_stats("1", "Cleo", points=20, matches_played=4, matches_won=2, games_won=10),
        _with_stats("2", "Ana", points=20, matches_played=4, matches_won=2, games_won=10),
        _with_stats("3", "Ben", points=20, matches_played=2, matches_won=2, games_won=8),
        _with_stats("4", "Dev", points=30, matches_played=5, matches_won=3, games_won=15),
    ]
    assert [p.name for p in rank_players(players)] == ["Dev", "Ben", "Ana", "Cleo"]


def test_top_performers():
    assert top_performers([]).top_scorer is None
    players = [
        _with_stats("1", "Ana", points=40, matches_played=5, matches_won=4, current_streak=1),
        _with_stats("2", "Ben", points=12, matches_played=2, matches_won=2, current_streak=2),
        _with_stats("3", "Cleo", points=22, matches_played=4, matches_won=1, current_streak=-3),
        _with_stats("4", "Dev"),
    ]
    top = top_performers(players)
    assert top.top_scorer.name == "Ana"
    assert top.best_win_rate.name == "Ana"
    assert top.longest_streak.name == "Cleo"


def test_format_streak():
    assert format_streak(0) == "No streak"
    assert format_streak(3) == "3W"
    assert format_streak(-2) == "2L"


def test_team_chemistry_and_summary():
    clock = _clock()
    won = _play(start_match(_match(), clock), ["team_a"] * 4, clock)
    lost = _play(start_match(_match(), clock), ["team_b"] * 4, clock)
    a1, a2, b1, b2 = _players()
    assert team_chemistry(a1, a2, [won, lost]) == 50
    assert team_chemistry(a2, a1, [won]) == 100
    assert team_chemistry(a1, b1, [won, lost]) == 0

    assert match_summary(won, [a1, a2, b1, b2]) == "Court A: A1 + A2 (WIN 4) vs B1 + B2 (LOSE 0)"
    live = score_game(start_match(_match(), clock), "team_b", clock)
    assert match_summary(live, [a1, a2]) == "Court A: A1 + A2 vs Unknown + Unknown (0-1)"


def test_partners_ranked_by_chemistry():
    a1, a2, b1, b2 = _players()
    clock = _clock()
    won = _play(start_match(_match(), clock), ["team_a"] * 4, clock)
    swapped = Match(id="m2", session_id="s1", round=1, court="B",
                    team_a=MatchSide("b1", "b2"), team_b=MatchSide("a2", "a1"))
    swapped = _play(start_match(swapped, clock), ["team_a"] * 4, clock)
    mixed = Match(id="m3", session_id="s1", round=1, court="C",
                  team_a=MatchSide("a1", "b1"), team_b=MatchSide("a2", "b2"))
    mixed = _play(start_match(mixed, clock), ["team_a"] * 4, clock)
    unfinished = Match(id="m4", session_id="s1", round=1, court="D",
                       team_a=MatchSide("a1", "b2"), team_b=MatchSide("a2", "b1"))

    ranked = partners(a1, [a1, a2, b1, b2], [won, swapped, mixed, unfinished])
    assert [(p.name, chem) for p, chem in ranked] == [("B1", 100), ("A2", 50)]
    assert partners(a1, [a1], [won]) == []
