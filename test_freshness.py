"""
Tests for balance scoring, the recent-history index, freshness scoring and
the quality report.
"""

import random

from team_maker.balance import (
    BALANCED,
    MODERATE,
    SEVERE,
    check_balance,
    display_tier,
    imbalance,
)
from team_maker.freshness import assignment_freshness, match_freshness
from team_maker.history import HistoryIndex
from team_maker.matchmaking import MatchmakingMode, generate_matches
from team_maker.models import Match, MatchPreview, MatchSide, Player, Session, make_team
from team_maker.quality import calculate_match_quality, get_quality_rating


def _player(pid, skill=50):
    return Player(id=pid, name=pid.upper(), skill=skill)


def _team(a, b, skill_a=50, skill_b=50):
    return make_team(_player(a, skill_a), _player(b, skill_b))


def _match(mid, a, b):
    return Match(id=mid, session_id="", round=1, court="A", team_a=MatchSide(*a), team_b=MatchSide(*b))


def test_imbalance_is_symmetric():
    rng = random.Random(2)
    for _ in range(50):
        x = _team("a", "b", rng.randint(1, 100), rng.randint(1, 100))
        y = _team("c", "d", rng.randint(1, 100), rng.randint(1, 100))
        assert imbalance(x, y) == imbalance(y, x)


def test_balance_severity_bands():
    base = _team("a", "b", 50, 50)
    cases = {0: BALANCED, 10: BALANCED, 11: MODERATE, 20: MODERATE, 21: SEVERE, 60: SEVERE}
    for diff, severity in cases.items():
        other = _team("c", "d", 50 + diff, 50)
        check = check_balance(base, other)
        assert check.imbalance == diff
        assert check.severity == severity
        assert (check.warning is None) == (severity == BALANCED)
        assert check.is_balanced == (severity == BALANCED)


def test_display_tiers_are_tighter():
    assert display_tier(0) == "perfectly balanced"
    assert display_tier(5) == "perfectly balanced"
    assert display_tier(6) == "good match"
    assert display_tier(10) == "good match"
    assert display_tier(11) == "unbalanced"


def test_empty_history_answers_false():
    history = HistoryIndex([], [])
    assert not history
    assert not history.played_together("a", "b")
    assert not history.played_as_teammates("a", "b")
    assert not history.played_as_opponents(_team("a", "b"), _team("c", "d"))
    assert match_freshness(_team("a", "b"), _team("c", "d"), history) == 100


def test_history_window_keeps_most_recent_sessions():
    sessions = [
        Session(id="old", date="2024-01-01", matches=["m_old"]),
        Session(id="mid", date="2024-02-01", matches=["m_mid"]),
        Session(id="new", date="2024-03-01T18:30:00+00:00", matches=["m_new"]),
    ]
    matches = [
        _match("m_old", ("a", "b"), ("c", "d")),
        _match("m_mid", ("a", "c"), ("b", "d")),
        _match("m_new", ("a", "d"), ("b", "c")),
        _match("m_orphan", ("x", "y"), ("z", "w")),
    ]
    latest = HistoryIndex(sessions, matches, window=1)
    assert [m.id for m in latest.recent_matches] == ["m_new"]

    two = HistoryIndex(sessions, matches, window=2)
    assert {m.id for m in two.recent_matches} == {"m_mid", "m_new"}
    assert two.played_as_teammates("c", "a")
    assert not two.played_as_teammates("a", "b")
    assert not two.played_together("x", "y")


def test_history_queries():
    sessions = [Session(id="s", date="2024-06-01", matches=["m"])]
    history = HistoryIndex(sessions, [_match("m", ("a", "b"), ("c", "d"))])

    assert history.played_together("a", "c")
    assert history.played_together("b", "a")
    assert not history.played_together("a", "e")

    assert history.played_as_teammates("b", "a")
    assert history.played_as_teammates("c", "d")
    assert not history.played_as_teammates("a", "c")

    assert history.played_as_opponents(_team("d", "c"), _team("b", "a"))
    assert history.played_as_opponents(_team("a", "b"), _team("c", "d"))
    assert not history.played_as_opponents(_team("a", "c"), _team("b", "d"))


def test_match_freshness_penalties():
    sessions = [Session(id="s", date="2024-06-01", matches=["m"])]
    history = HistoryIndex(sessions, [_match("m", ("a", "b"), ("c", "d"))])

    # Exact rematch: 100 - 30 - 30 - 50 - 6*5, clamped
    assert match_freshness(_team("a", "b"), _team("c", "d"), history) == 0
    # Repeated partnership only: 100 - 30 - 5
    assert match_freshness(_team("a", "b"), _team("e", "f"), history) == 65
    # Shuffled partners, same four: six recent interactions
    assert match_freshness(_team("a", "c"), _team("b", "d"), history) == 70
    # Strangers
    assert match_freshness(_team("e", "f"), _team("g", "h"), history) == 100


def test_match_freshness_stays_in_range():
    rng = random.Random(9)
    ids = [f"p{i}" for i in range(12)]
    players = [_player(pid, rng.randint(1, 100)) for pid in ids]
    stored, sessions = [], []
    for s in range(4):
        previews = generate_matches(players, MatchmakingMode.RANDOM_BALANCED, rng)
        ms = [_match(f"s{s}m{i}", p.team_a.ids, p.team_b.ids) for i, p in enumerate(previews)]
        stored.extend(ms)
        sessions.append(Session(id=f"s{s}", date=f"2024-0{s + 1}-01", matches=[m.id for m in ms]))
    history = HistoryIndex(sessions, stored)

    for _ in range(30):
        previews = generate_matches(players, MatchmakingMode.RANDOM_BALANCED, rng)
        for p in previews:
            assert 0 <= match_freshness(p.team_a, p.team_b, history) <= 100


def test_assignment_freshness_sums_matches():
    sessions = [Session(id="s", date="2024-06-01", matches=["m"])]
    history = HistoryIndex(sessions, [_match("m", ("a", "b"), ("c", "d"))])
    previews = [
        MatchPreview("A", _team("a", "b"), _team("e", "f")),
        MatchPreview("B", _team("g", "h"), _team("i", "j")),
    ]
    assert assignment_freshness(previews, history) == 165
    assert assignment_freshness([], history) == 0


def test_quality_report_empty():
    report = calculate_match_quality([])
    assert report.overall_score == 0
    assert report.balance_score == 0
    assert report.freshness_score == 0
    assert report.details.perfectly_balanced == 0
    assert report.details.good_matches == 0
    assert report.details.unbalanced == 0
    assert report.details.average_skill_difference == 0


def test_quality_report_scores():
    previews = [
        MatchPreview("A", _team("a", "b", 60, 60), _team("c", "d", 60, 60)),  # diff 0
        MatchPreview("B", _team("e", "f", 60, 50), _team("g", "h", 50, 50)),  # diff 10
        MatchPreview("C", _team("i", "j", 80, 80), _team("k", "l", 50, 50)),  # diff 60
    ]
    report = calculate_match_quality(previews)
    # balance: (100 + 80 + 0) / 3 = 60, freshness 100
    assert report.balance_score == 60
    assert report.freshness_score == 100
    assert report.overall_score == 72
    assert report.rating == "Good"
    assert report.details.perfectly_balanced == 1
    assert report.details.good_matches == 1
    assert report.details.unbalanced == 1
    assert report.details.average_skill_difference == 23.3


def test_quality_rating_bands():
    expected = {
        100: "Excellent", 90: "Excellent", 89: "Very Good", 75: "Very Good",
        74: "Good", 60: "Good", 59: "Fair", 40: "Fair", 39: "Poor", 0: "Poor",
    }
    for score, label in expected.items():
        assert get_quality_rating(score) == label
