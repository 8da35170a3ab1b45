"""
Matchmaking: split a roster into doubles teams and pair them on courts.

Three strategies are available (see `MatchmakingMode`). Each one takes a list
of players whose size is a positive multiple of 4 and returns one
`MatchPreview` per court, with every player used exactly once.

`generate_matches_with_duplicate_prevention` runs a strategy several times and
keeps the assignment that repeats the fewest recent pairings.
"""

from __future__ import annotations

import random
import string
from enum import Enum
from typing import Callable, Sequence

from .balance import check_balance, imbalance, SEVERE
from .freshness import assignment_freshness, match_freshness
from .history import HistoryIndex
from .logging_config import get_logger
from .models import InvalidInputError, MatchPreview, Player, Team, make_team

log = get_logger(__name__)

DEFAULT_ATTEMPTS = 5
LOW_FRESHNESS = 70
MAX_PREVIEW_MATCHES = 4


class MatchmakingMode(str, Enum):
    SKILL_BASED = "skill-based"
    RANDOM_BALANCED = "random-balanced"
    MIXED_TIERS = "mixed-tiers"

    @property
    def label(self) -> str:
        return MODE_LABELS[self]


MODE_LABELS = {
    MatchmakingMode.SKILL_BASED: "Skill-based (strongest + weakest)",
    MatchmakingMode.RANDOM_BALANCED: "Random balanced",
    MatchmakingMode.MIXED_TIERS: "Mixed tiers (strong + weak)",
}


def _as_mode(mode: MatchmakingMode | str) -> MatchmakingMode:
    try:
        return MatchmakingMode(mode)
    except ValueError:
        raise InvalidInputError(f"Unknown matchmaking mode: {mode}") from None


def court_labels(count: int) -> list[str]:
    """Court names in generation order: A, B, C, ... Z, AA, AB, ..."""
    letters = string.ascii_uppercase
    labels = []
    for i in range(count):
        label = ""
        n = i
        while True:
            label = letters[n % 26] + label
            n = n // 26 - 1
            if n < 0:
                break
        labels.append(label)
    return labels


def _check_roster(players: Sequence[Player]) -> None:
    if len(players) < 4 or len(players) % 4 != 0:
        raise InvalidInputError(
            f"Player count must be a multiple of 4 (minimum 4 players), got {len(players)}"
        )
    seen: set[str] = set()
    for p in players:
        if p.id in seen:
            raise InvalidInputError(f"Player listed twice: {p.id}")
        seen.add(p.id)


def _by_skill_desc(players: Sequence[Player]) -> list[Player]:
    return sorted(players, key=lambda p: p.skill, reverse=True)


def _warn_if_severe(team_a: Team, team_b: Team, where: str) -> None:
    balance = check_balance(team_a, team_b)
    if balance.severity == SEVERE:
        log.warning("%s balance warning: %s", where, balance.warning)


def _pair_outside_in(teams: list[Team]) -> list[MatchPreview]:
    """Sort teams by combined skill and pair the weakest with the strongest, inwards."""
    ordered = sorted(teams, key=lambda t: t.combined_skill)
    match_count = len(ordered) // 2
    courts = court_labels(match_count)
    return [
        MatchPreview(court=courts[i], team_a=ordered[i], team_b=ordered[-1 - i])
        for i in range(match_count)
    ]


# --------------------------------------------------------------------------- #
# Strategies
# --------------------------------------------------------------------------- #

def generate_skill_based_matches(players: Sequence[Player], rng: random.Random | None = None) -> list[MatchPreview]:
    """Strongest + weakest against the next strongest + next weakest, court by court."""
    _check_roster(players)
    ranked = _by_skill_desc(players)

    if len(ranked) == 4:
        team_a = make_team(ranked[0], ranked[3])
        team_b = make_team(ranked[1], ranked[2])
        _warn_if_severe(team_a, team_b, "Skill-based matching")
        return [MatchPreview(court="A", team_a=team_a, team_b=team_b)]

    courts = court_labels(len(ranked) // 4)
    matches: list[MatchPreview] = []
    remaining = list(ranked)
    for i, court in enumerate(courts):
        team_a = make_team(remaining[0], remaining[-1])
        team_b = make_team(remaining[1], remaining[-2])
        remaining = remaining[2:-2]
        _warn_if_severe(team_a, team_b, f"Match {i + 1}")
        matches.append(MatchPreview(court=court, team_a=team_a, team_b=team_b))
    return matches


def generate_random_balanced_matches(players: Sequence[Player], rng: random.Random | None = None) -> list[MatchPreview]:
    """Shuffle, then greedily build low-sum disjoint teams and pair them outside-in."""
    _check_roster(players)
    rng = rng or random
    shuffled = list(players)
    rng.shuffle(shuffled)

    if len(shuffled) == 4:
        return [MatchPreview(
            court="A",
            team_a=make_team(shuffled[0], shuffled[1]),
            team_b=make_team(shuffled[2], shuffled[3]),
        )]

    candidates = [
        make_team(shuffled[i], shuffled[j])
        for i in range(len(shuffled))
        for j in range(i + 1, len(shuffled))
    ]
    candidates.sort(key=lambda t: t.combined_skill)

    needed = len(shuffled) // 2
    selected: list[Team] = []
    used: set[str] = set()
    for team in candidates:
        if len(selected) >= needed:
            break
        if team.player1.id in used or team.player2.id in used:
            continue
        selected.append(team)
        used.update(team.ids)

    if len(selected) < needed:
        log.warning(
            "Only %s of %s disjoint teams found; falling back to consecutive pairing",
            len(selected), needed,
        )
        selected = [make_team(shuffled[i], shuffled[i + 1]) for i in range(0, len(shuffled), 2)]

    return _pair_outside_in(selected)


def generate_mixed_tiers_matches(players: Sequence[Player], rng: random.Random | None = None) -> list[MatchPreview]:
    """Every team gets one player from the strong half and one from the weak half."""
    _check_roster(players)
    rng = rng or random
    ranked = _by_skill_desc(players)

    if len(ranked) == 4:
        return [MatchPreview(
            court="A",
            team_a=make_team(ranked[0], ranked[3]),
            team_b=make_team(ranked[1], ranked[2]),
        )]

    half = len(ranked) // 2
    strong, weak = ranked[:half], ranked[half:]
    rng.shuffle(strong)
    rng.shuffle(weak)
    teams = [make_team(s, w) for s, w in zip(strong, weak)]
    return _pair_outside_in(teams)


def _combo_score(team_a: Team, team_b: Team, history: HistoryIndex, balance_weight: float) -> float:
    balance = 100 - imbalance(team_a, team_b)
    fresh = match_freshness(team_a, team_b, history)
    return balance * balance_weight + fresh * (1 - balance_weight)


def _best_combo(combos: list[tuple[Team, Team]], history: HistoryIndex, balance_weight: float) -> tuple[Team, Team]:
    best, best_score = combos[0], -1.0
    for combo in combos:
        score = _combo_score(*combo, history, balance_weight)
        if score > best_score:
            best, best_score = combo, score
    return best


def generate_skill_based_matches_with_freshness(
    players: Sequence[Player],
    history: HistoryIndex,
    rng: random.Random | None = None,
) -> list[MatchPreview]:
    """
    Skill-based matching that also weighs how recently people met.

    For 4 players all three splits are compared (60% balance, 40% freshness).
    For 8+ players each court compares the standard split with one swap of the
    two weakest picks (70% balance, 30% freshness). Courts are filled greedily
    from the top, so earlier courts constrain later ones.
    """
    _check_roster(players)
    ranked = _by_skill_desc(players)

    if len(ranked) == 4:
        p = ranked
        combos = [
            (make_team(p[0], p[3]), make_team(p[1], p[2])),
            (make_team(p[0], p[2]), make_team(p[1], p[3])),
            (make_team(p[0], p[1]), make_team(p[2], p[3])),
        ]
        team_a, team_b = _best_combo(combos, history, 0.6)
        _warn_if_severe(team_a, team_b, "Skill-based matching")
        return [MatchPreview(court="A", team_a=team_a, team_b=team_b)]

    courts = court_labels(len(ranked) // 4)
    matches: list[MatchPreview] = []
    used: set[str] = set()
    for i, court in enumerate(courts):
        available = [p for p in ranked if p.id not in used]
        combos = [(make_team(available[0], available[-1]), make_team(available[1], available[-2]))]
        if len(available) >= 6:
            combos.append((make_team(available[0], available[-2]), make_team(available[1], available[-1])))

        team_a, team_b = _best_combo(combos, history, 0.7)
        used.update((*team_a.ids, *team_b.ids))
        _warn_if_severe(team_a, team_b, f"Match {i + 1}")
        matches.append(MatchPreview(court=court, team_a=team_a, team_b=team_b))
    return matches


_STRATEGIES: dict[MatchmakingMode, Callable[..., list[MatchPreview]]] = {
    MatchmakingMode.SKILL_BASED: generate_skill_based_matches,
    MatchmakingMode.RANDOM_BALANCED: generate_random_balanced_matches,
    MatchmakingMode.MIXED_TIERS: generate_mixed_tiers_matches,
}


def generate_matches(
    players: Sequence[Player],
    mode: MatchmakingMode | str,
    rng: random.Random | None = None,
) -> list[MatchPreview]:
    """Run one strategy once, with no history weighting."""
    return _STRATEGIES[_as_mode(mode)](players, rng)


# --------------------------------------------------------------------------- #
# Candidate selection
# --------------------------------------------------------------------------- #

def select_best_candidate(
    attempt: Callable[[], list[MatchPreview]],
    score: Callable[[list[MatchPreview]], float],
    attempts: int = DEFAULT_ATTEMPTS,
) -> tuple[list[MatchPreview] | None, float]:
    """
    Call `attempt` up to `attempts` times and keep the highest-scoring result.

    Attempts that raise are logged and skipped. Returns (None, -1) when no
    attempt produced a result.
    """
    best: list[MatchPreview] | None = None
    best_score = -1.0
    for n in range(attempts):
        try:
            candidate = attempt()
            candidate_score = score(candidate)
        except Exception as e:
            log.warning("Matchmaking attempt %s failed: %s", n + 1, e)
            continue
        log.debug("Attempt %s scored %s", n + 1, candidate_score)
        if candidate_score > best_score:
            best, best_score = candidate, candidate_score
    return best, best_score


def generate_matches_with_duplicate_prevention(
    players: Sequence[Player],
    mode: MatchmakingMode | str,
    history: HistoryIndex | None = None,
    rng: random.Random | None = None,
    attempts: int = DEFAULT_ATTEMPTS,
) -> list[MatchPreview]:
    """
    Generate matches while steering away from recently repeated pairings.

    Args:
        players: The roster, a positive multiple of 4.
        mode: Strategy to run.
        history: Recent-play index; an empty index makes every candidate equally fresh.
        rng: Random source shared by all attempts.
        attempts: How many candidates to compare.

    Returns:
        The candidate with the highest total freshness. If no attempt succeeds,
        the plain strategy result.
    """
    _check_roster(players)
    mode = _as_mode(mode)
    history = history if history is not None else HistoryIndex.empty()

    if mode is MatchmakingMode.SKILL_BASED:
        def attempt() -> list[MatchPreview]:
            return generate_skill_based_matches_with_freshness(players, history, rng)
    else:
        def attempt() -> list[MatchPreview]:
            return generate_matches(players, mode, rng)

    best, best_score = select_best_candidate(
        attempt, lambda ms: assignment_freshness(ms, history), attempts
    )

    if not best:
        log.warning("Falling back to basic matchmaking without duplicate prevention")
        return generate_matches(players, mode, rng)

    if history:
        log.info("Generated matches with freshness score: %s", best_score)
        for i, m in enumerate(best):
            fresh = match_freshness(m.team_a, m.team_b, history)
            if fresh < LOW_FRESHNESS:
                log.warning("Match %s has low freshness (%s): some players have played recently", i + 1, fresh)

    return best


def validate_match_preview(matches: Sequence[MatchPreview]) -> list[str]:
    """Return a list of problems with a preview; empty means it can be confirmed."""
    errors: list[str] = []
    used: set[str] = set()

    if not 1 <= len(matches) <= MAX_PREVIEW_MATCHES:
        errors.append(f"Must have between 1-{MAX_PREVIEW_MATCHES} matches")

    for m in matches:
        for pid in m.player_ids:
            if pid in used:
                errors.append(f"Player appears in multiple matches: {pid}")
            used.add(pid)

        if m.team_a.player1.id == m.team_a.player2.id:
            errors.append(f"Team A has duplicate player in match {m.court}")
        if m.team_b.player1.id == m.team_b.player2.id:
            errors.append(f"Team B has duplicate player in match {m.court}")

    return errors
