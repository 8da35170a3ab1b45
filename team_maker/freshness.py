"""
Freshness scoring: penalise pairings and match-ups that happened recently.
"""

from __future__ import annotations

from itertools import combinations
from typing import Iterable

from .history import HistoryIndex
from .models import MatchPreview, Team

FRESH = 100
TEAMMATE_PENALTY = 30
REMATCH_PENALTY = 50
INTERACTION_PENALTY = 5


def match_freshness(team_a: Team, team_b: Team, history: HistoryIndex) -> int:
    """
    Score how fresh a match is, from 0 (stale) to 100 (nobody met recently).

    Penalties stack: a repeated partnership also counts as a recent interaction.
    """
    score = FRESH
    if history.played_as_teammates(*team_a.ids):
        score -= TEAMMATE_PENALTY
    if history.played_as_teammates(*team_b.ids):
        score -= TEAMMATE_PENALTY
    if history.played_as_opponents(team_a, team_b):
        score -= REMATCH_PENALTY

    everyone = [*team_a.ids, *team_b.ids]
    interactions = sum(1 for a, b in combinations(everyone, 2) if history.played_together(a, b))
    score -= interactions * INTERACTION_PENALTY

    return max(0, score)


def assignment_freshness(matches: Iterable[MatchPreview], history: HistoryIndex) -> int:
    # Unnormalised; only comparable between assignments of the same size.
    return sum(match_freshness(m.team_a, m.team_b, history) for m in matches)
