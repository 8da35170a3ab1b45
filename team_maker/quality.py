"""
Aggregate quality report for a set of matches (preview or confirmed).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

from .balance import display_tier, imbalance, GOOD_MATCH, PERFECTLY_BALANCED
from .freshness import match_freshness
from .history import HistoryIndex
from .models import MatchPreview

BALANCE_WEIGHT = 0.7
FRESHNESS_WEIGHT = 0.3

# (minimum score, label), checked top-down
QUALITY_BANDS = [
    (90, "Excellent"),
    (75, "Very Good"),
    (60, "Good"),
    (40, "Fair"),
]
LOWEST_BAND = "Poor"


@dataclass
class QualityDetails:
    perfectly_balanced: int = 0
    good_matches: int = 0
    unbalanced: int = 0
    average_skill_difference: float = 0.0


@dataclass
class QualityReport:
    overall_score: int = 0
    balance_score: int = 0
    freshness_score: int = 0
    details: QualityDetails = field(default_factory=QualityDetails)

    @property
    def rating(self) -> str:
        return get_quality_rating(self.overall_score)


def calculate_match_quality(matches: Sequence[MatchPreview], history: HistoryIndex | None = None) -> QualityReport:
    """Summarise balance and freshness over every match; all zeros for no matches."""
    if not matches:
        return QualityReport()

    history = history if history is not None else HistoryIndex.empty()
    details = QualityDetails()
    total_balance = total_fresh = total_diff = 0

    for m in matches:
        diff = imbalance(m.team_a, m.team_b)
        total_diff += diff
        total_balance += max(0, 100 - diff * 2)
        total_fresh += match_freshness(m.team_a, m.team_b, history)

        tier = display_tier(diff)
        if tier == PERFECTLY_BALANCED:
            details.perfectly_balanced += 1
        elif tier == GOOD_MATCH:
            details.good_matches += 1
        else:
            details.unbalanced += 1

    n = len(matches)
    balance = total_balance / n
    fresh = total_fresh / n
    details.average_skill_difference = round(total_diff / n, 1)

    return QualityReport(
        overall_score=round(balance * BALANCE_WEIGHT + fresh * FRESHNESS_WEIGHT),
        balance_score=round(balance),
        freshness_score=round(fresh),
        details=details,
    )


def get_quality_rating(score: float) -> str:
    for minimum, label in QUALITY_BANDS:
        if score >= minimum:
            return label
    return LOWEST_BAND
