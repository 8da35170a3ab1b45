"""
Team balance scoring.

Two separate classifications live here. `check_balance` uses the severity
bands the engine acts on (balanced / moderate / severe). `display_tier` uses
the tighter bands shown in quality summaries. They are not interchangeable.
"""

from __future__ import annotations

from dataclasses import dataclass

from .models import Team

# Severity bands
BALANCED_MAX = 10
MODERATE_MAX = 20

# Display bands
PERFECT_MAX = 5
GOOD_MAX = 10

BALANCED = "balanced"
MODERATE = "moderate"
SEVERE = "severe"

PERFECTLY_BALANCED = "perfectly balanced"
GOOD_MATCH = "good match"
UNBALANCED = "unbalanced"


@dataclass(frozen=True)
class BalanceCheck:
    imbalance: int
    severity: str
    warning: str | None = None

    @property
    def is_balanced(self) -> bool:
        return self.severity == BALANCED


def imbalance(team_a: Team, team_b: Team) -> int:
    """Absolute difference between the teams' combined skill."""
    return abs(team_a.combined_skill - team_b.combined_skill)


def check_balance(team_a: Team, team_b: Team) -> BalanceCheck:
    """
    Classify a pairing of teams into a severity tier.

    Returns:
        BalanceCheck with an advisory warning for the moderate and severe tiers.
        The warning never blocks generation.
    """
    diff = imbalance(team_a, team_b)
    if diff <= BALANCED_MAX:
        return BalanceCheck(diff, BALANCED)
    if diff <= MODERATE_MAX:
        return BalanceCheck(
            diff,
            MODERATE,
            f"Teams are moderately unbalanced ({diff} point difference). "
            "Consider adjusting player skill ratings.",
        )
    return BalanceCheck(
        diff,
        SEVERE,
        f"Teams are severely unbalanced ({diff} point difference)! "
        "Matches will likely be blowouts. Please adjust player skill ratings.",
    )


def display_tier(diff: int) -> str:
    if diff <= PERFECT_MAX:
        return PERFECTLY_BALANCED
    if diff <= GOOD_MAX:
        return GOOD_MATCH
    return UNBALANCED
