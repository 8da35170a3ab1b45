"""Team Maker core package.

Exports commonly used modules for convenience.
"""

from . import db as db
from . import mmr as mmr
from . import rules as rules
from . import logging_config as logging_config
from .models import Player, Team, MatchPreview, Match, Session, InvalidInputError
from .matchmaking import (
    MatchmakingMode,
    generate_matches,
    generate_matches_with_duplicate_prevention,
    validate_match_preview,
)
from .quality import calculate_match_quality, get_quality_rating
from .ratings import apply_match_completion

__all__ = [
    "db",
    "mmr",
    "rules",
    "logging_config",
    "Player",
    "Team",
    "MatchPreview",
    "Match",
    "Session",
    "InvalidInputError",
    "MatchmakingMode",
    "generate_matches",
    "generate_matches_with_duplicate_prevention",
    "validate_match_preview",
    "calculate_match_quality",
    "get_quality_rating",
    "apply_match_completion",
]
