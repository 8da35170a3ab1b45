"""
Recent-play lookups used to keep successive sessions fresh.
"""

from __future__ import annotations

from datetime import datetime, timezone
from itertools import combinations
from typing import Iterable

from .logging_config import get_logger
from .models import Match, Session, Team

log = get_logger(__name__)

DEFAULT_WINDOW = 3


def _session_time(session: Session) -> datetime:
    # Dates are stored as ISO strings, either plain dates or full timestamps.
    dt = datetime.fromisoformat(session.date.replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def _pair(a: str, b: str) -> frozenset[str]:
    return frozenset((a, b))


class HistoryIndex:
    """
    Who has recently played with or against whom.

    Built once from the stored sessions and matches. Only matches referenced by
    the `window` most recently dated sessions are considered.
    """

    def __init__(self, sessions: Iterable[Session], matches: Iterable[Match], window: int = DEFAULT_WINDOW):
        recent_sessions = sorted(sessions, key=_session_time, reverse=True)[:max(window, 0)]
        recent_ids = {mid for s in recent_sessions for mid in s.matches}
        self.recent_matches: list[Match] = [m for m in matches if m.id in recent_ids]

        self._together: set[frozenset[str]] = set()
        self._teammates: set[frozenset[str]] = set()
        self._matchups: set[frozenset[frozenset[str]]] = set()
        for m in self.recent_matches:
            side_a = _pair(*m.team_a.ids)
            side_b = _pair(*m.team_b.ids)
            self._teammates.update((side_a, side_b))
            self._matchups.add(frozenset((side_a, side_b)))
            for a, b in combinations(m.player_ids, 2):
                self._together.add(_pair(a, b))

        log.debug(
            "History index: %s sessions, %s recent matches (window=%s)",
            len(recent_sessions), len(self.recent_matches), window,
        )

    @classmethod
    def empty(cls) -> "HistoryIndex":
        return cls([], [])

    def __bool__(self) -> bool:
        return bool(self.recent_matches)

    def played_together(self, id_a: str, id_b: str) -> bool:
        """True if both players appeared anywhere in the same recent match."""
        return _pair(id_a, id_b) in self._together

    def played_as_teammates(self, id_a: str, id_b: str) -> bool:
        return _pair(id_a, id_b) in self._teammates

    def played_as_opponents(self, team_x: Team, team_y: Team) -> bool:
        """True if this exact pair-versus-pair happened recently, either way round."""
        return frozenset((_pair(*team_x.ids), _pair(*team_y.ids))) in self._matchups
