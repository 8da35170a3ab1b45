"""
Data models for the doubles team maker.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone


class InvalidInputError(ValueError):
    """Raised when a caller hands the engine input it must reject (bad roster, bad team)."""


def new_id() -> str:
    return uuid.uuid4().hex


def utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class PlayerStats:
    matches_played: int = 0
    matches_won: int = 0
    matches_lost: int = 0
    games_won: int = 0
    games_lost: int = 0
    current_streak: int = 0
    points: int = 0
    last_played: str | None = None


@dataclass
class Player:
    id: str
    name: str
    skill: int
    is_guest: bool = False
    gender: str | None = None
    availability: list[str] = field(default_factory=list)
    created_at: str = field(default_factory=utcnow_iso)
    stats: PlayerStats = field(default_factory=PlayerStats)


@dataclass(frozen=True)
class Team:
    player1: Player
    player2: Player
    combined_skill: int

    @property
    def ids(self) -> tuple[str, str]:
        return (self.player1.id, self.player2.id)


@dataclass(frozen=True)
class MatchPreview:
    court: str
    team_a: Team
    team_b: Team

    @property
    def player_ids(self) -> list[str]:
        return [*self.team_a.ids, *self.team_b.ids]


@dataclass
class MatchSide:
    player1_id: str
    player2_id: str
    games_won: int = 0

    @property
    def ids(self) -> tuple[str, str]:
        return (self.player1_id, self.player2_id)


@dataclass
class GamePoint:
    """One scoring event; scores are the values *before* the increment."""
    team_a_score: int
    team_b_score: int
    timestamp: str
    action: str  # 'team_a_score' | 'team_b_score'


@dataclass
class Match:
    id: str
    session_id: str
    round: int
    court: str
    team_a: MatchSide
    team_b: MatchSide
    status: str = "waiting"  # waiting -> live -> completed
    winner: str | None = None  # 'team_a' | 'team_b'
    start_time: str | None = None
    end_time: str | None = None
    history: list[GamePoint] = field(default_factory=list)

    @property
    def player_ids(self) -> list[str]:
        return [*self.team_a.ids, *self.team_b.ids]

    def side(self, name: str) -> MatchSide:
        if name == "team_a":
            return self.team_a
        if name == "team_b":
            return self.team_b
        raise InvalidInputError(f"Unknown side: {name}")


@dataclass
class Session:
    id: str
    date: str
    available_players: list[str] = field(default_factory=list)
    matches: list[str] = field(default_factory=list)
    status: str = "planning"  # planning -> active -> completed


def make_team(player1: Player, player2: Player) -> Team:
    """Combine two distinct players into a team."""
    if player1.id == player2.id:
        raise InvalidInputError(f"Team cannot contain the same player twice: {player1.id}")
    return Team(player1=player1, player2=player2, combined_skill=player1.skill + player2.skill)
