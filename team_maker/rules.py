from __future__ import annotations

from dataclasses import replace
from typing import Callable

from .logging_config import get_logger
from .models import GamePoint, InvalidInputError, Match, MatchSide, utcnow_iso

log = get_logger(__name__)

GAMES_TO_WIN = 4
SIDES = ("team_a", "team_b")


class MatchStateError(ValueError):
    """Raised for a transition the live-match state machine does not allow."""


def is_finished(team_a_games: int, team_b_games: int, games_to_win: int = GAMES_TO_WIN) -> tuple[bool, str | None]:
    """
    Check whether a match is over and who won it.

    Examples:
        is_finished(4, 2) -> (True, 'team_a')
        is_finished(3, 3) -> (False, None)
        is_finished(1, 4) -> (True, 'team_b')
    """
    if team_a_games >= games_to_win:
        return (True, "team_a")
    if team_b_games >= games_to_win:
        return (True, "team_b")
    return (False, None)


def start_match(match: Match, clock: Callable[[], str] = utcnow_iso) -> Match:
    """waiting -> live, stamping the start time."""
    if match.status != "waiting":
        raise MatchStateError(f"Match {match.id} is {match.status}, only waiting matches can start")
    return replace(match, status="live", start_time=clock())


def score_game(match: Match, side: str, clock: Callable[[], str] = utcnow_iso) -> Match:
    """
    Credit one game to `side` ('team_a' or 'team_b').

    Appends a history entry holding the scores before the increment. When the
    side reaches GAMES_TO_WIN the match completes, with winner and end time set.
    """
    if side not in SIDES:
        raise InvalidInputError(f"Unknown side: {side}")
    if match.status != "live":
        raise MatchStateError(f"Match {match.id} is {match.status}, only live matches can be scored")

    now = clock()
    point = GamePoint(
        team_a_score=match.team_a.games_won,
        team_b_score=match.team_b.games_won,
        timestamp=now,
        action=f"{side}_score",
    )
    scored = replace(match.side(side), games_won=match.side(side).games_won + 1)
    updated = replace(match, history=[*match.history, point], **{side: scored})

    done, winner = is_finished(updated.team_a.games_won, updated.team_b.games_won)
    if done:
        updated = replace(updated, status="completed", winner=winner, end_time=now)
        log.info(
            "Match %s completed %s-%s (winner=%s)",
            match.id, updated.team_a.games_won, updated.team_b.games_won, winner,
        )
    return updated


def undo_last(match: Match) -> Match:
    """Pop the last scoring event and restore the score it recorded.

    A completed match goes back to live. With no history this is a no-op.
    """
    if not match.history:
        return match
    last = match.history[-1]
    return replace(
        match,
        team_a=MatchSide(*match.team_a.ids, games_won=last.team_a_score),
        team_b=MatchSide(*match.team_b.ids, games_won=last.team_b_score),
        history=match.history[:-1],
        status="live",
        winner=None,
        end_time=None,
    )
