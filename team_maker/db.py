import json
from dataclasses import asdict
from typing import Any, Sequence

import aiosqlite

from .history import HistoryIndex, DEFAULT_WINDOW
from .logging_config import get_logger
from .ratings import apply_match_completion
from .models import (
    GamePoint,
    InvalidInputError,
    Match,
    MatchPreview,
    MatchSide,
    Player,
    PlayerStats,
    Session,
    new_id,
    utcnow_iso,
)

log = get_logger(__name__)

# Global variable for database path (will be set by init_db)
DB_PATH = "team_maker.db"

SKILL_RANGE = (1, 100)


async def init_db(db_path: str = "team_maker.db"):
    """Initialize the database with required tables."""
    global DB_PATH
    DB_PATH = db_path

    async with aiosqlite.connect(DB_PATH) as db:
        await db.execute("""
            CREATE TABLE IF NOT EXISTS players (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                skill INTEGER NOT NULL,
                is_guest INTEGER NOT NULL DEFAULT 0,
                gender TEXT,
                availability TEXT NOT NULL DEFAULT '[]',
                created_at TEXT NOT NULL,
                matches_played INTEGER NOT NULL DEFAULT 0,
                matches_won INTEGER NOT NULL DEFAULT 0,
                matches_lost INTEGER NOT NULL DEFAULT 0,
                games_won INTEGER NOT NULL DEFAULT 0,
                games_lost INTEGER NOT NULL DEFAULT 0,
                current_streak INTEGER NOT NULL DEFAULT 0,
                points INTEGER NOT NULL DEFAULT 0,
                last_played TEXT
            )
        """)
        await db.execute("""
            CREATE TABLE IF NOT EXISTS sessions (
                id TEXT PRIMARY KEY,
                date TEXT NOT NULL,
                available_players TEXT NOT NULL DEFAULT '',
                matches TEXT NOT NULL DEFAULT '',
                status TEXT CHECK(status IN ('planning','active','completed')) NOT NULL DEFAULT 'planning'
            )
        """)
        await db.execute("""
            CREATE TABLE IF NOT EXISTS matches (
                id TEXT PRIMARY KEY,
                session_id TEXT NOT NULL,
                round INTEGER NOT NULL DEFAULT 1,
                court TEXT NOT NULL,
                status TEXT CHECK(status IN ('waiting','live','completed')) NOT NULL DEFAULT 'waiting',
                team_a TEXT NOT NULL,
                team_a_games INTEGER NOT NULL DEFAULT 0,
                team_b TEXT NOT NULL,
                team_b_games INTEGER NOT NULL DEFAULT 0,
                winner TEXT,
                start_time TEXT,
                end_time TEXT,
                history TEXT NOT NULL DEFAULT '[]'
            )
        """)
        # Players as they were before a completed match was rated; cleared on undo
        await db.execute("""
            CREATE TABLE IF NOT EXISTS match_ratings (
                match_id TEXT PRIMARY KEY,
                winner TEXT NOT NULL,
                players_before TEXT NOT NULL
            )
        """)
        await db.commit()
    log.debug("Database ready at %s", DB_PATH)


# --- Row conversion ---

def _csv(ids: Sequence[str]) -> str:
    return ",".join(ids)


def _split(text: str | None) -> list[str]:
    return [x for x in (text or "").split(",") if x]


def _player_from_row(row: Any) -> Player:
    r = dict(row)
    return Player(
        id=r["id"],
        name=r["name"],
        skill=int(r["skill"]),
        is_guest=bool(r["is_guest"]),
        gender=r["gender"],
        availability=json.loads(r["availability"] or "[]"),
        created_at=r["created_at"],
        stats=PlayerStats(
            matches_played=r["matches_played"],
            matches_won=r["matches_won"],
            matches_lost=r["matches_lost"],
            games_won=r["games_won"],
            games_lost=r["games_lost"],
            current_streak=r["current_streak"],
            points=r["points"],
            last_played=r["last_played"],
        ),
    )


def _session_from_row(row: Any) -> Session:
    r = dict(row)
    return Session(
        id=r["id"],
        date=r["date"],
        available_players=_split(r["available_players"]),
        matches=_split(r["matches"]),
        status=r["status"],
    )


def _match_from_row(row: Any) -> Match:
    r = dict(row)
    a1, a2 = _split(r["team_a"])
    b1, b2 = _split(r["team_b"])
    return Match(
        id=r["id"],
        session_id=r["session_id"],
        round=r["round"],
        court=r["court"],
        status=r["status"],
        team_a=MatchSide(a1, a2, r["team_a_games"]),
        team_b=MatchSide(b1, b2, r["team_b_games"]),
        winner=r["winner"],
        start_time=r["start_time"],
        end_time=r["end_time"],
        history=[GamePoint(**h) for h in json.loads(r["history"] or "[]")],
    )


# --- Players ---

async def add_player(
    name: str,
    skill: int,
    is_guest: bool = False,
    player_id: str | None = None,
    gender: str | None = None,
) -> Player:
    """Register a new player and return it."""
    lo, hi = SKILL_RANGE
    if not lo <= skill <= hi:
        raise InvalidInputError(f"Skill must be between {lo} and {hi}, got {skill}")
    player = Player(id=player_id or new_id(), name=name, skill=skill, is_guest=is_guest, gender=gender)
    await save_player(player)
    log.debug("Created player id=%s name=%s skill=%s guest=%s", player.id, name, skill, is_guest)
    return player


async def _write_player(db: aiosqlite.Connection, player: Player) -> None:
    s = player.stats
    await db.execute(
        """
        INSERT OR REPLACE INTO players (
            id, name, skill, is_guest, gender, availability, created_at,
            matches_played, matches_won, matches_lost, games_won, games_lost,
            current_streak, points, last_played
        )
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (
            player.id, player.name, player.skill, int(player.is_guest), player.gender,
            json.dumps(player.availability), player.created_at,
            s.matches_played, s.matches_won, s.matches_lost, s.games_won, s.games_lost,
            s.current_streak, s.points, s.last_played,
        ),
    )


async def save_player(player: Player) -> None:
    """Insert or fully replace a player record."""
    async with aiosqlite.connect(DB_PATH) as db:
        await _write_player(db, player)
        await db.commit()
    log.debug("Saved player id=%s skill=%s points=%s", player.id, player.skill, player.stats.points)


async def get_player(player_id: str) -> Player | None:
    async with aiosqlite.connect(DB_PATH) as db:
        db.row_factory = aiosqlite.Row
        async with db.execute("SELECT * FROM players WHERE id = ?", (player_id,)) as cursor:
            row = await cursor.fetchone()
            return _player_from_row(row) if row else None


async def list_players() -> list[Player]:
    async with aiosqlite.connect(DB_PATH) as db:
        db.row_factory = aiosqlite.Row
        async with db.execute("SELECT * FROM players ORDER BY name COLLATE NOCASE") as cursor:
            rows = await cursor.fetchall()
            out = [_player_from_row(row) for row in rows]
            log.debug("Listed %s players", len(out))
            return out


async def delete_player(player_id: str) -> None:
    async with aiosqlite.connect(DB_PATH) as db:
        await db.execute("DELETE FROM players WHERE id = ?", (player_id,))
        await db.commit()
    log.debug("Deleted player id=%s", player_id)


async def set_availability(player_id: str, date: str, available: bool = True) -> Player:
    """Mark a player as available (or not) on an ISO date."""
    player = await get_player(player_id)
    if player is None:
        raise InvalidInputError(f"Unknown player: {player_id}")
    dates = [d for d in player.availability if d != date]
    if available:
        dates.append(date)
    player.availability = sorted(dates)
    await save_player(player)
    return player


async def players_available_on(date: str) -> list[Player]:
    return [p for p in await list_players() if date in p.availability]


# --- Sessions ---

async def save_session(session: Session) -> None:
    async with aiosqlite.connect(DB_PATH) as db:
        await db.execute(
            """
            INSERT OR REPLACE INTO sessions (id, date, available_players, matches, status)
            VALUES (?, ?, ?, ?, ?)
            """,
            (session.id, session.date, _csv(session.available_players), _csv(session.matches), session.status),
        )
        await db.commit()
    log.debug("Saved session id=%s status=%s matches=%s", session.id, session.status, len(session.matches))


async def get_session(session_id: str) -> Session | None:
    async with aiosqlite.connect(DB_PATH) as db:
        db.row_factory = aiosqlite.Row
        async with db.execute("SELECT * FROM sessions WHERE id = ?", (session_id,)) as cursor:
            row = await cursor.fetchone()
            return _session_from_row(row) if row else None


async def get_sessions() -> list[Session]:
    async with aiosqlite.connect(DB_PATH) as db:
        db.row_factory = aiosqlite.Row
        async with db.execute("SELECT * FROM sessions ORDER BY date DESC") as cursor:
            rows = await cursor.fetchall()
            return [_session_from_row(row) for row in rows]


async def set_session_status(session_id: str, status: str) -> None:
    async with aiosqlite.connect(DB_PATH) as db:
        await db.execute("UPDATE sessions SET status = ? WHERE id = ?", (status, session_id))
        await db.commit()
    log.debug("Set session status id=%s status=%s", session_id, status)


# --- Matches ---

async def save_match(match: Match) -> None:
    """Insert or fully replace a match record."""
    history = json.dumps([vars(h) for h in match.history])
    async with aiosqlite.connect(DB_PATH) as db:
        await db.execute(
            """
            INSERT OR REPLACE INTO matches (
                id, session_id, round, court, status, team_a, team_a_games,
                team_b, team_b_games, winner, start_time, end_time, history
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                match.id, match.session_id, match.round, match.court, match.status,
                _csv(match.team_a.ids), match.team_a.games_won,
                _csv(match.team_b.ids), match.team_b.games_won,
                match.winner, match.start_time, match.end_time, history,
            ),
        )
        await db.commit()
    log.debug(
        "Saved match id=%s status=%s score=%s-%s",
        match.id, match.status, match.team_a.games_won, match.team_b.games_won,
    )


async def get_match(match_id: str) -> Match | None:
    async with aiosqlite.connect(DB_PATH) as db:
        db.row_factory = aiosqlite.Row
        async with db.execute("SELECT * FROM matches WHERE id = ?", (match_id,)) as cursor:
            row = await cursor.fetchone()
            return _match_from_row(row) if row else None


async def get_matches() -> list[Match]:
    async with aiosqlite.connect(DB_PATH) as db:
        db.row_factory = aiosqlite.Row
        async with db.execute("SELECT * FROM matches") as cursor:
            rows = await cursor.fetchall()
            return [_match_from_row(row) for row in rows]


async def matches_for_session(session_id: str) -> list[Match]:
    async with aiosqlite.connect(DB_PATH) as db:
        db.row_factory = aiosqlite.Row
        async with db.execute(
            "SELECT * FROM matches WHERE session_id = ? ORDER BY round, court", (session_id,)
        ) as cursor:
            rows = await cursor.fetchall()
            return [_match_from_row(row) for row in rows]


# --- Ratings applied per match ---

def _player_from_dict(d: dict) -> Player:
    return Player(**{**d, "stats": PlayerStats(**d["stats"])})


async def record_match_result(match: Match) -> list[Player]:
    """
    Apply a completed match to its four players, once per completion.

    The player records from before the update are stored with the match so
    that `revert_match_result` can put them back if the match is reopened.

    Returns:
        The updated players, or an empty list if this match is already rated.
    """
    async with aiosqlite.connect(DB_PATH) as db:
        db.row_factory = aiosqlite.Row
        async with db.execute("SELECT winner FROM match_ratings WHERE match_id = ?", (match.id,)) as cursor:
            if await cursor.fetchone():
                log.debug("Match %s already rated", match.id)
                return []
        ids = match.player_ids
        async with db.execute(
            f"SELECT * FROM players WHERE id IN ({','.join('?' * len(ids))})", ids
        ) as cursor:
            before = [_player_from_row(row) for row in await cursor.fetchall()]

        updated = apply_match_completion(match, before)
        await db.execute(
            "INSERT INTO match_ratings (match_id, winner, players_before) VALUES (?, ?, ?)",
            (match.id, match.winner, json.dumps([asdict(p) for p in before])),
        )
        for player in updated:
            await _write_player(db, player)
        await db.commit()
    log.info("Rated match %s (winner=%s)", match.id, match.winner)
    return updated


async def revert_match_result(match_id: str) -> list[Player]:
    """Restore the players a match was rated against. No-op if it was never rated."""
    async with aiosqlite.connect(DB_PATH) as db:
        db.row_factory = aiosqlite.Row
        async with db.execute("SELECT players_before FROM match_ratings WHERE match_id = ?", (match_id,)) as cursor:
            row = await cursor.fetchone()
        if row is None:
            return []
        restored = [_player_from_dict(d) for d in json.loads(row["players_before"])]
        for player in restored:
            await _write_player(db, player)
        await db.execute("DELETE FROM match_ratings WHERE match_id = ?", (match_id,))
        await db.commit()
    log.info("Reverted ratings for match %s", match_id)
    return restored


async def create_session(previews: Sequence[MatchPreview], date: str | None = None, round_no: int = 1) -> Session:
    """Persist a confirmed preview as a planning session with one waiting match per court."""
    session = Session(id=new_id(), date=date or utcnow_iso())
    for p in previews:
        match = Match(
            id=new_id(),
            session_id=session.id,
            round=round_no,
            court=p.court,
            team_a=MatchSide(*p.team_a.ids),
            team_b=MatchSide(*p.team_b.ids),
        )
        await save_match(match)
        session.matches.append(match.id)
        session.available_players.extend(p.player_ids)
    await save_session(session)
    log.info("Created session %s with %s matches", session.id, len(session.matches))
    return session


async def refresh_session_status(session_id: str) -> str | None:
    """Move a session to active once play starts and to completed when every match is done."""
    session = await get_session(session_id)
    if session is None:
        return None
    statuses = [m.status for m in await matches_for_session(session_id)]
    if statuses and all(s == "completed" for s in statuses):
        status = "completed"
    elif any(s != "waiting" for s in statuses):
        status = "active"
    else:
        status = "planning"
    if status != session.status:
        await set_session_status(session_id, status)
    return status


async def load_history(window: int = DEFAULT_WINDOW) -> HistoryIndex:
    return HistoryIndex(await get_sessions(), await get_matches(), window)
