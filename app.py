# app.py
# Discord doubles team maker: balanced courts, fresh pairings and live game scoring

from __future__ import annotations

import asyncio
import os
import random
from collections import defaultdict
from datetime import date as _date
from typing import Optional

import discord
from discord import app_commands
from dotenv import load_dotenv

import fmt
from views import LiveMatchView, PreviewView
from team_maker import db
from team_maker.logging_config import setup_logging, get_logger
from team_maker.matchmaking import (
    MatchmakingMode,
    generate_matches_with_duplicate_prevention,
    validate_match_preview,
)
from team_maker.models import Match, MatchPreview, Player
from team_maker.quality import calculate_match_quality
from team_maker.rules import GAMES_TO_WIN, score_game, start_match, undo_last
from team_maker.stats import format_streak, match_summary, partners, rank_players, top_performers, win_rate

setup_logging()
log = get_logger(__name__)

# --- Env / Config ---
load_dotenv()

TOKEN = os.getenv("DISCORD_TOKEN")
TEST_MODE = os.getenv("TEST_MODE", "0").lower() in ("1", "true", "yes")
TEST_GUILD_ID = int(os.getenv("TEST_GUILD_ID", "0") or 0) or None

DATABASE_PATH = os.getenv(
    "DATABASE_PATH",
    "./test_team_maker.sqlite" if TEST_MODE else "./team_maker.sqlite",
)

try:
    HISTORY_WINDOW = int(os.getenv("HISTORY_WINDOW", "3"))
except ValueError:
    log.warning("Invalid HISTORY_WINDOW value, using default 3")
    HISTORY_WINDOW = 3

try:
    DEFAULT_SKILL = int(os.getenv("DEFAULT_SKILL", "50"))
except ValueError:
    log.warning("Invalid DEFAULT_SKILL value, using default 50")
    DEFAULT_SKILL = 50

_seed = os.getenv("RANDOM_SEED")
RNG = random.Random(int(_seed)) if _seed else random.Random()

MODE_CHOICES = [app_commands.Choice(name=m.label, value=m.value) for m in MatchmakingMode]

# Intents
intents = discord.Intents.none()
intents.guilds = True

bot = discord.Client(intents=intents)
tree = app_commands.CommandTree(bot)

# Guild locks: one writer at a time per guild
guild_locks: dict[int, asyncio.Lock] = defaultdict(asyncio.Lock)
def get_guild_lock(guild_id: int | None) -> asyncio.Lock:
    return guild_locks[guild_id or 0]


# --- Helpers ---
def _today() -> str:
    return _date.today().isoformat()


async def _find_player(query: str) -> Player | None:
    """Look a player up by id, then by case-insensitive name."""
    player = await db.get_player(query)
    if player:
        return player
    q = query.strip().lower()
    for p in await db.list_players():
        if p.name.lower() == q:
            return p
    return None


def _preview_content(title: str, previews: list[MatchPreview], history) -> str:
    report = calculate_match_quality(previews, history)
    lines = [fmt.bold(title), *fmt.preview_lines(previews), "", *fmt.quality_lines(report)]
    problems = validate_match_preview(previews)
    if problems:
        lines.append("")
        lines.extend(f"❗ {p}" for p in problems)
    return "\n".join(lines)


async def _scoreboard_content(match: Match) -> str:
    names = {p.id: p.name for p in await db.list_players()}
    return fmt.scoreboard(match, names, GAMES_TO_WIN)


# --- Events ---
@bot.event
async def on_ready():
    await db.init_db(DATABASE_PATH)

    if TEST_MODE and TEST_GUILD_ID:
        await tree.sync(guild=discord.Object(id=TEST_GUILD_ID))
        log.info("Commands synced to test guild %s", TEST_GUILD_ID)
    else:
        await tree.sync()
        log.info("Commands synced globally")

    status = "Doubles 🎾 [TEST MODE]" if TEST_MODE else "Doubles 🎾"
    await bot.change_presence(activity=discord.Game(name=status))
    log.info("Bot ready as %s | guilds=%s | DB=%s", bot.user, len(bot.guilds), DATABASE_PATH)


# --- Commands ---
@tree.command(name="player_add", description="Register a player (yourself, another member, or a guest)")
@app_commands.describe(
    name="Display name",
    skill="Skill rating 1-100",
    user="Discord member this player belongs to (leave empty for guests)",
    guest="Mark as a guest player",
)
async def player_add(
    inter: discord.Interaction,
    name: str,
    skill: Optional[app_commands.Range[int, 1, 100]] = None,
    user: discord.User | None = None,
    guest: bool = False,
):
    player_id = str(user.id) if user else None
    if player_id and await db.get_player(player_id):
        return await inter.response.send_message("That member is already registered.", ephemeral=True)
    async with get_guild_lock(inter.guild_id):
        try:
            player = await db.add_player(
                name.strip()[:60],
                int(skill) if skill is not None else DEFAULT_SKILL,
                is_guest=guest or user is None,
                player_id=player_id,
            )
        except ValueError as e:
            return await inter.response.send_message(f"❌ {e}", ephemeral=True)
    await inter.response.send_message(
        f"✅ Registered {fmt.bold(player.name)} (skill {player.skill}) · id {fmt.code(player.id)}",
        ephemeral=True,
    )


@tree.command(name="player_list", description="List registered players")
async def player_list(inter: discord.Interaction):
    players = await db.list_players()
    if not players:
        return await inter.response.send_message("No players registered yet.", ephemeral=True)
    rows = [[p.name, str(p.skill), "guest" if p.is_guest else "", p.id] for p in players]
    await inter.response.send_message(fmt.mono_table(rows, ["Name", "Skill", "", "Id"]), ephemeral=True)


@tree.command(name="available", description="Mark a player available (or not) for a date")
@app_commands.describe(
    player="Player name or id",
    date="ISO date, e.g. 2024-06-01 (defaults to today)",
    available="Available on that date?",
)
async def available(inter: discord.Interaction, player: str, date: str | None = None, available: bool = True):
    target = await _find_player(player)
    if target is None:
        return await inter.response.send_message(f"No player named {fmt.code(player)}.", ephemeral=True)
    day = date or _today()
    try:
        _date.fromisoformat(day)
    except ValueError:
        return await inter.response.send_message("Date must look like 2024-06-01.", ephemeral=True)
    async with get_guild_lock(inter.guild_id):
        await db.set_availability(target.id, day, available)
    state = "available" if available else "not available"
    await inter.response.send_message(f"{fmt.bold(target.name)} is {state} on {day}.", ephemeral=True)


@tree.command(name="matchmake", description="Build balanced courts from everyone available on a date")
@app_commands.describe(mode="Matchmaking strategy", date="ISO date (defaults to today)")
@app_commands.choices(mode=MODE_CHOICES)
async def matchmake(inter: discord.Interaction, mode: str = MatchmakingMode.SKILL_BASED.value, date: str | None = None):
    day = date or _today()
    roster = await db.players_available_on(day)
    if len(roster) < 4 or len(roster) % 4 != 0:
        return await inter.response.send_message(
            f"❌ {len(roster)} players available on {day}; need a multiple of 4 (at least 4).",
            ephemeral=True,
        )

    await inter.response.defer()
    history = await db.load_history(HISTORY_WINDOW)
    title = f"Courts for {day} · {MatchmakingMode(mode).label}"
    state: dict[str, list[MatchPreview]] = {}

    def build() -> list[MatchPreview]:
        state["previews"] = generate_matches_with_duplicate_prevention(roster, mode, history, RNG)
        return state["previews"]

    async def on_confirm(i2: discord.Interaction):
        previews = state["previews"]
        async with get_guild_lock(i2.guild_id):
            session = await db.create_session(previews, day)
        lines = [_preview_content(title, previews, history), "", f"✅ Session {fmt.code(session.id)} saved."]
        for mid, p in zip(session.matches, previews):
            lines.append(f"Court {p.court}: start with {fmt.code('/match_start ' + mid)}")
        await i2.response.edit_message(content="\n".join(lines), view=view)

    async def on_reshuffle(i2: discord.Interaction):
        try:
            previews = build()
        except ValueError as e:
            return await i2.response.send_message(f"❌ {e}", ephemeral=True)
        await i2.response.edit_message(content=_preview_content(title, previews, history), view=view)

    try:
        previews = build()
    except ValueError as e:
        return await inter.followup.send(f"❌ {e}", ephemeral=True)

    view = PreviewView(
        inter.user.id, on_confirm, on_reshuffle, problems=lambda: validate_match_preview(state["previews"])
    )
    await inter.followup.send(_preview_content(title, previews, history), view=view)


@tree.command(name="match_start", description="Start a confirmed match and open its live scoreboard")
@app_commands.describe(match_id="Match id from the confirmed session")
async def match_start(inter: discord.Interaction, match_id: str):
    async with get_guild_lock(inter.guild_id):
        match = await db.get_match(match_id.strip())
        if match is None:
            return await inter.response.send_message("Match not found.", ephemeral=True)
        if match.status == "waiting":
            match = start_match(match)
            await db.save_match(match)
            await db.refresh_session_status(match.session_id)

    async def on_score(i2: discord.Interaction, side: str):
        async with get_guild_lock(i2.guild_id):
            current = await db.get_match(match.id)
            try:
                current = score_game(current, side)
            except ValueError as e:
                return await i2.response.send_message(f"❌ {e}", ephemeral=True)
            await db.save_match(current)
            if current.status == "completed":
                await db.record_match_result(current)
                await db.refresh_session_status(current.session_id)
        view.set_finished(current.status == "completed")
        await i2.response.edit_message(content=await _scoreboard_content(current), view=view)

    async def on_undo(i2: discord.Interaction):
        async with get_guild_lock(i2.guild_id):
            previous = await db.get_match(match.id)
            current = undo_last(previous)
            await db.save_match(current)
            if previous.status == "completed":
                await db.revert_match_result(match.id)
            await db.refresh_session_status(current.session_id)
        view.set_finished(current.status == "completed")
        await i2.response.edit_message(content=await _scoreboard_content(current), view=view)

    view = LiveMatchView(on_score, on_undo)
    view.set_finished(match.status == "completed")
    await inter.response.send_message(await _scoreboard_content(match), view=view)


@tree.command(name="leaderboard", description="Show players ranked by points")
@app_commands.describe(limit="How many players to show (1-50)")
async def leaderboard(inter: discord.Interaction, limit: app_commands.Range[int, 1, 50] = 20):
    n = int(limit)
    players = await db.list_players()
    ranked = [p for p in rank_players(players) if p.stats.matches_played > 0][:n]
    if not ranked:
        return await inter.response.send_message("No matches played yet.", ephemeral=True)
    rows = [
        [
            str(i), p.name, str(p.stats.points), str(p.skill),
            f"{p.stats.matches_won}-{p.stats.matches_lost}",
            f"{win_rate(p.stats.matches_won, p.stats.matches_played)}%",
            format_streak(p.stats.current_streak),
        ]
        for i, p in enumerate(ranked, start=1)
    ]
    table = fmt.mono_table(rows, ["#", "Player", "Pts", "Skill", "W-L", "Win%", "Streak"])
    highlights = fmt.performer_lines(top_performers(players))
    await inter.response.send_message("\n".join([f"**🏆 Leaderboard (Top {n})**", table, *highlights]))


@tree.command(name="stats", description="Show a player's statistics")
@app_commands.describe(player="Player name or id")
async def stats(inter: discord.Interaction, player: str):
    p = await _find_player(player)
    if p is None:
        return await inter.response.send_message(f"No player named {fmt.code(player)}.", ephemeral=True)
    together = partners(p, await db.list_players(), await db.get_matches())
    await inter.response.send_message(fmt.player_stats(p, together), ephemeral=True)


@tree.command(name="session_summary", description="Summarise a session's matches (latest by default)")
@app_commands.describe(session_id="Session id (optional)")
async def session_summary(inter: discord.Interaction, session_id: str | None = None):
    if session_id:
        session = await db.get_session(session_id.strip())
    else:
        sessions = await db.get_sessions()
        session = sessions[0] if sessions else None
    if session is None:
        return await inter.response.send_message("No session found.", ephemeral=True)

    players = await db.list_players()
    matches = await db.matches_for_session(session.id)
    lines = [f"📅 **Session {session.date}** · {session.status}"]
    lines.extend(match_summary(m, players) for m in matches)
    await inter.response.send_message("\n".join(lines))


# --- Entrypoint ---
if __name__ == "__main__":
    if not TOKEN:
        log.error("DISCORD_TOKEN not set. Put it in environment or .env")
        raise SystemExit(1)

    # Ensure schema before login (on_ready will also ensure)
    asyncio.run(db.init_db(DATABASE_PATH))
    bot.run(TOKEN)
