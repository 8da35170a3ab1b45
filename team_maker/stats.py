"""
Leaderboard and summary helpers over player and match records.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from .models import Match, Player

MIN_MATCHES_FOR_WIN_RATE = 3


def win_rate(matches_won: int, matches_played: int) -> int:
    if matches_played == 0:
        return 0
    return round(matches_won / matches_played * 100)


def games_win_rate(games_won: int, total_games: int) -> int:
    if total_games == 0:
        return 0
    return round(games_won / total_games * 100)


def rank_players(players: Sequence[Player]) -> list[Player]:
    """Points, then win rate, then games won (all descending), then name."""
    return sorted(
        players,
        key=lambda p: (
            -p.stats.points,
            -win_rate(p.stats.matches_won, p.stats.matches_played),
            -p.stats.games_won,
            p.name.lower(),
        ),
    )


@dataclass
class TopPerformers:
    top_scorer: Player | None = None
    best_win_rate: Player | None = None
    longest_streak: Player | None = None


def top_performers(players: Sequence[Player]) -> TopPerformers:
    active = [p for p in players if p.stats.matches_played > 0]
    if not active:
        return TopPerformers()

    qualified = [p for p in active if p.stats.matches_played >= MIN_MATCHES_FOR_WIN_RATE]
    # max() keeps the first of equal entries
    return TopPerformers(
        top_scorer=max(active, key=lambda p: p.stats.points),
        best_win_rate=(
            max(qualified, key=lambda p: win_rate(p.stats.matches_won, p.stats.matches_played))
            if qualified else None
        ),
        longest_streak=max(active, key=lambda p: abs(p.stats.current_streak)),
    )


def team_chemistry(player1: Player, player2: Player, matches: Sequence[Match]) -> int:
    """Percentage of completed matches this pair won as teammates."""
    pair = {player1.id, player2.id}
    partnered = []
    for m in matches:
        if m.status != "completed":
            continue
        if pair == set(m.team_a.ids):
            partnered.append(m.winner == "team_a")
        elif pair == set(m.team_b.ids):
            partnered.append(m.winner == "team_b")
    if not partnered:
        return 0
    return round(sum(partnered) / len(partnered) * 100)


def partners(player: Player, players: Sequence[Player], matches: Sequence[Match]) -> list[tuple[Player, int]]:
    """Everyone `player` has completed a match alongside, with that pair's chemistry, best first."""
    by_id = {p.id: p for p in players}
    seen: list[str] = []
    for m in matches:
        if m.status != "completed":
            continue
        for side in (m.team_a, m.team_b):
            if player.id not in side.ids:
                continue
            other = side.player2_id if side.player1_id == player.id else side.player1_id
            if other in by_id and other not in seen:
                seen.append(other)
    ranked = [(by_id[pid], team_chemistry(player, by_id[pid], matches)) for pid in seen]
    return sorted(ranked, key=lambda pc: (-pc[1], pc[0].name.lower()))


def format_streak(streak: int) -> str:
    if streak == 0:
        return "No streak"
    if streak > 0:
        return f"{streak}W"
    return f"{abs(streak)}L"


def match_summary(match: Match, players: Sequence[Player]) -> str:
    names = {p.id: p.name for p in players}

    def team(ids: tuple[str, str]) -> str:
        return " + ".join(names.get(pid, "Unknown") for pid in ids)

    a, b = team(match.team_a.ids), team(match.team_b.ids)
    a_games, b_games = match.team_a.games_won, match.team_b.games_won

    if match.status == "completed":
        hi, lo = max(a_games, b_games), min(a_games, b_games)
        if match.winner == "team_a":
            return f"Court {match.court}: {a} (WIN {hi}) vs {b} (LOSE {lo})"
        return f"Court {match.court}: {a} (LOSE {lo}) vs {b} (WIN {hi})"
    return f"Court {match.court}: {a} vs {b} ({a_games}-{b_games})"
