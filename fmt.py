from typing import Mapping, Optional, Sequence

from team_maker.balance import check_balance
from team_maker.models import Match, MatchPreview, Player, Team
from team_maker.quality import QualityReport
from team_maker.stats import TopPerformers, format_streak, games_win_rate, win_rate


def bold(t: str) -> str:
	return f"**{t}**"


def code(t: str) -> str:
	return f"`{t}`"


def block(t: str, lang: str | None = None) -> str:
	return f"```{lang or ''}\n{t}\n```"


def team_line(team: Team) -> str:
	return f"{team.player1.name} + {team.player2.name} ({team.combined_skill})"


def preview_lines(matches: Sequence[MatchPreview]) -> list[str]:
	"""One line per court, plus any balance warning beneath it."""
	lines: list[str] = []
	for m in matches:
		lines.append(f"🏟️ Court {bold(m.court)}: {team_line(m.team_a)} **vs** {team_line(m.team_b)}")
		warning = check_balance(m.team_a, m.team_b).warning
		if warning:
			lines.append(f"   ⚠️ {warning}")
	return lines


def quality_lines(report: QualityReport) -> list[str]:
	d = report.details
	return [
		f"📊 Quality: {bold(str(report.overall_score))} ({report.rating})"
		f" · balance {report.balance_score} · freshness {report.freshness_score}",
		f"   {d.perfectly_balanced} perfectly balanced · {d.good_matches} good · {d.unbalanced} unbalanced"
		f" · avg skill diff {d.average_skill_difference}",
	]


def mono_table(rows: Sequence[Sequence[object]], headers: Optional[Sequence[str]] = None) -> str:
	"""Monospaced table in a code block; short rows are padded with blanks."""
	grid = [[str(c) for c in r] for r in ([headers] if headers else []) + list(rows)]
	width = max((len(r) for r in grid), default=0)
	grid = [r + [""] * (width - len(r)) for r in grid]
	cols = [max(len(r[i]) for r in grid) for i in range(width)]

	def line(r: list[str]) -> str:
		return " | ".join(cell.ljust(w) for cell, w in zip(r, cols)).rstrip()

	out = [line(r) for r in grid]
	if headers:
		out.insert(1, "-+-".join("-" * w for w in cols))
	return block("\n".join(out), "md")


def scoreboard(match: Match, names: Mapping[str, str], games_to_win: int) -> str:
	def team(ids: Sequence[str]) -> str:
		return " + ".join(names.get(pid, "Unknown") for pid in ids)

	a, b = match.team_a.games_won, match.team_b.games_won
	lines = [
		f"🎾 Court {match.court} · first to {games_to_win} games",
		f"🟥 {team(match.team_a.ids)}  **{a} - {b}**  {team(match.team_b.ids)} 🟦",
	]
	if match.status == "completed":
		lines.append(f"🏁 {bold(team(match.side(match.winner).ids))} win! Ratings updated.")
	return "\n".join(lines)


def performer_lines(top: TopPerformers) -> list[str]:
	lines: list[str] = []
	if top.top_scorer:
		lines.append(f"⭐ Top scorer: {bold(top.top_scorer.name)} ({top.top_scorer.stats.points} pts)")
	if top.best_win_rate:
		s = top.best_win_rate.stats
		lines.append(f"🎯 Best win rate: {bold(top.best_win_rate.name)} ({win_rate(s.matches_won, s.matches_played)}%)")
	if top.longest_streak and top.longest_streak.stats.current_streak:
		s = top.longest_streak.stats
		lines.append(f"🔥 Longest streak: {bold(top.longest_streak.name)} ({format_streak(s.current_streak)})")
	return lines


def player_stats(player: Player, partners: Sequence[tuple[Player, int]] = ()) -> str:
	"""Stat card for /stats; `partners` is best first, as returned by team_maker.stats.partners."""
	s = player.stats
	lines = [
		f"📊 **Stats for {player.name}**",
		f"Skill: **{player.skill}** · Points: **{s.points}**",
		f"Matches: {s.matches_played} ({s.matches_won}W-{s.matches_lost}L, {win_rate(s.matches_won, s.matches_played)}%)",
		f"Games: {s.games_won}-{s.games_lost} ({games_win_rate(s.games_won, s.games_won + s.games_lost)}%)"
		f" · Streak: {format_streak(s.current_streak)}",
		f"Last played: {s.last_played or 'never'}",
	]
	if partners:
		best, chemistry = partners[0]
		lines.append(f"🤝 Best partner: {best.name} ({chemistry}% won together, {len(partners)} partners)")
	return "\n".join(lines)
