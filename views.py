import discord

# Callbacks are async callables supplied by app.py:
#   PreviewView: on_confirm(interaction), on_reshuffle(interaction), problems() -> list[str]
#   LiveMatchView: on_score(interaction, side), on_undo(interaction)


class PreviewView(discord.ui.View):
    """Confirm or reshuffle a generated match preview. Only the requester may press."""

    def __init__(self, owner_id: int, on_confirm, on_reshuffle, problems=list, timeout: float = 300):
        super().__init__(timeout=timeout)
        self.owner_id = owner_id
        self.on_confirm, self.on_reshuffle = on_confirm, on_reshuffle
        self.problems = problems

    async def interaction_check(self, interaction: discord.Interaction) -> bool:
        if interaction.user.id != self.owner_id:
            await interaction.response.send_message("Only the organiser can use these buttons.", ephemeral=True)
            return False
        return True

    def disable(self):
        for item in self.children:
            item.disabled = True
        self.stop()

    @discord.ui.button(label="Confirm", style=discord.ButtonStyle.success, emoji="✅")
    async def confirm(self, interaction: discord.Interaction, _button: discord.ui.Button):
        # An invalid preview keeps the buttons live so it can still be reshuffled
        problems = self.problems()
        if problems:
            await interaction.response.send_message("❌ " + "; ".join(problems), ephemeral=True)
            return
        self.disable()
        await self.on_confirm(interaction)

    @discord.ui.button(label="Reshuffle", style=discord.ButtonStyle.secondary, emoji="🔀")
    async def reshuffle(self, interaction: discord.Interaction, _button: discord.ui.Button):
        await self.on_reshuffle(interaction)


class LiveMatchView(discord.ui.View):
    """Scoreboard controls: one game to either side, or undo the last one."""

    def __init__(self, on_score, on_undo):
        super().__init__(timeout=None)
        self.on_score, self.on_undo = on_score, on_undo

    def set_finished(self, finished: bool):
        # Scoring is locked once a side reaches the target; undo stays available.
        self.team_a.disabled = finished
        self.team_b.disabled = finished

    @discord.ui.button(label="Team A +1", style=discord.ButtonStyle.danger, emoji="🟥")
    async def team_a(self, interaction: discord.Interaction, _button: discord.ui.Button):
        await self.on_score(interaction, "team_a")

    @discord.ui.button(label="Team B +1", style=discord.ButtonStyle.primary, emoji="🟦")
    async def team_b(self, interaction: discord.Interaction, _button: discord.ui.Button):
        await self.on_score(interaction, "team_b")

    @discord.ui.button(label="Undo", style=discord.ButtonStyle.secondary, emoji="↩️")
    async def undo(self, interaction: discord.Interaction, _button: discord.ui.Button):
        await self.on_undo(interaction)
