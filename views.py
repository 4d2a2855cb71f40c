import discord


class EndMatchView(discord.ui.View):
    """Two buttons under a court card: which team lost the match."""

    def __init__(self, court_index: int, on_lost, timeout: float = 600):
        super().__init__(timeout=timeout)
        self.court_index = court_index
        self.on_lost = on_lost  # async (interaction, court_index, team)

    async def _finish(self, interaction: discord.Interaction, team: str):
        for item in self.children:
            item.disabled = True
        self.stop()
        await self.on_lost(interaction, self.court_index, team)

    @discord.ui.button(label="Team A lost", style=discord.ButtonStyle.danger)
    async def team_a_lost(self, interaction: discord.Interaction, button: discord.ui.Button):
        await self._finish(interaction, "A")

    @discord.ui.button(label="Team B lost", style=discord.ButtonStyle.danger)
    async def team_b_lost(self, interaction: discord.Interaction, button: discord.ui.Button):
        await self._finish(interaction, "B")


class ConfirmView(discord.ui.View):
    """Confirm / Cancel pair for destructive actions (save session, clear history)."""

    def __init__(self, on_confirm, confirm_label: str = "Confirm", timeout: float = 120):
        super().__init__(timeout=timeout)
        self.on_confirm = on_confirm  # async (interaction)
        self.confirm.label = confirm_label

    @discord.ui.button(label="Confirm", style=discord.ButtonStyle.success)
    async def confirm(self, interaction: discord.Interaction, button: discord.ui.Button):
        self.stop()
        await self.on_confirm(interaction)

    @discord.ui.button(label="Cancel", style=discord.ButtonStyle.secondary)
    async def cancel(self, interaction: discord.Interaction, button: discord.ui.Button):
        self.stop()
        await interaction.response.edit_message(content="Cancelled.", view=None)


class DrinkSelect(discord.ui.Select):
    """Pick a drink for a player; each pick adds one."""

    def __init__(self, player_id: str, drinks: dict[str, dict], on_pick):
        self.player_id = player_id
        self.on_pick = on_pick  # async (interaction, player_id, drink_id)
        opts = [
            discord.SelectOption(label=f"{d['name']} ({d['price']:,}₫)".replace(",", "."), value=drink_id)
            for drink_id, d in drinks.items()
        ]
        super().__init__(placeholder="Add a drink", min_values=1, max_values=1, options=opts)

    async def callback(self, interaction: discord.Interaction):
        await self.on_pick(interaction, self.player_id, self.values[0])


class DrinkView(discord.ui.View):
    def __init__(self, player_id: str, drinks: dict[str, dict], on_pick, timeout: float = 120):
        super().__init__(timeout=timeout)
        self.add_item(DrinkSelect(player_id, drinks, on_pick))
