from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import discord

from core.errors import BotError
from utils.constants import CLOSE_TICKET_BUTTON_ID, CLOSE_TICKET_MODAL_ID
from utils.embeds import closing_embed, error_embed
from views.common import admit_component, send_result_error

if TYPE_CHECKING:
    from core.bot import TicketBot

LOGGER = logging.getLogger(__name__)


class CloseReasonModal(discord.ui.Modal):
    def __init__(self, bot: TicketBot) -> None:
        i18n = bot.i18n
        super().__init__(title=i18n.t("close.modal_title"), timeout=300, custom_id=CLOSE_TICKET_MODAL_ID)
        self.bot = bot
        self.reason = discord.ui.TextInput(
            label=i18n.t("close.modal_label"),
            placeholder=i18n.t("close.modal_placeholder"),
            style=discord.TextStyle.paragraph,
            required=True,
            max_length=bot.config.tickets.modal_reason_max_length,
        )
        self.add_item(self.reason)

    async def interaction_check(self, interaction: discord.Interaction) -> bool:
        return await admit_component(interaction)

    async def on_submit(self, interaction: discord.Interaction) -> None:
        channel = interaction.channel
        if not isinstance(channel, discord.TextChannel) or not isinstance(interaction.user, discord.Member):
            await interaction.response.send_message(embed=error_embed("Guild context is required."), ephemeral=True)
            return

        service = self.bot.ticket_service
        checked = service.check_close(channel, interaction.user)
        if not checked.ok:
            await send_result_error(interaction, checked.error)  # type: ignore[arg-type]
            return

        reason = str(self.reason.value).strip()
        await interaction.response.send_message(
            embed=closing_embed(
                self.bot.i18n, interaction.user, reason, self.bot.config.tickets.delete_delay_seconds
            )
        )
        result = service.close_ticket(channel, interaction.user, reason)
        if not result.ok:
            await send_result_error(interaction, result.error)  # type: ignore[arg-type]

    async def on_error(self, interaction: discord.Interaction, error: Exception) -> None:
        LOGGER.exception("Error handling ticket close", exc_info=error)
        await send_result_error(interaction, BotError("There was an error closing the ticket."))


class CloseTicketButton(discord.ui.Button["TicketControlsView"]):
    def __init__(self, bot: TicketBot) -> None:
        super().__init__(
            label=bot.i18n.t("close.button"),
            emoji="🔒",
            style=discord.ButtonStyle.danger,
            custom_id=CLOSE_TICKET_BUTTON_ID,
        )
        self.bot = bot

    async def callback(self, interaction: discord.Interaction) -> None:
        channel = interaction.channel
        if not isinstance(channel, discord.TextChannel) or not isinstance(interaction.user, discord.Member):
            await interaction.response.send_message(embed=error_embed("Guild context is required."), ephemeral=True)
            return
        checked = self.bot.ticket_service.check_close(channel, interaction.user)
        if not checked.ok:
            await send_result_error(interaction, checked.error)  # type: ignore[arg-type]
            return
        await interaction.response.send_modal(CloseReasonModal(self.bot))


class TicketControlsView(discord.ui.View):
    def __init__(self, bot: TicketBot) -> None:
        super().__init__(timeout=None)
        self.bot = bot
        self.add_item(CloseTicketButton(bot))

    async def interaction_check(self, interaction: discord.Interaction) -> bool:
        return await admit_component(interaction)

    async def on_error(
        self, interaction: discord.Interaction, error: Exception, item: discord.ui.Item[discord.ui.View]
    ) -> None:
        LOGGER.exception("Ticket control interaction failed", exc_info=error)
        await send_result_error(interaction, BotError("Action failed due to an unexpected error."))
