from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import discord

from core.errors import BotError
from utils.constants import OPEN_TICKET_BUTTON_ID, OPEN_TICKET_MODAL_ID
from utils.embeds import error_embed, ticket_created_embed
from views.common import admit_component, send_result_error

if TYPE_CHECKING:
    from core.bot import TicketBot

LOGGER = logging.getLogger(__name__)


class TicketReasonModal(discord.ui.Modal):
    def __init__(self, bot: TicketBot, user: discord.abc.User) -> None:
        i18n = bot.i18n
        super().__init__(title=i18n.t("open.modal_title"), timeout=600, custom_id=OPEN_TICKET_MODAL_ID)
        self.bot = bot
        self.user = user
        self.reason = discord.ui.TextInput(
            label=i18n.t("open.modal_label"),
            placeholder=i18n.t("open.modal_placeholder"),
            style=discord.TextStyle.paragraph,
            required=True,
            max_length=bot.config.tickets.modal_reason_max_length,
        )
        self.add_item(self.reason)

    async def interaction_check(self, interaction: discord.Interaction) -> bool:
        return await admit_component(interaction)

    async def on_submit(self, interaction: discord.Interaction) -> None:
        if not interaction.guild:
            await interaction.response.send_message(embed=error_embed("Guild context is required."), ephemeral=True)
            return

        await interaction.response.defer(ephemeral=True, thinking=True)
        result = await self.bot.ticket_service.open_ticket(
            guild=interaction.guild,
            user=interaction.user,
            reason=str(self.reason.value),
            max_reason_length=self.bot.config.tickets.modal_reason_max_length,
        )
        if result.ticket is None:
            await send_result_error(interaction, result.error)  # type: ignore[arg-type]
            return

        ticket = result.ticket
        await interaction.followup.send(
            embed=ticket_created_embed(self.bot.i18n, ticket.channel, ticket.number, ticket.reason),
            ephemeral=True,
        )
        if result.error is not None:
            await send_result_error(interaction, result.error)

    async def on_timeout(self) -> None:
        self.bot.ticket_service.abandon_request(self.user)

    async def on_error(self, interaction: discord.Interaction, error: Exception) -> None:
        LOGGER.exception("Error creating ticket from modal", exc_info=error)
        message = error.user_message if isinstance(error, BotError) else (
            "There was an error creating your ticket. Try again or contact an administrator."
        )
        await send_result_error(interaction, BotError(message))


class OpenTicketButton(discord.ui.Button["TicketPanelView"]):
    def __init__(self, bot: TicketBot) -> None:
        super().__init__(
            label=bot.i18n.t("panel.button"),
            emoji="🛡️",
            style=discord.ButtonStyle.danger,
            custom_id=OPEN_TICKET_BUTTON_ID,
        )
        self.bot = bot

    async def callback(self, interaction: discord.Interaction) -> None:
        if not interaction.guild:
            await interaction.response.send_message(embed=error_embed("Guild context is required."), ephemeral=True)
            return
        result = self.bot.ticket_service.request_open(interaction.guild, interaction.user)
        if not result.ok:
            await send_result_error(interaction, result.error)  # type: ignore[arg-type]
            return
        await interaction.response.send_modal(TicketReasonModal(self.bot, interaction.user))


class TicketPanelView(discord.ui.View):
    def __init__(self, bot: TicketBot) -> None:
        super().__init__(timeout=None)
        self.bot = bot
        self.add_item(OpenTicketButton(bot))

    async def interaction_check(self, interaction: discord.Interaction) -> bool:
        return await admit_component(interaction)

    async def on_error(
        self, interaction: discord.Interaction, error: Exception, item: discord.ui.Item[discord.ui.View]
    ) -> None:
        LOGGER.exception("Panel interaction failed", exc_info=error)
        await send_result_error(interaction, BotError("There was an error opening the ticket form."))
