from __future__ import annotations

import logging

import discord

from core.errors import BotError, DuplicateTicketError
from utils.embeds import error_embed

LOGGER = logging.getLogger(__name__)


async def admit_component(interaction: discord.Interaction) -> bool:
    """Rate-limit gate for buttons and modal submits.

    Replies with an ephemeral notice and returns False when the user is over
    the limit.
    """
    limiter = getattr(interaction.client, "rate_limiter", None)
    if limiter is None or limiter.admit(interaction.user.id):
        return True
    custom_id = interaction.data.get("custom_id") if interaction.data else None
    LOGGER.info("Rate limited user %s on %s", interaction.user.id, custom_id)
    i18n = getattr(interaction.client, "i18n", None)
    message = i18n.t("ratelimit.message", locale=str(interaction.locale)) if i18n else "You're doing that too fast."
    await interaction.response.send_message(embed=error_embed(message), ephemeral=True)
    return False


async def send_result_error(interaction: discord.Interaction, error: BotError) -> None:
    title = "❌ Error"
    if isinstance(error, DuplicateTicketError):
        title = interaction.client.i18n.t(  # type: ignore[attr-defined]
            "open.duplicate_title", locale=str(interaction.locale)
        )
    embed = error_embed(error.user_message, title=title)
    if interaction.response.is_done():
        await interaction.followup.send(embed=embed, ephemeral=True)
    else:
        await interaction.response.send_message(embed=embed, ephemeral=True)
