from __future__ import annotations

import logging

import discord
from discord.ext import commands

from core.bot import TicketBot
from core.logging import log_context

LOGGER = logging.getLogger(__name__)


class EventsCog(commands.Cog):
    def __init__(self, bot: TicketBot) -> None:
        self.bot = bot

    @commands.Cog.listener()
    async def on_guild_join(self, guild: discord.Guild) -> None:
        LOGGER.info("Joined guild %s (%s)", guild.name, guild.id, extra=log_context(guild))

    @commands.Cog.listener()
    async def on_guild_channel_delete(self, channel: discord.abc.GuildChannel) -> None:
        service = self.bot.ticket_service
        if not service.is_ticket_channel(channel):
            return
        # also cancels any pending scheduled deletion
        service.forget(channel)
        LOGGER.info("Ticket channel %s removed", channel.name, extra=log_context(channel.guild, channel))


async def setup(bot: TicketBot) -> None:
    await bot.add_cog(EventsCog(bot))
