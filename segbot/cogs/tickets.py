from __future__ import annotations

import logging

import discord
from discord.ext import commands, tasks

from core.bot import TicketBot
from core.errors import AuthorizationError, BotError, ValidationError, send_error_response
from core.logging import log_context
from utils.embeds import closing_embed, make_embed, panel_embed, success_embed, ticket_created_embed
from views.ticket_controls import TicketControlsView
from views.ticket_panel import TicketPanelView

LOGGER = logging.getLogger(__name__)


class TicketsCog(commands.Cog):
    def __init__(self, bot: TicketBot) -> None:
        self.bot = bot
        self.rate_limit_sweeper.change_interval(seconds=bot.config.rate_limit.window_seconds)
        self.rate_limit_sweeper.start()
        interval = bot.config.tickets.cleanup_interval_hours
        if interval > 0:
            self.stale_cleanup.change_interval(hours=interval)
            self.stale_cleanup.start()

    def cog_unload(self) -> None:
        self.rate_limit_sweeper.cancel()
        self.stale_cleanup.cancel()

    async def cog_load(self) -> None:
        self.bot.add_view(TicketPanelView(self.bot))
        self.bot.add_view(TicketControlsView(self.bot))

    def _guild_context(self, ctx: commands.Context[TicketBot]) -> tuple[discord.Guild, discord.Member]:
        if not ctx.guild or not isinstance(ctx.author, discord.Member):
            raise ValidationError("Guild context is required.")
        return ctx.guild, ctx.author

    def _ticket_context(
        self, ctx: commands.Context[TicketBot]
    ) -> tuple[discord.TextChannel, discord.Member]:
        _, member = self._guild_context(ctx)
        if not isinstance(ctx.channel, discord.TextChannel):
            raise ValidationError("Ticket commands require a text channel.")
        return ctx.channel, member

    async def _reply_error(self, ctx: commands.Context[TicketBot], error: BotError | None) -> None:
        await send_error_response(ctx, error.user_message if error else BotError.user_message)

    @commands.hybrid_group(name="ticket", with_app_command=True, description="Security ticket commands.")
    @commands.guild_only()
    async def ticket(self, ctx: commands.Context[TicketBot]) -> None:
        if ctx.invoked_subcommand is None:
            await ctx.reply(
                embed=make_embed(
                    "Ticket Commands",
                    "`/ticket create <reason>` to open\n"
                    "`/ticket close [reason]` to close\n"
                    "`/ticket add <member>` / `/ticket remove <member>` to manage access\n"
                    "`/ticket cleanup [hours]` to delete inactive tickets",
                ),
                mention_author=False,
            )

    @ticket.command(name="create", description="Open a security ticket.")
    async def ticket_create(self, ctx: commands.Context[TicketBot], *, reason: str) -> None:
        guild, member = self._guild_context(ctx)
        limit = self.bot.config.tickets.command_reason_max_length
        await ctx.defer(ephemeral=True)
        result = await self.bot.ticket_service.open_ticket(guild, member, reason, max_reason_length=limit)
        if result.ticket is None:
            await self._reply_error(ctx, result.error)
            return
        ticket = result.ticket
        await ctx.reply(
            embed=ticket_created_embed(self.bot.i18n, ticket.channel, ticket.number, ticket.reason),
            mention_author=False,
            ephemeral=True,
        )
        if result.error is not None:
            await self._reply_error(ctx, result.error)

    @ticket.command(name="close", description="Close the current security ticket.")
    async def ticket_close(self, ctx: commands.Context[TicketBot], *, reason: str = "No reason provided") -> None:
        channel, member = self._ticket_context(ctx)
        service = self.bot.ticket_service
        checked = service.check_close(channel, member)
        if not checked.ok:
            await self._reply_error(ctx, checked.error)
            return
        invalid = service.validate_reason(
            reason, self.bot.config.tickets.command_reason_max_length, required=False
        )
        if invalid is not None:
            await self._reply_error(ctx, invalid)
            return
        await ctx.send(
            embed=closing_embed(self.bot.i18n, member, reason, self.bot.config.tickets.delete_delay_seconds)
        )
        result = service.close_ticket(channel, member, reason)
        if not result.ok:
            await self._reply_error(ctx, result.error)

    @ticket.command(name="add", description="Give a member access to this ticket.")
    async def ticket_add(self, ctx: commands.Context[TicketBot], member: discord.Member) -> None:
        channel, actor = self._ticket_context(ctx)
        result = await self.bot.ticket_service.add_user(channel, actor, member)
        if not result.ok:
            await self._reply_error(ctx, result.error)
            return
        i18n = self.bot.i18n
        await ctx.reply(
            embed=success_embed(i18n.t("users.added", user=member.mention), title=i18n.t("users.added_title")),
            mention_author=False,
        )

    @ticket.command(name="remove", description="Revoke a member's access to this ticket.")
    async def ticket_remove(self, ctx: commands.Context[TicketBot], member: discord.Member) -> None:
        channel, actor = self._ticket_context(ctx)
        result = await self.bot.ticket_service.remove_user(channel, actor, member)
        if not result.ok:
            await self._reply_error(ctx, result.error)
            return
        i18n = self.bot.i18n
        await ctx.reply(
            embed=success_embed(
                i18n.t("users.removed", user=member.mention), title=i18n.t("users.removed_title")
            ),
            mention_author=False,
        )

    @ticket.command(name="cleanup", description="Delete ticket channels with no recent activity.")
    async def ticket_cleanup(self, ctx: commands.Context[TicketBot], max_age_hours: int | None = None) -> None:
        guild, member = self._guild_context(ctx)
        if not self.bot.ticket_service.is_staff(member, ctx.channel):
            await self._reply_error(ctx, AuthorizationError())
            return
        if max_age_hours is not None and max_age_hours < 1:
            await self._reply_error(ctx, ValidationError("The age must be at least one hour."))
            return
        await ctx.defer(ephemeral=True)
        deleted = await self.bot.ticket_service.cleanup_stale(guild, max_age_hours)
        i18n = self.bot.i18n
        description = i18n.t("cleanup.description", count=len(deleted))
        if deleted:
            description += "\n" + "\n".join(f"`#{name}`" for name in deleted[:25])
        await ctx.reply(
            embed=success_embed(description, title=i18n.t("cleanup.title")),
            mention_author=False,
            ephemeral=True,
        )

    @commands.hybrid_command(name="panel", description="Post the security ticket panel in this channel.")
    @commands.guild_only()
    @commands.has_permissions(manage_channels=True)
    async def panel(self, ctx: commands.Context[TicketBot]) -> None:
        panel_channel_id = self.bot.config.tickets.panel_channel_id
        if panel_channel_id is not None and ctx.channel.id != panel_channel_id:
            await self._reply_error(ctx, ValidationError(f"The panel can only be posted in <#{panel_channel_id}>."))
            return
        await ctx.channel.send(embed=panel_embed(self.bot.i18n), view=TicketPanelView(self.bot))
        LOGGER.info(
            "Panel posted in #%s by %s", ctx.channel, ctx.author, extra=log_context(ctx.guild, ctx.channel, ctx.author)
        )
        await ctx.reply(
            embed=success_embed(self.bot.i18n.t("panel.created")),
            mention_author=False,
            ephemeral=True,
        )

    @tasks.loop(seconds=60)
    async def rate_limit_sweeper(self) -> None:
        removed = self.bot.rate_limiter.sweep()
        if removed:
            LOGGER.debug("Rate limiter dropped %s idle users", removed)

    @tasks.loop(hours=24)
    async def stale_cleanup(self) -> None:
        for guild in self.bot.guilds:
            deleted = await self.bot.ticket_service.cleanup_stale(guild)
            if deleted:
                LOGGER.info("Removed %s inactive tickets", len(deleted), extra=log_context(guild))

    @stale_cleanup.before_loop
    async def before_stale_cleanup(self) -> None:
        await self.bot.wait_until_ready()


async def setup(bot: TicketBot) -> None:
    await bot.add_cog(TicketsCog(bot))
