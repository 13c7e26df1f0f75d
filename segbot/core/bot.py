from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any

import discord
from discord.ext import commands

from core.config import AppConfig
from core.errors import handle_app_command_error, handle_prefix_command_error
from services.alerts import OperatorAlerts
from services.counter_store import CounterStore
from services.scheduler import DeletionScheduler
from services.ticket_service import TicketService
from services.transcript_service import TranscriptService
from utils.i18n import I18N
from utils.rate_limit import SlidingWindowRateLimiter
from views.ticket_controls import TicketControlsView

LOGGER = logging.getLogger(__name__)


class TicketBot(commands.Bot):
    def __init__(self, config: AppConfig) -> None:
        intents = discord.Intents.default()
        intents.guilds = True
        intents.members = True
        intents.messages = True
        intents.message_content = True

        super().__init__(
            command_prefix=config.discord.prefix,
            intents=intents,
            application_id=config.discord.application_id,
            allowed_mentions=discord.AllowedMentions(
                everyone=False,
                roles=True,
                users=True,
                replied_user=False,
            ),
            help_command=None,
        )
        self.config = config
        self.root_dir = Path(__file__).resolve().parent.parent
        self.i18n = I18N(
            self.root_dir / "config" / "locales",
            config.i18n.default_locale,
            config.i18n.supported_locales,
        )

        # Process-wide state shared by every guild the bot serves.
        self.rate_limiter = SlidingWindowRateLimiter(
            limit=config.rate_limit.limit,
            window_seconds=config.rate_limit.window_seconds,
        )
        self.counter_store = CounterStore(config.tickets.counter_path)
        self.scheduler = DeletionScheduler()
        self.alerts = OperatorAlerts(config.webhook_log)
        self.transcript_service = TranscriptService(config.transcripts, self.i18n)
        self.ticket_service = TicketService(
            config.tickets,
            counter=self.counter_store,
            transcripts=self.transcript_service,
            scheduler=self.scheduler,
            alerts=self.alerts,
            i18n=self.i18n,
            controls_view=lambda: TicketControlsView(self),
        )

    def _handle_loop_exception(self, loop: asyncio.AbstractEventLoop, context: dict[str, Any]) -> None:
        error = context.get("exception")
        LOGGER.error("Unhandled error in event loop: %s", context.get("message"), exc_info=error)

    async def setup_hook(self) -> None:
        asyncio.get_running_loop().set_exception_handler(self._handle_loop_exception)
        self.i18n.load_all()
        for ext in self.config.enabled_extensions:
            try:
                await self.load_extension(ext)
            except commands.ExtensionAlreadyLoaded:
                LOGGER.warning("Extension already loaded: %s", ext)
                continue
            LOGGER.info("Loaded extension: %s", ext)

        if self.config.discord.sync_commands_on_start:
            guild_id = self.config.discord.guild_id
            if guild_id is not None:
                guild = discord.Object(id=guild_id)
                self.tree.copy_global_to(guild=guild)
                synced = await self.tree.sync(guild=guild)
                LOGGER.info("Synced %s application commands to guild %s", len(synced), guild_id)
            else:
                synced = await self.tree.sync()
                LOGGER.info("Synced %s application commands", len(synced))

        self.tree.on_error = handle_app_command_error  # type: ignore[assignment]

    async def on_ready(self) -> None:
        LOGGER.info(
            "Bot ready as %s (%s) in %s guilds",
            self.user,
            self.user.id if self.user else "n/a",
            len(self.guilds),
        )
        activity_type = self.config.discord.activity_type.lower()
        if activity_type == "playing":
            activity = discord.Game(name=self.config.discord.status_text)
        elif activity_type == "listening":
            activity = discord.Activity(
                type=discord.ActivityType.listening, name=self.config.discord.status_text
            )
        else:
            activity = discord.Activity(
                type=discord.ActivityType.watching, name=self.config.discord.status_text
            )
        await self.change_presence(status=discord.Status.online, activity=activity)

    async def on_command_error(self, ctx: commands.Context[commands.Bot], error: commands.CommandError) -> None:
        if ctx.command and ctx.command.has_error_handler():
            return
        await handle_prefix_command_error(ctx, error)

    async def close(self) -> None:
        cancelled = self.scheduler.cancel_all()
        if cancelled:
            LOGGER.warning("Cancelled %s pending ticket deletions on shutdown", cancelled)
        await super().close()
