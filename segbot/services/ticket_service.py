from __future__ import annotations

import asyncio
import enum
import logging
import re
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta

import discord

from core.config import TicketConfig
from core.errors import (
    AuthorizationError,
    BotError,
    DuplicateTicketError,
    MissingCategoryError,
    TicketStateError,
    TransientIOError,
    ValidationError,
    WrongChannelError,
)
from core.logging import log_context
from services.alerts import OperatorAlerts
from services.counter_store import CounterStore
from services.scheduler import DeletionScheduler
from services.transcript_service import TranscriptService
from utils.constants import CHANNEL_NAME_MAX_LENGTH, STALE_CLEANUP_REASON, TOPIC_MAX_LENGTH
from utils.embeds import close_log_embed, welcome_embed
from utils.i18n import I18N
from utils.time import utc_now

LOGGER = logging.getLogger(__name__)

_TOPIC_RE = re.compile(r"#(?P<number>\d+) \| (?P<owner>[^|]+?) \|")


class TicketState(enum.Enum):
    NONE = "none"
    REQUESTED = "requested"
    OPEN = "open"
    CLOSING = "closing"
    DELETED = "deleted"


class Outcome(enum.Enum):
    SUCCESS = "success"
    VALIDATION_ERROR = "validation_error"
    AUTHORIZATION_ERROR = "authorization_error"
    IO_ERROR = "io_error"


@dataclass(slots=True)
class TicketInfo:
    number: int
    channel: discord.TextChannel
    owner: discord.abc.User
    reason: str


@dataclass(slots=True)
class TransitionResult:
    state: TicketState
    error: BotError | None = None
    ticket: TicketInfo | None = None
    task: asyncio.Task[None] | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def outcome(self) -> Outcome:
        if self.error is None:
            return Outcome.SUCCESS
        if isinstance(self.error, AuthorizationError):
            return Outcome.AUTHORIZATION_ERROR
        if isinstance(self.error, ValidationError):
            return Outcome.VALIDATION_ERROR
        return Outcome.IO_ERROR


def sanitize_channel_fragment(name: str) -> str:
    name = name.strip().lower()
    name = re.sub(r"[^a-z0-9_-]+", "-", name)
    name = re.sub(r"-{2,}", "-", name).strip("-")
    return name or "user"


class TicketService:
    """Drives a ticket channel through NONE → REQUESTED → OPEN → CLOSING → DELETED.

    Each edge has one method returning a :class:`TransitionResult`. Failures
    are reported through ``result.error`` rather than raised, so the UI layer
    can render them uniformly.
    """

    def __init__(
        self,
        config: TicketConfig,
        counter: CounterStore,
        transcripts: TranscriptService,
        scheduler: DeletionScheduler,
        alerts: OperatorAlerts,
        i18n: I18N,
        controls_view: Callable[[], discord.ui.View | None] = lambda: None,
    ) -> None:
        self.config = config
        self.counter = counter
        self.transcripts = transcripts
        self.scheduler = scheduler
        self.alerts = alerts
        self.i18n = i18n
        self.controls_view = controls_view
        self._states: dict[str, TicketState] = {}
        # Channels created by this process, keyed by name. Covers the gap
        # before the gateway adds a new channel to the guild cache.
        self._channels: dict[str, discord.TextChannel] = {}
        self._open_locks: dict[str, asyncio.Lock] = {}
        self._open_waiters: dict[str, int] = {}

    def validate_reason(
        self, reason: str, max_length: int | None = None, *, required: bool = True
    ) -> ValidationError | None:
        limit = max_length or self.config.modal_reason_max_length
        reason = reason.strip()
        if required and not reason:
            return ValidationError("A reason is required.")
        if len(reason) > limit:
            return ValidationError(f"The reason must be at most {limit} characters.")
        return None

    # naming / lookup

    def channel_name_for(self, user: discord.abc.User) -> str:
        prefix = self.config.channel_prefix
        fragment = sanitize_channel_fragment(user.name)
        return f"{prefix}{fragment}"[:CHANNEL_NAME_MAX_LENGTH]

    def is_ticket_channel(self, channel: object) -> bool:
        name = getattr(channel, "name", None)
        return isinstance(name, str) and name.startswith(self.config.channel_prefix)

    def find_existing(self, guild: discord.Guild, user: discord.abc.User) -> discord.TextChannel | None:
        name = self.channel_name_for(user)
        existing = discord.utils.get(guild.text_channels, name=name)
        if existing is not None:
            return existing
        tracked = self._channels.get(name)
        if tracked is not None and tracked.guild.id == guild.id:
            return tracked
        return None

    def list_ticket_channels(self, guild: discord.Guild) -> list[discord.TextChannel]:
        allowed_parents = set(self.config.security_category_ids)
        if allowed_parents:
            allowed_parents.add(self.config.category_id)
        return [
            channel
            for channel in guild.text_channels
            if self.is_ticket_channel(channel)
            and (not allowed_parents or channel.category_id in allowed_parents)
        ]

    def state_of(self, channel: discord.abc.GuildChannel) -> TicketState:
        state = self._states.get(channel.name)
        if state is not None:
            return state
        return TicketState.OPEN if self.is_ticket_channel(channel) else TicketState.NONE

    def state_of_name(self, name: str) -> TicketState:
        return self._states.get(name, TicketState.NONE)

    def forget(self, channel: discord.abc.GuildChannel) -> None:
        self._states.pop(channel.name, None)
        tracked = self._channels.get(channel.name)
        if tracked is not None and tracked.id == channel.id:
            self._channels.pop(channel.name, None)
        self.scheduler.cancel(channel.id)

    def is_staff(self, member: discord.Member, channel: discord.abc.GuildChannel) -> bool:
        staff_role_id = self.config.staff_role_id
        support_names = set(self.config.support_role_names)
        for role in member.roles:
            if staff_role_id is not None and role.id == staff_role_id:
                return True
            if role.name in support_names:
                return True
        return channel.permissions_for(member).manage_channels

    # NONE -> REQUESTED

    def request_open(self, guild: discord.Guild, user: discord.abc.User) -> TransitionResult:
        existing = self.find_existing(guild, user)
        if existing is not None:
            LOGGER.info("Ticket already exists: %s for user %s", existing.name, user)
            return TransitionResult(state=TicketState.OPEN, error=DuplicateTicketError(existing))
        name = self.channel_name_for(user)
        if self._states.get(name) is not TicketState.OPEN:
            self._states[name] = TicketState.REQUESTED
        return TransitionResult(state=TicketState.REQUESTED)

    def abandon_request(self, user: discord.abc.User) -> None:
        name = self.channel_name_for(user)
        if self._states.get(name) is TicketState.REQUESTED:
            self._states.pop(name, None)

    # REQUESTED -> OPEN

    def _build_overwrites(
        self, guild: discord.Guild, user: discord.abc.User
    ) -> dict[discord.abc.Snowflake, discord.PermissionOverwrite]:
        member_perms = {
            "view_channel": True,
            "send_messages": True,
            "read_message_history": True,
            "attach_files": True,
            "embed_links": True,
        }
        staff_perms = {**member_perms, "manage_messages": True, "manage_channels": True}

        overwrites: dict[discord.abc.Snowflake, discord.PermissionOverwrite] = {
            guild.default_role: discord.PermissionOverwrite(view_channel=False),
            user: discord.PermissionOverwrite(**member_perms),
            guild.me: discord.PermissionOverwrite(
                view_channel=True,
                send_messages=True,
                read_message_history=True,
                manage_channels=True,
                manage_messages=True,
            ),
        }
        if self.config.staff_role_id:
            staff_role = guild.get_role(self.config.staff_role_id)
            if staff_role is not None:
                overwrites[staff_role] = discord.PermissionOverwrite(**staff_perms)
            else:
                LOGGER.warning("Staff role %s not found in guild %s", self.config.staff_role_id, guild.id)
        for role_name in self.config.support_role_names:
            role = discord.utils.get(guild.roles, name=role_name)
            if role is not None:
                overwrites[role] = discord.PermissionOverwrite(**staff_perms)
        return overwrites

    def _resolve_category(self, guild: discord.Guild) -> discord.CategoryChannel:
        category = guild.get_channel(self.config.category_id)
        if not isinstance(category, discord.CategoryChannel):
            raise MissingCategoryError(
                f"Category with ID {self.config.category_id} not found or is not a category."
            )
        return category

    async def open_ticket(
        self,
        guild: discord.Guild,
        user: discord.abc.User,
        reason: str,
        *,
        max_reason_length: int | None = None,
    ) -> TransitionResult:
        name = self.channel_name_for(user)
        reason = reason.strip()
        invalid = self.validate_reason(reason, max_reason_length)
        if invalid is not None:
            return TransitionResult(state=self.state_of_name(name), error=invalid)

        lock = self._open_locks.setdefault(name, asyncio.Lock())
        self._open_waiters[name] = self._open_waiters.get(name, 0) + 1
        try:
            async with lock:
                requested = self.request_open(guild, user)
                if not requested.ok:
                    return requested
                try:
                    return await self._create_ticket_channel(guild, user, name, reason)
                finally:
                    if self._states.get(name) is TicketState.REQUESTED:
                        self._states.pop(name, None)
        finally:
            remaining = self._open_waiters[name] - 1
            if remaining:
                self._open_waiters[name] = remaining
            else:
                del self._open_waiters[name]
                self._open_locks.pop(name, None)

    async def _create_ticket_channel(
        self, guild: discord.Guild, user: discord.abc.User, name: str, reason: str
    ) -> TransitionResult:
        LOGGER.info("Creating ticket channel %s for user %s", name, user, extra=log_context(guild, user=user))
        try:
            category = self._resolve_category(guild)
        except MissingCategoryError as exc:
            LOGGER.error("%s", exc.user_message, extra=log_context(guild))
            await self.alerts.send(
                "Ticket category missing", {"guild_id": guild.id, "category_id": self.config.category_id}
            )
            return TransitionResult(state=TicketState.NONE, error=exc)

        number = self.counter.next()
        topic = f"Security Ticket #{number} | {user} | {reason}"[:TOPIC_MAX_LENGTH]
        try:
            channel = await guild.create_text_channel(
                name=name,
                category=category,
                topic=topic,
                overwrites=self._build_overwrites(guild, user),
                reason=f"Security ticket #{number} opened by {user} ({user.id})",
            )
        except discord.HTTPException as exc:
            LOGGER.exception("Error creating ticket channel %s", name, extra=log_context(guild, user=user))
            return TransitionResult(
                state=TicketState.NONE,
                error=TransientIOError(f"Could not create the ticket channel: {exc.text or exc}"),
            )

        self._states[name] = TicketState.OPEN
        self._channels[name] = channel
        ticket = TicketInfo(number=number, channel=channel, owner=user, reason=reason)
        LOGGER.info(
            "Created ticket %s (#%s) for user %s",
            channel.name,
            number,
            user,
            extra=log_context(guild, channel, user, number),
        )

        try:
            view = self.controls_view()
            kwargs = {"view": view} if view is not None else {}
            await channel.send(
                content=user.mention,
                embed=welcome_embed(self.i18n, user, number, reason),
                **kwargs,
            )
        except discord.HTTPException:
            LOGGER.exception("Error sending welcome message to %s", channel.name)
            return TransitionResult(
                state=TicketState.OPEN,
                ticket=ticket,
                error=TransientIOError("The ticket was created but the welcome message could not be posted."),
            )
        return TransitionResult(state=TicketState.OPEN, ticket=ticket)

    # OPEN -> CLOSING

    def check_close(self, channel: discord.abc.GuildChannel, member: discord.Member) -> TransitionResult:
        state = self.state_of(channel)
        if not self.is_ticket_channel(channel):
            return TransitionResult(state=state, error=WrongChannelError())
        if not self.is_staff(member, channel):
            LOGGER.info("Denied close of %s to non-staff %s", channel.name, member)
            return TransitionResult(state=state, error=AuthorizationError())
        if state is not TicketState.OPEN:
            return TransitionResult(
                state=state, error=TicketStateError("This ticket is already being closed.")
            )
        return TransitionResult(state=state)

    def close_ticket(
        self,
        channel: discord.TextChannel,
        member: discord.Member,
        reason: str,
    ) -> TransitionResult:
        """Mark the ticket CLOSING and archive it in the background.

        The caller acknowledges the close to the user; the returned task
        generates the transcript, posts the log entry and schedules deletion.
        """
        checked = self.check_close(channel, member)
        if not checked.ok:
            return checked
        reason = reason.strip() or "No reason provided"
        self._states[channel.name] = TicketState.CLOSING
        LOGGER.info(
            "Closing ticket %s by %s", channel.name, member, extra=log_context(channel.guild, channel, member)
        )
        task = asyncio.create_task(self._archive_and_delete(channel, member, reason), name=f"close-{channel.id}")
        return TransitionResult(state=TicketState.CLOSING, task=task)

    async def _archive_and_delete(
        self, channel: discord.TextChannel, closed_by: discord.Member, reason: str
    ) -> None:
        try:
            await self.archive(channel, closed_by, reason)
        except (discord.HTTPException, OSError) as exc:
            LOGGER.exception("Error generating transcript for %s", channel.name)
            await self.alerts.send(
                "Transcript failed",
                {"guild_id": channel.guild.id, "channel": channel.name, "error": str(exc)},
            )
        finally:
            if self._states.get(channel.name) is TicketState.CLOSING:
                self.scheduler.schedule(
                    channel.id,
                    self.config.delete_delay_seconds,
                    lambda: self.delete_ticket(channel, closed_by, reason),
                )
            else:
                LOGGER.info("Ticket %s was removed while closing, skipping deletion", channel.name)

    async def archive(self, channel: discord.TextChannel, closed_by: discord.Member, reason: str) -> None:
        closed_at = utc_now()
        html = await self.transcripts.generate(channel, closed_by, closed_at=closed_at)
        path = self.transcripts.save(html, channel.name)

        log_channel = (
            channel.guild.get_channel(self.config.log_channel_id) if self.config.log_channel_id else None
        )
        if not isinstance(log_channel, discord.TextChannel):
            LOGGER.error("Log channel with ID %s not found", self.config.log_channel_id)
            await self.alerts.send(
                "Ticket log channel missing",
                {"guild_id": channel.guild.id, "log_channel_id": self.config.log_channel_id, "transcript": str(path)},
            )
            return

        number, owner = None, None
        match = _TOPIC_RE.search(channel.topic or "")
        if match:
            number, owner = match.group("number"), match.group("owner").strip()
        await log_channel.send(
            embed=close_log_embed(self.i18n, channel.name, closed_by, reason, closed_at, number, owner),
            file=discord.File(path, filename=f"transcript-{channel.name}.html"),
        )

    # CLOSING -> DELETED

    async def delete_ticket(
        self, channel: discord.abc.GuildChannel, closed_by: discord.abc.User, reason: str
    ) -> TransitionResult:
        try:
            await channel.delete(reason=f"Ticket closed by {closed_by} - Reason: {reason}")
        except discord.HTTPException as exc:
            LOGGER.exception("Error deleting ticket channel %s", channel.name)
            # a later close can retry
            if self._states.get(channel.name) is TicketState.CLOSING:
                self._states[channel.name] = TicketState.OPEN
            return TransitionResult(
                state=self.state_of(channel), error=TransientIOError(f"Could not delete the channel: {exc}")
            )
        self._states.pop(channel.name, None)
        self._channels.pop(channel.name, None)
        LOGGER.info("Deleted ticket channel %s", channel.name, extra=log_context(channel.guild, channel))
        return TransitionResult(state=TicketState.DELETED)

    # participants

    def _check_manage(self, channel: discord.abc.GuildChannel, actor: discord.Member) -> TransitionResult | None:
        if not self.is_ticket_channel(channel):
            return TransitionResult(state=self.state_of(channel), error=WrongChannelError())
        if not self.is_staff(actor, channel):
            return TransitionResult(state=self.state_of(channel), error=AuthorizationError())
        return None

    async def add_user(
        self, channel: discord.TextChannel, actor: discord.Member, target: discord.abc.User
    ) -> TransitionResult:
        denied = self._check_manage(channel, actor)
        if denied is not None:
            return denied
        try:
            await channel.set_permissions(
                target,
                view_channel=True,
                send_messages=True,
                read_message_history=True,
                reason=f"Added to ticket by {actor}",
            )
        except discord.HTTPException as exc:
            LOGGER.exception("Error adding user %s to ticket %s", target, channel.name)
            return TransitionResult(state=self.state_of(channel), error=TransientIOError(str(exc)))
        LOGGER.info("%s added %s to %s", actor, target, channel.name)
        return TransitionResult(state=self.state_of(channel))

    async def remove_user(
        self, channel: discord.TextChannel, actor: discord.Member, target: discord.abc.User
    ) -> TransitionResult:
        denied = self._check_manage(channel, actor)
        if denied is not None:
            return denied
        try:
            await channel.set_permissions(target, overwrite=None, reason=f"Removed from ticket by {actor}")
        except discord.HTTPException as exc:
            LOGGER.exception("Error removing user %s from ticket %s", target, channel.name)
            return TransitionResult(state=self.state_of(channel), error=TransientIOError(str(exc)))
        LOGGER.info("%s removed %s from %s", actor, target, channel.name)
        return TransitionResult(state=self.state_of(channel))

    # maintenance

    async def cleanup_stale(self, guild: discord.Guild, max_age_hours: int | None = None) -> list[str]:
        hours = self.config.stale_max_age_hours if max_age_hours is None else max_age_hours
        cutoff: datetime = utc_now() - timedelta(hours=hours)
        deleted: list[str] = []
        for channel in self.list_ticket_channels(guild):
            try:
                last_message = None
                async for message in channel.history(limit=1):
                    last_message = message
                if last_message is None or last_message.created_at >= cutoff:
                    continue
                LOGGER.info("Cleaning up old ticket: %s", channel.name)
                await channel.delete(reason=STALE_CLEANUP_REASON)
                self.forget(channel)
                deleted.append(channel.name)
            except discord.HTTPException:
                LOGGER.exception("Error cleaning up ticket %s", channel.name)
        return deleted
