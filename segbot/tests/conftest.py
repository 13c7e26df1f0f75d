from __future__ import annotations

from datetime import UTC, datetime, timedelta
from itertools import count
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import discord
import pytest

_ids = count(1000)


class FakeChannel:
    """Text channel double with a history() that honours limit/before."""

    def __init__(self, guild: MagicMock, name: str, *, category_id: int | None = None, topic: str | None = None):
        self.id = next(_ids)
        self.guild = guild
        self.name = name
        self.category_id = category_id
        self.topic = topic
        self.mention = f"<#{self.id}>"
        self.created_at = datetime(2024, 1, 1, 12, 0, tzinfo=UTC)
        self.messages: list[SimpleNamespace] = []
        self.history_calls: list[dict[str, object]] = []
        self.send = AsyncMock()
        self.delete = AsyncMock()
        self.set_permissions = AsyncMock()
        self.manage_channels_for: set[int] = set()

    def permissions_for(self, member: object) -> SimpleNamespace:
        return SimpleNamespace(manage_channels=getattr(member, "id", None) in self.manage_channels_for)

    async def history(self, limit: int = 100, before: discord.abc.Snowflake | None = None):
        self.history_calls.append({"limit": limit, "before": before})
        newest_first = sorted(self.messages, key=lambda message: message.id, reverse=True)
        if before is not None:
            newest_first = [message for message in newest_first if message.id < before.id]
        for message in newest_first[:limit]:
            yield message

    def add_message(
        self,
        author: object,
        content: str = "",
        *,
        created_at: datetime | None = None,
        message_id: int | None = None,
        embeds: list[discord.Embed] | None = None,
        attachments: list[object] | None = None,
    ) -> SimpleNamespace:
        index = len(self.messages)
        message = SimpleNamespace(
            id=message_id if message_id is not None else 10_000 + index,
            author=author,
            content=content,
            created_at=created_at or self.created_at + timedelta(minutes=index),
            embeds=embeds or [],
            attachments=attachments or [],
        )
        self.messages.append(message)
        return message


def _make_user(name: str, user_id: int | None = None, *, bot: bool = False, roles: list[object] | None = None) -> MagicMock:
    user = MagicMock()
    user.id = user_id if user_id is not None else next(_ids)
    user.name = name
    user.display_name = name
    user.bot = bot
    user.mention = f"<@{user.id}>"
    user.roles = roles or []
    user.__str__.return_value = name
    return user


def _make_guild(category_id: int = 500, log_channel_id: int | None = 600) -> MagicMock:
    guild = MagicMock()
    guild.id = 42
    guild.name = "Security Guild"
    guild.text_channels = []
    guild.roles = []
    guild.default_role = MagicMock(name="@everyone")
    guild.me = MagicMock(name="bot-member")
    guild.get_role = MagicMock(return_value=None)

    category = MagicMock(spec=discord.CategoryChannel)
    category.id = category_id
    log_channel = MagicMock(spec=discord.TextChannel)
    log_channel.id = log_channel_id
    log_channel.send = AsyncMock()
    guild.category = category
    guild.log_channel = log_channel

    def get_channel(channel_id: int) -> object:
        if channel_id == category_id:
            return category
        if log_channel_id is not None and channel_id == log_channel_id:
            return log_channel
        return None

    guild.get_channel = MagicMock(side_effect=get_channel)

    async def create_text_channel(name: str, **kwargs: object) -> FakeChannel:
        channel = FakeChannel(guild, name, category_id=category_id, topic=kwargs.get("topic"))  # type: ignore[arg-type]
        guild.text_channels.append(channel)
        return channel

    guild.create_text_channel = AsyncMock(side_effect=create_text_channel)
    return guild


@pytest.fixture
def make_user():
    return _make_user


@pytest.fixture
def make_guild():
    return _make_guild


@pytest.fixture
def make_channel():
    def factory(guild: MagicMock, name: str, **kwargs: object) -> FakeChannel:
        channel = FakeChannel(guild, name, **kwargs)  # type: ignore[arg-type]
        guild.text_channels.append(channel)
        return channel

    return factory


@pytest.fixture
def guild() -> MagicMock:
    return _make_guild()
