from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

import discord

from core.config import TranscriptConfig
from utils.constants import DEFAULT_EMBED_BORDER
from utils.i18n import I18N
from utils.time import format_local, resolve_timezone, unix_millis, utc_now

LOGGER = logging.getLogger(__name__)

_ESCAPES = str.maketrans(
    {
        "&": "&amp;",
        "<": "&lt;",
        ">": "&gt;",
        '"': "&quot;",
        "'": "&#039;",
    }
)


def escape_html(text: str) -> str:
    return text.translate(_ESCAPES)


@dataclass(slots=True)
class TranscriptEmbed:
    title: str | None = None
    description: str | None = None
    fields: list[tuple[str, str]] = field(default_factory=list)
    color: int | None = None

    @classmethod
    def from_discord(cls, embed: discord.Embed) -> TranscriptEmbed:
        return cls(
            title=embed.title,
            description=embed.description,
            fields=[(str(f.name), str(f.value)) for f in embed.fields],
            color=embed.color.value if embed.color is not None else None,
        )


@dataclass(slots=True)
class TranscriptAttachment:
    filename: str
    url: str
    content_type: str | None = None

    @property
    def is_image(self) -> bool:
        return bool(self.content_type) and self.content_type.startswith("image/")


@dataclass(slots=True)
class TranscriptMessage:
    author_name: str
    is_bot: bool
    created_at: datetime
    content: str = ""
    embeds: list[TranscriptEmbed] = field(default_factory=list)
    attachments: list[TranscriptAttachment] = field(default_factory=list)

    @classmethod
    def from_discord(cls, message: discord.Message) -> TranscriptMessage:
        author = message.author
        return cls(
            author_name=getattr(author, "display_name", None) or author.name,
            is_bot=bool(author.bot),
            created_at=message.created_at,
            content=message.content or "",
            embeds=[TranscriptEmbed.from_discord(embed) for embed in message.embeds],
            attachments=[
                TranscriptAttachment(filename=a.filename, url=a.url, content_type=a.content_type)
                for a in message.attachments
            ],
        )


TRANSCRIPT_CSS = """
body { font-family: 'Segoe UI', Tahoma, Geneva, Verdana, sans-serif; background-color: #36393f; color: #dcddde; margin: 0; padding: 20px; line-height: 1.6; }
.container { max-width: 800px; margin: 0 auto; background: #2f3136; border-radius: 8px; overflow: hidden; box-shadow: 0 4px 6px rgba(0, 0, 0, 0.3); }
.header { background: linear-gradient(90deg, #5865f2, #3ba55c); padding: 24px; text-align: center; }
.header h1 { margin: 0; color: white; font-size: 24px; font-weight: bold; }
.header .info { margin-top: 12px; color: rgba(255, 255, 255, 0.8); font-size: 14px; }
.content { padding: 24px; }
.ticket-info { background: #40444b; padding: 16px; border-radius: 8px; margin-bottom: 24px; border-left: 4px solid #5865f2; }
.ticket-info h3 { margin: 0 0 12px 0; color: #ffffff; }
.info-grid { display: grid; grid-template-columns: repeat(auto-fit, minmax(200px, 1fr)); gap: 12px; }
.info-item { background: #36393f; padding: 12px; border-radius: 4px; }
.info-label { font-size: 12px; color: #72767d; text-transform: uppercase; font-weight: bold; margin-bottom: 4px; }
.info-value { color: #ffffff; font-weight: 500; }
.messages { background: #40444b; border-radius: 8px; padding: 16px; }
.messages h3 { margin: 0 0 16px 0; color: #ffffff; border-bottom: 2px solid #5865f2; padding-bottom: 8px; }
.message { border-bottom: 1px solid #2f3136; padding: 12px 0; }
.message:last-child { border-bottom: none; }
.message-header { display: flex; align-items: center; margin-bottom: 4px; }
.author-name { font-weight: bold; margin-right: 8px; color: #ffffff; }
.bot-message .author-name { color: #5865f2; }
.bot-tag { background: #5865f2; color: white; font-size: 10px; padding: 2px 4px; border-radius: 3px; margin-right: 8px; }
.timestamp { color: #72767d; font-size: 12px; }
.message-content { color: #dcddde; white-space: pre-wrap; word-wrap: break-word; margin-top: 4px; }
.embed { background: #2f3136; padding: 12px; margin: 8px 0; border-radius: 4px; }
.embed-title { font-weight: bold; color: #ffffff; margin-bottom: 8px; }
.embed-description { color: #dcddde; }
.embed-field { margin: 8px 0; }
.embed-field-name { font-weight: bold; color: #ffffff; font-size: 14px; }
.embed-field-value { color: #dcddde; }
.attachment { margin: 8px 0; }
.attachment img { max-width: 400px; border-radius: 4px; }
.attachment a { display: inline-block; background: #2f3136; padding: 8px; border-radius: 4px; color: #00b0f4; text-decoration: none; }
.empty { color: #72767d; text-align: center; padding: 20px; }
.footer { background: #2f3136; padding: 16px 24px; text-align: center; border-top: 1px solid #40444b; color: #72767d; font-size: 12px; }
@media (max-width: 600px) { body { padding: 10px; } .header { padding: 16px; } .content { padding: 16px; } }
""".strip()


class TranscriptService:
    def __init__(self, config: TranscriptConfig, i18n: I18N) -> None:
        self.config = config
        self.i18n = i18n
        self.base_dir = Path(config.storage_directory)
        self.tz = resolve_timezone(config.timezone)

    async def collect_messages(self, channel: discord.TextChannel) -> list[discord.Message]:
        """Page backwards through the channel history, oldest message last."""
        messages: list[discord.Message] = []
        before: discord.Object | None = None
        for batch_index in range(1, self.config.max_batches + 1):
            batch = [
                message
                async for message in channel.history(limit=self.config.batch_size, before=before)
            ]
            if not batch:
                break
            messages.extend(batch)
            before = discord.Object(id=min(message.id for message in batch))
            if self.config.pause_every and batch_index % self.config.pause_every == 0:
                await asyncio.sleep(self.config.pause_seconds)
        else:
            LOGGER.warning(
                "Transcript for #%s hit the %s batch cap; older messages were skipped",
                channel.name,
                self.config.max_batches,
            )

        messages.sort(key=lambda message: message.created_at)
        return messages

    async def generate(
        self,
        channel: discord.TextChannel,
        closed_by: discord.abc.User,
        closed_at: datetime | None = None,
    ) -> str:
        messages = await self.collect_messages(channel)
        LOGGER.info("Collected %s messages for transcript of #%s", len(messages), channel.name)
        return self.render(
            guild_name=channel.guild.name,
            channel_name=channel.name,
            created_at=channel.created_at,
            closed_at=closed_at or utc_now(),
            closed_by=getattr(closed_by, "display_name", None) or closed_by.name,
            messages=[TranscriptMessage.from_discord(message) for message in messages],
        )

    def save(self, html: str, channel_name: str) -> Path:
        self.base_dir.mkdir(parents=True, exist_ok=True)
        path = self.base_dir / f"transcript-{channel_name}-{unix_millis()}.html"
        path.write_text(html, encoding="utf-8")
        LOGGER.info("Saved transcript %s", path)
        return path

    def _format_ts(self, dt: datetime) -> str:
        return format_local(dt, self.tz, self.config.timestamp_format)

    @staticmethod
    def _render_embed(embed: TranscriptEmbed) -> str:
        border = f"#{embed.color:06x}" if embed.color is not None else DEFAULT_EMBED_BORDER
        parts = [f'<div class="embed" style="border-left: 4px solid {border};">']
        if embed.title:
            parts.append(f'<div class="embed-title">{escape_html(embed.title)}</div>')
        if embed.description:
            parts.append(f'<div class="embed-description">{escape_html(embed.description)}</div>')
        for name, value in embed.fields:
            parts.append(
                '<div class="embed-field">'
                f'<div class="embed-field-name">{escape_html(name)}</div>'
                f'<div class="embed-field-value">{escape_html(value)}</div>'
                "</div>"
            )
        parts.append("</div>")
        return "".join(parts)

    @staticmethod
    def _render_attachment(attachment: TranscriptAttachment) -> str:
        url = escape_html(attachment.url)
        if attachment.is_image:
            return (
                f'<div class="attachment"><img src="{url}" alt="{escape_html(attachment.filename)}"></div>'
            )
        return f'<div class="attachment"><a href="{url}">📎 {escape_html(attachment.filename)}</a></div>'

    def _render_message(self, message: TranscriptMessage) -> str:
        css_class = "bot-message" if message.is_bot else "user-message"
        bot_tag = '<span class="bot-tag">BOT</span>' if message.is_bot else ""
        content = (
            f'<div class="message-content">{escape_html(message.content)}</div>' if message.content else ""
        )
        return (
            f'<div class="message {css_class}">'
            '<div class="message-header">'
            f'<span class="author-name">{escape_html(message.author_name)}</span>'
            f"{bot_tag}"
            f'<span class="timestamp">{self._format_ts(message.created_at)}</span>'
            "</div>"
            f"{content}"
            + "".join(self._render_embed(embed) for embed in message.embeds)
            + "".join(self._render_attachment(attachment) for attachment in message.attachments)
            + "</div>"
        )

    def render(
        self,
        *,
        guild_name: str,
        channel_name: str,
        created_at: datetime,
        closed_at: datetime,
        closed_by: str,
        messages: Sequence[TranscriptMessage],
    ) -> str:
        t = self.i18n.t
        guild = escape_html(guild_name)
        channel = escape_html(channel_name)
        closed_at_text = self._format_ts(closed_at)

        info_items = [
            (t("transcript.label.channel"), f"#{channel}"),
            (t("transcript.label.server"), guild),
            (t("transcript.label.created"), self._format_ts(created_at)),
            (t("transcript.label.closed"), closed_at_text),
            (t("transcript.label.closed_by"), escape_html(closed_by)),
            (t("transcript.label.total"), str(len(messages))),
        ]
        info_html = "".join(
            '<div class="info-item">'
            f'<div class="info-label">{label}</div>'
            f'<div class="info-value">{value}</div>'
            "</div>"
            for label, value in info_items
        )
        messages_html = "".join(self._render_message(message) for message in messages) or (
            f'<div class="empty">{t("transcript.empty")}</div>'
        )

        return (
            "<!DOCTYPE html>\n"
            f'<html lang="{t("transcript.html_lang")}">\n'
            "<head>\n"
            '<meta charset="UTF-8">\n'
            '<meta name="viewport" content="width=device-width, initial-scale=1.0">\n'
            f"<title>{t('transcript.title', channel=channel)}</title>\n"
            f"<style>\n{TRANSCRIPT_CSS}\n</style>\n"
            "</head>\n"
            "<body>\n"
            '<div class="container">\n'
            '<div class="header">'
            f"<h1>{t('transcript.heading')}</h1>"
            f'<div class="info">{t("transcript.header_info", guild=guild, channel=channel)}</div>'
            "</div>\n"
            '<div class="content">\n'
            '<div class="ticket-info">'
            f"<h3>{t('transcript.info_heading')}</h3>"
            f'<div class="info-grid">{info_html}</div>'
            "</div>\n"
            '<div class="messages">'
            f"<h3>{t('transcript.messages_heading')}</h3>"
            f"{messages_html}"
            "</div>\n"
            "</div>\n"
            f'<div class="footer">{t("transcript.footer", closed_at=closed_at_text)}</div>\n'
            "</div>\n"
            "</body>\n"
            "</html>\n"
        )
