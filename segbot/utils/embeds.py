from __future__ import annotations

from datetime import datetime

import discord

from utils.constants import COLOR_CLOSING, COLOR_ERROR, COLOR_LOG, COLOR_PANEL, COLOR_SUCCESS
from utils.i18n import I18N
from utils.time import utc_now


def make_embed(
    title: str,
    description: str,
    color: discord.Color | int | None = None,
    footer: str | None = None,
) -> discord.Embed:
    resolved_color = color if color is not None else discord.Color.blurple()
    embed = discord.Embed(
        title=title,
        description=description,
        color=resolved_color,
        timestamp=utc_now(),
    )
    if footer:
        embed.set_footer(text=footer)
    return embed


def success_embed(message: str, title: str = "✅ Success") -> discord.Embed:
    return make_embed(title=title, description=message, color=COLOR_SUCCESS)


def error_embed(message: str, title: str = "❌ Error") -> discord.Embed:
    return make_embed(title=title, description=message, color=COLOR_ERROR)


def panel_embed(i18n: I18N) -> discord.Embed:
    embed = make_embed(
        title=i18n.t("panel.title"),
        description=i18n.t("panel.description"),
        color=COLOR_PANEL,
        footer=i18n.t("panel.footer"),
    )
    embed.add_field(name=i18n.t("panel.field.access"), value=i18n.t("panel.field.access_value"), inline=True)
    embed.add_field(name=i18n.t("panel.field.category"), value=i18n.t("panel.field.category_value"), inline=True)
    return embed


def ticket_created_embed(i18n: I18N, channel: discord.abc.GuildChannel, number: int, reason: str) -> discord.Embed:
    embed = success_embed(
        i18n.t("open.success_description", channel=channel.mention),
        title=i18n.t("open.success_title"),
    )
    embed.add_field(name=i18n.t("field.number"), value=f"#{number}", inline=True)
    embed.add_field(name=i18n.t("field.reason"), value=reason[:1024], inline=True)
    return embed


def welcome_embed(i18n: I18N, user: discord.abc.User, number: int, reason: str) -> discord.Embed:
    embed = make_embed(
        title=i18n.t("welcome.title", number=number),
        description=i18n.t("welcome.description", user=user.mention),
        color=COLOR_PANEL,
        footer=i18n.t("welcome.footer"),
    )
    embed.add_field(name=i18n.t("welcome.field.report"), value=reason[:1024], inline=False)
    embed.add_field(
        name=i18n.t("welcome.field.confidential"), value=i18n.t("welcome.confidential_value"), inline=False
    )
    embed.add_field(name=i18n.t("welcome.field.important"), value=i18n.t("welcome.important_value"), inline=False)
    return embed


def closing_embed(i18n: I18N, closed_by: discord.abc.User, reason: str, delay_seconds: float) -> discord.Embed:
    embed = make_embed(
        title=i18n.t("close.closing_title"),
        description=i18n.t("close.closing_description", seconds=f"{delay_seconds:g}"),
        color=COLOR_CLOSING,
        footer=i18n.t("close.closing_footer", user=str(closed_by)),
    )
    embed.add_field(name=i18n.t("close.field.reason"), value=reason[:1024], inline=False)
    return embed


def close_log_embed(
    i18n: I18N,
    channel_name: str,
    closed_by: discord.abc.User,
    reason: str,
    closed_at: datetime,
    ticket_number: str | None = None,
    owner: str | None = None,
) -> discord.Embed:
    embed = make_embed(
        title=i18n.t("log.title"),
        description=i18n.t("log.description", channel=channel_name),
        color=COLOR_LOG,
    )
    embed.add_field(name=i18n.t("log.field.closed_by"), value=closed_by.mention, inline=True)
    embed.add_field(
        name=i18n.t("log.field.date"), value=discord.utils.format_dt(closed_at, style="F"), inline=True
    )
    embed.add_field(name=i18n.t("log.field.channel"), value=f"#{channel_name}", inline=True)
    if ticket_number:
        embed.add_field(name=i18n.t("field.number"), value=f"#{ticket_number}", inline=True)
    if owner:
        embed.add_field(name=i18n.t("log.field.owner"), value=owner[:1024], inline=True)
    embed.add_field(name=i18n.t("log.field.reason"), value=reason[:1024], inline=False)
    return embed
