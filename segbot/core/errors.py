from __future__ import annotations

import logging

import discord
from discord import app_commands
from discord.ext import commands

LOGGER = logging.getLogger(__name__)


class BotError(RuntimeError):
    user_message: str = "An unexpected error occurred."

    def __init__(self, user_message: str | None = None) -> None:
        if user_message is not None:
            self.user_message = user_message
        super().__init__(self.user_message)


class ValidationError(BotError):
    user_message = "The provided input is not valid."


class WrongChannelError(ValidationError):
    user_message = "This command can only be used in security ticket channels."


class DuplicateTicketError(ValidationError):
    user_message = "You already have an open ticket."

    def __init__(self, channel: discord.abc.GuildChannel) -> None:
        super().__init__(f"You already have an open ticket: {channel.mention}")
        self.channel = channel


class MissingCategoryError(ValidationError):
    user_message = "The ticket category is not configured correctly. Contact an administrator."


class TicketStateError(ValidationError):
    user_message = "The ticket is not in a valid state for this action."


class AuthorizationError(BotError):
    user_message = "Only staff members can manage security tickets."


class TransientIOError(BotError):
    user_message = "Discord did not accept the request. Try again or contact an administrator."


class CorruptStateError(BotError):
    user_message = "Stored bot state was unreadable and has been reset."


async def send_error_response(
    target: commands.Context[commands.Bot] | discord.Interaction[commands.Bot], message: str
) -> None:
    embed = discord.Embed(title="❌ Error", description=message, color=discord.Color.red())
    if isinstance(target, commands.Context):
        await target.reply(embed=embed, mention_author=False, ephemeral=True)
        return
    if target.response.is_done():
        await target.followup.send(embed=embed, ephemeral=True)
    else:
        await target.response.send_message(embed=embed, ephemeral=True)


def _humanize_command_error(error: Exception) -> str:
    if isinstance(error, commands.HybridCommandError):
        error = error.original
    if isinstance(error, commands.CommandInvokeError) and isinstance(error.original, BotError):
        error = error.original
    if isinstance(error, BotError):
        return error.user_message
    if isinstance(error, commands.MissingPermissions):
        return "You are missing required Discord permissions."
    if isinstance(error, commands.NoPrivateMessage):
        return "This command can only be used inside a server."
    if isinstance(error, commands.CheckFailure):
        return "You are not authorized for this command."
    if isinstance(error, commands.BadArgument):
        return "Command argument was invalid."
    return "There was an error while executing this command!"


async def handle_prefix_command_error(
    ctx: commands.Context[commands.Bot], error: commands.CommandError
) -> None:
    message = _humanize_command_error(error)
    LOGGER.exception(
        "Command failed. command=%s guild=%s user=%s",
        getattr(ctx.command, "qualified_name", None),
        getattr(ctx.guild, "id", None),
        ctx.author.id,
        exc_info=error,
    )
    await send_error_response(ctx, message)


async def handle_app_command_error(
    interaction: discord.Interaction[commands.Bot], error: app_commands.AppCommandError
) -> None:
    message = "There was an error while executing this command!"
    if isinstance(error, app_commands.CommandInvokeError) and isinstance(error.original, BotError):
        message = error.original.user_message
    elif isinstance(error, app_commands.CheckFailure):
        message = "You are not authorized for this command."

    LOGGER.exception(
        "Slash command failed. command=%s guild=%s user=%s",
        getattr(interaction.command, "qualified_name", None),
        getattr(interaction.guild, "id", None),
        interaction.user.id if interaction.user else None,
        exc_info=error,
    )
    await send_error_response(interaction, message)
