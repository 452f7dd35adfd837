"""
discord_utils.py
================

Low-level Discord utility functions for GuardBot.

This module provides stateless helpers for Discord-specific operations: message
deletion, channel history retrieval, DMs, timeouts, the in-channel infraction
notice, the staff alert and the embeds used for moderation cases and the
deleted-message log. Platform errors are caught here, logged, and reported to
the caller as a boolean so a failed call never aborts the surrounding workflow.
"""

import datetime
import re
from typing import List, Union

import discord

from guardbot.datatypes.guild_settings import GuildModerationConfig
from guardbot.datatypes.moderation_datatypes import ActionType, HistoryMessage, StaffAlert
from guardbot.util.logger import get_logger

logger = get_logger("discord_utils")

# ==========================================
# Duration constants
# ==========================================

# Longest timeout Discord accepts
MAX_TIMEOUT = datetime.timedelta(days=28)
DEFAULT_TIMEOUT_DURATION = "1h"

DURATION_PATTERN = re.compile(r"^\s*(\d+)\s*([smhdw])\s*$", re.IGNORECASE)
DURATION_UNITS = {
    "s": datetime.timedelta(seconds=1),
    "m": datetime.timedelta(minutes=1),
    "h": datetime.timedelta(hours=1),
    "d": datetime.timedelta(days=1),
    "w": datetime.timedelta(weeks=1),
}

# Embed field values are capped at 1024 characters
EMBED_FIELD_LIMIT = 1024


def is_ignored_author(author: Union[discord.User, discord.Member]) -> bool:
    """
    Check if an author should be ignored by moderation handlers (e.g., bots or non-members).

    Args:
        author (discord.User | discord.Member): The user or member to check.

    Returns:
        bool: True if the author is a bot or not a member, False otherwise.
    """
    return author.bot or not isinstance(author, discord.Member)


def format_duration(seconds: int) -> str:
    """
    Convert a duration in seconds to a human-readable string.

    Args:
        seconds (int): Duration in seconds.

    Returns:
        str: Human-readable duration string.
    """
    if seconds < 60:
        return f"{seconds} secs"
    elif seconds < 3600:
        mins = seconds // 60
        return f"{mins} mins"
    elif seconds < 86400:
        hours = seconds // 3600
        return f"{hours} hour{'s' if hours != 1 else ''}"
    else:
        days = seconds // 86400
        return f"{days} day{'s' if days != 1 else ''}"


def parse_duration(text: str | None) -> datetime.timedelta:
    """
    Parse a compact duration such as ``30m``, ``1h`` or ``2d``.

    Args:
        text (str | None): Duration string; empty means the default of one hour.

    Returns:
        datetime.timedelta: The parsed duration.

    Raises:
        ValueError: If the string is malformed, zero, or longer than 28 days.
    """
    raw = (text or DEFAULT_TIMEOUT_DURATION).strip()
    match = DURATION_PATTERN.match(raw)
    if not match:
        raise ValueError(f"Invalid duration {raw!r}. Use a number followed by s, m, h, d or w (e.g. 30m, 1h, 2d).")

    amount = int(match.group(1))
    duration = amount * DURATION_UNITS[match.group(2).lower()]
    if duration <= datetime.timedelta(0):
        raise ValueError("Duration must be greater than zero.")
    if duration > MAX_TIMEOUT:
        raise ValueError("Duration cannot exceed 28 days.")
    return duration


def truncate_field(value: str, limit: int = EMBED_FIELD_LIMIT) -> str:
    if len(value) <= limit:
        return value
    return value[: limit - 3] + "..."


def create_punishment_embed(
    action_type: ActionType,
    user: discord.User | discord.Member,
    reason: str,
    duration_str: str | None = None,
    issuer: discord.User | discord.Member | discord.ClientUser | None = None,
    case_number: int | None = None,
    content: str | None = None,
) -> discord.Embed:
    """
    Build a standardized embed summarizing a moderation action for logging or notification.

    Args:
        action_type (ActionType): The type of moderation action.
        user (discord.User | discord.Member): The affected user.
        reason (str): Reason for the action.
        duration_str (str | None): Optional duration label.
        issuer (discord.User | discord.Member | discord.ClientUser | None): Moderator responsible for the action.
        case_number (int | None): Case number assigned by the case log, if any.
        content (str | None): Offending message content, for automated actions.

    Returns:
        discord.Embed: The constructed embed object.
    """
    emoji, color = {
        ActionType.AUTOMODERATION:  ("🛡️", discord.Color.light_grey()),
        ActionType.AUTO_TIMEOUT:    ("⏱️", discord.Color.blue()),
        ActionType.AUTO_SUSPENSION: ("⛔", discord.Color.dark_red()),
        ActionType.WARN:            ("⚠️", discord.Color.yellow()),
        ActionType.TIMEOUT:         ("⏱️", discord.Color.blue()),
        ActionType.KICK:            ("👢", discord.Color.orange()),
        ActionType.BAN:             ("🔨", discord.Color.red()),
    }.get(action_type, ("❓", discord.Color.light_grey()))

    title = f"{emoji} {action_type.value}"
    if case_number is not None:
        title += f" | Case #{case_number}"

    embed = discord.Embed(
        title=title,
        color=color,
        timestamp=datetime.datetime.now(datetime.timezone.utc),
    )
    embed.add_field(name="User", value=f"{user.mention} (`{user.id}`)", inline=True)
    embed.add_field(name="Action", value=action_type.value, inline=True)
    if issuer:
        embed.add_field(name="Moderator", value=issuer.mention, inline=True)
    embed.add_field(name="Reason", value=truncate_field(reason or "No reason provided"), inline=False)

    if duration_str:
        embed.add_field(name="Duration", value=duration_str, inline=False)

    if content:
        embed.add_field(name="Message", value=truncate_field(f"```\n{content}\n```"), inline=False)

    embed.set_footer(text=f"User ID: {user.id}")
    return embed


def create_dm_embed(
    title: str,
    guild: discord.Guild,
    reason: str,
    moderator: discord.abc.User | None = None,
    duration_str: str | None = None,
    color: discord.Color | None = None,
) -> discord.Embed:
    """Embed DMed to a member when staff act on them."""
    lines = [f"**Server:** {guild.name}", f"**Reason:** {reason}"]
    if duration_str:
        lines.append(f"**Duration:** {duration_str}")
    if moderator is not None:
        lines.append(f"**Moderator:** {moderator}")
    return discord.Embed(
        title=title,
        description="\n".join(lines),
        color=color or discord.Color.orange(),
        timestamp=datetime.datetime.now(datetime.timezone.utc),
    )


def create_message_log_embed(message: discord.Message, reason: str) -> discord.Embed:
    """Embed recording a deleted message for the message log channel."""
    author = message.author
    channel = message.channel
    embed = discord.Embed(
        title="Message Deleted",
        description=(
            f"**Author:** {author.mention}\n"
            f"**Channel:** {getattr(channel, 'mention', channel.id)}\n"
            f"**Reason:** {reason}"
        ),
        color=discord.Color.red(),
        timestamp=datetime.datetime.now(datetime.timezone.utc),
    )
    embed.add_field(name="Content", value=truncate_field(f"```\n{message.content or 'No content'}\n```"), inline=False)
    embed.set_footer(text=f"Author ID: {author.id}")
    return embed


def create_staff_alert_embed(alert: StaffAlert) -> discord.Embed:
    embed = discord.Embed(
        title=alert.title,
        color=discord.Color.dark_red(),
        timestamp=datetime.datetime.now(datetime.timezone.utc),
    )
    embed.add_field(name="User", value=f"{alert.user.mention} (`{alert.user.id}`)", inline=False)
    embed.add_field(name="Reason", value=alert.reason, inline=False)
    embed.add_field(name="Action", value=alert.action, inline=False)
    return embed


def get_text_channel(guild: discord.Guild, channel_id: int | None):
    """Resolve a configured channel id to a channel that can receive messages, or None."""
    if not channel_id:
        return None
    channel = guild.get_channel(channel_id)
    if channel is None or not hasattr(channel, "send"):
        return None
    return channel


# --- Public Discord utility functions ---

async def safe_delete_message(message: discord.Message) -> bool:
    """
    Attempt to delete a Discord message, suppressing recoverable errors.

    Args:
        message (discord.Message): The message to delete.

    Returns:
        bool: True if deletion succeeded, False otherwise.
    """
    try:
        await message.delete()
        return True
    except discord.NotFound:
        return False
    except discord.Forbidden:
        logger.warning(f"No permission to delete message {message.id}")
    except discord.HTTPException as exc:
        logger.error(f"Error deleting message {message.id}: {exc}")
    return False


async def fetch_recent_history(channel: discord.abc.Messageable, limit: int) -> List[HistoryMessage]:
    """
    Fetch up to ``limit`` recent messages of a channel, most recent first.

    Errors propagate; callers decide whether missing history is fatal.
    """
    if limit <= 0:
        return []
    return [HistoryMessage.from_discord(message) async for message in channel.history(limit=limit)]


async def send_infraction_notice(channel: discord.abc.Messageable, author: discord.abc.User, reason: str) -> bool:
    """Post the in-channel notice telling ``author`` why their message was removed."""
    try:
        await channel.send(f"{author.mention}, your message was removed: {reason}")
        return True
    except discord.Forbidden:
        logger.warning(f"No permission to post infraction notice in channel {getattr(channel, 'id', '?')}")
    except discord.HTTPException as exc:
        logger.error(f"Failed to post infraction notice: {exc}")
    return False


async def send_dm(user: discord.abc.User, embed: discord.Embed) -> bool:
    """DM an embed to a user; closed DMs are expected and only logged at debug level."""
    try:
        await user.send(embed=embed)
        return True
    except discord.Forbidden:
        logger.debug(f"Could not DM {user.id}: DMs disabled")
    except discord.HTTPException as exc:
        logger.debug(f"Failed to DM {user.id}: {exc}")
    return False


async def apply_timeout(member: discord.Member, duration: datetime.timedelta, reason: str) -> bool:
    """
    Time a member out for ``duration``.

    Args:
        member (discord.Member): The member to time out.
        duration (datetime.timedelta): Timeout length, capped at 28 days.
        reason (str): Audit-log reason shown in Discord.

    Returns:
        bool: True if Discord accepted the timeout, False otherwise.
    """
    until = discord.utils.utcnow() + min(duration, MAX_TIMEOUT)
    try:
        await member.timeout(until, reason=reason)
        return True
    except discord.Forbidden:
        logger.warning(f"No permission to time out member {member.id}")
    except discord.NotFound:
        logger.warning(f"Member {member.id} left before the timeout could be applied")
    except discord.HTTPException as exc:
        logger.error(f"Failed to time out member {member.id}: {exc}")
    return False


async def send_staff_alert(guild: discord.Guild, config: GuildModerationConfig, alert: StaffAlert) -> bool:
    """
    Post a structured alert to the guild's staff alert channel, pinging the staff role when set.

    Returns:
        bool: True if the alert was posted, False if no channel is configured or sending failed.
    """
    channel = get_text_channel(guild, config.mod_alert_channel_id)
    if channel is None:
        logger.warning(f"Mod alert channel not available for guild {guild.id}; cannot send alert")
        return False

    ping = f"<@&{config.mod_ping_role_id}>" if config.mod_ping_role_id else None
    try:
        await channel.send(content=ping, embed=create_staff_alert_embed(alert))
        return True
    except discord.Forbidden:
        logger.warning(f"No permission to post in mod alert channel {channel.id}")
    except discord.HTTPException as exc:
        logger.error(f"Failed to send staff alert in guild {guild.id}: {exc}")
    return False
