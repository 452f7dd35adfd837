"""
Core data structures shared by the auto-moderation pipeline.

This module defines the message snapshot the filters inspect, the channel
history entries used by the repeated-text and spam filters, the infraction
produced by detection, and the enums naming moderation tiers and moderation
actions.
"""

from __future__ import annotations

import datetime
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import discord


USER_MENTION_PATTERN = re.compile(r"<@!?\d+>")
ROLE_MENTION_PATTERN = re.compile(r"<@&\d+>")


class ModerationTier(Enum):
    """Named severity preset selecting a built-in blocked-word list."""

    NONE = "none"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def parse(cls, value: "str | ModerationTier | None") -> "ModerationTier":
        """Resolve a tier from its name (case-insensitive); ``None`` and "" mean NONE.

        Raises:
            ValueError: If the value does not name a known tier.
        """
        if isinstance(value, ModerationTier):
            return value
        if value is None or not str(value).strip():
            return cls.NONE
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(f"Unknown moderation tier: {value!r}") from None


class ActionType(Enum):
    """Enumeration of moderation actions recorded in the audit log."""

    AUTOMODERATION = "Automoderation"
    AUTO_TIMEOUT = "Auto-Timeout"
    AUTO_SUSPENSION = "Auto-Suspension"
    WARN = "Warning"
    TIMEOUT = "Timeout"
    KICK = "Kick"
    BAN = "Ban"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True, slots=True)
class Infraction:
    """A single detected rule violation for one message.

    Infractions carry no severity: every infraction counts the same toward
    escalation.
    """

    reason: str
    filter_name: str = ""


@dataclass(frozen=True, slots=True)
class HistoryMessage:
    """One entry of a channel's recent history, as seen by history-based filters."""

    message_id: int
    author_id: int
    content: str
    created_at: datetime.datetime

    @classmethod
    def from_discord(cls, message: discord.Message) -> "HistoryMessage":
        return cls(
            message_id=message.id,
            author_id=message.author.id,
            content=message.content or "",
            created_at=message.created_at,
        )


@dataclass(slots=True)
class ModerationMessage:
    """Snapshot of an incoming guild message handed to the infraction detector.

    Attributes:
        message_id: Snowflake of the message.
        guild_id: Guild the message was posted in.
        channel_id: Channel the message was posted in.
        author: The posting member (anything exposing ``id``, ``bot`` and ``roles``).
        content: Raw message content.
        created_at: Aware UTC creation timestamp.
        user_mention_count: Number of user mentions in the message.
        role_mention_count: Number of role mentions in the message.
        discord_message: The originating Discord message, when available.
    """

    message_id: int
    guild_id: int
    channel_id: int
    author: Any
    content: str
    created_at: datetime.datetime
    user_mention_count: int = 0
    role_mention_count: int = 0
    discord_message: discord.Message | None = field(default=None, repr=False)

    @property
    def author_id(self) -> int:
        return self.author.id

    @property
    def author_is_bot(self) -> bool:
        return bool(getattr(self.author, "bot", False))

    @classmethod
    def from_discord(cls, message: discord.Message) -> "ModerationMessage":
        """Build a moderation snapshot from a guild message."""
        content = message.content or ""
        user_mentions = len(getattr(message, "raw_mentions", None) or USER_MENTION_PATTERN.findall(content))
        role_mentions = len(getattr(message, "raw_role_mentions", None) or ROLE_MENTION_PATTERN.findall(content))
        return cls(
            message_id=message.id,
            guild_id=message.guild.id if message.guild else 0,
            channel_id=message.channel.id,
            author=message.author,
            content=content,
            created_at=message.created_at,
            user_mention_count=user_mentions,
            role_mention_count=role_mentions,
            discord_message=message,
        )


@dataclass(frozen=True, slots=True)
class StaffAlert:
    """Structured notification sent to the staff alert channel."""

    title: str
    user: Any
    reason: str
    action: str


@dataclass(slots=True)
class ModerationCase:
    """A durable audit-log entry identified by its per-guild case number."""

    guild_id: int
    case_number: int
    user_id: int
    moderator_id: int
    action: str
    reason: str
    message_content: str = ""
    duration_seconds: int = 0
    created_at: str = ""
