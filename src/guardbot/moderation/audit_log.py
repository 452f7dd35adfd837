"""
Moderation audit log.

Records each moderation action as a durable case and mirrors it as an embed in
the guild's moderation log channel. Removed messages are mirrored to the
message log channel. Both are best effort: a failing database or channel is
logged and reported through the return value, never raised.
"""

from __future__ import annotations

import datetime

import discord

from guardbot.database.moderation_log import ModerationCaseStore, moderation_case_store
from guardbot.datatypes.guild_settings import GuildModerationConfig
from guardbot.datatypes.moderation_datatypes import ActionType
from guardbot.util import discord_utils
from guardbot.util.logger import get_logger

logger = get_logger("audit_log")


class ModerationAuditLog:
    def __init__(self, case_store: ModerationCaseStore = moderation_case_store) -> None:
        self.case_store = case_store

    async def log_action(
        self,
        action: ActionType,
        guild: discord.Guild,
        target: discord.abc.User,
        moderator: discord.abc.User,
        reason: str,
        *,
        content: str | None = None,
        duration: datetime.timedelta | None = None,
        config: GuildModerationConfig | None = None,
    ) -> int | None:
        """
        Record a moderation action and post it to the moderation log channel.

        Args:
            action: The action taken.
            guild: Guild the action happened in.
            target: The user acted upon.
            moderator: The staff member, or the bot user for automated actions.
            reason: Human-readable reason.
            content: Offending message content, when the action removed a message.
            duration: Timeout length, for timeout actions.
            config: Guild configuration; the embed is only posted when it names a log channel.

        Returns:
            The assigned case number, or None if the case could not be stored.
        """
        duration_seconds = int(duration.total_seconds()) if duration else 0
        case_number: int | None
        try:
            case_number = await self.case_store.create_case(
                guild.id,
                target.id,
                moderator.id,
                action.value,
                reason,
                message_content=content or "",
                duration_seconds=duration_seconds,
            )
        except Exception as exc:
            logger.error("[AUDIT LOG] Failed to store %s case for user %s in guild %s: %s", action.value, target.id, guild.id, exc)
            case_number = None

        if config is not None and config.moderation_log_channel_id:
            await self._post_case(guild, config, action, target, moderator, reason, content, duration_seconds, case_number)

        return case_number

    async def _post_case(
        self,
        guild: discord.Guild,
        config: GuildModerationConfig,
        action: ActionType,
        target: discord.abc.User,
        moderator: discord.abc.User,
        reason: str,
        content: str | None,
        duration_seconds: int,
        case_number: int | None,
    ) -> None:
        channel = discord_utils.get_text_channel(guild, config.moderation_log_channel_id)
        if channel is None:
            logger.warning("[AUDIT LOG] Moderation log channel %s not found in guild %s", config.moderation_log_channel_id, guild.id)
            return

        embed = discord_utils.create_punishment_embed(
            action,
            target,
            reason,
            duration_str=discord_utils.format_duration(duration_seconds) if duration_seconds else None,
            issuer=moderator,
            case_number=case_number,
            content=content,
        )
        try:
            await channel.send(embed=embed)
        except discord.HTTPException as exc:
            logger.error("[AUDIT LOG] Failed to post case to moderation log channel in guild %s: %s", guild.id, exc)

    async def log_message(self, message: discord.Message, config: GuildModerationConfig, reason: str = "Auto-Deleted") -> bool:
        """Mirror a removed message to the message log channel, if one is configured."""
        if not config.message_log_channel_id or message.guild is None:
            return False

        channel = discord_utils.get_text_channel(message.guild, config.message_log_channel_id)
        if channel is None:
            logger.warning("[AUDIT LOG] Message log channel %s not found in guild %s", config.message_log_channel_id, message.guild.id)
            return False

        try:
            await channel.send(embed=discord_utils.create_message_log_embed(message, reason))
            return True
        except discord.HTTPException as exc:
            logger.error("[AUDIT LOG] Failed to log deleted message %s: %s", message.id, exc)
            return False
