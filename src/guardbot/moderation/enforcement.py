"""
Enforcement of detected infractions.

For one flagged message the enforcement action deletes the message, tells the
author why in the channel, records the action in the audit log and hands the
author to the escalation tracker. Every step is attempted on its own: a failure
is logged and the remaining steps still run.

Escalation may time the author out (tier 2) and, for persistent offenders,
apply a long timeout and alert staff (tier 3).
"""

from __future__ import annotations

import discord

from guardbot.datatypes.guild_settings import GuildModerationConfig
from guardbot.datatypes.moderation_datatypes import ActionType, Infraction, ModerationMessage, StaffAlert
from guardbot.moderation.audit_log import ModerationAuditLog
from guardbot.moderation.escalation import EscalationTracker
from guardbot.util import discord_utils
from guardbot.util.logger import get_logger

logger = get_logger("enforcement")

SUSPENSION_ALERT_TITLE = "Repeated Violations"
SUSPENSION_REASON = "Repeated violations"


class EnforcementAction:
    """Apply the consequences of an infraction and drive escalation."""

    def __init__(self, tracker: EscalationTracker | None = None, audit_log: ModerationAuditLog | None = None) -> None:
        self.tracker = tracker or EscalationTracker()
        self.audit_log = audit_log or ModerationAuditLog()

    async def enforce(self, message: ModerationMessage, infraction: Infraction, config: GuildModerationConfig) -> bool:
        """
        Run every enforcement step for ``message``.

        Returns:
            True once the steps were attempted, False when the message cannot be acted on at all.
        """
        discord_message = message.discord_message
        if discord_message is None or discord_message.guild is None:
            logger.warning("[ENFORCEMENT] Message %s has no guild context; nothing to enforce", message.message_id)
            return False

        guild = discord_message.guild
        author = discord_message.author
        logger.info("[ENFORCEMENT] Enforcing '%s' on user %s in guild %s", infraction.reason, author.id, guild.id)

        try:
            await discord_utils.safe_delete_message(discord_message)
        except Exception:
            logger.exception("[ENFORCEMENT] Failed to delete message %s", message.message_id)

        try:
            await discord_utils.send_infraction_notice(discord_message.channel, author, infraction.reason)
        except Exception:
            logger.exception("[ENFORCEMENT] Failed to notify user %s", author.id)

        try:
            await self.audit_log.log_action(
                ActionType.AUTOMODERATION,
                guild,
                author,
                guild.me,
                infraction.reason,
                content=message.content,
                config=config,
            )
        except Exception:
            logger.exception("[ENFORCEMENT] Failed to record audit entry for message %s", message.message_id)

        try:
            await self.audit_log.log_message(discord_message, config)
        except Exception:
            logger.exception("[ENFORCEMENT] Failed to log deleted message %s", message.message_id)

        try:
            await self.escalate(guild, author, config)
        except Exception:
            logger.exception("[ENFORCEMENT] Escalation failed for user %s in guild %s", author.id, guild.id)

        return True

    async def escalate(self, guild: discord.Guild, member: discord.Member, config: GuildModerationConfig) -> None:
        """Count the infraction and apply a tier-2 timeout, and possibly a tier-3 suspension, when due."""
        outcome = await self.tracker.record_infraction(guild.id, member.id)
        if not outcome.timeout_due:
            return

        policy = self.tracker.policy
        reason = (
            f"Automatic timeout: {outcome.warning_count} warnings within "
            f"{discord_utils.format_duration(int(policy.warning_window.total_seconds()))}"
        )
        applied = await discord_utils.apply_timeout(member, policy.timeout_duration, reason)
        if applied:
            await self.audit_log.log_action(
                ActionType.AUTO_TIMEOUT, guild, member, guild.me, reason,
                duration=policy.timeout_duration, config=config,
            )
        else:
            logger.error("[ENFORCEMENT] Tier-2 timeout could not be applied to user %s in guild %s", member.id, guild.id)

        timeout_outcome = await self.tracker.record_timeout(guild.id, member.id, applied=applied)
        if timeout_outcome.suspension_due:
            await self.suspend(guild, member, config)

    async def suspend(self, guild: discord.Guild, member: discord.Member, config: GuildModerationConfig) -> None:
        """Apply the tier-3 timeout and alert staff; the alert goes out even if the timeout fails."""
        duration = self.tracker.policy.suspension_duration
        applied = await discord_utils.apply_timeout(member, duration, SUSPENSION_REASON)
        if applied:
            await self.audit_log.log_action(
                ActionType.AUTO_SUSPENSION, guild, member, guild.me, SUSPENSION_REASON,
                duration=duration, config=config,
            )
            logger.info("[ENFORCEMENT] User %s in guild %s suspended for %s", member.id, guild.id, duration)
        else:
            logger.error("[ENFORCEMENT] Tier-3 timeout could not be applied to user %s in guild %s", member.id, guild.id)

        if not config.mod_alert_channel_id:
            return

        if duration.days >= 1 and duration.seconds == 0:
            action_label = f"{duration.days}-day timeout"
        else:
            action_label = f"{discord_utils.format_duration(int(duration.total_seconds()))} timeout"
        alert = StaffAlert(
            title=SUSPENSION_ALERT_TITLE,
            user=member,
            reason=SUSPENSION_REASON,
            action=action_label,
        )
        if not await discord_utils.send_staff_alert(guild, config, alert):
            logger.warning("[ENFORCEMENT] Staff alert for user %s in guild %s was not delivered", member.id, guild.id)
