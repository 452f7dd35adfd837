"""
Moderation cog: commands for taking disciplinary actions on server members.

This module provides the slash commands staff use to warn, time out, kick and
ban members, and to review or clear a member's recorded cases.

Design notes and expectations
- Access is granted to the guild's admin and mod roles and to server
  administrators; without configured staff roles only administrators qualify.
- Targets that are exempt from moderation (staff, bots, exempt roles) are refused.
- Every action DMs the target (best effort) and is recorded as a case; the
  reply reports the case number when the case was stored.
- Manual actions never feed the automatic escalation counters.
- Errors are caught and reported to the invoker via ephemeral responses.

Quick usage example
    # In your bot setup code
    from guardbot.bot.cogs.moderation_cmds import ModerationActionCog
    bot.add_cog(ModerationActionCog(bot))
"""

from typing import Dict, Iterable, List

import discord
from discord import Option
from discord.ext import commands

from guardbot.configuration.guild_settings import guild_settings_manager
from guardbot.database.moderation_log import ModerationCaseStore, moderation_case_store
from guardbot.datatypes.guild_settings import GuildModerationConfig
from guardbot.datatypes.moderation_datatypes import ActionType, ModerationCase
from guardbot.moderation import permissions
from guardbot.moderation.audit_log import ModerationAuditLog
from guardbot.util import discord_utils
from guardbot.util.logger import get_logger

logger = get_logger("moderation_cog")

DEFAULT_REASON = "No reason provided."

# /warnings embed sections, in display order
HISTORY_SECTIONS: Dict[str, tuple] = {
    "Warnings": (ActionType.WARN.value,),
    "Automoderation": (ActionType.AUTOMODERATION.value,),
    "Timeouts": (ActionType.TIMEOUT.value, ActionType.AUTO_TIMEOUT.value, ActionType.AUTO_SUSPENSION.value),
    "Kicks": (ActionType.KICK.value,),
    "Bans": (ActionType.BAN.value,),
}


def case_suffix(case_number: int | None) -> str:
    return f" (Case #{case_number})" if case_number is not None else ""


def format_case_line(case: ModerationCase) -> str:
    line = f"**#{case.case_number}** {case.action}: \"{case.reason}\""
    if case.duration_seconds:
        line += f" ({discord_utils.format_duration(case.duration_seconds)})"
    if case.created_at:
        line += f" on {case.created_at}"
    return line


def build_history_embed(user: discord.abc.User, cases: Iterable[ModerationCase]) -> discord.Embed:
    """Summarize a member's cases grouped by kind of action, newest first."""
    cases = list(cases)
    embed = discord.Embed(title=f"Moderation History for {user}", color=discord.Color.gold())
    for section, actions in HISTORY_SECTIONS.items():
        lines: List[str] = [format_case_line(case) for case in cases if case.action in actions]
        value = "\n".join(lines) if lines else f"No {section.lower()} on record."
        embed.add_field(name=section, value=discord_utils.truncate_field(value), inline=False)
    embed.set_footer(text=f"User ID: {user.id}")
    return embed


class ModerationActionCog(commands.Cog):
    """Cog containing moderation-related slash commands.

    Each command defers its response ephemerally, runs the shared access
    checks, performs the action and reports the outcome through a followup.
    """

    def __init__(
        self,
        discord_bot_instance,
        audit_log: ModerationAuditLog | None = None,
        case_store: ModerationCaseStore = moderation_case_store,
    ):
        self.discord_bot_instance = discord_bot_instance
        self.case_store = case_store
        self.audit_log = audit_log or ModerationAuditLog(case_store)
        logger.info("Moderation cog loaded")

    async def _load_config(self, guild_id: int) -> GuildModerationConfig:
        # Unconfigured guilds still get the administrator-only defaults
        config = await guild_settings_manager.get_config(guild_id)
        return config or GuildModerationConfig(guild_id=guild_id)

    async def check_moderation_access(
        self,
        ctx: discord.ApplicationContext,
        target: discord.abc.User | None = None,
        action_label: str = "moderate",
    ) -> GuildModerationConfig | None:
        """Run shared pre-checks for moderation commands.

        Parameters
        ----------
        ctx:
            Slash command context for the invoking moderator.
        target:
            Member the action targets, or None for commands without a member target.
        action_label:
            Verb used in the refusal message for exempt targets.

        Returns
        -------
        GuildModerationConfig | None
            The guild configuration when allowed to proceed; ``None`` if an error was sent to the invoker.
        """
        if ctx.guild is None:
            await ctx.send_followup("This command can only be used in a server.")
            return None

        config = await self._load_config(ctx.guild.id)

        if not permissions.has_moderator_access(ctx.author, config):
            await ctx.send_followup("You do not have permission to use this command.")
            return None

        if target is None:
            return config

        if not isinstance(target, discord.Member):
            await ctx.send_followup("The specified user is not a member of this server.")
            return None

        if target.id == ctx.author.id:
            await ctx.send_followup("You cannot perform moderation actions on yourself.")
            return None

        if permissions.is_exempt(target, config):
            await ctx.send_followup(f"You cannot {action_label} this user as they are exempt from moderation.")
            return None

        return config

    async def _report_failure(self, ctx: discord.ApplicationContext, message: str) -> None:
        try:
            await ctx.send_followup(message)
        except Exception:
            logger.error("Failed to send error response to user.")

    @commands.slash_command(name="warn", description="Warns a user for a specified reason.")
    async def warn(
        self,
        ctx: discord.ApplicationContext,
        user: Option(discord.Member, "The user to warn.", required=True),  # type: ignore
        reason: Option(str, "Reason for the warning.", default=DEFAULT_REASON),  # type: ignore
    ) -> None:
        """Warn a user and record the warning as a case."""
        await ctx.defer(ephemeral=True)
        config = await self.check_moderation_access(ctx, user, "warn")
        if config is None:
            return

        try:
            await discord_utils.send_dm(
                user, discord_utils.create_dm_embed("You have been warned!", ctx.guild, reason, ctx.author)
            )
            case_number = await self.audit_log.log_action(ActionType.WARN, ctx.guild, user, ctx.author, reason, config=config)
            await ctx.send_followup(f"Successfully warned {user.mention} for: {reason}{case_suffix(case_number)}")
        except Exception as exc:
            logger.exception("Error warning user %s: %s", user.id, exc)
            await self._report_failure(ctx, f"Failed to warn {user.mention}. An error occurred.")

    @commands.slash_command(name="timeout", description="Timeout a user for a specified duration.")
    async def timeout(
        self,
        ctx: discord.ApplicationContext,
        user: Option(discord.Member, "The user to timeout.", required=True),  # type: ignore
        duration: Option(str, "Duration of the timeout (e.g. 30m, 1h, 2d). Default: 1h.", default=discord_utils.DEFAULT_TIMEOUT_DURATION),  # type: ignore
        reason: Option(str, "Reason for the timeout.", default=DEFAULT_REASON),  # type: ignore
    ) -> None:
        """Temporarily timeout a user, for at most 28 days."""
        await ctx.defer(ephemeral=True)
        config = await self.check_moderation_access(ctx, user, "timeout")
        if config is None:
            return

        try:
            timeout_duration = discord_utils.parse_duration(duration)
        except ValueError as exc:
            await ctx.send_followup(str(exc))
            return

        duration_label = discord_utils.format_duration(int(timeout_duration.total_seconds()))
        try:
            if not await discord_utils.apply_timeout(user, timeout_duration, reason):
                await ctx.send_followup(
                    f"Failed to timeout {user.mention}. Make sure the bot has permissions and its role is above the target's highest role."
                )
                return

            await discord_utils.send_dm(
                user,
                discord_utils.create_dm_embed("You have been timed out!", ctx.guild, reason, ctx.author, duration_label),
            )
            case_number = await self.audit_log.log_action(
                ActionType.TIMEOUT, ctx.guild, user, ctx.author, reason, duration=timeout_duration, config=config
            )
            await ctx.send_followup(
                f"Successfully timed out {user.mention} for {duration_label}. Reason: {reason}{case_suffix(case_number)}"
            )
        except Exception as exc:
            logger.exception("Error timing out user %s: %s", user.id, exc)
            await self._report_failure(ctx, f"Failed to timeout {user.mention}. An error occurred.")

    @commands.slash_command(name="kick", description="Kick a user from the server.")
    async def kick(
        self,
        ctx: discord.ApplicationContext,
        user: Option(discord.Member, "The user to kick.", required=True),  # type: ignore
        reason: Option(str, "Reason for the kick.", default=DEFAULT_REASON),  # type: ignore
    ) -> None:
        """Kick a member from the guild. The DM goes out first, while the bot still shares a server with them."""
        await ctx.defer(ephemeral=True)
        config = await self.check_moderation_access(ctx, user, "kick")
        if config is None:
            return

        try:
            await discord_utils.send_dm(
                user,
                discord_utils.create_dm_embed("You have been kicked!", ctx.guild, reason, ctx.author, color=discord.Color.red()),
            )
            try:
                await user.kick(reason=reason)
            except discord.HTTPException as exc:
                logger.warning("Failed to kick user %s: %s", user.id, exc)
                await ctx.send_followup(
                    f"Failed to kick {user.mention}. Make sure the bot has permissions and its role is above the target's highest role."
                )
                return

            case_number = await self.audit_log.log_action(ActionType.KICK, ctx.guild, user, ctx.author, reason, config=config)
            await ctx.send_followup(f"Successfully kicked {user.mention} for: {reason}{case_suffix(case_number)}")
        except Exception as exc:
            logger.exception("Error kicking user %s: %s", user.id, exc)
            await self._report_failure(ctx, f"Failed to kick {user.mention}. An error occurred.")

    @commands.slash_command(name="ban", description="Ban a user from the server.")
    async def ban(
        self,
        ctx: discord.ApplicationContext,
        user: Option(discord.Member, "The user to ban.", required=True),  # type: ignore
        reason: Option(str, "Reason for the ban.", default=DEFAULT_REASON),  # type: ignore
    ) -> None:
        """Permanently ban a member from the guild."""
        await ctx.defer(ephemeral=True)
        config = await self.check_moderation_access(ctx, user, "ban")
        if config is None:
            return

        try:
            await discord_utils.send_dm(
                user,
                discord_utils.create_dm_embed("You have been banned!", ctx.guild, reason, ctx.author, color=discord.Color.red()),
            )
            try:
                await user.ban(reason=reason)
            except discord.HTTPException as exc:
                logger.warning("Failed to ban user %s: %s", user.id, exc)
                await ctx.send_followup(
                    f"Failed to ban {user.mention}. Make sure the bot has permissions and its role is above the target's highest role."
                )
                return

            case_number = await self.audit_log.log_action(ActionType.BAN, ctx.guild, user, ctx.author, reason, config=config)
            await ctx.send_followup(f"Successfully banned {user.mention} for: {reason}{case_suffix(case_number)}")
        except Exception as exc:
            logger.exception("Error banning user %s: %s", user.id, exc)
            await self._report_failure(ctx, f"Failed to ban {user.mention}. An error occurred.")

    @commands.slash_command(name="warnings", description="Show a user's moderation history.")
    async def warnings(
        self,
        ctx: discord.ApplicationContext,
        user: Option(discord.User, "The user to look up.", required=True),  # type: ignore
    ) -> None:
        """List the user's recorded cases grouped by action."""
        await ctx.defer(ephemeral=True)
        if await self.check_moderation_access(ctx) is None:
            return

        try:
            cases = await self.case_store.get_user_cases(ctx.guild.id, user.id)
        except Exception as exc:
            logger.exception("Error fetching cases for user %s: %s", user.id, exc)
            await self._report_failure(ctx, "An error occurred while fetching moderation history. Please try again later.")
            return

        await ctx.send_followup(embed=build_history_embed(user, cases))

    @commands.slash_command(name="clearwarning", description="Clears a specific warning by its case number.")
    async def clearwarning(
        self,
        ctx: discord.ApplicationContext,
        case_number: Option(int, "The case number of the warning to clear.", required=True, min_value=1),  # type: ignore
        user: Option(discord.User, "The user the warning belongs to.", required=True),  # type: ignore
    ) -> None:
        """Delete one warning case belonging to ``user``."""
        await ctx.defer(ephemeral=True)
        if await self.check_moderation_access(ctx) is None:
            return

        try:
            case = await self.case_store.get_case(ctx.guild.id, case_number)
            if case is None or case.user_id != user.id or case.action != ActionType.WARN.value:
                await ctx.send_followup(f"No warning found with case number #{case_number} for {user.mention}.")
                return

            await self.case_store.delete_case(ctx.guild.id, case_number, action=ActionType.WARN.value)
        except Exception as exc:
            logger.exception("Error clearing warning #%s: %s", case_number, exc)
            await self._report_failure(ctx, f"Failed to clear warning #{case_number}. An error occurred.")
            return

        logger.info("Warning #%s for user %s cleared by %s in guild %s", case_number, user.id, ctx.author.id, ctx.guild.id)
        await ctx.send_followup(f"Successfully cleared warning #{case_number} for {user.mention}.")
        await discord_utils.send_dm(
            user,
            discord_utils.create_dm_embed(
                "A Warning Has Been Cleared!", ctx.guild, case.reason, ctx.author, color=discord.Color.green()
            ),
        )

    @commands.slash_command(name="clearwarnings", description="Clears all warnings of a user.")
    async def clearwarnings(
        self,
        ctx: discord.ApplicationContext,
        user: Option(discord.User, "The user whose warnings to clear.", required=True),  # type: ignore
    ) -> None:
        """Delete every warning case belonging to ``user``."""
        await ctx.defer(ephemeral=True)
        if await self.check_moderation_access(ctx) is None:
            return

        try:
            cleared = await self.case_store.clear_user_cases(ctx.guild.id, user.id, action=ActionType.WARN.value)
        except Exception as exc:
            logger.exception("Error clearing warnings for user %s: %s", user.id, exc)
            await self._report_failure(ctx, f"Failed to clear warnings for {user.mention}. An error occurred.")
            return

        if cleared == 0:
            await ctx.send_followup(f"{user.mention} has no warnings to clear.")
            return

        logger.info("Cleared %d warning(s) for user %s in guild %s", cleared, user.id, ctx.guild.id)
        await ctx.send_followup(f"Successfully cleared all {cleared} warnings for {user.mention}.")
        await discord_utils.send_dm(
            user,
            discord_utils.create_dm_embed(
                "Your Warnings Have Been Cleared!", ctx.guild, "All of your warnings were cleared.", ctx.author,
                color=discord.Color.green(),
            ),
        )


def setup(discord_bot_instance):
    """Cog setup entry point.

    This function is used by the bot loader to register the cog with the
    running bot instance.
    """
    discord_bot_instance.add_cog(ModerationActionCog(discord_bot_instance))
