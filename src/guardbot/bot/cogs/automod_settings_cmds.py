"""
Settings cog: guild-scoped auto-moderation configuration.

This cog exposes the ``/automod`` command group:
- /automod show: Current configuration as an embed
- /automod tier: Select the built-in word-list tier
- /automod words: Edit the blacklist or whitelist
- /automod filter: Turn one filter on or off
- /automod threshold: Change a numeric filter limit
- /automod channel: Set log and alert channels, or toggle an exempt channel
- /automod role: Set staff roles, or toggle an exempt role

All changes require the Manage Server permission and are persisted via the
guild settings manager. Responses are ephemeral to avoid leaking configuration
in public channels.
"""

from typing import List

import discord
from discord import Option
from discord.ext import commands

from guardbot.configuration.guild_settings import guild_settings_manager
from guardbot.datatypes.guild_settings import (
    FILTER_TOGGLE_FIELDS,
    THRESHOLD_FIELDS,
    GuildModerationConfig,
    split_word_list,
)
from guardbot.datatypes.moderation_datatypes import ModerationTier
from guardbot.util.logger import get_logger

logger = get_logger("automod_settings_cog")

WORD_LIST_FIELDS = {
    "blacklist": "blacklisted_words",
    "whitelist": "whitelisted_words",
}
WORD_LIST_ACTIONS = ["add", "remove", "set", "clear"]

CHANNEL_FIELDS = {
    "moderation_log": "moderation_log_channel_id",
    "message_log": "message_log_channel_id",
    "mod_alert": "mod_alert_channel_id",
}
ROLE_FIELDS = {
    "admin": "admin_role_id",
    "mod": "mod_role_id",
    "mod_ping": "mod_ping_role_id",
}
EXEMPT = "exempt"


def edit_word_list(raw: str, action: str, words: str) -> str:
    """Apply an add/remove/set/clear edit to a comma-separated word list.

    Raises:
        ValueError: If ``action`` is not a known edit.
    """
    current = split_word_list(raw)
    given = split_word_list(words)
    if action == "add":
        result = current + [word for word in given if word not in current]
    elif action == "remove":
        result = [word for word in current if word not in given]
    elif action == "set":
        result = given
    elif action == "clear":
        result = []
    else:
        raise ValueError(f"Unknown word list action: {action!r}")
    return ",".join(result)


def toggle_id(ids: List[int], item_id: int) -> tuple[List[int], bool]:
    """Add ``item_id`` if absent, remove it if present. Returns the new list and whether it was added."""
    if item_id in ids:
        return [existing for existing in ids if existing != item_id], False
    return ids + [item_id], True


def _mention(prefix: str, item_id: int | None) -> str:
    return f"<{prefix}{item_id}>" if item_id else "Not set"


def build_config_embed(config: GuildModerationConfig) -> discord.Embed:
    """Summarize a guild's auto-moderation configuration."""
    embed = discord.Embed(title="Auto-Moderation Settings", color=discord.Color.blurple())
    embed.add_field(name="Moderation Tier", value=config.moderation_tier.value, inline=True)
    embed.add_field(name="Blacklist", value=", ".join(config.blacklist) or "Empty", inline=False)
    embed.add_field(name="Whitelist", value=", ".join(config.whitelist) or "Empty", inline=False)

    filter_lines = [
        f"{'✅' if getattr(config, field) else '❌'} {name}" for name, field in FILTER_TOGGLE_FIELDS.items()
    ]
    embed.add_field(name="Filters", value="\n".join(filter_lines), inline=True)
    threshold_lines = [f"{name}: {getattr(config, field)}" for name, (field, _, _) in THRESHOLD_FIELDS.items()]
    embed.add_field(name="Thresholds", value="\n".join(threshold_lines), inline=True)

    embed.add_field(
        name="Roles",
        value=(
            f"Admin: {_mention('@&', config.admin_role_id)}\n"
            f"Mod: {_mention('@&', config.mod_role_id)}\n"
            f"Alert ping: {_mention('@&', config.mod_ping_role_id)}\n"
            f"Exempt: {', '.join(f'<@&{r}>' for r in config.exempt_role_ids) or 'None'}"
        ),
        inline=False,
    )
    embed.add_field(
        name="Channels",
        value=(
            f"Moderation log: {_mention('#', config.moderation_log_channel_id)}\n"
            f"Message log: {_mention('#', config.message_log_channel_id)}\n"
            f"Mod alerts: {_mention('#', config.mod_alert_channel_id)}\n"
            f"Exempt: {', '.join(f'<#{c}>' for c in config.exempt_channel_ids) or 'None'}"
        ),
        inline=False,
    )
    embed.set_footer(text=f"Guild ID: {config.guild_id}")
    return embed


class AutomodSettingsCog(commands.Cog):
    """Guild-level auto-moderation settings.

    Every subcommand checks for a guild context and the Manage Server
    permission before touching the configuration.
    """

    automod = discord.SlashCommandGroup(
        "automod",
        "Configure auto-moderation for this server.",
        default_member_permissions=discord.Permissions(manage_guild=True),
    )

    def __init__(self, discord_bot_instance):
        self.discord_bot_instance = discord_bot_instance
        logger.info("Automod settings cog loaded")

    async def _ensure_guild_context(self, ctx: discord.ApplicationContext) -> bool:
        if not ctx.guild_id:
            await ctx.respond("This command can only be used in a server.", ephemeral=True)
            return False
        if not self._has_manage_permission(ctx):
            await ctx.respond("You need the Manage Server permission to configure auto-moderation.", ephemeral=True)
            return False
        return True

    def _has_manage_permission(self, ctx: discord.ApplicationContext) -> bool:
        member = ctx.user
        permissions = getattr(member, "guild_permissions", None)
        return bool(getattr(permissions, "manage_guild", False))

    async def _apply(self, ctx: discord.ApplicationContext, confirmation: str, **changes) -> None:
        """Persist ``changes`` and confirm, reporting validation errors to the invoker."""
        try:
            await guild_settings_manager.update_config(ctx.guild_id, **changes)
        except ValueError as exc:
            await ctx.respond(f"Invalid setting: {exc}", ephemeral=True)
            return
        except Exception as exc:
            logger.exception("Failed to update settings for guild %s: %s", ctx.guild_id, exc)
            await ctx.respond("A :bug: showed up while saving the settings.", ephemeral=True)
            return

        logger.info("Guild %s updated %s", ctx.guild_id, ", ".join(sorted(changes)))
        await ctx.respond(confirmation, ephemeral=True)

    @automod.command(name="show", description="Show the current auto-moderation settings.")
    async def show(self, ctx: discord.ApplicationContext):
        if not await self._ensure_guild_context(ctx):
            return
        config = await guild_settings_manager.get_config(ctx.guild_id)
        if config is None:
            await ctx.respond("Auto-moderation is not configured for this server yet.", ephemeral=True)
            return
        await ctx.respond(embed=build_config_embed(config), ephemeral=True)

    @automod.command(name="tier", description="Select the built-in word list tier.")
    async def tier(
        self,
        ctx: discord.ApplicationContext,
        level: Option(str, "Moderation tier.", choices=[tier.value for tier in ModerationTier]),  # type: ignore
    ):
        if not await self._ensure_guild_context(ctx):
            return
        await self._apply(ctx, f"Moderation tier set to **{level}**.", moderation_tier=level)

    @automod.command(name="words", description="Edit the blacklist or whitelist.")
    async def words(
        self,
        ctx: discord.ApplicationContext,
        list_name: Option(str, "Which list to edit.", choices=list(WORD_LIST_FIELDS)),  # type: ignore
        action: Option(str, "How to edit it.", choices=WORD_LIST_ACTIONS),  # type: ignore
        words: Option(str, "Comma-separated words.", default=""),  # type: ignore
    ):
        """Add, remove, replace or clear words of a list."""
        if not await self._ensure_guild_context(ctx):
            return
        if action != "clear" and not split_word_list(words):
            await ctx.respond("Please provide at least one word.", ephemeral=True)
            return

        field = WORD_LIST_FIELDS[list_name]
        config = await guild_settings_manager.ensure_config(ctx.guild_id)
        updated = edit_word_list(getattr(config, field), action, words)
        count = len(split_word_list(updated))
        await self._apply(ctx, f"The {list_name} now holds {count} word(s).", **{field: updated})

    @automod.command(name="filter", description="Enable or disable a filter.")
    async def filter_toggle(
        self,
        ctx: discord.ApplicationContext,
        name: Option(str, "Filter to toggle.", choices=list(FILTER_TOGGLE_FIELDS)),  # type: ignore
        enabled: Option(bool, "Whether the filter is active."),  # type: ignore
    ):
        if not await self._ensure_guild_context(ctx):
            return
        state = "enabled" if enabled else "disabled"
        await self._apply(ctx, f"Filter '{name}' has been {state}.", **{FILTER_TOGGLE_FIELDS[name]: enabled})

    @automod.command(name="threshold", description="Change a filter limit.")
    async def threshold(
        self,
        ctx: discord.ApplicationContext,
        name: Option(str, "Limit to change.", choices=list(THRESHOLD_FIELDS)),  # type: ignore
        value: Option(int, "New value."),  # type: ignore
    ):
        if not await self._ensure_guild_context(ctx):
            return
        field, _, _ = THRESHOLD_FIELDS[name]
        await self._apply(ctx, f"'{name}' set to {value}.", **{field: value})

    @automod.command(name="channel", description="Set a log or alert channel, or toggle an exempt channel.")
    async def channel(
        self,
        ctx: discord.ApplicationContext,
        kind: Option(str, "Which channel setting.", choices=[*CHANNEL_FIELDS, EXEMPT]),  # type: ignore
        channel: Option(discord.TextChannel, "The channel; leave empty to unset.", required=False, default=None),  # type: ignore
    ):
        if not await self._ensure_guild_context(ctx):
            return

        if kind == EXEMPT:
            if channel is None:
                await ctx.respond("Please choose the channel to exempt or un-exempt.", ephemeral=True)
                return
            config = await guild_settings_manager.ensure_config(ctx.guild_id)
            ids, added = toggle_id(config.exempt_channel_ids, channel.id)
            verb = "now exempt from" if added else "no longer exempt from"
            await self._apply(ctx, f"{channel.mention} is {verb} auto-moderation.", exempt_channel_ids=ids)
            return

        channel_id = channel.id if channel is not None else None
        label = channel.mention if channel is not None else "unset"
        await self._apply(ctx, f"{kind.replace('_', ' ').capitalize()} channel: {label}.", **{CHANNEL_FIELDS[kind]: channel_id})

    @automod.command(name="role", description="Set a staff role, or toggle an exempt role.")
    async def role(
        self,
        ctx: discord.ApplicationContext,
        kind: Option(str, "Which role setting.", choices=[*ROLE_FIELDS, EXEMPT]),  # type: ignore
        role: Option(discord.Role, "The role; leave empty to unset.", required=False, default=None),  # type: ignore
    ):
        if not await self._ensure_guild_context(ctx):
            return

        if kind == EXEMPT:
            if role is None:
                await ctx.respond("Please choose the role to exempt or un-exempt.", ephemeral=True)
                return
            config = await guild_settings_manager.ensure_config(ctx.guild_id)
            ids, added = toggle_id(config.exempt_role_ids, role.id)
            verb = "now exempt from" if added else "no longer exempt from"
            await self._apply(ctx, f"{role.mention} is {verb} auto-moderation.", exempt_role_ids=ids)
            return

        role_id = role.id if role is not None else None
        label = role.mention if role is not None else "unset"
        await self._apply(ctx, f"{kind.replace('_', ' ').capitalize()} role: {label}.", **{ROLE_FIELDS[kind]: role_id})


def setup(discord_bot_instance):
    """Add the settings cog to the supplied Discord bot instance."""
    discord_bot_instance.add_cog(AutomodSettingsCog(discord_bot_instance))
