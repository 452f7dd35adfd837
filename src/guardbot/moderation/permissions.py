"""
Role-based access and exemption rules.

Staff roles are configured per guild (``admin_role_id`` / ``mod_role_id``).
Members holding one of them, bots, members holding an exempt role, and
messages posted in an exempt channel are immune to auto-moderation.
"""

from __future__ import annotations

from typing import Any, Set

from guardbot.datatypes.guild_settings import GuildModerationConfig


def member_role_ids(member: Any) -> Set[int]:
    return {role.id for role in (getattr(member, "roles", None) or [])}


def is_server_administrator(member: Any) -> bool:
    permissions = getattr(member, "guild_permissions", None)
    return bool(getattr(permissions, "administrator", False))


def is_exempt(member: Any, config: GuildModerationConfig, channel_id: int | None = None) -> bool:
    """Return True when ``member`` (optionally in ``channel_id``) is immune to automated moderation."""
    if getattr(member, "bot", False):
        return True

    if channel_id is not None and channel_id in config.exempt_channel_ids:
        return True

    roles = member_role_ids(member)
    if any(role_id in roles for role_id in config.staff_role_ids):
        return True
    return any(role_id in roles for role_id in config.exempt_role_ids)


def has_moderator_access(member: Any, config: GuildModerationConfig | None) -> bool:
    """Return True when ``member`` may use the moderation commands.

    Without configured staff roles only server administrators qualify.
    """
    if is_server_administrator(member):
        return True
    if config is None or not config.staff_role_ids:
        return False
    roles = member_role_ids(member)
    return any(role_id in roles for role_id in config.staff_role_ids)
