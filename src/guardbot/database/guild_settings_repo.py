"""
Repository for the guild_moderation_config table.

Handles only that table: rows are converted to and from
:class:`GuildModerationConfig`, list columns are stored comma-joined.
"""

from __future__ import annotations

from typing import Dict, List

import aiosqlite

from guardbot.datatypes.guild_settings import LIST_FIELDS, GuildModerationConfig
from guardbot.util.logger import get_logger

logger = get_logger("guild_settings_repo")

COLUMNS: List[str] = [
    "guild_id",
    "moderation_tier",
    "blacklisted_words",
    "whitelisted_words",
    "repeated_text_enabled",
    "spam_enabled",
    "spam_message_count",
    "spam_timeframe_seconds",
    "links_enabled",
    "invites_enabled",
    "emoji_enabled",
    "emoji_limit",
    "mentions_enabled",
    "mention_limit",
    "caps_enabled",
    "caps_percentage",
    "admin_role_id",
    "mod_role_id",
    "exempt_role_ids",
    "exempt_channel_ids",
    "moderation_log_channel_id",
    "message_log_channel_id",
    "mod_alert_channel_id",
    "mod_ping_role_id",
]

_SELECT = f"SELECT {', '.join(COLUMNS)} FROM guild_moderation_config"
_UPSERT = (
    f"INSERT INTO guild_moderation_config ({', '.join(COLUMNS)}) "
    f"VALUES ({', '.join('?' for _ in COLUMNS)}) "
    "ON CONFLICT(guild_id) DO UPDATE SET "
    + ", ".join(f"{column} = excluded.{column}" for column in COLUMNS[1:])
)


def _join_ids(ids: List[int]) -> str:
    return ",".join(str(item) for item in ids)


def _split_ids(raw: str | None) -> List[int]:
    return [int(item) for item in (raw or "").split(",") if item.strip()]


def row_to_config(row) -> GuildModerationConfig:
    """Convert a database row into a validated config."""
    data = dict(zip(COLUMNS, row))
    for name in LIST_FIELDS:
        data[name] = _split_ids(data[name])
    return GuildModerationConfig.from_mapping(data)


def config_to_params(config: GuildModerationConfig) -> tuple:
    data = config.to_dict()
    params = []
    for column in COLUMNS:
        value = data[column]
        if column in LIST_FIELDS:
            value = _join_ids(value)
        elif isinstance(value, bool):
            value = 1 if value else 0
        params.append(value)
    return tuple(params)


class GuildSettingsRepository:
    """CRUD for the guild_moderation_config table only."""

    async def get(self, conn: aiosqlite.Connection, guild_id: int) -> GuildModerationConfig | None:
        async with conn.execute(f"{_SELECT} WHERE guild_id = ?", (int(guild_id),)) as cursor:
            row = await cursor.fetchone()
        if row is None:
            return None
        return row_to_config(row)

    async def get_all(self, conn: aiosqlite.Connection) -> Dict[int, GuildModerationConfig]:
        """Fetch every stored config keyed by guild id.

        Rows that fail validation are skipped and logged rather than aborting the load.
        """
        async with conn.execute(_SELECT) as cursor:
            rows = await cursor.fetchall()

        result: Dict[int, GuildModerationConfig] = {}
        for row in rows:
            try:
                config = row_to_config(row)
            except ValueError as exc:
                logger.error("[GUILD SETTINGS REPO] Skipping invalid config row for guild %s: %s", row[0], exc)
                continue
            result[config.guild_id] = config
        return result

    async def upsert(self, conn: aiosqlite.Connection, config: GuildModerationConfig) -> None:
        await conn.execute(_UPSERT, config_to_params(config))

    async def delete(self, conn: aiosqlite.Connection, guild_id: int) -> None:
        await conn.execute("DELETE FROM guild_moderation_config WHERE guild_id = ?", (int(guild_id),))
