"""
Persistent per-guild auto-moderation configuration.

Responsibilities:
- Cache every guild's :class:`GuildModerationConfig` in memory
- Persist changes made through the settings commands to SQLite

A guild without a stored configuration has auto-moderation disabled; a row is
created the first time staff change a setting.
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict, List

from guardbot.database.db_connection import ConnectionManager, db_connection
from guardbot.database.guild_settings_repo import GuildSettingsRepository
from guardbot.datatypes.guild_settings import GuildModerationConfig
from guardbot.util.logger import get_logger

logger = get_logger("guild_settings_manager")


class GuildSettingsManager:
    """
    Manager for persistent per-guild moderation settings.

    Reads are served from the in-memory cache, falling back to the database
    for guilds not cached yet. Writes go to the database first and only then
    replace the cached value, so the cache never holds unsaved settings.
    """

    def __init__(self, connection: ConnectionManager = db_connection, repository: GuildSettingsRepository | None = None):
        self._connection = connection
        self._repository = repository or GuildSettingsRepository()
        self.guilds: Dict[int, GuildModerationConfig] = {}
        self._write_lock = asyncio.Lock()

        logger.info("[GUILD SETTINGS MANAGER] Guild settings manager initialized")

    def list_guild_ids(self) -> List[int]:
        """Return a snapshot list of guild IDs currently cached in memory."""
        return list(self.guilds.keys())

    async def load_from_disk(self) -> bool:
        """Load persisted guild configurations from the database into memory."""
        try:
            async with self._connection.read() as conn:
                configs = await self._repository.get_all(conn)
        except Exception:
            logger.exception("[GUILD SETTINGS MANAGER] Failed to load guild settings from database")
            return False

        self.guilds = configs
        if configs:
            logger.info("[GUILD SETTINGS MANAGER] Loaded %d guild configuration(s) from database", len(configs))
        return bool(configs)

    async def get_config(self, guild_id: int) -> GuildModerationConfig | None:
        """
        Return the guild's configuration, or None if it has none or it cannot be read.

        A None result means auto-moderation is off for the guild.
        """
        config = self.guilds.get(guild_id)
        if config is not None:
            return config

        try:
            async with self._connection.read() as conn:
                config = await self._repository.get(conn, guild_id)
        except Exception as exc:
            logger.error("[GUILD SETTINGS MANAGER] Failed to read configuration for guild %s: %s", guild_id, exc)
            return None

        if config is not None:
            self.guilds[guild_id] = config
        return config

    async def ensure_config(self, guild_id: int) -> GuildModerationConfig:
        """Return the guild's configuration, creating and persisting defaults if needed."""
        config = await self.get_config(guild_id)
        if config is not None:
            return config
        return await self._save(GuildModerationConfig(guild_id=guild_id))

    async def update_config(self, guild_id: int, **changes: Any) -> GuildModerationConfig:
        """
        Apply ``changes`` to the guild's configuration and persist the result.

        Raises:
            ValueError: If a change names an unknown option or an invalid value.
        """
        current = await self.ensure_config(guild_id)
        updated = current.updated(**changes)
        config = await self._save(updated)
        logger.debug("[GUILD SETTINGS MANAGER] Updated %s for guild %s", ", ".join(sorted(changes)), guild_id)
        return config

    async def delete_config(self, guild_id: int) -> None:
        async with self._write_lock:
            async with self._connection.transaction() as conn:
                await self._repository.delete(conn, guild_id)
            self.guilds.pop(guild_id, None)

    async def _save(self, config: GuildModerationConfig) -> GuildModerationConfig:
        async with self._write_lock:
            async with self._connection.transaction() as conn:
                await self._repository.upsert(conn, config)
            self.guilds[config.guild_id] = config
        return config


# Global guild settings manager instance
guild_settings_manager = GuildSettingsManager()
