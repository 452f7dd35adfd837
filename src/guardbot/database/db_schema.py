"""
Database schema creation.

Three tables back the bot:
- guild_moderation_config: one row per guild holding its auto-moderation options
- moderation_cases: the durable audit trail, numbered per guild
- case_counters: the last case number handed out per guild, never decremented
"""

import aiosqlite
from guardbot.util.logger import get_logger

logger = get_logger("database_schema")

SCHEMA_VERSION = 2


class SchemaManager:
    """Creates tables, indexes and triggers, and records the schema version."""

    @staticmethod
    async def initialize_schema(db: aiosqlite.Connection) -> None:
        await SchemaManager._create_tables(db)
        await SchemaManager._create_indexes(db)
        await SchemaManager._create_triggers(db)
        await db.execute("INSERT OR IGNORE INTO schema_version (version) VALUES (?)", (SCHEMA_VERSION,))
        await db.commit()
        logger.info("[SCHEMA] Database schema initialized")

    @staticmethod
    async def _create_tables(db: aiosqlite.Connection) -> None:
        await db.execute("""
            CREATE TABLE IF NOT EXISTS guild_moderation_config (
                guild_id INTEGER PRIMARY KEY,
                moderation_tier TEXT NOT NULL DEFAULT 'none',
                blacklisted_words TEXT NOT NULL DEFAULT '',
                whitelisted_words TEXT NOT NULL DEFAULT '',
                repeated_text_enabled INTEGER NOT NULL DEFAULT 0,
                spam_enabled INTEGER NOT NULL DEFAULT 0,
                spam_message_count INTEGER NOT NULL DEFAULT 5,
                spam_timeframe_seconds INTEGER NOT NULL DEFAULT 5,
                links_enabled INTEGER NOT NULL DEFAULT 0,
                invites_enabled INTEGER NOT NULL DEFAULT 0,
                emoji_enabled INTEGER NOT NULL DEFAULT 0,
                emoji_limit INTEGER NOT NULL DEFAULT 5,
                mentions_enabled INTEGER NOT NULL DEFAULT 0,
                mention_limit INTEGER NOT NULL DEFAULT 5,
                caps_enabled INTEGER NOT NULL DEFAULT 0,
                caps_percentage INTEGER NOT NULL DEFAULT 70,
                admin_role_id INTEGER,
                mod_role_id INTEGER,
                exempt_role_ids TEXT NOT NULL DEFAULT '',
                exempt_channel_ids TEXT NOT NULL DEFAULT '',
                moderation_log_channel_id INTEGER,
                message_log_channel_id INTEGER,
                mod_alert_channel_id INTEGER,
                mod_ping_role_id INTEGER,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

        await db.execute("""
            CREATE TABLE IF NOT EXISTS moderation_cases (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                guild_id INTEGER NOT NULL,
                case_number INTEGER NOT NULL,
                user_id INTEGER NOT NULL,
                moderator_id INTEGER NOT NULL,
                action TEXT NOT NULL,
                reason TEXT NOT NULL,
                message_content TEXT NOT NULL DEFAULT '',
                duration_seconds INTEGER NOT NULL DEFAULT 0,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                UNIQUE (guild_id, case_number)
            )
        """)

        await db.execute("""
            CREATE TABLE IF NOT EXISTS case_counters (
                guild_id INTEGER PRIMARY KEY,
                last_case INTEGER NOT NULL
            )
        """)

        await db.execute("""
            CREATE TABLE IF NOT EXISTS schema_version (
                version INTEGER PRIMARY KEY,
                applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

    @staticmethod
    async def _create_indexes(db: aiosqlite.Connection) -> None:
        await db.execute("CREATE INDEX IF NOT EXISTS idx_cases_user ON moderation_cases(guild_id, user_id, created_at)")
        await db.execute("CREATE INDEX IF NOT EXISTS idx_cases_action ON moderation_cases(guild_id, action)")

    @staticmethod
    async def _create_triggers(db: aiosqlite.Connection) -> None:
        await db.execute("""
            CREATE TRIGGER IF NOT EXISTS update_guild_moderation_config_timestamp
            AFTER UPDATE ON guild_moderation_config
            FOR EACH ROW
            BEGIN
                UPDATE guild_moderation_config SET updated_at = CURRENT_TIMESTAMP
                WHERE guild_id = NEW.guild_id;
            END
        """)
