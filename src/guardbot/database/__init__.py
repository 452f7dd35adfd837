"""
Database package for GuardBot.

Public API:
    - db_connection: Shared aiosqlite connection manager
    - GuildSettingsRepository: guild_moderation_config table access
    - moderation_case_store: Durable moderation case log
"""
