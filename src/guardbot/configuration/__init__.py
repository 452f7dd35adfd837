"""
Configuration management for GuardBot.

- **app_configuration.py**: YAML configuration loader for global settings
  (database location, escalation policy, extra tier words). Falls back to
  defaults on missing or malformed config files.

- **guild_settings.py**: Per-guild auto-moderation configuration with an
  in-memory cache in front of SQLite storage.
"""
