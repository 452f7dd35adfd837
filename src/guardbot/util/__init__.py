"""
Utility functions and helpers for GuardBot.

- **logger.py**: Centralized logging configuration with colored console output,
  rotating file handlers, and per-session log files.
- **discord_utils.py**: Stateless Discord helpers for deletions, DMs, timeouts,
  notices, alerts and embeds.
"""
