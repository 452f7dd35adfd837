"""
Discord bot cogs for GuardBot.

- **message_listener.py**: Runs new guild messages through auto-moderation
- **events_listener.py**: Bot lifecycle (on_ready) and command error handling
- **moderation_cmds.py**: Manual moderation slash commands and case history
- **automod_settings_cmds.py**: The ``/automod`` configuration command group
"""
