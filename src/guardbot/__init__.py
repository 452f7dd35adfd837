"""
GuardBot - Rule-Based Discord Auto-Moderation Bot

GuardBot checks every server message against word lists and message filters,
removes offending messages, and escalates repeat offenders from warnings to
timeouts and finally to a long timeout with a staff alert.

Core Components:

- **Moderation**: Word-list resolver, filter bank, infraction detector,
  enforcement action and escalation tracker
- **Case Log**: Durable, per-server numbered record of every moderation action
- **Guild Settings**: Per-server configuration persisted in SQLite and edited
  with the ``/automod`` commands
- **Manual Moderation**: Slash commands for warnings, timeouts, kicks and bans

Usage:
    from guardbot.main import main
    main()
"""
