"""
Auto-moderation engine.

Messages flow through the infraction detector (word lists, then the filter
bank), flagged messages through the enforcement action, and authors through
the escalation tracker.
"""
