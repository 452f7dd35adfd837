"""
Shared data structures: the moderation message snapshot, infractions, cases,
enums for tiers and actions, and the per-guild moderation configuration.
"""
