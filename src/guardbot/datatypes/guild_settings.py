"""
Per-guild auto-moderation configuration.

Every option the moderation engine recognizes is declared here with its type
and default. Values are validated once when a config is constructed (loaded
from the database or produced by an update), so the filters can trust them.

Database schema:
- guild_moderation_config table with one column per field below
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from typing import Any, Dict, List, Mapping

from guardbot.datatypes.moderation_datatypes import ModerationTier


# Filter toggles exposed to /automod filter, mapped to their config field
FILTER_TOGGLE_FIELDS: Dict[str, str] = {
    "repeated_text": "repeated_text_enabled",
    "spam": "spam_enabled",
    "links": "links_enabled",
    "invites": "invites_enabled",
    "emoji": "emoji_enabled",
    "mentions": "mentions_enabled",
    "caps": "caps_enabled",
}

# Numeric thresholds exposed to /automod threshold, mapped to (field, min, max)
THRESHOLD_FIELDS: Dict[str, tuple[str, int, int]] = {
    "spam_message_count": ("spam_message_count", 2, 100),
    "spam_timeframe_seconds": ("spam_timeframe_seconds", 1, 3600),
    "emoji_limit": ("emoji_limit", 0, 200),
    "mention_limit": ("mention_limit", 0, 100),
    "caps_percentage": ("caps_percentage", 0, 100),
}

LIST_FIELDS = ("exempt_role_ids", "exempt_channel_ids")
OPTIONAL_ID_FIELDS = (
    "admin_role_id",
    "mod_role_id",
    "moderation_log_channel_id",
    "message_log_channel_id",
    "mod_alert_channel_id",
    "mod_ping_role_id",
)


def split_word_list(raw: str | None) -> List[str]:
    """Split a comma-separated word list, trimming and lower-casing entries.

    Empty and whitespace-only tokens are discarded so an empty list never
    matches every message.
    """
    if not raw:
        return []
    return [token.strip().lower() for token in raw.split(",") if token.strip()]


@dataclass(slots=True)
class GuildModerationConfig:
    """Validated auto-moderation settings for one guild."""

    guild_id: int
    moderation_tier: ModerationTier = ModerationTier.NONE
    blacklisted_words: str = ""
    whitelisted_words: str = ""

    repeated_text_enabled: bool = False
    spam_enabled: bool = False
    spam_message_count: int = 5
    spam_timeframe_seconds: int = 5
    links_enabled: bool = False
    invites_enabled: bool = False
    emoji_enabled: bool = False
    emoji_limit: int = 5
    mentions_enabled: bool = False
    mention_limit: int = 5
    caps_enabled: bool = False
    caps_percentage: int = 70

    admin_role_id: int | None = None
    mod_role_id: int | None = None
    exempt_role_ids: List[int] = field(default_factory=list)
    exempt_channel_ids: List[int] = field(default_factory=list)

    moderation_log_channel_id: int | None = None
    message_log_channel_id: int | None = None
    mod_alert_channel_id: int | None = None
    mod_ping_role_id: int | None = None

    def __post_init__(self) -> None:
        self.moderation_tier = ModerationTier.parse(self.moderation_tier)
        self.blacklisted_words = str(self.blacklisted_words or "")
        self.whitelisted_words = str(self.whitelisted_words or "")

        for toggle in FILTER_TOGGLE_FIELDS.values():
            setattr(self, toggle, bool(getattr(self, toggle)))

        for name, minimum, maximum in THRESHOLD_FIELDS.values():
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                try:
                    value = int(value)
                except (TypeError, ValueError):
                    raise ValueError(f"{name} must be an integer, got {value!r}") from None
            if not minimum <= value <= maximum:
                raise ValueError(f"{name} must be between {minimum} and {maximum}, got {value}")
            setattr(self, name, value)

        for name in OPTIONAL_ID_FIELDS:
            value = getattr(self, name)
            setattr(self, name, int(value) if value else None)

        for name in LIST_FIELDS:
            setattr(self, name, [int(item) for item in (getattr(self, name) or [])])

    @property
    def blacklist(self) -> List[str]:
        return split_word_list(self.blacklisted_words)

    @property
    def whitelist(self) -> List[str]:
        return split_word_list(self.whitelisted_words)

    @property
    def staff_role_ids(self) -> List[int]:
        return [role_id for role_id in (self.admin_role_id, self.mod_role_id) if role_id]

    def updated(self, **changes: Any) -> "GuildModerationConfig":
        """Return a validated copy with ``changes`` applied.

        Raises:
            ValueError: If a change names an unknown option or fails validation.
        """
        known = {f.name for f in fields(self)}
        unknown = set(changes) - known
        if unknown:
            raise ValueError(f"Unknown moderation option(s): {', '.join(sorted(unknown))}")
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        data = {f.name: getattr(self, f.name) for f in fields(self)}
        data["moderation_tier"] = self.moderation_tier.value
        return data

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "GuildModerationConfig":
        """Build a config from a loose mapping, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        return cls(**{key: value for key, value in data.items() if key in known})
