"""
The auto-moderation filter bank.

Each filter is a small named object implementing ``evaluate(context)``; it
either abstains (``None``) or returns an :class:`Infraction`. Filters never
mutate anything, so evaluating the same context twice gives the same answer.
A filter may also *allow* a message outright (``allows(context)``), which
suppresses every other filter; only the word-list filter does so, for
whitelisted content.

:func:`default_filters` returns the bank in its policy order: word matches
first as the most severe, then volume and format issues.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import List, Sequence

from guardbot.datatypes.guild_settings import GuildModerationConfig
from guardbot.datatypes.moderation_datatypes import HistoryMessage, Infraction, ModerationMessage
from guardbot.moderation.word_lists import WordListDecision, WordListResolver

# Messages at or below this many non-whitespace characters are never caps-checked
CAPS_MIN_LENGTH = 20

LINK_PATTERN = re.compile(r"https?://\S+", re.IGNORECASE)
INVITE_PATTERN = re.compile(
    r"(?:https?://)?(?:www\.)?"
    r"(?:discord\.(?:gg|io|me|li)|discord(?:app)?\.com/invite)"
    r"/[a-z0-9-]+",
    re.IGNORECASE,
)
CUSTOM_EMOJI_PATTERN = re.compile(r"<a?:\w{2,32}:\d{15,25}>")
UNICODE_EMOJI_PATTERN = re.compile(
    "["
    "\U0001F1E6-\U0001F1FF"  # regional indicators
    "\U0001F300-\U0001F3FA"  # symbols & pictographs, skin tone modifiers excluded
    "\U0001F400-\U0001F5FF"
    "\U0001F600-\U0001F64F"  # emoticons
    "\U0001F680-\U0001F6FF"  # transport & map
    "\U0001F700-\U0001FAFF"  # supplemental symbols & pictographs
    "\u2600-\u26FF"  # misc symbols
    "\u2700-\u27BF"  # dingbats
    "]"
)
WHITESPACE_PATTERN = re.compile(r"\s+")


@dataclass(slots=True)
class FilterContext:
    """Everything a filter may look at for one message.

    ``history`` is the channel's recent messages, most recent first. It may or
    may not include the message under evaluation; filters skip it by id.
    """

    message: ModerationMessage
    config: GuildModerationConfig
    history: Sequence[HistoryMessage] = field(default_factory=list)

    def previous_messages(self) -> List[HistoryMessage]:
        """History strictly before the current message, most recent first."""
        return [entry for entry in self.history if entry.message_id != self.message.message_id]


class MessageFilter:
    """Base class of the filter bank."""

    name: str = "filter"
    # Whether the filter needs channel history to be fetched before evaluation
    needs_history: bool = False

    def enabled(self, config: GuildModerationConfig) -> bool:
        """
        Report whether the guild has this filter switched on.

        Args:
            config (GuildModerationConfig): The guild's moderation options.

        Returns:
            bool: True when the filter should run for this guild.
        """
        return True

    def allows(self, context: FilterContext) -> bool:
        """
        Report whether the message is explicitly allowed by this filter.

        An allowed message skips every filter in the bank, not just this one.

        Args:
            context (FilterContext): The message, its guild options and history.

        Returns:
            bool: True to exempt the message from detection.
        """
        return False

    def evaluate(self, context: FilterContext) -> Infraction | None:
        """
        Check one message against this filter.

        Disabled filters abstain. Implementations must not mutate the context.

        Args:
            context (FilterContext): The message, its guild options and history.

        Returns:
            Infraction | None: The violation found, or None to abstain.
        """
        raise NotImplementedError

    def history_limit(self, config: GuildModerationConfig) -> int:
        """
        Number of recent channel messages this filter wants to see.

        Args:
            config (GuildModerationConfig): The guild's moderation options.

        Returns:
            int: The history depth, 0 when no history is needed.
        """
        return 0

    def _flag(self, reason: str) -> Infraction:
        return Infraction(reason=reason, filter_name=self.name)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} name={self.name!r}>"


class WordListFilter(MessageFilter):
    """Whitelist, blacklist and tier-list matching."""

    name = "word_list"

    def __init__(self, resolver: WordListResolver | None = None) -> None:
        self.resolver = resolver or WordListResolver()

    def allows(self, context: FilterContext) -> bool:
        return self.resolver.is_whitelisted(context.config, context.message.content)

    def evaluate(self, context: FilterContext) -> Infraction | None:
        verdict = self.resolver.resolve(context.config, context.message.content)
        if verdict.decision in (WordListDecision.BLACKLISTED, WordListDecision.TIER_FLAGGED):
            return self._flag(verdict.reason)
        return None


class RepeatedTextFilter(MessageFilter):
    """Flags a message identical to the author's message right before it in the channel."""

    name = "repeated_text"
    needs_history = True

    def enabled(self, config: GuildModerationConfig) -> bool:
        return config.repeated_text_enabled

    def history_limit(self, config: GuildModerationConfig) -> int:
        return 2

    def evaluate(self, context: FilterContext) -> Infraction | None:
        """
        Flag the message when it repeats the previous channel message.

        Only the immediately preceding message counts, and only when the same
        author sent it. Contents are compared after trimming, case-sensitively.

        Args:
            context (FilterContext): The message, its guild options and history.

        Returns:
            Infraction | None: A "Repeated text detected." infraction, or None.
        """
        if not self.enabled(context.config):
            return None

        content = context.message.content.strip()
        if not content:
            return None

        previous = context.previous_messages()
        if not previous:
            return None

        last = previous[0]
        if last.author_id == context.message.author_id and last.content.strip() == content:
            return self._flag("Repeated text detected.")
        return None


class SpamFilter(MessageFilter):
    """Flags an author filling the last N channel messages within the configured timeframe."""

    name = "spam"
    needs_history = True

    def enabled(self, config: GuildModerationConfig) -> bool:
        return config.spam_enabled

    def history_limit(self, config: GuildModerationConfig) -> int:
        return config.spam_message_count

    def evaluate(self, context: FilterContext) -> Infraction | None:
        """
        Flag the author for sending too many messages too quickly.

        The current message plus the author's messages among the previous
        ``spam_message_count - 1`` channel messages are counted when they are
        at most ``spam_timeframe_seconds`` old. Reaching the count flags.

        Args:
            context (FilterContext): The message, its guild options and history.

        Returns:
            Infraction | None: A "Spamming detected." infraction, or None.
        """
        config = context.config
        if not self.enabled(config):
            return None

        limit = config.spam_message_count
        timeframe = config.spam_timeframe_seconds
        message = context.message

        # The current message is always one of the last N
        recent = context.previous_messages()[: limit - 1]
        count = 1
        for entry in recent:
            if entry.author_id != message.author_id:
                continue
            age = (message.created_at - entry.created_at).total_seconds()
            if 0 <= age <= timeframe:
                count += 1

        if count >= limit:
            return self._flag("Spamming detected.")
        return None


class LinkFilter(MessageFilter):
    name = "links"

    def enabled(self, config: GuildModerationConfig) -> bool:
        return config.links_enabled

    def evaluate(self, context: FilterContext) -> Infraction | None:
        if self.enabled(context.config) and LINK_PATTERN.search(context.message.content):
            return self._flag("External links are not allowed.")
        return None


class InviteFilter(MessageFilter):
    name = "invites"

    def enabled(self, config: GuildModerationConfig) -> bool:
        return config.invites_enabled

    def evaluate(self, context: FilterContext) -> Infraction | None:
        if self.enabled(context.config) and INVITE_PATTERN.search(context.message.content):
            return self._flag("Discord invite links are not allowed.")
        return None


def count_emoji(content: str) -> int:
    """
    Count the emoji in a message.

    Custom emoji tokens (``<:name:id>``) count once each, as does every Unicode
    emoji code point. Skin tone modifiers are not counted on their own.

    Args:
        content (str): Raw message content.

    Returns:
        int: The number of emoji found.
    """
    custom = CUSTOM_EMOJI_PATTERN.findall(content)
    remainder = CUSTOM_EMOJI_PATTERN.sub("", content)
    return len(custom) + len(UNICODE_EMOJI_PATTERN.findall(remainder))


class EmojiFilter(MessageFilter):
    name = "emoji"

    def enabled(self, config: GuildModerationConfig) -> bool:
        return config.emoji_enabled

    def evaluate(self, context: FilterContext) -> Infraction | None:
        if not self.enabled(context.config):
            return None
        if count_emoji(context.message.content) > context.config.emoji_limit:
            return self._flag("Excessive emoji usage.")
        return None


class MentionFilter(MessageFilter):
    """User mentions and role mentions are checked against the limit independently."""

    name = "mentions"

    def enabled(self, config: GuildModerationConfig) -> bool:
        return config.mentions_enabled

    def evaluate(self, context: FilterContext) -> Infraction | None:
        if not self.enabled(context.config):
            return None
        limit = context.config.mention_limit
        message = context.message
        if message.user_mention_count > limit or message.role_mention_count > limit:
            return self._flag("Excessive mentions.")
        return None


def caps_percentage(content: str) -> float | None:
    """
    Compute the uppercase share of a message.

    Args:
        content (str): Raw message content.

    Returns:
        float | None: Percentage (0-100) of uppercase letters among the
        non-whitespace characters, or None when there are no more than
        ``CAPS_MIN_LENGTH`` of them.
    """
    stripped = WHITESPACE_PATTERN.sub("", content)
    if len(stripped) <= CAPS_MIN_LENGTH:
        return None
    uppercase = sum(1 for char in stripped if char.isupper())
    return uppercase / len(stripped) * 100


class CapsFilter(MessageFilter):
    name = "caps"

    def enabled(self, config: GuildModerationConfig) -> bool:
        return config.caps_enabled

    def evaluate(self, context: FilterContext) -> Infraction | None:
        if not self.enabled(context.config):
            return None
        percentage = caps_percentage(context.message.content)
        if percentage is not None and percentage > context.config.caps_percentage:
            return self._flag("Excessive capital letters.")
        return None


def default_filters(resolver: WordListResolver | None = None) -> List[MessageFilter]:
    """The filter bank in evaluation order."""
    return [
        WordListFilter(resolver),
        RepeatedTextFilter(),
        SpamFilter(),
        LinkFilter(),
        InviteFilter(),
        EmojiFilter(),
        MentionFilter(),
        CapsFilter(),
    ]
