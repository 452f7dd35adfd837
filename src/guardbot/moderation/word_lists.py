"""
Word-list resolution for the auto-moderation filters.

The effective vocabulary of a guild is made of three sources checked in a
fixed precedence: the guild's whitelist (an allowed match suppresses every
other filter), the guild's blacklist, and the built-in list selected by the
guild's moderation tier. Tier lists are cumulative: ``medium`` includes
``low`` and ``high`` includes ``medium``.

Matching is case-insensitive substring search, performed through the
:class:`WordMatcher` interface so a compiled matcher can replace the plain
scan without touching the resolver or the filters.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Mapping, Sequence

from guardbot.datatypes.guild_settings import GuildModerationConfig
from guardbot.datatypes.moderation_datatypes import ModerationTier

# Slurs and hate speech; always blocked once any tier is selected
LOW_TIER_WORDS: List[str] = [
    "fag", "faggot", "kike", "nigg", "nigger", "retard", "tranny",
]

# Strong profanity and direct abuse
MEDIUM_TIER_WORDS: List[str] = [
    "fuck", "motherfucker", "cunt", "whore", "slut", "kill yourself",
]

# Milder profanity, for strict communities
HIGH_TIER_WORDS: List[str] = [
    "shit", "bitch", "bastard", "asshole", "wtf", "stfu",
]


def build_tier_lists(extra: Mapping[str, Iterable[str]] | None = None) -> Dict[ModerationTier, List[str]]:
    """Assemble the cumulative built-in list for each tier.

    Args:
        extra: Optional additional words per tier name (``low``/``medium``/``high``).
    """
    extra = extra or {}

    def tier_words(tier: ModerationTier, base: Sequence[str]) -> List[str]:
        words = list(base) + [str(word) for word in extra.get(tier.value, [])]
        return [word.strip().lower() for word in words if word.strip()]

    low = tier_words(ModerationTier.LOW, LOW_TIER_WORDS)
    medium = low + tier_words(ModerationTier.MEDIUM, MEDIUM_TIER_WORDS)
    high = medium + tier_words(ModerationTier.HIGH, HIGH_TIER_WORDS)
    return {
        ModerationTier.NONE: [],
        ModerationTier.LOW: low,
        ModerationTier.MEDIUM: medium,
        ModerationTier.HIGH: high,
    }


class WordMatcher:
    """Finds the first listed word contained in a lower-cased text."""

    def find(self, text: str, words: Sequence[str]) -> str | None:
        """
        Look for the first word of ``words`` occurring in ``text``.

        Args:
            text (str): Lower-cased message content.
            words (Sequence[str]): Lower-cased words or phrases to look for.

        Returns:
            str | None: The first matching entry of ``words``, or None.
        """
        raise NotImplementedError


class SubstringMatcher(WordMatcher):
    """Linear substring scan over the word list, first hit wins."""

    def find(self, text: str, words: Sequence[str]) -> str | None:
        for word in words:
            if word and word in text:
                return word
        return None


class WordListDecision(Enum):
    WHITELISTED = "whitelisted"
    BLACKLISTED = "blacklisted"
    TIER_FLAGGED = "tier-flagged"
    NONE = "none"


@dataclass(frozen=True, slots=True)
class WordListVerdict:
    decision: WordListDecision
    reason: str = ""
    matched: str = ""


CLEAN_VERDICT = WordListVerdict(WordListDecision.NONE)


class WordListResolver:
    """Resolve a message's content against a guild's whitelist, blacklist and tier list."""

    def __init__(
        self,
        matcher: WordMatcher | None = None,
        tier_lists: Mapping[ModerationTier, List[str]] | None = None,
    ) -> None:
        self.matcher = matcher or SubstringMatcher()
        self.tier_lists = dict(tier_lists) if tier_lists is not None else build_tier_lists()

    def words_for_tier(self, tier: ModerationTier) -> List[str]:
        return self.tier_lists.get(tier, [])

    def is_whitelisted(self, config: GuildModerationConfig, content: str) -> bool:
        """Return True when ``content`` contains any of the guild's whitelisted words."""
        return self.matcher.find(content.lower(), config.whitelist) is not None

    def resolve(self, config: GuildModerationConfig, content: str) -> WordListVerdict:
        """
        Classify message content against the guild's word lists.

        The whitelist is checked first and wins over everything else, then the
        blacklist, then the built-in list of the guild's moderation tier.

        Args:
            config (GuildModerationConfig): The guild's moderation options.
            content (str): Raw message content; matching is case-insensitive.

        Returns:
            WordListVerdict: The decision with its infraction reason and the
            matched word, or ``CLEAN_VERDICT`` when nothing matched.
        """
        text = content.lower()

        allowed = self.matcher.find(text, config.whitelist)
        if allowed is not None:
            return WordListVerdict(WordListDecision.WHITELISTED, matched=allowed)

        blocked = self.matcher.find(text, config.blacklist)
        if blocked is not None:
            return WordListVerdict(WordListDecision.BLACKLISTED, "Blacklisted word detected.", blocked)

        tier = config.moderation_tier
        flagged = self.matcher.find(text, self.words_for_tier(tier))
        if flagged is not None:
            return WordListVerdict(
                WordListDecision.TIER_FLAGGED,
                f"Inappropriate language detected ({tier.value} moderation tier).",
                flagged,
            )

        return CLEAN_VERDICT
