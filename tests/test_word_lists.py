"""Tests for the word-list resolver and tier lists."""

import pytest

from guardbot.datatypes.guild_settings import GuildModerationConfig
from guardbot.datatypes.moderation_datatypes import ModerationTier
from guardbot.moderation.word_lists import (
    CLEAN_VERDICT,
    SubstringMatcher,
    WordListDecision,
    WordListResolver,
    WordMatcher,
    build_tier_lists,
)


def config(**overrides):
    return GuildModerationConfig(guild_id=1, **overrides)


class TestTierLists:
    def test_tiers_are_cumulative(self):
        lists = build_tier_lists()
        assert lists[ModerationTier.NONE] == []
        assert set(lists[ModerationTier.LOW]) <= set(lists[ModerationTier.MEDIUM])
        assert set(lists[ModerationTier.MEDIUM]) <= set(lists[ModerationTier.HIGH])
        assert len(lists[ModerationTier.LOW]) < len(lists[ModerationTier.MEDIUM]) < len(lists[ModerationTier.HIGH])

    def test_medium_tier_contains_fuck(self):
        assert "fuck" in build_tier_lists()[ModerationTier.MEDIUM]

    def test_extra_words_are_normalized_and_inherited(self):
        lists = build_tier_lists({"low": ["  Frobnicate ", ""], "high": ["heck"]})
        assert "frobnicate" in lists[ModerationTier.LOW]
        assert "frobnicate" in lists[ModerationTier.HIGH]
        assert "heck" in lists[ModerationTier.HIGH]
        assert "heck" not in lists[ModerationTier.MEDIUM]
        assert "" not in lists[ModerationTier.LOW]


class TestResolver:
    def test_whitelist_wins_over_blacklist(self):
        resolver = WordListResolver()
        verdict = resolver.resolve(config(blacklisted_words="grass", whitelisted_words="grass"), "touch GRASS")
        assert verdict.decision is WordListDecision.WHITELISTED
        assert verdict.matched == "grass"

    def test_blacklist_match_is_case_insensitive_substring(self):
        resolver = WordListResolver()
        verdict = resolver.resolve(config(blacklisted_words="foo, bar"), "this is FOObar")
        assert verdict.decision is WordListDecision.BLACKLISTED
        assert verdict.reason == "Blacklisted word detected."
        assert verdict.matched == "foo"

    def test_tier_match_reports_tier_name(self):
        resolver = WordListResolver()
        verdict = resolver.resolve(config(moderation_tier="medium"), "what the fuck")
        assert verdict.decision is WordListDecision.TIER_FLAGGED
        assert verdict.reason == "Inappropriate language detected (medium moderation tier)."

    def test_blacklist_checked_before_tier(self):
        resolver = WordListResolver()
        verdict = resolver.resolve(config(moderation_tier="high", blacklisted_words="shit"), "oh shit")
        assert verdict.decision is WordListDecision.BLACKLISTED

    def test_tier_none_never_flags(self):
        resolver = WordListResolver()
        assert resolver.resolve(config(), "what the fuck") == CLEAN_VERDICT

    def test_empty_tokens_never_match(self):
        resolver = WordListResolver()
        cfg = config(blacklisted_words=" , ,", whitelisted_words=",")
        assert cfg.blacklist == []
        assert resolver.resolve(cfg, "anything at all") == CLEAN_VERDICT
        assert resolver.is_whitelisted(cfg, "anything at all") is False

    def test_high_tier_flags_low_tier_words(self):
        resolver = WordListResolver()
        low_word = build_tier_lists()[ModerationTier.LOW][0]
        verdict = resolver.resolve(config(moderation_tier="high"), f"you {low_word}")
        assert verdict.decision is WordListDecision.TIER_FLAGGED
        assert "high moderation tier" in verdict.reason

    def test_custom_matcher_is_used(self):
        class WholeWordMatcher(WordMatcher):
            def find(self, text, words):
                tokens = set(text.split())
                return next((word for word in words if word in tokens), None)

        resolver = WordListResolver(matcher=WholeWordMatcher())
        cfg = config(blacklisted_words="ass")
        assert resolver.resolve(cfg, "a classic").decision is WordListDecision.NONE
        assert resolver.resolve(cfg, "you ass").decision is WordListDecision.BLACKLISTED

    def test_custom_tier_lists(self):
        resolver = WordListResolver(tier_lists={ModerationTier.LOW: ["zap"]})
        assert resolver.words_for_tier(ModerationTier.HIGH) == []
        assert resolver.resolve(config(moderation_tier="low"), "ZAP").decision is WordListDecision.TIER_FLAGGED


@pytest.mark.parametrize(
    "text, words, expected",
    [
        ("hello world", ["world"], "world"),
        ("hello world", ["nope", "hello"], "hello"),
        ("hello", [], None),
        ("hello", [""], None),
    ],
)
def test_substring_matcher(text, words, expected):
    assert SubstringMatcher().find(text, words) == expected
