"""Tests for the infraction detector."""

from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from guardbot.datatypes.guild_settings import GuildModerationConfig
from guardbot.moderation import infraction_detector
from guardbot.moderation.infraction_detector import InfractionDetector

from conftest import CHANNEL_ID, build_history, build_member, build_message


def config(**overrides):
    return GuildModerationConfig(guild_id=1, **overrides)


def detector(history=None, fetcher=None):
    fetch = fetcher or AsyncMock(return_value=history or [])
    return InfractionDetector(history_fetcher=fetch), fetch


@pytest.mark.asyncio
async def test_whitelist_suppresses_every_other_filter():
    cfg = config(
        moderation_tier="high",
        blacklisted_words="badword",
        whitelisted_words="scunthorpe",
        links_enabled=True,
        caps_enabled=True,
    )
    det, _ = detector()
    message = build_message("SCUNTHORPE BADWORD HTTPS://SHIT.EXAMPLE.COM LOUD")
    assert await det.detect(message, cfg) is None


@pytest.mark.asyncio
async def test_first_matching_filter_wins():
    cfg = config(blacklisted_words="apple", links_enabled=True)
    det, _ = detector()
    infraction = await det.detect(build_message("apple https://example.com"), cfg)
    assert infraction.filter_name == "word_list"
    assert infraction.reason == "Blacklisted word detected."


@pytest.mark.asyncio
async def test_tier_none_never_flags_tier_words():
    det, _ = detector()
    assert await det.detect(build_message("what the fuck"), config()) is None


@pytest.mark.asyncio
async def test_bots_are_skipped():
    det, fetch = detector()
    message = build_message("apple", author=build_member(9, bot=True))
    assert await det.detect(message, config(blacklisted_words="apple")) is None
    fetch.assert_not_awaited()


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "member_kwargs, cfg_kwargs",
    [
        ({"roles": [77]}, {"mod_role_id": 77}),
        ({"roles": [66]}, {"admin_role_id": 66}),
        ({"roles": [55]}, {"exempt_role_ids": [55]}),
        ({}, {"exempt_channel_ids": [CHANNEL_ID]}),
    ],
)
async def test_exempt_authors_are_skipped(member_kwargs, cfg_kwargs):
    det, _ = detector()
    message = build_message("apple", author=build_member(3, **member_kwargs))
    assert await det.detect(message, config(blacklisted_words="apple", **cfg_kwargs)) is None


@pytest.mark.asyncio
async def test_history_not_fetched_without_history_filters():
    det, fetch = detector()
    await det.detect(build_message("hello"), config(links_enabled=True))
    fetch.assert_not_awaited()


@pytest.mark.asyncio
async def test_history_fetched_with_largest_limit():
    det, fetch = detector()
    await det.detect(build_message("hello"), config(repeated_text_enabled=True, spam_enabled=True, spam_message_count=8))
    fetch.assert_awaited_once()
    assert fetch.await_args.args[1] == 8


@pytest.mark.asyncio
async def test_repeated_text_from_fetched_history():
    history = build_history((499, 1, "hello", 1))
    det, _ = detector(history=history)
    infraction = await det.detect(build_message("hello"), config(repeated_text_enabled=True))
    assert infraction.reason == "Repeated text detected."


@pytest.mark.asyncio
async def test_history_failure_makes_history_filters_abstain():
    fetch = AsyncMock(side_effect=RuntimeError("boom"))
    det = InfractionDetector(history_fetcher=fetch)
    cfg = config(repeated_text_enabled=True, spam_enabled=True, spam_message_count=2, links_enabled=True)
    assert await det.detect(build_message("hello"), cfg) is None
    infraction = await det.detect(build_message("https://example.com"), cfg)
    assert infraction.filter_name == "links"


@pytest.mark.asyncio
async def test_default_fetcher_reads_channel_of_discord_message(monkeypatch):
    fetch_recent = AsyncMock(return_value=[])
    monkeypatch.setattr(infraction_detector.discord_utils, "fetch_recent_history", fetch_recent)
    channel = SimpleNamespace(id=CHANNEL_ID)
    message = build_message("hello", discord_message=SimpleNamespace(channel=channel))

    det = InfractionDetector()
    await det.detect(message, config(repeated_text_enabled=True))

    fetch_recent.assert_awaited_once_with(channel, 2)


@pytest.mark.asyncio
async def test_default_fetcher_without_discord_message_returns_empty():
    assert await infraction_detector.fetch_channel_history(build_message("hello"), 5) == []


def test_evaluate_is_repeatable():
    from guardbot.moderation.filters import FilterContext

    det = InfractionDetector()
    ctx = FilterContext(message=build_message("apple"), config=config(blacklisted_words="apple"))
    assert det.evaluate(ctx) == det.evaluate(ctx)
