"""Tests for enforcement and automatic escalation."""

from datetime import timedelta
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from guardbot.datatypes.guild_settings import GuildModerationConfig
from guardbot.datatypes.moderation_datatypes import ActionType, Infraction
from guardbot.moderation import enforcement
from guardbot.moderation.enforcement import EnforcementAction
from guardbot.moderation.escalation import EscalationTracker
from guardbot.moderation.infraction_detector import InfractionDetector

from conftest import GUILD_ID, build_member, build_message

ALERT_CHANNEL_ID = 3000


@pytest.fixture
def platform(monkeypatch):
    """Replace every Discord call the enforcement action makes."""
    calls = SimpleNamespace(
        safe_delete_message=AsyncMock(return_value=True),
        send_infraction_notice=AsyncMock(return_value=True),
        apply_timeout=AsyncMock(return_value=True),
        send_staff_alert=AsyncMock(return_value=True),
    )
    for name, mock in vars(calls).items():
        monkeypatch.setattr(enforcement.discord_utils, name, mock)
    return calls


@pytest.fixture
def audit_log():
    log = MagicMock()
    log.log_action = AsyncMock(return_value=1)
    log.log_message = AsyncMock(return_value=True)
    return log


def make_guild():
    return SimpleNamespace(id=GUILD_ID, me=build_member(999, bot=True), get_channel=MagicMock(return_value=None))


def flagged_message(content="bad words", author=None):
    author = author or build_member(42)
    discord_message = SimpleNamespace(
        id=500,
        guild=make_guild(),
        author=author,
        channel=SimpleNamespace(id=2000, send=AsyncMock()),
        content=content,
    )
    return build_message(content, author=author, discord_message=discord_message)


def action_types(audit_log):
    return [c.args[0] for c in audit_log.log_action.await_args_list]


@pytest.mark.asyncio
async def test_scenario_high_tier_profanity_is_enforced(platform, audit_log):
    config = GuildModerationConfig(guild_id=GUILD_ID, moderation_tier="high")
    message = flagged_message("FUCK YOU")
    infraction = await InfractionDetector(history_fetcher=AsyncMock(return_value=[])).detect(message, config)
    assert infraction.reason == "Inappropriate language detected (high moderation tier)."

    action = EnforcementAction(tracker=EscalationTracker(), audit_log=audit_log)
    assert await action.enforce(message, infraction, config) is True

    platform.safe_delete_message.assert_awaited_once_with(message.discord_message)
    platform.send_infraction_notice.assert_awaited_once_with(
        message.discord_message.channel, message.author, infraction.reason
    )
    audit_log.log_action.assert_awaited_once()
    call = audit_log.log_action.await_args
    assert call.args[0] is ActionType.AUTOMODERATION
    assert call.args[2] is message.author
    assert call.kwargs["content"] == "FUCK YOU"
    audit_log.log_message.assert_awaited_once_with(message.discord_message, config)
    platform.apply_timeout.assert_not_awaited()


@pytest.mark.asyncio
async def test_message_without_guild_is_not_enforced(platform, audit_log):
    action = EnforcementAction(audit_log=audit_log)
    assert await action.enforce(build_message("x"), Infraction("r"), GuildModerationConfig(guild_id=1)) is False
    platform.safe_delete_message.assert_not_awaited()


@pytest.mark.asyncio
async def test_failing_steps_do_not_stop_the_rest(platform, audit_log):
    platform.safe_delete_message.side_effect = RuntimeError("delete exploded")
    platform.send_infraction_notice.side_effect = RuntimeError("notice exploded")
    audit_log.log_action.side_effect = RuntimeError("db exploded")

    tracker = EscalationTracker()
    action = EnforcementAction(tracker=tracker, audit_log=audit_log)
    message = flagged_message()
    assert await action.enforce(message, Infraction("r"), GuildModerationConfig(guild_id=GUILD_ID)) is True

    audit_log.log_message.assert_awaited_once()
    assert tracker.warning_count(GUILD_ID, 42) == 1


@pytest.mark.asyncio
async def test_third_infraction_times_the_author_out(platform, audit_log):
    tracker = EscalationTracker()
    action = EnforcementAction(tracker=tracker, audit_log=audit_log)
    config = GuildModerationConfig(guild_id=GUILD_ID)
    author = build_member(42)

    for _ in range(3):
        await action.enforce(flagged_message(author=author), Infraction("r"), config)

    platform.apply_timeout.assert_awaited_once()
    member, duration, reason = platform.apply_timeout.await_args.args
    assert member is author
    assert duration == timedelta(hours=6)
    assert reason == "Automatic timeout: 3 warnings within 1 hour"
    assert action_types(audit_log).count(ActionType.AUTO_TIMEOUT) == 1
    assert tracker.timeout_count(GUILD_ID, 42) == 1
    assert tracker.warning_count(GUILD_ID, 42) == 0


@pytest.mark.asyncio
async def test_failed_timeout_is_not_logged_or_counted(platform, audit_log):
    platform.apply_timeout.return_value = False
    tracker = EscalationTracker()
    action = EnforcementAction(tracker=tracker, audit_log=audit_log)
    config = GuildModerationConfig(guild_id=GUILD_ID)
    author = build_member(42)

    for _ in range(3):
        await action.enforce(flagged_message(author=author), Infraction("r"), config)

    assert ActionType.AUTO_TIMEOUT not in action_types(audit_log)
    assert tracker.timeout_count(GUILD_ID, 42) == 0
    assert tracker.warning_count(GUILD_ID, 42) == 0


@pytest.mark.asyncio
async def test_fifth_timeout_suspends_and_alerts_staff(platform, audit_log):
    tracker = EscalationTracker()
    action = EnforcementAction(tracker=tracker, audit_log=audit_log)
    config = GuildModerationConfig(guild_id=GUILD_ID, mod_alert_channel_id=ALERT_CHANNEL_ID)
    author = build_member(42)
    guild = make_guild()

    for _ in range(15):
        await action.escalate(guild, author, config)

    durations = [c.args[1] for c in platform.apply_timeout.await_args_list]
    assert durations == [timedelta(hours=6)] * 5 + [timedelta(days=7)]
    assert action_types(audit_log).count(ActionType.AUTO_SUSPENSION) == 1

    platform.send_staff_alert.assert_awaited_once()
    _, alert_config, alert = platform.send_staff_alert.await_args.args
    assert alert_config is config
    assert alert.title == "Repeated Violations"
    assert alert.user is author
    assert alert.reason == "Repeated violations"
    assert alert.action == "7-day timeout"


@pytest.mark.asyncio
async def test_staff_alert_sent_even_when_suspension_fails(platform, audit_log):
    platform.apply_timeout.side_effect = lambda member, duration, reason: duration < timedelta(days=1)
    action = EnforcementAction(audit_log=audit_log)
    config = GuildModerationConfig(guild_id=GUILD_ID, mod_alert_channel_id=ALERT_CHANNEL_ID)

    await action.suspend(make_guild(), build_member(42), config)

    platform.send_staff_alert.assert_awaited_once()
    assert ActionType.AUTO_SUSPENSION not in action_types(audit_log)


@pytest.mark.asyncio
async def test_no_alert_without_alert_channel(platform, audit_log):
    action = EnforcementAction(audit_log=audit_log)
    await action.suspend(make_guild(), build_member(42), GuildModerationConfig(guild_id=GUILD_ID))
    platform.apply_timeout.assert_awaited_once()
    platform.send_staff_alert.assert_not_awaited()
