"""Tests for durable moderation case storage."""

import asyncio

import pytest

from guardbot.database.moderation_log import ModerationCaseStore
from guardbot.datatypes.moderation_datatypes import ActionType

WARN = ActionType.WARN.value


@pytest.fixture
def store(db):
    return ModerationCaseStore(connection=db)


@pytest.mark.asyncio
async def test_case_numbers_are_sequential_per_guild(store):
    assert await store.create_case(1, 10, 99, WARN, "first") == 1
    assert await store.create_case(1, 11, 99, WARN, "second") == 2
    assert await store.create_case(2, 10, 99, WARN, "other guild") == 1


@pytest.mark.asyncio
async def test_concurrent_writers_get_distinct_numbers(store):
    numbers = await asyncio.gather(*(store.create_case(1, 10, 99, WARN, f"r{i}") for i in range(10)))
    assert sorted(numbers) == list(range(1, 11))


@pytest.mark.asyncio
async def test_case_fields_are_stored(store):
    number = await store.create_case(
        1, 10, 99, ActionType.AUTOMODERATION.value, "Spamming detected.",
        message_content="buy now", duration_seconds=0,
    )
    case = await store.get_case(1, number)

    assert case.user_id == 10
    assert case.moderator_id == 99
    assert case.action == "Automoderation"
    assert case.reason == "Spamming detected."
    assert case.message_content == "buy now"
    assert case.created_at


@pytest.mark.asyncio
async def test_user_cases_newest_first_and_filtered(store):
    await store.create_case(1, 10, 99, WARN, "w1")
    await store.create_case(1, 10, 99, ActionType.TIMEOUT.value, "t1", duration_seconds=3600)
    await store.create_case(1, 10, 99, WARN, "w2")
    await store.create_case(1, 11, 99, WARN, "someone else")

    cases = await store.get_user_cases(1, 10)
    assert [c.case_number for c in cases] == [3, 2, 1]

    warnings = await store.get_user_cases(1, 10, action=WARN)
    assert [c.reason for c in warnings] == ["w2", "w1"]

    assert len(await store.get_user_cases(1, 10, limit=1)) == 1


@pytest.mark.asyncio
async def test_delete_case_respects_action(store):
    timeout_number = await store.create_case(1, 10, 99, ActionType.TIMEOUT.value, "t")
    warn_number = await store.create_case(1, 10, 99, WARN, "w")

    assert await store.delete_case(1, timeout_number, action=WARN) is False
    assert await store.delete_case(1, warn_number, action=WARN) is True
    assert await store.get_case(1, warn_number) is None
    assert await store.get_case(1, timeout_number) is not None
    assert await store.delete_case(1, 404) is False


@pytest.mark.asyncio
async def test_clear_user_cases_only_removes_action(store):
    await store.create_case(1, 10, 99, WARN, "w1")
    await store.create_case(1, 10, 99, WARN, "w2")
    await store.create_case(1, 10, 99, ActionType.KICK.value, "k")

    assert await store.clear_user_cases(1, 10, action=WARN) == 2
    remaining = await store.get_user_cases(1, 10)
    assert [c.action for c in remaining] == ["Kick"]


@pytest.mark.asyncio
async def test_case_numbers_continue_after_deletion(store):
    await store.create_case(1, 10, 99, WARN, "w1")
    second = await store.create_case(1, 10, 99, WARN, "w2")
    await store.delete_case(1, 1)

    assert await store.create_case(1, 10, 99, WARN, "w3") == second + 1


@pytest.mark.asyncio
async def test_deleting_latest_case_does_not_reuse_its_number(store):
    await store.create_case(1, 10, 99, WARN, "w1")
    latest = await store.create_case(1, 10, 99, WARN, "w2")
    assert await store.delete_case(1, latest) is True

    assert await store.create_case(1, 10, 99, WARN, "w3") == latest + 1


@pytest.mark.asyncio
async def test_clearing_every_case_keeps_counting(store):
    await store.create_case(1, 10, 99, WARN, "w1")
    await store.create_case(1, 10, 99, WARN, "w2")
    assert await store.clear_user_cases(1, 10, action=WARN) == 2

    assert await store.create_case(1, 11, 99, WARN, "w3") == 3


@pytest.mark.asyncio
async def test_counter_starts_after_existing_cases(store, db):
    async with db.transaction() as conn:
        await conn.execute(
            "INSERT INTO moderation_cases (guild_id, case_number, user_id, moderator_id, action, reason) "
            "VALUES (1, 41, 10, 99, 'Warning', 'imported')"
        )

    assert await store.create_case(1, 10, 99, WARN, "next") == 42
