"""
Pytest configuration and fixtures for GuardBot tests.
"""

import datetime
import sys
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio

# Add src directory to path so imports work
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

from guardbot.database.db_connection import ConnectionManager  # noqa: E402
from guardbot.datatypes.moderation_datatypes import HistoryMessage, ModerationMessage  # noqa: E402

BASE_TIME = datetime.datetime(2024, 5, 1, 12, 0, 0, tzinfo=datetime.timezone.utc)
GUILD_ID = 1000
CHANNEL_ID = 2000


def build_member(member_id=1, *, roles=(), bot=False, administrator=False, manage_guild=False):
    """A stand-in for ``discord.Member`` exposing what the moderation code touches."""
    return SimpleNamespace(
        id=member_id,
        bot=bot,
        roles=[SimpleNamespace(id=role_id) for role_id in roles],
        guild_permissions=SimpleNamespace(administrator=administrator, manage_guild=manage_guild),
        mention=f"<@{member_id}>",
        display_name=f"user{member_id}",
        timeout=AsyncMock(),
        send=AsyncMock(),
        kick=AsyncMock(),
        ban=AsyncMock(),
    )


def build_message(
    content,
    *,
    message_id=500,
    author=None,
    created_at=BASE_TIME,
    user_mentions=0,
    role_mentions=0,
    channel_id=CHANNEL_ID,
    guild_id=GUILD_ID,
    discord_message=None,
):
    return ModerationMessage(
        message_id=message_id,
        guild_id=guild_id,
        channel_id=channel_id,
        author=author or build_member(),
        content=content,
        created_at=created_at,
        user_mention_count=user_mentions,
        role_mention_count=role_mentions,
        discord_message=discord_message,
    )


def build_history(*entries):
    """History entries from ``(message_id, author_id, content, seconds_before_base)`` tuples."""
    return [
        HistoryMessage(
            message_id=message_id,
            author_id=author_id,
            content=content,
            created_at=BASE_TIME - datetime.timedelta(seconds=seconds_before),
        )
        for message_id, author_id, content, seconds_before in entries
    ]


@pytest.fixture
def make_member():
    return build_member


@pytest.fixture
def make_message():
    return build_message


@pytest.fixture
def make_history():
    return build_history


@pytest_asyncio.fixture
async def db(tmp_path):
    """A freshly opened connection manager backed by a temporary database."""
    manager = ConnectionManager()
    await manager.open(tmp_path / "guardbot_test.db")
    try:
        yield manager
    finally:
        await manager.close()
