from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest
from discord.ext import commands

from guardbot.bot.cogs import events_listener


class FakeStatus:
    online = "online"
    idle = "idle"


class FakeActivityType:
    watching = "watching"


class FakeActivity:
    def __init__(self, *, type, name):
        self.type = type
        self.name = name


class FakeInteractionResponded(Exception):
    pass


@pytest.fixture(autouse=True)
def patch_discord(monkeypatch):
    monkeypatch.setattr(events_listener.discord, "Status", FakeStatus, raising=False)
    monkeypatch.setattr(events_listener.discord, "ActivityType", FakeActivityType, raising=False)
    monkeypatch.setattr(events_listener.discord, "Activity", FakeActivity, raising=False)
    monkeypatch.setattr(events_listener.discord, "InteractionResponded", FakeInteractionResponded, raising=False)
    yield


@pytest.fixture
def fake_bot():
    return SimpleNamespace(
        user=SimpleNamespace(id=999, display_name="GuardBot"),
        change_presence=AsyncMock(),
    )


def test_setup_registers_cog(fake_bot):
    captured = {}
    fake_bot.add_cog = lambda cog: captured.setdefault("cog", cog)
    events_listener.setup(fake_bot)
    assert isinstance(captured["cog"], events_listener.EventsListenerCog)


@pytest.mark.asyncio
async def test_on_ready_sets_presence(fake_bot):
    cog = events_listener.EventsListenerCog(fake_bot)

    await cog.on_ready()

    fake_bot.change_presence.assert_awaited_once()
    kwargs = fake_bot.change_presence.await_args.kwargs
    assert kwargs["status"] == "online"
    assert kwargs["activity"].type == "watching"
    assert kwargs["activity"].name == "over your server"


@pytest.mark.asyncio
async def test_on_ready_without_user(fake_bot):
    fake_bot.user = None
    cog = events_listener.EventsListenerCog(fake_bot)

    await cog.on_ready()

    fake_bot.change_presence.assert_awaited_once()


@pytest.mark.asyncio
async def test_command_error_responds_ephemerally(fake_bot):
    cog = events_listener.EventsListenerCog(fake_bot)
    ctx = SimpleNamespace(command=SimpleNamespace(name="warn"), respond=AsyncMock(), followup=SimpleNamespace(send=AsyncMock()))

    await cog.on_application_command_error(ctx, RuntimeError("boom"))

    ctx.respond.assert_awaited_once_with("A :bug: showed up while running this command.", ephemeral=True)
    ctx.followup.send.assert_not_awaited()


@pytest.mark.asyncio
async def test_command_error_after_response_uses_followup(fake_bot):
    cog = events_listener.EventsListenerCog(fake_bot)
    ctx = SimpleNamespace(
        command=SimpleNamespace(name="warn"),
        respond=AsyncMock(side_effect=FakeInteractionResponded()),
        followup=SimpleNamespace(send=AsyncMock()),
    )

    await cog.on_application_command_error(ctx, RuntimeError("boom"))

    ctx.followup.send.assert_awaited_once_with("A :bug: showed up while running this command.", ephemeral=True)


@pytest.mark.asyncio
async def test_command_not_found_is_ignored(fake_bot):
    cog = events_listener.EventsListenerCog(fake_bot)
    ctx = SimpleNamespace(command=None, respond=AsyncMock(), followup=SimpleNamespace(send=AsyncMock()))

    await cog.on_application_command_error(ctx, commands.CommandNotFound())

    ctx.respond.assert_not_awaited()
