"""
Infraction detection: runs the filter bank over one message.

The detector skips bots and exempt authors, fetches channel history only when
an enabled filter needs it, and returns the first infraction produced by the
filters in bank order. A whitelisted message produces nothing, whatever the
other filters would have said. At most one infraction is reported per message.
"""

from __future__ import annotations

from typing import Awaitable, Callable, List, Sequence

from guardbot.datatypes.guild_settings import GuildModerationConfig
from guardbot.datatypes.moderation_datatypes import HistoryMessage, Infraction, ModerationMessage
from guardbot.moderation import permissions
from guardbot.moderation.filters import FilterContext, MessageFilter, default_filters
from guardbot.util import discord_utils
from guardbot.util.logger import get_logger

logger = get_logger("infraction_detector")

HistoryFetcher = Callable[[ModerationMessage, int], Awaitable[Sequence[HistoryMessage]]]
ExemptionPolicy = Callable[[ModerationMessage, GuildModerationConfig], bool]


async def fetch_channel_history(message: ModerationMessage, limit: int) -> Sequence[HistoryMessage]:
    """Recent history of the message's channel, most recent first."""
    if message.discord_message is None:
        return []
    return await discord_utils.fetch_recent_history(message.discord_message.channel, limit)


def author_is_exempt(message: ModerationMessage, config: GuildModerationConfig) -> bool:
    return permissions.is_exempt(message.author, config, message.channel_id)


class InfractionDetector:
    """Evaluate the filter bank over a message, first match wins."""

    def __init__(
        self,
        filters: List[MessageFilter] | None = None,
        history_fetcher: HistoryFetcher = fetch_channel_history,
        exemption_policy: ExemptionPolicy = author_is_exempt,
    ) -> None:
        self.filters = filters if filters is not None else default_filters()
        self.history_fetcher = history_fetcher
        self.exemption_policy = exemption_policy

    async def detect(self, message: ModerationMessage, config: GuildModerationConfig) -> Infraction | None:
        if message.author_is_bot:
            return None
        if self.exemption_policy(message, config):
            logger.debug("[AUTOMOD] Skipping exempt author %s in guild %s", message.author_id, message.guild_id)
            return None

        history = await self._load_history(message, config)
        infraction = self.evaluate(FilterContext(message=message, config=config, history=history))
        if infraction is not None:
            logger.info(
                "[AUTOMOD] Message %s by %s in guild %s flagged by %s: %s",
                message.message_id, message.author_id, message.guild_id, infraction.filter_name, infraction.reason,
            )
        return infraction

    def evaluate(self, context: FilterContext) -> Infraction | None:
        """Run the bank over a prepared context without any I/O."""
        if any(message_filter.allows(context) for message_filter in self.filters):
            return None

        for message_filter in self.filters:
            infraction = message_filter.evaluate(context)
            if infraction is not None:
                return infraction
        return None

    async def _load_history(self, message: ModerationMessage, config: GuildModerationConfig) -> Sequence[HistoryMessage]:
        limit = max(
            (f.history_limit(config) for f in self.filters if f.needs_history and f.enabled(config)),
            default=0,
        )
        if limit <= 0:
            return []

        try:
            return await self.history_fetcher(message, limit)
        except Exception as exc:
            # History-based filters abstain without history
            logger.warning("[AUTOMOD] Could not fetch history for channel %s: %s", message.channel_id, exc)
            return []
