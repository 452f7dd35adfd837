"""Message listener Cog for GuardBot.

This cog runs every new guild message through auto-moderation: it loads the
guild configuration, asks the infraction detector for a verdict and hands any
infraction to the enforcement action.
"""

import discord
from discord.ext import commands

from guardbot.configuration.app_configuration import app_config
from guardbot.configuration.guild_settings import guild_settings_manager
from guardbot.datatypes.moderation_datatypes import ModerationMessage
from guardbot.moderation.enforcement import EnforcementAction
from guardbot.moderation.escalation import EscalationTracker
from guardbot.moderation.filters import default_filters
from guardbot.moderation.infraction_detector import InfractionDetector
from guardbot.moderation.word_lists import WordListResolver, build_tier_lists
from guardbot.util import discord_utils
from guardbot.util.logger import get_logger

logger = get_logger("message_listener_cog")


def build_detector() -> InfractionDetector:
    """Detector using the built-in tier lists extended with configured words."""
    resolver = WordListResolver(tier_lists=build_tier_lists(app_config.extra_tier_words))
    return InfractionDetector(filters=default_filters(resolver))


def build_enforcement() -> EnforcementAction:
    return EnforcementAction(tracker=EscalationTracker(policy=app_config.escalation_policy))


class MessageListenerCog(commands.Cog):
    """Cog responsible for auto-moderating new messages."""

    def __init__(
        self,
        discord_bot_instance,
        detector: InfractionDetector | None = None,
        enforcement: EnforcementAction | None = None,
    ):
        """
        Initialize the message listener cog.

        Parameters
        ----------
        discord_bot_instance:
            The Discord bot instance to attach this cog to.
        detector:
            Optional detector; built from the application config when omitted.
        enforcement:
            Optional enforcement action owning the escalation state.
        """
        self.discord_bot_instance = discord_bot_instance
        self.detector = detector or build_detector()
        self.enforcement = enforcement or build_enforcement()
        logger.info("Message listener cog loaded")

    @staticmethod
    def _should_process_message(message: discord.Message) -> bool:
        # Ignore DMs and bots
        if message.guild is None:
            return False
        if discord_utils.is_ignored_author(message.author):
            return False
        return bool((message.content or "").strip())

    @commands.Cog.listener(name="on_message")
    async def on_message(self, message: discord.Message):
        """
        Handle new messages: detect infractions and enforce them.

        Guilds without a stored configuration are skipped. Any unexpected error
        is logged here so one bad message never reaches the event loop.
        """
        if not self._should_process_message(message):
            return

        try:
            config = await guild_settings_manager.get_config(message.guild.id)
            if config is None:
                return

            moderation_message = ModerationMessage.from_discord(message)
            infraction = await self.detector.detect(moderation_message, config)
            if infraction is None:
                return

            await self.enforcement.enforce(moderation_message, infraction, config)
        except Exception:
            logger.exception("[AUTOMOD] Unhandled error while moderating message %s", message.id)


def setup(discord_bot_instance):
    """
    Register the MessageListenerCog with the bot.

    Parameters
    ----------
    discord_bot_instance:
        The Discord bot instance to add this cog to.
    """
    discord_bot_instance.add_cog(MessageListenerCog(discord_bot_instance))
