"""Message listener Cog for modwatch.

This cog handles message-related Discord events: new messages run through the
moderation pipeline, edits and deletions are written to the audit log.
"""

import discord
from discord.ext import commands

from modwatch.bot.services import BotServices, get_services
from modwatch.datatypes.action_datatypes import (
    ActionKind,
    ChannelRef,
    MessageDeletePayload,
    MessageEditPayload,
    UserRef,
)
from modwatch.util import discord_utils
from modwatch.util.logger import get_logger

logger = get_logger("message_listener_cog")


class MessageListenerCog(commands.Cog):
    """Cog responsible for handling message creation, edit and delete events."""

    def __init__(self, discord_bot_instance, services: BotServices | None = None):
        """
        Initialize the message listener cog.

        Parameters
        ----------
        discord_bot_instance:
            The Discord bot instance to attach this cog to.
        services:
            Shared components; taken from the bot when omitted.
        """
        self.bot = discord_bot_instance
        self.services = services or get_services(discord_bot_instance)
        logger.info("Message listener cog loaded")

    @staticmethod
    def _is_guild_message_from_user(message: discord.Message) -> bool:
        if message.guild is None or message.author is None:
            return False
        return not discord_utils.is_ignored_author(message.author)

    @commands.Cog.listener(name='on_message')
    async def on_message(self, message: discord.Message):
        """Run the moderation pipeline for every incoming message."""
        try:
            result = await self.services.pipeline.handle(message)
            if result.enforced:
                logger.debug(f"Message {message.id} stopped at {result.stage} ({result.violation or result.detail})")
        except Exception as exc:
            logger.error(f"Error moderating message {getattr(message, 'id', '?')}: {exc}", exc_info=True)

    @commands.Cog.listener(name='on_message_edit')
    async def on_message_edit(self, before: discord.Message, after: discord.Message):
        """Log edits whose text actually changed (embed unfurls are ignored)."""
        if not self._is_guild_message_from_user(after) or before.content == after.content:
            return

        try:
            await self.services.logging_manager.log_action(
                after.guild,
                ActionKind.MESSAGE_EDIT,
                MessageEditPayload(
                    author=UserRef.from_user(after.author),
                    channel=ChannelRef.from_channel(after.channel),
                    old_content=before.content,
                    new_content=after.content,
                ),
                after.author,
            )
        except Exception as exc:
            logger.error(f"Error logging edit of message {after.id}: {exc}", exc_info=True)

    @commands.Cog.listener(name='on_message_delete')
    async def on_message_delete(self, message: discord.Message):
        """Log deleted user messages."""
        if not self._is_guild_message_from_user(message):
            return

        try:
            await self.services.logging_manager.log_action(
                message.guild,
                ActionKind.MESSAGE_DELETE,
                MessageDeletePayload(
                    author=UserRef.from_user(message.author),
                    channel=ChannelRef.from_channel(message.channel),
                    content=message.content,
                ),
                message.author,
            )
        except Exception as exc:
            logger.error(f"Error logging deletion of message {message.id}: {exc}", exc_info=True)


def setup(discord_bot_instance):
    """Register the MessageListenerCog with the bot."""
    discord_bot_instance.add_cog(MessageListenerCog(discord_bot_instance))
