"""Event listener Cog for modwatch.

This cog handles bot lifecycle events (on_ready, on_guild_join) and the
membership events that go straight to the audit log without passing through
the moderation pipeline.
"""

import datetime

import discord
from discord.ext import commands

from modwatch.bot.services import BotServices, get_services
from modwatch.datatypes.action_datatypes import (
    ActionKind,
    MemberJoinPayload,
    MemberLeavePayload,
    UserRef,
)
from modwatch.util.logger import get_logger

logger = get_logger("events_listener_cog")


class EventsListenerCog(commands.Cog):
    """Cog containing bot lifecycle and membership handlers."""

    def __init__(self, discord_bot_instance, services: BotServices | None = None):
        """Initialize the events listener cog.

        Parameters
        ----------
        discord_bot_instance:
            The Discord bot instance to attach this cog to.
        services:
            Shared components; taken from the bot when omitted.
        """
        self.bot = discord_bot_instance
        self.services = services or get_services(discord_bot_instance)
        logger.info("Events listener cog loaded")

    @commands.Cog.listener(name='on_ready')
    async def on_ready(self):
        """Set presence and make sure every guild has a logging config."""
        if self.bot.user:
            await self._update_presence()
            logger.info(f"Bot connected as {self.bot.user} (ID: {self.bot.user.id})")
        else:
            logger.warning("Bot partially connected, but user information not yet available.")

        logger.info("--==--==--==--==--==--==--==--==--==--==--==--==--==--==--==--==--")
        self.services.logging_manager.initialize_all_guilds(self.bot.guilds)

    async def _update_presence(self) -> None:
        try:
            await self.bot.change_presence(
                status=discord.Status.online,
                activity=discord.Activity(
                    type=discord.ActivityType.watching,
                    name="over your server",
                ),
            )
        except Exception as exc:
            logger.warning(f"Could not update presence: {exc}")

    @commands.Cog.listener(name='on_guild_join')
    async def on_guild_join(self, guild: discord.Guild):
        logger.info(f"Joined guild {guild.name} ({guild.id})")
        self.services.logging_manager.initialize_guild(guild.id)

    @commands.Cog.listener(name='on_member_join')
    async def on_member_join(self, member: discord.Member):
        """Write a member_join record."""
        logger.info(f"Member joined: {member} in {member.guild.name}")
        try:
            logged = await self.services.logging_manager.log_action(
                member.guild,
                ActionKind.MEMBER_JOIN,
                MemberJoinPayload(
                    user=UserRef.from_user(member),
                    member_count=member.guild.member_count,
                    account_created_at=member.created_at,
                    joined_at=datetime.datetime.now(datetime.timezone.utc),
                ),
                member,
            )
            if not logged:
                logger.debug(f"Member join for {member} was not logged")
        except Exception as exc:
            logger.error(f"Error logging member join for {member}: {exc}", exc_info=True)

    @commands.Cog.listener(name='on_member_remove')
    async def on_member_remove(self, member: discord.Member):
        """Write a member_leave record with the roles the member held."""
        logger.info(f"Member left: {member} from {member.guild.name}")
        try:
            roles = [role.name for role in getattr(member, "roles", []) if not role.is_default()]
            await self.services.logging_manager.log_action(
                member.guild,
                ActionKind.MEMBER_LEAVE,
                MemberLeavePayload(
                    user=UserRef.from_user(member),
                    member_count=member.guild.member_count,
                    roles=roles,
                    joined_at=getattr(member, "joined_at", None),
                    left_at=datetime.datetime.now(datetime.timezone.utc),
                ),
                member,
            )
        except Exception as exc:
            logger.error(f"Error logging member leave for {member}: {exc}", exc_info=True)


def setup(discord_bot_instance):
    """Register the EventsListenerCog with the bot."""
    discord_bot_instance.add_cog(EventsListenerCog(discord_bot_instance))
