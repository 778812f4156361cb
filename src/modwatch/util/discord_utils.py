"""
discord_utils.py
================

Low-level Discord utility functions for modwatch.

This module provides stateless helpers for Discord-specific operations:
message deletion, transient notices, timeouts and permission checks. Every
coroutine here swallows and logs Discord errors so callers can treat the
result as a plain success flag.
"""

import datetime
from typing import Union

import discord

from modwatch.util.logger import get_logger

logger = get_logger("discord_utils")

PERMANENT_DURATION = "Permanent"

_DURATION_UNITS = (("day", 86400), ("hour", 3600), ("minute", 60), ("second", 1))


# ==========================================
# Author and permission checks
# ==========================================

def is_ignored_author(author: Union[discord.User, discord.Member]) -> bool:
    """Bot accounts and Discord system users are never screened."""
    return getattr(author, "bot", False) is True or getattr(author, "system", False) is True


def _guild_permissions(member) -> discord.Permissions | None:
    return getattr(member, "guild_permissions", None)


def has_elevated_permissions(member: Union[discord.User, discord.Member]) -> bool:
    """
    Check if a member holds a message-management permission (administrator,
    manage messages or manage guild).

    Members holding one of these bypass every content check except the
    explicit keyword pattern.

    Args:
        member (discord.User | discord.Member): The member to evaluate.

    Returns:
        bool: True if the member has one of the permissions, False otherwise.
    """
    perms = _guild_permissions(member)
    if perms is None:
        return False

    return any(
        getattr(perms, attr, False) is True
        for attr in (
            "administrator",
            "manage_messages",
            "manage_guild",
        )
    )


def can_moderate_member(member: discord.Member) -> bool:
    """
    Return True when the bot is able to time out ``member``.

    The guild owner can never be moderated; otherwise the bot needs the
    moderate members permission and a top role above the member's.
    """
    guild = getattr(member, "guild", None)
    me = getattr(guild, "me", None)
    if guild is None or me is None:
        return False
    if getattr(guild, "owner_id", None) == getattr(member, "id", None):
        return False

    perms = _guild_permissions(me)
    if perms is None or not (
        getattr(perms, "administrator", False) is True or getattr(perms, "moderate_members", False) is True
    ):
        return False

    try:
        return me.top_role > member.top_role
    except (AttributeError, TypeError):
        return False


def bot_can_log_to(channel: discord.abc.GuildChannel, guild: discord.Guild) -> bool:
    """
    Determine if the bot may post embeds in ``channel``.

    Args:
        channel (discord.abc.GuildChannel): The channel to check permissions for.
        guild (discord.Guild): The guild context to resolve the bot's member object.

    Returns:
        bool: True if the bot can send messages and embed links, False otherwise.
    """
    me = getattr(guild, "me", None)
    if me is None:
        return False

    try:
        permissions = channel.permissions_for(me)
    except Exception as exc:  # pragma: no cover - discord internals guard
        logger.debug(f"Could not resolve permissions in {getattr(channel, 'name', 'unknown')}: {exc}")
        return False

    return bool(permissions.send_messages and permissions.embed_links)


# ==========================================
# Formatting
# ==========================================

def format_duration(seconds: int) -> str:
    """
    Render a duration with its two largest units, e.g. ``"1 hour 30 minutes"``.

    Zero means the action never expires.
    """
    if seconds <= 0:
        return PERMANENT_DURATION

    parts = []
    for unit, size in _DURATION_UNITS:
        amount, seconds = divmod(seconds, size)
        if amount:
            parts.append(f"{amount} {unit}{'s' if amount != 1 else ''}")
    return " ".join(parts[:2])


def truncate_text(text: str, max_length: int = 2000) -> str:
    """Cut ``text`` to ``max_length`` characters, ending with ``...`` when cut."""
    if len(text) <= max_length:
        return text
    return text[: max_length - 3] + "..."


# --- Public Discord utility functions ---

async def safe_delete_message(message: discord.Message) -> bool:
    """
    Attempt to delete a Discord message, suppressing recoverable errors.

    Args:
        message (discord.Message): The message to delete.

    Returns:
        bool: True if deletion succeeded, False otherwise.
    """
    try:
        await message.delete()
        return True
    except discord.NotFound:
        return False
    except discord.Forbidden:
        logger.warning(f"No permission to delete message {message.id}")
    except Exception as exc:
        logger.error(f"Error deleting message {message.id}: {exc}")
    return False


async def send_transient_message(
    channel: discord.abc.Messageable,
    content: str,
    delete_after: float,
    mention: discord.abc.User | None = None,
) -> bool:
    """
    Post a notice that Discord removes after ``delete_after`` seconds.

    Only ``mention`` may be pinged by the notice. Returns False when the send
    failed; a pending deletion is simply lost if the process exits first.
    """
    allowed = discord.AllowedMentions(users=[mention] if mention else False, roles=False, everyone=False)
    try:
        await channel.send(content, delete_after=delete_after, allowed_mentions=allowed)
        return True
    except discord.Forbidden:
        logger.warning(f"No permission to post a notice in {getattr(channel, 'name', 'unknown')}")
    except Exception as exc:
        logger.error(f"Error posting notice in {getattr(channel, 'name', 'unknown')}: {exc}")
    return False


async def safe_timeout_member(member: discord.Member, minutes: int, reason: str) -> bool:
    """
    Time out ``member`` for ``minutes`` minutes.

    Returns False (after logging) when the member cannot be moderated or the
    request fails.
    """
    if not can_moderate_member(member):
        logger.info(f"Skipping timeout for {member}: member is not moderatable")
        return False
    try:
        await member.timeout_for(datetime.timedelta(minutes=minutes), reason=reason)
        return True
    except discord.Forbidden:
        logger.warning(f"No permission to time out {member}")
    except Exception as exc:
        logger.error(f"Error timing out {member}: {exc}")
    return False
