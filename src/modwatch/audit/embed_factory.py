"""
Embed creation for audit-log records.

:func:`create_embed` is a total mapping from :class:`ActionKind` to an embed:
kinds with a dedicated layout get one, everything else (or a payload of the
wrong shape) goes through the generic builder. Missing payload fields render
as ``"Unknown"``.
"""

from __future__ import annotations

import datetime
import json
from dataclasses import asdict, is_dataclass
from typing import Any, Optional

import discord

from modwatch.datatypes.action_datatypes import (
    ActionKind,
    ChannelRef,
    CommandUsagePayload,
    LogPayload,
    MemberJoinPayload,
    MemberLeavePayload,
    MessageDeletePayload,
    MessageEditPayload,
    ModerationPayload,
    PurgePayload,
    TimeoutPayload,
    UserRef,
    VoicePayload,
    WarningPayload,
    WarningRemovedPayload,
)
from modwatch.util.discord_utils import truncate_text
from modwatch.util.logger import get_logger

logger = get_logger("embed_factory")

UNKNOWN = "Unknown"
NO_CONTENT = "*No content*"
AUTO_MODERATOR = "Auto-Moderation"

COLOR_ORANGE = discord.Color(0xFFA500)
COLOR_RED = discord.Color(0xFF4444)
COLOR_JOIN = discord.Color(0x00FF88)
COLOR_GREEN = discord.Color(0x00FF00)
COLOR_BAN = discord.Color(0x8B0000)
COLOR_KICK = discord.Color(0xFF8C00)
COLOR_COMMAND = discord.Color(0x3498DB)
COLOR_GENERIC = discord.Color(0x808080)
COLOR_ERROR = discord.Color(0xFF0000)


def _or_unknown(value: Any) -> str:
    if value is None or value == "":
        return UNKNOWN
    return str(value)


def _tag(user: Optional[UserRef]) -> str:
    return _or_unknown(user.tag if user else None)


def _id(user: Optional[UserRef]) -> str:
    return _or_unknown(user.id if user else None)


def _channel_name(channel: Optional[ChannelRef]) -> str:
    if channel is None:
        return UNKNOWN
    return _or_unknown(channel.name or channel.id)


def _content(value: Optional[str], limit: int) -> str:
    return (value or "")[:limit] or NO_CONTENT


def _code_block(value: str, limit: int = 1024) -> str:
    return f"```{value}```"[:limit]


def _new_embed(title: str, color: discord.Color, description: Optional[str] = None) -> discord.Embed:
    return discord.Embed(
        title=title,
        description=description,
        color=color,
        timestamp=datetime.datetime.now(datetime.timezone.utc),
    )


def _user_field(user: Optional[UserRef]) -> str:
    return f"{_tag(user)}\n`{_id(user)}`"


# ==========================================
# Specific builders
# ==========================================

def message_edit_embed(payload: MessageEditPayload) -> discord.Embed:
    channel = _channel_name(payload.channel)
    embed = _new_embed("✏️ Message Edited", COLOR_ORANGE, f"**User:** {_tag(payload.author)}\n**Channel:** {channel}")
    embed.add_field(name="👤 User ID", value=f"`{_id(payload.author)}`", inline=True)
    embed.add_field(name="💬 Channel", value=channel, inline=True)
    embed.add_field(name="📝 Before", value=_code_block(_content(payload.old_content, 800)), inline=False)
    embed.add_field(name="✅ After", value=_code_block(_content(payload.new_content, 800)), inline=False)
    return embed


def message_delete_embed(payload: MessageDeletePayload) -> discord.Embed:
    channel = _channel_name(payload.channel)
    embed = _new_embed("🗑️ Message Deleted", COLOR_RED, f"**User:** {_tag(payload.author)}\n**Channel:** {channel}")
    embed.add_field(name="👤 User ID", value=f"`{_id(payload.author)}`", inline=True)
    embed.add_field(name="💬 Channel", value=channel, inline=True)
    embed.add_field(name="📝 Content", value=_code_block(_content(payload.content, 1000)), inline=False)
    return embed


def _account_age_days(created_at: Optional[datetime.datetime]) -> str:
    if created_at is None:
        return UNKNOWN
    if created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=datetime.timezone.utc)
    return str((datetime.datetime.now(datetime.timezone.utc) - created_at).days)


def member_join_embed(payload: MemberJoinPayload) -> discord.Embed:
    embed = _new_embed("👋 Member Joined", COLOR_JOIN, f"**{_tag(payload.user)}** joined the server")
    created_at = payload.account_created_at or (payload.user.created_at if payload.user else None)
    embed.add_field(name="👤 User", value=_user_field(payload.user), inline=True)
    embed.add_field(name="📊 Member Count", value=f"**{_or_unknown(payload.member_count)}**", inline=True)
    embed.add_field(name="📅 Account Age", value=f"{_account_age_days(created_at)} days", inline=True)
    return embed


def member_leave_embed(payload: MemberLeavePayload) -> discord.Embed:
    embed = _new_embed("👋 Member Left", COLOR_RED, f"**{_tag(payload.user)}** left the server")
    embed.add_field(name="👤 User", value=_user_field(payload.user), inline=True)
    embed.add_field(name="📊 Member Count", value=f"**{_or_unknown(payload.member_count)}**", inline=True)
    if payload.roles:
        embed.add_field(name="🎭 Roles", value=truncate_text(", ".join(payload.roles), 1024), inline=False)
    return embed


def warning_embed(payload: WarningPayload) -> discord.Embed:
    embed = _new_embed("⚠️ Warning Issued", COLOR_ORANGE, f"Warning issued to **{_tag(payload.user)}**")
    embed.add_field(name="👤 User", value=_user_field(payload.user), inline=True)
    embed.add_field(name="👮 Moderator", value=_tag(payload.moderator), inline=True)
    embed.add_field(name="🆔 Warning ID", value=f"`{_or_unknown(payload.warning_id)}`", inline=True)
    embed.add_field(name="📝 Reason", value=_code_block(_or_unknown(payload.reason)[:900]), inline=False)
    return embed


def warning_removed_embed(payload: WarningRemovedPayload) -> discord.Embed:
    embed = _new_embed("✅ Warning Removed", COLOR_GREEN, f"Warning removed from **{_tag(payload.user)}**")
    embed.add_field(name="👤 User", value=_user_field(payload.user), inline=True)
    embed.add_field(name="👮 Moderator", value=_tag(payload.moderator), inline=True)
    embed.add_field(name="🆔 Warning ID", value=f"`{_or_unknown(payload.warning_id)}`", inline=True)
    embed.add_field(name="📝 Reason", value=_code_block(_or_unknown(payload.removal_reason)), inline=False)
    return embed


def _moderation_embed(title: str, color: discord.Color, verb: str, payload: ModerationPayload) -> discord.Embed:
    embed = _new_embed(title, color, f"**{_tag(payload.user)}** was {verb}")
    embed.add_field(name="👤 User", value=_user_field(payload.user), inline=True)
    embed.add_field(name="👮 Moderator", value=_tag(payload.moderator), inline=True)
    embed.add_field(name="📝 Reason", value=_code_block(_or_unknown(payload.reason)), inline=False)
    return embed


def timeout_embed(payload: TimeoutPayload) -> discord.Embed:
    embed = _new_embed("🔇 Member Timed Out", COLOR_ORANGE, f"**{_tag(payload.user)}** was timed out")
    moderator = payload.moderator.tag if payload.moderator and payload.moderator.tag else AUTO_MODERATOR
    embed.add_field(name="👤 User", value=_user_field(payload.user), inline=True)
    embed.add_field(name="👮 Moderator", value=moderator, inline=True)
    embed.add_field(name="⏱️ Duration", value=_or_unknown(payload.duration), inline=True)
    embed.add_field(name="📝 Reason", value=_code_block(_or_unknown(payload.reason)), inline=False)
    return embed


def purge_embed(payload: PurgePayload) -> discord.Embed:
    moderator = _tag(payload.moderator)
    embed = _new_embed("🗑️ Messages Purged", COLOR_ORANGE, f"Messages purged by **{moderator}**")
    embed.add_field(name="👮 Moderator", value=moderator, inline=True)
    embed.add_field(name="💬 Channel", value=_channel_name(payload.channel), inline=True)
    embed.add_field(name="📊 Messages Deleted", value=_or_unknown(payload.message_count), inline=True)
    return embed


def _voice_embed(title: str, color: discord.Color, verb: str, payload: VoicePayload) -> discord.Embed:
    embed = _new_embed(title, color, f"**{_tag(payload.user)}** {verb} voice channel")
    embed.add_field(name="👤 User", value=_tag(payload.user), inline=True)
    embed.add_field(name="🎤 Channel", value=_channel_name(payload.channel), inline=True)
    return embed


def command_usage_embed(payload: CommandUsagePayload) -> discord.Embed:
    embed = _new_embed("📝 Command Used", COLOR_COMMAND, f"Command: `{_or_unknown(payload.command_name)}`")
    embed.add_field(name="👤 User", value=_tag(payload.user), inline=True)
    embed.add_field(name="📍 Channel", value=f"<#{_or_unknown(payload.channel_id)}>", inline=True)
    return embed


def generic_embed(kind: ActionKind, payload: Any) -> discord.Embed:
    """Fallback layout: the kind as title and the payload as a JSON block."""
    embed = _new_embed(f"📋 {kind.value.replace('_', ' ').upper()}", COLOR_GENERIC, "Action performed")
    try:
        data = asdict(payload) if is_dataclass(payload) else payload
        if isinstance(data, dict) and set(data) == {"details"}:
            data = data["details"]
        body = json.dumps(data, indent=2, default=str)[:1000]
        embed.add_field(name="📊 Event Details", value=f"```json\n{body}```", inline=False)
    except (TypeError, ValueError) as exc:
        embed.add_field(name="Error", value=f"Failed to format data: {exc}", inline=False)
    return embed


def create_embed(kind: ActionKind, payload: LogPayload) -> discord.Embed:
    """Render ``payload`` for ``kind``; exceptions propagate to the caller."""
    match kind, payload:
        case ActionKind.MESSAGE_EDIT, MessageEditPayload():
            return message_edit_embed(payload)
        case ActionKind.MESSAGE_DELETE, MessageDeletePayload():
            return message_delete_embed(payload)
        case ActionKind.MEMBER_JOIN, MemberJoinPayload():
            return member_join_embed(payload)
        case ActionKind.MEMBER_LEAVE, MemberLeavePayload():
            return member_leave_embed(payload)
        case (ActionKind.WARNING | ActionKind.WARNING_ADDED), WarningPayload():
            return warning_embed(payload)
        case ActionKind.WARNING_REMOVED, WarningRemovedPayload():
            return warning_removed_embed(payload)
        case ActionKind.BAN, ModerationPayload():
            return _moderation_embed("🔨 Member Banned", COLOR_BAN, "banned", payload)
        case ActionKind.KICK, ModerationPayload():
            return _moderation_embed("🦵 Member Kicked", COLOR_KICK, "kicked", payload)
        case ActionKind.TIMEOUT, TimeoutPayload():
            return timeout_embed(payload)
        case ActionKind.PURGE, PurgePayload():
            return purge_embed(payload)
        case ActionKind.VOICE_JOIN, VoicePayload():
            return _voice_embed("🔊 Voice Channel Joined", COLOR_GREEN, "joined", payload)
        case ActionKind.VOICE_LEAVE, VoicePayload():
            return _voice_embed("🔇 Voice Channel Left", COLOR_RED, "left", payload)
        case ActionKind.COMMAND_USAGE, CommandUsagePayload():
            return command_usage_embed(payload)
        case _:
            return generic_embed(kind, payload)


def logging_error_embed(kind: ActionKind, error: Exception) -> discord.Embed:
    """Embed posted in place of a record whose builder raised."""
    embed = _new_embed("🚨 Logging Error", COLOR_ERROR, f"Failed to create log embed for action: `{kind.value}`")
    embed.add_field(name="Error", value=f"```{error}```"[:1024], inline=False)
    return embed
