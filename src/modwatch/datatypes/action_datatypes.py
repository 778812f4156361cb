"""
Action kinds and payload structures for audit-log records.

This module defines the closed :class:`ActionKind` enumeration, the fixed
action-to-flag table consulted by the logging manager, and one payload
dataclass per family of actions. Every payload field is optional; the embed
factory renders a missing value as ``"Unknown"``.
"""

from __future__ import annotations

import datetime
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union


class ActionKind(Enum):
    """Enumeration of every action that can be written to a guild log channel."""

    MESSAGE_EDIT = "message_edit"
    MESSAGE_DELETE = "message_delete"
    MEMBER_JOIN = "member_join"
    MEMBER_LEAVE = "member_leave"
    WARNING = "warning"
    WARNING_ADDED = "warning_added"
    WARNING_REMOVED = "warning_removed"
    WARNING_APPEAL = "warning_appeal"
    BAN = "ban"
    KICK = "kick"
    TIMEOUT = "timeout"
    PURGE = "purge"
    ROLE_CHANGE = "role_change"
    CHANNEL_CHANGE = "channel_change"
    ADMIN_ACTION = "admin_action"
    AUTOMOD_ACTION = "automod_action"
    AUTO_ESCALATION = "auto_escalation"
    VOICE_JOIN = "voice_join"
    VOICE_LEAVE = "voice_leave"
    VOICE_MOVE = "voice_move"
    NICKNAME_CHANGE = "nickname_change"
    AVATAR_CHANGE = "avatar_change"
    EMOJI_CREATE = "emoji_create"
    EMOJI_DELETE = "emoji_delete"
    EMOJI_UPDATE = "emoji_update"
    STICKER_CREATE = "sticker_create"
    STICKER_DELETE = "sticker_delete"
    STICKER_UPDATE = "sticker_update"
    THREAD_CREATE = "thread_create"
    THREAD_DELETE = "thread_delete"
    THREAD_UPDATE = "thread_update"
    INVITE_CREATE = "invite_create"
    INVITE_DELETE = "invite_delete"
    WEBHOOK_CREATE = "webhook_create"
    WEBHOOK_DELETE = "webhook_delete"
    WEBHOOK_UPDATE = "webhook_update"
    COMMAND_USAGE = "command_usage"
    BUTTON_INTERACTION = "button_interaction"
    MODAL_INTERACTION = "modal_interaction"

    def __str__(self) -> str:
        return self.value


# Feature flags of a guild logging config, with their defaults.
DEFAULT_LOGGING_FLAGS: Dict[str, bool] = {
    "enabled": True,
    "log_bot_messages": False,
    "log_message_edits": True,
    "log_message_deletes": True,
    "log_member_joins": True,
    "log_member_leaves": True,
    "log_warnings": True,
    "log_bans": True,
    "log_kicks": True,
    "log_timeouts": True,
    "log_role_changes": True,
    "log_channel_changes": True,
    "log_admin_actions": True,
    "ignore_admin_actions": False,
    "ignore_owner_actions": False,
    "log_automod_actions": True,
    "log_voice_events": True,
    "log_nickname_changes": True,
    "log_avatar_changes": True,
    "log_emoji_changes": True,
    "log_sticker_changes": True,
    "log_thread_events": True,
    "log_invite_events": True,
    "log_webhook_events": True,
    "log_command_usage": True,
    "log_button_interactions": False,
    "log_modal_interactions": False,
}

LOGGING_FLAGS = frozenset(DEFAULT_LOGGING_FLAGS)

GuildLoggingConfig = Dict[str, bool]


def default_logging_config() -> GuildLoggingConfig:
    """Return a fresh copy of the default per-guild logging config."""
    return dict(DEFAULT_LOGGING_FLAGS)


# Kinds missing from this table are logged whenever logging is enabled.
ACTION_FLAGS: Dict[ActionKind, str] = {
    ActionKind.MESSAGE_EDIT: "log_message_edits",
    ActionKind.MESSAGE_DELETE: "log_message_deletes",
    ActionKind.MEMBER_JOIN: "log_member_joins",
    ActionKind.MEMBER_LEAVE: "log_member_leaves",
    ActionKind.WARNING: "log_warnings",
    ActionKind.WARNING_ADDED: "log_warnings",
    ActionKind.WARNING_REMOVED: "log_warnings",
    ActionKind.WARNING_APPEAL: "log_warnings",
    ActionKind.BAN: "log_bans",
    ActionKind.KICK: "log_kicks",
    ActionKind.TIMEOUT: "log_timeouts",
    ActionKind.ROLE_CHANGE: "log_role_changes",
    ActionKind.CHANNEL_CHANGE: "log_channel_changes",
    ActionKind.ADMIN_ACTION: "log_admin_actions",
    ActionKind.AUTOMOD_ACTION: "log_automod_actions",
    ActionKind.VOICE_JOIN: "log_voice_events",
    ActionKind.VOICE_LEAVE: "log_voice_events",
    ActionKind.VOICE_MOVE: "log_voice_events",
    ActionKind.NICKNAME_CHANGE: "log_nickname_changes",
    ActionKind.AVATAR_CHANGE: "log_avatar_changes",
    ActionKind.EMOJI_CREATE: "log_emoji_changes",
    ActionKind.EMOJI_DELETE: "log_emoji_changes",
    ActionKind.EMOJI_UPDATE: "log_emoji_changes",
    ActionKind.STICKER_CREATE: "log_sticker_changes",
    ActionKind.STICKER_DELETE: "log_sticker_changes",
    ActionKind.STICKER_UPDATE: "log_sticker_changes",
    ActionKind.THREAD_CREATE: "log_thread_events",
    ActionKind.THREAD_DELETE: "log_thread_events",
    ActionKind.THREAD_UPDATE: "log_thread_events",
    ActionKind.INVITE_CREATE: "log_invite_events",
    ActionKind.INVITE_DELETE: "log_invite_events",
    ActionKind.WEBHOOK_CREATE: "log_webhook_events",
    ActionKind.WEBHOOK_DELETE: "log_webhook_events",
    ActionKind.WEBHOOK_UPDATE: "log_webhook_events",
    ActionKind.COMMAND_USAGE: "log_command_usage",
    ActionKind.BUTTON_INTERACTION: "log_button_interactions",
    ActionKind.MODAL_INTERACTION: "log_modal_interactions",
    ActionKind.PURGE: "log_message_deletes",
}


# ==========================================
# Payload references
# ==========================================

@dataclass(slots=True)
class UserRef:
    """Snapshot of a user or member taken when the event happened."""

    id: Optional[int] = None
    tag: Optional[str] = None
    mention: Optional[str] = None
    avatar_url: Optional[str] = None
    created_at: Optional[datetime.datetime] = None
    bot: bool = False

    @classmethod
    def from_user(cls, user: Any) -> Optional["UserRef"]:
        """Build a reference from a Discord user/member; None stays None."""
        if user is None:
            return None
        avatar = getattr(user, "display_avatar", None)
        avatar_url = getattr(avatar, "url", None)
        return cls(
            id=getattr(user, "id", None),
            tag=str(user),
            mention=getattr(user, "mention", None),
            avatar_url=str(avatar_url) if avatar_url else None,
            created_at=getattr(user, "created_at", None),
            bot=bool(getattr(user, "bot", False)),
        )


@dataclass(slots=True)
class ChannelRef:
    """Snapshot of a channel."""

    id: Optional[int] = None
    name: Optional[str] = None

    @classmethod
    def from_channel(cls, channel: Any) -> Optional["ChannelRef"]:
        if channel is None:
            return None
        return cls(id=getattr(channel, "id", None), name=getattr(channel, "name", None))


# ==========================================
# Per-kind payloads
# ==========================================

@dataclass(slots=True)
class MessageEditPayload:
    author: Optional[UserRef] = None
    channel: Optional[ChannelRef] = None
    old_content: Optional[str] = None
    new_content: Optional[str] = None


@dataclass(slots=True)
class MessageDeletePayload:
    author: Optional[UserRef] = None
    channel: Optional[ChannelRef] = None
    content: Optional[str] = None


@dataclass(slots=True)
class MemberJoinPayload:
    user: Optional[UserRef] = None
    member_count: Optional[int] = None
    account_created_at: Optional[datetime.datetime] = None
    joined_at: Optional[datetime.datetime] = None


@dataclass(slots=True)
class MemberLeavePayload:
    user: Optional[UserRef] = None
    member_count: Optional[int] = None
    roles: List[str] = field(default_factory=list)
    joined_at: Optional[datetime.datetime] = None
    left_at: Optional[datetime.datetime] = None


@dataclass(slots=True)
class WarningPayload:
    user: Optional[UserRef] = None
    moderator: Optional[UserRef] = None
    reason: Optional[str] = None
    warning_id: Optional[str] = None


@dataclass(slots=True)
class WarningRemovedPayload:
    user: Optional[UserRef] = None
    moderator: Optional[UserRef] = None
    warning_id: Optional[str] = None
    removal_reason: Optional[str] = None


@dataclass(slots=True)
class ModerationPayload:
    """Ban and kick records."""

    user: Optional[UserRef] = None
    moderator: Optional[UserRef] = None
    reason: Optional[str] = None


@dataclass(slots=True)
class TimeoutPayload:
    user: Optional[UserRef] = None
    moderator: Optional[UserRef] = None
    duration: Optional[str] = None
    reason: Optional[str] = None


@dataclass(slots=True)
class PurgePayload:
    moderator: Optional[UserRef] = None
    channel: Optional[ChannelRef] = None
    message_count: Optional[int] = None


@dataclass(slots=True)
class VoicePayload:
    user: Optional[UserRef] = None
    channel: Optional[ChannelRef] = None


@dataclass(slots=True)
class CommandUsagePayload:
    user: Optional[UserRef] = None
    command_name: Optional[str] = None
    channel_id: Optional[int] = None


@dataclass(slots=True)
class AutomodPayload:
    """An automatic enforcement taken by the moderation pipeline."""

    user: Optional[UserRef] = None
    channel: Optional[ChannelRef] = None
    violation: Optional[str] = None
    action: Optional[str] = None
    reason: Optional[str] = None
    content: Optional[str] = None


@dataclass(slots=True)
class EscalationPayload:
    user: Optional[UserRef] = None
    action: Optional[str] = None
    duration: Optional[str] = None
    reason: Optional[str] = None
    warning_count: Optional[int] = None


@dataclass(slots=True)
class GenericPayload:
    """Free-form details for kinds without a dedicated structure."""

    details: Dict[str, Any] = field(default_factory=dict)


LogPayload = Union[
    MessageEditPayload,
    MessageDeletePayload,
    MemberJoinPayload,
    MemberLeavePayload,
    WarningPayload,
    WarningRemovedPayload,
    ModerationPayload,
    TimeoutPayload,
    PurgePayload,
    VoicePayload,
    CommandUsagePayload,
    AutomodPayload,
    EscalationPayload,
    GenericPayload,
]


@dataclass(slots=True)
class LogEvent:
    """One audit-log record on its way to a guild log channel."""

    kind: ActionKind
    payload: LogPayload
    actor: Any = None
