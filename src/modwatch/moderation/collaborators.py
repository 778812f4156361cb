"""
Interfaces the moderation pipeline depends on, with default adapters.

The pipeline only talks to the protocols below. The default adapters keep
the bot usable on its own: role/permission based exemption, a JSON-backed
warning store, invite classification through the Discord API and simple
JSON-defined custom text commands.
"""

from __future__ import annotations

import datetime
import uuid
from typing import Any, Awaitable, Callable, Iterable, List, Protocol, runtime_checkable

import discord

from modwatch.configuration.key_value_store import KeyValueStore
from modwatch.datatypes.moderation_datatypes import WarningRecord
from modwatch.moderation.content_patterns import KEYWORD_REGEX
from modwatch.util.logger import get_logger

logger = get_logger("collaborators")

DownstreamFeature = Callable[[discord.Message], Awaitable[None]]


# ==========================================
# Protocols
# ==========================================

@runtime_checkable
class PermissionResolver(Protocol):
    async def has_admin_permissions(self, member: Any) -> bool: ...

    async def has_moderation_permissions(self, member: Any) -> bool: ...


@runtime_checkable
class WarningStore(Protocol):
    async def add_warning(
        self,
        guild_id: int,
        user_id: int,
        reason: str,
        issuer_id: int,
        severity: str,
        duration_seconds: int,
        client: Any = None,
    ) -> WarningRecord: ...

    async def get_user_warnings(self, guild_id: int, user_id: int) -> List[WarningRecord]: ...


@runtime_checkable
class InviteResolver(Protocol):
    async def is_adult_invite(self, client: Any, code: str) -> bool: ...


@runtime_checkable
class CustomCommandDispatcher(Protocol):
    async def dispatch(self, message: Any) -> bool: ...


# ==========================================
# Default adapters
# ==========================================

def _has_role(member: Any, role_ids: Iterable[int]) -> bool:
    wanted = set(role_ids)
    if not wanted:
        return False
    return any(getattr(role, "id", None) in wanted for role in getattr(member, "roles", []) or [])


class GuildPermissionResolver:
    """Permission resolver based on Discord permissions and configured role ids."""

    ADMIN_PERMISSIONS = ("administrator", "manage_guild")
    MODERATION_PERMISSIONS = ("moderate_members", "manage_messages", "kick_members")

    def __init__(self, admin_role_ids: Iterable[int] = (), moderator_role_ids: Iterable[int] = ()) -> None:
        self.admin_role_ids = list(admin_role_ids)
        self.moderator_role_ids = list(moderator_role_ids)

    @staticmethod
    def _has_any(member: Any, names: Iterable[str]) -> bool:
        perms = getattr(member, "guild_permissions", None)
        if perms is None:
            return False
        return any(getattr(perms, name, False) is True for name in names)

    async def has_admin_permissions(self, member: Any) -> bool:
        if member is None:
            return False
        return self._has_any(member, self.ADMIN_PERMISSIONS) or _has_role(member, self.admin_role_ids)

    async def has_moderation_permissions(self, member: Any) -> bool:
        if member is None:
            return False
        if await self.has_admin_permissions(member):
            return True
        return self._has_any(member, self.MODERATION_PERMISSIONS) or _has_role(member, self.moderator_role_ids)


class JsonWarningStore:
    """
    Warning storage over a :class:`KeyValueStore`.

    Layout: ``{guild_id: {user_id: [warning, ...]}}``. A duration of 0 stores a
    permanent warning.
    """

    def __init__(self, store: KeyValueStore) -> None:
        self.store = store

    def _guild_entry(self, guild_id: int) -> dict:
        entry = self.store.get(str(guild_id))
        return dict(entry) if isinstance(entry, dict) else {}

    async def add_warning(
        self,
        guild_id: int,
        user_id: int,
        reason: str,
        issuer_id: int,
        severity: str,
        duration_seconds: int,
        client: Any = None,
    ) -> WarningRecord:
        now = datetime.datetime.now(datetime.timezone.utc)
        expires_at = now + datetime.timedelta(seconds=duration_seconds) if duration_seconds > 0 else None
        warning = WarningRecord(
            id=uuid.uuid4().hex[:8],
            guild_id=int(guild_id),
            user_id=int(user_id),
            reason=reason,
            severity=severity,
            issuer_id=int(issuer_id or 0),
            created_at=now,
            expires_at=expires_at,
        )

        entry = self._guild_entry(guild_id)
        entry.setdefault(str(user_id), []).append(warning.to_dict())
        if not self.store.set(str(guild_id), entry):
            logger.error("[WARNINGS] Warning %s for user %s could not be persisted", warning.id, user_id)
        return warning

    async def get_user_warnings(self, guild_id: int, user_id: int) -> List[WarningRecord]:
        records = self._guild_entry(guild_id).get(str(user_id)) or []
        warnings: List[WarningRecord] = []
        for record in records:
            try:
                warnings.append(WarningRecord.from_dict(record))
            except (TypeError, ValueError) as exc:
                logger.warning("[WARNINGS] Skipping malformed warning record for %s: %s", user_id, exc)
        return warnings


class DiscordInviteResolver:
    """Classify an invite by fetching its target guild from Discord."""

    ADULT_NSFW_LEVELS = ("explicit", "age_restricted")

    async def is_adult_invite(self, client: Any, code: str) -> bool:
        try:
            invite = await client.fetch_invite(code)
        except discord.NotFound:
            return False
        except Exception as exc:
            logger.warning("[INVITES] Could not resolve invite %s: %s", code, exc)
            return False

        guild = getattr(invite, "guild", None)
        if guild is None:
            return False

        nsfw_level = getattr(guild, "nsfw_level", None)
        if getattr(nsfw_level, "name", None) in self.ADULT_NSFW_LEVELS:
            return True
        return bool(KEYWORD_REGEX.search(getattr(guild, "name", "") or ""))


class JsonCustomCommands:
    """
    Text commands defined per guild in ``custom_commands.json``.

    Layout: ``{guild_id: {name: {"enabled", "command_type", "prefix", "response"}}}``.
    Commands with ``command_type == "slash"`` are not dispatched from messages.
    """

    DEFAULT_PREFIX = "!"

    def __init__(self, store: KeyValueStore) -> None:
        self.store = store

    def _commands(self, guild_id: int) -> dict:
        commands = self.store.get(str(guild_id))
        return commands if isinstance(commands, dict) else {}

    async def _run(self, message: Any, name: str, command: dict) -> bool:
        response = command.get("response")
        if not response:
            return False
        try:
            await message.channel.send(str(response))
            return True
        except Exception as exc:
            logger.error("[CUSTOM COMMANDS] Failed to run %s: %s", name, exc)
            return False

    async def dispatch(self, message: Any) -> bool:
        guild = getattr(message, "guild", None)
        if guild is None:
            return False

        commands = self._commands(guild.id)
        content = message.content or ""
        lowered = content.lower()

        for name, command in commands.items():
            if not isinstance(command, dict) or not command.get("enabled", True):
                continue
            if command.get("command_type") == "slash":
                continue
            prefix = command.get("prefix") or self.DEFAULT_PREFIX
            if lowered.startswith(prefix + name.lower()) and await self._run(message, name, command):
                return True

        # Legacy "!name" form
        if content.startswith(self.DEFAULT_PREFIX):
            parts = content[1:].split(" ")
            name = parts[0].lower() if parts else ""
            if name:
                for stored_name, command in commands.items():
                    if stored_name.lower() != name or not isinstance(command, dict):
                        continue
                    if not command.get("enabled", True) or command.get("command_type") == "slash":
                        continue
                    return await self._run(message, stored_name, command)
        return False
