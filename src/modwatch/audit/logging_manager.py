"""
Per-guild audit logging: which actions are logged, where they go, and the
dispatch of rendered embeds to the guild's log channel.

Two documents back the manager: ``logging_config.json`` (guild id → feature
flags) and ``log_channels.json`` (guild id → channel id). Both are held in
memory for the life of the process and written through on every change.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Iterable, Optional

import discord

from modwatch.audit import embed_factory
from modwatch.configuration.key_value_store import JsonFileStore, KeyValueStore
from modwatch.datatypes.action_datatypes import (
    ACTION_FLAGS,
    LOGGING_FLAGS,
    ActionKind,
    GuildLoggingConfig,
    LogEvent,
    LogPayload,
    default_logging_config,
)
from modwatch.util.discord_utils import bot_can_log_to
from modwatch.util.logger import get_logger

logger = get_logger("logging_manager")


class LoggingManager:
    """
    Owns the logging feature flags and log-channel assignments of every guild.

    Reading the config of a guild that has none materialises the defaults and
    persists them. Nothing public raises: failures come back as ``False`` or
    ``None`` and are written to the bot log.
    """

    def __init__(self, config_store: KeyValueStore, channel_store: KeyValueStore) -> None:
        self.config_store = config_store
        self.channel_store = channel_store

    @classmethod
    def from_directory(cls, data_dir: Path) -> "LoggingManager":
        return cls(
            JsonFileStore(Path(data_dir) / "logging_config.json"),
            JsonFileStore(Path(data_dir) / "log_channels.json"),
        )

    # --------------------------
    # Feature flags
    # --------------------------
    def get_config(self, guild_id: int | str | None) -> GuildLoggingConfig:
        """Return the guild's flags, creating and persisting the defaults on first access."""
        if guild_id is None:
            return default_logging_config()

        key = str(guild_id)
        cached = self.config_store.get(key)
        if isinstance(cached, dict):
            return cached

        config = default_logging_config()
        if not self.config_store.set(key, config):
            logger.error("[LOGGING MANAGER] Could not persist default logging config for guild %s", key)
        else:
            logger.info("[LOGGING MANAGER] Created default logging config for guild %s", key)
        return config

    def update_config(self, guild_id: int | str | None, updates: Optional[Dict[str, Any]]) -> bool:
        """
        Merge ``updates`` into the guild's flags and persist.

        Keys that are not logging flags, and values that are not real booleans,
        are dropped. Returns whether the document was written.
        """
        if guild_id is None or not updates:
            return False

        unknown = set(updates) - LOGGING_FLAGS
        if unknown:
            logger.warning("[LOGGING MANAGER] Ignoring unknown logging flags: %s", ", ".join(sorted(unknown)))

        accepted = {}
        for flag, value in updates.items():
            if flag not in LOGGING_FLAGS:
                continue
            if not isinstance(value, bool):
                logger.warning("[LOGGING MANAGER] Ignoring non-boolean value %r for %s", value, flag)
                continue
            accepted[flag] = value
        if not accepted:
            return False

        merged = dict(self.get_config(guild_id))
        merged.update(accepted)
        return self.config_store.set(str(guild_id), merged)

    def initialize_guild(self, guild_id: int | str) -> GuildLoggingConfig:
        return self.get_config(guild_id)

    def initialize_all_guilds(self, guilds: Iterable[Any]) -> int:
        """Materialise configs for every guild the bot is in; return how many were new."""
        created = 0
        for guild in guilds:
            key = str(guild.id)
            if key not in self.config_store:
                self.get_config(key)
                created += 1
        logger.info("[LOGGING MANAGER] Logging initialised for all guilds (%d new)", created)
        return created

    # --------------------------
    # Log channel
    # --------------------------
    def get_log_channel_id(self, guild_id: int | str) -> Optional[int]:
        raw = self.channel_store.get(str(guild_id))
        try:
            return int(raw) if raw is not None else None
        except (TypeError, ValueError):
            logger.warning("[LOGGING MANAGER] Stored log channel %r for guild %s is not an id", raw, guild_id)
            return None

    def set_log_channel(self, guild_id: int | str, channel_id: int | None) -> bool:
        """Assign (or with None, clear) the guild's log channel."""
        if channel_id is None:
            return self.channel_store.delete(str(guild_id))
        return self.channel_store.set(str(guild_id), str(channel_id))

    def get_log_channel(self, guild: Any) -> Optional[discord.abc.GuildChannel]:
        """
        Resolve the guild's log channel from its stored id.

        Returns None when no channel is configured, the channel no longer
        exists, or the bot cannot send embeds there. The live channel is
        never cached.
        """
        if guild is None:
            return None

        try:
            channel_id = self.get_log_channel_id(guild.id)
            if channel_id is None:
                logger.debug("[LOGGING MANAGER] No log channel configured for guild %s (%s)", guild.name, guild.id)
                return None

            channel = guild.get_channel(channel_id)
            if channel is None:
                logger.warning("[LOGGING MANAGER] Log channel %s not found in guild %s", channel_id, guild.name)
                return None

            if not bot_can_log_to(channel, guild):
                logger.warning("[LOGGING MANAGER] Missing permissions in log channel %s for guild %s", channel_id, guild.name)
                return None

            return channel
        except Exception as exc:
            logger.error("[LOGGING MANAGER] Error resolving log channel for guild %s: %s", getattr(guild, "id", "?"), exc)
            return None

    # --------------------------
    # Dispatch
    # --------------------------
    def should_log(self, guild: Any, kind: ActionKind, actor: Any = None) -> bool:
        if guild is None or kind is None:
            return False

        try:
            config = self.get_config(guild.id)
            if not config.get("enabled", False):
                return False

            if actor is not None:
                if getattr(actor, "bot", False) and not config.get("log_bot_messages", False):
                    return False

                actor_id = getattr(actor, "id", None)
                if actor_id is not None and actor_id == guild.owner_id and config.get("ignore_owner_actions", False):
                    return False

                if config.get("ignore_admin_actions", False) and actor_id is not None:
                    member = guild.get_member(actor_id)
                    perms = getattr(member, "guild_permissions", None)
                    if perms is not None and perms.administrator is True:
                        return False

            flag = ACTION_FLAGS.get(kind)
            if flag is None:
                return True
            return bool(config.get(flag, False))
        except Exception as exc:
            logger.error("[LOGGING MANAGER] Error checking whether to log %s: %s", kind, exc)
            return False

    def build_embed(self, kind: ActionKind, payload: LogPayload) -> discord.Embed:
        try:
            return embed_factory.create_embed(kind, payload)
        except Exception as exc:
            logger.error("[LOGGING MANAGER] Error creating embed for %s: %s", kind, exc, exc_info=True)
            return embed_factory.logging_error_embed(kind, exc)

    async def log_action(self, guild: Any, kind: ActionKind, payload: LogPayload, actor: Any = None) -> bool:
        """
        Gate, render and send one audit record.

        Returns True only when the embed reached the log channel.
        """
        if guild is None or kind is None or payload is None:
            logger.warning("[LOGGING MANAGER] Missing required parameters for log_action")
            return False

        try:
            if not self.should_log(guild, kind, actor):
                logger.debug("[LOGGING MANAGER] Skipping %s for guild %s: disabled or filtered", kind, guild.id)
                return False

            channel = self.get_log_channel(guild)
            if channel is None:
                return False

            embed = self.build_embed(kind, payload)
            await channel.send(embed=embed)
            logger.debug("[LOGGING MANAGER] Logged %s for guild %s", kind, guild.id)
            return True
        except Exception as exc:
            logger.error("[LOGGING MANAGER] Error logging %s for guild %s: %s", kind, getattr(guild, "id", "?"), exc)
            return False

    async def log_event(self, guild: Any, event: LogEvent) -> bool:
        return await self.log_action(guild, event.kind, event.payload, event.actor)

    def reload(self) -> None:
        self.config_store.reload()
        self.channel_store.reload()
