"""
Enforcement for violations detected by the moderation pipeline.

Each step (delete, warn, timeout, notify, log) is attempted independently;
a failure in one is logged and the remaining steps still run.
"""

from __future__ import annotations

from typing import Any, Optional

from modwatch.audit.logging_manager import LoggingManager
from modwatch.datatypes.action_datatypes import (
    ActionKind,
    AutomodPayload,
    ChannelRef,
    EscalationPayload,
    TimeoutPayload,
    UserRef,
)
from modwatch.datatypes.moderation_datatypes import VIOLATION_DETAILS, ViolationKind
from modwatch.moderation.collaborators import WarningStore
from modwatch.util import discord_utils
from modwatch.util.logger import get_logger

logger = get_logger("violation_handler")

ESCALATION_TIMEOUT_MINUTES = 24 * 60
ESCALATION_REASON = "Auto-escalation: Multiple warnings"


class ViolationHandler:
    """Deletes, warns, times out and reports a violating message."""

    def __init__(
        self,
        warning_store: WarningStore,
        logging_manager: LoggingManager,
        notice_seconds: float = 10,
        client: Any = None,
    ) -> None:
        self.warning_store = warning_store
        self.logging_manager = logging_manager
        self.notice_seconds = notice_seconds
        self.client = client

    def issuer_id(self, message: Any) -> int:
        user = getattr(self.client, "user", None) or getattr(message.guild, "me", None)
        return int(getattr(user, "id", 0) or 0)

    async def issue_warning(self, message: Any, reason: str, severity: str) -> bool:
        try:
            warning = await self.warning_store.add_warning(
                message.guild.id,
                message.author.id,
                reason,
                self.issuer_id(message),
                severity,
                0,
                self.client,
            )
            logger.info("[VIOLATIONS] Warning %s issued to %s", warning.id, message.author)
            return True
        except Exception as exc:
            logger.error("[VIOLATIONS] Failed to issue warning to %s: %s", message.author, exc)
            return False

    async def active_warning_count(self, guild_id: int, user_id: int) -> int:
        try:
            warnings = await self.warning_store.get_user_warnings(guild_id, user_id)
        except Exception as exc:
            logger.error("[VIOLATIONS] Failed to read warnings for %s: %s", user_id, exc)
            return 0
        return sum(1 for warning in warnings if warning.active)

    async def escalate(self, message: Any, threshold: int) -> bool:
        """
        Time the author out for 24 hours once their active warnings reach ``threshold``.

        Returns True when the timeout was applied and logged.
        """
        count = await self.active_warning_count(message.guild.id, message.author.id)
        if count < threshold:
            return False

        logger.info("[AUTO-ESCALATION] %s has %d active warnings, escalating to timeout", message.author, count)
        if not await discord_utils.safe_timeout_member(message.author, ESCALATION_TIMEOUT_MINUTES, ESCALATION_REASON):
            return False

        await self.logging_manager.log_action(
            message.guild,
            ActionKind.AUTO_ESCALATION,
            EscalationPayload(
                user=UserRef.from_user(message.author),
                action="timeout",
                duration="24 hours",
                reason=ESCALATION_REASON,
                warning_count=count,
            ),
            message.author,
        )
        return True

    async def handle(self, message: Any, kind: ViolationKind, force_timeout: bool = False) -> None:
        """Enforce ``kind`` against ``message``; never raises."""
        details = VIOLATION_DETAILS[kind]
        author = message.author
        logger.info("[VIOLATIONS] %s by %s in guild %s (timeout=%s)", kind, author, message.guild.id, force_timeout)

        try:
            await discord_utils.safe_delete_message(message)
            await self.issue_warning(message, details.reason, details.severity)

            timed_out = False
            if force_timeout:
                timed_out = await discord_utils.safe_timeout_member(author, details.timeout_minutes, details.reason)

            if timed_out:
                outcome = f"You have been timed out for {details.timeout_minutes} minutes."
            else:
                outcome = "You have been issued a warning."
            await discord_utils.send_transient_message(
                message.channel,
                f"🚨 {author.mention}, your message was removed: {details.reason}. {outcome}",
                self.notice_seconds,
                mention=author,
            )

            await self._log(message, kind, timed_out)
        except Exception as exc:
            logger.error("[VIOLATIONS] Unexpected error handling %s for %s: %s", kind, author, exc, exc_info=True)

    async def _log(self, message: Any, kind: ViolationKind, timed_out: bool) -> None:
        details = VIOLATION_DETAILS[kind]
        user = UserRef.from_user(message.author)
        if timed_out:
            await self.logging_manager.log_action(
                message.guild,
                ActionKind.TIMEOUT,
                TimeoutPayload(
                    user=user,
                    moderator=None,
                    duration=discord_utils.format_duration(details.timeout_minutes * 60),
                    reason=f"{details.reason} ({kind})",
                ),
                message.author,
            )
            return

        await self.logging_manager.log_action(
            message.guild,
            ActionKind.AUTOMOD_ACTION,
            AutomodPayload(
                user=user,
                channel=ChannelRef.from_channel(message.channel),
                violation=kind.value,
                action="delete+warn",
                reason=details.reason,
                content=discord_utils.truncate_text(message.content or "", 500),
            ),
            message.author,
        )

    async def log_policy_action(
        self,
        message: Any,
        violation: str,
        action: str,
        reason: str,
    ) -> None:
        """Record a blocked-word or blocked-domain enforcement."""
        await self.logging_manager.log_action(
            message.guild,
            ActionKind.AUTOMOD_ACTION,
            AutomodPayload(
                user=UserRef.from_user(message.author),
                channel=ChannelRef.from_channel(message.channel),
                violation=violation,
                action=action,
                reason=reason,
                content=discord_utils.truncate_text(message.content or "", 500),
            ),
            message.author,
        )

    async def notify(self, message: Any, content: str, seconds: Optional[float] = None) -> bool:
        return await discord_utils.send_transient_message(
            message.channel,
            content,
            self.notice_seconds if seconds is None else seconds,
            mention=message.author,
        )
