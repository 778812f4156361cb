"""
Violation kinds, warning records and pipeline outcomes.

Key Features:
- `ViolationKind`: the fixed set of automatic moderation violations.
- `VIOLATION_DETAILS`: user-facing reason, warning severity and timeout length per kind.
- `WarningRecord`: a stored warning with removal/expiry state.
- `PipelineResult`: which stage of the moderation pipeline settled a message.
"""

from __future__ import annotations

import datetime
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


class ViolationKind(Enum):
    """Automatic violations detected by the moderation pipeline."""

    BLOCKED_KEYWORD = "blocked_keyword"
    BYPASS_ATTEMPT = "bypass_attempt"
    SUSPICIOUS_FORMATTING = "suspicious_formatting"
    HIGH_THREAT = "high_threat"
    ACCOUNT_TOO_NEW = "account_too_new"
    PING_SPAM = "ping_spam"
    ADULT_SITE = "adult_site"
    LINK_SPAM = "link_spam"
    RAPID_POSTING = "rapid_posting"
    CROSS_CHANNEL_SPAM = "cross_channel_spam"
    ADULT_INVITE = "adult_invite"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True, slots=True)
class ViolationDetails:
    """Static description of how a violation kind is reported and punished.

    Attributes:
        reason (str): Text shown to the user and stored on the warning.
        severity (str): Warning severity tier (minor, moderate or severe).
        timeout_minutes (int): Timeout applied when the violation forces one.
    """

    reason: str
    severity: str
    timeout_minutes: int


VIOLATION_DETAILS: Dict[ViolationKind, ViolationDetails] = {
    ViolationKind.BLOCKED_KEYWORD: ViolationDetails("Posting explicit content", "severe", 60),
    ViolationKind.BYPASS_ATTEMPT: ViolationDetails("Attempting to bypass the content filter", "severe", 30),
    ViolationKind.SUSPICIOUS_FORMATTING: ViolationDetails("Suspicious message formatting", "minor", 10),
    ViolationKind.HIGH_THREAT: ViolationDetails("Message flagged as high risk", "severe", 60),
    ViolationKind.ACCOUNT_TOO_NEW: ViolationDetails("Suspicious content from a new account", "moderate", 60),
    ViolationKind.PING_SPAM: ViolationDetails("Mentioning too many users", "moderate", 10),
    ViolationKind.ADULT_SITE: ViolationDetails("Posting adult website links", "severe", 30),
    ViolationKind.LINK_SPAM: ViolationDetails("Posting links too quickly", "moderate", 30),
    ViolationKind.RAPID_POSTING: ViolationDetails("Sending messages too quickly", "minor", 10),
    ViolationKind.CROSS_CHANNEL_SPAM: ViolationDetails("Posting the same message across channels", "moderate", 30),
    ViolationKind.ADULT_INVITE: ViolationDetails("Posting invites to adult servers", "severe", 60),
}


@dataclass(slots=True)
class WarningRecord:
    """A warning issued to a guild member.

    ``expires_at`` of None marks a permanent warning. Removed or expired
    warnings no longer count towards escalation thresholds.
    """

    id: str
    guild_id: int
    user_id: int
    reason: str
    severity: str = "minor"
    issuer_id: int = 0
    created_at: Optional[datetime.datetime] = None
    expires_at: Optional[datetime.datetime] = None
    removed: bool = False

    @property
    def expired(self) -> bool:
        if self.expires_at is None:
            return False
        expires_at = self.expires_at
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=datetime.timezone.utc)
        return datetime.datetime.now(datetime.timezone.utc) >= expires_at

    @property
    def active(self) -> bool:
        return not self.removed and not self.expired

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "guild_id": self.guild_id,
            "user_id": self.user_id,
            "reason": self.reason,
            "severity": self.severity,
            "issuer_id": self.issuer_id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
            "removed": self.removed,
        }

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "WarningRecord":
        def _parse(value: Any) -> Optional[datetime.datetime]:
            if not value:
                return None
            return datetime.datetime.fromisoformat(str(value))

        return cls(
            id=str(raw.get("id", "")),
            guild_id=int(raw.get("guild_id", 0)),
            user_id=int(raw.get("user_id", 0)),
            reason=str(raw.get("reason", "")),
            severity=str(raw.get("severity", "minor")),
            issuer_id=int(raw.get("issuer_id", 0)),
            created_at=_parse(raw.get("created_at")),
            expires_at=_parse(raw.get("expires_at")),
            removed=bool(raw.get("removed", False)),
        )


class PipelineStage(Enum):
    """Where the moderation pipeline stopped for a message."""

    SKIPPED = "skipped"
    CUSTOM_COMMAND = "custom_command"
    BLOCKED_WORD = "blocked_word"
    BLOCKED_DOMAIN = "blocked_domain"
    VIOLATION = "violation"
    PASSED = "passed"

    def __str__(self) -> str:
        return self.value


@dataclass(slots=True)
class PipelineResult:
    stage: PipelineStage
    violation: Optional[ViolationKind] = None
    detail: Optional[str] = None

    @property
    def enforced(self) -> bool:
        """True when the message was acted on by a moderation check."""
        return self.stage in (PipelineStage.BLOCKED_WORD, PipelineStage.BLOCKED_DOMAIN, PipelineStage.VIOLATION)
