"""
Ordered moderation checks run on every guild message.

The checks run in a fixed priority order and the first one that enforces
stops processing, so a single message is never punished twice. Messages that
pass every check are handed to the downstream features (auto-reactions,
games, leveling, ...), each isolated from the others' failures.

Exempt actors (message-management permissions, or admin or moderator
permissions from the resolver, when the blocked-word policy allows bypass) skip every check except
the explicit keyword pattern, which is only logged for them.
"""

from __future__ import annotations

import datetime
import re
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Sequence

from modwatch.configuration.app_configuration import AppConfig
from modwatch.configuration.policy_config import (
    BlockedDomainsConfig,
    BlockedWordsConfig,
    PolicyConfigStore,
    extract_domain,
    get_domain_severity,
    get_severity_level,
)
from modwatch.datatypes.moderation_datatypes import PipelineResult, PipelineStage, ViolationKind
from modwatch.moderation import content_patterns as patterns
from modwatch.moderation.collaborators import (
    CustomCommandDispatcher,
    DownstreamFeature,
    InviteResolver,
    PermissionResolver,
)
from modwatch.moderation.spam_tracker import SpamTracker
from modwatch.moderation.suspicion_analyzer import (
    detect_bypass_attempt,
    detect_suspicious_formatting,
    suspicion_score,
)
from modwatch.moderation.violation_handler import ViolationHandler
from modwatch.util import discord_utils
from modwatch.util.logger import get_logger

logger = get_logger("moderation_pipeline")

HIGH_THREAT_SCORE = 25
SUSPICIOUS_SCORE = 15
NEW_ACCOUNT_HOURS = 24

_NON_WORD = re.compile(r"[^\w]")


@dataclass(slots=True)
class MessageAssessment:
    """Flags and heuristics computed once per message before the checks run."""

    is_admin: bool
    has_admin_perms: bool
    has_mod_perms: bool
    should_bypass_admin: bool
    score: int
    bypass_attempt: bool
    suspicious_formatting: bool
    account_age_hours: Optional[float]


def find_blocked_word(content: str, config: BlockedWordsConfig) -> Optional[str]:
    """
    Return the first blocked term found in ``content``.

    Tokens are whitespace separated, lower-cased and stripped of non-word
    characters. A token matches a term it equals or contains, so a term such
    as ``"ass"`` also fires on ``"class"``.
    """
    if not config.blocked_words:
        return None

    for word in content.lower().split():
        token = _NON_WORD.sub("", word)
        if not token or token in config.whitelist:
            continue
        term = patterns.first_blocked_term(token, config.blocked_words)
        if term is not None:
            return term
    return None


def find_blocked_domain(urls: Sequence[str], config: BlockedDomainsConfig) -> Optional[str]:
    for url in urls:
        domain = extract_domain(url)
        if not domain or domain in config.whitelist:
            continue
        if domain in config.blocked_domains:
            return domain
    return None


class ModerationPipeline:
    """Runs the moderation checks for one message at a time."""

    def __init__(
        self,
        app_config: AppConfig,
        policy_store: PolicyConfigStore,
        permission_resolver: PermissionResolver,
        violation_handler: ViolationHandler,
        spam_tracker: SpamTracker,
        invite_resolver: InviteResolver,
        custom_commands: Optional[CustomCommandDispatcher] = None,
        downstream_features: Sequence[DownstreamFeature] = (),
        client: Any = None,
        now: Callable[[], datetime.datetime] = lambda: datetime.datetime.now(datetime.timezone.utc),
    ) -> None:
        self.app_config = app_config
        self.policy_store = policy_store
        self.permission_resolver = permission_resolver
        self.violation_handler = violation_handler
        self.spam_tracker = spam_tracker
        self.invite_resolver = invite_resolver
        self.custom_commands = custom_commands
        self.downstream_features: List[DownstreamFeature] = list(downstream_features)
        self.client = client
        self.now = now

    def add_feature(self, feature: DownstreamFeature) -> None:
        self.downstream_features.append(feature)

    # --------------------------
    # Helpers
    # --------------------------
    async def _dispatch_custom_command(self, message: Any) -> bool:
        if self.custom_commands is None:
            return False
        try:
            return await self.custom_commands.dispatch(message)
        except Exception as exc:
            logger.error("[CUSTOM COMMANDS] Dispatch failed: %s", exc, exc_info=True)
            return False

    async def _has_admin_perms(self, member: Any) -> bool:
        try:
            return await self.permission_resolver.has_admin_permissions(member) is True
        except Exception as exc:
            logger.warning("[AUTO-MOD] Admin permission lookup failed for %s: %s", member, exc)
            return False

    async def _has_mod_perms(self, member: Any) -> bool:
        try:
            return await self.permission_resolver.has_moderation_permissions(member) is True
        except Exception as exc:
            logger.warning("[AUTO-MOD] Moderation permission lookup failed for %s: %s", member, exc)
            return False

    def _account_age_hours(self, author: Any) -> Optional[float]:
        created_at = getattr(author, "created_at", None)
        if not isinstance(created_at, datetime.datetime):
            return None
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=datetime.timezone.utc)
        return (self.now() - created_at).total_seconds() / 3600

    async def assess(self, message: Any, words_config: BlockedWordsConfig) -> MessageAssessment:
        author = message.author
        content = message.content or ""
        is_admin = discord_utils.has_elevated_permissions(author)
        has_admin_perms = await self._has_admin_perms(author)
        has_mod_perms = await self._has_mod_perms(author)
        created_at = getattr(author, "created_at", None)

        return MessageAssessment(
            is_admin=is_admin,
            has_admin_perms=has_admin_perms,
            has_mod_perms=has_mod_perms,
            should_bypass_admin=words_config.bypass_admins and (is_admin or has_admin_perms or has_mod_perms),
            score=suspicion_score(
                content,
                created_at if isinstance(created_at, datetime.datetime) else None,
                self.now(),
            ),
            bypass_attempt=detect_bypass_attempt(content),
            suspicious_formatting=detect_suspicious_formatting(content),
            account_age_hours=self._account_age_hours(author),
        )

    async def _violation(self, message: Any, kind: ViolationKind, force_timeout: bool = False) -> PipelineResult:
        await self.violation_handler.handle(message, kind, force_timeout)
        return PipelineResult(PipelineStage.VIOLATION, kind)

    # --------------------------
    # Policy enforcement
    # --------------------------
    async def _enforce_blocked_word(self, message: Any, term: str, config: BlockedWordsConfig) -> PipelineResult:
        severity = get_severity_level(term, config)
        handler = self.violation_handler
        logger.warning("[BLOCKED WORDS] Blocked word %r (%s) from %s", term, severity, message.author)

        await discord_utils.safe_delete_message(message)
        escalated = False
        if config.auto_warn:
            await handler.issue_warning(message, f'Used blocked word: "{term}" (severity: {severity})', severity)
            if config.auto_escalation:
                escalated = await handler.escalate(message, config.escalation_thresholds.get("timeout", 3))

        outcome = "You have been issued a warning." if config.auto_warn else "Please follow server rules."
        await handler.notify(
            message,
            f"🚨 {message.author.mention}, your message contained a blocked word (`{term}`) and has been removed. {outcome}",
        )
        await handler.log_policy_action(
            message,
            "blocked_word",
            "delete+escalate" if escalated else ("delete+warn" if config.auto_warn else "delete"),
            f'Blocked word "{term}" (severity: {severity})',
        )
        return PipelineResult(PipelineStage.BLOCKED_WORD, detail=term)

    async def _enforce_blocked_domain(self, message: Any, domain: str, config: BlockedDomainsConfig) -> PipelineResult:
        severity = get_domain_severity(domain, config)
        handler = self.violation_handler
        logger.warning("[BLOCKED DOMAINS] Blocked domain %r (%s) from %s", domain, severity, message.author)

        if config.delete_messages:
            await discord_utils.safe_delete_message(message)
        escalated = False
        if config.auto_warn:
            await handler.issue_warning(message, f'Posted blocked domain: "{domain}"', severity)
            if config.auto_escalation:
                escalated = await handler.escalate(message, config.escalation_thresholds.get("timeout", 3))

        verb = "removed" if config.delete_messages else "flagged"
        outcome = " You have been issued a warning." if config.auto_warn else ""
        await handler.notify(
            message,
            f"{message.author.mention}, your message contained a blocked domain and has been {verb}.{outcome}",
        )
        actions = ["delete" if config.delete_messages else "flag"]
        if config.auto_warn:
            actions.append("escalate" if escalated else "warn")
        await handler.log_policy_action(message, "blocked_domain", "+".join(actions), f'Blocked domain "{domain}" (severity: {severity})')
        return PipelineResult(PipelineStage.BLOCKED_DOMAIN, detail=domain)

    # --------------------------
    # Entry point
    # --------------------------
    async def handle(self, message: Any) -> PipelineResult:
        """Run every check against ``message`` and report where processing stopped."""
        if discord_utils.is_ignored_author(message.author) or message.guild is None:
            return PipelineResult(PipelineStage.SKIPPED)

        if await self._dispatch_custom_command(message):
            return PipelineResult(PipelineStage.CUSTOM_COMMAND)

        guild = message.guild
        author = message.author
        content = message.content or ""

        words_config = self.policy_store.blocked_words(guild.id)
        domains_config = self.policy_store.blocked_domains(guild.id)
        facts = await self.assess(message, words_config)

        logger.debug(
            "[SECURITY] User: %s, Suspicion Score: %d, Bypass: %s, Suspicious Format: %s, Admin: %s",
            author, facts.score, facts.bypass_attempt, facts.suspicious_formatting, facts.is_admin,
        )

        exempt = facts.should_bypass_admin
        # Every screened message counts towards the burst window, even one a
        # later check ends up punishing for something else.
        rapid = not facts.is_admin and self.spam_tracker.detect_rapid_posting(guild.id, author.id)

        if not exempt and words_config.enabled:
            term = find_blocked_word(content, words_config)
            if term is not None:
                return await self._enforce_blocked_word(message, term, words_config)

        if patterns.KEYWORD_REGEX.search(content) or patterns.PARTIAL_REGEX.search(content):
            if not facts.is_admin:
                return await self._violation(message, ViolationKind.BLOCKED_KEYWORD, True)
            logger.info("[AUTO-MOD] Admin bypass, not enforcing keyword block for %s", author)

        if not exempt and facts.bypass_attempt:
            return await self._violation(message, ViolationKind.BYPASS_ATTEMPT, True)

        if not exempt and facts.suspicious_formatting:
            return await self._violation(message, ViolationKind.SUSPICIOUS_FORMATTING, facts.score >= SUSPICIOUS_SCORE)

        if not exempt and facts.score >= HIGH_THREAT_SCORE:
            return await self._violation(message, ViolationKind.HIGH_THREAT, True)

        if (
            not exempt
            and facts.account_age_hours is not None
            and facts.account_age_hours < NEW_ACCOUNT_HOURS
            and facts.score >= SUSPICIOUS_SCORE
        ):
            return await self._violation(message, ViolationKind.ACCOUNT_TOO_NEW, True)

        if patterns.count_mentions(content) > self.app_config.max_mentions:
            if not exempt:
                return await self._violation(message, ViolationKind.PING_SPAM)
            logger.info("[AUTO-MOD] Admin bypass, not enforcing mention limit for %s", author)

        urls = patterns.find_urls(content)
        if urls:
            result = await self._check_links(message, urls, facts, domains_config, rapid)
            if result is not None:
                return result
        elif rapid:
            return await self._rapid_posting(message)

        if not facts.is_admin:
            for code in patterns.find_invite_codes(content):
                if await self._is_adult_invite(code):
                    return await self._violation(message, ViolationKind.ADULT_INVITE)

        await self.run_downstream(message)
        return PipelineResult(PipelineStage.PASSED)

    async def _check_links(
        self,
        message: Any,
        urls: List[str],
        facts: MessageAssessment,
        domains_config: BlockedDomainsConfig,
        rapid: bool = False,
    ) -> Optional[PipelineResult]:
        channel_id = message.channel.id

        if not facts.is_admin and domains_config.enabled and channel_id not in domains_config.allowed_channels:
            domain = find_blocked_domain(urls, domains_config)
            if domain is not None:
                return await self._enforce_blocked_domain(message, domain, domains_config)

        link_channel = self.app_config.allowed_link_channel
        if link_channel and channel_id != link_channel and not facts.is_admin:
            whitelist = self.app_config.whitelisted_link_domains
            for url in urls:
                if not patterns.is_whitelisted_url(url, whitelist) and patterns.is_adult_site(url):
                    return await self._violation(message, ViolationKind.ADULT_SITE)

        if facts.is_admin:
            return None

        guild_id = message.guild.id
        author_id = message.author.id
        age_seconds = facts.account_age_hours * 3600 if facts.account_age_hours is not None else None

        if self.spam_tracker.is_spamming(guild_id, author_id, age_seconds):
            return await self._violation(message, ViolationKind.LINK_SPAM, True)

        if rapid:
            return await self._rapid_posting(message)

        if self.spam_tracker.is_cross_channel_spam(guild_id, author_id, message.content or "", channel_id):
            return await self._violation(message, ViolationKind.CROSS_CHANNEL_SPAM, True)

        return None

    async def _rapid_posting(self, message: Any) -> PipelineResult:
        logger.info("[SECURITY] Rapid posting detected from %s", message.author)
        return await self._violation(message, ViolationKind.RAPID_POSTING, True)

    async def _is_adult_invite(self, code: str) -> bool:
        try:
            return bool(await self.invite_resolver.is_adult_invite(self.client, code))
        except Exception as exc:
            logger.warning("[INVITES] Invite check failed for %s: %s", code, exc)
            return False

    async def run_downstream(self, message: Any) -> None:
        for feature in self.downstream_features:
            try:
                await feature(message)
            except Exception as exc:
                name = getattr(feature, "__name__", type(feature).__name__)
                logger.error("[AUTO-MOD] Downstream feature %s failed: %s", name, exc, exc_info=True)
