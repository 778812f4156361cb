"""
Blocked-word and blocked-domain policy documents.

Both documents are JSON objects keyed by guild id, with an optional
``"global"`` entry used by guilds that have no entry of their own. Values
missing from a stored policy fall back to the dataclass defaults, so older
documents keep working when new fields are added.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional
from urllib.parse import urlsplit

from modwatch.configuration.key_value_store import JsonFileStore, KeyValueStore
from modwatch.util.logger import get_logger

logger = get_logger("policy_config")

GLOBAL_KEY = "global"
SEVERITY_ORDER = ("minor", "moderate", "severe")
DEFAULT_SEVERITY = "minor"


def _default_severity_levels() -> Dict[str, List[str]]:
    return {level: [] for level in SEVERITY_ORDER}


def _default_thresholds() -> Dict[str, int]:
    return {"timeout": 3}


def _clean_terms(values: Any) -> List[str]:
    if not isinstance(values, (list, tuple, set)):
        return []
    cleaned = [str(value).strip().lower() for value in values]
    return [value for value in cleaned if value]


def _clean_levels(value: Any) -> Dict[str, List[str]]:
    levels = _default_severity_levels()
    if isinstance(value, dict):
        for level, terms in value.items():
            levels[str(level)] = _clean_terms(terms)
    return levels


def _clean_thresholds(value: Any) -> Dict[str, int]:
    thresholds = _default_thresholds()
    if isinstance(value, dict):
        for name, raw in value.items():
            try:
                thresholds[str(name)] = int(raw)
            except (TypeError, ValueError):
                logger.warning("[POLICY CONFIG] Ignoring invalid escalation threshold %s=%r", name, raw)
    return thresholds


@dataclass(slots=True)
class BlockedWordsConfig:
    """Per-guild blocked-word policy."""

    enabled: bool = False
    blocked_words: List[str] = field(default_factory=list)
    whitelist: List[str] = field(default_factory=list)
    severity_levels: Dict[str, List[str]] = field(default_factory=_default_severity_levels)
    auto_warn: bool = True
    auto_escalation: bool = False
    escalation_thresholds: Dict[str, int] = field(default_factory=_default_thresholds)
    bypass_admins: bool = True

    @classmethod
    def from_dict(cls, raw: Any) -> "BlockedWordsConfig":
        raw = raw if isinstance(raw, dict) else {}
        return cls(
            enabled=bool(raw.get("enabled", False)),
            blocked_words=_clean_terms(raw.get("blocked_words")),
            whitelist=_clean_terms(raw.get("whitelist")),
            severity_levels=_clean_levels(raw.get("severity_levels")),
            auto_warn=bool(raw.get("auto_warn", True)),
            auto_escalation=bool(raw.get("auto_escalation", False)),
            escalation_thresholds=_clean_thresholds(raw.get("escalation_thresholds")),
            bypass_admins=bool(raw.get("bypass_admins", True)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(slots=True)
class BlockedDomainsConfig:
    """Per-guild blocked-domain policy."""

    enabled: bool = False
    blocked_domains: List[str] = field(default_factory=list)
    whitelist: List[str] = field(default_factory=list)
    allowed_channels: List[int] = field(default_factory=list)
    severity_levels: Dict[str, List[str]] = field(default_factory=_default_severity_levels)
    auto_warn: bool = True
    auto_escalation: bool = False
    escalation_thresholds: Dict[str, int] = field(default_factory=_default_thresholds)
    delete_messages: bool = True

    @classmethod
    def from_dict(cls, raw: Any) -> "BlockedDomainsConfig":
        raw = raw if isinstance(raw, dict) else {}
        allowed: List[int] = []
        for channel_id in raw.get("allowed_channels") or []:
            try:
                allowed.append(int(channel_id))
            except (TypeError, ValueError):
                logger.warning("[POLICY CONFIG] Ignoring invalid allowed channel %r", channel_id)
        return cls(
            enabled=bool(raw.get("enabled", False)),
            blocked_domains=_clean_terms(raw.get("blocked_domains")),
            whitelist=_clean_terms(raw.get("whitelist")),
            allowed_channels=allowed,
            severity_levels=_clean_levels(raw.get("severity_levels")),
            auto_warn=bool(raw.get("auto_warn", True)),
            auto_escalation=bool(raw.get("auto_escalation", False)),
            escalation_thresholds=_clean_thresholds(raw.get("escalation_thresholds")),
            delete_messages=bool(raw.get("delete_messages", True)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _severity_for(term: Optional[str], levels: Dict[str, List[str]]) -> str:
    if not term:
        return DEFAULT_SEVERITY
    term = term.lower()
    ordered = [level for level in SEVERITY_ORDER if level in levels]
    ordered += [level for level in levels if level not in SEVERITY_ORDER]
    for level in ordered:
        if term in levels.get(level, []):
            return level
    return DEFAULT_SEVERITY


def get_severity_level(word: Optional[str], config: BlockedWordsConfig) -> str:
    """Return the severity tier listing ``word`` (``"minor"`` when none does)."""
    return _severity_for(word, config.severity_levels)


def get_domain_severity(domain: Optional[str], config: BlockedDomainsConfig) -> str:
    """Return the severity tier listing ``domain`` (``"minor"`` when none does)."""
    return _severity_for(domain, config.severity_levels)


def extract_domain(url: str) -> Optional[str]:
    """Return the lower-cased host of ``url`` without a leading ``www.``.

    Bare ``www.example.com/...`` links are accepted. Returns None when no host
    can be parsed.
    """
    if not url:
        return None
    candidate = url.strip()
    if not candidate.lower().startswith(("http://", "https://")):
        candidate = "http://" + candidate
    try:
        host = urlsplit(candidate).hostname
    except ValueError:
        return None
    if not host:
        return None
    host = host.lower()
    if host.startswith("www."):
        host = host[4:]
    return host or None


class PolicyConfigStore:
    """
    Read/update access to the blocked-word and blocked-domain documents.

    Policies are resolved per guild: the guild's own entry, then the
    ``"global"`` entry, then the built-in defaults (feature disabled).
    The documents may be edited by other tools while the bot runs; every
    lookup re-reads a document whose file changed since it was last loaded.
    """

    def __init__(self, words_store: KeyValueStore, domains_store: KeyValueStore) -> None:
        self.words_store = words_store
        self.domains_store = domains_store

    @classmethod
    def from_directory(cls, data_dir: Path) -> "PolicyConfigStore":
        return cls(
            JsonFileStore(Path(data_dir) / "blocked_words.json"),
            JsonFileStore(Path(data_dir) / "blocked_domains.json"),
        )

    @staticmethod
    def _lookup(store: KeyValueStore, guild_id: int | str | None) -> Any:
        if guild_id is not None:
            entry = store.get(str(guild_id))
            if entry is not None:
                return entry
        return store.get(GLOBAL_KEY)

    def blocked_words(self, guild_id: int | str | None = None) -> BlockedWordsConfig:
        self.words_store.refresh_if_changed()
        return BlockedWordsConfig.from_dict(self._lookup(self.words_store, guild_id))

    def blocked_domains(self, guild_id: int | str | None = None) -> BlockedDomainsConfig:
        self.domains_store.refresh_if_changed()
        return BlockedDomainsConfig.from_dict(self._lookup(self.domains_store, guild_id))

    @staticmethod
    def _merge(current: Any, changes: Dict[str, Any], allowed: set[str]) -> Dict[str, Any]:
        unknown = set(changes) - allowed
        if unknown:
            logger.warning("[POLICY CONFIG] Ignoring unknown policy fields: %s", ", ".join(sorted(unknown)))
        merged = dict(current)
        merged.update({key: value for key, value in changes.items() if key in allowed})
        return merged

    def update_blocked_words(self, guild_id: int | str, **changes: Any) -> bool:
        """Merge ``changes`` into the guild's blocked-word policy and persist it."""
        current = self.blocked_words(guild_id).to_dict()
        allowed = {field_def.name for field_def in fields(BlockedWordsConfig)}
        merged = BlockedWordsConfig.from_dict(self._merge(current, changes, allowed))
        return self.words_store.set(str(guild_id), merged.to_dict())

    def update_blocked_domains(self, guild_id: int | str, **changes: Any) -> bool:
        """Merge ``changes`` into the guild's blocked-domain policy and persist it."""
        current = self.blocked_domains(guild_id).to_dict()
        allowed = {field_def.name for field_def in fields(BlockedDomainsConfig)}
        merged = BlockedDomainsConfig.from_dict(self._merge(current, changes, allowed))
        return self.domains_store.set(str(guild_id), merged.to_dict())

    def reload(self) -> None:
        self.words_store.reload()
        self.domains_store.reload()
