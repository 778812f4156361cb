from __future__ import annotations
from dataclasses import dataclass, fields
from pathlib import Path
import fcntl
from typing import Any, Dict, List
import yaml

from modwatch.util.logger import get_logger

logger = get_logger("app_configuration")


CONFIG_PATH = Path("./config/app_config.yml").resolve()

DEFAULT_WHITELISTED_LINK_DOMAINS = [
    "youtube.com",
    "youtu.be",
    "discord.com",
    "discord.gg",
    "github.com",
    "tenor.com",
    "giphy.com",
    "imgur.com",
]


@dataclass(frozen=True, slots=True)
class SpamSettings:
    """Windows and thresholds for the spam tracker."""

    window_seconds: float = 60.0
    max_links: int = 3
    new_account_max_links: int = 1
    new_account_hours: float = 24.0
    dup_window_seconds: float = 300.0
    dup_channel_threshold: int = 3
    rapid_window_seconds: float = 10.0
    rapid_max_messages: int = 5
    max_tracked_keys: int = 10000

    @classmethod
    def from_mapping(cls, raw: Any) -> "SpamSettings":
        """Build settings from a YAML mapping, ignoring unknown or malformed keys."""
        if not isinstance(raw, dict):
            return cls()

        values: Dict[str, Any] = {}
        for field_def in fields(cls):
            if field_def.name not in raw:
                continue
            caster = int if field_def.type == "int" else float
            try:
                values[field_def.name] = caster(raw[field_def.name])
            except (TypeError, ValueError):
                logger.warning("[APP CONFIGURATION] Ignoring invalid spam setting %s=%r", field_def.name, raw[field_def.name])
        return cls(**values)


def _int_list(value: Any) -> List[int]:
    if not isinstance(value, list):
        return []
    result: List[int] = []
    for item in value:
        try:
            result.append(int(item))
        except (TypeError, ValueError):
            logger.warning("[APP CONFIGURATION] Ignoring non-numeric id %r", item)
    return result


class AppConfig:
    """File-lock based accessor around the YAML application configuration.

    The class caches the contents of ``./config/app_config.yml`` and exposes
    typed properties for the moderation pipeline (mention limit, link channel,
    spam windows) and the location of the per-guild JSON documents.
    Uses fcntl file locks for safe concurrent access across processes.
    """

    def __init__(self, config_path: Path) -> None:
        self.config_path = config_path
        self._data: Dict[str, Any] = {}
        self.reload()

    # --------------------------
    # Private helpers
    # --------------------------
    def load_from_disk(self) -> Dict[str, Any]:
        try:
            with self.config_path.open("r", encoding="utf-8") as f:
                fcntl.flock(f.fileno(), fcntl.LOCK_SH)
                try:
                    data = yaml.safe_load(f)
                finally:
                    fcntl.flock(f.fileno(), fcntl.LOCK_UN)
        except FileNotFoundError:
            logger.error("[APP CONFIGURATION] Config file %s not found.", self.config_path)
            return {}
        except Exception as exc:
            logger.error("[APP CONFIGURATION] Failed to load config %s: %s", self.config_path, exc)
            return {}

        if not isinstance(data, dict):
            if data is not None:
                logger.error("[APP CONFIGURATION] Config %s must be a mapping, got %s", self.config_path, type(data).__name__)
            return {}
        return data

    # --------------------------
    # Public API
    # --------------------------
    def reload(self) -> Dict[str, Any]:
        """Reload configuration from disk and return the loaded mapping.

        Returns the raw mapping that was loaded (an empty dict on error).
        """
        self._data = self.load_from_disk()
        return self._data

    @property
    def data(self) -> Dict[str, Any]:
        """Return the current cached configuration mapping (do not mutate)."""
        return self._data

    def get(self, key: str, default: Any = None) -> Any:
        """Safe lookup for top-level configuration keys."""
        return self._data.get(key, default)

    # --------------------------
    # High-level shortcuts
    # --------------------------
    @property
    def max_mentions(self) -> int:
        """Maximum user/role mentions allowed in one message (default 5)."""
        try:
            return int(self._data.get("max_mentions", 5))
        except (TypeError, ValueError):
            return 5

    @property
    def allowed_link_channel(self) -> int | None:
        """Channel id where links are allowed without the adult-site check, if any."""
        value = self._data.get("allowed_link_channel")
        if value in (None, ""):
            return None
        try:
            return int(value)
        except (TypeError, ValueError):
            logger.warning("[APP CONFIGURATION] allowed_link_channel %r is not a channel id", value)
            return None

    @property
    def data_dir(self) -> Path:
        """Directory holding the per-guild JSON documents."""
        return Path(str(self._data.get("data_dir") or "./data")).resolve()

    @property
    def whitelisted_link_domains(self) -> List[str]:
        """Domains that are never treated as adult sites."""
        value = self._data.get("whitelisted_link_domains")
        if not isinstance(value, list):
            return list(DEFAULT_WHITELISTED_LINK_DOMAINS)
        return [str(domain).lower() for domain in value if domain]

    @property
    def admin_role_ids(self) -> List[int]:
        return _int_list(self._data.get("admin_role_ids"))

    @property
    def moderator_role_ids(self) -> List[int]:
        return _int_list(self._data.get("moderator_role_ids"))

    @property
    def spam(self) -> SpamSettings:
        """Spam tracker windows; missing keys fall back to the defaults."""
        return SpamSettings.from_mapping(self._data.get("spam"))

    @property
    def violation_notice_seconds(self) -> float:
        """How long an in-channel violation notice stays up (default 10 seconds)."""
        try:
            return float(self._data.get("violation_notice_seconds", 10))
        except (TypeError, ValueError):
            return 10.0


# Shared application-wide configuration instance
app_config = AppConfig(CONFIG_PATH)
