"""
Small key-value persistence layer used by every per-guild document.

Callers only talk to :class:`KeyValueStore`. The default implementation,
:class:`JsonFileStore`, keeps the whole document in memory and rewrites the
file on every mutation (write-through, single writer, no locking). The
in-memory copy is the source of truth between loads, so a failed write never
rolls back the cached value.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple

from modwatch.util.logger import get_logger

logger = get_logger("key_value_store")

# (mtime_ns, size) of the file as last read or written
FileStamp = Optional[Tuple[int, int]]


class KeyValueStore(ABC):
    """Interface for a string-keyed document store."""

    @abstractmethod
    def get(self, key: str, default: Any = None) -> Any:
        """Return the value stored under ``key`` or ``default``."""

    @abstractmethod
    def set(self, key: str, value: Any) -> bool:
        """Store ``value`` under ``key``; return whether it was persisted."""

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Remove ``key``; return whether the store changed and was persisted."""

    @abstractmethod
    def items(self) -> List[Tuple[str, Any]]:
        """Return a snapshot of all entries."""

    @abstractmethod
    def reload(self) -> None:
        """Discard cached state and read the backing storage again."""

    def refresh_if_changed(self) -> bool:
        """Reload when the backing storage was changed by someone else; return whether it did."""
        return False

    def keys(self) -> List[str]:
        return [key for key, _ in self.items()]

    def __contains__(self, key: object) -> bool:
        return self.get(str(key), _MISSING) is not _MISSING

    def __iter__(self) -> Iterator[str]:
        return iter(self.keys())


_MISSING = object()


class MemoryStore(KeyValueStore):
    """Dict-backed store with no persistence."""

    def __init__(self, initial: Dict[str, Any] | None = None) -> None:
        self._data: Dict[str, Any] = dict(initial or {})

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(str(key), default)

    def set(self, key: str, value: Any) -> bool:
        self._data[str(key)] = value
        return True

    def delete(self, key: str) -> bool:
        return self._data.pop(str(key), _MISSING) is not _MISSING

    def items(self) -> List[Tuple[str, Any]]:
        return list(self._data.items())

    def reload(self) -> None:
        pass


class JsonFileStore(KeyValueStore):
    """
    Whole-document JSON store.

    The file holds one JSON object. It is read once on construction (and on
    :meth:`reload`); each :meth:`set` / :meth:`delete` rewrites the complete
    file synchronously. Missing files start empty; unreadable or non-object
    documents are logged and treated as empty. :meth:`refresh_if_changed`
    picks up edits made to the file by other writers.
    """

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        self._data: Dict[str, Any] = {}
        self._stamp: FileStamp = None
        self.reload()

    def _file_stamp(self) -> FileStamp:
        try:
            stat = self.path.stat()
        except OSError:
            return None
        return stat.st_mtime_ns, stat.st_size

    def reload(self) -> None:
        self._stamp = self._file_stamp()
        self._data = self._read()

    def refresh_if_changed(self) -> bool:
        """Re-read the file when its mtime or size differs from the last read or write."""
        if self._file_stamp() == self._stamp:
            return False
        logger.info("[KV STORE] %s changed on disk, reloading", self.path)
        self.reload()
        return True

    def _read(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with self.path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as exc:
            logger.error("[KV STORE] Failed to read %s, starting empty: %s", self.path, exc)
            return {}

        if not isinstance(data, dict):
            logger.error("[KV STORE] %s does not contain a JSON object, starting empty", self.path)
            return {}
        return {str(key): value for key, value in data.items()}

    def flush(self) -> bool:
        """Write the full cached document to disk."""
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("w", encoding="utf-8") as f:
                json.dump(self._data, f, indent=2)
        except (OSError, TypeError, ValueError) as exc:
            logger.error("[KV STORE] Failed to write %s: %s", self.path, exc)
            return False
        self._stamp = self._file_stamp()
        return True

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(str(key), default)

    def set(self, key: str, value: Any) -> bool:
        self._data[str(key)] = value
        return self.flush()

    def delete(self, key: str) -> bool:
        if self._data.pop(str(key), _MISSING) is _MISSING:
            return False
        return self.flush()

    def items(self) -> List[Tuple[str, Any]]:
        return list(self._data.items())
