"""In-memory rate and duplicate tracking for the link/posting spam checks.

State is keyed by ``(guild_id, user_id)`` and lives only for the lifetime of
the process. Each call prunes the window of the key it touches; keys that go
quiet are dropped by :meth:`SpamTracker.sweep`, which also runs on its own
once the number of tracked keys passes ``max_tracked_keys``.
"""

from __future__ import annotations

import time
from collections import defaultdict, deque
from typing import Callable, DefaultDict, Deque, Dict, Set, Tuple

from modwatch.configuration.app_configuration import SpamSettings
from modwatch.util.logger import get_logger

logger = get_logger("spam_tracker")

TrackerKey = Tuple[int, int]


def _prune(timestamps: Deque[float], cutoff: float) -> None:
    while timestamps and timestamps[0] < cutoff:
        timestamps.popleft()


def _duplicate_key(content: str) -> str:
    return " ".join((content or "").lower().split())


class SpamTracker:
    """Sliding-window counters for link posts, message bursts and cross-posting."""

    def __init__(self, settings: SpamSettings | None = None, clock: Callable[[], float] = time.monotonic) -> None:
        """
        Parameters
        ----------
        settings:
            Window lengths and thresholds; defaults to :class:`SpamSettings`.
        clock:
            Monotonic time source in seconds, injectable for tests.
        """
        self.settings = settings or SpamSettings()
        self.clock = clock
        self.link_posts: DefaultDict[TrackerKey, Deque[float]] = defaultdict(deque)
        self.messages: DefaultDict[TrackerKey, Deque[float]] = defaultdict(deque)
        # content -> (first seen, channel ids)
        self.duplicates: DefaultDict[TrackerKey, Dict[str, Tuple[float, Set[int]]]] = defaultdict(dict)

    def tracked_keys(self) -> int:
        return len(self.link_posts) + len(self.messages) + len(self.duplicates)

    def _maybe_sweep(self) -> None:
        if self.tracked_keys() > self.settings.max_tracked_keys:
            removed = self.sweep()
            logger.debug("[SPAM TRACKER] Swept %d idle keys", removed)

    def is_spamming(self, guild_id: int, user_id: int, account_age_seconds: float | None = None) -> bool:
        """Record one link post and report whether the link rate limit is exceeded.

        Accounts younger than ``new_account_hours`` get the stricter
        ``new_account_max_links`` limit.
        """
        now = self.clock()
        key = (guild_id, user_id)
        posts = self.link_posts[key]
        _prune(posts, now - self.settings.window_seconds)
        posts.append(now)

        limit = self.settings.max_links
        if account_age_seconds is not None and account_age_seconds < self.settings.new_account_hours * 3600:
            limit = self.settings.new_account_max_links

        self._maybe_sweep()
        return len(posts) > limit

    def detect_rapid_posting(self, guild_id: int, user_id: int) -> bool:
        """Record one message and report whether the burst limit is exceeded."""
        now = self.clock()
        key = (guild_id, user_id)
        stamps = self.messages[key]
        _prune(stamps, now - self.settings.rapid_window_seconds)
        stamps.append(now)

        self._maybe_sweep()
        return len(stamps) > self.settings.rapid_max_messages

    def is_cross_channel_spam(self, guild_id: int, user_id: int, content: str, channel_id: int) -> bool:
        """Report whether the same content has now appeared in too many channels."""
        text = _duplicate_key(content)
        if not text:
            return False

        now = self.clock()
        key = (guild_id, user_id)
        seen = self.duplicates[key]
        cutoff = now - self.settings.dup_window_seconds
        for stale in [entry for entry, (first, _) in seen.items() if first < cutoff]:
            del seen[stale]

        first_seen, channels = seen.get(text, (now, set()))
        channels.add(channel_id)
        seen[text] = (first_seen, channels)

        self._maybe_sweep()
        return len(channels) >= self.settings.dup_channel_threshold

    def sweep(self) -> int:
        """Drop every key whose windows have fully expired; return how many went."""
        now = self.clock()
        removed = 0

        for key in list(self.link_posts):
            _prune(self.link_posts[key], now - self.settings.window_seconds)
            if not self.link_posts[key]:
                del self.link_posts[key]
                removed += 1

        for key in list(self.messages):
            _prune(self.messages[key], now - self.settings.rapid_window_seconds)
            if not self.messages[key]:
                del self.messages[key]
                removed += 1

        cutoff = now - self.settings.dup_window_seconds
        for key in list(self.duplicates):
            seen = self.duplicates[key]
            for stale in [entry for entry, (first, _) in seen.items() if first < cutoff]:
                del seen[stale]
            if not seen:
                del self.duplicates[key]
                removed += 1

        return removed

    def reset(self) -> None:
        self.link_posts.clear()
        self.messages.clear()
        self.duplicates.clear()
