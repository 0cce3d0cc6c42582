"""CacheLayer — optional in-memory projection of current component content.

Never authoritative: the backend is the source of truth. The store
writes through on every successful write and drops entries on clear.
"""

from __future__ import annotations

import threading
from datetime import datetime, timezone

import structlog

from memorybank.schemas.component import CacheStats

logger = structlog.get_logger()


class CacheLayer:
    """Thread-safe read-through cache with hit/miss counters.

    When disabled, every get() is a miss and every set() is a no-op.
    """

    def __init__(self, enabled: bool = False) -> None:
        self._enabled = enabled
        self._lock = threading.RLock()
        self._data: dict[str, str] = {}
        self._hits = 0
        self._misses = 0
        self._last_cleared_at = datetime.now(timezone.utc)

    @property
    def enabled(self) -> bool:
        return self._enabled

    def get(self, component_id: str) -> str | None:
        """Return cached content, or None on a miss."""
        with self._lock:
            if self._enabled and component_id in self._data:
                self._hits += 1
                return self._data[component_id]
            self._misses += 1
            return None

    def set(self, component_id: str, content: str) -> None:
        if not self._enabled:
            return
        with self._lock:
            self._data[component_id] = content

    def invalidate(self, component_id: str) -> bool:
        """Drop one entry. Returns True if it was cached."""
        with self._lock:
            return self._data.pop(component_id, None) is not None

    def clear(self) -> int:
        """Drop every entry and stamp last_cleared_at. Returns entries dropped."""
        with self._lock:
            dropped = len(self._data)
            self._data.clear()
            self._last_cleared_at = datetime.now(timezone.utc)
        logger.info("Component cache cleared", dropped=dropped)
        return dropped

    def stats(self) -> CacheStats:
        with self._lock:
            lookups = self._hits + self._misses
            return CacheStats(
                enabled=self._enabled,
                hits=self._hits,
                misses=self._misses,
                last_cleared_at=self._last_cleared_at,
                size=len(self._data),
                ratio=(self._hits / lookups) if lookups else None,
            )

    def __contains__(self, component_id: object) -> bool:
        with self._lock:
            return component_id in self._data

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)
