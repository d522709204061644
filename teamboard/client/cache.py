# teamboard/client/cache.py
"""
Client-side component cache.

Two independent rules decide whether an entry survives:

- TTL: an entry not touched for ``ttl_seconds`` is dead, and is dropped the
  next time anyone checks it.
- LRU cap: adding a new entry when ``max_entries`` are already held evicts the
  least recently touched one, whatever its remaining TTL.

``clear_all()`` is the session-security hook: the gateway calls it when the
server reports a revoked or invalid session, and logout calls it. Nothing else
should.
"""
from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable

logger = logging.getLogger(__name__)

STATIC_VIEWS: tuple[str, ...] = ("Dashboard", "TeamsView", "FeedbackView", "AboutView", "TeamDetails")
DETAIL_VIEW = "TeamDetails"

DEFAULT_TTL_SECONDS = 30 * 60
DEFAULT_MAX_ENTRIES = 10


@dataclass
class CacheEntry:
    key: str
    component: str
    added_at: float
    last_accessed: float


class ComponentCache:
    def __init__(
        self,
        *,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be >= 1")
        self.ttl_seconds = float(ttl_seconds)
        self.max_entries = int(max_entries)
        self._clock = clock

        self._entries: dict[str, CacheEntry] = {}
        self._components: set[str] = set()
        self._refresh_requests: set[str] = set()
        self._lock = threading.RLock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries

    # -----------------------------
    # Keyed entries (TTL + LRU)
    # -----------------------------
    def add_entry(self, key: str, component: str = DETAIL_VIEW) -> str | None:
        """
        Track ``key`` (e.g. a team id) as cached. Returns the component name it
        is rendered by, or None for an empty key.
        """
        if not key:
            return None

        with self._lock:
            self.clean_expired()
            if key not in self._entries and len(self._entries) >= self.max_entries:
                self.evict_oldest()

            now = self._clock()
            existing = self._entries.get(key)
            added_at = existing.added_at if existing else now
            self._entries[key] = CacheEntry(key=key, component=component, added_at=added_at, last_accessed=now)
            self._components.add(component)
            return component

    def touch(self, key: str) -> bool:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return False
            entry.last_accessed = self._clock()
            return True

    def _expired(self, entry: CacheEntry, now: float) -> bool:
        return now - entry.last_accessed >= self.ttl_seconds

    def is_valid(self, key: str) -> bool:
        """False when the entry is absent or past its TTL. Expired entries are dropped."""
        if not key:
            return False

        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return False
            if self._expired(entry, self._clock()):
                logger.debug("Cache entry expired: %s", key)
                del self._entries[key]
                return False
            return True

    def evict_oldest(self) -> str | None:
        with self._lock:
            if not self._entries:
                return None
            oldest = min(self._entries.values(), key=lambda e: e.last_accessed)
            del self._entries[oldest.key]
            logger.debug("Evicted least recently used cache entry: %s", oldest.key)
            return oldest.key

    def remove(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clean_expired(self) -> int:
        with self._lock:
            now = self._clock()
            doomed = [key for key, entry in self._entries.items() if self._expired(entry, now)]
            for key in doomed:
                del self._entries[key]
            return len(doomed)

    def clear_all(self) -> None:
        with self._lock:
            dropped = len(self._entries)
            self._entries.clear()
            self._components.clear()
            self._refresh_requests.clear()
        logger.info("Cleared client cache (%s entries)", dropped)

    # -----------------------------
    # Component registrations
    # -----------------------------
    def add_component(self, name: str) -> None:
        with self._lock:
            self._components.add(name)

    def remove_component(self, name: str) -> None:
        with self._lock:
            self._components.discard(name)
            self._refresh_requests.discard(name)

    def register_static_views(self) -> None:
        with self._lock:
            self._components.update(STATIC_VIEWS)

    @property
    def cached_components(self) -> frozenset[str]:
        with self._lock:
            return frozenset(self._components)

    def request_refresh(self, name: str) -> None:
        with self._lock:
            self._refresh_requests.add(name)

    def refresh_all_views(self) -> None:
        with self._lock:
            self._refresh_requests.update(STATIC_VIEWS)

    def needs_refresh(self, name: str) -> bool:
        with self._lock:
            return name in self._refresh_requests

    def mark_refreshed(self, name: str) -> None:
        with self._lock:
            self._refresh_requests.discard(name)

    def stats(self) -> dict:
        with self._lock:
            expired = self.clean_expired()
            now = self._clock()
            return {
                "static_views": len(STATIC_VIEWS),
                "cached_entries": len(self._entries),
                "cached_components": len(self._components),
                "expired_entries_removed": expired,
                "ttl_minutes": round(self.ttl_seconds / 60),
                "entries": {
                    key: {
                        "component": entry.component,
                        "expires_in_seconds": max(0.0, self.ttl_seconds - (now - entry.last_accessed)),
                    }
                    for key, entry in self._entries.items()
                },
            }
