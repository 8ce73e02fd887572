"""
TTL cache shared by the per-source fetch tasks.

Entries are tagged: Fresh holds real data, Failed records that a fetch failed
(negative caching) so a broken source is not retried on every request.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Generic, Optional, TypeVar, Union

logger = logging.getLogger(__name__)

T = TypeVar("T")

Clock = Callable[[], float]


@dataclass(frozen=True)
class Fresh(Generic[T]):
    data: T
    captured_at: float
    ttl_s: float


@dataclass(frozen=True)
class Failed:
    reason: str
    captured_at: float
    ttl_s: float


CacheEntry = Union[Fresh, Failed]


@dataclass(frozen=True)
class EntryInfo:
    cached: bool
    failed: bool = False
    age_s: Optional[float] = None
    next_refresh_s: Optional[float] = None


def cache_key(source: str, name: str = "data") -> str:
    """Keys are namespaced by source so sources can never collide."""
    return f"{source}:{name}"


def is_valid(entry: CacheEntry, now: float) -> bool:
    return now - entry.captured_at < entry.ttl_s


class SourceCache:
    """
    String-keyed TTL cache, safe for concurrent use.

    Expired entries are treated as absent and evicted on read.
    """

    def __init__(self, clock: Clock = time.monotonic):
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self._closed = False

    def _check_open(self) -> None:
        if self._closed:
            raise RuntimeError("SourceCache is closed.")

    def set(self, key: str, data: Any, ttl_s: float) -> Fresh:
        if ttl_s <= 0:
            raise ValueError("ttl_s must be positive.")
        entry = Fresh(data=data, captured_at=self._clock(), ttl_s=ttl_s)
        with self._lock:
            self._check_open()
            self._entries[key] = entry
        return entry

    def set_failed(self, key: str, reason: str, ttl_s: float) -> Failed:
        if ttl_s <= 0:
            raise ValueError("ttl_s must be positive.")
        entry = Failed(reason=reason, captured_at=self._clock(), ttl_s=ttl_s)
        with self._lock:
            self._check_open()
            self._entries[key] = entry
        return entry

    def get(self, key: str) -> Optional[CacheEntry]:
        now = self._clock()
        with self._lock:
            self._check_open()
            entry = self._entries.get(key)
            if entry is None:
                return None
            if not is_valid(entry, now):
                del self._entries[key]
                logger.debug("Cache entry %s expired after %.1fs", key, now - entry.captured_at)
                return None
            return entry

    def get_data(self, key: str) -> Optional[Any]:
        """Fresh data only; failure markers read as absent."""
        entry = self.get(key)
        if isinstance(entry, Fresh):
            return entry.data
        return None

    def describe(self, key: str) -> EntryInfo:
        entry = self.get(key)
        if entry is None:
            return EntryInfo(cached=False)
        age = self._clock() - entry.captured_at
        return EntryInfo(
            cached=True,
            failed=isinstance(entry, Failed),
            age_s=age,
            next_refresh_s=max(0.0, entry.ttl_s - age),
        )

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
        logger.debug("Cache cleared")

    def close(self) -> None:
        with self._lock:
            self._entries.clear()
            self._closed = True

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __enter__(self) -> "SourceCache":
        return self

    def __exit__(self, *exc) -> None:
        self.close()
