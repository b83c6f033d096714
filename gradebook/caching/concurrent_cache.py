"""Thread-safe bounded cache with LRU eviction and hit/miss accounting.

All call-sites (student, grade and statistics services) share this one
implementation.  Every operation is total: lookups on missing keys, repeated
invalidations and refresh failures are counted, never raised.
"""

from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Generic, Hashable, List, Optional, Tuple, TypeVar

from .refresh import RefreshScheduler

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")

LOGGER = logging.getLogger("gradebook.cache")

_MISSING: Any = object()


class CacheEntry(Generic[V]):
    """A cached value plus the moment it was last touched."""

    __slots__ = ("value", "last_access_time")

    def __init__(self, value: V) -> None:
        self.value = value
        self.last_access_time = datetime.now(tz=timezone.utc)

    def touch(self) -> None:
        self.last_access_time = datetime.now(tz=timezone.utc)


@dataclass(slots=True)
class CacheStats:
    entry_count: int
    capacity: int
    hits: int
    misses: int
    hit_rate: float
    miss_rate: float
    evictions: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class ConcurrentCache(Generic[K, V]):
    """In-memory cache bounded by ``capacity`` entries.

    Parameters
    ----------
    capacity:
        Maximum number of entries to keep.  Inserting a new key into a full
        cache evicts the least recently used entry first.
    name:
        Label used in log records and for the refresh thread name.
    """

    def __init__(self, capacity: int = 150, name: str = "cache") -> None:
        if int(capacity) < 1:
            raise ValueError("capacity must be at least 1")
        self.capacity: int = int(capacity)
        self.name = name
        # Recency order: first item is the least recently used.
        self._store: "OrderedDict[K, CacheEntry[V]]" = OrderedDict()
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        self._evictions = 0
        self._refresher = RefreshScheduler(name=f"{name}-refresh")

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _evict_lru(self) -> None:
        """Drop the least recently used entry (caller must hold lock)."""
        if not self._store:
            return
        key, _entry = self._store.popitem(last=False)
        self._evictions += 1
        LOGGER.debug("Cache '%s' evicted LRU entry %r", self.name, key)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def get(self, key: K, default: Optional[V] = None) -> Optional[V]:
        """Return the cached value, or *default* on a miss."""
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                self._misses += 1
                return default
            self._hits += 1
            entry.touch()
            self._store.move_to_end(key)
            return entry.value

    def put(self, key: K, value: V) -> None:
        """Insert or overwrite *key*; a new key in a full cache evicts one entry."""
        with self._lock:
            if key in self._store:
                entry = self._store[key]
                entry.value = value
                entry.touch()
                self._store.move_to_end(key)
                return
            if len(self._store) >= self.capacity:
                self._evict_lru()
            self._store[key] = CacheEntry(value)

    def get_or_put(self, key: K, factory: Callable[[], V]) -> V:
        """Return the cached value, calling *factory* and storing it on miss."""
        cached = self.get(key, _MISSING)
        if cached is not _MISSING:
            return cached
        value = factory()
        self.put(key, value)
        return value

    def invalidate(self, key: K) -> bool:
        """Remove *key* if present.  Returns ``True`` when something was removed."""
        with self._lock:
            if self._store.pop(key, _MISSING) is _MISSING:
                return False
            self._evictions += 1
        LOGGER.debug("Cache '%s' invalidated key %r", self.name, key)
        return True

    def clear(self) -> None:
        """Drop all entries.  Counters keep their values."""
        with self._lock:
            self._store.clear()
        LOGGER.info("Cache '%s' cleared", self.name)

    def size(self) -> int:
        with self._lock:
            return len(self._store)

    def __len__(self) -> int:
        return self.size()

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._store

    # ------------------------------------------------------------------
    # Background refresh
    # ------------------------------------------------------------------

    def start_auto_refresh(self, interval_seconds: float, task: Callable[[], Any]) -> None:
        """Run *task* every *interval_seconds* on a background thread.

        The first run happens one interval after this call.  Exceptions from
        *task* are logged and do not cancel later runs.
        """
        self._refresher.start(interval_seconds, task)
        LOGGER.info(
            "Cache '%s' auto-refresh started (every %ss)", self.name, interval_seconds
        )

    def stop_auto_refresh(self) -> None:
        """Cancel the refresh schedule; an in-flight run is abandoned."""
        if self._refresher.running:
            self._refresher.stop()
            LOGGER.info("Cache '%s' auto-refresh stopped", self.name)

    @property
    def refresher(self) -> RefreshScheduler:
        return self._refresher

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------

    def stats(self) -> CacheStats:
        with self._lock:
            hits, misses = self._hits, self._misses
            entry_count = len(self._store)
            evictions = self._evictions
        lookups = hits + misses
        hit_rate = (hits * 100.0 / lookups) if lookups else 0.0
        miss_rate = (100.0 - hit_rate) if lookups else 0.0
        return CacheStats(
            entry_count=entry_count,
            capacity=self.capacity,
            hits=hits,
            misses=misses,
            hit_rate=hit_rate,
            miss_rate=miss_rate,
            evictions=evictions,
        )

    def contents(self) -> List[Tuple[K, datetime]]:
        """Snapshot of ``(key, last_access_time)`` from least to most recently used."""
        with self._lock:
            return [(key, entry.last_access_time) for key, entry in self._store.items()]
