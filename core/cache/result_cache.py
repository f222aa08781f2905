"""
Result Cache - shared, bounded, time-boxed memo of AI ranking results.

Thread-safe: all state sits behind one lock, so per-user workers can read
and write concurrently. Identical fingerprints are last-writer-wins.

Eviction and expiry are separate mechanisms:
- expiry: an entry older than its TTL is never returned; expired entries are
  dropped lazily on read and by a periodic sweep
- eviction: when the cache is full, expired entries go first, then the least
  recently used entry outside the warm subset

The warm subset is the `warm_entries` most recently used entries that were
touched in the current run (see begin_run()).
"""
import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Set

from core.config_loader import CacheConfig
from core.cache.redis_store import RedisResultStore

logger = logging.getLogger(__name__)


@dataclass
class _Entry:
    value: Any
    created_at: float
    ttl: float
    last_accessed: float
    access_count: int
    run: int

    def expired(self, now: float) -> bool:
        return now - self.created_at >= self.ttl


class ResultCache:
    """
    In-memory LRU + TTL cache with warm-entry protection and an optional
    Redis write-through tier.
    """

    def __init__(
        self,
        config: Optional[CacheConfig] = None,
        store: Optional[RedisResultStore] = None,
        clock: Callable[[], float] = time.monotonic
    ):
        self.config = config or CacheConfig()
        self.store = store
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: "OrderedDict[str, _Entry]" = OrderedDict()
        self._run = 0
        self._last_sweep = clock()

        self._hits = 0
        self._misses = 0
        self._evictions = 0
        self._expirations = 0
        self._sets = 0

        if self.store is not None:
            self._load_warm()

    # ------------------------------------------------------------------
    # Run tracking
    # ------------------------------------------------------------------

    def begin_run(self) -> int:
        """Start a new run; only entries used from now on count as warm."""
        with self._lock:
            self._run += 1
            return self._run

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def get(self, key: str) -> Optional[Any]:
        """Return the cached value or None on miss/expiry."""
        with self._lock:
            now = self._clock()
            self._maybe_sweep(now)
            entry = self._entries.get(key)
            if entry is not None:
                if entry.expired(now):
                    del self._entries[key]
                    self._expirations += 1
                else:
                    entry.access_count += 1
                    entry.last_accessed = now
                    entry.run = self._run
                    self._entries.move_to_end(key)
                    self._hits += 1
                    logger.debug(f"Cache hit for {key[:16]}...")
                    return entry.value

        # Read-through outside the lock: Redis I/O must not block other workers
        if self.store is not None:
            found = self.store.get_with_ttl(key)
            if found is not None and found[0] is not None:
                value, remaining = found
                ttl = self.config.ttl_seconds if remaining is None else min(remaining, self.config.ttl_seconds)
                with self._lock:
                    self._insert(key, value, ttl, self._clock())
                    self._hits += 1
                return value

        with self._lock:
            self._misses += 1
        logger.debug(f"Cache miss for {key[:16]}...")
        return None

    def set(self, key: str, value: Any, ttl_seconds: Optional[int] = None) -> None:
        """Store a value; writes through to Redis when configured."""
        ttl = ttl_seconds or self.config.ttl_seconds
        with self._lock:
            now = self._clock()
            self._maybe_sweep(now)
            self._insert(key, value, ttl, now)
            self._sets += 1

        if self.store is not None:
            self.store.set(key, value, int(ttl))

    def delete(self, key: str) -> bool:
        with self._lock:
            removed = self._entries.pop(key, None) is not None
        if self.store is not None:
            self.store.delete(key)
        return removed

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
        if self.store is not None:
            self.store.clear_all()
        logger.info("Result cache cleared")

    def purge_expired(self) -> int:
        """Drop every expired entry now; returns how many were removed."""
        with self._lock:
            return self._purge_expired(self._clock())

    def warm_keys(self) -> Set[str]:
        with self._lock:
            return self._warm_keys()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: str) -> bool:
        with self._lock:
            entry = self._entries.get(key)
            return entry is not None and not entry.expired(self._clock())

    def get_stats(self) -> Dict[str, Any]:
        with self._lock:
            lookups = self._hits + self._misses
            return {
                "size": len(self._entries),
                "max_size": self.config.max_size,
                "hits": self._hits,
                "misses": self._misses,
                "hit_rate": (self._hits / lookups) if lookups else 0.0,
                "sets": self._sets,
                "evictions": self._evictions,
                "expirations": self._expirations,
                "ttl_seconds": self.config.ttl_seconds,
                "redis_available": bool(self.store and self.store.is_available),
            }

    # ------------------------------------------------------------------
    # Internals (caller holds the lock)
    # ------------------------------------------------------------------

    def _insert(self, key: str, value: Any, ttl: float, now: float) -> None:
        if key in self._entries:
            del self._entries[key]
        elif len(self._entries) >= self.config.max_size:
            self._evict(now)

        self._entries[key] = _Entry(
            value=value,
            created_at=now,
            ttl=ttl,
            last_accessed=now,
            access_count=1,
            run=self._run
        )

    def _evict(self, now: float) -> None:
        if self._purge_expired(now) > 0:
            return

        protected = self._warm_keys()
        victim = next((k for k in self._entries if k not in protected), None)
        if victim is None:
            # every entry is warm: fall back to plain LRU
            victim = next(iter(self._entries))

        del self._entries[victim]
        self._evictions += 1

    def _warm_keys(self) -> Set[str]:
        limit = self.config.warm_entries
        warm: Set[str] = set()
        if limit <= 0:
            return warm
        for key in reversed(self._entries):
            entry = self._entries[key]
            if entry.run != self._run:
                continue
            warm.add(key)
            if len(warm) >= limit:
                break
        return warm

    def _purge_expired(self, now: float) -> int:
        expired = [k for k, e in self._entries.items() if e.expired(now)]
        for key in expired:
            del self._entries[key]
        self._expirations += len(expired)
        return len(expired)

    def _maybe_sweep(self, now: float) -> None:
        if now - self._last_sweep >= self.config.cleanup_interval_seconds:
            removed = self._purge_expired(now)
            self._last_sweep = now
            if removed:
                logger.debug(f"Expired {removed} cache entries")

    def _load_warm(self) -> None:
        entries = self.store.load_warm_entries(self.config.warm_entries)
        now = self._clock()
        with self._lock:
            # newest first from the store; insert oldest first to keep LRU order
            for key, value, remaining_ttl in reversed(entries):
                self._insert(key, value, remaining_ttl, now)
        if entries:
            logger.info(f"Loaded {len(entries)} warm entries into result cache")
