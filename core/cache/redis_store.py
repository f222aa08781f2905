"""Redis Result Store - persistent tier behind the in-memory result cache."""
import json
import logging
import time
from typing import Optional, Dict, Any, List, Tuple
from urllib.parse import urlparse

from redis import Redis

logger = logging.getLogger(__name__)

KEY_PREFIX = "matching:cache:"
META_KEY = "matching:cache:meta"
META_TTL_SECONDS = 24 * 60 * 60


def _sanitize_url(url: str) -> str:
    """Remove credentials from URL for safe logging."""
    try:
        parsed = urlparse(url)
        if parsed.password:
            sanitized = parsed._replace(
                netloc=f"{parsed.username or ''}:*@{parsed.hostname}:{parsed.port or 6379}"
            )
            return sanitized.geturl()
        return url
    except Exception:
        return url


class RedisResultStore:
    """
    Write-through store for AI ranking results.

    Entries are JSON envelopes {"data", "cached_at", "ttl_seconds"} stored
    with SETEX so Redis expires them on its own. A metadata key keeps the
    most recently written fingerprints so a new process can warm its
    in-memory cache. Every operation degrades to a no-op when Redis is down.
    """

    def __init__(
        self,
        redis_url: str = "redis://localhost:6379/0",
        password: Optional[str] = None,
        namespace: str = "ai"
    ):
        self.redis_url = redis_url
        self.namespace = namespace
        self._redis: Optional[Redis] = None
        self._available = False

        try:
            self._redis = Redis.from_url(
                redis_url,
                password=password,
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5
            )
            self._redis.ping()
            self._available = True
            logger.info(f"Result cache connected to Redis at {_sanitize_url(redis_url)}")
        except Exception as e:
            logger.warning(f"Result cache Redis unavailable: {e}")
            self._redis = None
            self._available = False

    @property
    def is_available(self) -> bool:
        """Check if the store is reachable."""
        if not self._available or not self._redis:
            return False
        try:
            return self._redis.ping()
        except Exception:
            return False

    def _make_key(self, fingerprint: str) -> str:
        return f"{KEY_PREFIX}{self.namespace}:{fingerprint}"

    def _meta_key(self) -> str:
        return f"{META_KEY}:{self.namespace}"

    def get_with_ttl(self, fingerprint: str) -> Optional[Tuple[Any, Optional[int]]]:
        """Read a cached value with its remaining TTL in seconds.

        The TTL is None for keys without an expiry. Returns None on miss,
        an already-expired key, or error.
        """
        if not self.is_available:
            return None

        key = self._make_key(fingerprint)
        try:
            data = self._redis.get(key)
            if not data:
                return None
            remaining = self._redis.ttl(key)
            if remaining is not None and remaining != -1 and remaining <= 0:
                return None
            logger.debug(f"Redis hit for {fingerprint[:16]}... ({remaining}s left)")
            ttl = None if remaining is None or remaining == -1 else int(remaining)
            return json.loads(data).get("data"), ttl
        except Exception as e:
            logger.warning(f"Error reading from result store: {e}")
            return None

    def set(self, fingerprint: str, value: Any, ttl_seconds: int) -> bool:
        """Write a value with TTL and record it in the warm metadata."""
        if not self.is_available:
            return False

        try:
            envelope = {
                "data": value,
                "cached_at": time.time(),
                "ttl_seconds": ttl_seconds
            }
            self._redis.setex(self._make_key(fingerprint), ttl_seconds, json.dumps(envelope))
            self._redis.zadd(self._meta_key(), {fingerprint: time.time()})
            self._redis.expire(self._meta_key(), META_TTL_SECONDS)
            return True
        except Exception as e:
            logger.warning(f"Error writing to result store: {e}")
            return False

    def delete(self, fingerprint: str) -> bool:
        if not self.is_available:
            return False

        try:
            self._redis.delete(self._make_key(fingerprint))
            self._redis.zrem(self._meta_key(), fingerprint)
            return True
        except Exception as e:
            logger.warning(f"Error deleting from result store: {e}")
            return False

    def load_warm_entries(self, limit: int) -> List[Tuple[str, Any, int]]:
        """Most recently written entries still alive in Redis, newest first.

        Returns (fingerprint, value, remaining_ttl_seconds) tuples.
        """
        if not self.is_available or limit <= 0:
            return []

        entries = []
        try:
            fingerprints = self._redis.zrevrange(self._meta_key(), 0, limit - 1)
            for fingerprint in fingerprints:
                key = self._make_key(fingerprint)
                data = self._redis.get(key)
                if not data:
                    continue
                remaining = self._redis.ttl(key)
                if remaining is None or remaining <= 0:
                    continue
                entries.append((fingerprint, json.loads(data).get("data"), int(remaining)))
        except Exception as e:
            logger.warning(f"Error loading warm entries: {e}")
        return entries

    def clear_all(self) -> bool:
        """Remove every entry in this namespace."""
        if not self.is_available:
            return False

        try:
            pattern = f"{KEY_PREFIX}{self.namespace}:*"
            cursor = 0
            deleted = 0

            while True:
                cursor, keys = self._redis.scan(cursor=cursor, match=pattern, count=100)
                if keys:
                    self._redis.delete(*keys)
                    deleted += len(keys)
                if cursor == 0:
                    break

            self._redis.delete(self._meta_key())
            logger.info(f"Cleared {deleted} entries from result store")
            return True
        except Exception as e:
            logger.warning(f"Error clearing result store: {e}")
            return False
