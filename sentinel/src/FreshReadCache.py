"""FreshReadCache: Thread-safe in-process key-value store with per-entry TTL.

Health reports are cached per (purpose, asset, chain) so each key yields at
most one fresh upstream fetch per freshness window. A disabled cache is fully
transparent: writes report failure and reads report a miss.

.. code-block:: python

    >>> cache = FreshReadCache(default_ttl=60)
    >>> key = FreshReadCache.generate_key("health", "USDT", "ethereum")
    >>> key
    'health:USDT:ethereum'
    >>> cache.set(key, {"price": 1.0})
    True
    >>> cache.get(key)
    {'price': 1.0}
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)


@dataclass
class CacheStats:
    """Counters describing cache usage.

    :ivar hits: Reads that found a live entry.
    :ivar misses: Reads that found nothing or an expired entry.
    :ivar keys: Live entries currently stored.
    """

    hits: int = 0
    misses: int = 0
    keys: int = 0


class FreshReadCache:
    """TTL cache safe for concurrent readers and writers.

    Entries expire ``ttl`` seconds after they are written. A TTL of 0 stores
    the entry without expiry. Expired entries are dropped lazily on access
    and by :meth:`purge_expired`.

    :ivar default_ttl: TTL in seconds used when ``set`` gets no override.
    :ivar enabled: When False every operation behaves as a miss.
    """

    DEFAULT_TTL = 60.0

    def __init__(self, default_ttl: float = DEFAULT_TTL, enabled: bool = True) -> None:
        """Initialize the cache.

        :param default_ttl: Default time-to-live in seconds.
        :param enabled: Whether the cache stores anything at all.
        :raises ValueError: If default_ttl is negative.
        """
        if default_ttl < 0:
            raise ValueError("default_ttl must not be negative")
        self.default_ttl = default_ttl
        self.enabled = enabled
        # key -> (value, expires_at or None)
        self._entries: dict[str, tuple[Any, float | None]] = {}
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    @staticmethod
    def generate_key(prefix: str, *parts: str | int | float) -> str:
        """Build a deterministic, order-sensitive key like ``health:USDT:ethereum``."""
        return ":".join([prefix, *(str(p) for p in parts)])

    def get(self, key: str) -> Any | None:
        """Return the live value for ``key`` or None."""
        if not self.enabled:
            return None
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return None
            value, expires_at = entry
            if expires_at is not None and time.monotonic() >= expires_at:
                del self._entries[key]
                self._misses += 1
                return None
            self._hits += 1
            return value

    def set(self, key: str, value: Any, ttl: float | None = None) -> bool:
        """Store ``value`` under ``key``, replacing any previous entry.

        :param key: Cache key.
        :param value: Value to store (stored by reference).
        :param ttl: TTL override in seconds; the default TTL applies when None.
        :returns: True if stored, False when the cache is disabled.
        """
        if not self.enabled:
            return False
        if ttl is None:
            ttl = self.default_ttl
        if ttl < 0:
            raise ValueError("ttl must not be negative")
        expires_at = time.monotonic() + ttl if ttl > 0 else None
        with self._lock:
            self._entries[key] = (value, expires_at)
        return True

    def has(self, key: str) -> bool:
        """Check whether ``key`` holds a live entry, without touching stats."""
        if not self.enabled:
            return False
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return False
            expires_at = entry[1]
            if expires_at is not None and time.monotonic() >= expires_at:
                del self._entries[key]
                return False
            return True

    def delete(self, key: str) -> int:
        """Remove ``key``; returns the number of entries removed (0 or 1)."""
        with self._lock:
            return 1 if self._entries.pop(key, None) is not None else 0

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def purge_expired(self) -> int:
        """Drop every expired entry; returns how many were removed."""
        now = time.monotonic()
        with self._lock:
            expired = [
                k for k, (_, exp) in self._entries.items()
                if exp is not None and now >= exp
            ]
            for k in expired:
                del self._entries[k]
        if expired:
            logger.debug(f"Purged {len(expired)} expired cache entries")
        return len(expired)

    def get_stats(self) -> CacheStats:
        with self._lock:
            return CacheStats(hits=self._hits, misses=self._misses, keys=len(self._entries))
