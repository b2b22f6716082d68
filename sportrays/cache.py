"""
In-memory TTL cache with stale-data fallback.
"""

import logging
import random
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Generic, Optional, Tuple, Type, TypeVar

T = TypeVar("T")

logger = logging.getLogger(__name__)


@dataclass
class CacheEntry(Generic[T]):
    """A cached value and the wall-clock time it stops being fresh."""
    data: Optional[T]
    expires_at: float


class TTLCache:
    """
    Keyed, expiring storage of normalized upstream results.

    Entries are never evicted: once expired they stay around so a failed
    refresh can fall back to the stale value. The keyspace is small
    (channel handles plus a handful of domain-wide slots).

    Not thread-safe. All mutations happen on the event loop.
    """

    def __init__(
        self,
        ttl_jitter: int = 0,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize cache.

        Args:
            ttl_jitter: Maximum jitter in seconds to randomize expiration.
                        For example, 30 means ±30 seconds.
            clock: Returns the current time in seconds
        """
        self.ttl_jitter = ttl_jitter
        self._clock = clock
        self._entries: Dict[str, CacheEntry[Any]] = {}

    def now(self) -> float:
        return self._clock()

    def _get_effective_ttl(self, ttl: int) -> float:
        """
        Get TTL with randomized jitter to prevent cache stampede.

        Returns:
            Effective TTL with random jitter applied, never below 1 second
        """
        if self.ttl_jitter == 0:
            return ttl
        return max(1.0, ttl + random.uniform(-self.ttl_jitter, self.ttl_jitter))

    def get(self, key: str) -> Optional[Any]:
        """
        Get cached value if not expired.

        Args:
            key: Cache key

        Returns:
            Cached value or None if not found/expired
        """
        entry = self._entries.get(key)
        if entry is None or entry.data is None:
            return None
        if self.now() >= entry.expires_at:
            return None
        return entry.data

    def get_stale(self, key: str) -> Optional[Any]:
        """
        Get cached value regardless of expiry.

        Args:
            key: Cache key

        Returns:
            Last stored value or None if the key was never populated
        """
        entry = self._entries.get(key)
        return entry.data if entry is not None else None

    def is_stale(self, key: str) -> bool:
        """True when the key holds data that is past its expiry."""
        entry = self._entries.get(key)
        if entry is None or entry.data is None:
            return False
        return self.now() >= entry.expires_at

    def set(self, key: str, value: Any, ttl: int):
        """
        Store a value.

        Args:
            key: Cache key
            value: Value to cache
            ttl: Time-to-live in seconds
        """
        self._entries[key] = CacheEntry(
            data=value,
            expires_at=self.now() + self._get_effective_ttl(ttl),
        )

    def restamp(self, key: str, ttl: int):
        """
        Push back the expiry of an existing entry without changing its data.

        Used after a failed refresh so the failing upstream is not hit on
        every request.
        """
        entry = self._entries.get(key)
        if entry is not None:
            entry.expires_at = self.now() + ttl

    async def get_or_refresh(
        self,
        key: str,
        ttl: int,
        refresh: Callable[[], Awaitable[T]],
        fallback_on: Tuple[Type[BaseException], ...] = (Exception,),
        stale_retry: Optional[int] = None,
    ) -> T:
        """
        Return the fresh cached value or refresh it.

        On a refresh failure listed in ``fallback_on`` the stale value is
        served if one exists, and its expiry is pushed back by
        ``stale_retry`` seconds when given. Without a stale value the error
        propagates.

        Args:
            key: Cache key
            ttl: Time-to-live in seconds for a successful refresh
            refresh: Coroutine factory producing the new value
            fallback_on: Exception types that allow a stale fallback
            stale_retry: Seconds to re-stamp a stale entry after a failure

        Returns:
            Fresh, refreshed or stale value
        """
        value = self.get(key)
        if value is not None:
            return value

        try:
            value = await refresh()
        except fallback_on as e:
            stale = self.get_stale(key)
            if stale is None:
                raise
            logger.warning("Serving stale cache for %s: %s", key, e)
            if stale_retry:
                self.restamp(key, stale_retry)
            return stale

        self.set(key, value, ttl)
        logger.debug("Refreshed cache key %s (ttl=%ss)", key, ttl)
        return value
