"""
TTL cache and the revoked-session registry built on it.

Session tokens are stateless JWTs. Signing out records the token id (jti)
here until the token would have expired anyway, so a signed-out token is
refused even though its signature is still good.

Features:
- Per-entry expiry (defaults to the cache TTL)
- Expired entries purged before anything is evicted
- LRU eviction when at capacity, or CacheFullError for callers that
  must not lose a live entry
- asyncio.Lock around every mutation
"""

import asyncio
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Generic, Optional, TypeVar
from collections import OrderedDict
import logging

logger = logging.getLogger(__name__)

T = TypeVar('T')


class CacheFullError(Exception):
    """Raised when a non-evicting set finds the cache full of live entries"""

    def __init__(self, name: str, max_size: int):
        self.name = name
        self.max_size = max_size
        super().__init__(f"{name} is full ({max_size} live entries)")


@dataclass
class CacheEntry(Generic[T]):
    value: T
    expires_at: datetime

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        return (now or datetime.now(timezone.utc)) >= self.expires_at


class TTLCache(Generic[T]):
    """
    Time-To-Live cache with LRU eviction.

    Uses OrderedDict for LRU order; expired entries are dropped on read
    and purged whenever a new key arrives at capacity.
    """

    def __init__(
        self,
        ttl_hours: float = 24,
        max_size: int = 10000,
        name: str = "cache"
    ):
        self._ttl = timedelta(hours=ttl_hours)
        self._max_size = max_size
        self._name = name
        self._cache: "OrderedDict[str, CacheEntry[T]]" = OrderedDict()
        self._lock = asyncio.Lock()

    async def get(self, key: str) -> Optional[T]:
        async with self._lock:
            entry = self._cache.get(key)
            if entry is None:
                return None

            if entry.is_expired():
                del self._cache[key]
                logger.debug(f"{self._name}: Expired key '{key}'")
                return None

            self._cache.move_to_end(key)
            return entry.value

    async def set(
        self,
        key: str,
        value: T,
        expires_at: Optional[datetime] = None,
        evict: bool = True,
    ) -> None:
        """
        Store value until ``expires_at`` (or now + TTL).

        Args:
            key: Cache key
            value: Value to store
            expires_at: Absolute expiry; must be timezone-aware
            evict: Drop the least recently used live entry when full.
                When False a full cache raises instead.

        Raises:
            CacheFullError: Full of live entries and ``evict`` is False
        """
        async with self._lock:
            if len(self._cache) >= self._max_size and key not in self._cache:
                self._purge_expired()

            if len(self._cache) >= self._max_size and key not in self._cache:
                if not evict:
                    raise CacheFullError(self._name, self._max_size)
                oldest_key = next(iter(self._cache))
                del self._cache[oldest_key]
                logger.debug(f"{self._name}: Evicted oldest key '{oldest_key}' (LRU)")

            if expires_at is None:
                expires_at = datetime.now(timezone.utc) + self._ttl

            self._cache[key] = CacheEntry(value=value, expires_at=expires_at)
            self._cache.move_to_end(key)

    async def clear(self) -> None:
        async with self._lock:
            count = len(self._cache)
            self._cache.clear()
            logger.info(f"{self._name}: Cleared {count} entries")

    def _purge_expired(self) -> int:
        """Remove all expired entries; caller holds the lock"""
        now = datetime.now(timezone.utc)
        expired_keys = [
            key for key, entry in self._cache.items()
            if entry.is_expired(now)
        ]
        for key in expired_keys:
            del self._cache[key]

        if expired_keys:
            logger.debug(f"{self._name}: Cleaned up {len(expired_keys)} expired entries")
        return len(expired_keys)

    @property
    def size(self) -> int:
        return len(self._cache)


class RevokedSessionRegistry:
    """Token ids (jti) of signed-out sessions, kept until the token expires"""

    def __init__(self, cache: Optional[TTLCache[str]] = None):
        self._cache = cache or TTLCache[str](ttl_hours=24, max_size=100000, name="revoked_sessions")

    async def revoke(self, token_id: str, user_id: str, expires_at: datetime) -> None:
        """
        Remember a signed-out token until ``expires_at``.

        A revocation is never evicted while its token can still be presented.

        Raises:
            CacheFullError: Every slot holds an unexpired revocation
        """
        try:
            await self._cache.set(token_id, user_id, expires_at=expires_at, evict=False)
        except CacheFullError:
            logger.error(f"Session {token_id[:8]}... for user {user_id} could not be revoked: registry full")
            raise
        logger.info(f"Session {token_id[:8]}... revoked for user {user_id}")

    async def is_revoked(self, token_id: Optional[str]) -> bool:
        if not token_id:
            return False
        return await self._cache.get(token_id) is not None

    async def clear(self) -> None:
        await self._cache.clear()


# Global registry (single process; a shared store would replace it for multiple workers)
revoked_sessions = RevokedSessionRegistry()
