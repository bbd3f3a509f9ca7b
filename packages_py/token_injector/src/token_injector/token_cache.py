"""
Thread-safe token cache with TTL expiry and refresh-ahead.

Entries are keyed by service id. A single reader/writer lock guards the whole
map: lookups share the lock, mutations take it exclusively.
"""
import logging
import threading
import time
from contextlib import contextmanager
from typing import Callable, Dict, Iterator, Optional

from .types import CachedToken, CacheLookupResult

logger = logging.getLogger(__name__)

DEFAULT_REFRESH_BUFFER_SECONDS = 10

Clock = Callable[[], float]


class ReadWriteLock:
    """
    Writer-preferring reader/writer lock.

    Any number of readers may hold the lock together; a writer holds it
    alone. Waiting writers block new readers so they cannot starve.
    Not reentrant.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def read_lock(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write_lock(self) -> Iterator[None]:
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


class TokenCache:
    """
    In-memory token cache.

    TTL math is done in whole Unix epoch seconds taken from ``clock``. A token
    stored with a TTL expires at ``now + ttl`` and becomes eligible for refresh
    ``refresh_buffer`` seconds earlier; when the TTL does not exceed the buffer
    the token is eligible for refresh immediately. A token stored without a
    TTL never expires and never needs refresh.

    Example:
        cache = TokenCache(refresh_buffer_seconds=10)
        cache.set("svc-1", "abc", ttl_seconds=300)
        result = cache.get("svc-1")
        if result.exists and not result.needs_refresh:
            use(result.token)
    """

    def __init__(
        self,
        refresh_buffer_seconds: int = DEFAULT_REFRESH_BUFFER_SECONDS,
        clock: Optional[Clock] = None,
    ) -> None:
        if refresh_buffer_seconds < 0:
            raise ValueError("refresh_buffer_seconds must be >= 0")
        self._refresh_buffer = refresh_buffer_seconds
        self._clock = clock or time.time
        self._lock = ReadWriteLock()
        self._tokens: Dict[str, CachedToken] = {}

    @property
    def refresh_buffer_seconds(self) -> int:
        return self._refresh_buffer

    def _now(self) -> int:
        return int(self._clock())

    def get(self, service_id: str) -> CacheLookupResult:
        """Look up the token for ``service_id``; expired entries read as absent."""
        with self._lock.read_lock():
            cached = self._tokens.get(service_id)

        if cached is None:
            logger.debug(f"TokenCache.get: miss for '{service_id}'")
            return CacheLookupResult()

        now = self._now()
        if cached.expires_at is not None and cached.expires_at <= now:
            logger.debug(f"TokenCache.get: expired entry for '{service_id}'")
            return CacheLookupResult()

        needs_refresh = cached.refresh_at is not None and cached.refresh_at <= now
        logger.debug(f"TokenCache.get: hit for '{service_id}', needs_refresh={needs_refresh}")
        return CacheLookupResult(token=cached.value, needs_refresh=needs_refresh, exists=True)

    def set(
        self,
        service_id: str,
        token: str,
        ttl_seconds: Optional[int] = None,
        refresh_buffer_seconds: Optional[int] = None,
    ) -> CachedToken:
        """
        Store ``token`` for ``service_id``, replacing any previous entry.

        A missing or non-positive TTL caches the token indefinitely.
        """
        if not token:
            raise ValueError("token must be a non-empty string")

        buffer = self._refresh_buffer if refresh_buffer_seconds is None else refresh_buffer_seconds
        buffer = max(buffer, 0)

        if ttl_seconds is not None and ttl_seconds > 0:
            now = self._now()
            expires_at = now + ttl_seconds
            refresh_at = max(expires_at - buffer, now)
            cached = CachedToken(value=token, expires_at=expires_at, refresh_at=refresh_at)
        else:
            cached = CachedToken(value=token)

        with self._lock.write_lock():
            self._tokens[service_id] = cached

        logger.debug(
            f"TokenCache.set: stored token for '{service_id}', "
            f"expires_at={cached.expires_at}, refresh_at={cached.refresh_at}"
        )
        return cached

    def delete(self, service_id: str) -> bool:
        """Remove the entry for ``service_id``."""
        with self._lock.write_lock():
            removed = self._tokens.pop(service_id, None) is not None
        logger.debug(f"TokenCache.delete: '{service_id}' removed={removed}")
        return removed

    def clear(self) -> None:
        """Remove all entries."""
        with self._lock.write_lock():
            self._tokens = {}
        logger.debug("TokenCache.clear: cache cleared")

    def purge_expired(self) -> int:
        """Drop expired entries and return how many were removed."""
        now = self._now()
        with self._lock.write_lock():
            expired = [
                key
                for key, cached in self._tokens.items()
                if cached.expires_at is not None and cached.expires_at <= now
            ]
            for key in expired:
                del self._tokens[key]
        if expired:
            logger.debug(f"TokenCache.purge_expired: removed {len(expired)} entries")
        return len(expired)

    def has(self, service_id: str) -> bool:
        """Check if a live (non-expired) token is cached."""
        return self.get(service_id).exists

    def size(self) -> int:
        """Number of stored entries, expired ones included until purged."""
        with self._lock.read_lock():
            return len(self._tokens)

    def get_stats(self) -> dict:
        """Get statistics about cached tokens."""
        now = self._now()
        with self._lock.read_lock():
            entries = list(self._tokens.values())
        expired = sum(1 for c in entries if c.expires_at is not None and c.expires_at <= now)
        refresh_due = sum(
            1
            for c in entries
            if c.refresh_at is not None
            and c.refresh_at <= now
            and not (c.expires_at is not None and c.expires_at <= now)
        )
        return {"entries": len(entries), "expired": expired, "refresh_due": refresh_due}


def create_token_cache(
    refresh_buffer_seconds: int = DEFAULT_REFRESH_BUFFER_SECONDS,
    clock: Optional[Clock] = None,
) -> TokenCache:
    """Create a token cache."""
    return TokenCache(refresh_buffer_seconds, clock)
