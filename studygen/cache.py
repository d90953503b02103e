"""In-memory response cache keyed by a content hash.

Generation results are cached for 24 hours under an MD5 digest of the
generation options and the first 1000 characters of the content. Two
requests that share that prefix and the same options hit the same entry
even if their content differs later on.

Expired entries are removed lazily on read and by a periodic sweep that
runs as an asyncio task.
"""

import asyncio
import hashlib
import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from studygen.config import settings
from studygen.models import GenerationRequest, GenerationResponse

logger = logging.getLogger(__name__)


def compute_content_hash(
    request: GenerationRequest, prefix_chars: Optional[int] = None
) -> str:
    """Compute the cache key for a generation request.

    The format is ``MD5("{content[:prefix]}-{difficulty}-{count}-{types}")``
    with types joined by commas in request order.
    """
    prefix = prefix_chars if prefix_chars is not None else settings.hash_prefix_chars
    key_input = "-".join(
        [
            request.content[:prefix],
            request.difficulty.value,
            str(request.question_count),
            ",".join(request.question_types),
        ]
    )
    return hashlib.md5(key_input.encode("utf-8")).hexdigest()


@dataclass
class CacheEntry:
    """A cached response with its lifetime."""

    key: str
    value: GenerationResponse
    created_at: float
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


class ResponseCache:
    """Time-bounded response cache.

    There is no size bound or LRU eviction; entries only leave the cache by
    expiring. All operations are thread-safe via a lock.
    Note: Data is lost on process restart and not shared between workers.
    """

    def __init__(
        self,
        ttl_seconds: Optional[float] = None,
        sweep_interval_seconds: Optional[float] = None,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        """Initialize the cache.

        Args:
            ttl_seconds: Entry lifetime (default: 24 hours)
            sweep_interval_seconds: Period of the background sweep (default: 1 hour)
            clock: Wall-clock time source, injectable for tests
        """
        self._ttl = ttl_seconds if ttl_seconds is not None else settings.cache_ttl_seconds
        self._sweep_interval = (
            sweep_interval_seconds
            if sweep_interval_seconds is not None
            else settings.cache_sweep_interval_seconds
        )
        if self._ttl <= 0 or self._sweep_interval <= 0:
            raise ValueError("ttl_seconds and sweep_interval_seconds must be positive")
        self._clock = clock or time.time
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self._sweep_task: Optional[asyncio.Task] = None
        self._hits = 0
        self._misses = 0
        self._expirations = 0

    def get(self, key: str) -> Optional[GenerationResponse]:
        """Return a copy of the cached response, or None if absent or expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return None
            if entry.is_expired(self._clock()):
                del self._entries[key]
                self._expirations += 1
                self._misses += 1
                logger.debug(f"Cache entry {key[:8]}... expired")
                return None
            self._hits += 1
            return entry.value.model_copy(deep=True)

    def put(self, key: str, value: GenerationResponse) -> None:
        """Store a response; an existing entry under the same key is replaced."""
        now = self._clock()
        with self._lock:
            self._entries[key] = CacheEntry(
                key=key,
                value=value.model_copy(deep=True),
                created_at=now,
                expires_at=now + self._ttl,
            )

    def sweep(self) -> int:
        """Delete every expired entry.

        Returns:
            Number of entries removed
        """
        now = self._clock()
        with self._lock:
            expired = [k for k, e in self._entries.items() if e.is_expired(now)]
            for key in expired:
                del self._entries[key]
            self._expirations += len(expired)
        if expired:
            logger.info(f"Swept {len(expired)} expired cache entries")
        return len(expired)

    def clear(self) -> None:
        """Remove all entries and reset statistics."""
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
            self._hits = 0
            self._misses = 0
            self._expirations = 0
        logger.info(f"Cleared {count} cached responses")

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get_stats(self) -> Dict[str, Any]:
        """Return cache statistics."""
        with self._lock:
            total = self._hits + self._misses
            return {
                "size": len(self._entries),
                "hits": self._hits,
                "misses": self._misses,
                "expirations": self._expirations,
                "hit_rate": self._hits / total if total > 0 else 0.0,
                "sweeper_running": self.sweeper_running,
            }

    @property
    def sweeper_running(self) -> bool:
        return self._sweep_task is not None and not self._sweep_task.done()

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self._sweep_interval)
            self.sweep()

    def start_sweeper(self) -> None:
        """Start the periodic sweep on the running event loop."""
        if self.sweeper_running:
            return
        self._sweep_task = asyncio.get_running_loop().create_task(self._sweep_loop())
        logger.info(f"Cache sweeper started (interval={self._sweep_interval}s)")

    async def stop_sweeper(self) -> None:
        """Cancel the periodic sweep and wait for it to finish."""
        task = self._sweep_task
        self._sweep_task = None
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("Cache sweeper stopped")
