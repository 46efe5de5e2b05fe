"""Process-wide geocode cache and minimum-interval rate limiter."""

import asyncio
import threading
import time
from collections import OrderedDict
from typing import Optional, Union

import structlog

from ..models import Coordinates

logger = structlog.get_logger()


class _NotCached:
    def __repr__(self) -> str:
        return "NOT_CACHED"


NOT_CACHED = _NotCached()

CacheValue = Optional[Coordinates]


class GeocodeCache:
    """Thread-safe map of normalized address -> Optional[Coordinates].

    ``None`` values are real entries: an address that resolved to nothing is
    remembered so it is not looked up again. Unbounded unless
    ``max_entries`` is given, in which case least recently used entries are
    evicted.
    """

    def __init__(self, max_entries: Optional[int] = None, name: str = "geocode"):
        self.max_entries = max_entries
        self.name = name
        self._entries: OrderedDict[str, CacheValue] = OrderedDict()
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def get(self, key: str) -> Union[CacheValue, _NotCached]:
        """Return the cached value, or NOT_CACHED when the key is unknown."""
        with self._lock:
            if key not in self._entries:
                self.misses += 1
                return NOT_CACHED
            self.hits += 1
            if self.max_entries is not None:
                self._entries.move_to_end(key)
            return self._entries[key]

    def put(self, key: str, value: CacheValue) -> None:
        with self._lock:
            self._entries[key] = value
            if self.max_entries is not None:
                self._entries.move_to_end(key)
                while len(self._entries) > self.max_entries:
                    evicted, _ = self._entries.popitem(last=False)
                    logger.debug("geocode_cache_evicted", cache=self.name, key=evicted)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self.hits = 0
            self.misses = 0

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def stats(self) -> dict:
        with self._lock:
            return {
                "name": self.name,
                "size": len(self._entries),
                "max_entries": self.max_entries,
                "hits": self.hits,
                "misses": self.misses,
            }


class RateLimiter:
    """Enforce a minimum interval between requests to one upstream.

    The lock is held while sleeping, so concurrent callers queue up and each
    gets its own slot instead of computing overlapping sleep windows.
    """

    def __init__(self, min_interval: float, name: str = "default"):
        self.min_interval = min_interval
        self.name = name
        self._last_request: Optional[float] = None
        self._lock: Optional[asyncio.Lock] = None

    async def wait(self) -> None:
        """Block until the next request is allowed, then claim the slot."""
        if self.min_interval <= 0:
            return
        if self._lock is None:
            self._lock = asyncio.Lock()

        async with self._lock:
            delay = 0.0
            if self._last_request is not None:
                delay = self._last_request + self.min_interval - time.monotonic()
            if delay > 0:
                logger.debug("rate_limit_wait", limiter=self.name, delay=round(delay, 3))
                await asyncio.sleep(delay)
            self._last_request = time.monotonic()
