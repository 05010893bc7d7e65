"""In-memory cache provider using cachetools.

Process-lifetime answer cache.  The default has no size limit and no
expiry: entries live until the process exits.  Pass ``max_size`` to get
LRU eviction instead.
"""

from __future__ import annotations

import asyncio
import math
from typing import Any

import structlog
from cachetools import Cache, LRUCache

from knowbase.interfaces.cache_provider import ICacheProvider

logger = structlog.get_logger(logger_name=__name__)


class MemoryCacheProvider(ICacheProvider):
    """In-memory cache backed by ``cachetools``.

    Parameters
    ----------
    max_size:
        ``None`` (default) keeps every entry.  An integer bounds the cache
        and evicts the least-recently-used entry when full.
    """

    def __init__(self, max_size: int | None = None) -> None:
        if max_size is None:
            self._cache: Cache[str, Any] = Cache(maxsize=math.inf)
        else:
            self._cache = LRUCache(maxsize=max_size)
        # Guards mutation when queries run concurrently on the same loop.
        self._lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # ICacheProvider implementation
    # ------------------------------------------------------------------

    async def get(self, key: str) -> Any | None:
        """Retrieve the cached value for *key*, or ``None`` if missing."""
        value = self._cache.get(key)
        if value is not None:
            logger.debug("cache_hit", key=key)
        else:
            logger.debug("cache_miss", key=key)
        return value

    async def set(self, key: str, value: Any) -> None:
        async with self._lock:
            self._cache[key] = value
        logger.debug("cache_set", key=key, size=len(self._cache))
