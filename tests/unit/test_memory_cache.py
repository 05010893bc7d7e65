"""Unit tests for the in-memory cache provider."""

from __future__ import annotations

import pytest

from knowbase.providers.cache.memory_cache import MemoryCacheProvider


class TestMemoryCache:
    @pytest.mark.asyncio
    async def test_set_then_get(self) -> None:
        cache = MemoryCacheProvider()

        assert await cache.get("k") is None

        await cache.set("k", "v")
        assert await cache.get("k") == "v"

        await cache.set("k", "w")
        assert await cache.get("k") == "w"

    @pytest.mark.asyncio
    async def test_unbounded_by_default(self) -> None:
        cache = MemoryCacheProvider()
        for i in range(2000):
            await cache.set(f"k{i}", i + 1)
        assert await cache.get("k0") == 1
        assert await cache.get("k1999") == 2000

    @pytest.mark.asyncio
    async def test_bounded_cache_evicts_least_recently_used(self) -> None:
        cache = MemoryCacheProvider(max_size=2)
        await cache.set("a", 1)
        await cache.set("b", 2)
        await cache.get("a")
        await cache.set("c", 3)

        assert await cache.get("a") == 1
        assert await cache.get("b") is None
        assert await cache.get("c") == 3
