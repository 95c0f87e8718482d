"""Keyed TTL cache store used for cache-aside lookups.

Two backends, picked by ``CACHE_URL``:
  memory://      — per-process dict (development, tests, single worker)
  redis://...    — shared redis (production, multiple workers)

Values must be JSON-serialisable.
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any, Protocol

import redis.asyncio as aioredis

from osc_portal.core.config import settings

logger = logging.getLogger(__name__)


class CacheStore(Protocol):
    async def get(self, key: str) -> Any | None: ...

    async def set(self, key: str, value: Any, ttl: int) -> None: ...

    async def delete(self, key: str) -> None: ...

    async def remember(
        self, key: str, ttl: int, factory: Callable[[], Awaitable[Any]]
    ) -> Any: ...


class _RememberMixin:
    async def remember(self, key: str, ttl: int, factory: Callable[[], Awaitable[Any]]) -> Any:
        """Return the cached value for *key*, computing and storing it on a miss."""
        cached = await self.get(key)  # type: ignore[attr-defined]
        if cached is not None:
            logger.debug("Cache HIT: %s", key)
            return cached
        logger.debug("Cache MISS: %s", key)
        value = await factory()
        await self.set(key, value, ttl)  # type: ignore[attr-defined]
        return value


class MemoryCache(_RememberMixin):
    """In-process store. Expired entries are dropped lazily on read."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._entries: dict[str, tuple[float, str]] = {}

    async def get(self, key: str) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at, payload = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            return None
        return json.loads(payload)

    async def set(self, key: str, value: Any, ttl: int) -> None:
        self._entries[key] = (self._clock() + ttl, json.dumps(value))

    async def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()


class RedisCache(_RememberMixin):
    """Shared redis store; connection is opened lazily."""

    def __init__(self, url: str):
        self._url = url
        self._redis: aioredis.Redis | None = None

    def _client(self) -> aioredis.Redis:
        if self._redis is None:
            self._redis = aioredis.from_url(
                self._url, encoding="utf-8", decode_responses=True
            )
        return self._redis

    async def get(self, key: str) -> Any | None:
        payload = await self._client().get(key)
        return json.loads(payload) if payload is not None else None

    async def set(self, key: str, value: Any, ttl: int) -> None:
        await self._client().setex(key, ttl, json.dumps(value))

    async def delete(self, key: str) -> None:
        await self._client().delete(key)

    async def close(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None


def build_cache(url: str) -> CacheStore:
    if url.startswith("redis://") or url.startswith("rediss://"):
        return RedisCache(url)
    if url.startswith("memory://"):
        return MemoryCache()
    raise ValueError(f"Unsupported CACHE_URL scheme: {url}")


cache_store: CacheStore = build_cache(settings.cache_url)


def get_cache() -> CacheStore:
    """FastAPI dependency returning the process-wide cache store."""
    return cache_store
