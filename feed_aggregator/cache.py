"""
Namespaced TTL cache with pattern invalidation and a cache-aside helper.

The cache is never authoritative. Every backend failure is logged and
degrades to a miss on read or a no-op on write, so callers never see a
cache exception. Two backends are provided:
1. MemoryBackend: in-process dictionary with per-key expiry (default)
2. RedisBackend: shared Redis server via ``redis.asyncio``
"""

from __future__ import annotations

from abc import ABC, abstractmethod
import fnmatch
import hashlib
import inspect
import json
import logging
import time
from typing import Any, Awaitable, Callable, Iterable, Mapping

import redis.asyncio as aioredis

from .config import CacheConfig
from .core.errors import CacheError
from .logging_utils import log_event


logger = logging.getLogger(__name__)


def build_cache_key(namespace: str, params: Mapping[str, Any]) -> str:
    """Build a deterministic cache key from request parameters.

    Parameter names are sorted before serialization, so logically identical
    requests map to the same key whatever order their fields were given in.

    Example:
        >>> build_cache_key("live_news", {"query": "", "category": "tech"}) == \\
        ...     build_cache_key("live_news", {"category": "tech", "query": ""})
        True
    """
    canonical = json.dumps(params, sort_keys=True, separators=(",", ":"), default=str)
    digest = hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:32]
    return f"{namespace}:{digest}"


class CacheBackend(ABC):
    """Minimal async TTL key/value store used by Cache."""

    @abstractmethod
    async def get(self, key: str) -> str | None:
        raise NotImplementedError

    @abstractmethod
    async def set(self, key: str, value: str, ttl: int | None) -> None:
        raise NotImplementedError

    @abstractmethod
    async def delete(self, *keys: str) -> int:
        raise NotImplementedError

    @abstractmethod
    async def keys(self, pattern: str) -> list[str]:
        """Return all keys matching a glob-style pattern."""
        raise NotImplementedError

    @abstractmethod
    async def exists(self, key: str) -> bool:
        raise NotImplementedError

    @abstractmethod
    async def ttl(self, key: str) -> int:
        """Seconds left, -1 for no expiry, -2 for a missing key."""
        raise NotImplementedError

    @abstractmethod
    async def expire(self, key: str, ttl: int) -> bool:
        raise NotImplementedError

    async def mget(self, keys: list[str]) -> list[str | None]:
        return [await self.get(key) for key in keys]

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        return None


class MemoryBackend(CacheBackend):
    """Dictionary-backed backend with lazy expiry.

    Args:
        clock: Monotonic time source, injectable for tests
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._data: dict[str, tuple[str, float | None]] = {}

    def _live(self, key: str) -> tuple[str, float | None] | None:
        entry = self._data.get(key)
        if entry is None:
            return None
        expires_at = entry[1]
        if expires_at is not None and expires_at <= self._clock():
            del self._data[key]
            return None
        return entry

    async def get(self, key: str) -> str | None:
        entry = self._live(key)
        return entry[0] if entry else None

    async def set(self, key: str, value: str, ttl: int | None) -> None:
        expires_at = self._clock() + ttl if ttl and ttl > 0 else None
        self._data[key] = (value, expires_at)

    async def delete(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            if self._live(key) is not None:
                del self._data[key]
                removed += 1
        return removed

    async def keys(self, pattern: str) -> list[str]:
        return [key for key in list(self._data) if self._live(key) and fnmatch.fnmatchcase(key, pattern)]

    async def exists(self, key: str) -> bool:
        return self._live(key) is not None

    async def ttl(self, key: str) -> int:
        entry = self._live(key)
        if entry is None:
            return -2
        if entry[1] is None:
            return -1
        return max(int(round(entry[1] - self._clock())), 0)

    async def expire(self, key: str, ttl: int) -> bool:
        entry = self._live(key)
        if entry is None:
            return False
        self._data[key] = (entry[0], self._clock() + ttl)
        return True


class RedisBackend(CacheBackend):
    """Backend over a Redis server; pattern lookups use SCAN, not KEYS."""

    def __init__(self, url: str = "redis://localhost:6379/0", client: aioredis.Redis | None = None):
        self._client = client or aioredis.from_url(url, decode_responses=True)

    async def get(self, key: str) -> str | None:
        return await self._client.get(key)

    async def set(self, key: str, value: str, ttl: int | None) -> None:
        await self._client.set(key, value, ex=ttl if ttl and ttl > 0 else None)

    async def delete(self, *keys: str) -> int:
        if not keys:
            return 0
        return int(await self._client.delete(*keys))

    async def keys(self, pattern: str) -> list[str]:
        return [key async for key in self._client.scan_iter(match=pattern)]

    async def exists(self, key: str) -> bool:
        return bool(await self._client.exists(key))

    async def ttl(self, key: str) -> int:
        return int(await self._client.ttl(key))

    async def expire(self, key: str, ttl: int) -> bool:
        return bool(await self._client.expire(key, ttl))

    async def mget(self, keys: list[str]) -> list[str | None]:
        return await self._client.mget(keys)

    async def ping(self) -> bool:
        return bool(await self._client.ping())

    async def close(self) -> None:
        await self._client.aclose()


class Cache:
    """Typed façade over a CacheBackend with a key prefix and JSON values."""

    def __init__(self, backend: CacheBackend, prefix: str = "news-aggregator:", default_ttl: int = 300):
        self.backend = backend
        self.prefix = prefix
        self.default_ttl = default_ttl

    def full_key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    def _degrade(self, operation: str, key: str, exc: Exception) -> None:
        error = CacheError(f"{operation} failed for {key}: {type(exc).__name__}: {exc}")
        log_event(
            logger,
            str(error),
            level=logging.WARNING,
            event="cache_error",
            operation=operation,
            key=key,
        )

    async def get(self, key: str) -> Any | None:
        try:
            raw = await self.backend.get(self.full_key(key))
            return json.loads(raw) if raw is not None else None
        except Exception as exc:  # noqa: BLE001
            self._degrade("get", key, exc)
            return None

    async def set(self, key: str, value: Any, ttl: int | None = None) -> bool:
        try:
            payload = json.dumps(value, default=str)
            await self.backend.set(self.full_key(key), payload, ttl or self.default_ttl)
        except Exception as exc:  # noqa: BLE001
            self._degrade("set", key, exc)
            return False
        logger.debug("Cached value for key %s", key)
        return True

    async def delete(self, key: str) -> bool:
        try:
            return await self.backend.delete(self.full_key(key)) > 0
        except Exception as exc:  # noqa: BLE001
            self._degrade("delete", key, exc)
            return False

    async def exists(self, key: str) -> bool:
        try:
            return await self.backend.exists(self.full_key(key))
        except Exception as exc:  # noqa: BLE001
            self._degrade("exists", key, exc)
            return False

    async def mget(self, keys: list[str]) -> dict[str, Any]:
        if not keys:
            return {}
        try:
            values = await self.backend.mget([self.full_key(key) for key in keys])
            return {key: json.loads(raw) for key, raw in zip(keys, values) if raw is not None}
        except Exception as exc:  # noqa: BLE001
            self._degrade("mget", ",".join(keys), exc)
            return {}

    async def mset(self, values: Mapping[str, Any], ttl: int | None = None) -> bool:
        try:
            for key, value in values.items():
                await self.backend.set(self.full_key(key), json.dumps(value, default=str), ttl or self.default_ttl)
        except Exception as exc:  # noqa: BLE001
            self._degrade("mset", ",".join(values), exc)
            return False
        logger.debug("Cached %d values", len(values))
        return True

    async def ttl(self, key: str) -> int:
        try:
            return await self.backend.ttl(self.full_key(key))
        except Exception as exc:  # noqa: BLE001
            self._degrade("ttl", key, exc)
            return -2

    async def extend_ttl(self, key: str, ttl: int) -> bool:
        try:
            return await self.backend.expire(self.full_key(key), ttl)
        except Exception as exc:  # noqa: BLE001
            self._degrade("extend_ttl", key, exc)
            return False

    async def invalidate_pattern(self, patterns: str | Iterable[str]) -> int:
        """Delete every key under the given wildcard patterns.

        Returns:
            Total number of keys deleted, 0 when the backend fails
        """
        pattern_list = [patterns] if isinstance(patterns, str) else list(patterns)
        total = 0
        try:
            for pattern in pattern_list:
                keys = await self.backend.keys(self.full_key(pattern))
                if keys:
                    total += await self.backend.delete(*keys)
        except Exception as exc:  # noqa: BLE001
            self._degrade("invalidate_pattern", ",".join(pattern_list), exc)
            return total
        log_event(
            logger,
            f"Invalidated {total} cache keys",
            event="cache_invalidated",
            patterns=pattern_list,
            deleted=total,
        )
        return total

    async def remember(
        self,
        key: str,
        producer: Callable[[], Any | Awaitable[Any]],
        ttl: int | None = None,
    ) -> Any:
        """Return the cached value, or compute it once with ``producer`` and store it.

        Storing is best-effort; the computed value is returned either way.
        ``None`` results are not cached.
        """
        cached = await self.get(key)
        if cached is not None:
            return cached
        value = producer()
        if inspect.isawaitable(value):
            value = await value
        if value is not None:
            await self.set(key, value, ttl)
        return value

    async def clear(self) -> bool:
        return await self.invalidate_pattern("*") >= 0

    async def health_check(self) -> dict[str, Any]:
        try:
            ok = await self.backend.ping()
        except Exception as exc:  # noqa: BLE001
            return {"status": "error", "error": str(exc)}
        return {"status": "healthy" if ok else "unhealthy"}

    async def get_stats(self) -> dict[str, Any]:
        try:
            keys = await self.backend.keys(self.full_key("*"))
        except Exception as exc:  # noqa: BLE001
            return {"connected": False, "error": str(exc)}
        return {
            "connected": True,
            "backend": type(self.backend).__name__,
            "prefix": self.prefix,
            "keys": len(keys),
        }

    async def close(self) -> None:
        await self.backend.close()


def build_cache(cfg: CacheConfig) -> Cache:
    """Build the cache from configuration."""
    name = cfg.backend.lower().strip()
    if name == "memory":
        backend: CacheBackend = MemoryBackend()
    elif name == "redis":
        backend = RedisBackend(cfg.redis_url)
    else:
        raise ValueError(f"Unsupported cache backend: {cfg.backend}. Supported: memory, redis")
    return Cache(backend, prefix=cfg.prefix, default_ttl=cfg.default_ttl)
