"""Expiring key/value cache in front of the durable store.

The cache is lossy and never authoritative: every entry written here can be
rebuilt from the store. Services depend on the small ``Cache`` interface so
tests can swap in an in-memory double; production uses ``RedisCache``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

import redis.asyncio as redis

# ---------------------------------------------------------------------------
# Key namespaces
# ---------------------------------------------------------------------------


def session_key(token: str) -> str:
    return f"session:{token}"


def verdict_key(url: str) -> str:
    return f"phishing:url:{url}"


def code_key(code: str) -> str:
    return f"phishing:code:{code}"


def user_data_key(user_id: int) -> str:
    return f"user_data:{user_id}"


def notifications_key(user_id: int) -> str:
    return f"notifications:{user_id}"


def blocked_key(user_id: int) -> str:
    return f"blocked_phishing:{user_id}"


# ---------------------------------------------------------------------------
# Interface
# ---------------------------------------------------------------------------


class Cache(ABC):
    """Minimal cache contract: string values with per-key expiry."""

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """Return the stored value, or None when absent or expired."""
        ...

    @abstractmethod
    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        """Store ``value`` under ``key``, expiring after ``ttl_seconds``."""
        ...

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove ``key``. Deleting a missing key is not an error."""
        ...


class RedisCache(Cache):
    """``Cache`` backed by a ``redis.asyncio`` client (decode_responses=True)."""

    def __init__(self, client: redis.Redis) -> None:
        self.client = client

    async def get(self, key: str) -> str | None:
        return await self.client.get(key)

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        await self.client.set(key, value, ex=ttl_seconds)

    async def delete(self, key: str) -> None:
        await self.client.delete(key)


# ---------------------------------------------------------------------------
# Connection pool lifecycle
# ---------------------------------------------------------------------------

_pool: redis.Redis | None = None


async def init_redis(url: str) -> None:
    """Initialize the Redis connection pool."""
    global _pool  # noqa: PLW0603
    _pool = redis.from_url(  # type: ignore[no-untyped-call]
        url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=50,
        socket_timeout=5,
    )


async def close_redis() -> None:
    """Close the Redis connection pool."""
    global _pool  # noqa: PLW0603
    if _pool:
        await _pool.aclose()
        _pool = None


def get_redis() -> redis.Redis:
    """Get the raw Redis client."""
    if _pool is None:
        msg = "Redis not initialized. Call init_redis() first."
        raise RuntimeError(msg)
    return _pool


def get_cache() -> Cache:
    """Get the process-wide cache adapter (FastAPI dependency)."""
    return RedisCache(get_redis())
