"""
Redis Client
============

Async Redis client used for per-vendor verification locks.

Version: 0.1.0
"""

import asyncio
import time
import uuid
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

import redis.asyncio as aioredis
from redis.asyncio import Redis

from shared.config import settings
from shared.logging import get_logger

logger = get_logger(__name__)


# Delete the key only if it still holds our token
_RELEASE_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
else
    return 0
end
"""


class RedisClient:
    """
    Async Redis client wrapper.

    Provides lock primitives and connection management.
    """

    _client: Redis | None = None  # type: ignore[type-arg]

    @classmethod
    def get_client(cls) -> Redis:  # type: ignore[type-arg]
        """Get or create the async client."""
        if cls._client is None:
            cls._client = aioredis.from_url(
                settings.redis.url,
                encoding="utf-8",
                decode_responses=True,
                max_connections=50,
            )
            logger.info(
                "redis_client_created",
                host=settings.redis.host,
            )
        return cls._client

    @classmethod
    async def close(cls) -> None:
        """Close the client and release all connections."""
        if cls._client is not None:
            await cls._client.aclose()
            cls._client = None
            logger.info("redis_client_closed")

    @classmethod
    async def health_check(cls, lock_pattern: str = "lock:verification:*") -> dict[str, Any]:
        """
        Ping Redis and count the locks currently held.

        Args:
            lock_pattern: Key pattern counted as held locks

        Returns:
            dict with status, latency, server version and ``locks_held``
        """
        start = time.perf_counter()
        try:
            client = cls.get_client()
            await client.ping()
            latency_ms = (time.perf_counter() - start) * 1000
            info = await client.info("server")
            locks_held = 0
            async for _ in client.scan_iter(match=lock_pattern, count=500):
                locks_held += 1
        except Exception as e:
            logger.error("redis_health_check_failed", error=str(e))
            return {"status": "unhealthy", "error": str(e)}

        return {
            "status": "healthy",
            "latency_ms": round(latency_ms, 2),
            "redis_version": info.get("redis_version", "unknown"),
            "locks_held": locks_held,
        }

    # =========================================================================
    # Locks
    # =========================================================================

    @classmethod
    async def try_acquire_lock(cls, key: str, token: str, ttl_seconds: int) -> bool:
        """
        Set `key` to `token` if absent.

        Args:
            key: Lock key
            token: Unique owner token
            ttl_seconds: Expiry so a crashed owner cannot hold the lock forever

        Returns:
            True if the lock was acquired
        """
        client = cls.get_client()
        acquired = await client.set(key, token, nx=True, ex=ttl_seconds)
        return bool(acquired)

    @classmethod
    async def release_lock(cls, key: str, token: str) -> bool:
        """Release `key` if it is still owned by `token`."""
        client = cls.get_client()
        released = await client.eval(_RELEASE_SCRIPT, 1, key, token)
        return bool(released)


@asynccontextmanager
async def redis_lock(
    key: str,
    ttl_seconds: int = 60,
    wait_seconds: float = 0.0,
    poll_interval: float = 0.1,
) -> AsyncGenerator[bool, None]:
    """
    Token-owned Redis lock, polling until `wait_seconds` elapses.

    Usage:
        async with redis_lock("lock:verification:vendor:v1", wait_seconds=5) as acquired:
            if acquired:
                ...  # evaluate the vendor
    """
    token = str(uuid.uuid4())
    deadline = time.monotonic() + wait_seconds

    acquired = await RedisClient.try_acquire_lock(key, token, ttl_seconds)
    while not acquired and time.monotonic() < deadline:
        await asyncio.sleep(poll_interval)
        acquired = await RedisClient.try_acquire_lock(key, token, ttl_seconds)

    try:
        yield acquired
    finally:
        if acquired:
            await RedisClient.release_lock(key, token)
