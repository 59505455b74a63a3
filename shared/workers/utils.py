"""Shared utilities for Celery worker tasks."""

import asyncio
from collections.abc import Coroutine
from typing import Any, TypeVar

from shared.database import KafkaClient, PostgresClient, RedisClient


T = TypeVar("T")


async def close_clients() -> None:
    """Release pooled connections bound to the current event loop."""
    await PostgresClient.close()
    await RedisClient.close()
    await KafkaClient.close()


def run_async(coro: Coroutine[Any, Any, T]) -> T:
    """
    Run a coroutine to completion from a synchronous task.

    Each task gets a fresh event loop, so the shared clients are closed
    before it exits.
    """

    async def _main() -> T:
        try:
            return await coro
        finally:
            await close_clients()

    return asyncio.run(_main())
