"""
Vendor Locks
============

Per-vendor mutual exclusion so runs for the same vendor never evaluate
concurrently.

Implementations:
- RedisVendorLock: shared across worker processes
- LocalVendorLock: single process (tests, inline execution)

Version: 0.1.0
"""

import asyncio
from abc import ABC, abstractmethod
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from shared.database.redis import redis_lock
from shared.errors import VendorBusyError
from shared.logging import get_logger


logger = get_logger(__name__)


def vendor_lock_key(vendor_id: str) -> str:
    return f"lock:verification:vendor:{vendor_id}"


class VendorLock(ABC):
    """Serializes verification runs per vendor."""

    @abstractmethod
    def hold(self, vendor_id: str, wait_seconds: float, ttl_seconds: int):  # type: ignore[no-untyped-def]
        """
        Async context manager holding the vendor's lock.

        Raises:
            VendorBusyError: the lock was not acquired within `wait_seconds`
        """
        ...


class RedisVendorLock(VendorLock):
    """Redis SET NX lock with an expiry so crashed workers release it."""

    @asynccontextmanager
    async def hold(
        self,
        vendor_id: str,
        wait_seconds: float,
        ttl_seconds: int,
    ) -> AsyncGenerator[None, None]:
        async with redis_lock(
            vendor_lock_key(vendor_id),
            ttl_seconds=ttl_seconds,
            wait_seconds=wait_seconds,
        ) as acquired:
            if not acquired:
                logger.warning("vendor_lock_busy", vendor_id=vendor_id)
                raise VendorBusyError(vendor_id)
            yield


class LocalVendorLock(VendorLock):
    """In-process lock keyed by vendor id; entries are dropped once unused."""

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        # Holders plus waiters per vendor
        self._users: dict[str, int] = {}

    @asynccontextmanager
    async def hold(
        self,
        vendor_id: str,
        wait_seconds: float,
        ttl_seconds: int,
    ) -> AsyncGenerator[None, None]:
        lock = self._locks.setdefault(vendor_id, asyncio.Lock())
        self._users[vendor_id] = self._users.get(vendor_id, 0) + 1
        try:
            try:
                await asyncio.wait_for(lock.acquire(), timeout=wait_seconds)
            except TimeoutError:
                logger.warning("vendor_lock_busy", vendor_id=vendor_id)
                raise VendorBusyError(vendor_id) from None
            try:
                yield
            finally:
                lock.release()
        finally:
            self._users[vendor_id] -= 1
            if not self._users[vendor_id]:
                del self._users[vendor_id]
                del self._locks[vendor_id]

    def is_locked(self, vendor_id: str) -> bool:
        lock = self._locks.get(vendor_id)
        return lock is not None and lock.locked()

    def __len__(self) -> int:
        return len(self._locks)
