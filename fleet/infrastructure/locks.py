"""
Per-key critical sections for the request lifecycle.

Two providers share the ``hold(key)`` interface:

* ``LocalLockProvider`` -- one ``asyncio.Lock`` per key, for the default
  single-process deployment.  Entries are reference-counted and dropped
  once nobody holds or waits on them.
* ``RedisLockProvider`` -- ``DistributedLock`` (SET NX EX for acquire and a
  Lua script for atomic check-and-delete on release), polled until
  ``wait_seconds`` elapse, for several API processes sharing one database.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from contextlib import asynccontextmanager
from typing import AsyncIterator

import redis.asyncio as aioredis

logger = logging.getLogger(__name__)


class LockTimeout(RuntimeError):
    """The lock stayed busy longer than the caller was willing to wait."""


class LocalLockProvider:
    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._users: dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._users[key] = self._users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if not self._users[key]:
                del self._users[key]
                del self._locks[key]

    def __len__(self) -> int:
        return len(self._locks)


class DistributedLock:
    """One attempt-at-a-time Redis lock on ``lock:<key>``, owned by a random token."""

    RELEASE_SCRIPT = """
    if redis.call("get", KEYS[1]) == ARGV[1] then
        return redis.call("del", KEYS[1])
    end
    return 0
    """

    def __init__(
        self, client: aioredis.Redis, key: str, ttl_seconds: int = 30
    ):
        self.redis = client
        self.key = f"lock:{key}"
        self.ttl = ttl_seconds
        self.token = uuid.uuid4().hex

    async def acquire(self) -> bool:
        return bool(
            await self.redis.set(self.key, self.token, nx=True, ex=self.ttl)
        )

    async def release(self) -> bool:
        """Delete the key if this token still owns it; False once the TTL ran out."""
        return bool(await self.redis.eval(self.RELEASE_SCRIPT, 1, self.key, self.token))


class RedisLockProvider:
    def __init__(
        self,
        client: aioredis.Redis,
        ttl_seconds: int = 30,
        wait_seconds: float = 5.0,
        poll_interval: float = 0.05,
    ):
        self.redis = client
        self.ttl = ttl_seconds
        self.wait_seconds = wait_seconds
        self.poll_interval = poll_interval

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        lock = DistributedLock(self.redis, key, ttl_seconds=self.ttl)
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.wait_seconds
        while not await lock.acquire():
            if loop.time() >= deadline:
                logger.warning("Lock %s still busy after %.1fs", lock.key, self.wait_seconds)
                raise LockTimeout(f"Could not acquire lock: {lock.key}")
            await asyncio.sleep(self.poll_interval)
        try:
            yield
        finally:
            if not await lock.release():
                logger.warning(
                    "Lock %s expired before release (ttl=%ss)", lock.key, self.ttl
                )

    async def close(self) -> None:
        await self.redis.aclose()
