"""
Idempotency cache and per-key lock backends.

The workflow holds the per-key lock from the first cache read until the
write-back, which closes the race between two first-time calls carrying the
same key. LocalKeyedLock serializes callers inside one process; RedisKeyedLock
serializes them across workers.
"""
import asyncio
import logging
import time
from contextlib import asynccontextmanager
from typing import Callable, Optional

import redis.asyncio as aioredis
from redis.exceptions import LockError, RedisError

from .errors import ServiceUnavailableError
from .schemas import OrderResult

logger = logging.getLogger(__name__)


class InMemoryIdempotencyCache:
    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._entries: dict[str, tuple[float, OrderResult]] = {}

    async def get(self, key: str) -> Optional[OrderResult]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at, value = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            return None
        return value

    async def set(self, key: str, value: OrderResult, ttl_seconds: int) -> None:
        self._entries[key] = (self._clock() + ttl_seconds, value)


class RedisIdempotencyCache:
    def __init__(self, redis: aioredis.Redis):
        self.redis = redis

    async def get(self, key: str) -> Optional[OrderResult]:
        try:
            raw = await self.redis.get(key)
        except RedisError as e:
            raise ServiceUnavailableError(f"Idempotency cache read failed: {e}", service="cache") from e
        if raw is None:
            return None
        return OrderResult.model_validate_json(raw)

    async def set(self, key: str, value: OrderResult, ttl_seconds: int) -> None:
        try:
            await self.redis.set(key, value.model_dump_json(), ex=ttl_seconds)
        except RedisError as e:
            raise ServiceUnavailableError(f"Idempotency cache write failed: {e}", service="cache") from e


class LocalKeyedLock:
    def __init__(self, acquire_timeout: float = 60.0):
        self.acquire_timeout = acquire_timeout
        self._locks: dict[str, asyncio.Lock] = {}
        self._holders: dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, key: str):
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._holders[key] = self._holders.get(key, 0) + 1
        try:
            try:
                await asyncio.wait_for(lock.acquire(), self.acquire_timeout)
            except asyncio.TimeoutError as e:
                raise ServiceUnavailableError(
                    f"Timed out waiting for in-flight request on '{key}'", service="idempotency"
                ) from e
            try:
                yield
            finally:
                lock.release()
        finally:
            self._holders[key] -= 1
            if self._holders[key] == 0:
                del self._holders[key]
                del self._locks[key]


class RedisKeyedLock:
    def __init__(self, redis: aioredis.Redis, lease_seconds: float = 60.0, acquire_timeout: float = 60.0):
        self.redis = redis
        self.lease_seconds = lease_seconds
        self.acquire_timeout = acquire_timeout

    @asynccontextmanager
    async def hold(self, key: str):
        lock = self.redis.lock(
            f"lock:{key}", timeout=self.lease_seconds, blocking_timeout=self.acquire_timeout
        )
        try:
            acquired = await lock.acquire()
        except RedisError as e:
            raise ServiceUnavailableError(f"Idempotency lock unavailable: {e}", service="idempotency") from e
        if not acquired:
            raise ServiceUnavailableError(
                f"Timed out waiting for in-flight request on '{key}'", service="idempotency"
            )
        try:
            yield
        finally:
            try:
                await lock.release()
            except LockError:
                # Lease expired before we finished; another worker may already hold it.
                logger.warning(f"Idempotency lock for '{key}' expired before release")
