import asyncio
from datetime import datetime, timezone
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from services.order_service.errors import ServiceUnavailableError
from services.order_service.idempotency import (
    InMemoryIdempotencyCache,
    LocalKeyedLock,
    RedisIdempotencyCache,
    RedisKeyedLock,
)
from services.order_service.models import OrderStatus
from services.order_service.schemas import OrderItem, OrderResult
from services.order_service.service import OrderProcessor

from tests.fakes import make_command


def _result(order_id="o-1"):
    now = datetime(2024, 1, 1, tzinfo=timezone.utc)
    return OrderResult(
        id=order_id,
        idempotency_key="k1",
        status=OrderStatus.CONFIRMED,
        items=[OrderItem(product_id="A", quantity=2, unit_price=Decimal("10"))],
        total_amount=Decimal("20"),
        currency="USD",
        metadata={"trace_id": "abc"},
        created_at=now,
        updated_at=now,
    )


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


class TestInMemoryIdempotencyCache:

    @pytest.mark.asyncio
    async def test_entry_expires_after_ttl(self):
        clock = FakeClock()
        cache = InMemoryIdempotencyCache(clock=clock)
        await cache.set("order:k1", _result(), ttl_seconds=86400)

        clock.now += 86399
        assert await cache.get("order:k1") == _result()

        clock.now += 1
        assert await cache.get("order:k1") is None

    @pytest.mark.asyncio
    async def test_replay_window_ends_after_24_hours(self, inventory, payments, orders):
        clock = FakeClock()
        processor = OrderProcessor(
            inventory=inventory,
            payments=payments,
            cache=InMemoryIdempotencyCache(clock=clock),
            orders=orders,
        )

        await processor.process_order(make_command("k1"))
        clock.now += 3600
        await processor.process_order(make_command("k1"))
        assert payments.process_payment.await_count == 1

        clock.now += 24 * 3600
        await processor.process_order(make_command("k1"))
        assert payments.process_payment.await_count == 2


class TestLocalKeyedLock:

    @pytest.mark.asyncio
    async def test_serializes_holders_of_the_same_key(self):
        locks = LocalKeyedLock()
        events = []

        async def worker(name):
            async with locks.hold("order:k1"):
                events.append(f"{name}-in")
                await asyncio.sleep(0.01)
                events.append(f"{name}-out")

        await asyncio.gather(worker("a"), worker("b"))

        assert events in (
            ["a-in", "a-out", "b-in", "b-out"],
            ["b-in", "b-out", "a-in", "a-out"],
        )
        assert locks._locks == {}

    @pytest.mark.asyncio
    async def test_waiting_too_long_is_service_unavailable(self):
        locks = LocalKeyedLock(acquire_timeout=0.01)

        async with locks.hold("order:k1"):
            with pytest.raises(ServiceUnavailableError):
                async with locks.hold("order:k1"):
                    pass


class TestRedisIdempotencyCache:

    @pytest.mark.asyncio
    async def test_set_serializes_with_expiry(self):
        redis = MagicMock()
        redis.set = AsyncMock()
        cache = RedisIdempotencyCache(redis)

        await cache.set("order:k1", _result(), ttl_seconds=86400)

        key, payload = redis.set.await_args.args
        assert key == "order:k1"
        assert redis.set.await_args.kwargs == {"ex": 86400}
        assert OrderResult.model_validate_json(payload) == _result()

    @pytest.mark.asyncio
    async def test_get_round_trips_stored_payload(self):
        redis = MagicMock()
        redis.get = AsyncMock(return_value=_result().model_dump_json().encode())
        cache = RedisIdempotencyCache(redis)

        assert await cache.get("order:k1") == _result()

    @pytest.mark.asyncio
    async def test_missing_key_returns_none(self):
        redis = MagicMock()
        redis.get = AsyncMock(return_value=None)

        assert await RedisIdempotencyCache(redis).get("order:nope") is None

    @pytest.mark.asyncio
    async def test_connection_error_is_service_unavailable(self):
        redis = MagicMock()
        redis.get = AsyncMock(side_effect=RedisConnectionError("refused"))

        with pytest.raises(ServiceUnavailableError):
            await RedisIdempotencyCache(redis).get("order:k1")


class TestRedisKeyedLock:

    @pytest.mark.asyncio
    async def test_acquires_and_releases_prefixed_lock(self):
        lock = MagicMock()
        lock.acquire = AsyncMock(return_value=True)
        lock.release = AsyncMock()
        redis = MagicMock()
        redis.lock.return_value = lock

        async with RedisKeyedLock(redis, lease_seconds=30, acquire_timeout=5).hold("order:k1"):
            lock.release.assert_not_awaited()

        redis.lock.assert_called_once_with("lock:order:k1", timeout=30, blocking_timeout=5)
        lock.release.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_not_acquired_is_service_unavailable(self):
        lock = MagicMock()
        lock.acquire = AsyncMock(return_value=False)
        redis = MagicMock()
        redis.lock.return_value = lock

        with pytest.raises(ServiceUnavailableError):
            async with RedisKeyedLock(redis).hold("order:k1"):
                pass
