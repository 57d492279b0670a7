from functools import lru_cache

import redis.asyncio as aioredis

from shared.config.database import AsyncSessionLocal
from shared.config.settings import get_settings
from shared.observability import MetricsService
from services.inventory_service.service import InventoryService
from services.payment_service.service import PaymentService

from .idempotency import (
    InMemoryIdempotencyCache,
    LocalKeyedLock,
    RedisIdempotencyCache,
    RedisKeyedLock,
)
from .repository import OrderRepository
from .service import OrderProcessor


def build_order_processor(settings=None) -> OrderProcessor:
    """Wires the workflow to its collaborators from settings."""
    settings = settings or get_settings()

    if settings.redis_url:
        redis = aioredis.from_url(settings.redis_url)
        cache = RedisIdempotencyCache(redis)
        locks = RedisKeyedLock(
            redis,
            lease_seconds=settings.idempotency_lock_timeout_seconds,
            acquire_timeout=settings.idempotency_lock_timeout_seconds,
        )
    else:
        cache = InMemoryIdempotencyCache()
        locks = LocalKeyedLock(acquire_timeout=settings.idempotency_lock_timeout_seconds)

    return OrderProcessor(
        inventory=InventoryService(AsyncSessionLocal),
        payments=PaymentService(AsyncSessionLocal, max_amount=settings.payment_max_amount),
        cache=cache,
        orders=OrderRepository(AsyncSessionLocal),
        metrics=MetricsService(),
        locks=locks,
        inventory_timeout=settings.inventory_timeout_seconds,
        payment_timeout=settings.payment_timeout_seconds,
        idempotency_ttl=settings.idempotency_ttl_seconds,
    )


@lru_cache
def get_order_processor() -> OrderProcessor:
    return build_order_processor()
