"""Contracts the order workflow consumes. Implementations live in their own services."""
from contextlib import AbstractAsyncContextManager
from decimal import Decimal
from typing import Optional, Protocol, Sequence

from pydantic import BaseModel

from .models import Order
from .schemas import OrderItem, OrderResult


class UnavailableItem(BaseModel):
    item: str
    requested: int
    available: int
    reason: str = "insufficient_stock"


class InventoryCheckResult(BaseModel):
    success: bool
    errors: list[UnavailableItem] = []


class PaymentRequest(BaseModel):
    order_id: str
    amount: Decimal
    currency: str


class InventoryGateway(Protocol):
    async def check_and_reserve(
        self, items: Sequence[OrderItem], order_id: str, timeout: float
    ) -> InventoryCheckResult: ...

    # Must be a no-op when nothing is held for the order.
    async def release_reservation(self, items: Sequence[OrderItem], order_id: str) -> None: ...


class PaymentGateway(Protocol):
    async def process_payment(self, request: PaymentRequest) -> object: ...


class IdempotencyCache(Protocol):
    async def get(self, key: str) -> Optional[OrderResult]: ...

    async def set(self, key: str, value: OrderResult, ttl_seconds: int) -> None: ...


class KeyedLock(Protocol):
    def hold(self, key: str) -> AbstractAsyncContextManager: ...


class OrderStore(Protocol):
    async def create(self, order_data: dict) -> Order: ...

    async def save(self, order: Order) -> None: ...

    async def get(self, order_id: str) -> Optional[Order]: ...
