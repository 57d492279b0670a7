"""In-memory collaborators. Each public method is an AsyncMock so tests can assert calls."""
import uuid
from collections import defaultdict
from datetime import datetime, timezone
from decimal import Decimal
from unittest.mock import AsyncMock

from services.order_service.interfaces import InventoryCheckResult, UnavailableItem
from services.order_service.models import Order, OrderStatus
from services.order_service.schemas import CreateOrderCommand, OrderItem

INTERNAL_API_KEY = "test-internal-key"


def make_command(key="k1", items=None, total="20", currency="USD", customer_data=None):
    if items is None:
        items = [OrderItem(product_id="A", quantity=2, unit_price=Decimal("10"))]
    return CreateOrderCommand(
        idempotency_key=key,
        items=items,
        total_amount=Decimal(total),
        currency=currency,
        customer_data=customer_data,
    )


class FakeInventory:
    def __init__(self):
        self.unavailable: set[str] = set()
        self.held: dict[str, list] = {}
        self.check_and_reserve = AsyncMock(side_effect=self._reserve)
        self.release_reservation = AsyncMock(side_effect=self._release)

    async def _reserve(self, items, order_id, timeout):
        errors = [
            UnavailableItem(item=item.product_id, requested=item.quantity, available=0)
            for item in items if item.product_id in self.unavailable
        ]
        if errors:
            return InventoryCheckResult(success=False, errors=errors)
        self.held[order_id] = list(items)
        return InventoryCheckResult(success=True)

    async def _release(self, items, order_id):
        self.held.pop(order_id, None)


class FakePayments:
    def __init__(self):
        self.process_payment = AsyncMock(return_value=None)


class FakeOrderRepository:
    def __init__(self):
        self.orders: dict[str, Order] = {}
        self.saved_statuses: dict[str, list[str]] = defaultdict(list)
        self.create = AsyncMock(side_effect=self._create)
        self.save = AsyncMock(side_effect=self._save)
        self.get = AsyncMock(side_effect=self._get)

    async def _create(self, order_data):
        now = datetime.now(timezone.utc)
        order = Order(
            id=order_data.get("id") or str(uuid.uuid4()),
            idempotency_key=order_data["idempotency_key"],
            items=order_data["items"],
            total_amount=order_data["total_amount"],
            currency=order_data["currency"],
            customer_data=order_data.get("customer_data"),
            status=order_data.get("status", OrderStatus.PENDING).value,
            processing_metadata=order_data.get("metadata", {}),
            created_at=now,
            updated_at=now,
        )
        self.orders[order.id] = order
        self.saved_statuses[order.id].append(order.status)
        return order

    async def _save(self, order):
        self.orders[order.id] = order
        self.saved_statuses[order.id].append(order.status)

    async def _get(self, order_id):
        return self.orders.get(order_id)

    def persisted_status(self, order_id) -> str:
        return self.saved_statuses[order_id][-1]
