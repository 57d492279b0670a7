from datetime import datetime
from decimal import Decimal
from typing import Any, List, Optional

from pydantic import BaseModel, Field

from .models import Order, OrderStatus


class OrderItem(BaseModel):
    product_id: str
    quantity: int
    unit_price: Decimal


class CustomerData(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None


class CreateOrderRequest(BaseModel):
    """HTTP body; the idempotency key travels in the Idempotency-Key header."""
    items: List[OrderItem]
    total_amount: Decimal
    currency: str
    customer_data: Optional[CustomerData] = None


class CreateOrderCommand(CreateOrderRequest):
    idempotency_key: str


class OrderResult(BaseModel):
    id: str
    idempotency_key: str
    status: OrderStatus
    items: List[OrderItem]
    total_amount: Decimal
    currency: str
    customer_data: Optional[CustomerData] = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime
    updated_at: datetime

    class Config:
        frozen = True

    @classmethod
    def from_order(cls, order: Order) -> "OrderResult":
        return cls(
            id=order.id,
            idempotency_key=order.idempotency_key,
            status=order.order_status,
            items=[OrderItem.model_validate(item) for item in order.items],
            total_amount=order.total_amount,
            currency=order.currency,
            customer_data=order.customer_data,
            metadata=order.processing_metadata or {},
            created_at=order.created_at,
            updated_at=order.updated_at,
        )


class OrderStatusResponse(BaseModel):
    id: str
    status: OrderStatus
