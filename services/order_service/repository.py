import uuid
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy import select
from .models import Order, OrderStatus


class OrderRepository:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def create(self, order_data: dict) -> Order:
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
        async with self.session_factory() as db:
            db.add(order)
            await db.commit()
            await db.refresh(order)
        return order

    async def save(self, order: Order) -> None:
        async with self.session_factory() as db:
            await db.merge(order)
            await db.commit()

    async def get(self, order_id: str) -> Order | None:
        async with self.session_factory() as db:
            result = await db.execute(select(Order).where(Order.id == order_id))
            return result.scalars().first()
