import asyncio
import logging
from collections import defaultdict
from datetime import datetime, timezone
from typing import Sequence

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from services.order_service.interfaces import InventoryCheckResult, UnavailableItem
from services.order_service.schemas import OrderItem

from .models import Product, Reservation, RESERVATION_RELEASED
from .repository import InventoryRepository
from .schemas import ProductCreate

logger = logging.getLogger(__name__)


class InventoryService:
    """Stock holds keyed by order id. Reserving and releasing are both idempotent per order."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def check_and_reserve(
        self, items: Sequence[OrderItem], order_id: str, timeout: float
    ) -> InventoryCheckResult:
        return await asyncio.wait_for(self._reserve(items, order_id), timeout)

    async def _reserve(self, items: Sequence[OrderItem], order_id: str) -> InventoryCheckResult:
        # 1. Aggregate lines per product
        requested: dict[str, int] = defaultdict(int)
        for item in items:
            requested[item.product_id] += item.quantity

        async with self.session_factory() as db:
            if await InventoryRepository.get_held_reservations(db, order_id):
                logger.info(f"Reservation for order {order_id} already held")
                return InventoryCheckResult(success=True)

            # 2. Check Stock
            products = {
                p.id: p for p in await InventoryRepository.get_products_for_update(db, list(requested))
            }
            errors = []
            for product_id, quantity in requested.items():
                product = products.get(product_id)
                if product is None:
                    errors.append(UnavailableItem(
                        item=product_id, requested=quantity, available=0, reason="unknown_product"
                    ))
                elif product.stock < quantity:
                    errors.append(UnavailableItem(
                        item=product_id, requested=quantity, available=product.stock
                    ))

            if errors:
                await db.rollback()
                return InventoryCheckResult(success=False, errors=errors)

            # 3. Hold
            for product_id, quantity in requested.items():
                products[product_id].stock -= quantity
                db.add(Reservation(order_id=order_id, product_id=product_id, quantity=quantity))
            await db.commit()

        logger.info(f"Reserved {dict(requested)} for order {order_id}")
        return InventoryCheckResult(success=True)

    async def release_reservation(self, items: Sequence[OrderItem], order_id: str) -> None:
        product_ids = {item.product_id for item in items}
        async with self.session_factory() as db:
            held = [
                r for r in await InventoryRepository.get_held_reservations(db, order_id)
                if not product_ids or r.product_id in product_ids
            ]
            if not held:
                return

            products = {
                p.id: p for p in await InventoryRepository.get_products_for_update(
                    db, [r.product_id for r in held]
                )
            }
            now = datetime.now(timezone.utc)
            for reservation in held:
                product = products.get(reservation.product_id)
                if product is not None:
                    product.stock += reservation.quantity
                reservation.status = RESERVATION_RELEASED
                reservation.released_at = now
            await db.commit()

        logger.info(f"Released reservation for order {order_id}")

    # --- PRODUCT ADMIN ---

    async def create_product(self, data: ProductCreate):
        product = Product(id=data.id, name=data.name, price=data.price, stock=data.stock)
        async with self.session_factory() as db:
            return await InventoryRepository.create_product(db, product)

    async def get_product(self, product_id: str):
        async with self.session_factory() as db:
            return await InventoryRepository.get_product_by_id(db, product_id)

    async def restock(self, product_id: str, quantity: int):
        async with self.session_factory() as db:
            product = await InventoryRepository.get_product_by_id(db, product_id)
            if not product:
                return None
            product.stock += quantity
            return await InventoryRepository.update_product(db, product)

    async def get_reservations(self, order_id: str):
        async with self.session_factory() as db:
            return await InventoryRepository.get_reservations(db, order_id)
