from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from .models import Product, Reservation, RESERVATION_HELD


class InventoryRepository:

    @staticmethod
    async def create_product(db: AsyncSession, product: Product):
        db.add(product)
        await db.commit()
        await db.refresh(product)
        return product

    @staticmethod
    async def get_product_by_id(db: AsyncSession, product_id: str):
        result = await db.execute(select(Product).where(Product.id == product_id))
        return result.scalars().first()

    @staticmethod
    async def get_products_for_update(db: AsyncSession, product_ids: list[str]):
        # Row locks on PostgreSQL; SQLite ignores FOR UPDATE.
        result = await db.execute(
            select(Product).where(Product.id.in_(product_ids)).with_for_update()
        )
        return result.scalars().all()

    @staticmethod
    async def update_product(db: AsyncSession, product: Product):
        db.add(product)
        await db.commit()
        await db.refresh(product)
        return product

    @staticmethod
    async def get_held_reservations(db: AsyncSession, order_id: str):
        result = await db.execute(
            select(Reservation)
            .where(Reservation.order_id == order_id)
            .where(Reservation.status == RESERVATION_HELD)
        )
        return result.scalars().all()

    @staticmethod
    async def get_reservations(db: AsyncSession, order_id: str):
        result = await db.execute(select(Reservation).where(Reservation.order_id == order_id))
        return result.scalars().all()
