from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from .models import Payment, PAYMENT_SUCCESS


class PaymentRepository:
    @staticmethod
    async def create_payment(db: AsyncSession, payment: Payment):
        db.add(payment)
        await db.commit()
        await db.refresh(payment)
        return payment

    @staticmethod
    async def get_successful_payment(db: AsyncSession, order_id: str):
        result = await db.execute(
            select(Payment)
            .where(Payment.order_id == order_id)
            .where(Payment.status == PAYMENT_SUCCESS)
        )
        return result.scalars().first()

    @staticmethod
    async def list_payments(db: AsyncSession, order_id: str):
        result = await db.execute(
            select(Payment).where(Payment.order_id == order_id).order_by(Payment.id)
        )
        return result.scalars().all()
