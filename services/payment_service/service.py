import logging
import uuid
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from services.order_service.errors import PaymentDeclinedError
from services.order_service.interfaces import PaymentRequest

from .models import Payment, PAYMENT_FAILED, PAYMENT_SUCCESS
from .repository import PaymentRepository

logger = logging.getLogger(__name__)


class PaymentService:
    """
    Simulated capture: every attempt is recorded, and amounts above
    max_amount are declined. A repeated capture for an order that already
    has a successful payment returns that payment instead of charging twice.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession], max_amount: Decimal | None = None):
        self.session_factory = session_factory
        self.max_amount = max_amount

    async def process_payment(self, request: PaymentRequest) -> Payment:
        async with self.session_factory() as db:
            existing = await PaymentRepository.get_successful_payment(db, request.order_id)
            if existing:
                logger.info(f"Order {request.order_id} already paid: {existing.transaction_id}")
                return existing

            if self.max_amount is not None and request.amount > self.max_amount:
                reason = f"Amount {request.amount} {request.currency} exceeds limit {self.max_amount}"
                await PaymentRepository.create_payment(db, Payment(
                    order_id=request.order_id,
                    amount=request.amount,
                    currency=request.currency,
                    status=PAYMENT_FAILED,
                    failure_reason=reason,
                ))
                raise PaymentDeclinedError(f"Payment declined: {reason}", order_id=request.order_id)

            payment = Payment(
                order_id=request.order_id,
                amount=request.amount,
                currency=request.currency,
                status=PAYMENT_SUCCESS,
                transaction_id=str(uuid.uuid4())
            )
            return await PaymentRepository.create_payment(db, payment)

    async def list_payments(self, order_id: str):
        async with self.session_factory() as db:
            return await PaymentRepository.list_payments(db, order_id)
