from decimal import Decimal

import pytest

from services.order_service.errors import PaymentDeclinedError
from services.order_service.interfaces import PaymentRequest
from services.payment_service.models import PAYMENT_FAILED, PAYMENT_SUCCESS
from services.payment_service.service import PaymentService


class TestPaymentService:

    @pytest.mark.asyncio
    async def test_successful_capture_is_recorded(self, session_factory):
        service = PaymentService(session_factory)

        payment = await service.process_payment(
            PaymentRequest(order_id="o-1", amount=Decimal("20"), currency="USD")
        )

        assert payment.status == PAYMENT_SUCCESS
        assert payment.transaction_id
        assert [p.id for p in await service.list_payments("o-1")] == [payment.id]

    @pytest.mark.asyncio
    async def test_amount_over_limit_is_declined_and_recorded(self, session_factory):
        service = PaymentService(session_factory, max_amount=Decimal("100"))

        with pytest.raises(PaymentDeclinedError) as exc_info:
            await service.process_payment(
                PaymentRequest(order_id="o-2", amount=Decimal("150"), currency="USD")
            )

        assert exc_info.value.order_id == "o-2"
        (payment,) = await service.list_payments("o-2")
        assert payment.status == PAYMENT_FAILED
        assert "exceeds limit" in payment.failure_reason

    @pytest.mark.asyncio
    async def test_repeated_capture_does_not_charge_twice(self, session_factory):
        service = PaymentService(session_factory)
        request = PaymentRequest(order_id="o-3", amount=Decimal("20"), currency="USD")

        first = await service.process_payment(request)
        second = await service.process_payment(request)

        assert first.transaction_id == second.transaction_id
        assert len(await service.list_payments("o-3")) == 1
