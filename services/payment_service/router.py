"""
Payment records are written only by the order workflow; this router exposes
them read-only behind the internal API key.
"""
from fastapi import APIRouter, Depends

from shared.config.database import AsyncSessionLocal
from shared.config.settings import get_settings
from shared.security.dependencies import verify_internal_api_key

from .schemas import PaymentResponse
from .service import PaymentService

# Router-level dependency protects all payment endpoints
router = APIRouter(dependencies=[Depends(verify_internal_api_key)])
public_router = APIRouter()  # For any public endpoints (e.g. health check)


def get_payment_service() -> PaymentService:
    return PaymentService(AsyncSessionLocal, max_amount=get_settings().payment_max_amount)


@public_router.get("/health", include_in_schema=False)
async def health_check():
    return {"service": "payment", "status": "running"}


@router.get("/orders/{order_id}", response_model=list[PaymentResponse])
async def list_payments(
    order_id: str, service: PaymentService = Depends(get_payment_service)
):
    return await service.list_payments(order_id)
