from fastapi import APIRouter, Depends, Header, HTTPException, Request, status
from fastapi.encoders import jsonable_encoder
from shared.config.settings import get_settings
from shared.security import limiter
from shared.security.dependencies import verify_internal_api_key
from .dependencies import get_order_processor
from .errors import (
    InvalidStatusTransitionError,
    InventoryUnavailableError,
    OrderNotFoundError,
    OrderValidationError,
    PaymentError,
    ServiceUnavailableError,
)
from .schemas import CreateOrderCommand, CreateOrderRequest, OrderResult, OrderStatusResponse
from .service import OrderProcessor

# THIS PROTECTS THE ENTIRE SERVICE
router = APIRouter(dependencies=[Depends(verify_internal_api_key)])
public_router = APIRouter()  # For any public endpoints (e.g. health check)

RETRY_AFTER_SECONDS = "5"


@public_router.get("/health")
async def health_check():
    return {"service": "order", "status": "running"}


def _to_http_error(error: Exception) -> HTTPException:
    if isinstance(error, OrderValidationError):
        return HTTPException(
            status_code=422,
            detail={"message": str(error), "details": error.details},
        )
    if isinstance(error, InventoryUnavailableError):
        return HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={
                "message": str(error),
                "unavailable_items": jsonable_encoder(error.unavailable_items),
            },
        )
    if isinstance(error, PaymentError):
        return HTTPException(
            status_code=status.HTTP_402_PAYMENT_REQUIRED,
            detail={"message": str(error), "order_id": error.order_id},
        )
    if isinstance(error, ServiceUnavailableError):
        return HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={"message": str(error), "service": error.service},
            headers={"Retry-After": RETRY_AFTER_SECONDS},
        )
    if isinstance(error, OrderNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(error))
    if isinstance(error, InvalidStatusTransitionError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(error))
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(error))


# Rate limiting is composed here at the edge, never inside the workflow.
@router.post("/", response_model=OrderResult)
@limiter.limit(get_settings().order_rate_limit)
async def create_order(
    request: Request,                                   # REQUIRED: slowapi needs this to check IP/Headers
    payload: CreateOrderRequest,
    idempotency_key: str = Header(..., alias="Idempotency-Key"),
    processor: OrderProcessor = Depends(get_order_processor),
):
    command = CreateOrderCommand(idempotency_key=idempotency_key, **payload.model_dump())
    outcome = await processor.execute(command)
    if not outcome.ok:
        raise _to_http_error(outcome.error)
    return outcome.result


@router.get("/{order_id}", response_model=OrderResult)
async def get_order(order_id: str, processor: OrderProcessor = Depends(get_order_processor)):
    try:
        return await processor.get_order(order_id)
    except (OrderNotFoundError, ServiceUnavailableError) as e:
        raise _to_http_error(e)


@router.get("/{order_id}/status", response_model=OrderStatusResponse)
async def get_order_status(order_id: str, processor: OrderProcessor = Depends(get_order_processor)):
    try:
        order_status = await processor.get_order_status(order_id)
    except (OrderNotFoundError, ServiceUnavailableError) as e:
        raise _to_http_error(e)
    return OrderStatusResponse(id=order_id, status=order_status)


# Recovery for orders stranded in PENDING
@router.patch("/{order_id}/cancel", response_model=OrderResult)
async def cancel_order(order_id: str, processor: OrderProcessor = Depends(get_order_processor)):
    try:
        return await processor.cancel_order(order_id)
    except (OrderNotFoundError, InvalidStatusTransitionError, ServiceUnavailableError) as e:
        raise _to_http_error(e)
