from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel


class PaymentResponse(BaseModel):
    id: int
    order_id: str
    amount: Decimal
    currency: str
    status: str
    transaction_id: str | None
    failure_reason: str | None
    created_at: datetime | None

    class Config:
        from_attributes = True
