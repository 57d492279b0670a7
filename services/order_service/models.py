import enum
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, JSON, Numeric, String
from shared.config.database import Base

from .errors import InvalidStatusTransitionError


class OrderStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self is not OrderStatus.PENDING


class Order(Base):
    __tablename__ = "orders"

    id = Column(String(36), primary_key=True)
    # Not unique: a key whose earlier attempt FAILED may be retried.
    idempotency_key = Column(String(255), nullable=False, index=True)
    items = Column(JSON, nullable=False)
    total_amount = Column(Numeric(12, 2), nullable=False)
    currency = Column(String(3), nullable=False)
    customer_data = Column(JSON, nullable=True)  # anonymized before it gets here
    status = Column(String(16), nullable=False, default=OrderStatus.PENDING.value)
    processing_metadata = Column("metadata", JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)

    @property
    def order_status(self) -> OrderStatus:
        return OrderStatus(self.status)

    def transition_to(self, target: OrderStatus) -> None:
        current = self.order_status
        if current.is_terminal or target is OrderStatus.PENDING:
            raise InvalidStatusTransitionError(current.value, target.value)
        self.status = target.value
        self.updated_at = datetime.now(timezone.utc)
