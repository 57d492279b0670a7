from sqlalchemy import Column, DateTime, Integer, Numeric, String
from sqlalchemy.sql import func
from shared.config.database import Base

PAYMENT_SUCCESS = "success"
PAYMENT_FAILED = "failed"


class Payment(Base):
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(String(36), nullable=False, index=True)
    amount = Column(Numeric(12, 2), nullable=False)
    currency = Column(String(3), nullable=False)
    status = Column(String(16), nullable=False)  # success, failed
    transaction_id = Column(String, nullable=True)
    failure_reason = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
