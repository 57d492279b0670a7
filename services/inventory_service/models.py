from sqlalchemy import Column, DateTime, Integer, Numeric, String
from sqlalchemy.sql import func
from shared.config.database import Base

RESERVATION_HELD = "held"
RESERVATION_RELEASED = "released"


class Product(Base):
    __tablename__ = "products"

    id = Column(String(64), primary_key=True)  # SKU
    name = Column(String, nullable=False)
    price = Column(Numeric(12, 2), nullable=False)
    stock = Column(Integer, nullable=False)  # on hand minus held reservations


class Reservation(Base):
    __tablename__ = "reservations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(String(36), nullable=False, index=True)
    product_id = Column(String(64), nullable=False)
    quantity = Column(Integer, nullable=False)
    status = Column(String(16), nullable=False, default=RESERVATION_HELD)  # held, released
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    released_at = Column(DateTime(timezone=True), nullable=True)
