from decimal import Decimal

from pydantic import BaseModel, Field


class ProductCreate(BaseModel):
    id: str
    name: str
    price: Decimal = Field(ge=0)
    stock: int = Field(ge=0)


class ProductResponse(BaseModel):
    id: str
    name: str
    price: Decimal
    stock: int

    class Config:
        from_attributes = True


class StockUpdate(BaseModel):
    quantity: int = Field(gt=0)


class ReservationResponse(BaseModel):
    order_id: str
    product_id: str
    quantity: int
    status: str

    class Config:
        from_attributes = True
