from fastapi import APIRouter, Depends, HTTPException
from shared.config.database import AsyncSessionLocal
from shared.security.dependencies import verify_internal_api_key
from .schemas import ProductCreate, ProductResponse, ReservationResponse, StockUpdate
from .service import InventoryService

router = APIRouter(dependencies=[Depends(verify_internal_api_key)])
public_router = APIRouter()  # For any public endpoints (e.g. health check)


def get_inventory_service() -> InventoryService:
    return InventoryService(AsyncSessionLocal)


@public_router.get("/health")
async def health_check():
    return {"service": "inventory", "status": "running"}


@router.post("/products", response_model=ProductResponse)
async def create_product(
    product: ProductCreate,
    service: InventoryService = Depends(get_inventory_service)
):
    return await service.create_product(product)


@router.get("/products/{product_id}", response_model=ProductResponse)
async def get_product(
    product_id: str,
    service: InventoryService = Depends(get_inventory_service)
):
    product = await service.get_product(product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return product


@router.post("/products/{product_id}/restock", response_model=ProductResponse)
async def restock(
    product_id: str,
    payload: StockUpdate,
    service: InventoryService = Depends(get_inventory_service)
):
    product = await service.restock(product_id, payload.quantity)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return product


@router.get("/reservations/{order_id}", response_model=list[ReservationResponse])
async def list_reservations(
    order_id: str,
    service: InventoryService = Depends(get_inventory_service)
):
    return await service.get_reservations(order_id)
