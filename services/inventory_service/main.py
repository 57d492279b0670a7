from fastapi import FastAPI
from shared.config.database import create_tables
from shared.observability import setup_observability
from .router import router, public_router
from .models import Product, Reservation  # Import to register with Base

inventory_app = FastAPI(title="Inventory Service", version="2.0.0")

# --- OBSERVABILITY BOOTSTRAP ---
setup_observability(inventory_app, "inventory_service")

inventory_app.include_router(public_router)
inventory_app.include_router(router)


@inventory_app.on_event("startup")
async def startup_event():
    await create_tables()
