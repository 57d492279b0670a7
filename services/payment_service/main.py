from fastapi import FastAPI
from shared.config.database import create_tables
from shared.observability import setup_observability
from .router import router, public_router
from .models import Payment  # Import to register with Base

payment_app = FastAPI(title="Payment Service", version="2.0.0")

# --- OBSERVABILITY BOOTSTRAP ---
setup_observability(payment_app, "payment_service")

payment_app.include_router(public_router)
payment_app.include_router(router)


@payment_app.on_event("startup")
async def startup_event():
    await create_tables()
