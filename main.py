from fastapi import FastAPI
from shared.config.database import create_tables

# IMPORTANT: import models so they register with Base
from services.order_service import models as order_models
from services.inventory_service import models as inventory_models
from services.payment_service import models as payment_models

from services.order_service.main import order_app
from services.inventory_service.main import inventory_app
from services.payment_service.main import payment_app

app = FastAPI(title="Order Processing Cluster")


@app.on_event("startup")
async def startup_event():
    await create_tables()

app.mount("/orders", order_app)
app.mount("/inventory", inventory_app)
app.mount("/payments", payment_app)
