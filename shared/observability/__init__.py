from .setup import setup_observability, configure_logging
from .recorder import MetricsService
from .metrics import (
    ecomm_orders_processed_total,
    ecomm_order_processing_duration_ms,
    ecomm_saga_compensation_total,
    ecomm_saga_compensation_failures_total,
)
