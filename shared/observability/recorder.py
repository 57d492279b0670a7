import logging

from .metrics import (
    ecomm_order_processing_duration_ms,
    ecomm_orders_processed_total,
)

logger = logging.getLogger(__name__)


class MetricsService:
    """Thin facade over the Prometheus collectors. Recording never raises."""

    def record_order_processing_time(self, duration_ms: float) -> None:
        try:
            ecomm_order_processing_duration_ms.observe(duration_ms)
        except Exception as e:
            logger.warning(f"Dropping processing time sample: {e}")

    def record_outcome(self, outcome: str) -> None:
        try:
            ecomm_orders_processed_total.labels(outcome=outcome).inc()
        except Exception as e:
            logger.warning(f"Dropping outcome sample '{outcome}': {e}")
