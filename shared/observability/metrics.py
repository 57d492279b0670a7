from prometheus_client import Counter, Histogram

# Business Metrics
ecomm_orders_processed_total = Counter(
    "ecomm_orders_processed_total",
    "Total order processing invocations",
    ["outcome"]  # Labels: 'succeeded', 'replayed', 'payment_failed', etc.
)

ecomm_order_processing_duration_ms = Histogram(
    "ecomm_order_processing_duration_ms",
    "Order processing duration in milliseconds",
    buckets=(5, 10, 25, 50, 100, 250, 500, 1000, 2500, 5000, 10000, 30000),
)

ecomm_saga_compensation_total = Counter(
    "ecomm_saga_compensation_total",
    "Total saga compensations triggered",
    ["step_name"]  # Labels: 'reserve_inventory', 'create_order'
)

ecomm_saga_compensation_failures_total = Counter(
    "ecomm_saga_compensation_failures_total",
    "Saga compensations that raised and need manual intervention",
    ["step_name"]
)
