"""
Error kinds surfaced by order processing.

Each kind maps to a distinct caller policy: validation errors are final,
inventory and payment errors may be retried with the same idempotency key,
and ServiceUnavailableError signals an infrastructure fault that deserves
exponential backoff rather than a permanent rejection.
"""


class OrderProcessingError(Exception):
    """Base class for every error the order workflow raises on purpose."""


class OrderValidationError(OrderProcessingError):
    def __init__(self, message: str, details: list | None = None):
        super().__init__(message)
        self.details = details or []


class InventoryUnavailableError(OrderProcessingError):
    def __init__(self, message: str, unavailable_items: list):
        super().__init__(message)
        self.unavailable_items = unavailable_items


class PaymentError(OrderProcessingError):
    def __init__(self, message: str, order_id: str | None = None):
        super().__init__(message)
        self.order_id = order_id


class PaymentDeclinedError(PaymentError):
    pass


class PaymentTimeoutError(PaymentError):
    pass


class ServiceUnavailableError(OrderProcessingError):
    def __init__(self, message: str, service: str):
        super().__init__(message)
        self.service = service


class InventoryTimeoutError(ServiceUnavailableError):
    def __init__(self, timeout: float):
        super().__init__(f"Inventory reservation timed out after {timeout}s", service="inventory")
        self.timeout = timeout


class OrderNotFoundError(OrderProcessingError):
    def __init__(self, order_id: str):
        super().__init__(f"Order not found: {order_id}")
        self.order_id = order_id


class InvalidStatusTransitionError(OrderProcessingError):
    def __init__(self, current, target):
        super().__init__(f"Cannot transition order from {current} to {target}")
        self.current = current
        self.target = target
