"""
Order processing workflow.

process_order() turns a CreateOrderCommand into exactly one CONFIRMED or
FAILED order:

    1. idempotency check      (replay the cached result, if any)
    2. validation             (PII masked before anything is written)
    3. reserve inventory      (bounded by inventory_timeout)
    4. create order PENDING   (durability point)
    5. capture payment        (bounded by payment_timeout)
    6. idempotency write-back (success only)
    7. metrics + log line     (never raise)

Steps 3-5 run as a saga: when payment fails, times out or is cancelled, the
order is marked FAILED and the reservation released before the original
error propagates. Steps 1-6 run under a per-key lock so two first-time
calls with the same idempotency key cannot both reach payment.
"""
import asyncio
import time
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Sequence

import structlog
from opentelemetry import trace
from sqlalchemy.exc import SQLAlchemyError

from shared.observability import MetricsService

from .errors import (
    InventoryTimeoutError,
    InventoryUnavailableError,
    OrderNotFoundError,
    OrderProcessingError,
    OrderValidationError,
    PaymentError,
    PaymentTimeoutError,
    ServiceUnavailableError,
)
from .idempotency import LocalKeyedLock
from .interfaces import (
    IdempotencyCache,
    InventoryGateway,
    KeyedLock,
    OrderStore,
    PaymentGateway,
    PaymentRequest,
)
from .models import Order, OrderStatus
from .privacy import anonymize_customer_data
from .saga import SagaOrchestrator
from .schemas import CreateOrderCommand, OrderItem, OrderResult

IDEMPOTENCY_KEY_PREFIX = "order:"
DEFAULT_IDEMPOTENCY_TTL_SECONDS = 24 * 60 * 60
DEFAULT_INVENTORY_TIMEOUT_SECONDS = 5.0
DEFAULT_PAYMENT_TIMEOUT_SECONDS = 30.0

# Collaborator faults that mean "try again later", not "your order is bad".
INFRASTRUCTURE_ERRORS = (OSError, SQLAlchemyError)

logger = structlog.get_logger(__name__)
tracer = trace.get_tracer("order-service")


class OutcomeKind(str, Enum):
    SUCCEEDED = "succeeded"
    REPLAYED = "replayed"
    VALIDATION_FAILED = "validation_failed"
    INVENTORY_UNAVAILABLE = "inventory_unavailable"
    PAYMENT_FAILED = "payment_failed"
    SERVICE_UNAVAILABLE = "service_unavailable"


@dataclass(frozen=True)
class OrderOutcome:
    kind: OutcomeKind
    result: Optional[OrderResult] = None
    error: Optional[OrderProcessingError] = None
    compensated: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def failure(cls, error: OrderProcessingError, compensated: bool = False) -> "OrderOutcome":
        if isinstance(error, OrderValidationError):
            kind = OutcomeKind.VALIDATION_FAILED
        elif isinstance(error, InventoryUnavailableError):
            kind = OutcomeKind.INVENTORY_UNAVAILABLE
        elif isinstance(error, PaymentError):
            kind = OutcomeKind.PAYMENT_FAILED
        else:
            kind = OutcomeKind.SERVICE_UNAVAILABLE
        return cls(kind=kind, error=error, compensated=compensated)

    def unwrap(self) -> OrderResult:
        if self.error is not None:
            raise self.error
        return self.result


class OrderProcessor:
    def __init__(
        self,
        inventory: InventoryGateway,
        payments: PaymentGateway,
        cache: IdempotencyCache,
        orders: OrderStore,
        metrics: Optional[MetricsService] = None,
        locks: Optional[KeyedLock] = None,
        inventory_timeout: float = DEFAULT_INVENTORY_TIMEOUT_SECONDS,
        payment_timeout: float = DEFAULT_PAYMENT_TIMEOUT_SECONDS,
        idempotency_ttl: int = DEFAULT_IDEMPOTENCY_TTL_SECONDS,
    ):
        self.inventory = inventory
        self.payments = payments
        self.cache = cache
        self.orders = orders
        self.metrics = metrics or MetricsService()
        self.locks = locks or LocalKeyedLock()
        self.inventory_timeout = inventory_timeout
        self.payment_timeout = payment_timeout
        self.idempotency_ttl = idempotency_ttl

    async def process_order(self, command: CreateOrderCommand) -> OrderResult:
        outcome = await self.execute(command)
        return outcome.unwrap()

    async def execute(self, command: CreateOrderCommand) -> OrderOutcome:
        started = time.perf_counter()
        with tracer.start_as_current_span("process-order") as span:
            try:
                outcome = await self._execute(command, span)
            except BaseException as e:
                self._record(command, None, started, unexpected=e)
                raise
            span.set_attribute("order.outcome", outcome.kind.value)
        self._record(command, outcome, started)
        return outcome

    async def _execute(self, command: CreateOrderCommand, span) -> OrderOutcome:
        try:
            key = self._cache_key(command)
            async with self.locks.hold(key):
                cached = await self._lookup(key)
                if cached is not None:
                    return OrderOutcome(kind=OutcomeKind.REPLAYED, result=cached)

                saga = SagaOrchestrator()
                ctx = {}
                try:
                    result = await self._run(command, saga, ctx, span)
                except OrderProcessingError as e:
                    compensated = bool(saga.compensated) or ctx.get("released", False)
                    return OrderOutcome.failure(e, compensated=compensated)

                await self._remember(key, result)
                return OrderOutcome(kind=OutcomeKind.SUCCEEDED, result=result)
        except OrderProcessingError as e:
            # Raised before any side effect: bad key, lock or cache unavailable.
            return OrderOutcome.failure(e)

    async def _run(self, command: CreateOrderCommand, saga: SagaOrchestrator, ctx: dict, span) -> OrderResult:
        ctx.update(
            command=self._validate(command),
            # Generated up front: the reservation is keyed by the order id.
            order_id=str(uuid.uuid4()),
            trace_id=self._trace_id(span),
        )
        saga.add_step("reserve_inventory", self._reserve_inventory, self._release_inventory)
        saga.add_step("create_order", self._create_order, self._fail_order)
        saga.add_step("capture_payment", self._capture_payment)
        await saga.execute(ctx)

        order = ctx["order"]
        await self._confirm(order)
        return OrderResult.from_order(order)

    # --- STEPS ---

    @staticmethod
    def _cache_key(command: CreateOrderCommand) -> str:
        if not command.idempotency_key or not command.idempotency_key.strip():
            raise OrderValidationError("Missing idempotency key")
        return f"{IDEMPOTENCY_KEY_PREFIX}{command.idempotency_key}"

    async def _lookup(self, key: str) -> Optional[OrderResult]:
        try:
            return await self.cache.get(key)
        except INFRASTRUCTURE_ERRORS as e:
            raise ServiceUnavailableError(f"Idempotency cache unavailable: {e}", service="cache") from e

    @staticmethod
    def _validate(command: CreateOrderCommand) -> CreateOrderCommand:
        if not command.items:
            raise OrderValidationError("No items in order")

        if command.total_amount <= 0:
            raise OrderValidationError("Invalid order amount")

        bad_items = [
            item.product_id for item in command.items
            if item.quantity <= 0 or item.unit_price < 0
        ]
        if bad_items:
            raise OrderValidationError("Invalid item quantity or price", details=bad_items)

        currency = (command.currency or "").strip().upper()
        if len(currency) != 3 or not currency.isalpha():
            raise OrderValidationError(f"Invalid currency code: {command.currency!r}")

        update = {"currency": currency}
        if command.customer_data is not None:
            update["customer_data"] = anonymize_customer_data(command.customer_data)
        return command.model_copy(update=update)

    async def _reserve_inventory(self, ctx: dict):
        command, order_id = ctx["command"], ctx["order_id"]
        try:
            result = await asyncio.wait_for(
                self.inventory.check_and_reserve(command.items, order_id=order_id, timeout=self.inventory_timeout),
                self.inventory_timeout,
            )
        except asyncio.TimeoutError as e:
            # The hold may have landed after we stopped waiting.
            ctx["released"] = await self._release_quietly(command.items, order_id)
            raise InventoryTimeoutError(self.inventory_timeout) from e
        except asyncio.CancelledError:
            # Same window as a timeout, and no saga step to roll back yet.
            ctx["released"] = await asyncio.shield(self._release_quietly(command.items, order_id))
            raise
        except INFRASTRUCTURE_ERRORS as e:
            raise ServiceUnavailableError(f"Inventory service unavailable: {e}", service="inventory") from e

        if not result.success:
            raise InventoryUnavailableError("Insufficient inventory", result.errors)

    async def _release_inventory(self, ctx: dict):
        await self.inventory.release_reservation(ctx["command"].items, ctx["order_id"])

    async def _release_quietly(self, items: Sequence[OrderItem], order_id: str) -> bool:
        try:
            await self.inventory.release_reservation(items, order_id)
        except Exception as e:
            logger.error("inventory_release_failed", order_id=order_id, error=str(e))
            return False
        return True

    async def _create_order(self, ctx: dict):
        command = ctx["command"]
        order_data = {
            "id": ctx["order_id"],
            "idempotency_key": command.idempotency_key,
            "items": [item.model_dump(mode="json") for item in command.items],
            "total_amount": command.total_amount,
            "currency": command.currency,
            "customer_data": command.customer_data.model_dump() if command.customer_data else None,
            "status": OrderStatus.PENDING,
            "metadata": {
                "trace_id": ctx["trace_id"],
                "created_at": datetime.now(timezone.utc).isoformat(),
            },
        }
        try:
            ctx["order"] = await self.orders.create(order_data)
        except asyncio.CancelledError:
            # The row may have committed before the cancellation landed.
            await asyncio.shield(self._fail_stranded(ctx))
            raise
        except INFRASTRUCTURE_ERRORS as e:
            await self._fail_stranded(ctx)
            raise ServiceUnavailableError(f"Order store unavailable: {e}", service="orders") from e

    async def _fail_order(self, ctx: dict):
        order: Optional[Order] = ctx.get("order")
        if order is None:
            order = await self.orders.get(ctx["order_id"])
            if order is None:
                return
            ctx["order"] = order
        if not order.order_status.is_terminal:
            order.transition_to(OrderStatus.FAILED)
        await self.orders.save(order)

    async def _fail_stranded(self, ctx: dict):
        """Marks a row whose create call never returned as FAILED, if it exists."""
        try:
            await self._fail_order(ctx)
        except Exception as e:
            logger.critical("order_left_pending", order_id=ctx["order_id"], error=str(e))

    async def _capture_payment(self, ctx: dict):
        order: Order = ctx["order"]
        request = PaymentRequest(order_id=order.id, amount=order.total_amount, currency=order.currency)
        try:
            await asyncio.wait_for(self.payments.process_payment(request), self.payment_timeout)
        except asyncio.TimeoutError as e:
            raise PaymentTimeoutError(
                f"Payment capture timed out after {self.payment_timeout}s", order_id=order.id
            ) from e
        except INFRASTRUCTURE_ERRORS as e:
            raise ServiceUnavailableError(f"Payment service unavailable: {e}", service="payment") from e

    async def _confirm(self, order: Order):
        order.transition_to(OrderStatus.CONFIRMED)
        try:
            await self.orders.save(order)
        except INFRASTRUCTURE_ERRORS as e:
            # Payment is captured; failing the call now would invite a second
            # charge on retry. The row is left for reconciliation instead.
            logger.critical("order_confirmation_not_persisted", order_id=order.id, error=str(e))

    async def _remember(self, key: str, result: OrderResult):
        try:
            await self.cache.set(key, result, self.idempotency_ttl)
        except (OrderProcessingError, *INFRASTRUCTURE_ERRORS) as e:
            logger.error("idempotency_write_back_failed", key=key, order_id=result.id, error=str(e))

    @staticmethod
    def _trace_id(span) -> str:
        span_context = span.get_span_context()
        if span_context.is_valid:
            return trace.format_trace_id(span_context.trace_id)
        return uuid.uuid4().hex

    def _record(self, command, outcome: Optional[OrderOutcome], started: float, unexpected=None):
        duration_ms = (time.perf_counter() - started) * 1000
        if outcome is not None:
            kind = outcome.kind.value
        elif isinstance(unexpected, asyncio.CancelledError):
            kind = "cancelled"
        else:
            kind = "error"
        try:
            self.metrics.record_order_processing_time(duration_ms)
            self.metrics.record_outcome(kind)
            fields = {
                "idempotency_key": getattr(command, "idempotency_key", None),
                "outcome": kind,
                "duration_ms": round(duration_ms, 2),
            }
            if outcome is not None and outcome.ok:
                logger.info("order_processed", order_id=outcome.result.id, **fields)
            else:
                error = outcome.error if outcome else unexpected
                logger.warning(
                    "order_processing_failed",
                    error=str(error),
                    error_type=type(error).__name__,
                    compensated=outcome.compensated if outcome else False,
                    **fields,
                )
        except Exception as e:
            logger.error("order_metrics_recording_failed", error=str(e))

    # --- QUERIES & RECOVERY ---

    async def _load(self, order_id: str) -> Order:
        try:
            order = await self.orders.get(order_id)
        except INFRASTRUCTURE_ERRORS as e:
            raise ServiceUnavailableError(f"Order store unavailable: {e}", service="orders") from e
        if order is None:
            raise OrderNotFoundError(order_id)
        return order

    async def get_order(self, order_id: str) -> OrderResult:
        return OrderResult.from_order(await self._load(order_id))

    async def get_order_status(self, order_id: str) -> OrderStatus:
        order = await self._load(order_id)
        return order.order_status

    async def cancel_order(self, order_id: str) -> OrderResult:
        """
        Fails an order stranded in PENDING (e.g. the process died between
        order creation and payment) and releases its reservation. Terminal
        orders raise InvalidStatusTransitionError. Orders are never deleted.
        """
        order = await self._load(order_id)
        async with self.locks.hold(f"{IDEMPOTENCY_KEY_PREFIX}{order.idempotency_key}"):
            # Re-read under the lock in case an in-flight call just finished it.
            order = await self._load(order_id)
            order.transition_to(OrderStatus.FAILED)
            items = [OrderItem.model_validate(item) for item in order.items]
            try:
                await self.inventory.release_reservation(items, order.id)
                await self.orders.save(order)
            except INFRASTRUCTURE_ERRORS as e:
                raise ServiceUnavailableError(f"Cancellation could not complete: {e}", service="orders") from e
        logger.info("order_cancelled", order_id=order.id)
        return OrderResult.from_order(order)
