import asyncio
import logging
from shared.observability import ecomm_saga_compensation_total, ecomm_saga_compensation_failures_total

logger = logging.getLogger(__name__)


class SagaStep:
    def __init__(self, name, action, compensation=None):
        self.name = name
        self.action = action
        self.compensation = compensation


class SagaOrchestrator:
    def __init__(self):
        self.steps = []
        self.compensated = []
        self.compensation_failures = []

    def add_step(self, name: str, action, compensation=None):
        """Builder pattern to add a step and its rollback compensation."""
        self.steps.append(SagaStep(name, action, compensation))
        return self

    async def execute(self, ctx: dict):
        """Executes steps sequentially. Triggers rollback on any exception or cancellation."""
        executed_steps = []
        step = None
        try:
            for step in self.steps:
                await step.action(ctx)
                executed_steps.append(step)
            return ctx
        except asyncio.CancelledError:
            logger.warning(f"Saga cancelled during step '{step.name}', compensating before propagating")
            # Shielded so a second cancellation cannot strand the order mid-rollback.
            await asyncio.shield(self._rollback(executed_steps, ctx))
            raise
        except Exception as e:
            logger.error(f"Saga execution failed at step '{step.name}': {e}")
            await self._rollback(executed_steps, ctx)
            raise

    async def _rollback(self, executed_steps: list, ctx: dict):
        """Executes compensations in reverse order. Wraps each in a try/except."""
        if not any(step.compensation for step in executed_steps):
            return
        logger.info("Initiating Saga Rollback...")
        for step in reversed(executed_steps):
            if step.compensation:
                try:
                    await step.compensation(ctx)
                    self.compensated.append(step.name)
                    logger.info(f"Rollback successful for step '{step.name}'")
                    ecomm_saga_compensation_total.labels(step_name=step.name).inc()
                except Exception as ce:
                    # A failing compensation MUST NOT block other compensations
                    self.compensation_failures.append((step.name, ce))
                    ecomm_saga_compensation_failures_total.labels(step_name=step.name).inc()
                    logger.critical(f"CRITICAL: Compensation failed for '{step.name}'. Manual intervention may be required. Error: {ce}")
