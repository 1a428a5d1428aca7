import asyncio
import logging
from shared.observability import settlement_ledger_compensation_total, settlement_orphan_orders_total

logger = logging.getLogger(__name__)

class SagaStep:
    def __init__(self, name, action, compensation=None):
        self.name = name
        self.action = action
        self.compensation = compensation

class SagaOrchestrator:
    def __init__(self, compensation_retries: int = 0, retry_delay: float = 0.0):
        self.steps = []
        self.compensation_retries = compensation_retries
        self.retry_delay = retry_delay

    def add_step(self, name: str, action, compensation=None):
        """Builder pattern to add a step and its rollback compensation."""
        self.steps.append(SagaStep(name, action, compensation))
        return self

    async def execute(self, ctx: dict):
        """Executes steps sequentially. Triggers rollback on any exception."""
        executed_steps = []
        ctx.setdefault("failed_compensations", [])
        try:
            for step in self.steps:
                ctx["current_step"] = step.name
                await step.action(ctx)
                executed_steps.append(step)
            return True
        except Exception as e:
            logger.error(f"Saga execution failed at step '{step.name}': {e}")
            await self._rollback(executed_steps, ctx)
            raise

    async def _rollback(self, executed_steps: list, ctx: dict):
        """Executes compensations in reverse order, each retried a bounded number of times."""
        logger.info("Initiating Saga Rollback...")
        for step in reversed(executed_steps):
            if step.compensation and not await self._compensate(step, ctx):
                ctx["failed_compensations"].append(step.name)

    async def _compensate(self, step: SagaStep, ctx: dict) -> bool:
        attempts = self.compensation_retries + 1
        for attempt in range(1, attempts + 1):
            try:
                await step.compensation(ctx)
                logger.info(f"Rollback successful for step '{step.name}' (attempt {attempt})")
                settlement_ledger_compensation_total.labels(step_name=step.name).inc()
                return True
            except Exception as ce:
                logger.warning(f"Compensation attempt {attempt}/{attempts} failed for '{step.name}': {ce}")
                if attempt < attempts and self.retry_delay:
                    await asyncio.sleep(self.retry_delay * attempt)

        # A failing compensation MUST NOT block other compensations
        logger.critical(
            f"CRITICAL: Compensation exhausted for '{step.name}'. "
            f"Orphaned record {ctx.get('order_id')} requires manual intervention."
        )
        settlement_orphan_orders_total.inc()
        return False
