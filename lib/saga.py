# =============================================================================
# lib/saga.py - Ordered Steps with Compensation
# =============================================================================
# A small saga runner for multi-step writes that span the database, object
# storage and third-party APIs.
#
# Each SagaStep has an action and an optional compensation. Steps run in
# order; every action receives the shared context dict and may store results
# in it. When a critical step raises, the compensations of all previously
# completed steps run in reverse order and the original error is re-raised.
# A failing non-critical step is logged and the saga continues.
#
# Compensations are best effort: failures are logged, never raised.
#
# Usage:
#   saga = Saga("create-listing", [
#       SagaStep("insert-listing", insert_listing, compensate=delete_listing),
#       SagaStep("upload-photos", upload_photos, compensate=remove_photos),
#       SagaStep("sync-commerce", sync_product, critical=False),
#   ])
#   context = saga.run({"creator_id": creator_id})
# =============================================================================

import logging
from dataclasses import dataclass, field
from typing import Any, Callable

logger = logging.getLogger(__name__)

SagaContext = dict[str, Any]


@dataclass(frozen=True)
class SagaStep:
    name: str
    action: Callable[[SagaContext], Any]
    compensate: Callable[[SagaContext], Any] | None = None
    critical: bool = True


@dataclass
class SagaResult:
    """What happened during a run (useful for logging and tests)."""
    completed: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    compensated: list[str] = field(default_factory=list)
    compensation_failures: list[str] = field(default_factory=list)


class SagaError(Exception):
    """Raised after compensation when a critical step fails."""

    def __init__(self, step: str, cause: Exception, result: SagaResult):
        super().__init__(f"Step '{step}' failed: {cause}")
        self.step = step
        self.cause = cause
        self.result = result


class Saga:
    """Runs SagaSteps in order, compensating in reverse on critical failure."""

    def __init__(self, name: str, steps: list[SagaStep]):
        self.name = name
        self.steps = list(steps)
        self.result = SagaResult()

    def run(self, context: SagaContext | None = None) -> SagaContext:
        """
        Execute all steps.

        Returns:
            The context dict after every step has run

        Raises:
            SagaError: When a critical step fails (after compensating).
                The original exception is available as `.cause`.
        """
        context = context if context is not None else {}
        context.setdefault("saga", self.result)
        done: list[SagaStep] = []

        for step in self.steps:
            try:
                step.action(context)
            except Exception as e:
                if not step.critical:
                    logger.warning(f"[{self.name}] non-critical step '{step.name}' failed: {e}")
                    self.result.warnings.append(f"{step.name}: {e}")
                    continue

                logger.error(f"[{self.name}] step '{step.name}' failed, compensating {len(done)} step(s): {e}")
                self._compensate(done, context)
                raise SagaError(step.name, e, self.result) from e

            done.append(step)
            self.result.completed.append(step.name)

        return context

    def _compensate(self, done: list[SagaStep], context: SagaContext) -> None:
        for step in reversed(done):
            if step.compensate is None:
                continue
            try:
                step.compensate(context)
                self.result.compensated.append(step.name)
            except Exception as e:
                logger.error(f"[{self.name}] compensation for '{step.name}' failed: {e}")
                self.result.compensation_failures.append(step.name)
