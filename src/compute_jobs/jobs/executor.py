"""Task executor: one sub-operation in, exactly one ledger entry out."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from compute_jobs.jobs.coordinator import CompletionCoordinator
from compute_jobs.jobs.models import JobView, OperationKind, TaskOutcomeWrite
from compute_jobs.jobs.operations import compute_canonical, is_defined
from compute_jobs.jobs.strategy import AlternateStrategy, DisabledStrategy
from compute_jobs.storage.common import utc_now

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class TaskPayload:
    """Inputs for one dispatched sub-operation."""

    job_id: str
    operation: OperationKind
    number_a: float
    number_b: float
    use_alternate: bool = False


class TaskExecutor:
    """Computes one operation and reports the outcome to the coordinator."""

    def __init__(
        self,
        *,
        coordinator: CompletionCoordinator,
        strategy: AlternateStrategy | None = None,
    ) -> None:
        self.coordinator = coordinator
        self.strategy = strategy or DisabledStrategy()

    def run(self, payload: TaskPayload) -> JobView:
        """Execute the task end to end and return the job state after recording."""

        self.coordinator.mark_started(payload.job_id)
        outcome = self.compute(payload)
        return self.coordinator.record_outcome(payload.job_id, outcome)

    def compute(self, payload: TaskPayload) -> TaskOutcomeWrite:
        """Produce the outcome without touching the store.

        Domain errors become error outcomes.  Alternate strategy failures only
        ever lead to the canonical computation.
        """

        value: float | None = None
        if (
            payload.use_alternate
            and self.strategy.available
            and is_defined(payload.operation, payload.number_b)
        ):
            try:
                attempt = self.strategy.try_compute(
                    payload.operation,
                    payload.number_a,
                    payload.number_b,
                )
            except Exception:  # noqa: BLE001
                logger.warning(
                    "Alternate strategy raised for job=%s operation=%s, "
                    "using direct computation",
                    payload.job_id,
                    payload.operation.value,
                    exc_info=True,
                )
            else:
                if attempt.ok:
                    value = attempt.value
                else:
                    logger.warning(
                        "Alternate computation failed for job=%s operation=%s, "
                        "using direct computation: %s",
                        payload.job_id,
                        payload.operation.value,
                        attempt.error,
                    )

        if value is None:
            try:
                value = compute_canonical(payload.operation, payload.number_a, payload.number_b)
            except ArithmeticError as error:
                return TaskOutcomeWrite(
                    operation=payload.operation,
                    error=str(error),
                    completed_at=utc_now(),
                )

        return TaskOutcomeWrite(operation=payload.operation, result=value, completed_at=utc_now())
