"""Completion coordinator: progress aggregation and the terminal transition."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from compute_jobs.jobs.errors import OutcomeConflictError
from compute_jobs.jobs.models import (
    ACTIVE_STATUSES,
    JobStatus,
    JobView,
    TaskOutcomeView,
    TaskOutcomeWrite,
    compute_progress,
)
from compute_jobs.storage.base import JobStore

logger = logging.getLogger(__name__)


class CompletionCoordinator:
    """Folds task outcomes into job progress and a single terminal status.

    Callbacks for sibling tasks of one job may run concurrently and in any
    order.  Every status change goes through the store's compare-and-swap, so
    PENDING -> PROCESSING happens at most once and exactly one caller performs
    the COMPLETED/FAILED write.
    """

    def __init__(self, store: JobStore) -> None:
        self.store = store

    def mark_started(self, job_id: str) -> bool:
        """Move a PENDING job to PROCESSING; no-op for any other status."""

        with self._fail_job_on_error(job_id):
            return self.store.compare_and_set_status(
                job_id,
                expected=(JobStatus.PENDING,),
                status=JobStatus.PROCESSING,
            )

    def record_outcome(self, job_id: str, outcome: TaskOutcomeWrite) -> JobView:
        """Append one task outcome, advance progress, and settle the job if complete."""

        with self._fail_job_on_error(job_id):
            self.store.compare_and_set_status(
                job_id,
                expected=(JobStatus.PENDING,),
                status=JobStatus.PROCESSING,
            )
            try:
                self.store.append_task_outcome(job_id, outcome)
            except OutcomeConflictError:
                logger.warning(
                    "Duplicate outcome ignored: job=%s operation=%s",
                    job_id,
                    outcome.operation.value,
                )

            details = self.store.get_job(job_id)
            if details is None:
                raise RuntimeError(f"Job disappeared while recording outcome: {job_id}")
            outcomes = details.outcomes
            expected_count = details.job.expected_count
            progress = compute_progress(len(outcomes), expected_count)
            self.store.advance_progress(job_id, progress)

            if len(outcomes) >= expected_count:
                self._settle(job_id, outcomes)

            refreshed = self.store.get_job(job_id)
            if refreshed is None:
                raise RuntimeError(f"Job disappeared while recording outcome: {job_id}")
            return refreshed.job

    def _settle(self, job_id: str, outcomes: list[TaskOutcomeView]) -> None:
        current = self.store.get_job(job_id)
        if current is None or current.job.is_terminal:
            return

        has_errors = any(outcome.error is not None for outcome in outcomes)
        terminal = JobStatus.FAILED if has_errors else JobStatus.COMPLETED
        won = self.store.compare_and_set_status(
            job_id,
            expected=ACTIVE_STATUSES,
            status=terminal,
            progress=100,
        )
        if won:
            logger.info(
                "Job %s %s: outcomes=%d errors=%d",
                job_id,
                terminal.value,
                len(outcomes),
                sum(1 for outcome in outcomes if outcome.error is not None),
            )

    @contextmanager
    def _fail_job_on_error(self, job_id: str) -> Iterator[None]:
        try:
            yield
        except Exception:
            logger.exception("Bookkeeping failed for job %s; forcing FAILED", job_id)
            self._force_failed(job_id)
            raise

    def _force_failed(self, job_id: str) -> None:
        try:
            forced = self.store.compare_and_set_status(
                job_id,
                expected=ACTIVE_STATUSES,
                status=JobStatus.FAILED,
            )
        except Exception:  # noqa: BLE001
            logger.exception("Could not force job %s to FAILED", job_id)
            return
        if forced:
            logger.error("Job %s forced to FAILED after bookkeeping error", job_id)
