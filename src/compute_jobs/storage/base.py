"""Persistence boundary consumed by the completion coordinator."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Protocol, runtime_checkable

from compute_jobs.jobs.models import (
    JobDetails,
    JobStatus,
    JobView,
    TaskOutcomeView,
    TaskOutcomeWrite,
)


@runtime_checkable
class JobStore(Protocol):
    """Protocol implemented by the relational and document backends.

    Every mutation is atomic per job id.  Status transitions go through
    ``compare_and_set_status`` so that concurrent callers racing for the same
    transition produce exactly one winner.
    """

    def ensure_ready(self) -> None:
        """Initialize backend resources once; repeated calls are no-ops."""

    def close(self) -> None:
        """Release backend resources."""

    def create_job(self, *, number_a: float, number_b: float, expected_count: int) -> JobView:
        """Create a PENDING job with progress 0."""

    def get_job(self, job_id: str) -> JobDetails | None:
        """Return the job with its outcomes, or None for unknown ids."""

    def update_job_status(self, job_id: str, *, status: JobStatus, progress: int) -> JobView:
        """Set status and progress of a non-terminal job.

        Raises ``JobNotFoundError`` for unknown ids and
        ``TerminalStatusConflictError`` when the job is already terminal.
        Progress never moves backwards.
        """

    def compare_and_set_status(
        self,
        job_id: str,
        *,
        expected: Iterable[JobStatus],
        status: JobStatus,
        progress: int | None = None,
    ) -> bool:
        """Transition status only if the current one is in ``expected``."""

    def advance_progress(self, job_id: str, progress: int) -> int:
        """Raise progress to ``progress`` if higher; return the stored value."""

    def append_task_outcome(self, job_id: str, outcome: TaskOutcomeWrite) -> TaskOutcomeView:
        """Append one ledger entry.

        Raises ``OutcomeConflictError`` if the (job, operation) pair already
        has an entry and ``JobNotFoundError`` for unknown jobs.
        """

    def list_task_outcomes(self, job_id: str) -> list[TaskOutcomeView]:
        """Ledger entries ordered by completion."""
