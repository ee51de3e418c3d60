"""Use-case services for submitting and observing compute jobs."""

from __future__ import annotations

import logging
import math
import time
from collections.abc import Callable
from concurrent.futures import Future
from dataclasses import dataclass
from numbers import Real

from compute_jobs.jobs.dispatcher import TaskDispatcher
from compute_jobs.jobs.errors import InvalidOperandsError, JobNotFoundError
from compute_jobs.jobs.executor import TaskPayload
from compute_jobs.jobs.models import (
    ACTIVE_STATUSES,
    CANONICAL_OPERATIONS,
    JobDetails,
    JobStatus,
    JobView,
    OperationKind,
)
from compute_jobs.storage.base import JobStore

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class SubmitJob:
    """High-level command to create and fan out one job."""

    number_a: object
    number_b: object
    use_alternate: bool = False


@dataclass(slots=True)
class SubmittedJob:
    """Created job plus the futures of its dispatched tasks."""

    job: JobView
    futures: list[Future[JobView]]


class JobService:
    """Validates requests, creates jobs, and fans them out to the dispatcher."""

    def __init__(
        self,
        *,
        store: JobStore,
        dispatcher: TaskDispatcher,
        operations: tuple[OperationKind, ...] = CANONICAL_OPERATIONS,
    ) -> None:
        if not operations:
            raise ValueError("At least one operation kind is required.")
        if len(set(operations)) != len(operations):
            raise ValueError("Operation kinds must be unique.")
        self.store = store
        self.dispatcher = dispatcher
        self.operations = operations

    def submit(self, command: SubmitJob) -> SubmittedJob:
        """Create the job and dispatch one task per operation without waiting."""

        number_a = validate_operand(command.number_a, name="number_a")
        number_b = validate_operand(command.number_b, name="number_b")

        job = self.store.create_job(
            number_a=number_a,
            number_b=number_b,
            expected_count=len(self.operations),
        )
        logger.info(
            "Job %s created: a=%s b=%s operations=%d alternate=%s",
            job.job_id,
            number_a,
            number_b,
            len(self.operations),
            command.use_alternate,
        )
        try:
            futures = self.dispatcher.dispatch(
                TaskPayload(
                    job_id=job.job_id,
                    operation=operation,
                    number_a=number_a,
                    number_b=number_b,
                    use_alternate=command.use_alternate,
                )
                for operation in self.operations
            )
        except Exception:
            logger.exception("Dispatch failed for job %s; marking FAILED", job.job_id)
            self.store.compare_and_set_status(
                job.job_id,
                expected=ACTIVE_STATUSES,
                status=JobStatus.FAILED,
            )
            raise
        return SubmittedJob(job=job, futures=futures)

    def get_job(self, job_id: str) -> JobDetails:
        details = self.store.get_job(job_id)
        if details is None:
            raise JobNotFoundError(job_id)
        return details

    def wait_for_terminal(
        self,
        job_id: str,
        *,
        poll_interval_seconds: float,
        timeout_seconds: float,
        on_poll: Callable[[JobDetails], None] | None = None,
    ) -> JobDetails:
        """Poll the job until it reaches a terminal status."""

        deadline = time.monotonic() + timeout_seconds
        while True:
            details = self.get_job(job_id)
            if on_poll is not None:
                on_poll(details)
            if details.job.is_terminal:
                return details
            if time.monotonic() >= deadline:
                raise TimeoutError(
                    f"Job {job_id} still {details.job.status.value} "
                    f"at {details.job.progress}% after {timeout_seconds:g}s",
                )
            time.sleep(poll_interval_seconds)


def validate_operand(value: object, *, name: str) -> float:
    """Accept finite real numbers only; booleans and strings are rejected."""

    if isinstance(value, bool) or not isinstance(value, Real):
        raise InvalidOperandsError(f"{name} must be a number, got {type(value).__name__}")
    try:
        number = float(value)
    except OverflowError as error:
        raise InvalidOperandsError(
            f"{name} must be finite, got a value too large for a float",
        ) from error
    if not math.isfinite(number):
        raise InvalidOperandsError(f"{name} must be finite, got {value!r}")
    return number
