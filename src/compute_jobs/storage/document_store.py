"""In-process document job store.

Each job is one dict document and each outcome another, mirroring a
document-database layout.  Mutations of a job and its ledger happen under
that job's lock, which makes every read-modify-write atomic per job id.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable
from typing import Any

from compute_jobs.jobs.errors import (
    JobNotFoundError,
    OutcomeConflictError,
    TerminalStatusConflictError,
)
from compute_jobs.jobs.models import (
    TERMINAL_STATUSES,
    JobDetails,
    JobStatus,
    JobView,
    OperationKind,
    TaskOutcomeView,
    TaskOutcomeWrite,
)
from compute_jobs.storage.common import new_job_id, new_outcome_id, utc_now

logger = logging.getLogger(__name__)


class DocumentJobStore:
    """Job persistence facade over in-memory documents."""

    def __init__(self) -> None:
        self._jobs: dict[str, dict[str, Any]] = {}
        self._outcomes: dict[str, list[dict[str, Any]]] = {}
        self._job_locks: dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()
        self._ready = False

    def ensure_ready(self) -> None:
        if not self._ready:
            self._ready = True
            logger.info("Document job store ready (in-process)")

    def close(self) -> None:
        with self._registry_lock:
            self._jobs.clear()
            self._outcomes.clear()
            self._job_locks.clear()
        self._ready = False

    def create_job(self, *, number_a: float, number_b: float, expected_count: int) -> JobView:
        now = utc_now()
        document = {
            "_id": new_job_id(),
            "numberA": number_a,
            "numberB": number_b,
            "status": JobStatus.PENDING.value,
            "progress": 0,
            "expectedCount": expected_count,
            "createdAt": now,
            "updatedAt": now,
        }
        with self._registry_lock:
            self._jobs[document["_id"]] = document
            self._outcomes[document["_id"]] = []
            self._job_locks[document["_id"]] = threading.Lock()
        return _to_job_view(document)

    def get_job(self, job_id: str) -> JobDetails | None:
        lock = self._lock_for(job_id, missing_ok=True)
        if lock is None:
            return None
        with lock:
            return JobDetails(
                job=_to_job_view(self._jobs[job_id]),
                outcomes=_ordered_views(self._outcomes[job_id]),
            )

    def update_job_status(self, job_id: str, *, status: JobStatus, progress: int) -> JobView:
        with self._lock_for(job_id):
            document = self._jobs[job_id]
            current = JobStatus(document["status"])
            if current in TERMINAL_STATUSES:
                raise TerminalStatusConflictError(job_id, current.value)
            document["status"] = status.value
            document["progress"] = max(document["progress"], progress)
            document["updatedAt"] = utc_now()
            return _to_job_view(document)

    def compare_and_set_status(
        self,
        job_id: str,
        *,
        expected: Iterable[JobStatus],
        status: JobStatus,
        progress: int | None = None,
    ) -> bool:
        expected_values = {item.value for item in expected}
        with self._lock_for(job_id):
            document = self._jobs[job_id]
            if document["status"] not in expected_values:
                return False
            document["status"] = status.value
            if progress is not None:
                document["progress"] = max(document["progress"], progress)
            document["updatedAt"] = utc_now()
            return True

    def advance_progress(self, job_id: str, progress: int) -> int:
        with self._lock_for(job_id):
            document = self._jobs[job_id]
            if progress > document["progress"]:
                document["progress"] = progress
                document["updatedAt"] = utc_now()
            return document["progress"]

    def append_task_outcome(self, job_id: str, outcome: TaskOutcomeWrite) -> TaskOutcomeView:
        now = utc_now()
        with self._lock_for(job_id):
            ledger = self._outcomes[job_id]
            if any(item["operation"] == outcome.operation.value for item in ledger):
                raise OutcomeConflictError(job_id, outcome.operation.value)
            document = {
                "_id": new_outcome_id(),
                "jobId": job_id,
                "operation": outcome.operation.value,
                "result": outcome.result,
                "error": outcome.error,
                "completedAt": outcome.completed_at or now,
                "createdAt": now,
            }
            ledger.append(document)
            return _to_outcome_view(document)

    def list_task_outcomes(self, job_id: str) -> list[TaskOutcomeView]:
        lock = self._lock_for(job_id, missing_ok=True)
        if lock is None:
            return []
        with lock:
            return _ordered_views(self._outcomes[job_id])

    def _lock_for(self, job_id: str, *, missing_ok: bool = False) -> threading.Lock | None:
        with self._registry_lock:
            lock = self._job_locks.get(job_id)
        if lock is None and not missing_ok:
            raise JobNotFoundError(job_id)
        return lock


def _ordered_views(ledger: list[dict[str, Any]]) -> list[TaskOutcomeView]:
    ordered = sorted(ledger, key=lambda item: (item["completedAt"], item["createdAt"]))
    return [_to_outcome_view(item) for item in ordered]


def _to_job_view(document: dict[str, Any]) -> JobView:
    return JobView(
        job_id=document["_id"],
        number_a=document["numberA"],
        number_b=document["numberB"],
        status=JobStatus(document["status"]),
        progress=document["progress"],
        expected_count=document["expectedCount"],
        created_at=document["createdAt"],
        updated_at=document["updatedAt"],
    )


def _to_outcome_view(document: dict[str, Any]) -> TaskOutcomeView:
    return TaskOutcomeView(
        outcome_id=document["_id"],
        job_id=document["jobId"],
        operation=OperationKind(document["operation"]),
        result=document["result"],
        error=document["error"],
        completed_at=document["completedAt"],
        created_at=document["createdAt"],
    )
