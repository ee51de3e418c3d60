"""Relational job store backed by SQLModel + SQLite."""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from pathlib import Path

from sqlalchemy import ColumnElement, case
from sqlalchemy import update as sa_update
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlmodel import Session, col, select

from compute_jobs.jobs.errors import (
    JobNotFoundError,
    OutcomeConflictError,
    StoreUnavailableError,
    TerminalStatusConflictError,
)
from compute_jobs.jobs.models import (
    ACTIVE_STATUSES,
    JobDetails,
    JobStatus,
    JobView,
    OperationKind,
    TaskOutcomeView,
    TaskOutcomeWrite,
)
from compute_jobs.storage.alembic_runner import upgrade_head
from compute_jobs.storage.common import (
    build_sqlite_engine,
    new_job_id,
    new_outcome_id,
    to_db_datetime,
    to_utc_aware_datetime,
    utc_now,
)
from compute_jobs.storage.sqlmodel_models import ComputeJob, ComputeResult

logger = logging.getLogger(__name__)


class SqlJobStore:
    """Job persistence facade backed by SQLModel + SQLite."""

    def __init__(self, db_path: Path, *, sqlite_busy_timeout_ms: int = 5_000) -> None:
        self.db_path = db_path
        self.engine = build_sqlite_engine(db_path=db_path, busy_timeout_ms=sqlite_busy_timeout_ms)
        self._ready = False
        self._ready_lock = threading.Lock()

    def ensure_ready(self) -> None:
        """Run schema migrations once per store instance."""

        if self._ready:
            return
        with self._ready_lock:
            if self._ready:
                return
            with _store_errors("schema migration"):
                upgrade_head(self.db_path)
            self._ready = True
            logger.info("SQLite job store ready at %s", self.db_path)

    def close(self) -> None:
        """Close underlying DB resources."""

        self.engine.dispose()

    def create_job(self, *, number_a: float, number_b: float, expected_count: int) -> JobView:
        """Create a PENDING job."""

        now = to_db_datetime(utc_now())
        with _store_errors("create_job"), Session(self.engine) as session:
            row = ComputeJob(
                id=new_job_id(),
                number_a=number_a,
                number_b=number_b,
                status=JobStatus.PENDING.value,
                progress=0,
                expected_count=expected_count,
                created_at=now,
                updated_at=now,
            )
            session.add(row)
            session.commit()
            session.refresh(row)
            return _to_job_view(row)

    def get_job(self, job_id: str) -> JobDetails | None:
        with _store_errors("get_job"), Session(self.engine) as session:
            row = session.exec(select(ComputeJob).where(ComputeJob.id == job_id)).one_or_none()
            if row is None:
                return None
            outcomes = self._select_outcomes(session=session, job_id=job_id)
            return JobDetails(job=_to_job_view(row), outcomes=outcomes)

    def update_job_status(self, job_id: str, *, status: JobStatus, progress: int) -> JobView:
        """Set status/progress on a non-terminal job."""

        now = to_db_datetime(utc_now())
        with _store_errors("update_job_status"), Session(self.engine) as session:
            result = session.exec(
                sa_update(ComputeJob)
                .where(
                    col(ComputeJob.id) == job_id,
                    col(ComputeJob.status).in_([item.value for item in ACTIVE_STATUSES]),
                )
                .values(
                    status=status.value,
                    progress=_monotonic_progress(progress),
                    updated_at=now,
                ),
            )
            if result.rowcount != 1:
                session.rollback()
                row = self._get_row(session=session, job_id=job_id)
                raise TerminalStatusConflictError(job_id, row.status)
            session.commit()
            return _to_job_view(self._get_row(session=session, job_id=job_id))

    def compare_and_set_status(
        self,
        job_id: str,
        *,
        expected: Iterable[JobStatus],
        status: JobStatus,
        progress: int | None = None,
    ) -> bool:
        """Atomically transition status when the current value is expected."""

        values: dict[str, object] = {
            "status": status.value,
            "updated_at": to_db_datetime(utc_now()),
        }
        if progress is not None:
            values["progress"] = _monotonic_progress(progress)
        with _store_errors("compare_and_set_status"), Session(self.engine) as session:
            result = session.exec(
                sa_update(ComputeJob)
                .where(
                    col(ComputeJob.id) == job_id,
                    col(ComputeJob.status).in_([item.value for item in expected]),
                )
                .values(**values),
            )
            if result.rowcount != 1:
                session.rollback()
                self._get_row(session=session, job_id=job_id)
                return False
            session.commit()
            return True

    def advance_progress(self, job_id: str, progress: int) -> int:
        """Monotonic progress write."""

        with _store_errors("advance_progress"), Session(self.engine) as session:
            session.exec(
                sa_update(ComputeJob)
                .where(
                    col(ComputeJob.id) == job_id,
                    col(ComputeJob.progress) < progress,
                )
                .values(progress=progress, updated_at=to_db_datetime(utc_now())),
            )
            session.commit()
            return self._get_row(session=session, job_id=job_id).progress

    def append_task_outcome(self, job_id: str, outcome: TaskOutcomeWrite) -> TaskOutcomeView:
        """Append one ledger entry guarded by the (job_id, operation) constraint."""

        now = utc_now()
        with _store_errors("append_task_outcome"), Session(self.engine) as session:
            self._get_row(session=session, job_id=job_id)
            row = ComputeResult(
                id=new_outcome_id(),
                job_id=job_id,
                operation=outcome.operation.value,
                result=outcome.result,
                error=outcome.error,
                completed_at=to_db_datetime(outcome.completed_at or now),
                created_at=to_db_datetime(now),
            )
            session.add(row)
            try:
                session.commit()
            except IntegrityError as error:
                session.rollback()
                raise OutcomeConflictError(job_id, outcome.operation.value) from error
            session.refresh(row)
            return _to_outcome_view(row)

    def list_task_outcomes(self, job_id: str) -> list[TaskOutcomeView]:
        with _store_errors("list_task_outcomes"), Session(self.engine) as session:
            return self._select_outcomes(session=session, job_id=job_id)

    def _get_row(self, *, session: Session, job_id: str) -> ComputeJob:
        row = session.exec(select(ComputeJob).where(ComputeJob.id == job_id)).one_or_none()
        if row is None:
            raise JobNotFoundError(job_id)
        return row

    def _select_outcomes(self, *, session: Session, job_id: str) -> list[TaskOutcomeView]:
        rows = session.exec(
            select(ComputeResult)
            .where(ComputeResult.job_id == job_id)
            .order_by(
                col(ComputeResult.completed_at).asc(),
                col(ComputeResult.created_at).asc(),
                col(ComputeResult.id).asc(),
            ),
        ).all()
        return [_to_outcome_view(row) for row in rows]


@contextmanager
def _store_errors(operation: str) -> Iterator[None]:
    try:
        yield
    except OperationalError as error:
        raise StoreUnavailableError(f"SQLite store unavailable during {operation}: {error}") from error


def _monotonic_progress(progress: int) -> ColumnElement[int]:
    return case(
        (col(ComputeJob.progress) < progress, progress),
        else_=col(ComputeJob.progress),
    )


def _to_job_view(row: ComputeJob) -> JobView:
    return JobView(
        job_id=row.id,
        number_a=row.number_a,
        number_b=row.number_b,
        status=JobStatus(row.status),
        progress=row.progress,
        expected_count=row.expected_count,
        created_at=to_utc_aware_datetime(row.created_at),
        updated_at=to_utc_aware_datetime(row.updated_at),
    )


def _to_outcome_view(row: ComputeResult) -> TaskOutcomeView:
    return TaskOutcomeView(
        outcome_id=row.id,
        job_id=row.job_id,
        operation=OperationKind(row.operation),
        result=row.result,
        error=row.error,
        completed_at=to_utc_aware_datetime(row.completed_at),
        created_at=to_utc_aware_datetime(row.created_at),
    )
