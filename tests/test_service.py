from __future__ import annotations

from concurrent.futures import wait
from pathlib import Path

import allure
import pytest

from compute_jobs.config import Settings, WorkerSettings
from compute_jobs.jobs.coordinator import CompletionCoordinator
from compute_jobs.jobs.dispatcher import InlineDispatcher, ThreadPoolDispatcher
from compute_jobs.jobs.errors import InvalidOperandsError, JobNotFoundError
from compute_jobs.jobs.executor import TaskExecutor
from compute_jobs.jobs.models import JobDetails, JobStatus, OperationKind
from compute_jobs.jobs.runtime import open_runtime
from compute_jobs.jobs.services import JobService, SubmitJob, validate_operand
from compute_jobs.storage import DocumentJobStore, JobStore, get_job_store

pytestmark = [
    allure.epic("Job Execution"),
    allure.feature("Submission & Polling"),
]


def _inline_service(store: JobStore) -> JobService:
    executor = TaskExecutor(coordinator=CompletionCoordinator(store))
    return JobService(store=store, dispatcher=InlineDispatcher(executor.run))


def test_submit_completes_all_four_operations(store: JobStore) -> None:
    service = _inline_service(store)

    submitted = service.submit(SubmitJob(number_a=6, number_b=3))

    assert submitted.job.status == JobStatus.PENDING
    assert submitted.job.expected_count == 4
    assert len(submitted.futures) == 4
    details = service.get_job(submitted.job.job_id)
    assert details.job.status == JobStatus.COMPLETED
    assert details.job.progress == 100
    assert {item.operation: item.result for item in details.outcomes} == {
        OperationKind.ADD: 9.0,
        OperationKind.SUBTRACT: 3.0,
        OperationKind.MULTIPLY: 18.0,
        OperationKind.DIVIDE: 2.0,
    }


def test_submit_with_zero_divisor_fails_job_but_keeps_results(store: JobStore) -> None:
    service = _inline_service(store)

    submitted = service.submit(SubmitJob(number_a=10, number_b=0))

    details = service.get_job(submitted.job.job_id)
    assert details.job.status == JobStatus.FAILED
    assert details.job.progress == 100
    assert details.outcome_for(OperationKind.ADD).result == 10.0
    assert details.outcome_for(OperationKind.SUBTRACT).result == 10.0
    assert details.outcome_for(OperationKind.MULTIPLY).result == 0.0
    divide = details.outcome_for(OperationKind.DIVIDE)
    assert divide.result is None
    assert divide.error == "Division by zero"


def test_get_unknown_job_raises(store: JobStore) -> None:
    with pytest.raises(JobNotFoundError, match="job_nope"):
        _inline_service(store).get_job("job_nope")


@pytest.mark.parametrize(
    ("number_a", "number_b"),
    [(True, 1), ("6", 3), (6, None), (float("nan"), 1), (1, float("inf")), (10**400, 1)],
)
def test_invalid_operands_create_no_job(number_a: object, number_b: object) -> None:
    store = _RecordingStore()
    service = _inline_service(store)

    with pytest.raises(InvalidOperandsError):
        service.submit(SubmitJob(number_a=number_a, number_b=number_b))

    assert store.created == 0


def test_service_rejects_duplicate_operations() -> None:
    store = DocumentJobStore()
    with pytest.raises(ValueError, match="unique"):
        JobService(
            store=store,
            dispatcher=InlineDispatcher(lambda payload: None),
            operations=(OperationKind.ADD, OperationKind.ADD),
        )


def test_wait_for_terminal_times_out_on_stuck_job() -> None:
    store = DocumentJobStore()
    job = store.create_job(number_a=1, number_b=1, expected_count=4)
    service = _inline_service(store)

    with pytest.raises(TimeoutError, match="still PENDING"):
        service.wait_for_terminal(job.job_id, poll_interval_seconds=0.01, timeout_seconds=0.05)


@pytest.mark.parametrize("backend", ["sqlite", "document"])
def test_thread_pool_runtime_reaches_terminal_state(tmp_path: Path, backend: str) -> None:
    settings = Settings(
        db_path=tmp_path / "pool.db",
        store_backend=backend,
        worker=WorkerSettings(concurrency=4, poll_interval_seconds=0.01),
    )
    observed: list[JobDetails] = []

    with open_runtime(settings) as runtime:
        submitted = runtime.service.submit(SubmitJob(number_a=6, number_b=3))
        details = runtime.service.wait_for_terminal(
            submitted.job.job_id,
            poll_interval_seconds=0.01,
            timeout_seconds=30,
            on_poll=observed.append,
        )
        done, _ = wait(submitted.futures, timeout=30)

    assert len(done) == 4
    assert all(future.exception() is None for future in done)
    assert details.job.status == JobStatus.COMPLETED
    assert details.job.progress == 100
    progress_seen = [item.job.progress for item in observed]
    assert progress_seen == sorted(progress_seen)
    assert all(not item.job.is_terminal for item in observed[:-1])


def test_runtime_shares_one_store_per_configuration(tmp_path: Path) -> None:
    settings = Settings(db_path=tmp_path / "shared.db", store_backend="document")

    with open_runtime(settings, inline=True) as runtime:
        job_id = runtime.service.submit(SubmitJob(number_a=2, number_b=2)).job.job_id

    assert get_job_store(settings) is runtime.store
    with open_runtime(settings, inline=True) as second:
        assert second.service.get_job(job_id).job.status == JobStatus.COMPLETED


class _RecordingStore(DocumentJobStore):
    def __init__(self) -> None:
        super().__init__()
        self.created = 0

    def create_job(self, *, number_a: float, number_b: float, expected_count: int):
        self.created += 1
        return super().create_job(
            number_a=number_a,
            number_b=number_b,
            expected_count=expected_count,
        )


def test_validate_operand_rejects_integer_overflow() -> None:
    with pytest.raises(InvalidOperandsError, match="number_a must be finite"):
        validate_operand(10**400, name="number_a")

    assert validate_operand(7, name="number_a") == 7.0


class _RecordingPoolDispatcher(ThreadPoolDispatcher):
    def __init__(self, runner) -> None:
        super().__init__(runner, max_workers=1)
        self.job_ids: set[str] = set()

    def dispatch(self, payloads):
        payloads = list(payloads)
        self.job_ids.update(payload.job_id for payload in payloads)
        return super().dispatch(payloads)


def test_dispatch_failure_marks_job_failed(store: JobStore) -> None:
    executor = TaskExecutor(coordinator=CompletionCoordinator(store))
    dispatcher = _RecordingPoolDispatcher(executor.run)
    dispatcher.shutdown(wait=True)
    service = JobService(store=store, dispatcher=dispatcher)

    with pytest.raises(RuntimeError, match="shutdown"):
        service.submit(SubmitJob(number_a=6, number_b=3))

    assert len(dispatcher.job_ids) == 1
    details = store.get_job(dispatcher.job_ids.pop())
    assert details is not None
    assert details.job.status == JobStatus.FAILED
