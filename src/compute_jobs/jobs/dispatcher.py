"""Task dispatch substrates."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Protocol

from compute_jobs.jobs.executor import TaskPayload
from compute_jobs.jobs.models import JobView

logger = logging.getLogger(__name__)

TaskRunner = Callable[[TaskPayload], JobView]


class TaskDispatcher(Protocol):
    """Protocol implemented by task execution substrates."""

    def dispatch(self, payloads: Iterable[TaskPayload]) -> list[Future[JobView]]:
        """Schedule every payload; return one future per payload."""

    def shutdown(self, *, wait: bool = True) -> None:
        """Stop accepting work, optionally waiting for running tasks."""


class ThreadPoolDispatcher:
    """Runs tasks on a bounded worker pool with no ordering guarantee."""

    def __init__(self, runner: TaskRunner, *, max_workers: int = 4) -> None:
        self._runner = runner
        self._pool = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="compute-task")

    def dispatch(self, payloads: Iterable[TaskPayload]) -> list[Future[JobView]]:
        futures: list[Future[JobView]] = []
        for payload in payloads:
            future = self._pool.submit(self._runner, payload)
            future.add_done_callback(_log_failure(payload))
            futures.append(future)
        return futures

    def shutdown(self, *, wait: bool = True) -> None:
        self._pool.shutdown(wait=wait)


class InlineDispatcher:
    """Runs tasks synchronously in dispatch order."""

    def __init__(self, runner: TaskRunner) -> None:
        self._runner = runner

    def dispatch(self, payloads: Iterable[TaskPayload]) -> list[Future[JobView]]:
        futures: list[Future[JobView]] = []
        for payload in payloads:
            future: Future[JobView] = Future()
            try:
                future.set_result(self._runner(payload))
            except Exception as error:  # noqa: BLE001
                future.set_exception(error)
            _log_failure(payload)(future)
            futures.append(future)
        return futures

    def shutdown(self, *, wait: bool = True) -> None:
        return None


def _log_failure(payload: TaskPayload) -> Callable[[Future[JobView]], None]:
    def _callback(future: Future[JobView]) -> None:
        if future.cancelled():
            logger.warning(
                "Task cancelled: job=%s operation=%s",
                payload.job_id,
                payload.operation.value,
            )
            return
        error = future.exception()
        if error is not None:
            logger.error(
                "Task failed: job=%s operation=%s: %s",
                payload.job_id,
                payload.operation.value,
                error,
                exc_info=error,
            )

    return _callback
