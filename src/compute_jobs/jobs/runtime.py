"""Wiring of store, coordinator, executor, dispatcher, and service."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass

from compute_jobs.config import Settings
from compute_jobs.jobs.coordinator import CompletionCoordinator
from compute_jobs.jobs.dispatcher import InlineDispatcher, TaskDispatcher, ThreadPoolDispatcher
from compute_jobs.jobs.executor import TaskExecutor
from compute_jobs.jobs.services import JobService
from compute_jobs.jobs.strategy import AlternateStrategy, ChatCompletionStrategy, build_strategy
from compute_jobs.storage import JobStore, get_job_store


@dataclass(slots=True)
class JobRuntime:
    store: JobStore
    coordinator: CompletionCoordinator
    executor: TaskExecutor
    dispatcher: TaskDispatcher
    service: JobService
    strategy: AlternateStrategy


@contextmanager
def open_runtime(
    settings: Settings,
    *,
    store: JobStore | None = None,
    strategy: AlternateStrategy | None = None,
    inline: bool = False,
) -> Iterator[JobRuntime]:
    """Build a runtime; on exit wait for dispatched tasks and release clients.

    The store is the process-wide handle for ``settings`` unless one is given.
    """

    settings.validate()
    job_store = store or get_job_store(settings)
    job_store.ensure_ready()
    job_strategy = strategy or build_strategy(settings.alternate)
    coordinator = CompletionCoordinator(job_store)
    executor = TaskExecutor(coordinator=coordinator, strategy=job_strategy)
    dispatcher: TaskDispatcher = (
        InlineDispatcher(executor.run)
        if inline
        else ThreadPoolDispatcher(executor.run, max_workers=settings.worker.concurrency)
    )
    runtime = JobRuntime(
        store=job_store,
        coordinator=coordinator,
        executor=executor,
        dispatcher=dispatcher,
        service=JobService(store=job_store, dispatcher=dispatcher),
        strategy=job_strategy,
    )
    try:
        yield runtime
    finally:
        dispatcher.shutdown(wait=True)
        if strategy is None and isinstance(job_strategy, ChatCompletionStrategy):
            job_strategy.close()
