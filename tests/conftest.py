"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest

from compute_jobs.storage import DocumentJobStore, JobStore, SqlJobStore, reset_job_stores

_ENV_VARS = (
    "COMPUTE_JOBS_DB_PATH",
    "COMPUTE_JOBS_STORE_BACKEND",
    "COMPUTE_JOBS_SQLITE_BUSY_TIMEOUT_MS",
    "COMPUTE_JOBS_WORKER_CONCURRENCY",
    "COMPUTE_JOBS_POLL_INTERVAL_SECONDS",
    "COMPUTE_JOBS_WAIT_TIMEOUT_SECONDS",
    "COMPUTE_JOBS_ALTERNATE_API_KEY",
    "COMPUTE_JOBS_ALTERNATE_BASE_URL",
    "COMPUTE_JOBS_ALTERNATE_MODEL",
    "COMPUTE_JOBS_ALTERNATE_TIMEOUT_SECONDS",
    "COMPUTE_JOBS_ALTERNATE_MAX_TOKENS",
    "COMPUTE_JOBS_USE_ALTERNATE",
    "GROQ_API_KEY",
)


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch) -> Iterator[None]:
    """Keep host configuration and shared store handles out of every test."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    yield
    reset_job_stores()


@pytest.fixture()
def sql_store(tmp_path: Path) -> Iterator[SqlJobStore]:
    store = SqlJobStore(tmp_path / "jobs.db")
    store.ensure_ready()
    yield store
    store.close()


@pytest.fixture()
def document_store() -> Iterator[DocumentJobStore]:
    store = DocumentJobStore()
    store.ensure_ready()
    yield store
    store.close()


@pytest.fixture(params=["sqlite", "document"])
def store(request, tmp_path: Path) -> Iterator[JobStore]:
    """Each backend in turn; behavior must not depend on the choice."""
    if request.param == "sqlite":
        job_store: JobStore = SqlJobStore(tmp_path / "jobs.db")
    else:
        job_store = DocumentJobStore()
    job_store.ensure_ready()
    yield job_store
    job_store.close()
