"""Backend selection and process-wide store handles."""

from __future__ import annotations

import logging
import threading

from compute_jobs.config import Settings
from compute_jobs.storage.base import JobStore
from compute_jobs.storage.document_store import DocumentJobStore
from compute_jobs.storage.sql_store import SqlJobStore

logger = logging.getLogger(__name__)

_SHARED_STORES: dict[tuple[str, str], JobStore] = {}
_SHARED_STORES_LOCK = threading.Lock()


def build_job_store(settings: Settings) -> JobStore:
    """Create a fresh store for the configured backend."""

    settings.validate()
    if settings.store_backend == "document":
        return DocumentJobStore()
    return SqlJobStore(
        settings.db_path,
        sqlite_busy_timeout_ms=settings.sqlite_busy_timeout_ms,
    )


def get_job_store(settings: Settings) -> JobStore:
    """Return the process-wide store for these settings, creating it once."""

    key = (settings.store_backend, str(settings.db_path.resolve()))
    with _SHARED_STORES_LOCK:
        store = _SHARED_STORES.get(key)
        if store is None:
            store = build_job_store(settings)
            _SHARED_STORES[key] = store
            logger.info("Job store backend selected: %s", settings.store_backend)
    store.ensure_ready()
    return store


def reset_job_stores() -> None:
    """Close and forget every shared store handle."""

    with _SHARED_STORES_LOCK:
        stores = list(_SHARED_STORES.values())
        _SHARED_STORES.clear()
    for store in stores:
        store.close()
