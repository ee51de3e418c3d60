"""Job store backends."""

from compute_jobs.storage.base import JobStore
from compute_jobs.storage.document_store import DocumentJobStore
from compute_jobs.storage.factory import build_job_store, get_job_store, reset_job_stores
from compute_jobs.storage.sql_store import SqlJobStore

__all__ = [
    "DocumentJobStore",
    "JobStore",
    "SqlJobStore",
    "build_job_store",
    "get_job_store",
    "reset_job_stores",
]
