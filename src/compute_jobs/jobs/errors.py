"""Error taxonomy shared by the job store, coordinator, and services."""

from __future__ import annotations


class InvalidOperandsError(ValueError):
    """Submitted operands are not finite real numbers."""


class JobStoreError(RuntimeError):
    """Base class for job store failures."""


class JobNotFoundError(JobStoreError):
    """Job id is unknown to the store."""

    def __init__(self, job_id: str) -> None:
        super().__init__(f"Job not found: {job_id}")
        self.job_id = job_id


class ConflictError(JobStoreError):
    """Write collided with state that is already settled."""


class OutcomeConflictError(ConflictError):
    """An outcome for this (job, operation) pair is already recorded."""

    def __init__(self, job_id: str, operation: str) -> None:
        super().__init__(f"Outcome already recorded: job={job_id} operation={operation}")
        self.job_id = job_id
        self.operation = operation


class TerminalStatusConflictError(ConflictError):
    """Status update targeted a job that already reached a terminal status."""

    def __init__(self, job_id: str, status: str) -> None:
        super().__init__(f"Job {job_id} is already terminal ({status})")
        self.job_id = job_id
        self.status = status


class StoreUnavailableError(JobStoreError):
    """Backend is transiently unreachable."""
