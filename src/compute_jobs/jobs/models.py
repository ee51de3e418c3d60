"""Domain models for compute jobs and their task outcomes."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class JobStatus(str, Enum):
    """Job lifecycle states."""

    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset({JobStatus.COMPLETED, JobStatus.FAILED})
ACTIVE_STATUSES = (JobStatus.PENDING, JobStatus.PROCESSING)


class OperationKind(str, Enum):
    """Sub-operations one job fans out into."""

    ADD = "add"
    SUBTRACT = "subtract"
    MULTIPLY = "multiply"
    DIVIDE = "divide"


CANONICAL_OPERATIONS: tuple[OperationKind, ...] = (
    OperationKind.ADD,
    OperationKind.SUBTRACT,
    OperationKind.MULTIPLY,
    OperationKind.DIVIDE,
)


def compute_progress(completed_count: int, expected_count: int) -> int:
    """Percentage of expected outcomes recorded, clamped to [0, 100]."""

    if expected_count <= 0:
        return 100
    return max(0, min(100, round(100 * completed_count / expected_count)))


@dataclass(slots=True)
class TaskOutcomeWrite:
    """Outcome of one executed sub-operation, before persistence."""

    operation: OperationKind
    result: float | None = None
    error: str | None = None
    completed_at: datetime | None = None

    def __post_init__(self) -> None:
        if (self.result is None) == (self.error is None):
            raise ValueError(
                f"Outcome for {self.operation.value} needs exactly one of result or error.",
            )

    @property
    def succeeded(self) -> bool:
        return self.error is None


@dataclass(slots=True)
class TaskOutcomeView:
    """Persisted ledger entry."""

    outcome_id: str
    job_id: str
    operation: OperationKind
    result: float | None
    error: str | None
    completed_at: datetime
    created_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.outcome_id,
            "job_id": self.job_id,
            "operation": self.operation.value,
            "result": self.result,
            "error": self.error,
            "completed_at": self.completed_at.isoformat(),
            "created_at": self.created_at.isoformat(),
        }


@dataclass(slots=True)
class JobView:
    """Readable job record for services, coordinator, and CLI."""

    job_id: str
    number_a: float
    number_b: float
    status: JobStatus
    progress: int
    expected_count: int
    created_at: datetime
    updated_at: datetime

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.job_id,
            "number_a": self.number_a,
            "number_b": self.number_b,
            "status": self.status.value,
            "progress": self.progress,
            "expected_count": self.expected_count,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }


@dataclass(slots=True)
class JobDetails:
    """Job with its ledger in completion order."""

    job: JobView
    outcomes: list[TaskOutcomeView] = field(default_factory=list)

    def outcome_for(self, operation: OperationKind) -> TaskOutcomeView | None:
        for outcome in self.outcomes:
            if outcome.operation == operation:
                return outcome
        return None

    def to_dict(self) -> dict[str, Any]:
        payload = self.job.to_dict()
        payload["results"] = [outcome.to_dict() for outcome in self.outcomes]
        return payload
