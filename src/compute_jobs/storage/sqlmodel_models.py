"""SQLModel ORM tables for the relational job store."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, String, UniqueConstraint
from sqlmodel import Field, SQLModel


class ComputeJob(SQLModel, table=True):
    __tablename__ = "compute_jobs"  # type: ignore[bad-override]
    __table_args__ = (
        CheckConstraint("progress >= 0 AND progress <= 100", name="ck_compute_jobs_progress"),
    )

    id: str = Field(primary_key=True)
    number_a: float
    number_b: float
    status: str = Field(index=True)
    progress: int = 0
    expected_count: int
    created_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))
    updated_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))


class ComputeResult(SQLModel, table=True):
    __tablename__ = "compute_results"  # type: ignore[bad-override]
    __table_args__ = (
        UniqueConstraint("job_id", "operation", name="uq_compute_results_job_operation"),
        CheckConstraint(
            "(result IS NULL) <> (error IS NULL)",
            name="ck_compute_results_result_xor_error",
        ),
    )

    id: str = Field(primary_key=True)
    job_id: str = Field(
        sa_column=Column(
            String,
            ForeignKey("compute_jobs.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
    )
    operation: str
    result: float | None = None
    error: str | None = None
    completed_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))
    created_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))
