"""Create compute job and result ledger tables."""

from __future__ import annotations

import sqlalchemy as sa

from alembic import op

revision = "20261017_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "compute_jobs",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("number_a", sa.Float(), nullable=False),
        sa.Column("number_b", sa.Float(), nullable=False),
        sa.Column("status", sa.String(), server_default="PENDING", nullable=False),
        sa.Column("progress", sa.Integer(), server_default="0", nullable=False),
        sa.Column("expected_count", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("progress >= 0 AND progress <= 100", name="ck_compute_jobs_progress"),
    )
    op.create_index("ix_compute_jobs_status", "compute_jobs", ["status"])

    op.create_table(
        "compute_results",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("job_id", sa.String(), nullable=False),
        sa.Column("operation", sa.String(), nullable=False),
        sa.Column("result", sa.Float(), nullable=True),
        sa.Column("error", sa.Text(), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["job_id"], ["compute_jobs.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("job_id", "operation", name="uq_compute_results_job_operation"),
        sa.CheckConstraint(
            "(result IS NULL) <> (error IS NULL)",
            name="ck_compute_results_result_xor_error",
        ),
    )
    op.create_index("ix_compute_results_job_id", "compute_results", ["job_id"])


def downgrade() -> None:
    op.drop_table("compute_results")
    op.drop_table("compute_jobs")
