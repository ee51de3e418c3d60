"""Controllers for compute job CLI commands."""

from __future__ import annotations

import json
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from compute_jobs.config import Settings
from compute_jobs.jobs.models import JobDetails
from compute_jobs.jobs.runtime import open_runtime
from compute_jobs.jobs.services import SubmitJob


@dataclass(slots=True)
class SubmitJobCommand:
    """CLI input for job submission."""

    db_path: Path | None
    store_backend: str | None
    number_a: float
    number_b: float
    use_alternate: bool | None
    wait: bool
    output_format: str = "table"


@dataclass(slots=True)
class JobStatusCommand:
    """CLI input for one job lookup."""

    db_path: Path | None
    store_backend: str | None
    job_id: str
    output_format: str = "table"


@dataclass(slots=True)
class WatchJobCommand:
    """CLI input for polling a job until it settles."""

    db_path: Path | None
    store_backend: str | None
    job_id: str
    interval_seconds: float | None
    timeout_seconds: float | None


class JobsCliController:
    """Coordinates submission, lookup, and polling CLI operations."""

    def submit(self, command: SubmitJobCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path, store_backend=command.store_backend)
        use_alternate = (
            command.use_alternate
            if command.use_alternate is not None
            else settings.alternate.use_by_default
        )
        with open_runtime(settings) as runtime:
            submitted = runtime.service.submit(
                SubmitJob(
                    number_a=command.number_a,
                    number_b=command.number_b,
                    use_alternate=use_alternate,
                ),
            )
            job_id = submitted.job.job_id
            if not command.wait:
                return [
                    "Job submitted: "
                    f"job_id={job_id} status={submitted.job.status.value} "
                    f"operations={submitted.job.expected_count}",
                ]
            details = runtime.service.wait_for_terminal(
                job_id,
                poll_interval_seconds=settings.worker.poll_interval_seconds,
                timeout_seconds=settings.worker.wait_timeout_seconds,
            )
        return render_job(details, output_format=command.output_format)

    def status(self, command: JobStatusCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path, store_backend=command.store_backend)
        with open_runtime(settings) as runtime:
            details = runtime.service.get_job(command.job_id)
        return render_job(details, output_format=command.output_format)

    def watch(self, command: WatchJobCommand, emit: Callable[[str], None]) -> list[str]:
        """Emit one line per observed status/progress change; return the final job."""

        settings = Settings.from_env(db_path=command.db_path, store_backend=command.store_backend)
        last_seen: tuple[str, int] | None = None

        def _on_poll(details: JobDetails) -> None:
            nonlocal last_seen
            current = (details.job.status.value, details.job.progress)
            if current != last_seen:
                last_seen = current
                emit(f"{details.job.job_id}: status={current[0]} progress={current[1]}%")

        with open_runtime(settings) as runtime:
            details = runtime.service.wait_for_terminal(
                command.job_id,
                poll_interval_seconds=(
                    command.interval_seconds or settings.worker.poll_interval_seconds
                ),
                timeout_seconds=command.timeout_seconds or settings.worker.wait_timeout_seconds,
                on_poll=_on_poll,
            )
        return render_job(details, output_format="table")


def render_job(details: JobDetails, *, output_format: str) -> list[str]:
    if output_format == "json":
        return [json.dumps(details.to_dict(), indent=2, ensure_ascii=False)]

    job = details.job
    lines = [
        f"Job {job.job_id}: status={job.status.value} progress={job.progress}% "
        f"a={job.number_a:g} b={job.number_b:g}",
        f"Created: {job.created_at.isoformat()} Updated: {job.updated_at.isoformat()}",
        f"Results ({len(details.outcomes)}/{job.expected_count}):",
    ]
    for outcome in details.outcomes:
        value = f"result={outcome.result:g}" if outcome.error is None else f"error={outcome.error}"
        lines.append(f"  {outcome.operation.value:<9} {value}")
    return lines
