"""CLI entrypoint for compute-jobs."""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import rich_click as click

from compute_jobs import __version__
from compute_jobs.config import SUPPORTED_STORE_BACKENDS
from compute_jobs.controllers import (
    JobsCliController,
    JobStatusCommand,
    SubmitJobCommand,
    WatchJobCommand,
)
from compute_jobs.jobs.errors import InvalidOperandsError, JobNotFoundError, JobStoreError

click.rich_click.USE_MARKDOWN = True
JOBS_CONTROLLER = JobsCliController()

_db_path_option = click.option(
    "--db-path",
    type=click.Path(path_type=Path),
    default=None,
    help="SQLite DB path.",
)
_backend_option = click.option(
    "--backend",
    "store_backend",
    type=click.Choice(SUPPORTED_STORE_BACKENDS, case_sensitive=False),
    default=None,
    help="Job store backend. Defaults to COMPUTE_JOBS_STORE_BACKEND or sqlite.",
)
_format_option = click.option(
    "--format",
    "output_format",
    type=click.Choice(["table", "json"], case_sensitive=False),
    default="table",
    show_default=True,
    help="Output format.",
)


@click.group()
@click.version_option(version=__version__, prog_name="compute-jobs")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    show_default=True,
    help="Logging verbosity.",
)
def compute_jobs(log_level: str) -> None:
    """Fan-out/fan-in arithmetic job CLI."""

    logging.basicConfig(
        level=log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@compute_jobs.command("submit")
@click.argument("number_a", type=float)
@click.argument("number_b", type=float)
@click.option(
    "--use-alternate/--no-alternate",
    default=None,
    help="Try the LLM strategy first. Defaults to COMPUTE_JOBS_USE_ALTERNATE.",
)
@click.option(
    "--wait/--no-wait",
    default=False,
    show_default=True,
    help="Poll until the job reaches a terminal status.",
)
@_format_option
@_backend_option
@_db_path_option
def submit(  # noqa: PLR0913
    number_a: float,
    number_b: float,
    use_alternate: bool | None,
    wait: bool,
    output_format: str,
    store_backend: str | None,
    db_path: Path | None,
) -> None:
    """Create a job for two operands and run add/subtract/multiply/divide."""

    with _cli_errors():
        _emit_lines(
            JOBS_CONTROLLER.submit(
                SubmitJobCommand(
                    db_path=db_path,
                    store_backend=store_backend,
                    number_a=number_a,
                    number_b=number_b,
                    use_alternate=use_alternate,
                    wait=wait,
                    output_format=output_format.lower(),
                ),
            ),
        )


@compute_jobs.command("status")
@click.argument("job_id")
@_format_option
@_backend_option
@_db_path_option
def status(
    job_id: str,
    output_format: str,
    store_backend: str | None,
    db_path: Path | None,
) -> None:
    """Show job status, progress, and collected results."""

    with _cli_errors():
        _emit_lines(
            JOBS_CONTROLLER.status(
                JobStatusCommand(
                    db_path=db_path,
                    store_backend=store_backend,
                    job_id=job_id,
                    output_format=output_format.lower(),
                ),
            ),
        )


@compute_jobs.command("watch")
@click.argument("job_id")
@click.option(
    "--interval",
    type=click.FloatRange(min=0.01),
    default=None,
    help="Polling interval in seconds.",
)
@click.option(
    "--timeout",
    type=click.FloatRange(min=0.1),
    default=None,
    help="Give up after this many seconds.",
)
@_backend_option
@_db_path_option
def watch(
    job_id: str,
    interval: float | None,
    timeout: float | None,
    store_backend: str | None,
    db_path: Path | None,
) -> None:
    """Poll a job and print progress until it completes or fails."""

    with _cli_errors():
        _emit_lines(
            JOBS_CONTROLLER.watch(
                WatchJobCommand(
                    db_path=db_path,
                    store_backend=store_backend,
                    job_id=job_id,
                    interval_seconds=interval,
                    timeout_seconds=timeout,
                ),
                emit=click.echo,
            ),
        )


@contextmanager
def _cli_errors() -> Iterator[None]:
    """Map domain errors onto click exit codes."""

    try:
        yield
    except JobNotFoundError as error:
        raise click.ClickException(f"Job not found: {error.job_id}") from error
    except InvalidOperandsError as error:
        raise click.UsageError(str(error)) from error
    except TimeoutError as error:
        raise click.ClickException(str(error)) from error
    except JobStoreError as error:
        raise click.ClickException(f"Job store error: {error}") from error
    except ValueError as error:
        raise click.ClickException(f"Configuration error: {error}") from error


def _emit_lines(lines: list[str]) -> None:
    for line in lines:
        click.echo(line)


if __name__ == "__main__":  # pragma: no cover
    compute_jobs()
