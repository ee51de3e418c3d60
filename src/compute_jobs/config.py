"""Runtime configuration for job storage, workers, and the alternate strategy."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from urllib.parse import urlparse

SUPPORTED_STORE_BACKENDS = ("sqlite", "document")


@dataclass(slots=True)
class WorkerSettings:
    """Task dispatch and polling settings."""

    concurrency: int = 4
    poll_interval_seconds: float = 0.5
    wait_timeout_seconds: float = 60.0


@dataclass(slots=True)
class AlternateStrategySettings:
    """Best-effort LLM computation settings."""

    api_key: str | None = None
    base_url: str = "https://api.groq.com/openai/v1"
    model: str = "llama-3.1-8b-instant"
    timeout_seconds: float = 10.0
    max_tokens: int = 50
    use_by_default: bool = False

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)


@dataclass(slots=True)
class Settings:
    """Application settings grouped by domain concerns."""

    db_path: Path = Path(".compute_jobs.db")
    store_backend: str = "sqlite"
    sqlite_busy_timeout_ms: int = 5_000
    worker: WorkerSettings = field(default_factory=WorkerSettings)
    alternate: AlternateStrategySettings = field(default_factory=AlternateStrategySettings)

    @classmethod
    def from_env(
        cls,
        db_path: Path | None = None,
        store_backend: str | None = None,
    ) -> Settings:
        """Load settings from environment with sane defaults for local development."""

        return cls(
            db_path=db_path or Path(os.getenv("COMPUTE_JOBS_DB_PATH", ".compute_jobs.db")),
            store_backend=(
                store_backend or os.getenv("COMPUTE_JOBS_STORE_BACKEND", "sqlite")
            ).strip().lower(),
            sqlite_busy_timeout_ms=int(os.getenv("COMPUTE_JOBS_SQLITE_BUSY_TIMEOUT_MS", "5000")),
            worker=WorkerSettings(
                concurrency=int(os.getenv("COMPUTE_JOBS_WORKER_CONCURRENCY", "4")),
                poll_interval_seconds=float(
                    os.getenv("COMPUTE_JOBS_POLL_INTERVAL_SECONDS", "0.5"),
                ),
                wait_timeout_seconds=float(os.getenv("COMPUTE_JOBS_WAIT_TIMEOUT_SECONDS", "60")),
            ),
            alternate=AlternateStrategySettings(
                api_key=_env_secret("COMPUTE_JOBS_ALTERNATE_API_KEY", "GROQ_API_KEY"),
                base_url=os.getenv(
                    "COMPUTE_JOBS_ALTERNATE_BASE_URL",
                    "https://api.groq.com/openai/v1",
                ).rstrip("/"),
                model=os.getenv("COMPUTE_JOBS_ALTERNATE_MODEL", "llama-3.1-8b-instant"),
                timeout_seconds=float(os.getenv("COMPUTE_JOBS_ALTERNATE_TIMEOUT_SECONDS", "10")),
                max_tokens=int(os.getenv("COMPUTE_JOBS_ALTERNATE_MAX_TOKENS", "50")),
                use_by_default=_env_bool("COMPUTE_JOBS_USE_ALTERNATE", default=False),
            ),
        )

    def validate(self) -> None:
        """Raise configuration error for unsupported backends or limits."""

        if self.store_backend not in SUPPORTED_STORE_BACKENDS:
            raise ValueError(
                f"Unsupported COMPUTE_JOBS_STORE_BACKEND: {self.store_backend!r}. "
                f"Expected one of: {', '.join(SUPPORTED_STORE_BACKENDS)}.",
            )
        if self.sqlite_busy_timeout_ms <= 0:
            raise ValueError("COMPUTE_JOBS_SQLITE_BUSY_TIMEOUT_MS must be > 0.")
        if self.worker.concurrency <= 0:
            raise ValueError("COMPUTE_JOBS_WORKER_CONCURRENCY must be a positive integer.")
        if self.worker.poll_interval_seconds <= 0:
            raise ValueError("COMPUTE_JOBS_POLL_INTERVAL_SECONDS must be > 0.")
        if self.worker.wait_timeout_seconds <= 0:
            raise ValueError("COMPUTE_JOBS_WAIT_TIMEOUT_SECONDS must be > 0.")
        if self.alternate.timeout_seconds <= 0:
            raise ValueError("COMPUTE_JOBS_ALTERNATE_TIMEOUT_SECONDS must be > 0.")
        if self.alternate.max_tokens <= 0:
            raise ValueError("COMPUTE_JOBS_ALTERNATE_MAX_TOKENS must be a positive integer.")
        _validate_base_url(self.alternate.base_url)


def _env_secret(*names: str) -> str | None:
    for name in names:
        value = os.getenv(name, "").strip()
        if value:
            return value
    return None


def _validate_base_url(value: str) -> None:
    parsed = urlparse(value)
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        raise ValueError(
            "Invalid COMPUTE_JOBS_ALTERNATE_BASE_URL: "
            f"{value!r}. Expected an absolute URL with http:// or https:// scheme.",
        )


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    raise ValueError(f"Invalid boolean value for {name}: {value!r}")
