"""Best-effort alternate result producers.

A strategy never raises: every failure comes back as an unsuccessful
``StrategyResult`` so the executor can fall back to the canonical computation.
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass
from typing import Any, Protocol

import httpx

from compute_jobs.config import AlternateStrategySettings
from compute_jobs.jobs.models import OperationKind
from compute_jobs.jobs.operations import OPERATION_SYMBOLS

logger = logging.getLogger(__name__)

_NUMBER_RE = re.compile(r"-?\d+(?:\.\d+)?(?:[eE][-+]?\d+)?")
_ERROR_MARKERS = ("ERROR", "Division by zero")


@dataclass(slots=True)
class StrategyResult:
    """Outcome of one alternate computation attempt."""

    ok: bool
    value: float | None = None
    error: str | None = None

    @classmethod
    def success(cls, value: float) -> StrategyResult:
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: str) -> StrategyResult:
        return cls(ok=False, error=error)


class AlternateStrategy(Protocol):
    """Protocol implemented by alternate result producers."""

    @property
    def available(self) -> bool:
        """Whether the strategy is configured and may be attempted."""

    def try_compute(
        self,
        operation: OperationKind,
        number_a: float,
        number_b: float,
    ) -> StrategyResult:
        """Attempt one computation within the strategy's time bound."""


class DisabledStrategy:
    """Strategy used when no alternate producer is configured."""

    @property
    def available(self) -> bool:
        return False

    def try_compute(
        self,
        operation: OperationKind,
        number_a: float,
        number_b: float,
    ) -> StrategyResult:
        return StrategyResult.failure("alternate strategy disabled")


class ChatCompletionStrategy:
    """Asks an OpenAI-compatible chat completions endpoint for the answer."""

    def __init__(
        self,
        *,
        api_key: str | None,
        base_url: str,
        model: str,
        timeout_seconds: float,
        max_tokens: int = 50,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._max_tokens = max_tokens
        self._client = httpx.Client(
            base_url=base_url.rstrip("/"),
            timeout=httpx.Timeout(timeout_seconds, connect=min(timeout_seconds, 5.0)),
            headers={"Authorization": f"Bearer {api_key or ''}"},
            transport=transport,
        )

    @classmethod
    def from_settings(
        cls,
        settings: AlternateStrategySettings,
        *,
        transport: httpx.BaseTransport | None = None,
    ) -> ChatCompletionStrategy:
        return cls(
            api_key=settings.api_key,
            base_url=settings.base_url,
            model=settings.model,
            timeout_seconds=settings.timeout_seconds,
            max_tokens=settings.max_tokens,
            transport=transport,
        )

    @property
    def available(self) -> bool:
        return bool(self._api_key)

    def try_compute(
        self,
        operation: OperationKind,
        number_a: float,
        number_b: float,
    ) -> StrategyResult:
        if not self.available:
            return StrategyResult.failure("alternate strategy has no API key")

        prompt = (
            f"Calculate {_format_operand(number_a)} {OPERATION_SYMBOLS[operation]} "
            f"{_format_operand(number_b)}. "
            "Return ONLY the number."
        )
        try:
            response = self._client.post(
                "/chat/completions",
                json={
                    "model": self._model,
                    "messages": [{"role": "user", "content": prompt}],
                    "temperature": 0,
                    "max_tokens": self._max_tokens,
                },
            )
            response.raise_for_status()
            content = _extract_content(response.json())
        except httpx.TimeoutException:
            return StrategyResult.failure("timeout")
        except httpx.HTTPError as exc:
            return StrategyResult.failure(f"http error: {exc}")
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            return StrategyResult.failure(f"malformed response: {exc}")

        return parse_numeric_answer(content)

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> ChatCompletionStrategy:
        return self

    def __exit__(self, *_: object) -> None:
        self.close()


def parse_numeric_answer(content: str) -> StrategyResult:
    """Turn a free-text model answer into a number or an error signal."""

    text = content.strip()
    if any(marker in text for marker in _ERROR_MARKERS):
        return StrategyResult.failure(f"model reported an error: {text[:80]}")
    match = _NUMBER_RE.search(text)
    if match is None:
        return StrategyResult.failure(f"no number in answer: {text[:80]!r}")
    value = float(match.group(0))
    if not math.isfinite(value):
        return StrategyResult.failure(f"answer is not finite: {text[:80]!r}")
    return StrategyResult.success(value)


def build_strategy(settings: AlternateStrategySettings) -> AlternateStrategy:
    if not settings.enabled:
        return DisabledStrategy()
    logger.info("Alternate strategy enabled: model=%s", settings.model)
    return ChatCompletionStrategy.from_settings(settings)


def _format_operand(value: float) -> str:
    number = float(value)
    if number.is_integer():
        return str(int(number))
    return repr(number)


def _extract_content(payload: Any) -> str:
    content = payload["choices"][0]["message"]["content"]
    if not isinstance(content, str):
        raise TypeError(f"unexpected content type {type(content).__name__}")
    return content
