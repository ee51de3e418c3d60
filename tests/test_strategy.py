"""Tests for the chat-completions alternate strategy."""

from __future__ import annotations

import json

import allure
import httpx
import pytest

from compute_jobs.config import AlternateStrategySettings
from compute_jobs.jobs.models import OperationKind
from compute_jobs.jobs.strategy import (
    ChatCompletionStrategy,
    DisabledStrategy,
    build_strategy,
    parse_numeric_answer,
)

pytestmark = [
    allure.epic("Job Execution"),
    allure.feature("Alternate Strategy"),
]


def _completion(content: object) -> dict[str, object]:
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


def _strategy(handler, *, api_key: str | None = "test-key") -> ChatCompletionStrategy:
    return ChatCompletionStrategy(
        api_key=api_key,
        base_url="https://llm.example.com/v1",
        model="test-model",
        timeout_seconds=2.0,
        transport=httpx.MockTransport(handler),
    )


def test_successful_answer_is_parsed() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=_completion(" 18 "))

    with _strategy(handler) as strategy:
        result = strategy.try_compute(OperationKind.MULTIPLY, 6.0, 3.0)

    assert result.ok
    assert result.value == 18.0
    assert len(seen) == 1
    assert seen[0].url.path == "/v1/chat/completions"
    assert seen[0].headers["Authorization"] == "Bearer test-key"
    body = json.loads(seen[0].content)
    assert body["model"] == "test-model"
    assert body["temperature"] == 0
    assert body["messages"][0]["content"] == "Calculate 6 × 3. Return ONLY the number."


def test_error_marker_in_answer_is_a_failure() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=_completion("ERROR"))

    with _strategy(handler) as strategy:
        result = strategy.try_compute(OperationKind.ADD, 1, 2)

    assert not result.ok
    assert result.value is None
    assert "model reported an error" in (result.error or "")


def test_malformed_payload_is_a_failure() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"unexpected": True})

    with _strategy(handler) as strategy:
        result = strategy.try_compute(OperationKind.ADD, 1, 2)

    assert not result.ok
    assert (result.error or "").startswith("malformed response")


def test_non_json_body_is_a_failure() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>gateway</html>")

    with _strategy(handler) as strategy:
        result = strategy.try_compute(OperationKind.ADD, 1, 2)

    assert not result.ok
    assert (result.error or "").startswith("malformed response")


def test_http_error_status_is_a_failure() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, json={"error": "overloaded"})

    with _strategy(handler) as strategy:
        result = strategy.try_compute(OperationKind.SUBTRACT, 5, 2)

    assert not result.ok
    assert (result.error or "").startswith("http error")


def test_timeout_is_a_failure() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("slow model", request=request)

    with _strategy(handler) as strategy:
        result = strategy.try_compute(OperationKind.ADD, 1, 2)

    assert not result.ok
    assert result.error == "timeout"


def test_missing_api_key_skips_the_request() -> None:
    def handler(request: httpx.Request) -> httpx.Response:  # pragma: no cover
        raise AssertionError("no request expected")

    with _strategy(handler, api_key=None) as strategy:
        assert strategy.available is False
        result = strategy.try_compute(OperationKind.ADD, 1, 2)

    assert not result.ok


@pytest.mark.parametrize(
    ("content", "value"),
    [("42", 42.0), ("-3.5", -3.5), ("The answer is 7.", 7.0), ("1.5e3", 1500.0)],
)
def test_parse_numeric_answer(content: str, value: float) -> None:
    result = parse_numeric_answer(content)

    assert result.ok
    assert result.value == value


@pytest.mark.parametrize("content", ["", "no idea", "Division by zero", "ERROR: undefined"])
def test_parse_numeric_answer_rejects(content: str) -> None:
    assert not parse_numeric_answer(content).ok


def test_build_strategy_without_key_is_disabled() -> None:
    strategy = build_strategy(AlternateStrategySettings(api_key=None))

    assert isinstance(strategy, DisabledStrategy)
    assert strategy.available is False
    assert not strategy.try_compute(OperationKind.ADD, 1, 1).ok


def test_build_strategy_with_key_uses_chat_completions() -> None:
    strategy = build_strategy(AlternateStrategySettings(api_key="k"))
    try:
        assert isinstance(strategy, ChatCompletionStrategy)
        assert strategy.available is True
    finally:
        strategy.close()


def test_prompt_keeps_fractional_operands() -> None:
    prompts: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        prompts.append(json.loads(request.content)["messages"][0]["content"])
        return httpx.Response(200, json=_completion("-1.25"))

    with _strategy(handler) as strategy:
        result = strategy.try_compute(OperationKind.SUBTRACT, 0.25, 1.5)

    assert result.value == -1.25
    assert prompts == ["Calculate 0.25 - 1.5. Return ONLY the number."]
