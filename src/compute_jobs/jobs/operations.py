"""Deterministic arithmetic for each operation kind."""

from __future__ import annotations

import math
import operator
from collections.abc import Callable

from compute_jobs.jobs.models import OperationKind

OPERATION_SYMBOLS = {
    OperationKind.ADD: "+",
    OperationKind.SUBTRACT: "-",
    OperationKind.MULTIPLY: "×",
    OperationKind.DIVIDE: "÷",
}


class DivisionByZeroError(ArithmeticError):
    """Divide requested with a zero divisor."""

    def __init__(self) -> None:
        super().__init__("Division by zero")


class NonFiniteResultError(ArithmeticError):
    """Computation overflowed to infinity or produced NaN."""


def _divide(number_a: float, number_b: float) -> float:
    if number_b == 0:
        raise DivisionByZeroError
    return number_a / number_b


_OPERATIONS: dict[OperationKind, Callable[[float, float], float]] = {
    OperationKind.ADD: operator.add,
    OperationKind.SUBTRACT: operator.sub,
    OperationKind.MULTIPLY: operator.mul,
    OperationKind.DIVIDE: _divide,
}


def is_defined(operation: OperationKind, number_b: float) -> bool:
    """Whether the canonical computation has a value for this divisor."""

    return not (operation == OperationKind.DIVIDE and number_b == 0)


def compute_canonical(operation: OperationKind, number_a: float, number_b: float) -> float:
    """Compute the reference result; raise ArithmeticError for undefined cases."""

    value = float(_OPERATIONS[operation](number_a, number_b))
    if not math.isfinite(value):
        raise NonFiniteResultError(f"Result of {operation.value} is not a finite number")
    return value
