"""Built-in operator and function rules, and the default registry."""

from __future__ import annotations

import math

from cellcalc.functions.registry import RegistryBuilder

_builder = RegistryBuilder()


# ---------------------------------------------------------------------------
# Binary operators
# ---------------------------------------------------------------------------


@_builder.operator("+", priority=1)
def op_add(a: float, b: float) -> float:
    return a + b


@_builder.operator("-", priority=1)
def op_subtract(a: float, b: float) -> float:
    return a - b


@_builder.operator("*", priority=2)
def op_multiply(a: float, b: float) -> float:
    return a * b


@_builder.operator("/", priority=2)
def op_divide(a: float, b: float) -> float:
    """Divide a by b.

    Raises:
        ZeroDivisionError: If b is zero (the evaluator recovers it to 0).
    """
    return a / b


@_builder.operator("^", priority=3)
def op_power(a: float, b: float) -> float:
    """Raise a to the power b.

    Uses ``math.pow`` so a negative base with a fractional exponent raises
    ``ValueError`` instead of producing a complex number.
    """
    return math.pow(a, b)


# ---------------------------------------------------------------------------
# Functions
# ---------------------------------------------------------------------------


@_builder.function("sum", priority=4)
def fn_sum(*args: float) -> float:
    """Sum of all arguments; 0 when called with none."""
    return float(sum(args))


@_builder.function("min", priority=4)
def fn_min(*args: float) -> float:
    """Smallest argument; +inf when called with none."""
    return min(args) if args else math.inf


@_builder.function("max", priority=4)
def fn_max(*args: float) -> float:
    """Largest argument; -inf when called with none."""
    return max(args) if args else -math.inf


@_builder.function("pow", priority=3, min_args=2, max_args=2)
def fn_pow(*args: float) -> float:
    """POW(base; exponent).  Arguments past the second are ignored."""
    if len(args) < 2:
        return math.nan
    return math.pow(args[0], args[1])


@_builder.function("log", priority=2, min_args=1, max_args=2)
def fn_log(*args: float) -> float:
    """LOG(x) is the natural logarithm, LOG(x; base) uses *base*.

    Arguments past the second are ignored. LOG(0) is -inf.
    """
    if not args:
        return math.nan
    if args[0] == 0:
        return -math.inf
    if len(args) == 1:
        return math.log(args[0])
    return math.log(args[0], args[1])


DEFAULT_REGISTRY = _builder.build()
