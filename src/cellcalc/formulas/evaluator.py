"""Operator-precedence (two-stack) evaluator for tokenized formulas.

Supports:
- Binary operators with left-associative reduction by priority
- Variadic function calls with ``;``-separated arguments
- Cell references via a resolver callback
- Recovery of invalid arithmetic (NaN/inf/division by zero) to 0
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from typing import Protocol

from cellcalc.config import CalcOptions
from cellcalc.formulas.errors import (
    FormulaArityError,
    FormulaError,
    MalformedFormulaError,
    MissingDataSourceError,
    OperatorStackError,
    UnresolvedReferenceError,
)
from cellcalc.formulas.lexer import Lexer
from cellcalc.formulas.tokens import Token, TokenKind
from cellcalc.functions.registry import SymbolRegistry
from cellcalc.functions.scalar import DEFAULT_REGISTRY
from cellcalc.logging.events import (
    INVALID_ARITHMETIC,
    UNRECOGNIZED_TOKEN,
    EventType,
    emit_error,
    emit_info,
    emit_warning,
)

# Exceptions a compute rule may raise that count as a non-numeric result.
_ARITHMETIC_FAILURES = (ArithmeticError, ValueError)


# ---------------------------------------------------------------------------
# Resolver protocol
# ---------------------------------------------------------------------------


class CellResolver(Protocol):
    """Protocol for looking up cell values."""

    def resolve_cell(self, token: Token) -> Token:
        """Return a number token for a cell token.

        Raises:
            UnresolvedReferenceError: If the reference is unknown.
        """
        ...


# ---------------------------------------------------------------------------
# Per-call state
# ---------------------------------------------------------------------------


class _PendingCall:
    """Argument bookkeeping for one open function call."""

    __slots__ = ("token", "args", "base")

    def __init__(self, token: Token, base: int) -> None:
        self.token = token
        self.args: list[Token] = []
        # Operand-stack height when the call opened; operands above it
        # belong to the call.
        self.base = base


class _EvalState:
    __slots__ = ("operands", "operators", "calls")

    def __init__(self) -> None:
        self.operands: list[Token] = []
        self.operators: list[Token] = []
        self.calls: list[_PendingCall] = []


# ---------------------------------------------------------------------------
# Evaluator
# ---------------------------------------------------------------------------


class Evaluator:
    """Evaluates formulas or token lists to a single number.

    The evaluator holds no state between calls: every ``evaluate`` owns its
    stacks, so one instance can be reused and shared.

    Args:
        registry: Operators and functions; also used to tokenize strings.
        resolver: Source of cell values, or None.
        options: Lexer and arity options.
    """

    def __init__(
        self,
        registry: SymbolRegistry | None = None,
        resolver: CellResolver | None = None,
        options: CalcOptions | None = None,
    ) -> None:
        self.registry = registry or DEFAULT_REGISTRY
        self.resolver = resolver
        self.options = options or CalcOptions()
        self.lexer = Lexer(self.registry, self.options)

    def evaluate(self, formula: str | Sequence[Token]) -> float:
        """Evaluate a formula string or a pre-built token sequence.

        Returns:
            The numeric result.

        Raises:
            MissingDataSourceError: A cell token was met with no resolver.
            UnresolvedReferenceError: The resolver does not know a cell.
            FormulaArityError: Bad argument count (strict arity only).
            MalformedFormulaError: The tokens do not form one expression.
        """
        source = formula if isinstance(formula, str) else None
        tokens = self.lexer.tokenize(formula) if source is not None else list(formula)
        state = _EvalState()
        try:
            for index, token in enumerate(tokens):
                self._consume(state, token, index)
            self._close_open_brackets(state)
            self._reduce(state, 0)
            result = self._finish(state)
        except FormulaError as exc:
            emit_error(
                EventType.formula_failed,
                str(exc),
                {"formula": source, "n_tokens": len(tokens)},
                error_code=exc.code,
            )
            raise
        emit_info(
            EventType.formula_evaluated,
            f"Evaluated to {result!r}",
            {"formula": source, "n_tokens": len(tokens), "result": result},
        )
        return result

    # ------------------------------------------------------------------
    # Token dispatch
    # ------------------------------------------------------------------

    def _consume(self, state: _EvalState, token: Token, index: int) -> None:
        kind = token.kind

        if kind is TokenKind.number:
            state.operands.append(token)
            return

        if kind is TokenKind.cell:
            state.operands.append(self._resolve(token))
            return

        if kind is TokenKind.function:
            state.operators.append(token)
            state.calls.append(_PendingCall(token, base=len(state.operands)))
            return

        if kind is TokenKind.left_bracket:
            state.operators.append(token)
            return

        if kind is TokenKind.operator:
            self._reduce(state, token.priority, index)
            state.operators.append(token)
            return

        if kind is TokenKind.semicolon:
            self._reduce(state, 1, index)
            if not state.calls:
                raise MalformedFormulaError("';' outside of a function call", index)
            call = state.calls[-1]
            if len(state.operands) <= call.base:
                raise MalformedFormulaError(
                    f"empty argument in {call.token.value}()", index
                )
            call.args.append(state.operands.pop())
            return

        if kind is TokenKind.right_bracket:
            self._reduce(state, 1, index)
            if not state.operators or state.operators[-1].kind is not TokenKind.left_bracket:
                raise MalformedFormulaError("unbalanced ')'", index)
            state.operators.pop()
            if state.operators and state.operators[-1].kind is TokenKind.function:
                state.operands.append(self._close_call(state, index))
            return

        if kind is TokenKind.text:
            emit_warning(
                EventType.token_dropped,
                f"Skipped text token {token.value!r}",
                {"fragment": token.value, "index": index},
                error_code=UNRECOGNIZED_TOKEN,
            )
            return

        raise MalformedFormulaError(f"unexpected token kind {kind.value!r}", index)

    def _resolve(self, token: Token) -> Token:
        if self.resolver is None:
            raise MissingDataSourceError(str(token.value))
        resolved = self.resolver.resolve_cell(token)
        if isinstance(resolved, (int, float)):
            return Token.number(resolved)
        if not isinstance(resolved, Token) or resolved.kind is not TokenKind.number:
            raise UnresolvedReferenceError(str(token.value))
        return resolved

    # ------------------------------------------------------------------
    # Reduction
    # ------------------------------------------------------------------

    def _reduce(self, state: _EvalState, min_priority: int, index: int | None = None) -> None:
        """Apply pending operators whose priority is at least *min_priority*.

        Left brackets carry no priority and stop the loop.
        """
        operators = state.operators
        operands = state.operands
        while operators and operators[-1].priority is not None and operators[-1].priority >= min_priority:
            top = operators[-1]
            if top.kind is TokenKind.function:
                raise OperatorStackError(
                    f"function {top.value!r} is not followed by an argument list",
                    index,
                )
            if len(operands) < 2:
                raise MalformedFormulaError(f"operator {top.value!r} is missing an operand", index)
            right = operands.pop().value
            left = operands.pop().value
            operators.pop()
            operands.append(Token.number(self._apply_operator(top, left, right)))

    def _close_open_brackets(self, state: _EvalState) -> None:
        """Close every ``(`` still open at end of input, innermost first."""
        self._reduce(state, 1)
        while state.operators and state.operators[-1].kind is TokenKind.left_bracket:
            state.operators.pop()
            if state.operators and state.operators[-1].kind is TokenKind.function:
                state.operands.append(self._close_call(state, None))
            self._reduce(state, 1)

    def _apply_operator(self, operator: Token, left: float, right: float) -> float:
        try:
            result = operator.compute(left, right)
        except _ARITHMETIC_FAILURES:
            result = math.nan
        if math.isnan(result) or math.isinf(result):
            emit_warning(
                EventType.arithmetic_recovered,
                f"{left!r} {operator.value} {right!r} is not finite; using 0",
                {"operator": operator.value, "left": left, "right": right},
                error_code=INVALID_ARITHMETIC,
            )
            return 0.0
        return result

    # ------------------------------------------------------------------
    # Function calls
    # ------------------------------------------------------------------

    def _close_call(self, state: _EvalState, index: int | None) -> Token:
        func = state.operators.pop()
        call = state.calls.pop()
        if len(state.operands) > call.base:
            call.args.append(state.operands.pop())
        values = [arg.value for arg in call.args]

        if self.options.strict_arity:
            self._check_arity(func, len(values), index)
        try:
            result = func.compute(*values)
        except _ARITHMETIC_FAILURES:
            result = math.nan
        return Token.number(result)

    def _check_arity(self, func: Token, n_args: int, index: int | None) -> None:
        name = _entry_name(self.registry, func)
        try:
            entry = self.registry.function(name)
        except KeyError as exc:
            raise MalformedFormulaError(f"unknown function {name!r}", index) from exc
        if not entry.accepts(n_args):
            raise FormulaArityError(
                entry.symbol,
                n_args,
                f"{entry.symbol.upper()} takes {_arity_text(entry.min_args, entry.max_args)}, "
                f"got {n_args}",
            )

    @staticmethod
    def _finish(state: _EvalState) -> float:
        if not state.operands:
            raise MalformedFormulaError("formula produced no value")
        if len(state.operands) > 1:
            raise MalformedFormulaError(
                f"{len(state.operands)} values left over; missing operator?"
            )
        return state.operands[0].value


def _entry_name(registry: SymbolRegistry, func: Token) -> str:
    # Function token values are the raw fragment, e.g. "summary" for "sum".
    return registry.find_function(str(func.value)) or str(func.value)


def _arity_text(min_args: int, max_args: int | None) -> str:
    if max_args is None:
        return f"at least {min_args} argument(s)"
    if min_args == max_args:
        return f"exactly {min_args} argument(s)"
    return f"{min_args}-{max_args} arguments"


def evaluate_formula(
    formula: str | Sequence[Token],
    resolver: CellResolver | None = None,
    *,
    registry: SymbolRegistry | None = None,
    options: CalcOptions | None = None,
) -> float:
    """Evaluate a formula string or token list.

    Args:
        formula: Raw formula text (e.g. ``"max(A1; 2*B3)"``) or tokens from
            ``tokenize()``.
        resolver: Optional source of cell values.
        registry: Operators and functions (defaults to the built-ins).
        options: Lexer and arity options.

    Returns:
        The computed number.
    """
    return Evaluator(registry, resolver, options).evaluate(formula)
