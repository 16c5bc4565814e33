"""Token value objects produced by the lexer and consumed by the evaluator."""

from __future__ import annotations

from enum import Enum
from typing import Any, Callable

from pydantic import BaseModel, ConfigDict, Field, model_validator

from cellcalc.functions.registry import SymbolRegistry


class TokenKind(str, Enum):
    number = "number"
    cell = "cell"
    operator = "operator"
    function = "function"
    left_bracket = "left bracket"
    right_bracket = "right bracket"
    semicolon = "semicolon"
    text = "text"


_CALLABLE_KINDS = frozenset({TokenKind.operator, TokenKind.function})


class Token(BaseModel):
    """A classified unit of a formula.

    Operator and function tokens carry the ``priority`` and ``compute``
    rule resolved from the registry when the token was built; every other
    kind carries neither.  Use the named constructors (``Token.number``,
    ``Token.operator`` ...) rather than the raw model constructor.
    """

    model_config = ConfigDict(frozen=True)

    kind: TokenKind
    value: float | str | None = None
    priority: int | None = None
    compute: Callable[..., float] | None = Field(default=None, repr=False)

    @model_validator(mode="after")
    def _check_rule(self) -> Token:
        has_rule = self.priority is not None and self.compute is not None
        if self.kind in _CALLABLE_KINDS and not has_rule:
            raise ValueError(f"{self.kind.value} token requires priority and compute")
        if self.kind not in _CALLABLE_KINDS and (
            self.priority is not None or self.compute is not None
        ):
            raise ValueError(f"{self.kind.value} token cannot carry a compute rule")
        return self

    # ------------------------------------------------------------------
    # Constructors
    # ------------------------------------------------------------------

    @classmethod
    def number(cls, value: float) -> Token:
        return cls(kind=TokenKind.number, value=float(value))

    @classmethod
    def cell(cls, ref: str) -> Token:
        return cls(kind=TokenKind.cell, value=ref)

    @classmethod
    def operator(cls, symbol: str, registry: SymbolRegistry) -> Token:
        entry = registry.operator(symbol)
        return cls(
            kind=TokenKind.operator,
            value=symbol,
            priority=entry.priority,
            compute=entry.compute,
        )

    @classmethod
    def function(
        cls, name: str, registry: SymbolRegistry, matched: str | None = None
    ) -> Token:
        """Build a function token.

        Args:
            name: Token text; stored lower-cased.
            registry: Registry supplying the rule.
            matched: Registered name to take the rule from, when *name*
                only contains it (see ``SymbolRegistry.find_function``).
        """
        entry = registry.function(matched or name)
        return cls(
            kind=TokenKind.function,
            value=name.lower(),
            priority=entry.priority,
            compute=entry.compute,
        )

    @classmethod
    def left_bracket(cls) -> Token:
        return cls(kind=TokenKind.left_bracket, value="(")

    @classmethod
    def right_bracket(cls) -> Token:
        return cls(kind=TokenKind.right_bracket, value=")")

    @classmethod
    def semicolon(cls) -> Token:
        return cls(kind=TokenKind.semicolon, value=";")

    @classmethod
    def text(cls, fragment: str) -> Token:
        return cls(kind=TokenKind.text, value=fragment)

    # ------------------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        """Serializable form: ``{"type": ..., "value": ...}``."""
        return {"type": self.kind.value, "value": self.value}

    def __str__(self) -> str:
        return f"<{self.kind.value}>{self.value}"
