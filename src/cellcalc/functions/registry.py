"""Symbol registry: operator and function definitions shared by lexer and evaluator."""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType
from typing import Any, Callable

from pydantic import BaseModel, ConfigDict

# Characters that split a formula besides the operator symbols.
BRACKETS_AND_SEMICOLON = "();"


class SymbolEntry(BaseModel):
    """Priority and compute rule for one operator or function.

    Operator rules take exactly ``(left, right)``.  Function rules take a
    variable number of positional arguments.  ``min_args``/``max_args``
    are only consulted in strict arity mode; ``max_args=None`` means
    unbounded.
    """

    model_config = ConfigDict(frozen=True)

    symbol: str
    priority: int
    compute: Callable[..., float]
    min_args: int = 2
    max_args: int | None = 2

    def accepts(self, n_args: int) -> bool:
        """Return True if *n_args* is within the declared arity."""
        if n_args < self.min_args:
            return False
        return self.max_args is None or n_args <= self.max_args


class SymbolRegistry:
    """Read-only table of operators and functions.

    Built once (see ``RegistryBuilder``) and passed by reference into
    ``Lexer`` and ``Evaluator``.  ``extend()`` returns a new registry.
    """

    def __init__(
        self,
        operators: Mapping[str, SymbolEntry],
        functions: Mapping[str, SymbolEntry],
    ) -> None:
        self._operators = MappingProxyType(dict(operators))
        self._functions = MappingProxyType(
            {name.lower(): entry for name, entry in functions.items()}
        )

    @property
    def operators(self) -> Mapping[str, SymbolEntry]:
        return self._operators

    @property
    def functions(self) -> Mapping[str, SymbolEntry]:
        return self._functions

    @property
    def separators(self) -> str:
        """All single characters that delimit formula fragments."""
        return "".join(self._operators) + BRACKETS_AND_SEMICOLON

    def is_operator(self, symbol: str) -> bool:
        return symbol in self._operators

    def operator(self, symbol: str) -> SymbolEntry:
        """Look up an operator entry.

        Raises:
            KeyError: If no operator is registered under *symbol*.
        """
        if symbol not in self._operators:
            raise KeyError(f"Unknown operator: {symbol!r}")
        return self._operators[symbol]

    def function(self, name: str) -> SymbolEntry:
        """Look up a function entry (case-insensitive).

        Raises:
            KeyError: If no function is registered under *name*.
        """
        key = name.lower()
        if key not in self._functions:
            raise KeyError(f"Unknown function: {name!r}")
        return self._functions[key]

    def find_function(self, fragment: str) -> str | None:
        """Return the registered function name contained in *fragment*.

        The match is a case-insensitive substring search, not a whole-word
        match: ``"summary"`` contains ``"sum"``.  The leftmost occurrence
        wins; at the same position, registration order decides.
        """
        text = fragment.lower()
        for start in range(len(text)):
            for name in self._functions:
                if text.startswith(name, start):
                    return name
        return None

    def extend(
        self,
        operators: Mapping[str, SymbolEntry] | None = None,
        functions: Mapping[str, SymbolEntry] | None = None,
    ) -> SymbolRegistry:
        """Return a new registry with extra (or replaced) entries."""
        for symbol in operators or {}:
            _check_operator_symbol(symbol)
        return SymbolRegistry(
            {**self._operators, **(operators or {})},
            {**self._functions, **(functions or {})},
        )

    def __repr__(self) -> str:
        return (
            f"SymbolRegistry(operators={list(self._operators)}, "
            f"functions={list(self._functions)})"
        )


def _check_operator_symbol(symbol: str) -> None:
    if len(symbol) != 1 or symbol.isalnum() or symbol.isspace():
        raise ValueError(
            f"Operator symbol must be a single non-alphanumeric character: {symbol!r}"
        )
    if symbol in BRACKETS_AND_SEMICOLON or symbol in ",.":
        raise ValueError(f"Operator symbol {symbol!r} is reserved")


class RegistryBuilder:
    """Collects operator and function rules via decorators, then builds an
    immutable ``SymbolRegistry``.

    Example::

        builder = RegistryBuilder()

        @builder.operator("+", priority=1)
        def add(a, b):
            return a + b

        registry = builder.build()
    """

    def __init__(self) -> None:
        self._operators: dict[str, SymbolEntry] = {}
        self._functions: dict[str, SymbolEntry] = {}

    def operator(self, symbol: str, priority: int) -> Callable:
        """Decorator that registers a binary operator rule.

        Returns:
            The original function, unmodified.
        """
        _check_operator_symbol(symbol)

        def decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
            self._operators[symbol] = SymbolEntry(
                symbol=symbol, priority=priority, compute=fn
            )
            return fn

        return decorator

    def function(
        self,
        name: str,
        priority: int,
        min_args: int = 1,
        max_args: int | None = None,
    ) -> Callable:
        """Decorator that registers a variadic function rule.

        Returns:
            The original function, unmodified.
        """
        if not name.isalpha():
            raise ValueError(f"Function name must be alphabetic: {name!r}")

        def decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
            self._functions[name.lower()] = SymbolEntry(
                symbol=name.lower(),
                priority=priority,
                compute=fn,
                min_args=min_args,
                max_args=max_args,
            )
            return fn

        return decorator

    def build(self) -> SymbolRegistry:
        return SymbolRegistry(self._operators, self._functions)
