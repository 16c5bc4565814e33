"""Error types for formula tokenization and evaluation."""

from __future__ import annotations


class FormulaError(Exception):
    """Base class for all formula-related errors.

    Attributes:
        code: Stable error code, used as ``error_code`` on logged events.
    """

    code = "formula_error"


class MissingDataSourceError(FormulaError):
    """A cell reference was evaluated but no cell resolver is bound.

    Attributes:
        ref_name: The cell reference that triggered the lookup.
    """

    code = "missing_data_source"

    def __init__(self, ref_name: str) -> None:
        self.ref_name = ref_name
        super().__init__(
            f"No cell data source bound; cannot resolve {ref_name!r}"
        )


class UnresolvedReferenceError(FormulaError):
    """The cell resolver has no value for a reference.

    Attributes:
        ref_name: The unresolved reference.
        available: Known references, when the resolver can list them.
    """

    code = "unresolved_reference"

    def __init__(self, ref_name: str, available: list[str] | None = None) -> None:
        self.ref_name = ref_name
        self.available = available or []
        msg = f"Unknown cell reference: {ref_name!r}"
        if self.available:
            msg += f". Available: {self.available}"
        super().__init__(msg)


class FormulaArityError(FormulaError):
    """Wrong number of arguments for a function (strict arity mode only).

    Attributes:
        func_name: The function that caused the error.
        given: Number of arguments supplied.
    """

    code = "arity_mismatch"

    def __init__(self, func_name: str, given: int, message: str | None = None) -> None:
        self.func_name = func_name
        self.given = given
        super().__init__(message or f"{func_name}: got {given} argument(s)")


class MalformedFormulaError(FormulaError):
    """The token stream does not form a complete expression.

    Attributes:
        position: Index of the offending token, when known.
    """

    code = "malformed_formula"

    def __init__(self, message: str, position: int | None = None) -> None:
        self.position = position
        full = f"Malformed formula: {message}"
        if position is not None:
            full += f" (at token {position})"
        super().__init__(full)


class OperatorStackError(MalformedFormulaError):
    """A function token surfaced in binary-operator reduction.

    Function tokens are only ever closed by a right bracket; reaching one
    while reducing operators means the function name was not followed by
    an argument list.
    """

    code = "operator_stack"


# Errors that abort an evaluation and reach the caller.
ENGINE_ERRORS = (
    MissingDataSourceError,
    UnresolvedReferenceError,
    FormulaArityError,
    MalformedFormulaError,
)
