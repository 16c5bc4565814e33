"""Spreadsheet-style formula tokenization and evaluation.

Public API::

    from cellcalc.formulas import tokenize, evaluate_formula
"""

from cellcalc.formulas.errors import (
    ENGINE_ERRORS,
    FormulaArityError,
    FormulaError,
    MalformedFormulaError,
    MissingDataSourceError,
    OperatorStackError,
    UnresolvedReferenceError,
)
from cellcalc.formulas.evaluator import CellResolver, Evaluator, evaluate_formula
from cellcalc.formulas.lexer import Lexer, tokenize
from cellcalc.formulas.tokens import Token, TokenKind

__all__ = [
    "ENGINE_ERRORS",
    "CellResolver",
    "Evaluator",
    "FormulaArityError",
    "FormulaError",
    "Lexer",
    "MalformedFormulaError",
    "MissingDataSourceError",
    "OperatorStackError",
    "Token",
    "TokenKind",
    "UnresolvedReferenceError",
    "evaluate_formula",
    "tokenize",
]
