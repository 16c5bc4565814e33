"""cellcalc -- spreadsheet-style formula evaluator."""

from cellcalc.config import CalcOptions, load_config
from cellcalc.formulas import (
    Evaluator,
    FormulaError,
    Lexer,
    Token,
    TokenKind,
    evaluate_formula,
    tokenize,
)

__version__ = "0.1.0"

__all__ = [
    "CalcOptions",
    "Evaluator",
    "FormulaError",
    "Lexer",
    "Token",
    "TokenKind",
    "__version__",
    "evaluate_formula",
    "load_config",
    "tokenize",
]
