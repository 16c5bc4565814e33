"""Cell resolvers: look up values for cell tokens.

Two implementations of the ``CellResolver`` protocol:

- ``MappingResolver`` -- a plain ``{"A1": 7.0, ...}`` mapping.
- ``FrameResolver`` -- a Polars DataFrame used as a grid, addressed
  A1-style (column ``A`` is the first column, row ``1`` the first row).
"""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path

import polars as pl

from cellcalc.formulas.errors import UnresolvedReferenceError
from cellcalc.formulas.lexer import scan_cell_ref
from cellcalc.formulas.tokens import Token, TokenKind


def split_cell_ref(ref: str) -> tuple[str, int]:
    """Split an A1-style reference into ``(column_letters, row_number)``.

    Characters after the reference (``"A10x"``) are ignored.

    Raises:
        ValueError: If *ref* does not start with a cell reference.
    """
    prefix = scan_cell_ref(ref)
    if prefix is None:
        raise ValueError(f"Not a cell reference: {ref!r}")
    letters = prefix.rstrip("0123456789")
    return letters, int(prefix[len(letters):])


def column_index(letters: str) -> int:
    """Convert column letters to a 0-based index (``A`` -> 0, ``AA`` -> 26)."""
    idx = 0
    for ch in letters:
        idx = idx * 26 + (ord(ch) - ord("A") + 1)
    return idx - 1


def column_letters(index: int) -> str:
    """Convert a 0-based column index to letters (26 -> ``AA``)."""
    letters = ""
    n = index + 1
    while n > 0:
        n, rem = divmod(n - 1, 26)
        letters = chr(ord("A") + rem) + letters
    return letters


def _cell_ref_of(token: Token) -> str:
    if token.kind is not TokenKind.cell:
        raise TypeError(f"Expected a cell token, got {token.kind.value}")
    return str(token.value)


class MappingResolver:
    """Resolve cells from a mapping of reference string to number."""

    def __init__(self, values: Mapping[str, float]) -> None:
        self._values = dict(values)

    def resolve_cell(self, token: Token) -> Token:
        ref = _cell_ref_of(token)
        if ref not in self._values:
            raise UnresolvedReferenceError(ref, available=sorted(self._values))
        return Token.number(self._values[ref])


class FrameResolver:
    """Resolve cells from a DataFrame laid out as a grid.

    Args:
        frame: The grid; column order gives the column letters.
    """

    def __init__(self, frame: pl.DataFrame) -> None:
        self.frame = frame

    def resolve_cell(self, token: Token) -> Token:
        ref = _cell_ref_of(token)
        letters, row = split_cell_ref(ref)
        col = column_index(letters)
        if col >= self.frame.width or row > self.frame.height:
            raise UnresolvedReferenceError(ref)
        value = self.frame[row - 1, col]
        if value is None:
            raise UnresolvedReferenceError(ref)
        try:
            return Token.number(float(value))
        except (TypeError, ValueError) as exc:
            raise UnresolvedReferenceError(ref) from exc


def load_grid(path: Path) -> pl.DataFrame:
    """Read a header-less CSV file as a grid.

    Columns are renamed ``A``, ``B``, ... to match cell addressing.
    """
    frame = pl.read_csv(path, has_header=False, infer_schema_length=None)
    return frame.rename(
        {name: column_letters(i) for i, name in enumerate(frame.columns)}
    )
