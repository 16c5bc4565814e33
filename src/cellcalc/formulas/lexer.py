"""Character-scanning lexer for spreadsheet-style formulas.

A formula is normalized (whitespace, decimal commas, implicit zeros before
unary minus), split around separator characters, and each fragment is
classified by an ordered series of guards; the first guard that accepts a
fragment decides its token kind:

1. operator symbol
2. ``(`` / ``)`` / ``;``
3. contains a function name (case-insensitive substring match)
4. starts with a number: ``digits[.digits]``
5. starts with a cell reference: ``LETTERS`` then a row not starting with 0
6. anything else is dropped (or kept as a text token)

Unrecognized input never raises.
"""

from __future__ import annotations

from cellcalc.config import CalcOptions
from cellcalc.formulas.tokens import Token
from cellcalc.functions.registry import SymbolRegistry
from cellcalc.functions.scalar import DEFAULT_REGISTRY
from cellcalc.logging.events import UNRECOGNIZED_TOKEN, EventType, emit_warning

DIGITS = frozenset("0123456789")
UPPERCASE = frozenset("ABCDEFGHIJKLMNOPQRSTUVWXYZ")


def _is_digit(s: str, i: int) -> bool:
    return 0 <= i < len(s) and s[i] in DIGITS


# ---------------------------------------------------------------------------
# Fragment scanners
# ---------------------------------------------------------------------------


def scan_number(fragment: str) -> str | None:
    """Return the numeric prefix of *fragment* (``12``, ``1.5``, ``3.``), or None."""
    i = 0
    while _is_digit(fragment, i):
        i += 1
    if i == 0:
        return None
    if i < len(fragment) and fragment[i] == ".":
        i += 1
        while _is_digit(fragment, i):
            i += 1
    return fragment[:i]


def scan_cell_ref(fragment: str) -> str | None:
    """Return the A1-style prefix of *fragment* (``B12``), or None.

    Column letters must be uppercase and the row must not start with ``0``.
    """
    i = 0
    while i < len(fragment) and fragment[i] in UPPERCASE:
        i += 1
    if i == 0 or i >= len(fragment) or fragment[i] not in DIGITS or fragment[i] == "0":
        return None
    i += 1
    while _is_digit(fragment, i):
        i += 1
    return fragment[:i]


class Lexer:
    """Converts formula strings into token lists.

    Args:
        registry: Operators and functions to recognize.
        options: ``semicolon_minus`` and ``keep_text`` are honoured here.
    """

    def __init__(
        self,
        registry: SymbolRegistry | None = None,
        options: CalcOptions | None = None,
    ) -> None:
        self.registry = registry or DEFAULT_REGISTRY
        self.options = options or CalcOptions()

    # ------------------------------------------------------------------
    # Normalization
    # ------------------------------------------------------------------

    def normalize(self, formula: str) -> str:
        """Apply the normalization steps, in order, before splitting."""
        text = "".join(formula.split())
        text = self._decimal_commas(text)
        if text.startswith("-"):
            text = "0" + text
        text = text.replace("(-", "(0-")
        if self.options.semicolon_minus:
            text = text.replace(";-", ";0-")
        return text

    @staticmethod
    def _decimal_commas(text: str) -> str:
        """Replace each comma directly between two digits with a point."""
        chars = list(text)
        for i, ch in enumerate(chars):
            if ch == "," and _is_digit(text, i - 1) and _is_digit(text, i + 1):
                chars[i] = "."
        return "".join(chars)

    def split(self, text: str) -> list[str]:
        """Split normalized text around separators, dropping empty fragments."""
        separators = self.registry.separators
        fragments: list[str] = []
        current: list[str] = []
        for ch in text:
            if ch in separators:
                if current:
                    fragments.append("".join(current))
                    current = []
                fragments.append(ch)
            else:
                current.append(ch)
        if current:
            fragments.append("".join(current))
        return fragments

    # ------------------------------------------------------------------
    # Classification
    # ------------------------------------------------------------------

    def classify(self, fragment: str) -> Token | None:
        """Turn one fragment into a token, or None if it is not recognized."""
        registry = self.registry

        if registry.is_operator(fragment):
            return Token.operator(fragment, registry)

        if fragment == "(":
            return Token.left_bracket()
        if fragment == ")":
            return Token.right_bracket()
        if fragment == ";":
            return Token.semicolon()

        matched = registry.find_function(fragment)
        if matched is not None:
            return Token.function(fragment, registry, matched=matched)

        number = scan_number(fragment)
        if number is not None:
            return Token.number(float(number))

        if scan_cell_ref(fragment) is not None:
            return Token.cell(fragment)

        if self.options.keep_text:
            return Token.text(fragment)
        return None

    def tokenize(self, formula: str) -> list[Token]:
        """Convert *formula* into an ordered list of tokens."""
        tokens: list[Token] = []
        for fragment in self.split(self.normalize(formula)):
            token = self.classify(fragment)
            if token is None:
                emit_warning(
                    EventType.token_dropped,
                    f"Dropped unrecognized fragment {fragment!r}",
                    {"fragment": fragment, "formula": formula},
                    error_code=UNRECOGNIZED_TOKEN,
                )
                continue
            tokens.append(token)
        return tokens


def tokenize(
    formula: str,
    registry: SymbolRegistry | None = None,
    options: CalcOptions | None = None,
) -> list[Token]:
    """Tokenize a formula string with a throwaway ``Lexer``."""
    return Lexer(registry, options).tokenize(formula)
