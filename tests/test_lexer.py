"""Tests for formula normalization, splitting, and token classification."""

from __future__ import annotations

import pytest

from cellcalc.config import CalcOptions
from cellcalc.formulas import Lexer, Token, TokenKind, tokenize
from cellcalc.formulas.lexer import scan_cell_ref, scan_number
from cellcalc.functions import DEFAULT_REGISTRY


def _kinds(formula: str, **options) -> list[TokenKind]:
    return [t.kind for t in tokenize(formula, options=CalcOptions(**options))]


def _values(formula: str, **options) -> list:
    return [t.value for t in tokenize(formula, options=CalcOptions(**options))]


# ────────────────────────────────────────────────────────────────
# Normalization
# ────────────────────────────────────────────────────────────────


class TestNormalize:
    @pytest.fixture
    def lexer(self) -> Lexer:
        return Lexer()

    def test_whitespace_removed(self, lexer: Lexer) -> None:
        assert lexer.normalize(" 1 +\t2\n") == "1+2"

    def test_decimal_comma(self, lexer: Lexer) -> None:
        assert lexer.normalize("2,5*10,25") == "2.5*10.25"

    def test_comma_not_between_digits_kept(self, lexer: Lexer) -> None:
        assert lexer.normalize("A1,B2") == "A1,B2"
        assert lexer.normalize("1,") == "1,"

    def test_leading_minus(self, lexer: Lexer) -> None:
        assert lexer.normalize("-56+12") == "0-56+12"

    def test_minus_after_bracket(self, lexer: Lexer) -> None:
        assert lexer.normalize("(-5)*(-2)") == "(0-5)*(0-2)"

    def test_semicolon_minus_on(self, lexer: Lexer) -> None:
        assert lexer.normalize("max(1;-2)") == "max(1;0-2)"

    def test_semicolon_minus_off(self) -> None:
        lexer = Lexer(options=CalcOptions(semicolon_minus=False))
        assert lexer.normalize("max(1;-2)") == "max(1;-2)"

    def test_whitespace_removed_before_minus_rules(self, lexer: Lexer) -> None:
        assert lexer.normalize("  - 5") == "0-5"
        assert lexer.normalize("( -5)") == "(0-5)"


class TestSplit:
    def test_separators_become_fragments(self) -> None:
        assert Lexer().split("max(2*15;A1)") == ["max", "(", "2", "*", "15", ";", "A1", ")"]

    def test_no_empty_fragments(self) -> None:
        assert Lexer().split("((1))") == ["(", "(", "1", ")", ")"]

    def test_separators_follow_registry(self) -> None:
        assert DEFAULT_REGISTRY.separators == "+-*/^();"


# ────────────────────────────────────────────────────────────────
# Classification
# ────────────────────────────────────────────────────────────────


class TestClassify:
    def test_full_formula(self) -> None:
        assert _kinds("sum(A1; 2*3)") == [
            TokenKind.function,
            TokenKind.left_bracket,
            TokenKind.cell,
            TokenKind.semicolon,
            TokenKind.number,
            TokenKind.operator,
            TokenKind.number,
            TokenKind.right_bracket,
        ]

    def test_operator_carries_rule(self) -> None:
        (tok,) = [t for t in tokenize("1*2") if t.kind is TokenKind.operator]
        assert tok.value == "*"
        assert tok.priority == 2
        assert tok.compute(3, 4) == 12

    def test_function_lowercased(self) -> None:
        tok = tokenize("MAX(1)")[0]
        assert tok.kind is TokenKind.function
        assert tok.value == "max"
        assert tok.priority == 4

    def test_function_substring_match(self) -> None:
        tok = tokenize("Summary")[0]
        assert tok.kind is TokenKind.function
        assert tok.value == "summary"
        assert tok.compute(1, 2) == 3

    def test_function_wins_over_cell(self) -> None:
        assert _kinds("LOG1") == [TokenKind.function]

    def test_number_values(self) -> None:
        assert _values("12+1.5+3.") == [12.0, "+", 1.5, "+", 3.0]

    def test_number_prefix(self) -> None:
        assert _values("12abc") == [12.0]

    def test_cell_reference(self) -> None:
        assert _values("AA10+B2") == ["AA10", "+", "B2"]

    def test_lowercase_cell_dropped(self) -> None:
        assert _values("a1+2") == ["+", 2.0]

    def test_row_zero_dropped(self) -> None:
        assert _values("A0+2") == ["+", 2.0]

    def test_unrecognized_dropped(self) -> None:
        assert _values("2+@#") == [2.0, "+"]

    def test_unrecognized_kept_as_text(self) -> None:
        tokens = tokenize("2+@#", options=CalcOptions(keep_text=True))
        assert tokens[-1] == Token.text("@#")

    def test_leading_decimal_point_not_a_number(self) -> None:
        assert _values(".5") == []

    def test_to_dict(self) -> None:
        assert [t.to_dict() for t in tokenize("A1*2")] == [
            {"type": "cell", "value": "A1"},
            {"type": "operator", "value": "*"},
            {"type": "number", "value": 2.0},
        ]


class TestScanners:
    @pytest.mark.parametrize(
        "fragment, expected",
        [("12", "12"), ("1.5x", "1.5"), ("3.", "3."), ("x1", None), (".5", None)],
    )
    def test_scan_number(self, fragment: str, expected: str | None) -> None:
        assert scan_number(fragment) == expected

    @pytest.mark.parametrize(
        "fragment, expected",
        [("A1", "A1"), ("ZZ109", "ZZ109"), ("B12x", "B12"), ("A0", None), ("a1", None), ("A", None)],
    )
    def test_scan_cell_ref(self, fragment: str, expected: str | None) -> None:
        assert scan_cell_ref(fragment) == expected


class TestTokenModel:
    def test_tokens_are_immutable(self) -> None:
        from pydantic import ValidationError

        tok = Token.number(1)
        with pytest.raises(ValidationError):
            tok.value = 2.0  # type: ignore[misc]

    def test_operator_requires_rule(self) -> None:
        from pydantic import ValidationError

        with pytest.raises(ValidationError):
            Token(kind=TokenKind.operator, value="+")

    def test_number_cannot_carry_rule(self) -> None:
        from pydantic import ValidationError

        with pytest.raises(ValidationError):
            Token(kind=TokenKind.number, value=1.0, priority=1, compute=lambda a, b: a)

    def test_unknown_operator(self) -> None:
        with pytest.raises(KeyError, match="%"):
            Token.operator("%", DEFAULT_REGISTRY)
