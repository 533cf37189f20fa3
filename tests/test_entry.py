#!/usr/bin/env python3
"""Tests for typed-text handling: single-token classifier and free-text tokenizer.

Run with: pytest tests/test_entry.py -v
"""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from formula_tui.entry import (
    TokenizeRejected, classify, looks_like_expression, plan_entry, tokenize,
)
from formula_tui.expression import evaluate
from formula_tui.formula import NumberLiteral, Operator


def texts(items):
    return [str(item) for item in items]


class TestClassify:
    """Single-token recognition"""

    def test_operator_with_number(self):
        plan = classify("+5")
        assert plan.items == (Operator("+"), NumberLiteral("5"))

    def test_operator_with_decimal(self):
        assert texts(classify("-0.50").items) == ["-", "0.5"]

    def test_power_with_number(self):
        assert texts(classify("^2").items) == ["^", "2"]

    def test_plain_number_renormalized(self):
        assert classify("007").items == (NumberLiteral("7"),)
        assert texts(classify("12.50").items) == ["12.5"]

    def test_surrounding_whitespace_ignored(self):
        assert texts(classify("  42 ").items) == ["42"]

    def test_single_operator(self):
        assert classify("*").items == (Operator("*"),)
        assert classify("(").items == (Operator("("),)

    def test_letters_are_not_classified(self):
        assert classify("abc") is None

    def test_malformed_number_after_operator(self):
        assert classify("+1.2.3") is None
        assert classify("+.") is None

    def test_trailing_dot(self):
        assert classify("5.") is None

    def test_two_operators(self):
        assert classify("++") is None


class TestTokenize:
    """Free-text expression splitting"""

    def test_simple_expression(self):
        items = tokenize("5+10-4")
        assert items == [
            NumberLiteral("5"), Operator("+"), NumberLiteral("10"),
            Operator("-"), NumberLiteral("4"),
        ]
        assert evaluate(items) == 11

    def test_parentheses(self):
        items = tokenize("(2+3)*4")
        assert texts(items) == ["(", "2", "+", "3", ")", "*", "4"]
        assert evaluate(items) == 20

    def test_numbers_renormalized(self):
        assert texts(tokenize("007+1.50")) == ["7", "+", "1.5"]

    def test_power(self):
        items = tokenize("2^3")
        assert texts(items) == ["2", "^", "3"]
        assert evaluate(items) == 8

    def test_leading_sign(self):
        assert texts(tokenize("-5+3")) == ["-", "5", "+", "3"]

    def test_division_by_zero_is_still_syntax(self):
        assert texts(tokenize("5/0")) == ["5", "/", "0"]

    def test_trailing_operator_rejected(self):
        with pytest.raises(TokenizeRejected):
            tokenize("5+")

    def test_letters_rejected(self):
        with pytest.raises(TokenizeRejected):
            tokenize("2+abc")

    def test_spaces_rejected(self):
        with pytest.raises(TokenizeRejected):
            tokenize("5 + 3")

    def test_unbalanced_parens_rejected(self):
        with pytest.raises(TokenizeRejected):
            tokenize("((2)")

    def test_malformed_number_rejected(self):
        with pytest.raises(TokenizeRejected) as info:
            tokenize("1.2.3+4")
        assert info.value.reason == "Malformed number"

    def test_deep_nesting_rejected(self):
        with pytest.raises(TokenizeRejected) as info:
            tokenize("(" * 2000 + "1" + ")" * 2000)
        assert info.value.reason == "Expression nested too deeply"

    def test_rejection_is_a_value_error(self):
        with pytest.raises(ValueError):
            tokenize("5**")


class TestPlanEntry:
    """Which path submitted text takes"""

    def test_looks_like_expression(self):
        assert looks_like_expression("5+10")
        assert looks_like_expression("(1)")
        assert not looks_like_expression("+5")
        assert not looks_like_expression("123")
        assert not looks_like_expression("abc")

    def test_expression_goes_through_tokenizer(self):
        assert len(plan_entry("5+10-4")) == 5

    def test_short_text_goes_through_classifier(self):
        assert texts(plan_entry("+5").items) == ["+", "5"]

    def test_invalid_expression_inserts_nothing(self):
        assert plan_entry("12+") is None

    def test_blank_inserts_nothing(self):
        assert plan_entry("") is None
        assert plan_entry("   ") is None

    def test_deeply_nested_expression_inserts_nothing(self):
        plan = plan_entry("(" * 300 + "1" + ")" * 300)
        assert plan is None or len(plan) == 601
        assert plan_entry("(" * 2000 + "1" + ")" * 2000) is None

    def test_letters_insert_nothing(self):
        assert plan_entry("salary") is None
