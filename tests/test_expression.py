#!/usr/bin/env python3
"""Tests for the expression evaluator: serialization, parsing and evaluation.

Run with: pytest tests/test_expression.py -v
"""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from formula_tui.expression import (
    EvaluationFailure, ExpressionError, evaluate, format_result,
    parse_expression, compute, to_expression_text,
)
from formula_tui.formula import NumberLiteral, Operator, Tag


def tag(value, name="t", category="default"):
    return Tag(id=name, name=name, value=value, category=category)


def is_failure(result):
    return isinstance(result, EvaluationFailure)


class TestEvaluate:
    """Formula items -> value"""

    def test_empty_is_zero(self):
        assert evaluate([]) == 0

    def test_tags_add(self):
        assert evaluate([tag(5), Operator("+"), tag(3)]) == 8

    def test_plain_strings_accepted(self):
        assert evaluate(["5", "+", "10", "-", "4"]) == 11

    def test_precedence(self):
        assert evaluate(["2", "+", "3", "*", "4"]) == 14

    def test_parentheses_override(self):
        assert evaluate(["(", "2", "+", "3", ")", "*", "4"]) == 20

    def test_subtraction_left_associative(self):
        assert evaluate(["10", "-", "4", "-", "3"]) == 3

    def test_division_left_associative(self):
        assert evaluate(["100", "/", "10", "/", "2"]) == 5

    def test_power(self):
        assert evaluate(["2", "^", "3"]) == 8

    def test_power_right_associative(self):
        # 2^(3^2), not (2^3)^2
        assert evaluate(["2", "^", "3", "^", "2"]) == 512

    def test_power_grouped_left(self):
        assert evaluate(["(", "2", "^", "3", ")", "^", "2"]) == 64

    def test_power_before_multiplication(self):
        assert evaluate(["3", "*", "2", "^", "2"]) == 12

    def test_leading_minus(self):
        assert evaluate(["-", "5", "+", "2"]) == -3

    def test_leading_minus_looser_than_power(self):
        assert evaluate(["-", "2", "^", "2"]) == -4

    def test_sign_after_open_paren(self):
        assert evaluate(["3", "*", "(", "-", "2", ")"]) == -6

    def test_negative_tag_value(self):
        assert evaluate([tag(-5), Operator("*"), NumberLiteral("2")]) == -10

    def test_fractional_tag_value(self):
        assert evaluate([tag(0.5), Operator("+"), tag(0.25)]) == 0.75

    def test_tiny_tag_value(self):
        assert evaluate([tag(1e-07), Operator("*"), NumberLiteral("10000000")]) == pytest.approx(1)

    def test_parenthesized_tag(self):
        assert evaluate([Operator("("), tag(5), Operator(")"), Operator("*"), NumberLiteral("2")]) == 10

    def test_deterministic(self):
        items = [tag(5000), Operator("-"), tag(1200), Operator("/"), NumberLiteral("3")]
        assert evaluate(items) == evaluate(items)


class TestEvaluationFailure:
    """Malformed or undefined formulas come back as failures, never raise"""

    def test_division_by_zero(self):
        assert is_failure(evaluate(["5", "/", "0"]))

    def test_trailing_operator(self):
        assert is_failure(evaluate(["5", "+"]))

    def test_lone_operator(self):
        assert is_failure(evaluate(["*"]))

    def test_consecutive_operators(self):
        assert is_failure(evaluate(["5", "*", "-", "3"]))
        assert is_failure(evaluate(["5", "+", "+", "3"]))

    def test_unmatched_open_paren(self):
        assert is_failure(evaluate(["(", "5", "+", "3"]))

    def test_unmatched_close_paren(self):
        assert is_failure(evaluate(["5", ")"]))

    def test_empty_parens(self):
        assert is_failure(evaluate(["(", ")"]))

    def test_adjacent_operands(self):
        assert is_failure(evaluate([tag(5), tag(3)]))
        assert is_failure(evaluate(["2", "(", "3", ")"]))

    def test_overflow(self):
        assert is_failure(evaluate(["10", "^", "400"]))

    def test_complex_power(self):
        assert is_failure(evaluate(["(", "-", "8", ")", "^", "(", "1", "/", "3", ")"]))

    def test_zero_to_negative_power(self):
        assert is_failure(evaluate(["0", "^", "(", "-", "1", ")"]))

    def test_invalid_number_literal(self):
        assert is_failure(evaluate([NumberLiteral("abc")]))

    def test_non_finite_tag_value(self):
        assert is_failure(evaluate([tag(float("inf"))]))
        assert is_failure(evaluate([tag(float("nan"))]))

    def test_failure_has_reason(self):
        result = evaluate(["5", "/", "0"])
        assert result.reason == "Division by zero"


class TestNesting:
    """Deep nesting is a failure, not a crash"""

    def test_moderate_nesting_evaluates(self):
        assert evaluate(["("] * 50 + ["1"] + [")"] * 50) == 1

    def test_deep_parentheses(self):
        result = evaluate(["("] * 2000 + ["1"] + [")"] * 2000)
        assert is_failure(result)
        assert result.reason == "Expression nested too deeply"

    def test_long_power_chain(self):
        assert is_failure(evaluate(["1"] + ["^", "1"] * 2000))

    def test_long_sum_does_not_raise(self):
        result = evaluate(["1"] + ["+", "1"] * 3000)
        assert result == 3001 or is_failure(result)

    def test_parser_reports_depth(self):
        with pytest.raises(ExpressionError) as info:
            parse_expression("(" * 2000 + "1" + ")" * 2000)
        assert info.value.errmsg == "Expression nested too deeply"


class TestExpressionText:
    """Serialization of items into arithmetic text"""

    def test_operands_wrapped(self):
        assert to_expression_text(["5", "+", tag(3)]) == "(5.0)+(3.0)"

    def test_caret_becomes_power(self):
        assert to_expression_text(["2", "^", "3"]) == "(2.0)**(3.0)"

    def test_double_parens_collapsed(self):
        assert to_expression_text(["(", tag(5), ")"]) == "(5.0)"

    def test_invalid_number_raises(self):
        with pytest.raises(ValueError):
            to_expression_text([NumberLiteral("1.2.3")])


class TestParser:
    """Lexer and parser on raw text"""

    def test_parse_and_compute(self):
        assert compute(parse_expression("1 + 4 * 5")) == 21
        assert compute(parse_expression("(((1)))")) == 1
        assert compute(parse_expression("10 + 2 * (5 + 3 - 1)")) == 24

    def test_exponent_literals(self):
        assert compute(parse_expression("1e3 + 2.5E-1")) == 1000.25

    def test_leading_dot_and_trailing_dot(self):
        assert compute(parse_expression(".5 + 5.")) == 5.5

    def test_malformed_number(self):
        with pytest.raises(ExpressionError) as info:
            parse_expression("1.2.3")
        assert info.value.errmsg == "Malformed number"

    def test_unexpected_character(self):
        with pytest.raises(ExpressionError):
            parse_expression("2 % 3")

    def test_error_points_at_position(self):
        with pytest.raises(ExpressionError) as info:
            parse_expression("5 +")
        assert info.value.position == 3
        assert str(info.value).splitlines()[-1] == "   ^"

    def test_missing_close_paren_points_at_open(self):
        with pytest.raises(ExpressionError) as info:
            parse_expression("2 * (3 + 4")
        assert info.value.position == 4


class TestFormatResult:
    """Result line text"""

    def test_number(self):
        assert format_result(8.0) == "8"
        assert format_result(0.25) == "0.25"

    def test_failure_is_blank(self):
        assert format_result(EvaluationFailure("Division by zero")) == ""
