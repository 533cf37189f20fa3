"""
Expression evaluator for formulas.

Pipeline
--------
1) Serialize: formula items -> arithmetic text, every operand wrapped in
   parentheses ("(5000)-(1200)**(2)"), doubled parentheses collapsed.
2) Lex: text -> flat list of tokens.
3) Parse: recursive descent, precedence aware, into a small AST.
4) Compute: walk the AST with float arithmetic.

Precedence, highest first:
    **          right-associative (2^3^2 == 2^(3^2) == 512)
    unary - +   only at the start of an expression or right after "("
    * /         left-associative
    + -         left-associative

evaluate() never raises: malformed or too deeply nested formulas and undefined
results (division by zero, overflow, complex powers) come back as
EvaluationFailure.
"""

import enum
import logging
import math
import re
from dataclasses import dataclass
from typing import Iterable, Optional, Union

from .constants import POWER_TOKEN
from .formula import FormulaItem, NumberLiteral, Operator, Tag, format_number, to_item

logger = logging.getLogger(__name__)


class PrintableEnum(enum.Enum):
    def __str__(self) -> str:
        return self.name

    __repr__ = __str__


# -----------------------------
# Errors / results
# -----------------------------

@dataclass
class ExpressionError(Exception):
    """Syntax error in expression text, with the character position it was found at"""
    errmsg: str
    text: str
    position: int

    def __str__(self) -> str:
        return "\n".join(
            [
                f"[Expression error] {self.errmsg}",
                self.text,
                " " * self.position + "^",
            ]
        )


@dataclass
class CalculationError(ArithmeticError):
    """Expression parsed but its value is undefined"""
    errmsg: str

    def __str__(self) -> str:
        return self.errmsg


@dataclass(frozen=True)
class EvaluationFailure:
    """Result of evaluating a formula that has no numeric value. Displays as blank."""
    reason: str

    def __str__(self) -> str:
        return ""


EvaluationResult = Union[float, EvaluationFailure]


# -----------------------------
# Lexer
# -----------------------------

class TokenType(PrintableEnum):
    NUMBER = enum.auto()
    PLUS = enum.auto()
    MINUS = enum.auto()
    STAR = enum.auto()
    SLASH = enum.auto()
    POWER = enum.auto()
    BRACKET_OPEN = enum.auto()
    BRACKET_CLOSE = enum.auto()
    END = enum.auto()


@dataclass
class Token:
    type: TokenType
    lexeme: str
    position: int

    def __str__(self) -> str:
        return f"<{self.type}>{self.lexeme}"


SINGLE_CHAR_TOKENS = {
    "+": TokenType.PLUS,
    "-": TokenType.MINUS,
    "*": TokenType.STAR,
    "/": TokenType.SLASH,
    "(": TokenType.BRACKET_OPEN,
    ")": TokenType.BRACKET_CLOSE,
}

# 12, 12., 12.5, .5, optionally with an exponent (tag values may print as 1e-07)
NUMBER_RE = re.compile(r"(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")


def lex(text: str) -> list[Token]:
    i = 0
    tokens: list[Token] = []
    while i < len(text):
        char = text[i]
        if char.isdigit() or char == ".":
            match = NUMBER_RE.match(text, i)
            if not match:
                raise ExpressionError("Malformed number", text=text, position=i)
            end = match.end()
            if end < len(text) and (text[end].isdigit() or text[end] == "."):
                raise ExpressionError("Malformed number", text=text, position=end)
            tokens.append(Token(TokenType.NUMBER, match.group(), i))
            i = end
            continue
        if text.startswith(POWER_TOKEN, i):
            tokens.append(Token(TokenType.POWER, POWER_TOKEN, i))
            i += len(POWER_TOKEN)
            continue
        if char in SINGLE_CHAR_TOKENS:
            tokens.append(Token(SINGLE_CHAR_TOKENS[char], char, i))
        elif not char.isspace():
            raise ExpressionError(f"Unexpected character: {char!r}", text=text, position=i)
        i += 1

    tokens.append(Token(TokenType.END, "", len(text)))
    return tokens


# -----------------------------
# AST
# -----------------------------

class BinaryOperator(PrintableEnum):
    ADD = enum.auto()
    SUB = enum.auto()
    MUL = enum.auto()
    DIV = enum.auto()
    POW = enum.auto()


class UnaryOperator(PrintableEnum):
    NEG = enum.auto()
    POS = enum.auto()


@dataclass
class BinaryOperation:
    operator: BinaryOperator
    left: "Expression"
    right: "Expression"


@dataclass
class UnaryOperation:
    operator: UnaryOperator
    operand: "Expression"


Expression = Union[float, BinaryOperation, UnaryOperation]

ADDITIVE = {TokenType.PLUS: BinaryOperator.ADD, TokenType.MINUS: BinaryOperator.SUB}
MULTIPLICATIVE = {TokenType.STAR: BinaryOperator.MUL, TokenType.SLASH: BinaryOperator.DIV}
SIGNS = {TokenType.MINUS: UnaryOperator.NEG, TokenType.PLUS: UnaryOperator.POS}
OPERATOR_TOKENS = set(ADDITIVE) | set(MULTIPLICATIVE) | {TokenType.POWER}


# -----------------------------
# Parser
# -----------------------------

class _Parser:
    """Recursive-descent parser over a token list. One instance per parse."""

    def __init__(self, text: str, tokens: list[Token]):
        self.text = text
        self.tokens = tokens
        self.i = 0

    @property
    def current(self) -> Token:
        return self.tokens[self.i]

    def error(self, errmsg: str, token: Optional[Token] = None) -> ExpressionError:
        token = token or self.current
        return ExpressionError(errmsg, text=self.text, position=token.position)

    def parse(self) -> Expression:
        expr = self.expression()
        token = self.current
        if token.type is TokenType.BRACKET_CLOSE:
            raise self.error("Unmatched ')'")
        if token.type is not TokenType.END:
            raise self.error(f"Operator expected, found {token.type}")
        return expr

    def expression(self) -> Expression:
        # Only the first operand of an expression may carry a sign
        result = self.term(allow_sign=True)
        while self.current.type in ADDITIVE:
            operator = ADDITIVE[self.current.type]
            self.i += 1
            result = BinaryOperation(operator, result, self.term(allow_sign=False))
        return result

    def term(self, allow_sign: bool) -> Expression:
        result = self.signed(allow_sign)
        while self.current.type in MULTIPLICATIVE:
            operator = MULTIPLICATIVE[self.current.type]
            self.i += 1
            result = BinaryOperation(operator, result, self.signed(allow_sign=False))
        return result

    def signed(self, allow_sign: bool) -> Expression:
        if allow_sign and self.current.type in SIGNS:
            operator = SIGNS[self.current.type]
            self.i += 1
            return UnaryOperation(operator, self.power())
        return self.power()

    def power(self) -> Expression:
        base = self.operand()
        if self.current.type is TokenType.POWER:
            self.i += 1
            # Recursing on the right makes ** right-associative
            return BinaryOperation(BinaryOperator.POW, base, self.power())
        return base

    def operand(self) -> Expression:
        token = self.current
        if token.type is TokenType.NUMBER:
            self.i += 1
            return float(token.lexeme)
        if token.type is TokenType.BRACKET_OPEN:
            if self.tokens[self.i + 1].type is TokenType.BRACKET_CLOSE:
                raise self.error("Empty parentheses")
            self.i += 1
            inner = self.expression()
            if self.current.type is not TokenType.BRACKET_CLOSE:
                raise self.error("Missing ')'", token)
            self.i += 1
            return inner
        if token.type is TokenType.END:
            raise self.error("Operand expected at end of expression")
        if token.type in OPERATOR_TOKENS or token.type in SIGNS:
            raise self.error(f"Consecutive operators: {token.lexeme!r}")
        raise self.error(f"Operand expected, found {token.type}")


def parse_expression(text: str) -> Expression:
    """Lex and parse arithmetic text. Raises ExpressionError on bad syntax."""
    tokens = lex(text)
    try:
        return _Parser(text, tokens).parse()
    except RecursionError:
        raise ExpressionError("Expression nested too deeply", text=text, position=0) from None


# -----------------------------
# Compute
# -----------------------------

def compute(expression: Expression) -> float:
    """Evaluate an AST. Raises CalculationError when the value is undefined."""
    try:
        return _compute(expression)
    except RecursionError:
        # Long left-associative chains nest as deep as they are long
        raise CalculationError("Expression nested too deeply") from None


def _compute(expression: Expression) -> float:
    if isinstance(expression, float):
        return expression
    if isinstance(expression, UnaryOperation):
        operand = _compute(expression.operand)
        return -operand if expression.operator is UnaryOperator.NEG else operand
    if isinstance(expression, BinaryOperation):
        left = _compute(expression.left)
        right = _compute(expression.right)
        if expression.operator is BinaryOperator.ADD:
            return left + right
        elif expression.operator is BinaryOperator.SUB:
            return left - right
        elif expression.operator is BinaryOperator.MUL:
            return left * right
        elif expression.operator is BinaryOperator.DIV:
            if right == 0:
                raise CalculationError("Division by zero")
            return left / right
        elif expression.operator is BinaryOperator.POW:
            # math.pow raises instead of returning complex or huge values
            try:
                return math.pow(left, right)
            except (ValueError, OverflowError) as e:
                raise CalculationError(f"Power is undefined: {e}")
    raise CalculationError(f"Unexpected expression: {expression!r}")


# -----------------------------
# Formula -> text -> value
# -----------------------------

DOUBLE_PARENS_RE = re.compile(r"\(\(([^)]+)\)\)")


def _item_text(item: FormulaItem) -> str:
    if isinstance(item, Tag):
        return f"({float(item.value)!r})"
    if isinstance(item, Operator):
        return POWER_TOKEN if item.symbol == "^" else item.symbol
    if isinstance(item, NumberLiteral):
        return f"({float(item.text)!r})"
    raise TypeError(f"Not a formula item: {item!r}")


def to_expression_text(items: Iterable[Union[FormulaItem, str]]) -> str:
    """Serialize formula items into arithmetic text for the parser.

    Raises ValueError when a number literal does not parse.
    """
    text = "".join(_item_text(to_item(item)) for item in items)
    # ((x)) -> (x)
    return DOUBLE_PARENS_RE.sub(r"(\1)", text)


def evaluate(items: Iterable[Union[FormulaItem, str]]) -> EvaluationResult:
    """Evaluate a formula to a float, or an EvaluationFailure. Empty formula is 0."""
    items = list(items)
    if not items:
        return 0.0

    try:
        text = to_expression_text(items)
    except ValueError as e:
        return EvaluationFailure(f"Invalid number: {e}")

    try:
        result = compute(parse_expression(text))
    except ExpressionError as e:
        logger.debug(f"Formula does not parse: {e}")
        return EvaluationFailure(e.errmsg)
    except CalculationError as e:
        logger.debug(f"Formula has no value: {text}: {e}")
        return EvaluationFailure(e.errmsg)

    if not math.isfinite(result):
        return EvaluationFailure("Result is not a finite number")
    return result


def format_result(result: EvaluationResult) -> str:
    """Text shown on the result line: the number, or blank on failure"""
    if isinstance(result, EvaluationFailure):
        return ""
    return format_number(result)
