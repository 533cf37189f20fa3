"""
Turning typed text into formula items.

When the user presses Enter, the entry text goes one of two ways:
- Looks like a small expression ("5+10-4", "(2+3)*4"): the free-text
  tokenizer splits it into numbers and operators, all or nothing.
- Anything shorter or plainer ("+5", "007", "*"): the single-token
  classifier recognizes operator+number, a bare number or a bare operator.

Numbers are always renormalized ("007" -> "7") before they are inserted.
Text with letters is neither: it is a tag search handled by autocomplete.
"""

import logging
import re
from dataclasses import dataclass
from typing import Optional

from .constants import EXPRESSION_CHARS, OPERATORS, POWER_TOKEN
from .expression import ExpressionError, parse_expression
from .formula import FormulaItem, NumberLiteral, Operator, renormalize

logger = logging.getLogger(__name__)

OPERATOR_WITH_NUMBER_RE = re.compile(r"^([+\-*/^])([\d.]+)$")
PLAIN_NUMBER_RE = re.compile(r"^\d+(\.\d+)?$")
EXPRESSION_CHARS_RE = re.compile(r"^[\d+\-*/^().]+$")

# Three expression characters in a row, plus at least one operator somewhere
EXPRESSION_RUN_RE = re.compile(r"[\d+\-*/^()]{3,}")
HAS_OPERATOR_RE = re.compile(r"[+\-*/^()]")


class TokenizeRejected(ValueError):
    """Typed text is not an expression the tokenizer can split"""

    def __init__(self, text: str, reason: str):
        super().__init__(f"{reason}: {text!r}")
        self.text = text
        self.reason = reason


@dataclass(frozen=True)
class InsertionPlan:
    """Items to splice into the formula at the cursor, in order"""
    items: tuple

    def __len__(self) -> int:
        return len(self.items)


def classify(text: str) -> Optional[InsertionPlan]:
    """Recognize a single typed token.

    "+5"  -> [Operator("+"), NumberLiteral("5")]
    "007" -> [NumberLiteral("7")]
    "*"   -> [Operator("*")]

    Returns None when the text is none of these.
    """
    text = text.strip()

    if match := OPERATOR_WITH_NUMBER_RE.match(text):
        operator, number = match.groups()
        try:
            number = renormalize(number)
        except ValueError:
            # "+1.2.3", "+."
            return None
        return InsertionPlan((Operator(operator), NumberLiteral(number)))

    if PLAIN_NUMBER_RE.match(text):
        return InsertionPlan((NumberLiteral(renormalize(text)),))

    if len(text) == 1 and text in OPERATORS:
        return InsertionPlan((Operator(text),))

    return None


def tokenize(text: str) -> list[FormulaItem]:
    """Split an expression like "5+10-4" into numbers and operators.

    The whole text must parse as an expression (with ^ as power), otherwise
    TokenizeRejected is raised and nothing is produced. Only syntax is
    checked: "5/0" splits fine and evaluates to a failure later.
    """
    if not EXPRESSION_CHARS_RE.match(text):
        raise TokenizeRejected(text, "Not a pure expression")

    try:
        parse_expression(text.replace("^", POWER_TOKEN))
    except ExpressionError as e:
        raise TokenizeRejected(text, e.errmsg) from e

    items: list[FormulaItem] = []
    number = ""
    for char in text:
        if char in OPERATORS:
            if number:
                items.append(NumberLiteral(renormalize(number)))
                number = ""
            items.append(Operator(char))
        elif char in EXPRESSION_CHARS:
            number += char
    if number:
        items.append(NumberLiteral(renormalize(number)))

    return items


def looks_like_expression(text: str) -> bool:
    """True for text that should go through tokenize() rather than classify()"""
    return bool(EXPRESSION_RUN_RE.search(text) and HAS_OPERATOR_RE.search(text))


def plan_entry(text: str) -> Optional[InsertionPlan]:
    """Decide what submitted entry text inserts, or None to insert nothing"""
    text = text.strip()
    if not text:
        return None

    if looks_like_expression(text):
        try:
            return InsertionPlan(tuple(tokenize(text)))
        except TokenizeRejected as e:
            logger.debug(f"Invalid expression: {e}")
            return None

    return classify(text)
