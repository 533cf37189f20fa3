"""
Formula model: the items a formula is built from and the sequence holding them.

A formula is a flat, ordered sequence of items:
- NumberLiteral: a number kept as the text the user typed (renormalized)
- Operator: one of + - * / ^ ( )
- Tag: a named value with a category, e.g. "Salary" = 5000 (income)

Nesting only ever comes from "(" and ")" operator items, never from structure.

Formula snapshots are immutable. Every mutator returns a new Formula with the
cursor clamped to [0, len(items)], so the evaluator and the renderer always
see a consistent version. FormulaStore owns the current snapshot.
"""

from dataclasses import dataclass, replace
from typing import Callable, Iterable, Iterator, Optional, Union

from .constants import OPERATORS


def format_number(value: float) -> str:
    """Render a number in canonical decimal text ("7", "5.5", "0.25").

    Whole numbers drop the fractional part; everything else uses the
    shortest repr that round-trips.
    """
    value = float(value)
    if value.is_integer() and abs(value) < 1e21:
        return str(int(value))
    return repr(value)


def renormalize(text: str) -> str:
    """Parse numeric text and format it canonically ("007" -> "7", "5.50" -> "5.5").

    Raises ValueError if the text is not a number.
    """
    return format_number(float(text))


@dataclass(frozen=True)
class NumberLiteral:
    """A number as text, parsed only when the formula is evaluated"""
    text: str

    def __str__(self) -> str:
        return self.text


@dataclass(frozen=True)
class Operator:
    """A single operator or parenthesis character"""
    symbol: str

    def __post_init__(self):
        if self.symbol not in OPERATORS:
            raise ValueError(f"Not an operator: {self.symbol!r}")

    def __str__(self) -> str:
        return self.symbol


@dataclass(frozen=True)
class Tag:
    """A named, valued, categorized reference used as an operand"""
    id: str
    name: str
    value: float
    category: str

    def __str__(self) -> str:
        return f"{{{{{self.name}}}}}"


FormulaItem = Union[NumberLiteral, Operator, Tag]


def to_item(value: Union[FormulaItem, str]) -> FormulaItem:
    """Accept plain strings as well as items: operator symbols or number text"""
    if isinstance(value, str):
        return Operator(value) if value in OPERATORS else NumberLiteral(value)
    return value


@dataclass(frozen=True)
class Formula:
    """Immutable snapshot of the formula items and the insertion cursor.

    The cursor is the index before which new items are inserted. It is
    clamped to [0, len(items)] whenever a Formula is built.
    """
    items: tuple = ()
    cursor: int = 0

    def __post_init__(self):
        items = tuple(self.items)
        object.__setattr__(self, "items", items)
        object.__setattr__(self, "cursor", max(0, min(int(self.cursor), len(items))))

    @classmethod
    def from_items(cls, items: Iterable[FormulaItem], cursor: Optional[int] = None) -> "Formula":
        """Build a formula, cursor at the end unless given"""
        items = tuple(items)
        return cls(items, len(items) if cursor is None else cursor)

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self) -> Iterator[FormulaItem]:
        return iter(self.items)

    def __getitem__(self, index: int) -> FormulaItem:
        return self.items[index]

    # Mutators (each returns a new Formula)

    def insert(self, item: FormulaItem) -> "Formula":
        """Insert one item at the cursor and move the cursor past it"""
        return self.insert_many([item])

    def insert_many(self, items: Iterable[FormulaItem]) -> "Formula":
        """Insert items as one contiguous block at the cursor, keeping their order"""
        block = tuple(items)
        new_items = self.items[:self.cursor] + block + self.items[self.cursor:]
        return Formula.from_items(new_items, self.cursor + len(block))

    def delete_before_cursor(self) -> "Formula":
        """Remove the item left of the cursor. No-op at position 0."""
        if self.cursor == 0:
            return self
        new_items = self.items[:self.cursor - 1] + self.items[self.cursor:]
        return Formula.from_items(new_items, self.cursor - 1)

    def replace_at(self, index: int, tag: Tag) -> "Formula":
        """Swap the tag at index for another tag. The cursor does not move.

        Raises IndexError for an index outside the formula and ValueError
        when the item at index is not a tag.
        """
        if not 0 <= index < len(self.items):
            raise IndexError(f"No formula item at index {index}")
        if not isinstance(self.items[index], Tag):
            raise ValueError(f"Item at index {index} is not a tag: {self.items[index]}")
        new_items = self.items[:index] + (tag,) + self.items[index + 1:]
        return replace(self, items=new_items)

    def clear(self) -> "Formula":
        """Empty formula, cursor at 0"""
        return Formula()

    def move_cursor(self, delta: int) -> "Formula":
        return self.with_cursor(self.cursor + delta)

    def with_cursor(self, position: int) -> "Formula":
        return Formula(self.items, position)

    # Queries

    def tag_before_cursor(self) -> Optional[int]:
        """Index of the tag directly left of the cursor, or None"""
        index = self.cursor - 1
        if index >= 0 and isinstance(self.items[index], Tag):
            return index
        return None

    def display_items(self) -> list[str]:
        """Items as display strings, tags as {{name}}"""
        return [str(item) for item in self.items]


class FormulaStore:
    """
    Holds the current formula snapshot.

    The widget reads the snapshot with get(), computes a new one through the
    Formula mutators and writes it back with set(). Subscribers are called
    after every set() (the widget re-renders and re-evaluates there).
    """

    def __init__(self, formula: Optional[Formula] = None):
        self._formula = formula if formula is not None else Formula()
        self._listeners: list[Callable[[Formula], None]] = []

    def get(self) -> Formula:
        return self._formula

    def set(self, formula: Formula) -> None:
        self._formula = formula
        for listener in list(self._listeners):
            listener(formula)

    def update(self, change: Callable[[Formula], Formula]) -> Formula:
        """Apply a mutator to the current formula and store the result"""
        formula = change(self._formula)
        self.set(formula)
        return formula

    def subscribe(self, listener: Callable[[Formula], None]) -> Callable[[], None]:
        """Register a change listener. Returns a function that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe
