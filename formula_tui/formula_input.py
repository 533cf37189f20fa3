"""
Formula Input: build a formula from numbers, operators and tags

Layout:
- Formula line: the items built so far, a cursor bar at the insertion point
- Entry: where the user types numbers, operators, expressions or tag names
- Suggestions: tags matching the letters typed (autocomplete)
- Result: live value of the formula (blank when it has none)

Keys:
- Left/Right: move the formula cursor
- Backspace (empty entry): delete the item left of the cursor
- Up/Down: pick a suggestion, Enter: insert it
- Enter: insert typed number/operator/expression ("5+10-4")
- F2: edit the tag left of the cursor (next chosen suggestion replaces it)
- Escape: stop editing, hide suggestions
- Ctrl+L: clear the formula
"""

import asyncio
import logging
import re
from typing import Optional

from textual.widgets import Static, Input
from textual.containers import Vertical
from textual.app import ComposeResult
from textual import events
from textual.message import Message
from rich.style import Style
from rich.text import Text

from .constants import CATEGORY_COLORS, ICON_CURSOR
from .entry import plan_entry
from .expression import evaluate, format_result
from .formula import Formula, FormulaStore, Operator, Tag, format_number
from .suggestions import StaticSuggestionSource, SuggestionItem, SuggestionSource

logger = logging.getLogger(__name__)

HAS_LETTER_RE = re.compile(r"[a-zA-Z]")


def category_style(category: str, selected: bool = False) -> Style:
    """Chip style for a tag category, unknown categories use the default palette"""
    bg, text, _border = CATEGORY_COLORS.get(category, CATEGORY_COLORS["default"])
    return Style(color=text, bgcolor=bg, bold=selected, reverse=selected)


def render_formula(formula: Formula, editing_index: Optional[int] = None) -> Text:
    """Formula items as styled text, with a cursor bar at the insertion point"""
    cursor_style = Style(color="#6366f1", bold=True)
    text = Text()
    for index, item in enumerate(formula):
        if index == formula.cursor:
            text.append(ICON_CURSOR, cursor_style)
        if isinstance(item, Tag):
            text.append(f" {item.name} ", category_style(item.category, selected=index == editing_index))
            text.append(f"({format_number(item.value)})", Style(dim=True))
        elif isinstance(item, Operator):
            text.append(item.symbol, Style(bold=True))
        else:
            text.append(item.text)
        text.append(" ")
    if formula.cursor == len(formula):
        text.append(ICON_CURSOR, cursor_style)
    return text


class FormulaLine(Static):
    """Shows the formula items"""

    def show(self, formula: Formula, editing_index: Optional[int] = None) -> None:
        self.update(render_formula(formula, editing_index))


class SuggestionList(Static):
    """Autocomplete dropdown: matching tags, highlighted one marked"""

    def show(self, items: list[SuggestionItem], selected: int = -1) -> None:
        self.display = bool(items)
        lines = []
        for index, item in enumerate(items):
            is_selected = index == selected
            line = Text("▶ " if is_selected else "  ", Style(color="#6366f1"))
            line.append(item.name, Style(bold=is_selected))
            line.append("  ")
            line.append(f" {item.category} ", category_style(item.category))
            line.append(f"  Value: {format_number(item.value)}", Style(dim=True))
            lines.append(line)
        self.update(Text("\n").join(lines))


class ResultLine(Static):
    """Shows the live result of the formula"""

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.shown = Text()

    def show(self, result: str) -> None:
        text = Text("Result: ", Style(dim=True))
        text.append(result, Style(bold=True, color="#6366f1"))
        self.shown = text
        self.update(text)


class TipsPanel(Static):
    """Keyboard help"""

    def render(self) -> str:
        return (
            "[dim]Tips:\n"
            "  • Type a complete formula (e.g. 5+10-4) and press Enter\n"
            "  • Type letters to see tag suggestions, Up/Down + Enter to insert\n"
            "  • Left/Right move between elements, Backspace deletes\n"
            "  • F2 edits the tag left of the cursor, Ctrl+L clears all[/]"
        )


class FormulaEntry(Input):
    """
    Text entry below the formula line.

    Editing keys that act on the formula are turned into messages for
    FormulaInput; everything else is plain text input.
    """

    class Submitted(Message, bubble=True):
        """Enter pressed"""
        def __init__(self, value: str) -> None:
            self.value = value
            super().__init__()

    class CursorMoved(Message, bubble=True):
        """Left/Right pressed"""
        def __init__(self, delta: int) -> None:
            self.delta = delta
            super().__init__()

    class SuggestionStep(Message, bubble=True):
        """Up/Down pressed"""
        def __init__(self, delta: int) -> None:
            self.delta = delta
            super().__init__()

    class DeletePressed(Message, bubble=True):
        """Backspace pressed with an empty entry"""

    class EditRequested(Message, bubble=True):
        """F2 pressed"""

    class Cancelled(Message, bubble=True):
        """Escape pressed"""

    class ClearRequested(Message, bubble=True):
        """Ctrl+L pressed"""

    def __init__(self, **kwargs):
        super().__init__(placeholder="Type formula, number, operator, or letters for tags...", **kwargs)

    async def _on_key(self, event: events.Key) -> None:
        """Handle formula keys before Input processes them"""
        key = event.key
        message: Optional[Message] = None

        if key == "left":
            message = self.CursorMoved(-1)
        elif key == "right":
            message = self.CursorMoved(1)
        elif key == "up":
            message = self.SuggestionStep(-1)
        elif key == "down":
            message = self.SuggestionStep(1)
        elif key == "backspace" and not self.value:
            message = self.DeletePressed()
        elif key == "enter":
            message = self.Submitted(self.value)
        elif key == "f2":
            message = self.EditRequested()
        elif key == "escape":
            message = self.Cancelled()
        elif key == "ctrl+l":
            message = self.ClearRequested()

        if message is None:
            # Let parent Input handle all other keys
            await super()._on_key(event)
            return

        event.stop()
        event.prevent_default()
        self.post_message(message)


class FormulaInput(Vertical):
    """
    The formula widget: formula line, entry, suggestions and result.

    The formula itself lives in a FormulaStore; this widget reads it,
    applies Formula mutators and writes it back. Every change re-renders
    the formula line and re-evaluates the result.
    """

    DEFAULT_CSS = """
    FormulaInput {
        width: 100%;
        height: auto;
        padding: 1 2;
        background: $surface;
    }

    #formula-line {
        width: 100%;
        min-height: 3;
        border: round $primary;
        padding: 0 1;
    }

    #formula-entry {
        width: 100%;
        margin: 1 0 0 0;
    }

    #suggestions {
        width: 100%;
        max-height: 10;
        border: round $secondary;
        padding: 0 1;
        overflow-y: auto;
    }

    #result-line {
        width: 100%;
        height: 1;
        margin: 1 0;
        padding: 0 1;
    }

    #tips {
        width: 100%;
        height: auto;
        padding: 0 1;
    }
    """

    def __init__(
        self,
        source: Optional[SuggestionSource] = None,
        store: Optional[FormulaStore] = None,
        **kwargs,
    ):
        super().__init__(**kwargs)
        self.source = source or StaticSuggestionSource([])
        self.store = store or FormulaStore()
        self.suggestions: list[SuggestionItem] = []
        self.selected_suggestion = -1
        self.editing_index: Optional[int] = None
        self._query = ""
        self._unsubscribe = None

    def compose(self) -> ComposeResult:
        yield FormulaLine(id="formula-line")
        yield FormulaEntry(id="formula-entry")
        yield SuggestionList(id="suggestions")
        yield ResultLine(id="result-line")
        yield TipsPanel(id="tips")

    def on_mount(self) -> None:
        """Render the current formula and focus the entry"""
        self._unsubscribe = self.store.subscribe(self._on_formula_changed)
        self._on_formula_changed(self.store.get())
        self._show_suggestions()
        self.entry.focus()

    def on_unmount(self) -> None:
        if self._unsubscribe:
            self._unsubscribe()

    @property
    def entry(self) -> FormulaEntry:
        return self.query_one("#formula-entry", FormulaEntry)

    @property
    def formula(self) -> Formula:
        return self.store.get()

    @property
    def result(self) -> str:
        return format_result(evaluate(self.formula))

    # -----------------------------
    # Rendering
    # -----------------------------

    def _on_formula_changed(self, formula: Formula) -> None:
        logger.debug(f"Formula: {' '.join(formula.display_items())} (cursor {formula.cursor})")
        self.query_one("#formula-line", FormulaLine).show(formula, self.editing_index)
        self.query_one("#result-line", ResultLine).show(format_result(evaluate(formula)))

    def _show_suggestions(self) -> None:
        self.query_one("#suggestions", SuggestionList).show(self.suggestions, self.selected_suggestion)

    def _hide_suggestions(self) -> None:
        self.suggestions = []
        self.selected_suggestion = -1
        self._show_suggestions()

    def _set_editing(self, index: Optional[int]) -> None:
        self.editing_index = index
        self.query_one("#formula-line", FormulaLine).show(self.formula, index)

    # -----------------------------
    # Formula changes
    # -----------------------------

    def insert_tag(self, item: SuggestionItem) -> None:
        """Insert a chosen suggestion, or replace the tag being edited with it"""
        tag = item.to_tag()
        formula = self.formula
        index = self.editing_index
        self.editing_index = None
        if index is not None and index < len(formula) and isinstance(formula[index], Tag):
            self.store.set(formula.replace_at(index, tag))
        else:
            self.store.set(formula.insert(tag))
        self._query = ""
        self.entry.value = ""
        self._hide_suggestions()

    def on_formula_entry_submitted(self, event: FormulaEntry.Submitted) -> None:
        event.stop()
        if self.suggestions:
            if self.selected_suggestion >= 0:
                self.insert_tag(self.suggestions[self.selected_suggestion])
            return

        if not event.value.strip():
            return

        plan = plan_entry(event.value)
        if plan:
            self.editing_index = None
            self.store.update(lambda formula: formula.insert_many(plan.items))
        else:
            logger.debug(f"Nothing to insert for {event.value!r}")
        self.entry.value = ""

    def on_formula_entry_cursor_moved(self, event: FormulaEntry.CursorMoved) -> None:
        event.stop()
        self.editing_index = None
        self.store.update(lambda formula: formula.move_cursor(event.delta))

    def on_formula_entry_delete_pressed(self, event: FormulaEntry.DeletePressed) -> None:
        event.stop()
        self.editing_index = None
        self.store.update(lambda formula: formula.delete_before_cursor())

    def on_formula_entry_edit_requested(self, event: FormulaEntry.EditRequested) -> None:
        """Toggle editing of the tag left of the cursor"""
        event.stop()
        index = self.formula.tag_before_cursor()
        if index is None or index == self.editing_index:
            self._set_editing(None)
        else:
            self._set_editing(index)
        self.entry.value = ""

    def on_formula_entry_cancelled(self, event: FormulaEntry.Cancelled) -> None:
        event.stop()
        self._set_editing(None)
        self._hide_suggestions()

    def on_formula_entry_clear_requested(self, event: FormulaEntry.ClearRequested) -> None:
        event.stop()
        self.editing_index = None
        self.store.update(lambda formula: formula.clear())
        self.entry.value = ""

    # -----------------------------
    # Suggestions
    # -----------------------------

    def on_formula_entry_suggestion_step(self, event: FormulaEntry.SuggestionStep) -> None:
        """Move the highlight through the suggestions, wrapping at both ends"""
        event.stop()
        count = len(self.suggestions)
        if not count:
            return
        if event.delta > 0:
            self.selected_suggestion = self.selected_suggestion + 1 if self.selected_suggestion < count - 1 else 0
        else:
            self.selected_suggestion = self.selected_suggestion - 1 if self.selected_suggestion > 0 else count - 1
        self._show_suggestions()

    def on_input_changed(self, event: Input.Changed) -> None:
        """Look up tags while the entry contains letters"""
        self._query = event.value
        if HAS_LETTER_RE.search(event.value):
            self.run_worker(
                self._load_suggestions(event.value),
                group="suggestions",
                exclusive=True,
            )
        else:
            self._hide_suggestions()

    async def _load_suggestions(self, query: str) -> None:
        try:
            items = await asyncio.to_thread(self.source.search, query.strip())
        except Exception as e:
            # A broken source means no suggestions, not a crashed widget
            logger.warning(f"Suggestion lookup failed for {query!r}: {e}")
            items = []

        if query != self._query:
            # Entry changed while fetching
            return
        self.suggestions = items
        self.selected_suggestion = -1
        self._show_suggestions()
