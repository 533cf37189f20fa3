#!/usr/bin/env python3
"""
Formula Input - Main Textual TUI Application

Hosts the formula widget full screen.

Keyboard controls:
- Ctrl+Q: Quit
- F12: Toggle dark/light theme
- Everything else goes to the formula widget (see formula_input.py)
"""

import logging
from typing import Optional

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Vertical
from textual.logging import TextualHandler
from textual.theme import Theme
from textual.widgets import Static

from .config import Settings, load_settings
from .constants import ICON_FORMULA
from .formula import FormulaStore
from .formula_input import FormulaInput
from .suggestions import SuggestionSource

logger = logging.getLogger(__name__)


class AppTitle(Static):
    """Title row above the widget"""

    DEFAULT_CSS = """
    AppTitle {
        width: 100%;
        height: 1;
        margin-bottom: 1;
        color: $primary;
        text-style: bold;
    }
    """

    def render(self) -> str:
        return f"{ICON_FORMULA}  Formula Calculator"


class FormulaApp(App):
    """Formula Calculator: one formula widget, keyboard driven"""

    CSS = """
    Screen {
        background: $background;
    }

    #main {
        width: 100%;
        max-width: 100;
        height: auto;
        padding: 1 2;
    }
    """

    BINDINGS = [
        Binding("ctrl+q", "quit", "Quit", show=False, priority=True),
        Binding("f12", "toggle_theme", "Theme", show=False, priority=True),
    ]

    def __init__(self, source: Optional[SuggestionSource] = None, store: Optional[FormulaStore] = None):
        super().__init__()
        self.source = source
        self.store = store or FormulaStore()

        self.register_theme(
            Theme(
                name="formula-dark",
                primary="#6366f1",
                secondary="#4f46e5",
                warning="#c4a060",
                error="#b91c1c",
                success="#166534",
                accent="#818cf8",
                background="#111827",
                surface="#1f2937",
                panel="#1f2937",
                dark=True,
            )
        )
        self.register_theme(
            Theme(
                name="formula-light",
                primary="#4f46e5",
                secondary="#6366f1",
                warning="#854d0e",
                error="#b91c1c",
                success="#166534",
                accent="#4f46e5",
                background="#f9fafb",
                surface="#ffffff",
                panel="#f3f4f6",
                dark=False,
            )
        )
        self.theme = "formula-dark"

    def compose(self) -> ComposeResult:
        with Vertical(id="main"):
            yield AppTitle(id="app-title")
            yield FormulaInput(source=self.source, store=self.store, id="formula-input")

    def action_toggle_theme(self) -> None:
        self.theme = "formula-light" if self.theme == "formula-dark" else "formula-dark"


def setup_logging(settings: Settings) -> None:
    """Send log records to the Textual devtools console (the terminal belongs to the UI)"""
    logging.basicConfig(level=settings.log_level, handlers=[TextualHandler()])


def main():
    """Entry point for Formula Input"""
    settings = load_settings()
    setup_logging(settings)
    logger.info(f"Starting with settings: {settings}")

    app = FormulaApp(source=settings.make_suggestion_source())
    app.run()


if __name__ == "__main__":
    main()
