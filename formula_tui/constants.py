"""
Formula Input - Shared Constants

Central location for constants used across the app.
"""

# =============================================================================
# FORMULA SYMBOLS
# =============================================================================

# Operator items a formula may contain, in display order
OPERATORS = ("+", "-", "*", "/", "^", "(", ")")

# Characters a typed expression may contain to be split into formula items
EXPRESSION_CHARS = "0123456789+-*/^()."

# Power operator in the evaluator's expression text
POWER_TOKEN = "**"

# =============================================================================
# SUGGESTIONS
# =============================================================================

# Tag catalog endpoint (JSON list of {id, name, value, category})
DEFAULT_SUGGESTIONS_URL = "https://652f91320b8d8ddac0b2b62b.mockapi.io/autocomplete"

DEFAULT_STALE_TIME = 5.0     # Seconds a fetched catalog is reused before refetching
DEFAULT_FETCH_TIMEOUT = 5.0  # Seconds before an HTTP fetch gives up

# =============================================================================
# TAG COLORS
# =============================================================================

# Category -> (background, text, border)
CATEGORY_COLORS = {
    "income": ("#dcfce7", "#166534", "#86efac"),
    "expense": ("#fee2e2", "#991b1b", "#fca5a5"),
    "saving": ("#e0f2fe", "#0c4a6e", "#7dd3fc"),
    "investment": ("#fef9c3", "#854d0e", "#fde047"),
    "default": ("#e5edff", "#1e40af", "#bfdbfe"),
}

# Nerd Font icons (https://www.nerdfonts.com/cheat-sheet)
ICON_FORMULA = "󰠞"          # nf-md-function_variant
ICON_CURSOR = "▏"
