"""
Formula Input - build arithmetic formulas from numbers, operators and tags

A Textual TUI widget providing:
- Formula line: numbers, operators and named tags with values
- Tag autocomplete while typing letters
- Live evaluation of the formula as it changes
"""

__version__ = "1.0.0"
