"""Helpers for ordering author-assigned step keys."""

import re

# leading decimal number, the way spreadsheet authors write "1", "2.1" or "3,5"
_LEADING_NUMBER = re.compile(r"^\s*([+-]?(?:\d+(?:\.\d*)?|\.\d+))")


def numeric_key(key: str) -> float | None:
    """Return the numeric interpretation of a step key, or None.

    A comma decimal separator is normalized to a dot. Only the leading
    numeric part is read, so "2.1a" reads as 2.1.
    """
    match = _LEADING_NUMBER.match(str(key).replace(",", ".", 1))
    if not match:
        return None
    return float(match.group(1))


def natural_sort_key(key: str) -> tuple:
    """Sort key placing numeric step keys first, in numeric order."""
    number = numeric_key(key)
    if number is None:
        return (1, 0.0, key)
    return (0, number, key)
