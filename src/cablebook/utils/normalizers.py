"""Cell value normalizers for spreadsheet imports.

This module turns raw cell values (strings, numbers, dates or empty cells)
into canonical scalars. Every function is pure and total: it never raises,
and callers decide whether a ``None`` result is an error.

Examples:
    >>> normalize_text("  NYY   3x2.5 ")
    'NYY 3x2.5'

    >>> normalize_key("  C-1 ")
    'c-1'

    >>> normalize_number("12,5")
    12.5

    >>> normalize_date("2024-03-05T10:00:00")
    '2024-03-05'
"""

import math
import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Optional, Union

_WHITESPACE_RUN = re.compile(r"\s+")
_DECIMAL_LITERAL = re.compile(r"^[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?$")
_ISO_DATE_PREFIX = re.compile(r"^(\d{4})-(\d{2})-(\d{2})")

Number = Union[int, float]


def _render_number(value: Any) -> Optional[str]:
    """Render a numeric cell the way it appears in the sheet."""
    if isinstance(value, float):
        if not math.isfinite(value):
            return None
        if value.is_integer():
            return str(int(value))
        return repr(value)
    if isinstance(value, Decimal):
        try:
            if value == value.to_integral_value():
                return str(int(value))
        except (InvalidOperation, OverflowError, ValueError):
            return None
        return str(value)
    return str(value)


def normalize_text(value: Any) -> Optional[str]:
    """Normalize a cell to a display string.

    Trims the value, collapses internal whitespace runs to a single space and
    maps an empty result to None.

    Args:
        value: Raw cell value

    Returns:
        Normalized string, or None for empty cells
    """
    if value is None:
        return None

    if isinstance(value, datetime):
        text = value.date().isoformat() if value.time() == datetime.min.time() else value.isoformat()
    elif isinstance(value, date):
        text = value.isoformat()
    elif isinstance(value, bool):
        text = str(value)
    elif isinstance(value, (int, float, Decimal)):
        text = _render_number(value)
        if text is None:
            return None
    else:
        text = str(value)

    collapsed = _WHITESPACE_RUN.sub(" ", text).strip()
    return collapsed or None


def normalize_key(value: Any) -> str:
    """Normalize a cell to a case- and whitespace-insensitive matching key.

    Used only for matching; never stored as the display value.

    Args:
        value: Raw cell value

    Returns:
        Lowercased normalized text, or an empty string for empty cells
    """
    text = normalize_text(value)
    if text is None:
        return ""
    return text.lower()


def normalize_number(value: Any) -> Optional[Number]:
    """Normalize a cell to a finite number.

    Numeric cells are accepted directly. String cells are trimmed, the first
    decimal comma is replaced with a period and the result is parsed as a
    plain decimal literal.

    Args:
        value: Raw cell value

    Returns:
        int or float, or None if the value is empty, unparseable or not finite
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, int):
        return value

    if isinstance(value, (float, Decimal)):
        try:
            number = float(value)
        except (OverflowError, ValueError):
            return None
        return number if math.isfinite(number) else None

    if not isinstance(value, str):
        return None

    text = value.strip().replace(",", ".", 1)
    if not _DECIMAL_LITERAL.match(text):
        return None

    try:
        number = float(text)
    except (OverflowError, ValueError):
        return None
    return number if math.isfinite(number) else None


def normalize_date(value: Any) -> Optional[str]:
    """Normalize a cell to an ISO calendar date string (YYYY-MM-DD).

    Date cells are converted directly. String cells must start with a
    ``YYYY-MM-DD`` prefix naming a real calendar date; no locale-specific
    formats are guessed.

    Args:
        value: Raw cell value

    Returns:
        ISO date string, or None if the value is not a recognizable date
    """
    if value is None:
        return None

    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if not isinstance(value, str):
        return None

    match = _ISO_DATE_PREFIX.match(value.strip())
    if not match:
        return None

    try:
        parsed = date(int(match.group(1)), int(match.group(2)), int(match.group(3)))
    except ValueError:
        return None
    return parsed.isoformat()
