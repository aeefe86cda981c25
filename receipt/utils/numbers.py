"""
Lenient numeric helpers shared by the tree builder and the reconciliation.

Inputs come straight from form fields and JSON payloads, so nothing here
raises: unusable values become NaN (or 0 / None where documented).
"""

import math
import re
from typing import Any, Optional, Union


Number = Union[int, float]

_NUMERIC_PREFIX = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")


def round2(value: float) -> float:
    """Round half-up to cents."""
    if not math.isfinite(value):
        return value
    return math.floor(value * 100 + 0.5) / 100


def format2(value: float) -> str:
    """Format a value with two decimals (as stored in allocation rows)."""
    return f"{round2(value):.2f}"


def parse_decimal(value: Any) -> float:
    """
    Parse a comma-or-dot decimal leniently.

    Only the first comma is treated as the decimal separator and the longest
    numeric prefix wins, so "12,5 kg" parses as 12.5. Thousands separators are
    not understood. Empty, unparseable and non-finite input gives NaN.
    """
    if value is None or isinstance(value, bool):
        return math.nan

    if isinstance(value, (int, float)):
        number = float(value)
        return number if math.isfinite(number) else math.nan

    text = str(value).strip()
    if not text:
        return math.nan

    match = _NUMERIC_PREFIX.match(text.replace(",", ".", 1))
    if not match:
        return math.nan

    number = float(match.group(0))
    return number if math.isfinite(number) else math.nan


def parse_amount(value: Any) -> float:
    """Parse a decimal for summing: anything unusable counts as 0."""
    number = parse_decimal(value)
    return number if math.isfinite(number) else 0.0


def coerce_id(value: Any) -> Optional[Number]:
    """
    Coerce an identifier to a number.

    Returns None when the value does not denote a finite number. Blank strings
    coerce to 0, which callers treat as "no identifier" along with None.
    """
    if value is None:
        return None

    if isinstance(value, bool):
        return int(value)

    if isinstance(value, int):
        return value

    if isinstance(value, float):
        if not math.isfinite(value):
            return None
        return int(value) if value.is_integer() else value

    if isinstance(value, str):
        text = value.strip()
        if not text:
            return 0
        if "_" in text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
        if not math.isfinite(number):
            return None
        return int(number) if number.is_integer() else number

    return None
