"""Value canonicalisation shared by every field comparison.

Spreadsheet cells and AI-extracted values arrive as a mix of ``None``, strings,
ints and floats. Everything is funnelled through these helpers before it is
compared so that ``1000``, ``1000.0`` and ``" 1000 "`` are treated alike.
"""

from __future__ import annotations

import math
import re
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

_WHITESPACE = re.compile(r"\s+")
_CENT = Decimal("0.01")


def is_empty(value: Any) -> bool:
    """Return True for ``None``, blank strings and NaN (all mean "absent")."""
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, float) and math.isnan(value):
        return True
    return False


def normalize(value: Any) -> str:
    """Canonical comparison text: trimmed, lowercased, integral floats as ints."""
    if is_empty(value):
        return ""
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, float) and value.is_integer():
        return str(int(value))  # 711319.0 -> "711319"
    return str(value).strip().lower()


def strip_whitespace(value: Any) -> str:
    """Remove every whitespace character, not just the ends."""
    if value is None:
        return ""
    return _WHITESPACE.sub("", str(value))


def to_number(value: Any) -> float | None:
    """Parse ``value`` as a float; ``None`` when absent or not numeric."""
    if is_empty(value) or isinstance(value, bool):
        return None
    try:
        number = float(str(value).strip()) if isinstance(value, str) else float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number):
        return None
    return number


def round_currency(number: float) -> float:
    """Round a tax amount to two decimal places, halves away from zero.

    The exact binary value is rounded, so 10.125 becomes 10.13 while 1.005
    (stored as 1.00499...) becomes 1.0.
    """
    return float(Decimal(float(number)).quantize(_CENT, rounding=ROUND_HALF_UP))


def tax_amount(value: Any) -> float | None:
    """Rounded tax amount, or ``None`` when absent, unparseable or zero."""
    number = to_number(value)
    if number is None or not math.isfinite(number):
        return None
    rounded = round_currency(number)
    if rounded == 0:
        return None
    return rounded


__all__ = [
    "is_empty",
    "normalize",
    "strip_whitespace",
    "to_number",
    "round_currency",
    "tax_amount",
]
