from __future__ import annotations

from typing import Any, Literal

from gst_reconciler.normalize import is_empty, normalize, to_number

FieldKind = Literal["string", "number"]

NUMBER_TOLERANCE = 0.001


def fields_equal(a: Any, b: Any, kind: FieldKind = "string") -> bool:
    """Compare two raw field values with the shared equality policy.

    Two absent values are equal, one absent value never is. Numbers are equal
    within ``NUMBER_TOLERANCE``; strings compare trimmed and case-insensitive.
    """

    empty_a = is_empty(a)
    empty_b = is_empty(b)
    if empty_a and empty_b:
        return True
    if empty_a or empty_b:
        return False

    if kind == "number":
        num_a = to_number(a)
        num_b = to_number(b)
        if num_a is None or num_b is None:
            return False  # Not-a-number on either side
        return abs(num_a - num_b) < NUMBER_TOLERANCE

    return normalize(a) == normalize(b)


__all__ = ["fields_equal", "FieldKind", "NUMBER_TOLERANCE"]
