"""Exception types raised by the reconciler's external collaborators.

The matching core never raises for malformed values; these errors describe
whole-request failures (unreadable spreadsheet, failed AI extraction).
"""

from __future__ import annotations


class ReconcilerError(Exception):
    """Base class for reconciliation request failures."""


class ExtractionError(ReconcilerError):
    """Invoice extraction failed (rasterisation, AI call or malformed response)."""


class LedgerParseError(ReconcilerError, ValueError):
    """The ledger workbook could not be read."""


__all__ = ["ReconcilerError", "ExtractionError", "LedgerParseError"]
