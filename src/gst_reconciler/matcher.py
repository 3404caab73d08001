"""Locate the ledger row corresponding to an extracted invoice line.

Rows are scanned linearly in ledger order; ledgers hold hundreds of rows at
most. Every comparison goes through :func:`fields_equal` and every tax
decision through :func:`assess_tax`.
"""

from __future__ import annotations

from typing import Sequence

from gst_reconciler.compare import fields_equal
from gst_reconciler.model import (
    CRITICAL_FIELDS,
    BestPartial,
    Exact,
    ExtractedLine,
    LedgerRow,
    MatchResult,
    NoCandidate,
)
from gst_reconciler.normalize import is_empty, to_number
from gst_reconciler.tax import assess_tax, is_tax_free

# Fields compared as plain strings in the exact-match predicate
_STRING_FIELDS = ("party_name", "hsn_number", "unit", "taxable_value")


def _same_invoice(line: ExtractedLine, row: LedgerRow) -> bool:
    return fields_equal(row.invoice_number, line.invoice_number, "string")


def _field_equal(line: ExtractedLine, row: LedgerRow, name: str, tax_free: bool) -> bool:
    if tax_free and name == "taxable_value":
        # Zero and blank taxable values both mean "no taxable value" here
        return is_empty(row.taxable_value) or to_number(row.taxable_value) == 0
    return fields_equal(getattr(row, name), getattr(line, name), "string")


def is_exact_match(line: ExtractedLine, row: LedgerRow) -> bool:
    """All critical fields agree and the invoice's weights reconcile."""
    if not line.gross_net_match:
        return False
    if not assess_tax(line, row).matches:
        return False
    if not _same_invoice(line, row):
        return False
    tax_free = is_tax_free(line)
    for name in _STRING_FIELDS:
        if not _field_equal(line, row, name, tax_free):
            return False

    if tax_free:
        # Tax-free lines are keyed on the ledger's "Free" quantity marker
        return fields_equal(row.free_quantity_marker, line.quantity, "string")
    return fields_equal(row.quantity, line.quantity, "number")


def find_exact_match(
    line: ExtractedLine, rows: Sequence[LedgerRow]
) -> LedgerRow | None:
    """Return the first row (ledger order) that exactly matches ``line``."""
    for row in rows:
        if is_exact_match(line, row):
            return row
    return None


def score_candidate(
    line: ExtractedLine, row: LedgerRow
) -> tuple[frozenset[str], frozenset[str]]:
    """Return ``(matching, mismatched)`` field sets for a same-invoice row."""

    tax = assess_tax(line, row)
    matching = set(tax.matching)
    mismatched = set(tax.mismatched)

    def record(name: str, ok: bool) -> None:
        (matching if ok else mismatched).add(name)

    tax_free = is_tax_free(line)
    # Tax-free lines skip quantity scoring entirely
    if not tax_free:
        record("quantity", fields_equal(row.quantity, line.quantity, "number"))

    for name in _STRING_FIELDS:
        record(name, _field_equal(line, row, name, tax_free))

    record("gross_net", line.gross_net_match)

    return frozenset(matching), frozenset(mismatched)


def find_best_partial(
    line: ExtractedLine, rows: Sequence[LedgerRow]
) -> BestPartial | NoCandidate:
    """Pick the same-invoice row with the most matching fields.

    Ties keep the first row in ledger order.
    """

    candidates = [row for row in rows if _same_invoice(line, row)]
    if not candidates:
        return NoCandidate(line=line)

    best: BestPartial | None = None
    for row in candidates:
        matching, mismatched = score_candidate(line, row)
        if best is None or len(matching) > len(best.matching_fields):
            best = BestPartial(
                line=line,
                row=row,
                matching_fields=matching,
                mismatched_fields=mismatched,
                candidate_count=len(candidates),
            )
    return best


def match_line(line: ExtractedLine, rows: Sequence[LedgerRow]) -> MatchResult:
    """Return exactly one match outcome for ``line``."""
    row = find_exact_match(line, rows)
    if row is not None:
        return Exact(line=line, row=row)
    return find_best_partial(line, rows)


def is_reportable(result: MatchResult) -> bool:
    """True when the line must appear in the missing-products output."""
    if isinstance(result, Exact):
        return False
    return bool(result.mismatched_fields & CRITICAL_FIELDS)


__all__ = [
    "is_exact_match",
    "find_exact_match",
    "score_candidate",
    "find_best_partial",
    "match_line",
    "is_reportable",
]
