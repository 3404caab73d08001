"""Tax-regime classification for a (ledger row, invoice line) pair.

A GST line is taxed either inter-state (IGST) or intra-state (CGST + SGST).
The ledger row decides which regime is authoritative; the invoice line must
carry the same amounts and nothing from the other regime. Lines with no tax
and no taxable value are tax-free and are matched on the ledger's "Free"
quantity marker instead.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from gst_reconciler.model import TAX_FIELDS, ExtractedLine, LedgerRow
from gst_reconciler.normalize import tax_amount


class TaxRegime(str, Enum):
    TAX_FREE = "tax_free"
    IGST = "igst"
    CGST_SGST = "cgst_sgst"
    UNTAXED_ROW = "untaxed_row"  # Ledger row carries no tax amounts


@dataclass(frozen=True, slots=True)
class TaxAssessment:
    regime: TaxRegime
    matching: frozenset[str]
    mismatched: frozenset[str]

    @property
    def matches(self) -> bool:
        """Whether the tax fields allow an exact match."""
        if self.regime is TaxRegime.TAX_FREE:
            return True
        return not self.mismatched


def is_tax_free(line: ExtractedLine) -> bool:
    """True when the line has no tax amounts and no taxable value."""
    return (
        tax_amount(line.cgst) is None
        and tax_amount(line.sgst) is None
        and tax_amount(line.igst) is None
        and tax_amount(line.taxable_value) is None
    )


def assess_tax(line: ExtractedLine, row: LedgerRow) -> TaxAssessment:
    """Score the three tax fields of ``line`` against ``row``."""

    row_amounts = {name: tax_amount(getattr(row, name)) for name in TAX_FIELDS}
    line_amounts = {name: tax_amount(getattr(line, name)) for name in TAX_FIELDS}

    if is_tax_free(line):
        regime = TaxRegime.TAX_FREE
        verdicts = {
            name: row_amounts[name] == line_amounts[name] for name in TAX_FIELDS
        }
    elif row_amounts["igst"] is not None:
        regime = TaxRegime.IGST
        verdicts = {
            "igst": row_amounts["igst"] == line_amounts["igst"],
            "cgst": line_amounts["cgst"] is None,
            "sgst": line_amounts["sgst"] is None,
        }
    elif row_amounts["cgst"] is not None and row_amounts["sgst"] is not None:
        regime = TaxRegime.CGST_SGST
        verdicts = {
            "cgst": row_amounts["cgst"] == line_amounts["cgst"],
            "sgst": row_amounts["sgst"] == line_amounts["sgst"],
            "igst": line_amounts["igst"] is None,
        }
    else:
        regime = TaxRegime.UNTAXED_ROW
        verdicts = {name: False for name in TAX_FIELDS}

    return TaxAssessment(
        regime=regime,
        matching=frozenset(name for name, ok in verdicts.items() if ok),
        mismatched=frozenset(name for name, ok in verdicts.items() if not ok),
    )


__all__ = ["TaxRegime", "TaxAssessment", "is_tax_free", "assess_tax"]
