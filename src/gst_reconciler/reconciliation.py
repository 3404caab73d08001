from __future__ import annotations

import logging
from typing import Dict, Iterable

from gst_reconciler.matcher import is_reportable, match_line
from gst_reconciler.model import (
    Exact,
    ExtractedLine,
    LedgerRow,
    MissingProduct,
    NameMismatch,
    ReconciliationResult,
    ordered_fields,
)
from gst_reconciler.name_diff import diff_product_names

logger = logging.getLogger(__name__)


def reconcile(
    lines: Iterable[ExtractedLine],
    rows: Iterable[LedgerRow],
) -> ReconciliationResult:
    """Reconcile extracted invoice lines against ledger rows.

    Pure: inputs are not mutated and no state is kept between calls.
    """

    all_lines = tuple(lines)
    ledger = tuple(rows)

    missing: list[MissingProduct] = []
    # First product-name mismatch per page wins
    name_mismatches: Dict[int, NameMismatch] = {}

    for line in all_lines:
        result = match_line(line, ledger)

        if isinstance(result, Exact):
            # The exact-match row is also the row matching on everything but the name
            diff = diff_product_names(line.product_name, result.row.product_name)
            if diff.has_mismatch and line.page_number not in name_mismatches:
                name_mismatches[line.page_number] = NameMismatch(
                    page_number=line.page_number,
                    invoice_number=line.invoice_number,
                    invoice_product_name=line.product_name,
                    ledger_product_name=(
                        None
                        if result.row.product_name is None
                        else str(result.row.product_name)
                    ),
                    mask=diff.mask,
                )
            continue

        if is_reportable(result):
            missing.append(
                MissingProduct(
                    line=line,
                    mismatched_fields=ordered_fields(result.mismatched_fields),
                    candidate_count=result.candidate_count,
                )
            )

    logger.info(
        "Reconciled %d invoice lines against %d ledger rows: %d missing, %d name mismatches",
        len(all_lines),
        len(ledger),
        len(missing),
        len(name_mismatches),
    )

    return ReconciliationResult(
        total_invoice_lines=len(all_lines),
        total_ledger_rows=len(ledger),
        missing_products=tuple(missing),
        name_mismatches=tuple(name_mismatches.values()),
        all_lines=all_lines,
    )


__all__ = ["reconcile"]
