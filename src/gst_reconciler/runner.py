from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Sequence

from gst_reconciler import excel_reader, extraction
from gst_reconciler.config import Settings
from gst_reconciler.model import ReconciliationResult
from gst_reconciler.reconciliation import reconcile
from gst_reconciler.report import build_error_payload, write_report_to_json

DEFAULT_REPORT_NAME = "reconciliation_report.json"

logger = logging.getLogger(__name__)


def reconcile_files(
    workbook_path: str | Path,
    invoice_path: str | Path,
    *,
    pages: Sequence[int] | None = None,
    settings: Settings | None = None,
) -> ReconciliationResult:
    """Read the ledger, extract the invoice and reconcile them.

    Collaborator failures propagate to the caller.
    """

    # 1. Read ledger rows from Excel
    rows = excel_reader.read_ledger_rows(Path(workbook_path))

    # 2. Extract invoice lines from the PDF
    lines = extraction.extract_invoice_lines(
        Path(invoice_path), pages=pages, settings=settings
    )

    # 3. Compare datasets
    return reconcile(lines, rows)


def run_reconciliation(
    workbook_path: str,
    invoice_path: str,
    *,
    output_path: str | None = None,
    pages: Sequence[int] | None = None,
    settings: Settings | None = None,
) -> Path:
    """Reconcile the ledger against the invoice and write a JSON report.

    On failure an error report is written instead; the path is returned either way.
    """

    report_path = Path(output_path) if output_path else Path(DEFAULT_REPORT_NAME)

    try:
        result = reconcile_files(
            workbook_path, invoice_path, pages=pages, settings=settings
        )
        write_report_to_json(result, report_path)
    except Exception as exc:
        logger.exception("Reconciliation failed")
        report_path.parent.mkdir(parents=True, exist_ok=True)
        with report_path.open("w", encoding="utf-8") as f:
            json.dump(build_error_payload(str(exc)), f, indent=2)

    return report_path


__all__ = ["reconcile_files", "run_reconciliation", "DEFAULT_REPORT_NAME"]
