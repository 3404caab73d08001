"""Ledger extraction from an Excel workbook.

This module reads the first worksheet of the ledger workbook using
``openpyxl`` and converts each data row into a :class:`LedgerRow` keyed by the
spreadsheet headers (see ``LEDGER_COLUMNS``).
"""

from __future__ import annotations

import logging
import zipfile
from pathlib import Path  # Filesystem path management
from typing import List  # Concrete list type for return value

from openpyxl import load_workbook  # Excel file loader
from openpyxl.utils.exceptions import InvalidFileException

from gst_reconciler.errors import LedgerParseError
from gst_reconciler.model import LedgerRow  # Domain model used as output
from gst_reconciler.normalize import is_empty

logger = logging.getLogger(__name__)


def read_ledger_rows(workbook_path: Path) -> List[LedgerRow]:
    """Return ledger rows parsed from the first worksheet of the workbook.

    Raises :class:`FileNotFoundError` if the workbook cannot be located and
    :class:`LedgerParseError` if it cannot be opened as an ``.xlsx`` file.
    """

    workbook_path = Path(workbook_path)  # Ensure we have a Path instance
    if not workbook_path.exists():  # Validate the file exists
        raise FileNotFoundError(f"Workbook not found: {workbook_path}")

    try:
        # Read-only mode for performance; cell values only (no formulas)
        workbook = load_workbook(filename=workbook_path, read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError) as exc:
        raise LedgerParseError(f"Unable to read ledger workbook {workbook_path}: {exc}") from exc

    try:
        if not workbook.sheetnames:
            return []
        sheet = workbook[workbook.sheetnames[0]]  # Ledger lives on the first sheet

        rows = sheet.iter_rows(values_only=True)  # Iterate rows as tuples of raw values
        headers_row = next(rows, None)  # First row should contain column headers
        if headers_row is None:  # Empty sheet edge case
            return []

        headers = [
            str(header).strip() if header is not None else "" for header in headers_row
        ]

        ledger: List[LedgerRow] = []
        for row_number, row in enumerate(rows, start=2):
            if all(is_empty(value) for value in row):
                continue  # Skip fully blank rows

            record = {
                header: value
                for header, value in zip(headers, row)
                if header  # Ignore unnamed columns
            }
            ledger.append(LedgerRow.from_mapping(record, row_number=row_number))
    finally:
        workbook.close()  # Always close the workbook handle

    logger.debug("Read %d ledger rows from %s", len(ledger), workbook_path)
    return ledger


__all__ = ["read_ledger_rows"]
