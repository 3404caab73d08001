"""Shared fixtures: a reference invoice line, its ledger row and ledger workbooks."""

from dataclasses import replace
from pathlib import Path

import pytest
from openpyxl import Workbook

from gst_reconciler.model import ExtractedLine, LedgerRow

LEDGER_HEADERS = [
    "VNo",
    "Date",
    "Party Name",
    "Product Name",
    "HSN Number",
    "Unit",
    "Taxable Value",
    "Quantity",
    "CGST",
    "SGST/UTGST",
    "IGST",
    "Free",
]

BASE_LINE = ExtractedLine(
    page_number=1,
    invoice_number="SIR-JH-1-24-25",
    date="4/1/24",
    party_name="Acme",
    product_name="Gold Ornaments 18K Ring",
    hsn_number=711319,
    unit="PCS",
    taxable_value=1000,
    quantity=5,
    cgst=90,
    sgst=90,
    igst=None,
    gross_net_match=True,
)

BASE_ROW = LedgerRow(
    invoice_number="SIR-JH-1-24-25",
    date="4/1/24",
    party_name="Acme",
    product_name="Gold Ornaments 18K Ring",
    hsn_number=711319,
    unit="PCS",
    taxable_value=1000,
    quantity=5,
    cgst=90.00,
    sgst=90.00,
    igst=None,
)


@pytest.fixture
def make_line():
    def _make(**overrides) -> ExtractedLine:
        return replace(BASE_LINE, **overrides)

    return _make


@pytest.fixture
def make_row():
    def _make(**overrides) -> LedgerRow:
        return replace(BASE_ROW, **overrides)

    return _make


def write_ledger_workbook(path: Path, rows: list[list]) -> Path:
    """Create a ledger workbook with the standard headers on the first sheet."""
    workbook = Workbook()
    sheet = workbook.active
    sheet.title = "Ledger"
    sheet.append(LEDGER_HEADERS)
    for row in rows:
        sheet.append(row)
    workbook.save(path)
    return path


@pytest.fixture
def ledger_workbook(tmp_path):
    """Workbook holding the ledger row matching ``BASE_LINE`` plus one other invoice."""
    return write_ledger_workbook(
        tmp_path / "ledger.xlsx",
        [
            [
                "SIR-JH-1-24-25",
                "4/1/24",
                "Acme",
                "Gold Ornaments 18K Ring",
                711319,
                "PCS",
                1000,
                5,
                90.0,
                90.0,
                None,
                None,
            ],
            [
                "SIR-JH-2-24-25",
                "4/2/24",
                "Beta Traders",
                "Silver Chain",
                711311,
                "GMS",
                2500,
                12.5,
                None,
                None,
                450.0,
                None,
            ],
        ],
    )
