from __future__ import annotations

import io
import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Literal, Mapping

from openpyxl import Workbook
from openpyxl.styles import Alignment, Font, PatternFill

from gst_reconciler.model import (
    CharMatch,
    ExtractedLine,
    MissingProduct,
    NameMismatch,
    ReconciliationResult,
)

ReportType = Literal["parsed", "matched", "missing"]
REPORT_TYPES: tuple[str, ...] = ("parsed", "matched", "missing")

SHEET_NAMES: Dict[str, str] = {
    "parsed": "Parsed Invoice Data",
    "matched": "Matched Data",
    "missing": "Missing Data",
}

MISMATCH_FILL = PatternFill(fill_type="solid", fgColor="FFC7CE")  # Light red
MISMATCH_FONT = Font(color="9C0006")  # Dark red
MATCH_FILL = PatternFill(fill_type="solid", fgColor="C6EFCE")  # Light green
MATCH_FONT = Font(color="006100")  # Dark green

# (header, mismatch field key, value getter)
REPORT_COLUMNS: List[tuple[str, str | None, Callable[[ExtractedLine], Any]]] = [
    ("Page Number", None, lambda line: line.page_number),
    ("CGST", "cgst", lambda line: line.cgst),
    ("SGST", "sgst", lambda line: line.sgst),
    ("IGST", "igst", lambda line: line.igst),
    ("VNo", "invoice_number", lambda line: line.invoice_number),
    ("Date", "date", lambda line: line.date),
    ("Party Name", "party_name", lambda line: line.party_name),
    ("Product Name", None, lambda line: line.product_name),
    ("HSN Number", "hsn_number", lambda line: line.hsn_number),
    ("Unit", "unit", lambda line: line.unit),
    ("Taxable Value", "taxable_value", lambda line: line.taxable_value),
    ("Quantity", "quantity", lambda line: line.quantity),
    (
        "Gross/Net Weight",
        "gross_net",
        lambda line: "Match" if line.gross_net_match else "Mismatch",
    ),
]


def iso_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


# --------------------------------------------------------------------
# JSON payload
# --------------------------------------------------------------------
def _serialise_missing(item: MissingProduct) -> Dict[str, Any]:
    payload = item.line.to_dict()
    payload["mismatched_fields"] = list(item.mismatched_fields)
    payload["candidate_count"] = item.candidate_count
    return payload


def _serialise_name_mismatch(item: NameMismatch) -> Dict[str, Any]:
    return {
        "page_number": item.page_number,
        "invoice_number": item.invoice_number,
        "invoice_product_name": item.invoice_product_name,
        "ledger_product_name": item.ledger_product_name,
        "comparison": [
            {"character": c.character, "matches": c.matches} for c in item.mask
        ],
    }


def build_report_payload(result: ReconciliationResult) -> Dict[str, Any]:
    """Build the JSON-serialisable reconciliation payload."""

    return {
        "status": "success",
        "timestamp": iso_timestamp(),
        "total_invoice_lines": result.total_invoice_lines,
        "total_ledger_rows": result.total_ledger_rows,
        "missing_products": [_serialise_missing(m) for m in result.missing_products],
        "name_mismatches": [
            _serialise_name_mismatch(n) for n in result.name_mismatches
        ],
        "all_lines": [line.to_dict() for line in result.all_lines],
        "error": None,
    }


def build_error_payload(message: str) -> Dict[str, Any]:
    return {
        "status": "error",
        "timestamp": iso_timestamp(),
        "total_invoice_lines": 0,
        "total_ledger_rows": 0,
        "missing_products": [],
        "name_mismatches": [],
        "all_lines": [],
        "error": message,
    }


def _payload_items(payload: Mapping[str, Any], key: str) -> List[Mapping[str, Any]]:
    items = payload.get(key) or []
    if not isinstance(items, list):
        raise ValueError(f"{key} must be a JSON array")
    for item in items:
        if not isinstance(item, Mapping):
            raise ValueError(f"{key} entries must be JSON objects")
    return items


def result_from_payload(payload: Mapping[str, Any]) -> ReconciliationResult:
    """Rebuild a :class:`ReconciliationResult` from :func:`build_report_payload` output."""

    if not isinstance(payload, Mapping):
        raise ValueError("Report payload must be a JSON object")

    all_lines = tuple(
        ExtractedLine.from_mapping(item) for item in _payload_items(payload, "all_lines")
    )
    missing = tuple(
        MissingProduct(
            line=ExtractedLine.from_mapping(item),
            mismatched_fields=tuple(item.get("mismatched_fields") or ()),
            candidate_count=int(item.get("candidate_count") or 0),
        )
        for item in _payload_items(payload, "missing_products")
    )
    name_mismatches = tuple(
        NameMismatch(
            page_number=int(item.get("page_number") or 0),
            invoice_number=item.get("invoice_number"),
            invoice_product_name=item.get("invoice_product_name"),
            ledger_product_name=item.get("ledger_product_name"),
            mask=tuple(
                CharMatch(character=str(c["character"]), matches=bool(c["matches"]))
                for c in item.get("comparison") or []
            ),
        )
        for item in _payload_items(payload, "name_mismatches")
    )
    return ReconciliationResult(
        total_invoice_lines=int(payload.get("total_invoice_lines") or len(all_lines)),
        total_ledger_rows=int(payload.get("total_ledger_rows") or 0),
        missing_products=missing,
        name_mismatches=name_mismatches,
        all_lines=all_lines,
    )


def write_report_to_json(result: ReconciliationResult, output_path: Path) -> Path:
    payload = build_report_payload(result)

    output_path.parent.mkdir(parents=True, exist_ok=True)
    with output_path.open("w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2)

    return output_path


# --------------------------------------------------------------------
# Excel reports
# --------------------------------------------------------------------
def _style_header(row) -> None:
    for cell in row:
        cell.font = Font(bold=True)
        cell.alignment = Alignment(horizontal="center")


def _paint(cell, ok: bool) -> None:
    cell.fill = MATCH_FILL if ok else MISMATCH_FILL
    cell.font = MATCH_FONT if ok else MISMATCH_FONT


def _cell_value(value: Any) -> Any:
    return "" if value is None else value


def build_report_workbook(result: ReconciliationResult, report_type: str) -> Workbook:
    """Return a styled workbook for the ``parsed``, ``matched`` or ``missing`` report."""

    if report_type not in REPORT_TYPES:
        raise ValueError(f"Invalid report type: {report_type!r}")

    workbook = Workbook()
    sheet = workbook.active
    sheet.title = SHEET_NAMES[report_type]

    headers = [header for header, _, _ in REPORT_COLUMNS]
    sheet.append(headers)
    _style_header(sheet[1])

    if report_type == "missing":
        for item in result.missing_products:
            sheet.append([_cell_value(get(item.line)) for _, _, get in REPORT_COLUMNS])
            data_row = sheet[sheet.max_row]
            for cell, (_, key, _) in zip(data_row, REPORT_COLUMNS):
                if key is not None and key in item.mismatched_fields:
                    _paint(cell, False)
                elif key == "gross_net":
                    _paint(cell, cell.value == "Match")
                else:
                    _paint(cell, True)
    else:
        lines = result.all_lines if report_type == "parsed" else result.matched_lines
        for line in lines:
            sheet.append([_cell_value(get(line)) for _, _, get in REPORT_COLUMNS])

    for index in range(1, len(headers) + 1):
        sheet.column_dimensions[sheet.cell(row=1, column=index).column_letter].width = 15

    summary = workbook.create_sheet("Summary")
    summary.append(["Summary", "Value"])
    _style_header(summary[1])
    summary.append(["Total Products in Invoice", result.total_invoice_lines])
    summary.append(["Total Products in Excel", result.total_ledger_rows])
    summary.append(["Missing Products", len(result.missing_products)])
    summary.column_dimensions["A"].width = 30
    summary.column_dimensions["B"].width = 30

    return workbook


def write_report_workbook(
    result: ReconciliationResult, report_type: str, output_path: Path
) -> Path:
    workbook = build_report_workbook(result, report_type)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    workbook.save(output_path)
    return output_path


def workbook_bytes(result: ReconciliationResult, report_type: str) -> bytes:
    buffer = io.BytesIO()
    build_report_workbook(result, report_type).save(buffer)
    return buffer.getvalue()


__all__ = [
    "ReportType",
    "REPORT_TYPES",
    "iso_timestamp",
    "build_report_payload",
    "build_error_payload",
    "result_from_payload",
    "write_report_to_json",
    "build_report_workbook",
    "write_report_workbook",
    "workbook_bytes",
]
