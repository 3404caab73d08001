"""Command-line interface for the invoice/ledger reconciler."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from .config import configure_logging, load_settings
from .extraction import parse_pages
from .report import REPORT_TYPES, result_from_payload, write_report_workbook
from .runner import run_reconciliation


def _parse_pages(raw: str) -> list[int]:
    try:
        return parse_pages(raw)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Reconcile a GST ledger workbook against a scanned invoice PDF"
    )
    parser.add_argument(
        "--workbook",
        required=True,
        help="Excel workbook whose first worksheet holds the ledger",
    )
    parser.add_argument("--invoice", required=True, help="Scanned invoice PDF")
    parser.add_argument("--output", help="Optional JSON output path")
    parser.add_argument(
        "--pages", type=_parse_pages, help="Only extract these pages, e.g. 1,2,5"
    )
    parser.add_argument(
        "--export", choices=REPORT_TYPES, help="Also write an Excel report of this type"
    )
    parser.add_argument("--export-path", help="Excel report path (default <type>-report.xlsx)")
    parser.add_argument("--log-level", help="Logging level (default from LOG_LEVEL)")

    args = parser.parse_args(argv)

    settings = load_settings()
    configure_logging(args.log_level or settings.log_level)

    path = run_reconciliation(
        args.workbook,
        args.invoice,
        output_path=args.output,
        pages=args.pages,
        settings=settings,
    )
    print(f"Report written to {path}")

    with path.open("r", encoding="utf-8") as f:
        payload = json.load(f)
    if payload.get("status") != "success":
        print(f"Reconciliation failed: {payload.get('error')}", file=sys.stderr)
        return 1

    if args.export:
        export_path = Path(args.export_path or f"{args.export}-report.xlsx")
        write_report_workbook(result_from_payload(payload), args.export, export_path)
        print(f"Excel report written to {export_path}")
    return 0


if __name__ == "__main__":  # pragma: no cover - manual invocation
    sys.exit(main())
