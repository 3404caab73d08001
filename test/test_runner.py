import json
from unittest.mock import patch

import pytest
from openpyxl import load_workbook

from gst_reconciler import cli, run_reconciliation
from gst_reconciler.config import Settings, load_settings
from gst_reconciler.errors import ExtractionError, LedgerParseError

SETTINGS = Settings(gemini_api_key="test-key", batch_delay=0)


# --------------------------------------------------------------------
# RUNNER TESTS
# --------------------------------------------------------------------
@patch("gst_reconciler.extraction.extract_invoice_lines")
def test_run_reconciliation_writes_report(mock_extract, tmp_path, ledger_workbook, make_line):
    mock_extract.return_value = [make_line(), make_line(page_number=2, unit="GMS")]
    output = tmp_path / "reports" / "result.json"

    path = run_reconciliation(
        str(ledger_workbook), "invoice.pdf", output_path=str(output), settings=SETTINGS
    )

    assert path == output
    report = json.loads(output.read_text(encoding="utf-8"))
    assert report["status"] == "success"
    assert report["error"] is None
    assert report["total_invoice_lines"] == 2
    assert report["missing_products"][0]["mismatched_fields"] == ["unit"]
    assert mock_extract.call_args.kwargs["settings"] is SETTINGS


@patch("gst_reconciler.excel_reader.read_ledger_rows")
def test_run_reconciliation_error_report(mock_read, tmp_path):
    mock_read.side_effect = LedgerParseError("Unable to read ledger workbook")
    output = tmp_path / "result.json"

    path = run_reconciliation("ledger.xlsx", "invoice.pdf", output_path=str(output))

    report = json.loads(path.read_text(encoding="utf-8"))
    assert report["status"] == "error"
    assert "Unable to read ledger" in report["error"]
    assert report["missing_products"] == []


# --------------------------------------------------------------------
# CLI TESTS
# --------------------------------------------------------------------
@patch("gst_reconciler.cli.load_settings", return_value=SETTINGS)
@patch("gst_reconciler.extraction.extract_invoice_lines")
def test_cli_exports_excel_report(mock_extract, _settings, tmp_path, ledger_workbook, make_line):
    mock_extract.return_value = [make_line(quantity=9)]
    output = tmp_path / "result.json"
    export = tmp_path / "missing.xlsx"

    code = cli.main(
        [
            "--workbook", str(ledger_workbook),
            "--invoice", "invoice.pdf",
            "--output", str(output),
            "--pages", "1,2",
            "--export", "missing",
            "--export-path", str(export),
        ]
    )

    assert code == 0
    assert mock_extract.call_args.kwargs["pages"] == [1, 2]
    sheet = load_workbook(export)["Missing Data"]
    assert sheet.max_row == 2


@patch("gst_reconciler.cli.load_settings", return_value=SETTINGS)
@patch("gst_reconciler.extraction.extract_invoice_lines")
def test_cli_returns_error_code(mock_extract, _settings, tmp_path, ledger_workbook):
    mock_extract.side_effect = ExtractionError("AI call failed")

    code = cli.main(
        [
            "--workbook", str(ledger_workbook),
            "--invoice", "invoice.pdf",
            "--output", str(tmp_path / "result.json"),
        ]
    )
    assert code == 1


def test_cli_rejects_bad_pages():
    with pytest.raises(SystemExit):
        cli.main(["--workbook", "a.xlsx", "--invoice", "b.pdf", "--pages", "x"])


# --------------------------------------------------------------------
# CONFIG TESTS
# --------------------------------------------------------------------
def test_load_settings_from_environment(monkeypatch):
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.setenv("GOOGLE_API_KEY", "google-key")
    monkeypatch.setenv("EXTRACTION_BATCH_SIZE", "4")
    monkeypatch.setenv("EXTRACTION_BATCH_DELAY", "2.5")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    settings = load_settings(use_dotenv=False)

    assert settings.gemini_api_key == "google-key"
    assert settings.batch_size == 4
    assert settings.batch_delay == 2.5
    assert settings.log_level == "DEBUG"
    assert settings.pdf_dpi == 300


def test_load_settings_rejects_invalid_numbers(monkeypatch):
    monkeypatch.setenv("PDF_DPI", "high")
    with pytest.raises(ValueError, match="PDF_DPI"):
        load_settings(use_dotenv=False)
