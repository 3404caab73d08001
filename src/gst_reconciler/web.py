"""Flask HTTP surface: upload a ledger and an invoice, reconcile, download reports."""

from __future__ import annotations

import io
import os
import tempfile
import traceback
from pathlib import Path

from flask import Blueprint, Flask, current_app, jsonify, request, send_file
from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename

from gst_reconciler import excel_reader, extraction
from gst_reconciler.config import Settings, configure_logging, load_settings
from gst_reconciler.errors import ExtractionError, LedgerParseError
from gst_reconciler.reconciliation import reconcile
from gst_reconciler.report import (
    REPORT_TYPES,
    build_report_payload,
    result_from_payload,
    workbook_bytes,
)

EXCEL_EXTENSIONS = {".xlsx", ".xlsm"}
PDF_EXTENSIONS = {".pdf"}
SECONDS_PER_PAGE = 1.7  # Observed average AI processing time per page
XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

comparison = Blueprint("comparison", __name__, url_prefix="/api/comparison")


class UploadError(ValueError):
    pass


def _settings() -> Settings:
    return current_app.config["RECONCILER_SETTINGS"]


def _save_upload(upload: FileStorage | None, allowed: set[str], directory: str) -> Path:
    if upload is None or not upload.filename:
        raise UploadError("Please upload both files")
    filename = secure_filename(upload.filename)
    if Path(filename).suffix.lower() not in allowed:
        raise UploadError(
            f"Invalid file type for {upload.filename!r}; expected {', '.join(sorted(allowed))}"
        )
    path = Path(directory) / filename
    upload.save(path)
    return path


def _error(message: str, exc: Exception, status: int = 500):
    current_app.logger.error("%s: %s", message, exc)
    body = {"message": message, "error": str(exc)}
    if current_app.debug:
        body["detail"] = traceback.format_exc()
    return jsonify(body), status


def _parse_pages(raw: str | None) -> list[int] | None:
    if not raw:
        return None
    try:
        return extraction.parse_pages(raw)
    except ValueError as exc:
        raise UploadError(str(exc)) from exc


@comparison.post("/get-page-count")
def get_page_count():
    with tempfile.TemporaryDirectory() as tmp:
        try:
            pdf_path = _save_upload(request.files.get("pdfFile"), PDF_EXTENSIONS, tmp)
        except UploadError:
            return jsonify({"message": "Please upload a PDF file"}), 400
        try:
            page_count = extraction.count_pages(pdf_path)
        except ExtractionError as exc:
            return _error("Error processing PDF file", exc)

    return jsonify(
        {
            "pageCount": page_count,
            "estimatedSeconds": round(page_count * SECONDS_PER_PAGE, 1),
        }
    )


@comparison.post("/compare")
def compare():
    settings = _settings()
    with tempfile.TemporaryDirectory() as tmp:
        try:
            excel_path = _save_upload(request.files.get("excelFile"), EXCEL_EXTENSIONS, tmp)
            pdf_path = _save_upload(request.files.get("docsFile"), PDF_EXTENSIONS, tmp)
            pages = _parse_pages(request.form.get("pages"))
        except UploadError as exc:
            return jsonify({"message": str(exc)}), 400

        try:
            rows = excel_reader.read_ledger_rows(excel_path)
        except (LedgerParseError, FileNotFoundError) as exc:
            return _error("Error processing Excel file", exc)

        try:
            lines = extraction.extract_invoice_lines(pdf_path, pages=pages, settings=settings)
        except ExtractionError as exc:
            return _error("Error processing invoice PDF", exc)

    result = reconcile(lines, rows)
    return jsonify(build_report_payload(result))


@comparison.post("/download/<report_type>")
def download(report_type: str):
    if report_type not in REPORT_TYPES:
        return jsonify({"message": "Invalid report type"}), 400

    body = request.get_json(silent=True) or {}
    try:
        result = result_from_payload(body.get("data"))
    except (ValueError, TypeError, KeyError) as exc:
        return jsonify({"message": "Invalid report data", "error": str(exc)}), 400

    content = workbook_bytes(result, report_type)
    return send_file(
        io.BytesIO(content),
        mimetype=XLSX_MIMETYPE,
        as_attachment=True,
        download_name=f"{report_type}-report.xlsx",
    )


def create_app(settings: Settings | None = None) -> Flask:
    settings = settings or load_settings()
    app = Flask(__name__)
    app.config["RECONCILER_SETTINGS"] = settings
    app.config["MAX_CONTENT_LENGTH"] = settings.max_upload_mb * 1024 * 1024
    app.register_blueprint(comparison)
    return app


def main() -> None:  # pragma: no cover - manual invocation
    settings = load_settings()
    configure_logging(settings.log_level)
    app = create_app(settings)
    app.run(host="0.0.0.0", port=int(os.environ.get("PORT", 5000)))


if __name__ == "__main__":  # pragma: no cover
    main()
