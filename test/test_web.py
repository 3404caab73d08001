"""Tests for the Flask upload/compare/download endpoints.

The AI extraction collaborator is mocked; the ledger is a real workbook.
"""

import io
from unittest.mock import patch

import pytest
from openpyxl import load_workbook

from gst_reconciler.config import Settings
from gst_reconciler.errors import ExtractionError
from gst_reconciler.web import create_app


@pytest.fixture
def client():
    app = create_app(Settings(gemini_api_key="test-key", batch_delay=0))
    app.testing = True
    return app.test_client()


@pytest.fixture
def upload_files(ledger_workbook):
    def _files():
        return {
            "excelFile": (io.BytesIO(ledger_workbook.read_bytes()), "ledger.xlsx"),
            "docsFile": (io.BytesIO(b"%PDF-1.4 fake"), "invoice.pdf"),
        }

    return _files


class TestCompareEndpoint:
    @patch("gst_reconciler.extraction.extract_invoice_lines")
    def test_compare_success(self, mock_extract, client, upload_files, make_line):
        mock_extract.return_value = [make_line(), make_line(page_number=2, quantity=6)]

        response = client.post(
            "/api/comparison/compare",
            data=upload_files(),
            content_type="multipart/form-data",
        )

        assert response.status_code == 200
        body = response.get_json()
        assert body["total_invoice_lines"] == 2
        assert body["total_ledger_rows"] == 2
        assert [m["page_number"] for m in body["missing_products"]] == [2]
        assert body["missing_products"][0]["mismatched_fields"] == ["quantity"]

    @patch("gst_reconciler.extraction.extract_invoice_lines")
    def test_compare_passes_selected_pages(self, mock_extract, client, upload_files):
        mock_extract.return_value = []
        data = dict(upload_files(), pages="1,3")

        response = client.post(
            "/api/comparison/compare", data=data, content_type="multipart/form-data"
        )

        assert response.status_code == 200
        assert mock_extract.call_args.kwargs["pages"] == [1, 3]

    @pytest.mark.parametrize("pages", ["0", "1,-2", "one"])
    def test_compare_rejects_invalid_pages(self, client, upload_files, pages):
        data = dict(upload_files(), pages=pages)
        response = client.post(
            "/api/comparison/compare", data=data, content_type="multipart/form-data"
        )
        assert response.status_code == 400

    def test_compare_requires_both_files(self, client, upload_files):
        data = upload_files()
        del data["docsFile"]
        response = client.post(
            "/api/comparison/compare", data=data, content_type="multipart/form-data"
        )
        assert response.status_code == 400
        assert response.get_json()["message"] == "Please upload both files"

    def test_compare_rejects_wrong_extension(self, client, upload_files):
        data = upload_files()
        data["docsFile"] = (io.BytesIO(b"text"), "invoice.txt")
        response = client.post(
            "/api/comparison/compare", data=data, content_type="multipart/form-data"
        )
        assert response.status_code == 400

    @patch("gst_reconciler.extraction.extract_invoice_lines")
    def test_compare_extraction_failure(self, mock_extract, client, upload_files):
        mock_extract.side_effect = ExtractionError("poppler not installed")

        response = client.post(
            "/api/comparison/compare",
            data=upload_files(),
            content_type="multipart/form-data",
        )

        assert response.status_code == 500
        body = response.get_json()
        assert body["message"] == "Error processing invoice PDF"
        assert "poppler" in body["error"]
        assert "detail" not in body

    def test_compare_unreadable_ledger(self, client):
        data = {
            "excelFile": (io.BytesIO(b"not a workbook"), "ledger.xlsx"),
            "docsFile": (io.BytesIO(b"%PDF-1.4"), "invoice.pdf"),
        }
        response = client.post(
            "/api/comparison/compare", data=data, content_type="multipart/form-data"
        )
        assert response.status_code == 500
        assert response.get_json()["message"] == "Error processing Excel file"


class TestPageCountEndpoint:
    @patch("gst_reconciler.extraction.count_pages", return_value=10)
    def test_page_count(self, mock_count, client):
        response = client.post(
            "/api/comparison/get-page-count",
            data={"pdfFile": (io.BytesIO(b"%PDF-1.4"), "invoice.pdf")},
            content_type="multipart/form-data",
        )
        assert response.status_code == 200
        assert response.get_json() == {"pageCount": 10, "estimatedSeconds": 17.0}

    def test_page_count_requires_file(self, client):
        response = client.post("/api/comparison/get-page-count")
        assert response.status_code == 400


class TestDownloadEndpoint:
    @patch("gst_reconciler.extraction.extract_invoice_lines")
    def test_download_missing_report(self, mock_extract, client, upload_files, make_line):
        mock_extract.return_value = [make_line(quantity=6)]
        payload = client.post(
            "/api/comparison/compare",
            data=upload_files(),
            content_type="multipart/form-data",
        ).get_json()

        response = client.post("/api/comparison/download/missing", json={"data": payload})

        assert response.status_code == 200
        assert "missing-report.xlsx" in response.headers["Content-Disposition"]
        workbook = load_workbook(io.BytesIO(response.data))
        assert workbook.sheetnames == ["Missing Data", "Summary"]
        assert workbook["Missing Data"].max_row == 2

    def test_download_invalid_type(self, client):
        response = client.post("/api/comparison/download/everything", json={"data": {}})
        assert response.status_code == 400

    def test_download_invalid_data(self, client):
        response = client.post("/api/comparison/download/parsed", json={"data": [1]})
        assert response.status_code == 400

    def test_download_rejects_non_object_entries(self, client):
        response = client.post(
            "/api/comparison/download/parsed",
            json={"data": {"name_mismatches": ["x"]}},
        )
        assert response.status_code == 400
        assert response.get_json()["message"] == "Invalid report data"
