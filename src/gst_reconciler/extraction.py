"""Invoice extraction through the Gemini vision model.

Each page of the scanned invoice PDF is rasterised with ``pdf2image`` (poppler)
and sent to Gemini via the ``google-genai`` client with a fixed extraction
prompt. Pages are processed in concurrent batches with a pause between
batches to respect the API rate limit. A page that fails contributes no lines;
failures that affect the whole document raise :class:`ExtractionError`.
"""

from __future__ import annotations

import json
import logging
import re
import tempfile
import time
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any, List, Mapping, Sequence

from google import genai
from google.genai import types
from pdf2image import convert_from_path, pdfinfo_from_path
from pdf2image.exceptions import (
    PDFInfoNotInstalledError,
    PDFPageCountError,
    PDFPopplerTimeoutError,
    PDFSyntaxError,
)

from gst_reconciler.config import Settings, load_settings
from gst_reconciler.errors import ExtractionError
from gst_reconciler.model import ExtractedLine

logger = logging.getLogger(__name__)

_PDF_ERRORS = (
    PDFInfoNotInstalledError,
    PDFPageCountError,
    PDFPopplerTimeoutError,
    PDFSyntaxError,
    OSError,
)
_CODE_FENCE = re.compile(r"```(?:json)?\s*|\s*```")

EXTRACTION_PROMPT = """\
You extract product rows from the table of a GST tax invoice image.
Return a JSON array with one object per product row. A product row is any row
that has an HSN/SAC number; never skip one, use null for values you cannot read.
Never round numbers. Never nest objects.

Per product row:
- HSNNumber: the 'HSN/SAC' column (number).
- Unit: the 'UQC' column (string or null).
- Quantity: the 'Net Weight' column (number). Never read the 'Gross Weight' column here.
- TaxableValue: the 'Amount' column (number or null).
- cgst, sgst: the 'CGST' and 'SGST' amount columns (number or null; null when IGST is charged).
- igst: the 'IGST' amount column (number or null; null when CGST/SGST are charged).
  Never read the 'TAX%' columns. If TaxableValue is empty, all three taxes are null.

Shared by every product on the invoice (read once, repeat on each object):
- partyName: the value next to 'Name' under 'BILLING ADDRESS', including a trailing
  comma if present and any continuation line before 'Address' (joined with a space).
- VNo: the value next to 'TAX INVOICE NO' in the form 'SIR-JH-<n>-<n>-<n>'
  (prefix 'SIR-' yourself).
- date: the value next to 'Date', converted from DD/MM/YYYY to M/D/YY.
- ProductName: the whole 'Description' column, top to bottom, as one string with
  rows joined by a space (no space after a row ending in '-'). Never include 'Pair'.
- grossnet: a two-element array [gross, net] with the 'Gross Weight' and
  'Net Weight' totals from the 'Total' row at the end of the table.

Handwritten pen marks often cover values; distinguish real digits from marks.
Treat every invoice independently. Output only the JSON array.
"""


def _client(settings: Settings) -> genai.Client:
    if not settings.gemini_api_key:
        raise ExtractionError(
            "GEMINI_API_KEY (or GOOGLE_API_KEY) must be set to extract invoices"
        )
    return genai.Client(api_key=settings.gemini_api_key)


def count_pages(pdf_path: Path) -> int:
    """Return the number of pages in ``pdf_path``."""
    try:
        info = pdfinfo_from_path(str(pdf_path))
    except _PDF_ERRORS as exc:
        raise ExtractionError(f"Unable to read PDF {pdf_path}: {exc}") from exc
    return int(info.get("Pages", 0))


def parse_pages(raw: str) -> List[int]:
    """Parse a comma-separated page list such as ``"1,2,5"``."""
    try:
        pages = [int(part) for part in raw.split(",") if part.strip()]
    except ValueError as exc:
        raise ValueError(f"pages must be comma-separated integers, got {raw!r}") from exc
    if any(page < 1 for page in pages):
        raise ValueError("page numbers start at 1")
    return pages


def select_pages(
    pdf_path: Path,
    settings: Settings,
    pages: Sequence[int] | None = None,
) -> List[int]:
    """Return the page numbers to extract, in ascending order.

    Pages beyond the end of the document or beyond ``pdf_max_pages`` are
    dropped with a warning.
    """

    last_page = min(count_pages(pdf_path), settings.pdf_max_pages)
    if not pages:
        return list(range(1, last_page + 1))

    wanted = sorted(set(pages))
    ignored = [page for page in wanted if not 1 <= page <= last_page]
    if ignored:
        logger.warning(
            "Ignoring pages %s: only pages 1-%d can be extracted",
            ", ".join(str(page) for page in ignored),
            last_page,
        )
    return [page for page in wanted if 1 <= page <= last_page]


def render_page(
    pdf_path: Path, page_number: int, settings: Settings, output_folder: str
) -> bytes:
    """Rasterise one page to JPEG on disk and return its bytes."""

    try:
        paths = convert_from_path(
            str(pdf_path),
            dpi=settings.pdf_dpi,
            first_page=page_number,
            last_page=page_number,
            fmt="jpeg",
            output_folder=output_folder,
            paths_only=True,
        )
    except _PDF_ERRORS as exc:
        raise ExtractionError(
            f"PDF to image conversion failed for page {page_number}: {exc}"
        ) from exc
    if not paths:
        raise ExtractionError(f"Page {page_number} produced no image")

    image_path = Path(paths[0])
    try:
        return image_path.read_bytes()
    except OSError as exc:
        raise ExtractionError(f"Unable to read rendered page {page_number}: {exc}") from exc
    finally:
        image_path.unlink(missing_ok=True)


def parse_extracted_record(record: Mapping[str, Any], page_number: int) -> ExtractedLine:
    """Validate one AI record and tag it with its page number."""
    return ExtractedLine.from_mapping(record, page_number=page_number)


def _parse_response(raw_text: str | None, page_number: int) -> List[ExtractedLine]:
    """Parse the model's JSON array and raise on anything else."""
    if not raw_text:
        raise ExtractionError(f"Empty AI response for page {page_number}")

    text = _CODE_FENCE.sub("", raw_text).strip()
    try:
        payload = json.loads(text)
    except ValueError as exc:
        raise ExtractionError(
            f"Failed to parse AI response for page {page_number} as JSON"
        ) from exc

    if not isinstance(payload, list):
        raise ExtractionError(
            f"Invalid AI response for page {page_number}: expected a JSON array"
        )
    if not all(isinstance(item, dict) for item in payload):
        raise ExtractionError(
            f"Invalid AI response for page {page_number}: array items must be objects"
        )
    return [parse_extracted_record(item, page_number) for item in payload]


def analyze_page(
    client: genai.Client,
    image_bytes: bytes,
    page_number: int,
    model: str,
) -> List[ExtractedLine]:
    """Send one page image to Gemini and return its product lines."""
    try:
        response = client.models.generate_content(
            model=model,
            contents=[
                EXTRACTION_PROMPT,
                types.Part.from_bytes(data=image_bytes, mime_type="image/jpeg"),
            ],
            config=types.GenerateContentConfig(
                temperature=0,
                response_mime_type="application/json",
            ),
        )
    except Exception as exc:
        raise ExtractionError(f"AI call failed for page {page_number}: {exc}") from exc

    lines = _parse_response(response.text, page_number)
    logger.debug("Page %d: %d product lines", page_number, len(lines))
    return lines


def _process_page(
    client: genai.Client,
    pdf_path: Path,
    page_number: int,
    settings: Settings,
    output_folder: str,
) -> List[ExtractedLine]:
    try:
        image_bytes = render_page(pdf_path, page_number, settings, output_folder)
        return analyze_page(client, image_bytes, page_number, settings.gemini_model)
    except ExtractionError as exc:
        logger.warning("Skipping page %d: %s", page_number, exc)
        return []


def extract_invoice_lines(
    pdf_path: Path,
    *,
    pages: Sequence[int] | None = None,
    settings: Settings | None = None,
    client: genai.Client | None = None,
) -> List[ExtractedLine]:
    """Extract every product line from the invoice PDF, ordered by page.

    Only one batch of pages is rasterised at a time; images go to a
    temporary folder and are removed once read.
    """

    settings = settings or load_settings()
    pdf_path = Path(pdf_path)
    page_numbers = select_pages(pdf_path, settings, pages)
    if not page_numbers:
        return []
    client = client or _client(settings)

    batch_size = max(1, settings.batch_size)
    total_batches = (len(page_numbers) + batch_size - 1) // batch_size
    lines: List[ExtractedLine] = []

    with tempfile.TemporaryDirectory(prefix="gst-pages-") as output_folder:
        for batch_index in range(total_batches):
            batch = page_numbers[batch_index * batch_size : (batch_index + 1) * batch_size]
            logger.info(
                "Processing batch %d of %d (%d pages)", batch_index + 1, total_batches, len(batch)
            )
            with ThreadPoolExecutor(max_workers=len(batch)) as pool:
                futures = [
                    pool.submit(_process_page, client, pdf_path, page, settings, output_folder)
                    for page in batch
                ]
                for future in futures:  # Preserve page order
                    lines.extend(future.result())

            if batch_index + 1 < total_batches and settings.batch_delay > 0:
                logger.info("Waiting %.0f seconds before the next batch", settings.batch_delay)
                time.sleep(settings.batch_delay)

    logger.info("Extracted %d product lines from %d pages", len(lines), len(page_numbers))
    return lines


__all__ = [
    "EXTRACTION_PROMPT",
    "count_pages",
    "parse_pages",
    "select_pages",
    "render_page",
    "parse_extracted_record",
    "analyze_page",
    "extract_invoice_lines",
]
