"""Domain models for invoice/ledger reconciliation.

These dataclasses represent the entities shared throughout the tool: invoice
lines extracted from the scanned PDF, rows of the accounting ledger, the
per-line match outcome and the aggregate reconciliation result.
"""

from __future__ import annotations  # Postponed evaluation of annotations (PEP 563)

from dataclasses import dataclass, field  # Dataclass utilities
from typing import Any, Iterable, Mapping  # Typing helpers for boundary parsing

from gst_reconciler.compare import fields_equal  # Shared equality policy
from gst_reconciler.normalize import is_empty, to_number  # Value canonicalisation

# Field identifiers used in matching/mismatched sets and JSON payloads
ALL_FIELDS: tuple[str, ...] = (
    "cgst",
    "sgst",
    "igst",
    "invoice_number",
    "date",
    "party_name",
    "hsn_number",
    "unit",
    "taxable_value",
    "quantity",
    "gross_net",
)
TAX_FIELDS: tuple[str, ...] = ("cgst", "sgst", "igst")

# A mismatch in any of these reports the line as missing from the ledger.
# gross_net is included: a gross/net weight mismatch alone is reported.
CRITICAL_FIELDS: frozenset[str] = frozenset(
    {
        "cgst",
        "sgst",
        "igst",
        "invoice_number",
        "party_name",
        "hsn_number",
        "unit",
        "taxable_value",
        "quantity",
        "gross_net",
    }
)

# Spreadsheet header -> LedgerRow attribute
LEDGER_COLUMNS: dict[str, str] = {
    "VNo": "invoice_number",
    "Date": "date",
    "Party Name": "party_name",
    "Product Name": "product_name",
    "HSN Number": "hsn_number",
    "Unit": "unit",
    "Taxable Value": "taxable_value",
    "Quantity": "quantity",
    "CGST": "cgst",
    "SGST/UTGST": "sgst",
    "SGST": "sgst",
    "IGST": "igst",
    "Free": "free_quantity_marker",
}

# Accepted spellings for each ExtractedLine attribute (AI output uses mixed case)
_LINE_KEYS: dict[str, tuple[str, ...]] = {
    "page_number": ("page_number", "pageNumber"),
    "invoice_number": ("invoice_number", "invoiceNumber", "VNo", "vno"),
    "date": ("date", "Date"),
    "party_name": ("party_name", "partyName", "PartyName"),
    "product_name": ("product_name", "productName", "ProductName"),
    "hsn_number": ("hsn_number", "hsnNumber", "HSNNumber"),
    "unit": ("unit", "Unit"),
    "taxable_value": ("taxable_value", "taxableValue", "TaxableValue"),
    "quantity": ("quantity", "Quantity"),
    "cgst": ("cgst", "CGST"),
    "sgst": ("sgst", "SGST"),
    "igst": ("igst", "IGST"),
    "gross_net_match": ("gross_net_match", "grossNetMatch", "grossnet"),
}

_TRUTHY = {"true", "yes", "match", "1"}


def ordered_fields(fields: Iterable[str]) -> tuple[str, ...]:
    """Return ``fields`` in canonical ``ALL_FIELDS`` order."""
    wanted = set(fields)
    return tuple(name for name in ALL_FIELDS if name in wanted)


def _lookup(mapping: Mapping[str, Any], keys: tuple[str, ...]) -> Any:
    for key in keys:
        if key in mapping:
            return mapping[key]
    return None


def _as_text(value: Any) -> str | None:
    if is_empty(value):
        return None
    return str(value).strip()


def _as_number(value: Any) -> int | float | None:
    number = to_number(value)
    if number is None:
        return None
    return int(number) if number.is_integer() else number


def _as_gross_net(value: Any) -> bool:
    """Interpret the gross/net weight flag or a ``[gross, net]`` pair."""
    if isinstance(value, bool):
        return value
    if isinstance(value, (list, tuple)):
        if len(value) != 2 or is_empty(value[0]) or is_empty(value[1]):
            return False
        return fields_equal(value[0], value[1], "number")
    if isinstance(value, str):
        return value.strip().lower() in _TRUTHY
    return False


@dataclass(frozen=True, slots=True)
class ExtractedLine:
    """One product entry extracted from a page of the invoice PDF."""

    page_number: int  # 1-based page the line was read from
    invoice_number: str | None = None  # VNo, join key against the ledger
    date: str | None = None
    party_name: str | None = None
    product_name: str | None = None
    hsn_number: int | float | None = None
    unit: str | None = None
    taxable_value: int | float | None = None
    quantity: int | float | None = None  # Net weight column
    cgst: int | float | None = None
    sgst: int | float | None = None
    igst: int | float | None = None
    gross_net_match: bool = False  # Printed gross total equals net total

    @classmethod
    def from_mapping(
        cls, mapping: Mapping[str, Any], page_number: int | None = None
    ) -> "ExtractedLine":
        """Validate a loosely-typed record (AI output or JSON payload)."""
        raw_page = page_number
        if raw_page is None:
            raw_page = _lookup(mapping, _LINE_KEYS["page_number"])
        page = _as_number(raw_page)

        def get(name: str) -> Any:
            return _lookup(mapping, _LINE_KEYS[name])

        return cls(
            page_number=int(page) if page is not None else 0,
            invoice_number=_as_text(get("invoice_number")),
            date=_as_text(get("date")),
            party_name=_as_text(get("party_name")),
            product_name=_as_text(get("product_name")),
            hsn_number=_as_number(get("hsn_number")),
            unit=_as_text(get("unit")),
            taxable_value=_as_number(get("taxable_value")),
            quantity=_as_number(get("quantity")),
            cgst=_as_number(get("cgst")),
            sgst=_as_number(get("sgst")),
            igst=_as_number(get("igst")),
            gross_net_match=_as_gross_net(get("gross_net_match")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "page_number": self.page_number,
            "invoice_number": self.invoice_number,
            "date": self.date,
            "party_name": self.party_name,
            "product_name": self.product_name,
            "hsn_number": self.hsn_number,
            "unit": self.unit,
            "taxable_value": self.taxable_value,
            "quantity": self.quantity,
            "cgst": self.cgst,
            "sgst": self.sgst,
            "igst": self.igst,
            "gross_net_match": self.gross_net_match,
        }


@dataclass(frozen=True, slots=True)
class LedgerRow:
    """One row of the authoritative ledger spreadsheet (raw cell values)."""

    invoice_number: Any = None
    date: Any = None
    party_name: Any = None
    product_name: Any = None
    hsn_number: Any = None
    unit: Any = None
    taxable_value: Any = None
    quantity: Any = None
    cgst: Any = None
    sgst: Any = None
    igst: Any = None
    free_quantity_marker: Any = None  # "Free" column, used for tax-free lines
    row_number: int | None = None  # Worksheet row, for diagnostics only

    @classmethod
    def from_mapping(
        cls, mapping: Mapping[str, Any], row_number: int | None = None
    ) -> "LedgerRow":
        """Build a row from a header-keyed mapping (see ``LEDGER_COLUMNS``)."""
        values: dict[str, Any] = {}
        for key, value in mapping.items():
            name = LEDGER_COLUMNS.get(str(key).strip(), str(key).strip())
            if name in cls.__dataclass_fields__ and name != "row_number":
                values.setdefault(name, value)
        return cls(row_number=row_number, **values)


@dataclass(frozen=True, slots=True)
class Exact:
    """Every critical field of ``line`` agrees with ``row``."""

    line: ExtractedLine
    row: LedgerRow


@dataclass(frozen=True, slots=True)
class BestPartial:
    """Highest scoring ledger row sharing the line's invoice number."""

    line: ExtractedLine
    row: LedgerRow
    matching_fields: frozenset[str]
    mismatched_fields: frozenset[str]
    candidate_count: int  # Rows sharing the invoice number


@dataclass(frozen=True, slots=True)
class NoCandidate:
    """No ledger row shares the line's invoice number."""

    line: ExtractedLine
    mismatched_fields: frozenset[str] = frozenset(ALL_FIELDS)
    candidate_count: int = 0


MatchResult = Exact | BestPartial | NoCandidate


@dataclass(frozen=True, slots=True)
class MissingProduct:
    """An invoice line with no exact ledger counterpart."""

    line: ExtractedLine
    mismatched_fields: tuple[str, ...]  # Canonical ALL_FIELDS order
    candidate_count: int


@dataclass(frozen=True, slots=True)
class CharMatch:
    character: str
    matches: bool


@dataclass(frozen=True, slots=True)
class NameMismatch:
    """Product name differs between invoice and ledger (one kept per page)."""

    page_number: int
    invoice_number: str | None
    invoice_product_name: str | None
    ledger_product_name: str | None
    mask: tuple[CharMatch, ...]  # Aligned to the whitespace-stripped invoice name


@dataclass(frozen=True, slots=True)
class ReconciliationResult:
    """Groups reconciliation outcomes for reporting."""

    total_invoice_lines: int
    total_ledger_rows: int
    missing_products: tuple[MissingProduct, ...] = field(default_factory=tuple)
    name_mismatches: tuple[NameMismatch, ...] = field(default_factory=tuple)
    all_lines: tuple[ExtractedLine, ...] = field(default_factory=tuple)

    @property
    def matched_lines(self) -> tuple[ExtractedLine, ...]:
        """Lines not reported as missing, in input order."""
        missing = [item.line for item in self.missing_products]
        return tuple(line for line in self.all_lines if line not in missing)


__all__ = [
    "ALL_FIELDS",
    "TAX_FIELDS",
    "CRITICAL_FIELDS",
    "LEDGER_COLUMNS",
    "ordered_fields",
    "ExtractedLine",
    "LedgerRow",
    "Exact",
    "BestPartial",
    "NoCandidate",
    "MatchResult",
    "MissingProduct",
    "CharMatch",
    "NameMismatch",
    "ReconciliationResult",
]
