"""
Condominium Bill Parser
=======================
Entry point of the parsing pipeline:

    raw OCR text -> normalize -> field extractors + line items
                 -> total reconciliation -> sufficiency check -> ParseResult

The parser holds only read-only state (lookup tables, settings), so a single
instance can be shared by any number of threads.
"""

import logging
from typing import Optional, Union

from .currency import CurrencyResolver
from .fields import (
    extract_competency_month,
    extract_due_date,
    extract_final_amount,
    extract_interest_amount,
    extract_lawyer_fee,
    extract_property_name,
    extract_property_unit,
)
from .line_items import LineItemExtractor
from .models import BillRecord, ParseResult
from .ocr import OcrService
from .reconciler import TotalReconciler
from .settings import ParserSettings
from .tables import DEFAULT_TABLES, LookupTables
from .text_normalizer import normalize_text
from .validation import validate_bill_record

logger = logging.getLogger(__name__)

NO_TEXT_ERROR = "No text was extracted from the image"
INSUFFICIENT_DATA_ERROR = "Could not extract bill data"


class CondominiumBillParser:
    """Parses OCR text of a condominium bill into a BillRecord."""

    def __init__(self, tables: Optional[LookupTables] = None, settings: Optional[ParserSettings] = None):
        """
        Args:
            tables: Unit mapping and item taxonomy (defaults to the built-in tables)
            settings: Monetary range, deviation threshold, lookahead
        """
        self.tables = tables or DEFAULT_TABLES
        self.settings = settings or ParserSettings()
        self.resolver = CurrencyResolver(self.settings)
        self.line_items = LineItemExtractor(self.tables.items, self.resolver, self.settings.lookahead_lines)
        self.reconciler = TotalReconciler(self.resolver)

    def extract(self, normalized_text: str):
        """Run every extractor over already-normalized text. Returns (record, reconciliation)."""
        lines = normalized_text.split('\n')
        units = self.tables.units

        record = BillRecord(
            property_name=extract_property_name(normalized_text, units),
            property_unit=extract_property_unit(normalized_text, units),
            competency_month=extract_competency_month(normalized_text),
            due_date=extract_due_date(normalized_text),
            line_items=self.line_items.extract(lines),
            interest_amount=extract_interest_amount(normalized_text, self.resolver),
            final_amount=extract_final_amount(normalized_text, self.resolver),
            lawyer_fee=extract_lawyer_fee(normalized_text, self.resolver),
        )
        reconciliation = self.reconciler.reconcile(normalized_text, record.line_items)
        record.total_amount = reconciliation.total
        return record, reconciliation

    def parse(self, raw_text: Optional[str]) -> ParseResult:
        """
        Parse raw OCR text.

        Args:
            raw_text: OCR engine output, untouched

        Returns:
            ParseResult; raw_text is always attached for manual review
        """
        raw_text = raw_text or ""
        if not raw_text.strip():
            logger.info("OCR produced no text, skipping extraction")
            return ParseResult.fail(NO_TEXT_ERROR, raw_text)

        normalized = normalize_text(raw_text)
        record, reconciliation = self.extract(normalized)
        diagnostics = {"reconciliation": reconciliation.to_dict()}

        validation = validate_bill_record(record)
        diagnostics["missingFields"] = validation["missing_fields"]
        if not validation["is_valid"]:
            logger.info(f"Insufficient bill data: {validation['missing_fields']}")
            return ParseResult.fail(INSUFFICIENT_DATA_ERROR, raw_text, data=record, diagnostics=diagnostics)

        logger.info(
            f"Parsed bill: property={record.property_name or record.property_unit!r} "
            f"items={len(record.line_items)} total={record.total_amount} ({reconciliation.source})"
        )
        return ParseResult.ok(record, raw_text, diagnostics)

    def parse_image(self, source: Union[str, bytes], ocr_service: Optional[OcrService] = None,
                    filename: Optional[str] = None) -> ParseResult:
        """
        OCR an uploaded bill and parse it.

        Args:
            source: Path to the file, or its bytes
            ocr_service: OCR engine wrapper (a default Portuguese Tesseract one if omitted)
            filename: Original file name of a bytes upload; picks image vs PDF handling
        """
        ocr_service = ocr_service or OcrService()
        if isinstance(source, (bytes, bytearray)):
            ocr = ocr_service.recognize_bytes(bytes(source), filename or "upload.png")
        else:
            ocr = ocr_service.recognize(source)

        if not ocr.success:
            return ParseResult.fail(ocr.error or "OCR processing failed", ocr.text)

        result = self.parse(ocr.text)
        if ocr.metadata:
            result.diagnostics["ocr"] = ocr.metadata
        return result


_default_parser: Optional[CondominiumBillParser] = None


def get_parser() -> CondominiumBillParser:
    """Shared parser built from the default tables and settings."""
    global _default_parser
    if _default_parser is None:
        _default_parser = CondominiumBillParser()
    return _default_parser


def parse_bill_text(raw_text: Optional[str]) -> ParseResult:
    return get_parser().parse(raw_text)
