"""
Condominium Bills Module
========================
Parses OCR text of condominium bills into structured, reconciled records:
unit/property, competency month, due date, line items and total.
"""

from .currency import CurrencyResolver, resolve_amount
from .models import BillRecord, LineItem, ParseResult, Reconciliation
from .ocr import OcrResult, OcrService
from .pipeline import CondominiumBillParser, parse_bill_text
from .settings import ParserSettings
from .tables import DEFAULT_TABLES, ItemTaxonomy, LookupTableError, LookupTables, UnitMapping, build_tables, load_tables
from .text_normalizer import normalize_text

__all__ = [
    'BillRecord', 'CondominiumBillParser', 'CurrencyResolver', 'DEFAULT_TABLES', 'ItemTaxonomy',
    'LineItem', 'LookupTableError', 'LookupTables', 'OcrResult', 'OcrService', 'ParseResult',
    'ParserSettings', 'Reconciliation', 'UnitMapping', 'build_tables', 'load_tables',
    'normalize_text', 'parse_bill_text', 'resolve_amount',
]
