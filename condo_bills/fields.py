"""
Field Extractors
================
Independent extractors for property identity, competency month, due date
and the auxiliary charges printed outside the item table.

Each extractor is an ordered tuple of strategies (pure functions returning
a value or None); the first strategy that yields a value wins. Keeping the
chains as data makes the fallback order visible and testable per strategy.
"""

import re
import logging
from decimal import Decimal
from typing import Callable, Iterable, Optional, Tuple, TypeVar

from .currency import CurrencyResolver
from .tables import UnitMapping
from .text_normalizer import MONTH_NUMBERS

logger = logging.getLogger(__name__)

T = TypeVar('T')


def first_match(strategies: Iterable[Callable[[str], Optional[T]]], text: str) -> Optional[T]:
    """Run strategies in order and return the first non-empty result."""
    for strategy in strategies:
        value = strategy(text)
        if value:
            logger.debug(f"{getattr(strategy, '__name__', strategy)} matched {value!r}")
            return value
    return None


# =============================================================================
# PROPERTY IDENTITY
# =============================================================================

# "6 000307", "torre 6 307": a tower number followed by the unit number
TOWER_UNIT_PATTERN = re.compile(r'\b(?:(?:unidade|unit|torre|tower)\s*)?(\d{1,2})\s*(\d{6}|\d{3})\b', re.IGNORECASE)

# Unlabelled "7 000412" on its own: tower and unit separated by spaces, not glued to
# dates or amounts ("24375", "05/06/2025", "1.030,00")
BARE_TOWER_UNIT_PATTERN = re.compile(r'(?<![\d/.,])(\d{1,2})[ \t]+(\d{6}|\d{3})(?![\d/.,])')

# "UNIDADE M07", "Apto: 6 000307"
LABELLED_UNIT_PATTERN = re.compile(
    r'\b(?:unidade|unid\.?|unit|apto\.?|apartamento)[:\s]+([a-z]\s?\d{2,4}|\d{1,2}\s?\d{3,6}|\d{3,6})\b',
    re.IGNORECASE,
)


def _tower_unit_codes(text: str) -> Iterable[str]:
    for match in TOWER_UNIT_PATTERN.finditer(text):
        yield f"{match.group(1)} {match.group(2)}"


def _labelled_unit_codes(text: str) -> Iterable[str]:
    for match in LABELLED_UNIT_PATTERN.finditer(text):
        yield re.sub(r'\s+', ' ', match.group(1)).strip()


def _find_variant(units: UnitMapping, text: str) -> Optional[Tuple[str, str]]:
    """Return (code as printed, property name) for the first mapping key found in text."""
    haystack = re.sub(r'\s+', ' ', text).lower()
    for variant, name in units.variants():
        idx = haystack.find(variant)
        if idx >= 0:
            printed = re.sub(r'\s+', ' ', text)[idx:idx + len(variant)]
            return printed, name
    return None


def property_name_strategies(units: UnitMapping) -> Tuple[Callable[[str], Optional[str]], ...]:
    def by_unit_code(text: str) -> Optional[str]:
        for code in list(_labelled_unit_codes(text)) + list(_tower_unit_codes(text)):
            name = units.lookup(code)
            if name:
                return name
        return None

    def by_mapping_key(text: str) -> Optional[str]:
        found = _find_variant(units, text)
        return found[1] if found else None

    return by_unit_code, by_mapping_key


def property_unit_strategies(units: UnitMapping) -> Tuple[Callable[[str], Optional[str]], ...]:
    def labelled(text: str) -> Optional[str]:
        return next(iter(_labelled_unit_codes(text)), None)

    def known_tower_unit(text: str) -> Optional[str]:
        return next((code for code in _tower_unit_codes(text) if code in units), None)

    def any_tower_unit(text: str) -> Optional[str]:
        match = BARE_TOWER_UNIT_PATTERN.search(text)
        return f"{match.group(1)} {match.group(2)}" if match else None

    def printed_mapping_key(text: str) -> Optional[str]:
        found = _find_variant(units, text)
        return found[0] if found else None

    return labelled, known_tower_unit, any_tower_unit, printed_mapping_key


def extract_property_name(text: str, units: UnitMapping) -> str:
    """Canonical property name, or "" when no unit code is recognised."""
    return first_match(property_name_strategies(units), text) or ""


def extract_property_unit(text: str, units: UnitMapping) -> str:
    """Unit code as printed on the bill, whether or not the mapping knows it."""
    return first_match(property_unit_strategies(units), text) or ""


# =============================================================================
# COMPETENCY MONTH
# =============================================================================

_MONTHS = '|'.join(MONTH_NUMBERS)
_MONTH_NAMES_BY_NUMBER = {number: name for name, number in MONTH_NUMBERS.items()}
_MONTH_LOOKUP = {name.lower(): name for name in MONTH_NUMBERS}

CONDOMINIUM_MONTH_PATTERN = re.compile(
    rf'condom[ií]nio\s+({_MONTHS})\s*(?:/|\s|\bde\b)\s*(\d{{4}})\b', re.IGNORECASE)
MONTH_YEAR_PATTERN = re.compile(rf'\b({_MONTHS})\s*(?:/|\s|\bde\b)\s*(\d{{4}})\b', re.IGNORECASE)
NUMERIC_MONTH_PATTERN = re.compile(r'(?<![\d/])(\d{2})/(\d{4})(?![\d/])')


def _month_label(month_name: str, year: str) -> str:
    return f"{_MONTH_LOOKUP[month_name.lower()]}/{year}"


def competency_after_condominium(text: str) -> Optional[str]:
    match = CONDOMINIUM_MONTH_PATTERN.search(text)
    return _month_label(match.group(1), match.group(2)) if match else None


def competency_month_year(text: str) -> Optional[str]:
    match = MONTH_YEAR_PATTERN.search(text)
    return _month_label(match.group(1), match.group(2)) if match else None


def competency_numeric(text: str) -> Optional[str]:
    for match in NUMERIC_MONTH_PATTERN.finditer(text):
        month = int(match.group(1))
        if month in _MONTH_NAMES_BY_NUMBER:
            return f"{_MONTH_NAMES_BY_NUMBER[month]}/{match.group(2)}"
    return None


COMPETENCY_STRATEGIES = (competency_after_condominium, competency_month_year, competency_numeric)


def extract_competency_month(text: str) -> str:
    """Billing period as "Month/Year" (e.g. "Junho/2025"), or ""."""
    return first_match(COMPETENCY_STRATEGIES, text) or ""


# =============================================================================
# DUE DATE
# =============================================================================

STRICT_DATE = re.compile(r'^\d{2}/\d{2}/\d{4}$')
DUE_DATE_LABEL_PATTERN = re.compile(r'(?:vencimento|venc\.?|vence\s+em)[:\s]*(\d{1,2}/\d{1,2}/\d{2,4})', re.IGNORECASE)
ANY_DATE_PATTERN = re.compile(r'(?<![\d/])(\d{1,2}/\d{1,2}/\d{2,4})(?![\d/])')


def _first_strict_date(pattern: re.Pattern, text: str) -> Optional[str]:
    for match in pattern.finditer(text):
        candidate = match.group(1)
        if STRICT_DATE.match(candidate):
            return candidate
        logger.debug(f"Skipping malformed date {candidate!r}")
    return None


def due_date_labelled(text: str) -> Optional[str]:
    return _first_strict_date(DUE_DATE_LABEL_PATTERN, text)


def due_date_any(text: str) -> Optional[str]:
    return _first_strict_date(ANY_DATE_PATTERN, text)


DUE_DATE_STRATEGIES = (due_date_labelled, due_date_any)


def extract_due_date(text: str) -> str:
    """
    Due date as DD/MM/YYYY, or "".

    Only the digit layout is checked; "32/13/2025" is accepted.
    """
    return first_match(DUE_DATE_STRATEGIES, text) or ""


# =============================================================================
# AUXILIARY CHARGES
# =============================================================================

INTEREST_LABEL = re.compile(r'\bjuros\b', re.IGNORECASE)
FINAL_AMOUNT_LABEL = re.compile(r'\bvalor\s+cobrado\b', re.IGNORECASE)
LAWYER_FEE_LABEL = re.compile(r'\b(?:advogado|honor[aá]rios)\b', re.IGNORECASE)


def amount_after_label(text: str, label: re.Pattern, resolver: CurrencyResolver) -> Optional[Decimal]:
    """Resolve the amount printed after the first line carrying label that has one."""
    for line in text.split('\n'):
        match = label.search(line)
        if not match:
            continue
        value = resolver.resolve(line[match.end():])
        if value is not None:
            return value
    return None


def extract_interest_amount(text: str, resolver: CurrencyResolver) -> Optional[Decimal]:
    return amount_after_label(text, INTEREST_LABEL, resolver)


def extract_final_amount(text: str, resolver: CurrencyResolver) -> Optional[Decimal]:
    return amount_after_label(text, FINAL_AMOUNT_LABEL, resolver)


def extract_lawyer_fee(text: str, resolver: CurrencyResolver) -> Optional[Decimal]:
    return amount_after_label(text, LAWYER_FEE_LABEL, resolver)
