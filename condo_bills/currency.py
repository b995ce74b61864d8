"""
Currency Token Resolver
=======================
Turns OCR-damaged digit/letter runs into a single Brazilian Real amount.

OCR rarely gives one clean "R$ 1.234,56" token per line, so instead of
trusting the first match every plausible candidate on the line is parsed
and the best one is chosen:

1. Collect candidates with three patterns of decreasing strictness
   (R$-marked, bare 4-6 digit run, tolerant digit/lookalike run)
2. Repair lookalike letters and decide which separator is the decimal one
3. Drop anything outside the plausible monetary range
4. Prefer values with cents, then the largest
"""

import re
import logging
from decimal import Decimal, InvalidOperation
from typing import List, Optional

from .settings import ParserSettings
from .text_normalizer import DIGIT_LOOKALIKES

logger = logging.getLogger(__name__)

_L = ''.join(DIGIT_LOOKALIKES)

CANDIDATE_PATTERNS = [
    ('currency_marker', re.compile(rf'(?i:R\$)\s*([\d{_L}][\d{_L}.,]*)')),
    ('bare_digits', re.compile(r'(?<![\d.,/%])(\d{4,6})(?![\d.,/%])')),
    ('tolerant', re.compile(rf'(?<![\w.,/$])((?=[\d{_L}.,]*\d)[\d{_L}][\d{_L}.,]*)(?![\w/%])')),
]

_LOOKALIKE_TABLE = str.maketrans(DIGIT_LOOKALIKES)
_CLEAN_NUMBER = re.compile(r'^\d+(?:\.\d{1,2})?$')
CENT = Decimal('0.01')


def parse_amount_token(token: str) -> Optional[Decimal]:
    """
    Parse one candidate token, without any range check.

    Separator rules (Brazilian bills):
    - "1.234,56": period groups thousands, comma is decimal
    - "850,00": comma is decimal
    - "12.34" is decimal, "1.234" is thousands grouping
    - "24375": 4-6 bare digits, the last two are cents (243.75)

    Returns:
        Decimal rounded to cents, or None when the token is not a number
    """
    if not token:
        return None

    s = token.translate(_LOOKALIKE_TABLE)
    s = re.sub(r'r\$', '', s, flags=re.IGNORECASE)
    s = re.sub(r'\s+', '', s).strip('.,')
    if not s or not re.fullmatch(r'[\d.,]+', s):
        return None

    has_comma = ',' in s
    has_period = '.' in s

    if has_comma and has_period:
        s = s.replace('.', '')
        head, _, tail = s.rpartition(',')
        s = head.replace(',', '') + '.' + tail
    elif has_comma:
        head, _, tail = s.rpartition(',')
        s = head.replace(',', '') + '.' + tail
    elif has_period:
        head, _, tail = s.rpartition('.')
        if len(tail) == 3:
            s = s.replace('.', '')
        else:
            s = head.replace('.', '') + '.' + tail
    elif 4 <= len(s) <= 6:
        s = s[:-2] + '.' + s[-2:]

    if not _CLEAN_NUMBER.match(s):
        return None
    try:
        return Decimal(s).quantize(CENT)
    except InvalidOperation:
        return None


def find_candidates(text: str) -> List[str]:
    """Return candidate amount substrings, strictest patterns first, without duplicates."""
    seen = []
    for _name, pattern in CANDIDATE_PATTERNS:
        for match in pattern.finditer(text):
            token = match.group(1)
            if token not in seen:
                seen.append(token)
    return seen


def has_cents(value: Decimal) -> bool:
    return value % 1 != 0


class CurrencyResolver:
    """Resolves the most plausible monetary amount in a piece of OCR text."""

    def __init__(self, settings: Optional[ParserSettings] = None):
        self.settings = settings or ParserSettings()

    def in_range(self, value: Decimal) -> bool:
        return self.settings.min_amount <= value <= self.settings.max_amount

    def candidates(self, text: str) -> List[Decimal]:
        """Parse every candidate token and keep the plausible ones."""
        values: List[Decimal] = []
        for token in find_candidates(text):
            value = parse_amount_token(token)
            if value is None:
                continue
            if not self.in_range(value):
                logger.debug(f"Discarding implausible amount {value} from token {token!r}")
                continue
            values.append(value)
        return values

    def resolve(self, text: str) -> Optional[Decimal]:
        """
        Resolve a single amount from text.

        Args:
            text: A line (or fragment) of normalized OCR text

        Returns:
            The chosen amount, or None when nothing plausible was found
        """
        if not text:
            return None
        values = self.candidates(text)
        if not values:
            return None
        with_cents = [v for v in values if has_cents(v)]
        return max(with_cents or values)


def resolve_amount(text: str, settings: Optional[ParserSettings] = None) -> Optional[Decimal]:
    """Convenience wrapper around CurrencyResolver.resolve."""
    return CurrencyResolver(settings).resolve(text)
