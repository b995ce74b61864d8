"""
Text Normalizer for Condominium Bills
======================================
Cleans raw OCR text before any field extraction runs.

Every later stage reads the output of `normalize_text`, and some of them
re-normalize substrings, so the function must be idempotent.
"""

import re
import logging
from typing import Dict

logger = logging.getLogger(__name__)

# Letters Tesseract commonly emits in place of digits on scanned bills
DIGIT_LOOKALIKES: Dict[str, str] = {
    'O': '0',
    'o': '0',
    'J': '7',
    'S': '5',
    'l': '1',
    'I': '1',
    'B': '8',
}

_LOOKALIKE_CLASS = '[' + ''.join(DIGIT_LOOKALIKES) + ']'
_LOOKALIKE_TABLE = str.maketrans(DIGIT_LOOKALIKES)
_LETTER = r'[^\W\d_]'
# A whole run of lookalikes is repaired when it touches a digit and no other letter,
# so "Il23" becomes "1123" while "JUROS10" stays a word
_LOOKALIKE_RUN_NEAR_DIGIT = re.compile(
    rf'(?<=\d){_LOOKALIKE_CLASS}+(?!{_LETTER})|(?<!{_LETTER}){_LOOKALIKE_CLASS}+(?=\d)'
)

_NOISE_BETWEEN_DIGITS = re.compile(r'(?<=\d)[:\-]+(?=\d)')
_NOISE_AT_LINE_END = re.compile(r'(?<=\d)[:\-]+$')
_HORIZONTAL_SPACE = re.compile(r'[ \t\f\v\u00a0]+')

# Canonical month -> every spelling seen on bills (full, unaccented, abbreviated)
MONTH_VARIANTS: Dict[str, tuple] = {
    'Janeiro': ('janeiro', 'jan'),
    'Fevereiro': ('fevereiro', 'fev'),
    'Março': ('março', 'marco', 'mar'),
    'Abril': ('abril', 'abr'),
    'Maio': ('maio', 'mai'),
    'Junho': ('junho', 'jun'),
    'Julho': ('julho', 'jul'),
    'Agosto': ('agosto', 'ago'),
    'Setembro': ('setembro', 'set'),
    'Outubro': ('outubro', 'out'),
    'Novembro': ('novembro', 'nov'),
    'Dezembro': ('dezembro', 'dez'),
}

MONTH_NUMBERS: Dict[str, int] = {name: i for i, name in enumerate(MONTH_VARIANTS, start=1)}

_MONTH_LOOKUP: Dict[str, str] = {
    variant: canonical
    for canonical, variants in MONTH_VARIANTS.items()
    for variant in variants
}
_MONTH_PATTERN = re.compile(
    r'\b(' + '|'.join(sorted(_MONTH_LOOKUP, key=len, reverse=True)) + r')\b',
    re.IGNORECASE,
)


def correct_digit_lookalikes(text: str) -> str:
    """
    Replace runs of lookalike letters that touch a digit.

    The run is converted as a whole ("Il23" -> "1123", "J8O5" -> "7805"),
    but only when no other letter borders it: "JUROS10,00" and "BOLETO"
    are left alone. A single pass is enough since a repaired run can never
    make a neighbouring run convertible.
    """
    return _LOOKALIKE_RUN_NEAR_DIGIT.sub(lambda m: m.group(0).translate(_LOOKALIKE_TABLE), text)


def normalize_months(text: str) -> str:
    """Rewrite every Portuguese month spelling to its canonical full name."""
    return _MONTH_PATTERN.sub(lambda m: _MONTH_LOOKUP[m.group(0).lower()], text)


def _clean_line(line: str) -> str:
    line = correct_digit_lookalikes(line)
    line = _NOISE_BETWEEN_DIGITS.sub('', line)
    line = _HORIZONTAL_SPACE.sub(' ', line).strip()
    return _NOISE_AT_LINE_END.sub('', line).strip()


def normalize_text(raw_text: str) -> str:
    """
    Normalize raw OCR output.

    Args:
        raw_text: Text as returned by the OCR engine (may be None or empty)

    Returns:
        Cleaned text, one non-blank line per OCR line
    """
    if not raw_text:
        return ""

    lines = re.sub(r'\r\n?', '\n', raw_text).split('\n')
    cleaned = [c for c in (_clean_line(line) for line in lines) if c]
    text = normalize_months('\n'.join(cleaned))

    logger.debug(f"Normalized OCR text: {len(raw_text)} -> {len(text)} chars, {len(cleaned)} lines")
    return text
