"""
Unit tests for currency token resolution on OCR-damaged amounts.
"""

from decimal import Decimal

import pytest

from condo_bills.currency import CurrencyResolver, find_candidates, parse_amount_token, resolve_amount
from condo_bills.settings import ParserSettings


@pytest.mark.parametrize("token, expected", [
    ("24375", "243.75"),       # 4-6 digits, last two are cents
    ("J8O5", "78.05"),         # OCR character errors
    ("10701", "107.01"),       # 5-digit currency
    ("96285", "962.85"),       # 5-digit currency larger
    ("1.234,56", "1234.56"),   # Brazilian format
    ("123.45", "123.45"),      # decimal point
    ("850,00", "850.00"),      # decimal comma
    ("1.234", "1234.00"),      # thousands grouping
    ("180", "180.00"),         # short integer
    ("R$ 1.030,00", "1030.00"),
])
def test_parse_amount_token(token, expected):
    assert parse_amount_token(token) == Decimal(expected)


@pytest.mark.parametrize("token", ["", "ABC", "12/06", "1,2345"])
def test_parse_amount_token_rejects_non_amounts(token):
    assert parse_amount_token(token) is None


@pytest.mark.parametrize("text, expected", [
    ("J8O5", "78.05"),
    ("Consumo Gás 24375", "243.75"),
    ("TOTAL: R$ 1945,75", "1945.75"),
    ("CONDOMINIO 850,00", "850.00"),
    ("TOTAL 1.030,00", "1030.00"),
])
def test_resolve_amount(text, expected):
    assert resolve_amount(text) == Decimal(expected)


@pytest.mark.parametrize("amount", ["1.00", "12.34", "450.00", "1234.56", "9999.99", "50000.00"])
def test_clean_amounts_round_trip(amount):
    value = Decimal(amount)
    assert resolve_amount(str(value)) == value


def test_prefers_values_with_cents():
    assert resolve_amount("ENEL 180 45,90") == Decimal("45.90")


def test_falls_back_to_largest_value():
    assert resolve_amount("REF 12 TOTAL 300") == Decimal("300.00")


@pytest.mark.parametrize("text", [
    "0,50",             # below the plausible range
    "999999,00",        # above it
    "05/06/2025",       # date parts are never amounts
    "CONSUMO GAS",      # no digits at all
    "",
])
def test_implausible_or_missing_amounts(text):
    assert resolve_amount(text) is None


def test_range_is_configurable():
    resolver = CurrencyResolver(ParserSettings(min_amount=Decimal("200.00")))
    assert resolver.resolve("120,00") is None
    assert resolver.resolve("250,00") == Decimal("250.00")


def test_candidates_ignore_date_tokens():
    assert find_candidates("VENCIMENTO 05/06/2025 107345") == ["107345"]
