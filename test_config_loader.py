"""
Tests for config.yml loading, environment overrides and ParserSettings.
"""

from decimal import Decimal

import pytest

from config_loader import DEFAULT_CONFIG, _deep_merge, _parse_bool, get_config, load_config
from condo_bills.ocr import OcrService
from condo_bills.settings import ParserSettings

ENV_VARS = [
    "APP_CONFIG_PATH", "CONDO_OCR_ENABLED", "CORS_ORIGINS", "LOG_LEVEL", "OCR_LANGUAGE", "OCR_DPI",
    "PARSER_MIN_AMOUNT", "PARSER_MAX_AMOUNT", "PARSER_DEVIATION_THRESHOLD", "PARSER_LOOKAHEAD_LINES",
    "LOOKUP_TABLES_PATH",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.yml"
    path.write_text(
        "features:\n"
        "  condominium_ocr_enabled: true\n"
        "ocr:\n"
        "  language: por\n"
        "  dpi: 200\n"
        "parser:\n"
        "  min_amount: '1.00'\n"
        "  lookahead_lines: 3\n",
        encoding="utf-8",
    )
    return str(path)


def test_deep_merge_keeps_unrelated_keys():
    base = {"parser": {"min_amount": "1.00", "max_amount": "50000.00"}, "ocr": {"dpi": 200}}
    merged = _deep_merge(base, {"parser": {"min_amount": "5.00"}})
    assert merged == {"parser": {"min_amount": "5.00", "max_amount": "50000.00"}, "ocr": {"dpi": 200}}
    assert base["parser"]["min_amount"] == "1.00"


@pytest.mark.parametrize("raw, expected", [
    ("1", True), ("yes", True), (" ON ", True),
    ("0", False), ("off", False),
    ("maybe", None), (None, None),
])
def test_parse_bool(raw, expected):
    assert _parse_bool(raw) is expected


def test_load_file_without_overrides(config_file):
    cfg = load_config(config_file)
    assert cfg["ocr"] == {"language": "por", "dpi": 200}
    assert cfg["features"]["condominium_ocr_enabled"] is True


def test_missing_file_gives_defaults(tmp_path):
    cfg = load_config(str(tmp_path / "absent.yml"))
    assert cfg == DEFAULT_CONFIG
    assert cfg is not DEFAULT_CONFIG


def test_defaults_fill_sections_missing_from_file(config_file):
    cfg = load_config(config_file)
    assert cfg["app"]["max_upload_mb"] == 16
    assert cfg["parser"]["min_amount"] == "1.00"
    assert cfg["parser"]["tables_path"] is None


def test_unparseable_flag_is_ignored(config_file, monkeypatch):
    monkeypatch.setenv("CONDO_OCR_ENABLED", "perhaps")
    assert load_config(config_file)["features"]["condominium_ocr_enabled"] is True


def test_env_overrides(config_file, monkeypatch):
    monkeypatch.setenv("CONDO_OCR_ENABLED", "false")
    monkeypatch.setenv("CORS_ORIGINS", "https://a.example, https://b.example")
    monkeypatch.setenv("OCR_LANGUAGE", "por+eng")
    monkeypatch.setenv("PARSER_MIN_AMOUNT", "10.00")
    monkeypatch.setenv("PARSER_LOOKAHEAD_LINES", "5")
    monkeypatch.setenv("LOOKUP_TABLES_PATH", "/etc/condo/tables.yml")

    cfg = load_config(config_file)

    assert cfg["features"]["condominium_ocr_enabled"] is False
    assert cfg["app"]["cors"]["origins"] == ["https://a.example", "https://b.example"]
    assert cfg["ocr"] == {"language": "por+eng", "dpi": 200}
    assert cfg["parser"]["min_amount"] == "10.00"
    assert cfg["parser"]["tables_path"] == "/etc/condo/tables.yml"

    settings = ParserSettings.from_config(cfg)
    assert settings.min_amount == Decimal("10.00")
    assert settings.lookahead_lines == 5


def test_config_path_from_env(config_file, monkeypatch):
    monkeypatch.setenv("APP_CONFIG_PATH", config_file)
    assert load_config()["ocr"]["language"] == "por"


def test_empty_section_in_file(tmp_path):
    path = tmp_path / "config.yml"
    path.write_text("parser:\nocr:\n", encoding="utf-8")
    cfg = load_config(str(path))
    assert cfg["parser"] is None
    assert ParserSettings.from_config(cfg) == ParserSettings()
    assert OcrService.from_config(cfg).dpi == 200


def test_get_config_is_cached(config_file, tmp_path):
    first = get_config(config_file, force_reload=True)
    assert get_config() is first
    assert get_config(str(tmp_path / "absent.yml"), force_reload=True) == DEFAULT_CONFIG


def test_settings_defaults_and_bad_values():
    assert ParserSettings.from_config(None) == ParserSettings()
    assert ParserSettings.from_config({"parser": None}) == ParserSettings()

    settings = ParserSettings.from_config({"parser": {
        "min_amount": "abc",
        "max_amount": 1000,
        "deviation_threshold": "0.1",
        "lookahead_lines": "many",
    }})
    assert settings.min_amount == Decimal("1.00")
    assert settings.max_amount == Decimal("1000")
    assert settings.deviation_threshold == Decimal("0.1")
    assert settings.lookahead_lines == 3
