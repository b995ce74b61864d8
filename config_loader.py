"""
YAML-backed configuration for the condominium OCR service.

Resolution order (later wins):
1. DEFAULT_CONFIG below, so the service starts even without config.yml
2. config.yml (or the file named by APP_CONFIG_PATH)
3. Explicit environment overrides (OCR language, parser thresholds, flags)

Values are kept as loaded; typed parsing happens where they are consumed
(ParserSettings, OcrService).
"""

from __future__ import annotations

import copy
import os
from typing import Any, Callable, Dict, Optional, Tuple

import yaml

DEFAULT_CONFIG: Dict[str, Any] = {
    "app": {"cors": {"origins": ["*"]}, "max_upload_mb": 16},
    "features": {"condominium_ocr_enabled": True},
    "logging": {"level": "INFO"},
    "ocr": {"language": "por", "dpi": 200},
    "parser": {"tables_path": None},
}


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge override into base (override wins)."""
    out: Dict[str, Any] = dict(base)
    for k, v in override.items():
        if isinstance(v, dict) and isinstance(out.get(k), dict):
            out[k] = _deep_merge(out[k], v)
        else:
            out[k] = v
    return out


def _parse_bool(value: Optional[str], default: Optional[bool] = None) -> Optional[bool]:
    if value is None:
        return default
    v = value.strip().lower()
    if v in ("1", "true", "yes", "y", "on"):
        return True
    if v in ("0", "false", "no", "n", "off"):
        return False
    return default


def _parse_list(value: str) -> list:
    return [item.strip() for item in value.split(",") if item.strip()]


# env var -> (config path, converter); converters returning None skip the override
ENV_OVERRIDES: Dict[str, Tuple[Tuple[str, ...], Callable[[str], Any]]] = {
    "CONDO_OCR_ENABLED": (("features", "condominium_ocr_enabled"), _parse_bool),
    "CORS_ORIGINS": (("app", "cors", "origins"), _parse_list),
    "LOG_LEVEL": (("logging", "level"), str),
    "OCR_LANGUAGE": (("ocr", "language"), str),
    "OCR_DPI": (("ocr", "dpi"), str),
    "PARSER_MIN_AMOUNT": (("parser", "min_amount"), str),
    "PARSER_MAX_AMOUNT": (("parser", "max_amount"), str),
    "PARSER_DEVIATION_THRESHOLD": (("parser", "deviation_threshold"), str),
    "PARSER_LOOKAHEAD_LINES": (("parser", "lookahead_lines"), str),
    "LOOKUP_TABLES_PATH": (("parser", "tables_path"), str),
}


def _nested(path: Tuple[str, ...], value: Any) -> Dict[str, Any]:
    out: Any = value
    for key in reversed(path):
        out = {key: out}
    return out


def _env_override_dict() -> Dict[str, Any]:
    """Collect the overrides for every ENV_OVERRIDES variable that is set and non-empty."""
    overrides: Dict[str, Any] = {}
    for env_name, (path, convert) in ENV_OVERRIDES.items():
        raw = os.getenv(env_name)
        if not raw:
            continue
        value = convert(raw)
        if value is None or value == []:
            continue
        overrides = _deep_merge(overrides, _nested(path, value))
    return overrides


def load_config(path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load config.yml over the defaults and apply environment overrides.
    A missing file is not an error.
    """
    config_path = path or os.getenv("APP_CONFIG_PATH", "config.yml")
    file_cfg: Dict[str, Any] = {}
    if os.path.exists(config_path):
        with open(config_path, "r", encoding="utf-8") as f:
            file_cfg = yaml.safe_load(f) or {}

    cfg = _deep_merge(copy.deepcopy(DEFAULT_CONFIG), file_cfg)
    return _deep_merge(cfg, _env_override_dict())


_CONFIG_CACHE: Optional[Dict[str, Any]] = None


def get_config(path: Optional[str] = None, *, force_reload: bool = False) -> Dict[str, Any]:
    global _CONFIG_CACHE
    if _CONFIG_CACHE is None or force_reload:
        _CONFIG_CACHE = load_config(path)
    return _CONFIG_CACHE
