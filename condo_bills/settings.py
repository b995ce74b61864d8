"""Tunable parser thresholds, resolved from the app config."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class ParserSettings:
    """
    Thresholds shared by every parsing stage.

    min_amount/max_amount bound the plausible monetary range; anything outside
    it is treated as OCR noise. deviation_threshold is the relative gap between
    the labelled total and the item sum above which a warning is raised.
    """

    min_amount: Decimal = Decimal("1.00")
    max_amount: Decimal = Decimal("50000.00")
    deviation_threshold: Decimal = Decimal("0.05")
    lookahead_lines: int = 3

    @classmethod
    def from_config(cls, cfg: Optional[Dict[str, Any]] = None) -> "ParserSettings":
        cfg = cfg or {}
        parser_cfg = (cfg.get("parser") if isinstance(cfg, dict) else None) or {}
        defaults = cls()
        return cls(
            min_amount=_to_decimal(parser_cfg.get("min_amount"), defaults.min_amount),
            max_amount=_to_decimal(parser_cfg.get("max_amount"), defaults.max_amount),
            deviation_threshold=_to_decimal(parser_cfg.get("deviation_threshold"), defaults.deviation_threshold),
            lookahead_lines=_to_int(parser_cfg.get("lookahead_lines"), defaults.lookahead_lines),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "minAmount": float(self.min_amount),
            "maxAmount": float(self.max_amount),
            "deviationThreshold": float(self.deviation_threshold),
            "lookaheadLines": self.lookahead_lines,
        }


def _to_decimal(value: Any, default: Decimal) -> Decimal:
    if value is None or value == "":
        return default
    try:
        return Decimal(str(value))
    except InvalidOperation:
        return default


def _to_int(value: Any, default: int) -> int:
    if value is None or value == "":
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default
