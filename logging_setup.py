"""
Central logging setup.

- Uses stdlib logging (no external deps)
- Every record carries the current request id, so parser/OCR lines can be
  matched to the upload that produced them
- Per-logger levels come from config.yml (`logging.loggers`)
"""

from __future__ import annotations

import logging
import logging.config
import time
import uuid
from typing import Any, Dict, Optional

from flask import Flask, g, has_request_context, request

DEFAULT_FORMAT = "%(asctime)s %(levelname)s %(name)s [%(request_id)s] %(message)s"

# OCR of a phone photo routinely takes a few seconds; beyond this it is worth a warning
DEFAULT_SLOW_REQUEST_MS = 15000


class RequestIdFilter(logging.Filter):
    """Stamp records with the Flask request id ("-" outside a request)."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = getattr(g, "request_id", "-") if has_request_context() else "-"
        return True


def setup_logging(cfg: Optional[Dict[str, Any]] = None) -> None:
    cfg = cfg or {}
    log_cfg = (cfg.get("logging") if isinstance(cfg, dict) else None) or {}
    level = str(log_cfg.get("level", "INFO")).upper()
    fmt = str(log_cfg.get("format", DEFAULT_FORMAT))
    # e.g. {"condo_bills": "DEBUG"} to trace extraction heuristics
    loggers = {
        str(name): {"level": str(lvl).upper()}
        for name, lvl in (log_cfg.get("loggers") or {}).items()
    }

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "filters": {"request_id": {"()": RequestIdFilter}},
            "formatters": {"default": {"format": fmt}},
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "default",
                    "filters": ["request_id"],
                }
            },
            "loggers": loggers,
            "root": {"handlers": ["console"], "level": level},
        }
    )


def init_request_logging(app: Flask, slow_request_ms: Optional[float] = None) -> None:
    logger = logging.getLogger("http")
    slow_ms = DEFAULT_SLOW_REQUEST_MS if slow_request_ms is None else slow_request_ms

    @app.before_request
    def _start_request_timer() -> None:
        g._request_start = time.time()
        g.request_id = request.headers.get("X-Request-Id") or str(uuid.uuid4())

    @app.after_request
    def _log_request(response):  # type: ignore[no-untyped-def]
        try:
            start = getattr(g, "_request_start", None)
            dur_ms = None if start is None else round((time.time() - start) * 1000, 2)
            log = logger.warning if dur_ms is not None and dur_ms > slow_ms else logger.info
            log(
                "%s %s status=%s bytes_in=%s dur_ms=%s",
                request.method,
                request.path,
                response.status_code,
                request.content_length,
                dur_ms,
            )
        except Exception:
            # never break responses due to logging
            pass

        response.headers["X-Request-Id"] = getattr(g, "request_id", "")
        return response
