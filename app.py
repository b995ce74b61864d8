"""
Condominium Bill OCR - Flask Backend
====================================

OVERVIEW:
Accepts photos/scans of condominium bills, runs OCR (Tesseract, Portuguese) and
parses the text into a structured record: property/unit, competency month,
due date, line items and a reconciled total.

PARSING BEHAVIOR:
- OCR text is noisy (O/0, J/7, S/5 swaps, split columns, mixed separators);
  the condo_bills package recovers amounts with layered heuristics
- Failed parses still return the raw OCR text so the operator can type the
  bill in by hand
- Lookup tables (unit codes, item synonyms) are built once at startup and
  shared read-only by all request threads

API ENDPOINTS:
- POST /api/condominium/ocr - Upload bill image/PDF (form field "image")
- POST /api/condominium/parse-text - Re-parse corrected OCR text
- GET /api/condominium/enabled - Feature flag
- GET /api/config - Parser settings, known properties and item categories

KNOWN LIMITATIONS:
- Only the bill layouts and unit codes in the lookup tables are recognised
- OCR runs on the request thread; the caller owns timeouts
"""

import logging
from typing import Any, Dict, Optional

# Load environment variables from .env file (if it exists)
# NOTE: load_dotenv() returns False when no .env is found; log accurately to reduce confusion.
from dotenv import find_dotenv, load_dotenv
from flask import Flask, jsonify
from flask_cors import CORS

from condo_bills import CondominiumBillParser, OcrService, ParserSettings, load_tables
from config_loader import get_config
from logging_setup import init_request_logging, setup_logging
from routes.condominium_api import condominium_bp
from routes.config_api import config_api_bp

logger = logging.getLogger(__name__)

MAX_UPLOAD_MB = 16


def _load_env() -> str:
    """Load .env if present; returns a status line to log once logging is configured."""
    dotenv_path = find_dotenv(usecwd=True)
    if not dotenv_path:
        return "[ENV] No .env file found (set env vars via shell or create .env)"
    if load_dotenv(dotenv_path=dotenv_path, override=False):
        return f"[ENV] Loaded environment variables from .env ({dotenv_path})"
    return f"[ENV] Found .env at {dotenv_path}, but no variables were loaded/changed"


def create_app(cfg: Optional[Dict[str, Any]] = None) -> Flask:
    """
    Build the Flask app.

    Args:
        cfg: Parsed configuration; loaded from config.yml + env when omitted
    """
    env_status = None
    if cfg is None:
        env_status = _load_env()
        cfg = get_config()
    setup_logging(cfg)
    if env_status:
        logger.info(env_status)

    app = Flask(__name__, static_folder=None)

    app_cfg = cfg.get("app") or {}
    cors_origins = (app_cfg.get("cors") or {}).get("origins") or "*"
    CORS(app, origins=cors_origins)

    features = cfg.get("features") or {}
    parser_cfg = cfg.get("parser") or {}

    # Tables are frozen before the first request is served
    tables = load_tables(parser_cfg.get("tables_path"))
    settings = ParserSettings.from_config(cfg)

    app.config["APP_CFG"] = cfg
    app.config["MAX_CONTENT_LENGTH"] = int(app_cfg.get("max_upload_mb") or MAX_UPLOAD_MB) * 1024 * 1024
    app.config["CONDO_OCR_ENABLED"] = bool(features.get("condominium_ocr_enabled", True))
    app.config["CONDO_PARSER"] = CondominiumBillParser(tables=tables, settings=settings)
    app.config["OCR_SERVICE"] = OcrService.from_config(cfg)

    init_request_logging(app, (cfg.get("logging") or {}).get("slow_request_ms"))
    app.register_blueprint(condominium_bp)
    app.register_blueprint(config_api_bp)

    @app.errorhandler(413)
    def _too_large(_err):
        return jsonify({'success': False, 'error': 'Uploaded file is too large'}), 413

    @app.get("/health")
    def health():
        return jsonify({"status": "ok"})

    logger.info(
        f"Condominium OCR ready: {len(tables.units)} unit variants, "
        f"{len(tables.items)} item categories, range {settings.min_amount}-{settings.max_amount}"
    )
    return app
