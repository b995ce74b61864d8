"""Condominium bill OCR routes.

The parser and OCR service are built once in app.create_app and read from
`current_app.config`; these handlers only move bytes and JSON around.
"""

from __future__ import annotations

import logging

from flask import Blueprint, current_app, jsonify, request

from condo_bills import CondominiumBillParser, OcrService, ParseResult

logger = logging.getLogger(__name__)

condominium_bp = Blueprint("condominium", __name__)


def _feature_enabled() -> bool:
    return bool(current_app.config.get("CONDO_OCR_ENABLED", True))


def _parser() -> CondominiumBillParser:
    return current_app.config["CONDO_PARSER"]


def _ocr_service() -> OcrService:
    return current_app.config["OCR_SERVICE"]


@condominium_bp.route('/api/condominium/enabled', methods=['GET'])
def condominium_feature_status():
    """Check if condominium OCR is enabled."""
    return jsonify({'enabled': _feature_enabled()})


@condominium_bp.route('/api/condominium/ocr', methods=['POST'])
def process_condominium_bill():
    """
    OCR an uploaded condominium bill and parse it.

    Form field `image` holds the photo/scan (image or PDF). Parse failures are
    answered with 200 and success=false so the client can show rawText for
    manual entry; only request problems get a 4xx.
    """
    if not _feature_enabled():
        return jsonify({'success': False, 'error': 'Condominium OCR is disabled'}), 403

    if 'image' not in request.files:
        return jsonify({'success': False, 'error': 'No image uploaded'}), 400

    file = request.files['image']
    if file.filename == '':
        return jsonify({'success': False, 'error': 'No file selected'}), 400

    if not _ocr_service().is_supported(file.filename):
        return jsonify({'success': False, 'error': 'Allowed file types: PDF, JPG, PNG, WEBP, GIF, BMP, TIFF'}), 400

    content = file.read()
    if not content:
        return jsonify({'success': False, 'error': 'Uploaded file is empty'}), 400

    logger.info(f"Condominium OCR upload: {file.filename} ({len(content)} bytes)")
    try:
        result = _parser().parse_image(content, _ocr_service(), filename=file.filename)
    except Exception as e:
        logger.exception("Condominium bill processing failed")
        result = ParseResult.fail(str(e) or "OCR processing failed")

    return jsonify(result.to_dict())


@condominium_bp.route('/api/condominium/parse-text', methods=['POST'])
def parse_condominium_text():
    """
    Re-parse OCR text, e.g. after an operator fixed obvious OCR mistakes.

    Body: {"text": "..."}
    """
    if not _feature_enabled():
        return jsonify({'success': False, 'error': 'Condominium OCR is disabled'}), 403

    payload = request.get_json(silent=True) or {}
    text = payload.get('text')
    if not isinstance(text, str):
        return jsonify({'success': False, 'error': 'Field "text" is required'}), 400

    result = _parser().parse(text)
    return jsonify(result.to_dict())
