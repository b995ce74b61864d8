from __future__ import annotations

from flask import Blueprint, current_app, jsonify

config_api_bp = Blueprint("config_api", __name__)


@config_api_bp.get("/api/config")
def get_config():
    """
    Return parser configuration and the known catalogues.
    Used by the frontend to offer property/category pickers when OCR misses them.
    """
    parser = current_app.config["CONDO_PARSER"]
    ocr_enabled = bool(current_app.config.get("CONDO_OCR_ENABLED", True))

    return jsonify(
        {
            "condominiumOcrEnabled": ocr_enabled,
            "ocrLanguage": current_app.config["OCR_SERVICE"].language,
            "parser": parser.settings.to_dict(),
            "properties": parser.tables.units.property_names(),
            "itemCategories": parser.tables.items.names(),
        }
    )
