"""
HTTP tests for the condominium OCR endpoints, using Flask's test client and
a stub OCR service.
"""

import io
import logging

import pytest

from app import create_app
from condo_bills import OcrResult, OcrService
from condo_bills.pipeline import NO_TEXT_ERROR
from condo_bills.settings import ParserSettings
from logging_setup import RequestIdFilter

BILL_TEXT = "6 000307\nCONDOMINIO 850,00\nENEL\n180,00\nTOTAL 1.030,00"


class StubOcrService(OcrService):
    def __init__(self, text=BILL_TEXT, error=None):
        super().__init__()
        self.text = text
        self.error = error
        self.uploads = []

    def recognize_bytes(self, data, filename):
        self.uploads.append((filename, len(data)))
        if self.error:
            raise self.error
        return OcrResult(text=self.text, metadata={"method": "image_ocr"}, success=True)


def _make_client(ocr=None, **features):
    cfg = {"logging": {"level": "WARNING"}, "features": features}
    app = create_app(cfg)
    app.testing = True
    app.config["OCR_SERVICE"] = ocr or StubOcrService()
    return app, app.test_client()


@pytest.fixture
def client():
    return _make_client()[1]


def _upload(client, content=b"fake image bytes", filename="conta.png"):
    return client.post(
        "/api/condominium/ocr",
        data={"image": (io.BytesIO(content), filename)},
        content_type="multipart/form-data",
    )


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.get_json() == {"status": "ok"}
    assert resp.headers["X-Request-Id"]


def test_ocr_upload_is_parsed():
    ocr = StubOcrService()
    _, client = _make_client(ocr)
    resp = _upload(client)

    assert resp.status_code == 200
    body = resp.get_json()
    assert body["success"] is True
    assert body["rawText"] == BILL_TEXT
    assert body["data"]["propertyName"] == "Sevilha 307"
    assert body["data"]["totalAmount"] == 1030.0
    assert body["diagnostics"]["ocr"]["method"] == "image_ocr"
    assert ocr.uploads == [("conta.png", len(b"fake image bytes"))]


def test_parse_failure_still_returns_200():
    _, client = _make_client(StubOcrService(text=""))
    resp = _upload(client)

    assert resp.status_code == 200
    body = resp.get_json()
    assert body["success"] is False
    assert body["error"] == NO_TEXT_ERROR
    assert body["rawText"] == ""


def test_ocr_engine_crash_is_reported():
    _, client = _make_client(StubOcrService(error=RuntimeError("tesseract crashed")))
    resp = _upload(client)

    assert resp.status_code == 200
    assert resp.get_json() == {"success": False, "rawText": "", "error": "tesseract crashed"}


def test_missing_upload(client):
    resp = client.post("/api/condominium/ocr", data={}, content_type="multipart/form-data")
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "No image uploaded"


@pytest.mark.parametrize("filename", ["conta.txt", "conta", "conta.exe"])
def test_rejects_unsupported_extension(client, filename):
    resp = _upload(client, filename=filename)
    assert resp.status_code == 400
    assert resp.get_json()["success"] is False


@pytest.mark.parametrize("filename", ["conta.TIFF", "conta.webp", "boleto.final.pdf"])
def test_accepts_every_supported_extension(filename):
    ocr = StubOcrService()
    _, client = _make_client(ocr)
    resp = _upload(client, filename=filename)
    assert resp.status_code == 200
    assert ocr.uploads == [(filename, len(b"fake image bytes"))]


def test_empty_config_sections_fall_back_to_defaults():
    app = create_app({"app": None, "features": None, "logging": None, "ocr": None, "parser": None})
    assert app.config["MAX_CONTENT_LENGTH"] == 16 * 1024 * 1024
    assert app.config["CONDO_OCR_ENABLED"] is True
    assert app.config["OCR_SERVICE"].language == "por"
    assert app.config["CONDO_PARSER"].settings == ParserSettings()


def test_rejects_empty_file(client):
    resp = _upload(client, content=b"")
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "Uploaded file is empty"


def test_rejects_oversized_upload():
    app, client = _make_client()
    app.config["MAX_CONTENT_LENGTH"] = 64
    resp = _upload(client, content=b"x" * 1024)
    assert resp.status_code == 413
    assert resp.get_json()["success"] is False


def test_feature_flag_disables_endpoints():
    _, client = _make_client(condominium_ocr_enabled=False)

    assert client.get("/api/condominium/enabled").get_json() == {"enabled": False}
    assert _upload(client).status_code == 403
    assert client.post("/api/condominium/parse-text", json={"text": BILL_TEXT}).status_code == 403


def test_feature_enabled_by_default(client):
    assert client.get("/api/condominium/enabled").get_json() == {"enabled": True}


def test_parse_text(client):
    resp = client.post("/api/condominium/parse-text", json={"text": BILL_TEXT})

    assert resp.status_code == 200
    body = resp.get_json()
    assert body["success"] is True
    assert [item["name"] for item in body["data"]["lineItems"]] == ["Taxa Condominial", "ENEL (Luz)"]


@pytest.mark.parametrize("payload", [{}, {"text": 5}, {"text": None}])
def test_parse_text_requires_text(client, payload):
    resp = client.post("/api/condominium/parse-text", json=payload)
    assert resp.status_code == 400


def test_parse_text_without_json_body(client):
    resp = client.post("/api/condominium/parse-text", data="plain", content_type="text/plain")
    assert resp.status_code == 400


def test_config_endpoint(client):
    body = client.get("/api/config").get_json()

    assert body["condominiumOcrEnabled"] is True
    assert body["ocrLanguage"] == "por"
    assert body["parser"] == {
        "minAmount": 1.0,
        "maxAmount": 50000.0,
        "deviationThreshold": 0.05,
        "lookaheadLines": 3,
    }
    assert "Sevilha 307" in body["properties"]
    assert body["itemCategories"][0] == "Taxa Condominial"


def test_request_id_is_echoed(client):
    resp = client.get("/health", headers={"X-Request-Id": "upload-42"})
    assert resp.headers["X-Request-Id"] == "upload-42"


def test_request_id_filter_outside_request():
    record = logging.LogRecord("condo_bills", logging.INFO, __file__, 1, "msg", None, None)
    assert RequestIdFilter().filter(record)
    assert record.request_id == "-"
