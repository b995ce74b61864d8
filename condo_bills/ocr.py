"""
OCR Service for Condominium Bills
==================================
Turns a photographed/scanned bill (image or PDF) into raw text.

The engine is treated as a black box: whatever text it returns is handed to
the parser untouched, and any engine error is reported back as a failed
OcrResult carrying the message.
"""

import io
import os
import logging
from typing import Any, Dict, Optional
from dataclasses import dataclass

import pymupdf  # PyMuPDF 1.26+ uses pymupdf, not fitz
from PIL import Image
import pytesseract

logger = logging.getLogger(__name__)


@dataclass
class OcrResult:
    """Result of running OCR over one upload."""
    text: str
    metadata: Dict[str, Any]
    success: bool
    error: Optional[str] = None


class OcrService:
    """
    Runs Tesseract (Portuguese) over bill uploads.

    Detection order:
    1. PDF with native text -> PyMuPDF extraction
    2. PDF without text (scanned) -> render pages, OCR via pytesseract
    3. Images (jpg, png, tiff, etc) -> OCR via pytesseract
    """

    PDF_EXTENSIONS = {'.pdf'}
    IMAGE_EXTENSIONS = {'.jpg', '.jpeg', '.png', '.gif', '.bmp', '.tiff', '.tif', '.webp'}

    MIN_TEXT_LENGTH_FOR_NATIVE = 100
    DEFAULT_LANGUAGE = 'por'
    OCR_CONFIG = '--oem 3 --psm 6'

    def __init__(self, language: Optional[str] = None, dpi: int = 200, config: Optional[str] = None):
        """
        Args:
            language: Tesseract language pack (default 'por')
            dpi: DPI for PDF to image conversion
            config: Extra Tesseract CLI flags
        """
        self.language = language or self.DEFAULT_LANGUAGE
        self.dpi = dpi
        self.config = config or self.OCR_CONFIG

    @classmethod
    def from_config(cls, cfg: Optional[Dict[str, Any]] = None) -> "OcrService":
        cfg = cfg or {}
        ocr_cfg = (cfg.get("ocr") if isinstance(cfg, dict) else None) or {}
        try:
            dpi = int(ocr_cfg.get("dpi", 200))
        except (TypeError, ValueError):
            dpi = 200
        return cls(language=ocr_cfg.get("language"), dpi=dpi, config=ocr_cfg.get("config"))

    def is_supported(self, filename: str) -> bool:
        ext = os.path.splitext(filename or "")[1].lower()
        return ext in self.PDF_EXTENSIONS or ext in self.IMAGE_EXTENSIONS

    def recognize(self, file_path: str) -> OcrResult:
        """
        Extract text from a bill file on disk.

        Args:
            file_path: Path to the image or PDF

        Returns:
            OcrResult with text, metadata, and status
        """
        if not os.path.exists(file_path):
            return OcrResult(text="", metadata={}, success=False, error=f"File not found: {file_path}")

        with open(file_path, 'rb') as f:
            data = f.read()
        return self.recognize_bytes(data, os.path.basename(file_path))

    def recognize_bytes(self, data: bytes, filename: str) -> OcrResult:
        """Extract text from an in-memory upload; the extension decides the route."""
        ext = os.path.splitext(filename or "")[1].lower()
        file_size = len(data or b"")

        try:
            if ext in self.PDF_EXTENSIONS:
                return self._recognize_pdf(data, file_size)
            elif ext in self.IMAGE_EXTENSIONS:
                return self._recognize_image(data, file_size)
            else:
                return OcrResult(
                    text="",
                    metadata={"file_size": file_size, "extension": ext},
                    success=False,
                    error=f"Unsupported file type: {ext or 'unknown'}"
                )
        except Exception as e:
            logger.exception(f"OCR failed for {filename}")
            return OcrResult(
                text="",
                metadata={"file_size": file_size, "extension": ext},
                success=False,
                error=str(e)
            )

    def _recognize_image(self, data: bytes, file_size: int) -> OcrResult:
        img = Image.open(io.BytesIO(data))
        if img.mode not in ('RGB', 'L'):
            img = img.convert('RGB')

        text = pytesseract.image_to_string(img, lang=self.language, config=self.config)
        logger.info(f"Image OCR: {len(text)} chars from {img.width}x{img.height} image")

        return OcrResult(
            text=text,
            metadata={
                "method": "image_ocr",
                "pages": 1,
                "file_size": file_size,
                "image_size": f"{img.width}x{img.height}",
                "char_count": len(text),
            },
            success=True
        )

    def _recognize_pdf(self, data: bytes, file_size: int) -> OcrResult:
        doc = pymupdf.open(stream=data, filetype="pdf")
        try:
            page_count = len(doc)
            native_text = "\n".join(page.get_text("text") for page in doc)

            if len(native_text.strip()) >= self.MIN_TEXT_LENGTH_FOR_NATIVE:
                logger.info(f"PDF native text: {len(native_text.strip())} chars")
                return OcrResult(
                    text=native_text,
                    metadata={"method": "pdf_native", "pages": page_count, "file_size": file_size,
                              "char_count": len(native_text)},
                    success=True
                )

            logger.info("PDF has insufficient native text, falling back to OCR")
            mat = pymupdf.Matrix(self.dpi / 72, self.dpi / 72)
            parts = []
            for page in doc:
                pix = page.get_pixmap(matrix=mat)
                img = Image.frombytes("RGB", [pix.width, pix.height], pix.samples)
                parts.append(pytesseract.image_to_string(img, lang=self.language, config=self.config))
        finally:
            doc.close()

        text = "\n".join(parts)
        return OcrResult(
            text=text,
            metadata={"method": "pdf_ocr", "pages": page_count, "file_size": file_size, "char_count": len(text)},
            success=True
        )
