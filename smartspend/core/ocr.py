"""
OCR functionality for turning receipt images into text.
"""

import io
import logging
import os
from typing import Optional, Protocol

import pytesseract
from PIL import Image, UnidentifiedImageError

from .exceptions import ExtractionError

logger = logging.getLogger(__name__)

PDF_MAGIC = b"%PDF"


class TextExtractor(Protocol):
    def extract_text(self, image: bytes) -> str: ...


def pdf_to_text(data: bytes) -> str:
    """Extract text from a searchable PDF using PyMuPDF."""
    import fitz  # pymupdf

    doc = fitz.open(stream=data, filetype="pdf")
    try:
        return "\n".join(page.get_text() for page in doc)
    finally:
        doc.close()


class TesseractExtractor:
    """
    Single-shot Tesseract OCR over an in-memory image.

    Returns whatever text the engine recognizes (possibly ""). Images the
    engine cannot open or process raise ExtractionError; there are no retries.
    """

    def __init__(self, lang: Optional[str] = None, tesseract_cmd: Optional[str] = None):
        self.lang = lang or os.getenv("SMARTSPEND_OCR_LANG", "eng")
        tesseract_cmd = tesseract_cmd or os.getenv("TESSERACT_CMD")
        if tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = tesseract_cmd

    def _open_image(self, image: bytes) -> Image.Image:
        img = Image.open(io.BytesIO(image))
        img.load()
        # Improve OCR: grayscale
        if img.mode != "L":
            img = img.convert("L")
        return img

    def extract_text(self, image: bytes) -> str:
        if not image:
            raise ExtractionError("Empty image")

        if image[:4] == PDF_MAGIC:
            try:
                return pdf_to_text(image)
            except RuntimeError as exc:
                raise ExtractionError(f"Could not read PDF: {exc}") from exc

        try:
            img = self._open_image(image)
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as exc:
            raise ExtractionError(f"Unsupported or corrupt image: {exc}") from exc

        try:
            text = pytesseract.image_to_string(img, lang=self.lang)
        except (pytesseract.TesseractError, pytesseract.TesseractNotFoundError, RuntimeError) as exc:
            raise ExtractionError(f"OCR engine failed: {exc}") from exc

        logger.debug("OCR recognized %d characters", len(text))
        return text
