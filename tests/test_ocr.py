"""Tests for the Tesseract text extractor"""
from unittest.mock import patch

import pytesseract
import pytest
from PIL import Image

from smartspend.core.exceptions import ExtractionError
from smartspend.core.ocr import TesseractExtractor


def test_extract_text_success(png_bytes):
    """Recognized text is returned as-is"""
    with patch("smartspend.core.ocr.pytesseract.image_to_string",
               return_value="Joe's Pizza\nTotal $45.99") as ocr:
        text = TesseractExtractor(lang="eng").extract_text(png_bytes)

    assert text == "Joe's Pizza\nTotal $45.99"
    ocr.assert_called_once()
    image_arg = ocr.call_args[0][0]
    assert image_arg.mode == "L"
    assert ocr.call_args[1]["lang"] == "eng"


def test_extract_text_may_be_empty(png_bytes):
    """A blank image is not an error"""
    with patch("smartspend.core.ocr.pytesseract.image_to_string", return_value=""):
        assert TesseractExtractor().extract_text(png_bytes) == ""


def test_extract_text_corrupt_image():
    """Bytes that are not an image raise ExtractionError"""
    with patch("smartspend.core.ocr.pytesseract.image_to_string") as ocr:
        with pytest.raises(ExtractionError, match="Unsupported or corrupt image"):
            TesseractExtractor().extract_text(b"definitely not an image")
    ocr.assert_not_called()


def test_extract_text_empty_bytes():
    with pytest.raises(ExtractionError):
        TesseractExtractor().extract_text(b"")


def test_extract_text_engine_failure(png_bytes):
    """Engine errors are wrapped"""
    with patch("smartspend.core.ocr.pytesseract.image_to_string",
               side_effect=pytesseract.TesseractError(1, "boom")):
        with pytest.raises(ExtractionError, match="OCR engine failed"):
            TesseractExtractor().extract_text(png_bytes)


def test_extract_text_engine_missing(png_bytes):
    with patch("smartspend.core.ocr.pytesseract.image_to_string",
               side_effect=pytesseract.TesseractNotFoundError()):
        with pytest.raises(ExtractionError):
            TesseractExtractor().extract_text(png_bytes)


def test_language_from_environment(monkeypatch):
    monkeypatch.setenv("SMARTSPEND_OCR_LANG", "hin")
    assert TesseractExtractor().lang == "hin"


def test_pdf_is_routed_to_text_layer():
    """PDF bytes skip Tesseract and read the text layer"""
    with patch("smartspend.core.ocr.pdf_to_text", return_value="Invoice total $10.00") as pdf, \
            patch("smartspend.core.ocr.pytesseract.image_to_string") as ocr:
        text = TesseractExtractor().extract_text(b"%PDF-1.4 fake")

    assert text == "Invoice total $10.00"
    pdf.assert_called_once()
    ocr.assert_not_called()


def test_extract_text_decompression_bomb(png_bytes):
    """Oversized pixel counts are reported as ExtractionError"""
    with patch("smartspend.core.ocr.Image.open",
               side_effect=Image.DecompressionBombError("too many pixels")), \
            patch("smartspend.core.ocr.pytesseract.image_to_string") as ocr:
        with pytest.raises(ExtractionError, match="Unsupported or corrupt image"):
            TesseractExtractor().extract_text(png_bytes)
    ocr.assert_not_called()
