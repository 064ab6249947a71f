"""Pytest configuration and fixtures"""
import datetime as dt
import io
import logging

import pytest
from PIL import Image

from smartspend.core.database import ExpenseStore


FIXED_TODAY = dt.date(2024, 6, 30)


@pytest.fixture(autouse=True)
def reset_smartspend_logger():
    """The CLI installs its own handler; undo that between tests."""
    yield
    logger = logging.getLogger("smartspend")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def today():
    return FIXED_TODAY


@pytest.fixture
def sample_receipt_text():
    """OCR output of a typical restaurant receipt"""
    return (
        "Joe's Pizza Restaurant\n"
        "12 Market Road\n"
        "Date: 15/03/2024\n"
        "\n"
        "Margherita Pizza      $18.00\n"
        "Garlic Bread           $6.00\n"
        "Coffee                 $4.50\n"
        "Subtotal: $40.00\n"
        "Tax: 5.99\n"
        "Total: $45.99\n"
        "Thank you for dining with us\n"
    )


@pytest.fixture
def png_bytes():
    """A small valid PNG"""
    buf = io.BytesIO()
    Image.new("RGB", (40, 20), "white").save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def store(tmp_path):
    """Expense store backed by a temporary SQLite file"""
    return ExpenseStore(tmp_path / "test_expenses.sqlite").init()


@pytest.fixture
def receipt_payload():
    """Payload in the shape the receipt scanner hands to the store"""
    return {
        "amount": 45.99,
        "category": "food",
        "date": "2024-03-15",
        "notes": "Joe's Pizza\n\nRaw OCR: Joe's Pizza Total: $45.99",
        "source": "receipt",
        "ocrRaw": "Joe's Pizza Total: $45.99",
        "ocrParsed": {
            "merchant": "Joe's Pizza",
            "confidence": 0.5,
            "matchedKeywords": ["pizza"],
            "originalAmount": 45.99,
            "parsedData": {"amount": 45.99, "date": "2024-03-15", "merchant": "Joe's Pizza"},
        },
    }
