"""
Utility functions and constants for receipt processing.
"""

import os
from typing import Optional

# File type constants
IMAGE_EXTS = {".png", ".jpg", ".jpeg", ".tif", ".tiff", ".bmp", ".webp", ".gif"}
PDF_EXTS = {".pdf"}

# Callers reject anything larger before it reaches the OCR engine
MAX_IMAGE_BYTES = 10 * 1024 * 1024

CURRENCY_SYMBOLS = "₹$€£¥"
CURRENCY_CODES = {"₹": "INR", "$": "USD", "€": "EUR", "£": "GBP", "¥": "JPY"}

# Pattern constants for parsing
AMOUNT_PATTERN = (
    rf"[{CURRENCY_SYMBOLS}]\s*(\d{{1,3}}(?:,\d{{3}})+(?:\.\d{{2}})?|\d+(?:\.\d{{2}})?)"  # ₹1,200 / $45.99
    r"|(\d{1,3}(?:,\d{3})+\.\d{2}|\d+\.\d{2})"                                        # bare 12.34
)

MONTH_ABBREVIATIONS = ("jan", "feb", "mar", "apr", "may", "jun",
                       "jul", "aug", "sep", "oct", "nov", "dec")

DATE_PATTERN = (
    r"\b(?P<dmy>(?P<d1>\d{1,2})[-/](?P<m1>\d{1,2})[-/](?P<y1>\d{2,4}))\b"      # DD/MM/YY(YY), D-M-YY
    r"|\b(?P<ymd>(?P<y2>\d{4})[-/](?P<m2>\d{1,2})[-/](?P<d2>\d{1,2}))\b"       # YYYY/MM/DD
    r"|\b(?P<text>(?P<d3>\d{1,2})\s+(?P<mon>" + "|".join(MONTH_ABBREVIATIONS) +
    r")[a-z]*\.?\s+(?P<y3>\d{2,4}))\b"                                          # 5 Mar 2024
)

NUMERIC_LINE = r"^\d+$"


def normalize_amount(s: str) -> Optional[float]:
    """Normalize amount string to float."""
    if not s:
        return None
    s = s.replace(",", "").replace(" ", "")
    for sym in CURRENCY_SYMBOLS:
        s = s.replace(sym, "")
    try:
        return float(s)
    except ValueError:
        return None


def expand_year(y: int) -> int:
    """Two-digit years are taken as 20YY."""
    return y + 2000 if y < 100 else y


def truncate(text: str, limit: int = 200) -> str:
    """Cut text to `limit` characters, marking the cut with an ellipsis."""
    text = text or ""
    if len(text) > limit:
        return text[:limit] + "..."
    return text


def money_fmt(v: Optional[float], symbol: Optional[str] = None) -> str:
    """Format amount as currency."""
    if v is None:
        return ""
    symbol = symbol if symbol is not None else os.getenv("SMARTSPEND_CURRENCY", "₹")
    sign = "-" if v < 0 else ""
    return f"{sign}{symbol}{abs(v):,.2f}"


def pdf_money_fmt(v: Optional[float], symbol: Optional[str] = None) -> str:
    """
    Format amount for the built-in PDF fonts.

    Helvetica only covers WinAnsi (cp1252), so symbols outside it such as
    the rupee sign are written as their ISO code instead.
    """
    symbol = symbol if symbol is not None else os.getenv("SMARTSPEND_CURRENCY", "₹")
    try:
        symbol.encode("cp1252")
    except UnicodeEncodeError:
        code = CURRENCY_CODES.get(symbol)
        symbol = f"{code} " if code else ""
    return money_fmt(v, symbol=symbol)
