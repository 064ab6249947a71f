"""
Parsers for extracting information from receipt text.
"""

import re
import logging
import datetime as dt
from typing import Optional, List, Tuple

from .models import ParsedReceiptFields
from .utils import (AMOUNT_PATTERN, DATE_PATTERN, NUMERIC_LINE, CURRENCY_SYMBOLS,
                    MONTH_ABBREVIATIONS, normalize_amount, expand_year)

logger = logging.getLogger(__name__)

DATE_RE = re.compile(DATE_PATTERN, flags=re.IGNORECASE)
AMOUNT_RE = re.compile(AMOUNT_PATTERN)


def split_lines(text: str) -> List[str]:
    """Trimmed, non-empty lines in document order."""
    return [ln.strip() for ln in (text or "").splitlines() if ln.strip()]


def parse_amount(text: str) -> Optional[float]:
    """
    Extract the total amount from receipt text.

    Every currency-prefixed number and every bare two-decimal number is a
    candidate; the largest one is taken as the grand total, since subtotals,
    taxes and line items are all smaller than it.
    """
    candidates = []
    for m in AMOUNT_RE.finditer(text or ""):
        val = normalize_amount(m.group(1) or m.group(2))
        if val is not None:
            candidates.append(val)

    if not candidates:
        return None
    return max(candidates)


def _match_to_date(m: re.Match) -> dt.date:
    if m.group("dmy"):
        d, mo, y = int(m.group("d1")), int(m.group("m1")), expand_year(int(m.group("y1")))
    elif m.group("ymd"):
        y, mo, d = int(m.group("y2")), int(m.group("m2")), int(m.group("d2"))
    else:
        d, y = int(m.group("d3")), expand_year(int(m.group("y3")))
        mo = MONTH_ABBREVIATIONS.index(m.group("mon").lower()) + 1
    return dt.date(y, mo, d)


def parse_date(text: str) -> Tuple[Optional[dt.date], Optional[str]]:
    """
    Find the first date-shaped token in the text and parse it.

    Returns (date, matched_token). The date is None when there is no
    date-shaped token or the first one is not a real calendar date
    (e.g. 31/02/2024); later tokens are not tried.
    """
    m = DATE_RE.search(text or "")
    if not m:
        return None, None
    try:
        return _match_to_date(m), m.group(0)
    except ValueError:
        logger.warning("Could not parse date: %s", m.group(0))
        return None, m.group(0)


def is_date_line(line: str) -> bool:
    return DATE_RE.fullmatch(line.strip()) is not None


def parse_merchant(lines: List[str]) -> Optional[str]:
    """First of the top three lines that looks like a business name."""
    for ln in lines[:3]:
        if len(ln) <= 3:
            continue
        if re.match(NUMERIC_LINE, ln):
            continue
        if ln[0] in CURRENCY_SYMBOLS:
            continue
        if is_date_line(ln):
            continue
        return ln
    return None


def parse_receipt(text: str, today: Optional[dt.date] = None) -> ParsedReceiptFields:
    """
    Parse raw OCR text into structured receipt fields.

    Pure apart from the clock: when no usable date is found the processing
    date (`today`, default dt.date.today()) is used and `date_found` is False.
    """
    text = text or ""
    lines = split_lines(text)

    amount = parse_amount(text)
    date, _ = parse_date(text)
    date_found = date is not None
    if not date_found:
        date = today or dt.date.today()

    merchant = parse_merchant(lines)

    logger.debug("Parsed receipt: amount=%s date=%s merchant=%r lines=%d",
                 amount, date.isoformat(), merchant, len(lines))

    return ParsedReceiptFields(
        amount=amount,
        date=date,
        merchant=merchant,
        source_text=text,
        lines=tuple(lines),
        date_found=date_found,
    )
