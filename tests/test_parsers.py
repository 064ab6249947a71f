"""Tests for receipt field parsing"""
import datetime as dt

import pytest

from smartspend.core.parsers import (parse_amount, parse_date, parse_merchant, parse_receipt,
                                     split_lines)


def test_parse_empty_text(today):
    """Empty text yields no amount, no merchant, today's date and no lines"""
    parsed = parse_receipt("", today=today)

    assert parsed.amount is None
    assert parsed.merchant is None
    assert parsed.date == today
    assert parsed.lines == ()
    assert parsed.date_found is False


def test_parse_picks_largest_amount():
    """The total dominates the subtotal"""
    text = "Subtotal: $40.00\nTotal: $45.99\n"
    assert parse_amount(text) == 45.99


def test_parse_full_receipt(sample_receipt_text, today):
    """A realistic receipt yields amount, date and merchant"""
    parsed = parse_receipt(sample_receipt_text, today=today)

    assert parsed.amount == 45.99
    assert parsed.date == dt.date(2024, 3, 15)
    assert parsed.date_found is True
    assert parsed.merchant == "Joe's Pizza Restaurant"
    assert parsed.source_text == sample_receipt_text
    assert "Total: $45.99" in parsed.lines
    assert "" not in parsed.lines


@pytest.mark.parametrize("text,expected", [
    ("₹1,250.00 paid", 1250.0),
    ("€12 only", 12.0),
    ("£3.50", 3.5),
    ("¥500", 500.0),
    ("Amount 19.95", 19.95),
])
def test_parse_amount_currency_symbols(text, expected):
    """Every supported currency symbol and bare two-decimal numbers are recognized"""
    assert parse_amount(text) == pytest.approx(expected)


def test_parse_amount_ignores_plain_integers():
    """Integers without a currency symbol are not amounts"""
    assert parse_amount("Table 12\nGuests 4\nInvoice 20391") is None


@pytest.mark.parametrize("text,expected", [
    ("Date: 15/03/2024", dt.date(2024, 3, 15)),
    ("15-3-24", dt.date(2024, 3, 15)),
    ("2024/03/15 10:42", dt.date(2024, 3, 15)),
    ("2024-03-15", dt.date(2024, 3, 15)),
    ("5 Mar 2024", dt.date(2024, 3, 5)),
    ("05 DEC 2023", dt.date(2023, 12, 5)),
])
def test_parse_date_shapes(text, expected):
    """Day-first, year-first and textual month dates all parse"""
    date, token = parse_date(text)
    assert date == expected
    assert token


def test_parse_date_takes_first_in_document_order():
    """The earliest date-shaped token wins"""
    date, _ = parse_date("Printed 2024-01-02\nVisit 15/03/2024")
    assert date == dt.date(2024, 1, 2)


def test_unparseable_date_falls_back_to_today(today):
    """An impossible calendar date defaults to the processing date without raising"""
    parsed = parse_receipt("Corner Store\n31/02/2024\n$5.00", today=today)

    assert parsed.date == today
    assert parsed.date_found is False
    assert parsed.amount == 5.0


def test_parse_date_none_when_absent():
    assert parse_date("no dates here") == (None, None)


def test_merchant_skips_numeric_currency_and_date_lines():
    """First line passing all exclusion filters is the merchant"""
    assert parse_merchant(["1234", "$5.00", "Joe's Pizza"]) == "Joe's Pizza"
    assert parse_merchant(["12/03/2024", "Cafe Mocha"]) == "Cafe Mocha"


def test_merchant_only_checks_top_three_lines():
    """A name on the fourth line is not considered"""
    assert parse_merchant(["123", "$4.00", "5/6/24", "Real Shop"]) is None


def test_merchant_requires_more_than_three_chars():
    assert parse_merchant(["ABC", "Big Bazaar"]) == "Big Bazaar"


def test_merchant_from_receipt_text(today):
    """Merchant selection works end to end on raw text"""
    parsed = parse_receipt("1234\n$5.00\nJoe's Pizza\nTotal $5.00", today=today)
    assert parsed.merchant == "Joe's Pizza"


def test_split_lines_trims_and_drops_blank():
    assert split_lines("  a  \n\n   \nb\r\n") == ["a", "b"]


def test_parse_is_deterministic(sample_receipt_text, today):
    """Parsing the same text twice gives equal results"""
    assert parse_receipt(sample_receipt_text, today=today) == parse_receipt(sample_receipt_text, today=today)
