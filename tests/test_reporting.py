"""Tests for summaries and exports"""
import csv
import datetime as dt
from unittest.mock import patch

from smartspend.core.models import Budget, ExpenseRecord, IncomeRecord, SavingRecord, SavingsGoal
from smartspend.core.reporting import (budget_utilization, build_summary_pdf, category_totals,
                                       format_goal, format_summary, monthly_summary, over_budget,
                                       savings_total, write_expenses_csv)
from smartspend.core.utils import pdf_money_fmt


def expense(amount, category, date, notes=""):
    return ExpenseRecord(id=f"{category}-{date}-{amount}", amount=amount, category=category,
                         date=date, notes=notes)


EXPENSES = [
    expense(300.0, "food", "2024-03-02", "Joe's Pizza\n\nRaw OCR: ..."),
    expense(250.0, "food", "2024-03-10"),
    expense(120.0, "transport", "2024-03-11"),
    expense(999.0, "food", "2024-04-01"),
]

BUDGETS = [
    Budget(category="food", limit_amount=500.0, month=3, year=2024),
    Budget(category="bills", limit_amount=1000.0, month=3, year=2024),
    Budget(category="food", limit_amount=50.0, month=4, year=2024),
]


def test_monthly_summary_budget_math():
    summary = monthly_summary(EXPENSES, BUDGETS, month=3, year=2024)

    assert summary.total_expenses == 670.0
    by_cat = {c.category: c for c in summary.category_breakdown}
    assert set(by_cat) == {"food", "transport", "bills"}

    food = by_cat["food"]
    assert food.spent == 550.0
    assert food.budget_limit == 500.0
    assert food.remaining == -50.0
    assert food.percent_used == 110

    transport = by_cat["transport"]
    assert transport.budget_limit is None
    assert transport.remaining is None
    assert transport.percent_used is None

    bills = by_cat["bills"]
    assert bills.spent == 0.0
    assert bills.remaining == 1000.0
    assert bills.percent_used == 0


def test_over_budget_and_utilization():
    summary = monthly_summary(EXPENSES, BUDGETS, month=3, year=2024)

    assert [c.category for c in over_budget(summary)] == ["food"]
    assert budget_utilization(summary) == 45  # 670 / 1500


def test_utilization_without_budgets():
    summary = monthly_summary(EXPENSES, [], month=3, year=2024)
    assert budget_utilization(summary) is None
    assert over_budget(summary) == []


def test_zero_limit_has_no_percent():
    summary = monthly_summary(EXPENSES, [Budget("transport", 0.0, 3, 2024)], month=3, year=2024)
    transport = next(c for c in summary.category_breakdown if c.category == "transport")
    assert transport.percent_used is None
    assert transport.remaining == -120.0


def test_category_totals_sorted_by_amount():
    totals = category_totals(EXPENSES)
    assert list(totals) == ["food", "transport"]
    assert totals["food"] == 1549.0


def test_format_summary_mentions_overspend():
    lines = format_summary(monthly_summary(EXPENSES, BUDGETS, month=3, year=2024))

    assert lines[0].startswith("March 2024")
    assert any("Food & Dining" in ln and "OVER" in ln for ln in lines)
    assert lines[-1] == "  Budget used: 45%"


def test_write_expenses_csv(tmp_path):
    out = tmp_path / "expenses.csv"
    write_expenses_csv(EXPENSES[:2], out)

    with out.open(newline="", encoding="utf-8") as f:
        rows = list(csv.DictReader(f))

    assert list(rows[0]) == ["Date", "Category", "Amount", "Note"]
    assert rows[0]["Amount"] == "300.00"
    assert rows[0]["Note"].startswith("Joe's Pizza")
    assert rows[1]["Note"] == ""


def test_build_summary_pdf(tmp_path):
    out = tmp_path / "summary.pdf"
    summary = monthly_summary(EXPENSES, BUDGETS, month=3, year=2024)

    build_summary_pdf(summary, EXPENSES, out)

    assert out.read_bytes().startswith(b"%PDF")


def test_monthly_summary_income_and_net_savings():
    incomes = [
        IncomeRecord(id="1", source="salary", amount=2000.0, income_date="2024-03-01"),
        IncomeRecord(id="2", source="freelance", amount=500.0, income_date="2024-03-20"),
        IncomeRecord(id="3", source="salary", amount=2000.0, income_date="2024-04-01"),
    ]
    summary = monthly_summary(EXPENSES, BUDGETS, month=3, year=2024, incomes=incomes)

    assert summary.total_income == 2500.0
    assert summary.net_savings == 1830.0

    lines = format_summary(summary)
    assert "Income" in lines[1] and "net savings" in lines[1]


def test_monthly_summary_without_income():
    summary = monthly_summary(EXPENSES, [], month=3, year=2024)
    assert summary.total_income == 0.0
    assert summary.net_savings == -670.0


def test_savings_total():
    savings = [
        SavingRecord(id="a", amount=100.0, date="2024-03-01"),
        SavingRecord(id="b", amount=40.0, date="2024-03-08"),
    ]
    assert savings_total(savings) == 140.0
    assert savings_total(savings, since=dt.date(2024, 3, 2)) == 40.0
    assert savings_total([]) == 0.0


def test_format_goal():
    today = dt.date(2024, 6, 30)
    on_track = SavingsGoal(id="g", title="Laptop", target_amount=1000.0, current_amount=250.0,
                           deadline="2024-12-31")
    late = SavingsGoal(id="h", title="Trip", target_amount=1000.0, current_amount=10.0,
                       deadline="2024-01-01")
    done = SavingsGoal(id="i", title="Phone", target_amount=500.0, current_amount=600.0)

    assert format_goal(on_track, today).endswith("(25.0%) by 2024-12-31")
    assert "past deadline" in format_goal(late, today)
    assert format_goal(done, today).endswith("(100.0%) done")


def test_pdf_amounts_fall_back_to_currency_code(monkeypatch):
    """Helvetica has no rupee glyph"""
    monkeypatch.delenv("SMARTSPEND_CURRENCY", raising=False)
    assert pdf_money_fmt(1200.0) == "INR 1,200.00"

    monkeypatch.setenv("SMARTSPEND_CURRENCY", "$")
    assert pdf_money_fmt(1200.0) == "$1,200.00"


def test_build_summary_pdf_has_no_rupee_sign(tmp_path, monkeypatch):
    monkeypatch.delenv("SMARTSPEND_CURRENCY", raising=False)
    drawn = []
    out = tmp_path / "summary.pdf"
    summary = monthly_summary(EXPENSES, BUDGETS, month=3, year=2024)

    with patch("reportlab.pdfgen.canvas.Canvas.drawString",
               side_effect=lambda x, y, text, *a, **k: drawn.append(text)), \
            patch("reportlab.pdfgen.canvas.Canvas.drawRightString",
                  side_effect=lambda x, y, text, *a, **k: drawn.append(text)):
        build_summary_pdf(summary, EXPENSES, out)

    assert any("INR" in text for text in drawn)
    assert not any("₹" in text for text in drawn)
