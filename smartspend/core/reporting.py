"""
CSV export, monthly budget summaries and PDF reporting.
"""

import csv
import calendar
import datetime as dt
from collections import defaultdict
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from .categorization import category_label
from .models import (Budget, CategorySummary, ExpenseRecord, IncomeRecord, MonthlySummary,
                     SavingRecord, SavingsGoal)
from .utils import money_fmt, pdf_money_fmt


def write_expenses_csv(expenses: Iterable[ExpenseRecord], out_csv: Path):
    """Write expenses to CSV file."""
    fieldnames = ["Date", "Category", "Amount", "Note"]
    with out_csv.open("w", newline="", encoding="utf-8") as f:
        w = csv.DictWriter(f, fieldnames=fieldnames)
        w.writeheader()
        for e in expenses:
            w.writerow({
                "Date": e.date,
                "Category": e.category,
                "Amount": f"{e.amount:.2f}",
                "Note": e.notes or "",
            })


def category_totals(expenses: Iterable[ExpenseRecord]) -> Dict[str, float]:
    """Sum of amounts per category, largest first."""
    totals = defaultdict(float)
    for e in expenses:
        totals[e.category] += float(e.amount)
    return dict(sorted(totals.items(), key=lambda kv: (-kv[1], kv[0])))


def _date_in_month(value: str, month: int, year: int) -> bool:
    try:
        d = dt.date.fromisoformat(value)
    except ValueError:
        return False
    return d.month == month and d.year == year


def monthly_summary(expenses: Iterable[ExpenseRecord], budgets: Iterable[Budget],
                    month: Optional[int] = None, year: Optional[int] = None,
                    incomes: Iterable[IncomeRecord] = ()) -> MonthlySummary:
    """
    Spending for one month broken down by category, with budget headroom.

    Net savings is the month's income minus its expenses.

    Categories are those with spending or a budget in the month. Percent
    used is rounded to a whole number and left as None without a positive
    budget limit.
    """
    today = dt.date.today()
    month = month or today.month
    year = year or today.year

    month_expenses = [e for e in expenses if _date_in_month(e.date, month, year)]
    spending = category_totals(month_expenses)
    limits = {b.category: b.limit_amount for b in budgets if b.month == month and b.year == year}

    breakdown = []
    for category in list(spending) + [c for c in limits if c not in spending]:
        spent = spending.get(category, 0.0)
        limit = limits.get(category)
        remaining = limit - spent if limit is not None else None
        percent = round(spent / limit * 100) if limit else None
        breakdown.append(CategorySummary(category=category, spent=spent, budget_limit=limit,
                                         remaining=remaining, percent_used=percent))

    total_expenses = sum(spending.values())
    total_income = sum(float(i.amount) for i in incomes if _date_in_month(i.income_date, month, year))
    return MonthlySummary(
        month=month,
        year=year,
        total_expenses=total_expenses,
        category_breakdown=breakdown,
        total_income=total_income,
        net_savings=total_income - total_expenses,
    )


def over_budget(summary: MonthlySummary) -> List[CategorySummary]:
    return [c for c in summary.category_breakdown if c.remaining is not None and c.remaining < 0]


def budget_utilization(summary: MonthlySummary) -> Optional[int]:
    """Share of the month's total budget already spent, in percent."""
    total_budget = sum(c.budget_limit or 0.0 for c in summary.category_breakdown)
    if total_budget == 0:
        return None
    return round(summary.total_expenses / total_budget * 100)


def format_summary(summary: MonthlySummary) -> List[str]:
    """Plain-text lines for terminal output."""
    lines = [f"{calendar.month_name[summary.month]} {summary.year}: "
             f"{money_fmt(summary.total_expenses)} spent"]
    if summary.total_income:
        lines.append(f"  Income: {money_fmt(summary.total_income)}, "
                     f"net savings: {money_fmt(summary.net_savings)}")
    for c in summary.category_breakdown:
        line = f"  {category_label(c.category)}: {money_fmt(c.spent)}"
        if c.budget_limit is not None:
            line += f" of {money_fmt(c.budget_limit)}"
            if c.percent_used is not None:
                line += f" ({c.percent_used}%)"
            if c.remaining is not None and c.remaining < 0:
                line += f" OVER by {money_fmt(-c.remaining)}"
        lines.append(line)
    utilization = budget_utilization(summary)
    if utilization is not None:
        lines.append(f"  Budget used: {utilization}%")
    return lines


def savings_total(savings: Iterable[SavingRecord], since: Optional[dt.date] = None) -> float:
    """Sum of savings, optionally only those dated on or after `since`."""
    total = 0.0
    for s in savings:
        if since is not None and dt.date.fromisoformat(s.date) < since:
            continue
        total += float(s.amount)
    return total


def format_goal(goal: SavingsGoal, today: Optional[dt.date] = None) -> str:
    line = (f"{goal.title}: {money_fmt(goal.current_amount)} of {money_fmt(goal.target_amount)} "
            f"({goal.progress_percent:.1f}%)")
    if goal.completed:
        line += " done"
    elif goal.past_deadline(today):
        line += f" past deadline {goal.deadline}"
    elif goal.deadline:
        line += f" by {goal.deadline}"
    return line


def build_summary_pdf(summary: MonthlySummary, expenses: Iterable[ExpenseRecord],
                      out_pdf: Path, title: str = "SmartSpend Monthly Summary"):
    """Render the monthly summary and its line items to a PDF."""
    from reportlab.lib.pagesizes import letter
    from reportlab.pdfgen import canvas
    from reportlab.lib.units import inch

    c = canvas.Canvas(out_pdf.as_posix(), pagesize=letter)
    width, height = letter

    def new_page_if_needed(y):
        if y < 1.2 * inch:
            c.showPage()
            c.setFont("Helvetica", 10)
            return height - 1 * inch
        return y

    y = height - 1 * inch
    c.setFont("Helvetica-Bold", 16)
    c.drawString(1 * inch, y, f"{title}: {calendar.month_name[summary.month]} {summary.year}")
    y -= 0.3 * inch
    c.setFont("Helvetica", 10)
    timestamp = dt.datetime.now().isoformat(timespec='seconds')
    c.drawString(1 * inch, y, f"Generated: {timestamp}")
    y -= 0.4 * inch

    # Category breakdown
    c.setFont("Helvetica-Bold", 12)
    c.drawString(1 * inch, y, "Category Totals")
    y -= 0.25 * inch
    c.setFont("Helvetica", 10)
    for cat in summary.category_breakdown:
        line = f"{category_label(cat.category)}: {pdf_money_fmt(cat.spent)}"
        if cat.budget_limit is not None:
            line += f" / {pdf_money_fmt(cat.budget_limit)}"
        c.drawString(1.1 * inch, y, line)
        y = new_page_if_needed(y - 0.2 * inch)

    y -= 0.1 * inch
    c.setFont("Helvetica-Bold", 11)
    c.drawString(1.1 * inch, y, f"Total: {pdf_money_fmt(summary.total_expenses)}")
    if summary.total_income:
        y -= 0.2 * inch
        c.setFont("Helvetica", 10)
        c.drawString(1.1 * inch, y, f"Income: {pdf_money_fmt(summary.total_income)}   "
                                    f"Net savings: {pdf_money_fmt(summary.net_savings)}")
    y = new_page_if_needed(y - 0.4 * inch)

    # Line items
    c.setFont("Helvetica-Bold", 12)
    c.drawString(1 * inch, y, "Expenses")
    y -= 0.25 * inch
    c.setFont("Helvetica", 9)
    rows = sorted((e for e in expenses if _date_in_month(e.date, summary.month, summary.year)),
                  key=lambda e: e.date)
    for e in rows:
        note = (e.notes or "").splitlines()[0][:50] if e.notes else ""
        c.drawString(1.1 * inch, y, e.date)
        c.drawString(2.1 * inch, y, category_label(e.category))
        c.drawRightString(4.6 * inch, y, pdf_money_fmt(e.amount))
        c.drawString(4.8 * inch, y, note)
        y = new_page_if_needed(y - 0.18 * inch)

    c.showPage()
    c.save()
