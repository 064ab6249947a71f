#!/usr/bin/env python3
"""
Main CLI entrypoint for SmartSpend.
"""

import argparse
import datetime as dt
import os
import sys
from pathlib import Path

from smartspend.core.categorization import category_label, classify, load_rules
from smartspend.core.database import ExpenseStore
from smartspend.core.exceptions import ExtractionError, SmartSpendError
from smartspend.core.logging_config import setup_logging
from smartspend.core.models import Category, DraftEditor
from smartspend.core.processor import ReceiptScanner
from smartspend.core.reporting import (build_summary_pdf, format_goal, format_summary,
                                       monthly_summary, savings_total, write_expenses_csv)
from smartspend.core.utils import money_fmt


def print_draft(draft):
    print(f"Amount:     {money_fmt(draft.amount) if draft.amount else 'Not detected'}")
    confidence = f" ({round(draft.confidence * 100)}% confidence)" if draft.confidence > 0 else ""
    print(f"Category:   {category_label(draft.category)}{confidence}")
    if draft.matched_keywords:
        print(f"Keywords:   {', '.join(draft.matched_keywords)}")
    print(f"Date:       {draft.date.isoformat()}")
    print(f"Merchant:   {draft.merchant or '(none)'}")
    for warning in draft.warnings:
        print(f"[WARN] {warning}")


def cmd_scan(args, store: ExpenseStore, rules) -> int:
    scanner = ReceiptScanner(keyword_table=rules, sink=store)
    draft = scanner.scan_file(Path(args.image))
    print_draft(draft)

    editor = DraftEditor(draft)
    if args.amount is not None:
        editor.set_amount(args.amount)
    if args.category:
        editor.set_category(args.category)
    if args.date:
        editor.set_date(args.date)
    if args.notes is not None:
        editor.set_notes(args.notes)
    draft = editor.build()

    if not args.save:
        return 0

    record = scanner.confirm(draft)
    print(f"[OK] Saved {money_fmt(record.amount)} under {category_label(record.category)} ({record.id})")
    return 0


def cmd_classify(args, store: ExpenseStore, rules) -> int:
    guess = classify(args.text, args.merchant or "", table=rules)
    print(f"{guess.category.value} {guess.confidence:.2f} {','.join(guess.matched_keywords)}".rstrip())
    return 0


def cmd_list(args, store: ExpenseStore, rules) -> int:
    expenses = store.list_expenses(category=args.category)
    if not expenses:
        print("No expenses recorded.")
        return 0
    for e in expenses:
        note = (e.notes or "").splitlines()[0] if e.notes else ""
        print(f"{e.date}  {e.category:<13} {money_fmt(e.amount):>12}  {note}")
    return 0


def cmd_budget(args, store: ExpenseStore, rules) -> int:
    budget = store.set_budget(args.category, args.limit, month=args.month, year=args.year)
    print(f"[OK] Budget for {category_label(budget.category)} in "
          f"{budget.year}-{budget.month:02d}: {money_fmt(budget.limit_amount)}")
    return 0


def cmd_summary(args, store: ExpenseStore, rules) -> int:
    expenses = store.list_expenses()
    summary = monthly_summary(expenses, store.list_budgets(args.month, args.year),
                              month=args.month, year=args.year, incomes=store.list_incomes())
    for line in format_summary(summary):
        print(line)
    if args.pdf:
        build_summary_pdf(summary, expenses, Path(args.pdf))
        print(f"[OK] Wrote {args.pdf}")
    return 0


def cmd_export(args, store: ExpenseStore, rules) -> int:
    out = Path(args.out)
    write_expenses_csv(store.list_expenses(), out)
    print(f"[OK] Wrote {out}")
    return 0


def cmd_income(args, store: ExpenseStore, rules) -> int:
    income = store.add_income(args.source, args.amount, income_date=args.date)
    print(f"[OK] Recorded {money_fmt(income.amount)} from {income.source} on {income.income_date}")
    return 0


def cmd_save(args, store: ExpenseStore, rules) -> int:
    saving = store.add_saving(args.amount, date=args.date)
    savings = store.list_savings()
    week_ago = dt.date.today() - dt.timedelta(days=7)
    print(f"[OK] Saved {money_fmt(saving.amount)} on {saving.date}")
    print(f"Total saved: {money_fmt(savings_total(savings))}, "
          f"this week: {money_fmt(savings_total(savings, since=week_ago))}")
    return 0


def cmd_goal(args, store: ExpenseStore, rules) -> int:
    if args.goal_command == "add":
        goal = store.add_goal(args.title, args.target, deadline=args.deadline)
        print(f"[OK] Goal {goal.id}: {format_goal(goal)}")
    elif args.goal_command == "update":
        goal = store.update_goal_progress(args.id, args.amount)
        if goal is None:
            print(f"[ERROR] No savings goal {args.id}")
            return 1
        print(f"[OK] {format_goal(goal)}")
    else:
        goals = store.list_goals()
        if not goals:
            print("No savings goals yet.")
        for goal in goals:
            print(f"{goal.id}  {format_goal(goal)}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="smartspend",
        description="Scan receipts into categorized expenses, track budgets and savings, export reports",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Scan a receipt and show what was read
  smartspend scan ./receipt.jpg

  # Correct the amount and save it
  smartspend scan ./receipt.jpg --amount 249.00 --save

  # Set a monthly food budget and check it
  smartspend budget food 5000
  smartspend summary --pdf summary.pdf

  # Track income and a savings goal
  smartspend income salary 60000
  smartspend goal add "Emergency fund" 100000
        """
    )
    parser.add_argument("--db", default=os.getenv("SMARTSPEND_DB", "./smartspend.sqlite"),
                        help="SQLite expense store (default: ./smartspend.sqlite, or SMARTSPEND_DB env var)")
    parser.add_argument("--rules", default=os.getenv("SMARTSPEND_RULES", "./rules.json"),
                        help="rules.json with category keywords (default: ./rules.json, or SMARTSPEND_RULES)")
    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Show detailed parsing information for debugging")
    parser.add_argument("--json-logs", action="store_true",
                        help="Emit log records as JSON lines")

    sub = parser.add_subparsers(dest="command", required=True)

    scan = sub.add_parser("scan", help="OCR a receipt image into a draft expense")
    scan.add_argument("image", help="Receipt image (or searchable PDF)")
    scan.add_argument("--amount", help="Override the detected amount")
    scan.add_argument("--category", choices=Category.values(), help="Override the detected category")
    scan.add_argument("--date", help="Override the detected date (YYYY-MM-DD)")
    scan.add_argument("--notes", help="Replace the generated notes")
    scan.add_argument("--save", action="store_true", help="Save the (edited) draft to the store")
    scan.set_defaults(func=cmd_scan)

    cls = sub.add_parser("classify", help="Categorize a piece of text")
    cls.add_argument("text")
    cls.add_argument("--merchant", default="")
    cls.set_defaults(func=cmd_classify)

    lst = sub.add_parser("list", help="List stored expenses")
    lst.add_argument("--category", choices=Category.values())
    lst.set_defaults(func=cmd_list)

    bud = sub.add_parser("budget", help="Set a monthly budget for a category")
    bud.add_argument("category", choices=Category.values())
    bud.add_argument("limit", type=float)
    bud.add_argument("--month", type=int)
    bud.add_argument("--year", type=int)
    bud.set_defaults(func=cmd_budget)

    summ = sub.add_parser("summary", help="Monthly spending vs. budget")
    summ.add_argument("--month", type=int)
    summ.add_argument("--year", type=int)
    summ.add_argument("--pdf", help="Also write a PDF summary to this path")
    summ.set_defaults(func=cmd_summary)

    exp = sub.add_parser("export", help="Export expenses to CSV")
    exp.add_argument("out", help="Output CSV path")
    exp.set_defaults(func=cmd_export)

    inc = sub.add_parser("income", help="Record income")
    inc.add_argument("source", help="Where the money came from (salary, freelance, ...)")
    inc.add_argument("amount", type=float)
    inc.add_argument("--date", help="Date received (YYYY-MM-DD, default today)")
    inc.set_defaults(func=cmd_income)

    sav = sub.add_parser("save", help="Record money put aside")
    sav.add_argument("amount", type=float)
    sav.add_argument("--date", help="YYYY-MM-DD, default today")
    sav.set_defaults(func=cmd_save)

    goal = sub.add_parser("goal", help="Manage savings goals")
    goal_sub = goal.add_subparsers(dest="goal_command", required=True)
    goal_add = goal_sub.add_parser("add", help="Create a savings goal")
    goal_add.add_argument("title")
    goal_add.add_argument("target", type=float)
    goal_add.add_argument("--deadline", help="YYYY-MM-DD")
    goal_upd = goal_sub.add_parser("update", help="Set the amount saved so far")
    goal_upd.add_argument("id")
    goal_upd.add_argument("amount", type=float)
    goal_sub.add_parser("list", help="Show goals and progress")
    goal.set_defaults(func=cmd_goal)

    return parser


def main(argv=None):
    """Main CLI entrypoint."""
    args = build_parser().parse_args(argv)
    setup_logging(verbose=args.verbose, json_output=args.json_logs)

    try:
        rules = load_rules(Path(args.rules))
        store = ExpenseStore(Path(args.db)).init()
        return args.func(args, store, rules)
    except ExtractionError as e:
        print(f"[ERROR] {e}")
        print(f"[ERROR] {e.user_message}")
        return 1
    except SmartSpendError as e:
        print(f"[ERROR] {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
