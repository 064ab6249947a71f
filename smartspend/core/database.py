"""
SQLite storage for expenses, monthly budgets, income and savings.
"""

import datetime as dt
import json
import logging
import math
import sqlite3
import uuid
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, List, Optional

from .exceptions import StoreError, ValidationError
from .models import Budget, Category, ExpenseRecord, IncomeRecord, SavingRecord, SavingsGoal

logger = logging.getLogger(__name__)

EXPENSE_COLUMNS = ("id", "amount", "category", "date", "note", "title",
                   "recurring_interval", "source", "ocr_raw", "ocr_parsed", "created_at")

# camelCase payload key -> column
UPDATABLE_FIELDS = {
    "amount": "amount",
    "category": "category",
    "date": "date",
    "notes": "note",
    "title": "title",
    "recurringInterval": "recurring_interval",
    "source": "source",
    "ocrRaw": "ocr_raw",
    "ocrParsed": "ocr_parsed",
}


def _check_amount(amount) -> float:
    try:
        amount = float(amount)
    except (TypeError, ValueError):
        raise ValidationError(f"Amount must be a number, got {amount!r}", field="amount")
    if not math.isfinite(amount) or not amount > 0:
        raise ValidationError("Amount must be a finite number greater than 0", field="amount")
    return amount


def _check_category(category) -> str:
    try:
        return Category.coerce(category).value
    except ValueError:
        raise ValidationError(f"Unknown category: {category}", field="category")


def _check_date(date) -> str:
    if isinstance(date, dt.datetime):
        return date.date().isoformat()
    if isinstance(date, dt.date):
        return date.isoformat()
    try:
        return dt.date.fromisoformat(str(date)).isoformat()
    except ValueError:
        raise ValidationError(f"Date must be YYYY-MM-DD, got {date!r}", field="date")


def _row_to_expense(row: sqlite3.Row) -> ExpenseRecord:
    ocr_parsed = row["ocr_parsed"]
    return ExpenseRecord(
        id=row["id"],
        amount=float(row["amount"]),
        category=row["category"],
        date=row["date"],
        notes=row["note"] or "",
        title=row["title"] or "",
        recurring_interval=row["recurring_interval"] or "none",
        source=row["source"] or "manual",
        ocr_raw=row["ocr_raw"] or "",
        ocr_parsed=json.loads(ocr_parsed) if ocr_parsed else None,
        created_at=row["created_at"],
    )


class ExpenseStore:
    """Expense, budget, income and savings tables in a single SQLite file."""

    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)

    @contextmanager
    def _connect(self):
        try:
            conn = sqlite3.connect(self.db_path.as_posix())
        except sqlite3.Error as exc:
            raise StoreError(f"Could not open {self.db_path}: {exc}") from exc
        conn.row_factory = sqlite3.Row
        try:
            with conn:
                yield conn
        except sqlite3.Error as exc:
            raise StoreError(str(exc)) from exc
        finally:
            conn.close()

    def init(self) -> "ExpenseStore":
        """Create tables if they do not exist yet."""
        with self._connect() as conn:
            cur = conn.cursor()
            cur.execute("""
            CREATE TABLE IF NOT EXISTS expenses (
                id TEXT PRIMARY KEY,
                amount REAL NOT NULL,
                category TEXT NOT NULL,
                date TEXT NOT NULL,
                note TEXT,
                title TEXT,
                recurring_interval TEXT DEFAULT 'none',
                source TEXT DEFAULT 'manual',
                ocr_raw TEXT,
                ocr_parsed TEXT,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
            """)
            cur.execute("""
            CREATE INDEX IF NOT EXISTS idx_expenses_date
            ON expenses(date)
            """)
            cur.execute("""
            CREATE TABLE IF NOT EXISTS budgets (
                id INTEGER PRIMARY KEY,
                category TEXT NOT NULL,
                limit_amount REAL NOT NULL,
                month INTEGER NOT NULL,
                year INTEGER NOT NULL,
                UNIQUE(category, month, year)
            )
            """)
            cur.execute("""
            CREATE TABLE IF NOT EXISTS income (
                id TEXT PRIMARY KEY,
                source TEXT NOT NULL,
                amount REAL NOT NULL,
                income_date TEXT NOT NULL,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
            """)
            cur.execute("""
            CREATE TABLE IF NOT EXISTS savings (
                id TEXT PRIMARY KEY,
                amount REAL NOT NULL,
                category TEXT DEFAULT 'savings',
                date TEXT NOT NULL,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
            """)
            cur.execute("""
            CREATE TABLE IF NOT EXISTS savings_goals (
                id TEXT PRIMARY KEY,
                title TEXT NOT NULL,
                target_amount REAL NOT NULL,
                current_amount REAL NOT NULL DEFAULT 0,
                deadline TEXT,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
            """)
        return self

    def add_expense(self, payload: Dict[str, Any]) -> ExpenseRecord:
        """
        Insert an expense.

        `payload` uses the same keys the receipt scanner hands over:
        amount, category, date, notes, source, ocrRaw, ocrParsed (plus
        optional title and recurringInterval).
        """
        amount = _check_amount(payload.get("amount"))
        category = _check_category(payload.get("category"))
        date = _check_date(payload.get("date"))
        ocr_parsed = payload.get("ocrParsed")

        expense_id = str(uuid.uuid4())
        with self._connect() as conn:
            conn.execute("""
                INSERT INTO expenses
                (id, amount, category, date, note, title, recurring_interval, source, ocr_raw, ocr_parsed)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                expense_id, amount, category, date,
                payload.get("notes") or None,
                payload.get("title") or None,
                payload.get("recurringInterval") or "none",
                payload.get("source") or "manual",
                payload.get("ocrRaw") or None,
                json.dumps(ocr_parsed) if ocr_parsed is not None else None,
            ))
        logger.debug("Inserted expense %s", expense_id)
        return self.get_expense(expense_id)

    def get_expense(self, expense_id: str) -> Optional[ExpenseRecord]:
        with self._connect() as conn:
            row = conn.execute(
                f"SELECT {', '.join(EXPENSE_COLUMNS)} FROM expenses WHERE id = ?",
                (expense_id,),
            ).fetchone()
        return _row_to_expense(row) if row else None

    def list_expenses(self, category: Optional[str] = None,
                      start: Optional[dt.date] = None,
                      end: Optional[dt.date] = None) -> List[ExpenseRecord]:
        """Expenses newest first, optionally filtered by category and inclusive date range."""
        clauses, params = [], []
        if category:
            clauses.append("category = ?")
            params.append(_check_category(category))
        if start:
            clauses.append("date >= ?")
            params.append(_check_date(start))
        if end:
            clauses.append("date <= ?")
            params.append(_check_date(end))
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""

        with self._connect() as conn:
            rows = conn.execute(
                f"SELECT {', '.join(EXPENSE_COLUMNS)} FROM expenses {where} "
                f"ORDER BY date DESC, created_at DESC, rowid DESC",
                params,
            ).fetchall()
        return [_row_to_expense(r) for r in rows]

    def update_expense(self, expense_id: str, **fields) -> Optional[ExpenseRecord]:
        """Update the given payload fields (camelCase keys) of one expense."""
        updates = {}
        for key, value in fields.items():
            if key not in UPDATABLE_FIELDS:
                raise ValidationError(f"Cannot update field: {key}", field=key)
            if key == "amount":
                value = _check_amount(value)
            elif key == "category":
                value = _check_category(value)
            elif key == "date":
                value = _check_date(value)
            elif key == "ocrParsed" and value is not None:
                value = json.dumps(value)
            updates[UPDATABLE_FIELDS[key]] = value

        if updates:
            assignments = ", ".join(f"{col} = ?" for col in updates)
            with self._connect() as conn:
                conn.execute(f"UPDATE expenses SET {assignments} WHERE id = ?",
                             (*updates.values(), expense_id))
        return self.get_expense(expense_id)

    def delete_expense(self, expense_id: str) -> bool:
        with self._connect() as conn:
            cur = conn.execute("DELETE FROM expenses WHERE id = ?", (expense_id,))
            return cur.rowcount > 0

    def set_budget(self, category: str, limit_amount: float,
                   month: Optional[int] = None, year: Optional[int] = None) -> Budget:
        """Create or replace the budget for a category in a month (default: current month)."""
        today = dt.date.today()
        month = month or today.month
        year = year or today.year
        if not 1 <= month <= 12:
            raise ValidationError(f"Month must be 1-12, got {month}", field="month")
        category = _check_category(category)
        try:
            limit_amount = float(limit_amount)
        except (TypeError, ValueError):
            raise ValidationError(f"Budget limit must be a number, got {limit_amount!r}",
                                  field="limit_amount")
        if not math.isfinite(limit_amount) or limit_amount < 0:
            raise ValidationError("Budget limit must be a finite number, not negative", field="limit_amount")

        with self._connect() as conn:
            conn.execute("""
                INSERT INTO budgets (category, limit_amount, month, year)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(category, month, year) DO UPDATE SET limit_amount = excluded.limit_amount
            """, (category, limit_amount, month, year))
        return self.get_budget(category, month, year)

    def get_budget(self, category: str, month: int, year: int) -> Optional[Budget]:
        with self._connect() as conn:
            row = conn.execute("""
                SELECT id, category, limit_amount, month, year FROM budgets
                WHERE category = ? AND month = ? AND year = ?
            """, (_check_category(category), month, year)).fetchone()
        if not row:
            return None
        return Budget(id=row["id"], category=row["category"], limit_amount=row["limit_amount"],
                      month=row["month"], year=row["year"])

    def list_budgets(self, month: Optional[int] = None, year: Optional[int] = None) -> List[Budget]:
        clauses, params = [], []
        if month:
            clauses.append("month = ?")
            params.append(month)
        if year:
            clauses.append("year = ?")
            params.append(year)
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        with self._connect() as conn:
            rows = conn.execute(
                f"SELECT id, category, limit_amount, month, year FROM budgets {where} "
                f"ORDER BY year DESC, month DESC, category",
                params,
            ).fetchall()
        return [Budget(id=r["id"], category=r["category"], limit_amount=r["limit_amount"],
                       month=r["month"], year=r["year"]) for r in rows]

    def add_income(self, source: str, amount: float,
                   income_date: Optional[dt.date] = None) -> IncomeRecord:
        """Record income received on `income_date` (default: today)."""
        if not source or not str(source).strip():
            raise ValidationError("Income source is required", field="source")
        amount = _check_amount(amount)
        income_date = _check_date(income_date or dt.date.today())

        income_id = str(uuid.uuid4())
        with self._connect() as conn:
            conn.execute("INSERT INTO income (id, source, amount, income_date) VALUES (?, ?, ?, ?)",
                         (income_id, str(source).strip(), amount, income_date))
        logger.debug("Inserted income %s", income_id)
        return self.list_incomes(income_id=income_id)[0]

    def list_incomes(self, start: Optional[dt.date] = None, end: Optional[dt.date] = None,
                     income_id: Optional[str] = None) -> List[IncomeRecord]:
        clauses, params = [], []
        if income_id:
            clauses.append("id = ?")
            params.append(income_id)
        if start:
            clauses.append("income_date >= ?")
            params.append(_check_date(start))
        if end:
            clauses.append("income_date <= ?")
            params.append(_check_date(end))
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        with self._connect() as conn:
            rows = conn.execute(
                f"SELECT id, source, amount, income_date, created_at FROM income {where} "
                f"ORDER BY income_date DESC, rowid DESC",
                params,
            ).fetchall()
        return [IncomeRecord(id=r["id"], source=r["source"], amount=float(r["amount"]),
                             income_date=r["income_date"], created_at=r["created_at"]) for r in rows]

    def delete_income(self, income_id: str) -> bool:
        with self._connect() as conn:
            return conn.execute("DELETE FROM income WHERE id = ?", (income_id,)).rowcount > 0

    def add_saving(self, amount: float, date: Optional[dt.date] = None,
                   category: str = "savings") -> SavingRecord:
        amount = _check_amount(amount)
        date = _check_date(date or dt.date.today())

        saving_id = str(uuid.uuid4())
        with self._connect() as conn:
            conn.execute("INSERT INTO savings (id, amount, category, date) VALUES (?, ?, ?, ?)",
                         (saving_id, amount, category or "savings", date))
        return self.list_savings(saving_id=saving_id)[0]

    def list_savings(self, start: Optional[dt.date] = None,
                     saving_id: Optional[str] = None) -> List[SavingRecord]:
        """Savings newest first, optionally only those on or after `start`."""
        clauses, params = [], []
        if saving_id:
            clauses.append("id = ?")
            params.append(saving_id)
        if start:
            clauses.append("date >= ?")
            params.append(_check_date(start))
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        with self._connect() as conn:
            rows = conn.execute(
                f"SELECT id, amount, category, date, created_at FROM savings {where} "
                f"ORDER BY date DESC, rowid DESC",
                params,
            ).fetchall()
        return [SavingRecord(id=r["id"], amount=float(r["amount"]), date=r["date"],
                             category=r["category"] or "savings", created_at=r["created_at"])
                for r in rows]

    def add_goal(self, title: str, target_amount: float,
                 deadline: Optional[dt.date] = None) -> SavingsGoal:
        if not title or not str(title).strip():
            raise ValidationError("Goal title is required", field="title")
        try:
            target_amount = _check_amount(target_amount)
        except ValidationError as exc:
            raise ValidationError(str(exc), field="target_amount") from exc
        deadline = _check_date(deadline) if deadline else None

        goal_id = str(uuid.uuid4())
        with self._connect() as conn:
            conn.execute("""
                INSERT INTO savings_goals (id, title, target_amount, deadline)
                VALUES (?, ?, ?, ?)
            """, (goal_id, str(title).strip(), target_amount, deadline))
        logger.debug("Inserted savings goal %s", goal_id)
        return self.get_goal(goal_id)

    def get_goal(self, goal_id: str) -> Optional[SavingsGoal]:
        goals = self._select_goals("WHERE id = ?", (goal_id,))
        return goals[0] if goals else None

    def list_goals(self) -> List[SavingsGoal]:
        return self._select_goals("", ())

    def _select_goals(self, where: str, params) -> List[SavingsGoal]:
        with self._connect() as conn:
            rows = conn.execute(
                f"SELECT id, title, target_amount, current_amount, deadline, created_at "
                f"FROM savings_goals {where} ORDER BY created_at, rowid",
                params,
            ).fetchall()
        return [SavingsGoal(id=r["id"], title=r["title"], target_amount=float(r["target_amount"]),
                            current_amount=float(r["current_amount"]), deadline=r["deadline"],
                            created_at=r["created_at"]) for r in rows]

    def update_goal_progress(self, goal_id: str, current_amount: float) -> Optional[SavingsGoal]:
        """Set how much has been saved towards a goal so far."""
        try:
            current_amount = float(current_amount)
        except (TypeError, ValueError):
            raise ValidationError(f"Saved amount must be a number, got {current_amount!r}",
                                  field="current_amount")
        if not math.isfinite(current_amount) or current_amount < 0:
            raise ValidationError("Saved amount must be a finite number, not negative",
                                  field="current_amount")
        with self._connect() as conn:
            conn.execute("UPDATE savings_goals SET current_amount = ? WHERE id = ?",
                         (current_amount, goal_id))
        return self.get_goal(goal_id)

    def delete_goal(self, goal_id: str) -> bool:
        with self._connect() as conn:
            return conn.execute("DELETE FROM savings_goals WHERE id = ?", (goal_id,)).rowcount > 0
