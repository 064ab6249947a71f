"""
Data models for receipt ingestion and expense tracking.
"""

import datetime as dt
from dataclasses import dataclass, field, asdict, replace
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

from .exceptions import ValidationError


class Category(str, Enum):
    """Closed set of spending categories."""
    FOOD = "food"
    TRANSPORT = "transport"
    ENTERTAINMENT = "entertainment"
    SHOPPING = "shopping"
    BILLS = "bills"
    HEALTH = "health"
    EDUCATION = "education"
    OTHER = "other"

    @classmethod
    def values(cls) -> Tuple[str, ...]:
        return tuple(c.value for c in cls)

    @classmethod
    def coerce(cls, value: Union[str, "Category"]) -> "Category":
        """Return the member for `value`, raising ValueError if it is not in the set."""
        if isinstance(value, cls):
            return value
        return cls(str(value).strip().lower())


@dataclass(frozen=True)
class ParsedReceiptFields:
    """Fields pulled out of raw OCR text. Built once per image."""
    amount: Optional[float]
    date: dt.date
    merchant: Optional[str]
    source_text: str
    lines: Tuple[str, ...] = ()
    date_found: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "amount": self.amount,
            "date": self.date.isoformat(),
            "merchant": self.merchant,
            "rawText": self.source_text,
            "allLines": list(self.lines),
        }


@dataclass(frozen=True)
class CategoryGuess:
    """Outcome of keyword classification. Never absent: falls back to other/0."""
    category: Category = Category.OTHER
    confidence: float = 0.0
    matched_keywords: Tuple[str, ...] = ()

    @classmethod
    def fallback(cls) -> "CategoryGuess":
        return cls()


@dataclass
class DraftExpense:
    """
    Inferred, user-editable candidate expense.

    `amount` and `category` start as the pipeline's guesses; once the user
    edits them (see DraftEditor) the edited values win.
    """
    amount: float
    category: Category
    date: dt.date
    notes: str
    confidence: float
    matched_keywords: Tuple[str, ...]
    raw_text: str
    parsed_fields: ParsedReceiptFields
    merchant: str = ""
    warnings: List[str] = field(default_factory=list)

    @property
    def inferred_amount(self) -> Optional[float]:
        return self.parsed_fields.amount


class DraftEditor:
    """
    Field-by-field override of an inferred draft before commit.

        draft = DraftEditor(draft).set_amount("12.50").set_category("food").build()
    """

    def __init__(self, draft: DraftExpense):
        self._draft = draft
        self._changes: Dict[str, Any] = {}

    def set_amount(self, amount: Union[str, float, int]) -> "DraftEditor":
        if isinstance(amount, str):
            amount = amount.strip()
            try:
                amount = float(amount) if amount else 0.0
            except ValueError:
                raise ValidationError(f"Amount {amount!r} is not a number", field="amount")
        self._changes["amount"] = float(amount)
        return self

    def set_category(self, category: Union[str, Category]) -> "DraftEditor":
        try:
            self._changes["category"] = Category.coerce(category)
        except ValueError:
            raise ValidationError(f"Unknown category: {category}", field="category")
        return self

    def set_date(self, date: Union[str, dt.date]) -> "DraftEditor":
        if isinstance(date, str):
            try:
                date = dt.date.fromisoformat(date.strip())
            except ValueError:
                raise ValidationError(f"Date {date!r} is not YYYY-MM-DD", field="date")
        elif isinstance(date, dt.datetime):
            date = date.date()
        self._changes["date"] = date
        return self

    def set_notes(self, notes: str) -> "DraftEditor":
        self._changes["notes"] = notes
        return self

    def set_merchant(self, merchant: str) -> "DraftEditor":
        self._changes["merchant"] = merchant
        return self

    def build(self) -> DraftExpense:
        return replace(self._draft, warnings=list(self._draft.warnings), **self._changes)


@dataclass
class ExpenseRecord:
    """A persisted expense."""
    id: str
    amount: float
    category: str
    date: str
    notes: str = ""
    title: str = ""
    recurring_interval: str = "none"
    source: str = "manual"
    ocr_raw: str = ""
    ocr_parsed: Optional[Dict[str, Any]] = None
    created_at: Optional[str] = None

    def to_dict(self):
        """Convert to dictionary."""
        return asdict(self)


@dataclass
class Budget:
    """Monthly spending limit for one category."""
    category: str
    limit_amount: float
    month: int
    year: int
    id: Optional[int] = None


@dataclass
class CategorySummary:
    category: str
    spent: float
    budget_limit: Optional[float] = None
    remaining: Optional[float] = None
    percent_used: Optional[int] = None


@dataclass
class MonthlySummary:
    month: int
    year: int
    total_expenses: float
    category_breakdown: List[CategorySummary] = field(default_factory=list)
    total_income: float = 0.0
    net_savings: float = 0.0


@dataclass
class IncomeRecord:
    """Money received in a month (salary, freelance, ...)."""
    id: str
    source: str
    amount: float
    income_date: str
    created_at: Optional[str] = None


@dataclass
class SavingRecord:
    """An amount put aside on a given day."""
    id: str
    amount: float
    date: str
    category: str = "savings"
    created_at: Optional[str] = None


@dataclass
class SavingsGoal:
    id: str
    title: str
    target_amount: float
    current_amount: float = 0.0
    deadline: Optional[str] = None
    created_at: Optional[str] = None

    @property
    def progress_percent(self) -> float:
        """Share of the target already saved, capped at 100."""
        if self.target_amount <= 0:
            return 100.0
        return min(self.current_amount / self.target_amount * 100, 100.0)

    @property
    def completed(self) -> bool:
        return self.current_amount >= self.target_amount

    def past_deadline(self, today: Optional[dt.date] = None) -> bool:
        if not self.deadline:
            return False
        return dt.date.fromisoformat(self.deadline) < (today or dt.date.today())
