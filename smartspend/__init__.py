"""
SmartSpend

Personal expense tracking with receipt scanning: OCR a receipt photo,
pull out the amount, date and merchant, guess the spending category,
and save the corrected result alongside monthly budgets.
"""

__version__ = "1.0.0"
__author__ = "SmartSpend Contributors"

from smartspend.core.models import Category, DraftEditor, DraftExpense, ExpenseRecord
from smartspend.core.exceptions import ExtractionError, ValidationError

__all__ = [
    "Category",
    "DraftEditor",
    "DraftExpense",
    "ExpenseRecord",
    "ExtractionError",
    "ValidationError",
]
