"""
Receipt ingestion orchestration: image -> text -> fields + category -> draft -> expense.
"""

import asyncio
import datetime as dt
import logging
import math
from pathlib import Path
from typing import Any, Dict, Optional, Protocol

from .categorization import DEFAULT_TABLE, KeywordTable, classify
from .exceptions import ExtractionError, ImageTooLargeError, StoreError, ValidationError
from .models import Category, DraftExpense, ExpenseRecord
from .ocr import TesseractExtractor, TextExtractor
from .parsers import parse_receipt
from .utils import IMAGE_EXTS, MAX_IMAGE_BYTES, PDF_EXTS, truncate

logger = logging.getLogger(__name__)

EPOCH = dt.date(1970, 1, 1)


class ExpenseSink(Protocol):
    def add_expense(self, payload: Dict[str, Any]) -> ExpenseRecord: ...


def build_notes(merchant: Optional[str], raw_text: str) -> str:
    """Merchant name plus the first 200 characters of OCR text, for audit."""
    return f"{merchant or 'Receipt'}\n\nRaw OCR: {truncate(raw_text, 200)}"


def validate_draft(draft: DraftExpense):
    """Raise ValidationError unless the draft can be committed."""
    try:
        amount = float(draft.amount)
    except (TypeError, ValueError):
        raise ValidationError("Please enter a valid amount greater than 0", field="amount")
    if not math.isfinite(amount) or not amount > 0:
        raise ValidationError("Please enter a valid amount greater than 0", field="amount")
    try:
        Category.coerce(draft.category)
    except ValueError:
        raise ValidationError(f"Unknown category: {draft.category}", field="category")
    date = draft.date
    if isinstance(date, dt.datetime):
        date = date.date()
    if not isinstance(date, dt.date) or date < EPOCH:
        raise ValidationError(f"Invalid date: {draft.date}", field="date")


def to_payload(draft: DraftExpense) -> Dict[str, Any]:
    """
    Shape a confirmed draft for the persistence collaborator.

    `originalAmount` is the amount read off the receipt, which may differ
    from the (user-edited) `amount`.
    """
    date = draft.date.date() if isinstance(draft.date, dt.datetime) else draft.date
    return {
        "amount": float(draft.amount),
        "category": Category.coerce(draft.category).value,
        "date": date.isoformat(),
        "notes": draft.notes,
        "source": "receipt",
        "ocrRaw": draft.raw_text,
        "ocrParsed": {
            "merchant": draft.merchant,
            "confidence": draft.confidence,
            "matchedKeywords": list(draft.matched_keywords),
            "originalAmount": draft.inferred_amount,
            "parsedData": draft.parsed_fields.to_dict(),
        },
    }


class ReceiptScanner:
    """Coordinates OCR, parsing and categorization of a single receipt at a time."""

    def __init__(self, extractor: Optional[TextExtractor] = None,
                 keyword_table: Optional[KeywordTable] = None,
                 sink: Optional[ExpenseSink] = None,
                 max_bytes: Optional[int] = MAX_IMAGE_BYTES,
                 today=None):
        """
        Args:
            extractor: OCR backend (defaults to Tesseract)
            keyword_table: Category keyword catalogue shared by every scan
                (defaults to the built-in table)
            sink: Persistence collaborator used by confirm()
            max_bytes: Reject larger images before OCR; None disables the check
            today: Callable returning the processing date (for tests)
        """
        self.extractor = extractor or TesseractExtractor()
        self.keyword_table = keyword_table or DEFAULT_TABLE
        self.sink = sink
        self.max_bytes = max_bytes
        self._today = today or dt.date.today

    def build_draft(self, raw_text: str) -> DraftExpense:
        """Parse + classify OCR text into a draft. Pure apart from the clock."""
        parsed = parse_receipt(raw_text, today=self._today())
        guess = classify(raw_text, parsed.merchant or "", table=self.keyword_table)

        warnings = []
        if parsed.amount is None:
            warnings.append("Amount not detected; please enter it before saving")
        if not parsed.date_found:
            warnings.append("Date not found on receipt; defaulted to today")

        return DraftExpense(
            amount=parsed.amount or 0.0,
            category=guess.category,
            date=parsed.date,
            notes=build_notes(parsed.merchant, raw_text),
            confidence=guess.confidence,
            matched_keywords=guess.matched_keywords,
            raw_text=raw_text,
            parsed_fields=parsed,
            merchant=parsed.merchant or "",
            warnings=warnings,
        )

    def _check_size(self, image: bytes):
        if self.max_bytes is not None and len(image) > self.max_bytes:
            raise ImageTooLargeError(len(image), self.max_bytes)

    async def scan(self, image: bytes, filename: str = "receipt") -> DraftExpense:
        """
        OCR an image and return an editable draft.

        The OCR call runs in a worker thread so the event loop stays free
        while the engine works.
        """
        self._check_size(image)
        logger.info("Processing %s (%d bytes)", filename, len(image))

        try:
            raw_text = await asyncio.to_thread(self.extractor.extract_text, image)
        except ExtractionError:
            logger.warning("OCR failed for %s", filename)
            raise

        draft = self.build_draft(raw_text)
        logger.info("Receipt processed: amount=%s category=%s confidence=%.2f",
                    draft.amount or "not detected", draft.category.value, draft.confidence)
        # Callers show draft.warnings themselves
        for warning in draft.warnings:
            logger.debug("%s: %s", filename, warning)
        return draft

    def scan_sync(self, image: bytes, filename: str = "receipt") -> DraftExpense:
        """Blocking variant of scan() for scripts."""
        return asyncio.run(self.scan(image, filename))

    def scan_file(self, path: Path) -> DraftExpense:
        path = Path(path)
        if path.suffix.lower() not in IMAGE_EXTS | PDF_EXTS:
            raise ExtractionError(f"Unsupported file type: {path}")
        try:
            data = path.read_bytes()
        except OSError as exc:
            raise ExtractionError(f"Could not read {path}: {exc}") from exc
        return self.scan_sync(data, filename=path.name)

    def rescore(self, draft: DraftExpense, text: str) -> DraftExpense:
        """Reclassify a draft after the user corrected its text."""
        guess = classify(text, draft.merchant, table=self.keyword_table)
        draft.category = guess.category
        draft.confidence = guess.confidence
        draft.matched_keywords = guess.matched_keywords
        return draft

    def confirm(self, draft: DraftExpense) -> ExpenseRecord:
        """Validate a draft and hand it to the persistence collaborator."""
        try:
            validate_draft(draft)
        except ValidationError as exc:
            logger.warning("Draft rejected (%s): %s", exc.field, exc)
            raise
        if self.sink is None:
            raise StoreError("No expense store configured")
        record = self.sink.add_expense(to_payload(draft))
        logger.info("Saved expense %s: %.2f %s", record.id, record.amount, record.category)
        return record
