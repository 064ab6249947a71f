"""
Keyword-based categorization of receipt text.
"""

import json
import logging
from pathlib import Path
from types import MappingProxyType
from typing import Iterable, List, Mapping, Optional, Tuple

from .exceptions import ValidationError
from .models import Category, CategoryGuess

logger = logging.getLogger(__name__)

# Below this the best match is treated as noise and the receipt goes to "other"
CONFIDENCE_THRESHOLD = 0.3

# Declaration order matters: ties go to the category listed first.
DEFAULT_KEYWORDS: Tuple[Tuple[Category, Tuple[str, ...]], ...] = (
    (Category.FOOD, (
        "zomato", "swiggy", "restaurant", "cafe", "pizza", "burger", "coffee",
        "tea", "food", "dining", "kitchen", "meal", "lunch", "dinner", "breakfast",
        "dominos", "kfc", "mcdonalds", "subway", "bakery", "ice cream",
    )),
    (Category.TRANSPORT, (
        "uber", "ola", "taxi", "bus", "metro", "train", "fuel", "petrol",
        "diesel", "transport", "travel", "ride", "cab", "auto", "rickshaw",
        "parking", "toll", "rapido", "namma yatri",
    )),
    (Category.SHOPPING, (
        "amazon", "flipkart", "mall", "store", "shop", "market", "retail",
        "clothing", "fashion", "shoes", "accessories", "electronics", "mobile",
        "laptop", "grocery", "supermarket", "big bazaar", "reliance", "myntra",
    )),
    (Category.BILLS, (
        "electricity", "water", "phone", "recharge", "internet", "wifi",
        "mobile", "postpaid", "prepaid", "utility", "gas", "cylinder",
        "broadband", "cable", "dtv", "airtel", "jio", "vi", "bsnl",
    )),
    (Category.ENTERTAINMENT, (
        "movie", "cinema", "theater", "game", "sports", "gym", "fitness",
        "netflix", "amazon prime", "hotstar", "spotify", "youtube", "subscription",
        "entertainment", "fun", "party", "event", "concert",
    )),
    (Category.HEALTH, (
        "hospital", "doctor", "medical", "pharmacy", "medicine", "clinic",
        "health", "checkup", "appointment", "treatment", "insurance",
        "apollo", "fortis", "medplus", "wellness",
    )),
    (Category.EDUCATION, (
        "school", "college", "university", "course", "book", "study",
        "education", "tuition", "fee", "exam", "training", "workshop",
        "certification", "udemy", "coursera",
    )),
)

CATEGORY_LABELS = MappingProxyType({
    Category.FOOD: "Food & Dining",
    Category.TRANSPORT: "Transportation",
    Category.SHOPPING: "Shopping",
    Category.BILLS: "Bills & Utilities",
    Category.ENTERTAINMENT: "Entertainment",
    Category.HEALTH: "Healthcare",
    Category.EDUCATION: "Education",
    Category.OTHER: "Other",
})

CATEGORY_ICONS = MappingProxyType({
    Category.FOOD: "🍕",
    Category.TRANSPORT: "🚗",
    Category.SHOPPING: "🛍️",
    Category.BILLS: "💡",
    Category.ENTERTAINMENT: "🎬",
    Category.HEALTH: "🏥",
    Category.EDUCATION: "📚",
    Category.OTHER: "📝",
})


class KeywordTable:
    """
    Read-only category -> keywords catalogue.

    Built once and shared by every classifier call; keywords are stored
    lowercase and the category order is preserved for tie-breaking.
    """

    __slots__ = ("_entries",)

    def __init__(self, entries: Iterable[Tuple[Category, Iterable[str]]]):
        built = []
        seen = set()
        for category, keywords in entries:
            category = Category.coerce(category)
            if category is Category.OTHER:
                raise ValidationError("'other' is the fallback and cannot have keywords",
                                      field="keywords")
            if category in seen:
                raise ValidationError(f"Duplicate category in keyword table: {category.value}",
                                      field="keywords")
            seen.add(category)
            built.append((category, tuple(k.lower() for k in keywords if k and k.strip())))
        self._entries = tuple(built)

    def __iter__(self):
        return iter(self._entries)

    def __len__(self):
        return len(self._entries)

    def keywords_for(self, category: Category) -> Tuple[str, ...]:
        for cat, keywords in self._entries:
            if cat is category:
                return keywords
        return ()

    @property
    def categories(self) -> Tuple[Category, ...]:
        return tuple(cat for cat, _ in self._entries)


DEFAULT_TABLE = KeywordTable(DEFAULT_KEYWORDS)


def load_rules(path: Path) -> KeywordTable:
    """
    Load a keyword catalogue from a JSON rules file.

    Format:
        {"keywords": {"food": ["pizza", ...], "transport": [...]}}

    A missing file yields the built-in table.
    """
    if not path.exists():
        return DEFAULT_TABLE
    with path.open("r", encoding="utf-8") as f:
        rules = json.load(f)
    if not isinstance(rules, dict):
        raise ValidationError(f"{path.name} must hold a JSON object", field="keywords")

    keywords: Mapping[str, List[str]] = rules.get("keywords") or {}
    if not isinstance(keywords, dict):
        raise ValidationError(f"'keywords' in {path.name} must be an object", field="keywords")
    entries = []
    for name, words in keywords.items():
        try:
            category = Category.coerce(name)
        except ValueError:
            raise ValidationError(f"Unknown category in {path.name}: {name}", field="keywords")
        if not isinstance(words, list) or not all(isinstance(w, str) for w in words):
            raise ValidationError(f"Keywords for {name} in {path.name} must be a list of strings",
                                  field="keywords")
        entries.append((category, words))
    if not entries:
        return DEFAULT_TABLE
    logger.info("Loaded %d keyword categories from %s", len(entries), path)
    return KeywordTable(entries)


def matched_keywords(search_text: str, keywords: Iterable[str]) -> Tuple[str, ...]:
    return tuple(k for k in keywords if k in search_text)


def classify(text: str, merchant: Optional[str] = "",
             table: KeywordTable = DEFAULT_TABLE) -> CategoryGuess:
    """
    Guess the spending category of a receipt.

    Each category scores one point per distinct keyword found as a substring
    of the lowercased text + merchant. Confidence is score per ten words,
    capped at 1. A best confidence under 0.3 is reported as other/0.
    """
    search_text = f"{text or ''} {merchant or ''}".lower()
    if not search_text.strip():
        return CategoryGuess.fallback()

    best_category = Category.OTHER
    max_score = 0
    for category, keywords in table:
        score = len(matched_keywords(search_text, keywords))
        if score > max_score:
            max_score = score
            best_category = category

    word_count = len(search_text.split())
    confidence = min(max_score / max(word_count * 0.1, 1), 1)

    if confidence < CONFIDENCE_THRESHOLD:
        logger.debug("Low confidence %.2f for %s; using other", confidence, best_category.value)
        return CategoryGuess.fallback()

    guess = CategoryGuess(
        category=best_category,
        confidence=round(confidence, 2),
        matched_keywords=matched_keywords(search_text, table.keywords_for(best_category)),
    )
    logger.debug("Categorized as %s (confidence %.2f, keywords %s)",
                 guess.category.value, guess.confidence, ", ".join(guess.matched_keywords))
    return guess


def category_label(category) -> str:
    try:
        return CATEGORY_LABELS[Category.coerce(category)]
    except ValueError:
        return CATEGORY_LABELS[Category.OTHER]


def category_icon(category) -> str:
    try:
        return CATEGORY_ICONS[Category.coerce(category)]
    except ValueError:
        return CATEGORY_ICONS[Category.OTHER]
