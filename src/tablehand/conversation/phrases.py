"""Fixed phrase sets used to read conversational intent from chat text.

The assistant talks Hebrew with sales staff; a few English equivalents are
accepted for confirmation replies.
"""

from __future__ import annotations

import re

GREETINGS: tuple[str, ...] = ("היי", "שלום", "בוקר טוב", "ערב טוב", "הי", "מה נשמע", "מה קורה")

START_OVER: tuple[str, ...] = ("התחל מחדש", "שיחה חדשה", "נקה זיכרון", "מחק היסטוריה")

ACTION_VERBS: tuple[str, ...] = (
    "צור",
    "הוסף",
    "עדכן",
    "מצא",
    "חפש",
    "בדוק",
    "הצג",
    "רשום",
    "הכנס",
    "שנה",
    "מחק",
    "בטל",
)

CONTINUATION: tuple[str, ...] = (
    "כן",
    "אישור",
    "אוקיי",
    "בצע",
    "המשך",
    "תמשיך",
    "עוד",
    "גם",
    "בנוסף",
    "כמו כן",
)

# Words after which the next token is treated as a proper name (a customer,
# project or office being introduced).
ENTITY_MARKERS: tuple[str, ...] = (
    "לקוח",
    "הלקוח",
    "ללקוח",
    "פרויקט",
    "הפרויקט",
    "לפרויקט",
    "משרד",
    "המשרד",
    "ליד",
    "הליד",
    "עסקה",
    "העסקה",
    "יזם",
    "היזם",
)

APPROVAL: tuple[str, ...] = (
    "כן",
    "אישור",
    "מאשר",
    "מאשרת",
    "אוקיי",
    "בצע",
    "תבצע",
    "בסדר",
    "yes",
    "ok",
    "okay",
    "confirm",
)

REJECTION: tuple[str, ...] = (
    "לא",
    "ביטול",
    "בטל",
    "עצור",
    "אל תבצע",
    "no",
    "cancel",
    "stop",
)

NEW_REQUEST_VERBS: tuple[str, ...] = (
    "עדכן",
    "שנה",
    "תמצא",
    "מצא",
    "חפש",
    "צור",
    "הוסף",
    "מחק",
    "הצג",
)

_PUNCTUATION = re.compile(r"[^\w\s\u0590-\u05FF]+")


def normalize(text: str) -> str:
    """Case-fold, strip punctuation and collapse whitespace."""
    cleaned = _PUNCTUATION.sub(" ", text.casefold())
    return " ".join(cleaned.split())


def contains_phrase(normalized: str, phrase: str) -> bool:
    """Whole-word (or whole-phrase) match against normalized text."""
    return f" {phrase} " in f" {normalized} "


def contains_any_phrase(normalized: str, phrases: tuple[str, ...]) -> bool:
    return any(contains_phrase(normalized, phrase) for phrase in phrases)
