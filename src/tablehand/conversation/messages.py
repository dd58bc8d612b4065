"""User-facing reply texts (Hebrew)."""

from __future__ import annotations

from typing import Sequence

CONFIRMATION_HEADER = "🔔 בקשת אישור:\n\n"
CONFIRMATION_FOOTER = "❓ האם לבצע את הפעולה? (כן/לא)"

UNCLEAR_CONFIRMATION = 'לא הבנתי את התגובה. אנא כתוב "כן" לאישור או "לא" לביטול.'
ACTION_CANCELLED = "❌ הפעולה בוטלה לפי בקשתך"
ACTION_SUPERSEDED = "הפעולה הקודמת בוטלה לטובת בקשה חדשה"
CANCELLED_TOOL_RESULT = "Cancelled by user"

EMPTY_ANSWER_AFTER_TOOLS = "הפעולה בוצעה בהצלחה."
EMPTY_ANSWER = "לא הבנתי את הבקשה. אנא נסח מחדש."
ENGINE_UNAVAILABLE = "⚠️ השירות אינו זמין כרגע. אנא נסה שוב בעוד מספר דקות."

UNKNOWN_VALUE = "(לא ידוע)"

EXISTING_DEAL_FOUND = "✅ נמצאה עסקה קיימת במערכת עבור הלקוח והפרויקט. הלקוח כבר רשום."
PARTIAL_RESULT = "הפעולה בוצעה חלקית. אנא בדוק את התוצאות במערכת."

ERROR_HINTS = {
    "not_found": "הרשומה לא קיימת בטבלה. אנא חפש שוב לקבלת Record ID נכון.",
    "invalid_argument": "נתונים לא תקינים או מזהה רשומה שגוי. בדוק את הפורמט ואת ה-Record ID.",
    "schema_mismatch": (
        "השדה או ערך הבחירה לא קיימים בטבלה. בדוק שמות שדות עם get_table_fields "
        "והשתמש רק בערכים קיימים."
    ),
    "transport": "מאגר הרשומות אינו זמין כרגע. נסה שוב מאוחר יותר או הודע למשתמש.",
}
DEFAULT_ERROR_HINT = "שגיאה לא צפויה בהפעלת הכלי."


def approval_summary(total: int, failures: Sequence[tuple[str, str]]) -> str:
    """Summarize the outcome of executing an approved action."""
    succeeded = total - len(failures)
    if not failures:
        if total == 1:
            return "✅ הפעולה בוצעה בהצלחה!"
        return f"✅ כל {total} הפעולות בוצעו בהצלחה!"

    lines = [f"- {name}: {message}" for name, message in failures]
    if succeeded == 0:
        header = "❌ אירעה שגיאה בביצוע הפעולה:"
    else:
        header = f"⚠️ בוצעו {succeeded} מתוך {total} פעולות. שגיאות:"
    return "\n".join([header, *lines])


def exhausted_summary(tools_executed: Sequence[str]) -> str:
    """Degraded answer when the loop runs out of steps without final text."""
    if not tools_executed:
        return "לא הצלחתי להשלים את הבקשה. אנא נסח אותה מחדש."
    if "search_records" in tools_executed and "search_transactions" in tools_executed:
        return EXISTING_DEAL_FOUND
    seen: list[str] = []
    for name in tools_executed:
        if name not in seen:
            seen.append(name)
    return f"{PARTIAL_RESULT}\nכלים שהופעלו: {', '.join(seen)}"
