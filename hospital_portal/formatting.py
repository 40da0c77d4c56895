"""
Display helpers used as column renderers and page filters.
"""

import re
from datetime import date, datetime
from typing import Any, Iterable, List, Optional

STATUS_BADGES = {
    "scheduled": "pending",
    "pending": "pending",
    "completed": "completed",
    "paid": "completed",
    "cancelled": "cancelled",
    "failed": "cancelled",
    "active": "active",
    "inactive": "inactive",
    "unread": "unread",
    "read": "read",
    "resolved": "resolved",
}

CURRENCY_SYMBOLS = {"USD": "$", "KES": "KSh ", "EUR": "€", "GBP": "£"}


def parse_date(value) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if not value:
        return None
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


def format_date(value, style: str = "medium") -> str:
    """Format an ISO date/datetime for display; 'short', 'medium', 'long' or 'datetime'."""
    if not value:
        return "N/A"
    d = parse_date(value)
    if d is None:
        return "Invalid Date"
    if style == "short":
        return d.strftime("%m/%d/%Y")
    if style == "long":
        return f"{d.strftime('%A, %B')} {d.day}, {d.year}"
    if style == "datetime":
        return f"{d.strftime('%b')} {d.day}, {d.year}, {format_time(d.strftime('%H:%M'))}"
    return d.strftime("%m/%d/%Y, %H:%M:%S")


def format_time(value: Optional[str]) -> str:
    """'14:30' -> '2:30 PM'."""
    if not value:
        return "N/A"
    hours, _, minutes = str(value).partition(":")
    try:
        hour = int(hours)
    except ValueError:
        return str(value)
    suffix = "PM" if hour >= 12 else "AM"
    return f"{hour % 12 or 12}:{minutes[:2]} {suffix}"


def format_number(num) -> str:
    if isinstance(num, bool) or not isinstance(num, (int, float)):
        return "N/A"
    return f"{num:,}"


def format_currency(amount, currency: str = "USD") -> str:
    if isinstance(amount, bool) or not isinstance(amount, (int, float)):
        return "N/A"
    symbol = CURRENCY_SYMBOLS.get(currency.upper(), currency.upper() + " ")
    sign = "-" if amount < 0 else ""
    return f"{sign}{symbol}{abs(amount):,.2f}"


def status_badge_class(status) -> str:
    return "status-badge--" + STATUS_BADGES.get(str(status or "").lower(), "default")


def status_badge_text(status) -> str:
    if not status:
        return "N/A"
    s = str(status)
    return (s[:1].upper() + s[1:]).replace("_", " ")


def get_initials(name) -> str:
    if not name:
        return "N/A"
    return "".join(part[0] for part in str(name).split() if part)[:2].upper()


def filter_by_search(rows: Iterable[Any], term: Optional[str], keys: Iterable[str] = ("name",)) -> List[Any]:
    """Keep rows where any of *keys* holds a string containing *term* (case-insensitive)."""
    rows = list(rows or [])
    if not term:
        return rows
    needle = term.lower()
    keys = list(keys)
    out = []
    for row in rows:
        for key in keys:
            value = row.get(key) if isinstance(row, dict) else None
            if isinstance(value, str) and needle in value.lower():
                out.append(row)
                break
    return out


def format_error_message(error) -> str:
    message = getattr(error, "message", None)
    if message:
        return message
    text = str(error) if error else ""
    return text or "An unexpected error occurred. Please try again."


_WS = re.compile(r"\s+")


def truncate(text, limit: int = 80) -> str:
    """Collapse whitespace and cut long free text for table cells."""
    if not text:
        return ""
    s = _WS.sub(" ", str(text)).strip()
    return s if len(s) <= limit else s[: limit - 1] + "…"
