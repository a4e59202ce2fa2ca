"""Mini README: Tolerant parsing of request and CSV values.

These helpers accept the loose shapes that arrive from JSON bodies, query
strings, and spreadsheet exports, and raise ``ValueError`` with a readable
message when a value cannot be coerced. Services translate those into
``ValidationFailed`` for the offending field.
"""

from __future__ import annotations

from datetime import date, datetime, time, timezone
from typing import Optional


def parse_datetime(value: object) -> datetime:
    """Parse ISO strings or date/datetime instances into naive UTC datetimes."""

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime.combine(value, time.min)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            raise ValueError("Date must not be empty.")
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            parsed = _parse_day_first(text)
    else:
        raise ValueError("Dates must be provided as ISO strings or date/datetime instances.")

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def _parse_day_first(text: str) -> datetime:
    # Spreadsheet exports commonly use DD/MM/YYYY or DD-MM-YYYY.
    for pattern in ("%d/%m/%Y", "%d-%m-%Y"):
        try:
            return datetime.strptime(text, pattern)
        except ValueError:
            continue
    raise ValueError(f"Unrecognised date: {text}")


def parse_amount(value: object) -> float:
    """Coerce a non-negative monetary amount."""

    if isinstance(value, bool) or value is None:
        raise ValueError("Amount is required")
    try:
        text = str(value).replace(",", "").strip() if isinstance(value, str) else value
        amount = float(text)
    except (TypeError, ValueError) as error:
        raise ValueError("Amount must be a number") from error
    if amount != amount or amount in (float("inf"), float("-inf")):
        raise ValueError("Amount must be a finite number")
    if amount < 0:
        raise ValueError("Amount cannot be negative")
    return amount


def clean_text(value: object) -> Optional[str]:
    """Strip strings, mapping blanks and ``None`` to ``None``."""

    if value is None:
        return None
    text = str(value).strip()
    return text or None
