"""Timestamp parsing and formatting shared by the scraper and the ledger.

Ledger timestamps are written as ISO-8601 UTC with a ``Z`` suffix. Values
read back may have been typed by hand into the ledger, so parsing accepts a
handful of common layouts and returns None for anything else.
"""

import re
from datetime import date, datetime, timezone
from typing import Optional, Union

MONTH_ABBREVIATIONS = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)

# "Jan 28, 2026", "Jan 28 2026", "Jan 28" (year optional)
MONTH_DAY_PATTERN = re.compile(
    r"\b(" + "|".join(MONTH_ABBREVIATIONS) + r")\s+(\d{1,2})\b(?:,?\s*(\d{4})\b)?",
    re.IGNORECASE,
)

# Optional "HH:MM" directly after a month/day match ("Jan 25, 12:00")
_TIME_OF_DAY = re.compile(r"^\s*,?\s*(\d{1,2}):(\d{2})\b")

_FALLBACK_FORMATS = (
    "%Y-%m-%d",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%m/%d/%Y",
    "%m/%d/%Y %H:%M:%S",
    "%b %d, %Y",
    "%b %d %Y",
)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(value: Optional[datetime]) -> str:
    """Serialize a datetime for the ledger ('' when absent)."""
    if value is None:
        return ""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def parse_timestamp(value: Union[str, datetime, None]) -> Optional[datetime]:
    """
    Parse a ledger or page timestamp into an aware UTC datetime.

    Naive values are taken as UTC.

    Args:
        value: ISO-8601 string (``Z`` or offset allowed), one of the
            fallback layouts, a datetime, or None

    Returns:
        Aware datetime, or None if the value is empty or unparseable
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value).strip()
        if not text:
            return None
        parsed = None
        try:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            for fmt in _FALLBACK_FORMATS:
                try:
                    parsed = datetime.strptime(text, fmt)
                    break
                except ValueError:
                    continue
        if parsed is None:
            return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def calendar_day(value: Union[str, datetime, None]) -> str:
    """UTC calendar day (YYYY-MM-DD) of a timestamp, or '' if unparseable."""
    parsed = parse_timestamp(value)
    if parsed is None:
        return ""
    return parsed.strftime("%Y-%m-%d")


def parse_month_day(text: str, reference: Optional[date] = None) -> Optional[datetime]:
    """
    Find the first "{Mon} {day}[, {year}]" date in a piece of page text.

    A missing year defaults to the reference date's year. An
    "HH:MM" immediately after the match is applied as the time of day.

    Args:
        text: Free text from a table cell or status line
        reference: Date supplying the default year (today if None)

    Returns:
        Aware UTC datetime, or None if no valid date is present
    """
    match = MONTH_DAY_PATTERN.search(text or "")
    if not match:
        return None

    reference = reference or utc_now().date()
    month, day, year = match.group(1), match.group(2), match.group(3) or str(reference.year)

    try:
        parsed = datetime.strptime(f"{month} {day} {year}", "%b %d %Y")
    except ValueError:
        return None

    clock = _TIME_OF_DAY.match(text[match.end():])
    if clock:
        hour, minute = int(clock.group(1)), int(clock.group(2))
        if hour < 24 and minute < 60:
            parsed = parsed.replace(hour=hour, minute=minute)

    return parsed.replace(tzinfo=timezone.utc)
