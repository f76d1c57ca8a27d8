"""
Calendar date helpers for trip, event, and booking dates.

Date-only values ('2025-03-15') are calendar days, not instants: they are
parsed as local midnight so the day shown is the day booked.
"""
import re
from datetime import date, datetime
from typing import Optional, Union

DATE_ONLY_RE = re.compile(r'^\d{4}-\d{2}-\d{2}$')

DateLike = Union[str, date, datetime, None]


def parse_calendar_date(value: DateLike) -> Optional[datetime]:
    """
    Parse a calendar date.

    Returns None for empty or unparseable input.
    """
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)

    s = str(value).strip()
    if not s:
        return None

    # Full datetimes keep their time; only bare dates become local midnight
    if DATE_ONLY_RE.match(s):
        try:
            return datetime.strptime(s, '%Y-%m-%d')
        except ValueError:
            return None

    try:
        return datetime.fromisoformat(s.replace('Z', '+00:00'))
    except ValueError:
        return None


def format_calendar_date(value: DateLike, fmt: str, fallback: str = '') -> str:
    """
    Format a calendar date with strftime syntax, or return fallback.

        format_calendar_date('2025-03-15', '%d %b %Y')  -> '15 Mar 2025'
    """
    parsed = parse_calendar_date(value)
    if parsed is None:
        return fallback
    try:
        return parsed.strftime(fmt)
    except ValueError:
        return fallback or str(value)


def parse_date_of_birth(value: str) -> Optional[date]:
    parsed = parse_calendar_date(value)
    return parsed.date() if parsed else None


def start_of_today(now: Optional[datetime] = None) -> datetime:
    now = now or datetime.now()
    return now.replace(hour=0, minute=0, second=0, microsecond=0)
