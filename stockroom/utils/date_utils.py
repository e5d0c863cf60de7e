# stockroom/utils/date_utils.py
from datetime import date, datetime, timedelta
from typing import Optional, Tuple, Union
from zoneinfo import ZoneInfo
import calendar

from stockroom.config import config
from stockroom.exceptions import ValidationError

DATE_KEY_FORMAT = "%Y-%m-%d"


def get_timezone(tz_name: Optional[str] = None) -> ZoneInfo:
    """Get the single fixed time zone the ledger runs in."""
    return ZoneInfo(tz_name or config.ledger_rules['timezone'])


def now(tz_name: Optional[str] = None) -> datetime:
    return datetime.now(get_timezone(tz_name))


def today(tz_name: Optional[str] = None) -> date:
    """Get the current calendar day in the ledger time zone."""
    return now(tz_name).date()


def tomorrow(tz_name: Optional[str] = None) -> date:
    return today(tz_name) + timedelta(days=1)


def timestamp() -> str:
    """ISO-8601 timestamp used for created_at/updated_at."""
    return now().isoformat()


def to_date(value: Union[str, date, datetime, None]) -> Optional[date]:
    """Truncate a date-like value to its calendar day.

    Accepts a ``date``, a ``datetime`` (time of day dropped) or an ISO string
    such as ``2024-06-01`` or ``2024-06-01T13:45:00+08:00``.

    Args:
        value: Date-like value

    Returns:
        Calendar date, or None when value is None or empty

    Raises:
        ValidationError if the value is not a valid calendar day
    """
    if value is None or value == '':
        return None

    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(get_timezone())
        return value.date()

    if isinstance(value, date):
        return value

    text = str(value).strip()
    try:
        if len(text) == 10:
            return convert_to_date(text)
        parsed = datetime.fromisoformat(text.replace('Z', '+00:00'))
    except ValueError:
        raise ValidationError(f"Invalid date: {value}", details={'date': f'Invalid date: {value}'})

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(get_timezone())
    return parsed.date()


def convert_to_date(date_string: str, format_string: str = DATE_KEY_FORMAT) -> date:
    """Convert string to date.

    Args:
        date_string: Date string
        format_string: Format string

    Returns:
        Date object
    """
    return datetime.strptime(date_string, format_string).date()


def date_key(value: Union[str, date, datetime]) -> str:
    """Format a date as the ``YYYY-MM-DD`` string used in index keys."""
    return to_date(value).strftime(DATE_KEY_FORMAT)


def previous_day(target_date: date) -> date:
    return target_date - timedelta(days=1)


def get_week_window(target_date: date) -> Tuple[date, date]:
    """Get the Monday-anchored 7-day window containing a date."""
    start_date = target_date - timedelta(days=target_date.weekday())
    return (start_date, start_date + timedelta(days=6))


def get_month_window(target_date: date) -> Tuple[date, date]:
    """Get the calendar month containing a date."""
    last_day = calendar.monthrange(target_date.year, target_date.month)[1]
    return (
        date(target_date.year, target_date.month, 1),
        date(target_date.year, target_date.month, last_day)
    )


def days_between(start_date: date, end_date: date) -> int:
    """Get the number of calendar days spanned by an inclusive window.

    Args:
        start_date: First day of the window
        end_date: Last day of the window

    Returns:
        Number of days, counting both ends
    """
    return (end_date - start_date).days + 1
