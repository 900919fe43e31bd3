"""
utils/dates.py — Calendar date helpers shared by the planning engines.

All dates are local wall-clock calendar dates: no timezone conversion is
ever applied. Stored dates are ISO strings (YYYY-MM-DD); engines work on
datetime.date and convert back with to_iso().
"""

from datetime import date, datetime, timedelta


MONTH_NAMES = [
    'January', 'February', 'March', 'April', 'May', 'June',
    'July', 'August', 'September', 'October', 'November', 'December',
]

DATE_FORMATS = ('dd/MM/yyyy', 'MM/dd/yyyy', 'yyyy-MM-dd')
DEFAULT_DATE_FORMAT = 'dd/MM/yyyy'


def parse_date(value):
    """
    Coerce a date-like value to a datetime.date.

    Accepts a date, a datetime (time part dropped) or an ISO string. A
    string with a time part ("2024-03-01T10:00:00") keeps only its date.

    Returns:
        The date, or None when the value is empty or malformed.
    """
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip()[:10])
        except ValueError:
            return None
    return None


def parse_moment(value):
    """Like parse_date() but keeps the time of day of datetime inputs.

    Plain dates become local midnight.
    """
    if isinstance(value, datetime):
        return value.replace(tzinfo=None)
    day = parse_date(value)
    if day is None:
        return None
    return datetime(day.year, day.month, day.day)


def to_iso(day):
    """Format a date as YYYY-MM-DD (None passes through)."""
    if day is None:
        return None
    return day.isoformat()


def add_days(day, n):
    """Return the calendar date n days after day (n may be negative)."""
    return day + timedelta(days=n)


def days_between(start, end):
    """Whole days from start to end (negative if end is earlier)."""
    return (end - start).days


def is_within_month_range(day, start_month, end_month):
    """
    Check whether the month of `day` lies in [start_month, end_month].

    The range wraps across the year end when start_month > end_month,
    e.g. 10..3 covers Oct, Nov, Dec, Jan, Feb and Mar. The year is ignored.
    """
    month = day.month
    if start_month <= end_month:
        return start_month <= month <= end_month
    return month >= start_month or month <= end_month


def month_name(month):
    """English month name for 1-12, empty string otherwise."""
    if 1 <= month <= 12:
        return MONTH_NAMES[month - 1]
    return ''


def format_date(day, date_format=DEFAULT_DATE_FORMAT):
    """
    Render a date for display according to the user's date format setting.

    Unknown formats fall back to dd/MM/yyyy. Malformed input gives ''.
    """
    day = parse_date(day)
    if day is None:
        return ''

    dd = f"{day.day:02d}"
    mm = f"{day.month:02d}"
    yyyy = f"{day.year:04d}"

    if date_format == 'MM/dd/yyyy':
        return f"{mm}/{dd}/{yyyy}"
    elif date_format == 'yyyy-MM-dd':
        return f"{yyyy}-{mm}-{dd}"
    return f"{dd}/{mm}/{yyyy}"


def same_day_this_year(value, year):
    """Move a stored date (e.g. a frost date) onto `year`.

    29 February becomes 28 February in non-leap years.
    """
    day = parse_date(value)
    if day is None:
        return None
    try:
        return day.replace(year=year)
    except ValueError:
        return day.replace(year=year, day=28)
