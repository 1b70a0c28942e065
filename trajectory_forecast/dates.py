"""
UTC calendar helpers.

Every instant in the engine is a naive ``datetime`` that is understood to be
UTC, so calendar days and month ends never depend on the local timezone.
"""
import calendar
import math
from datetime import date, datetime, timedelta, timezone

ONE_DAY = timedelta(days=1)


def utc_now():
    return datetime.now(timezone.utc).replace(tzinfo=None)


def month_key(d):
    return f"{d.year:04d}-{d.month:02d}"


def parse_month_key(key):
    year, month = key.split('-')
    return int(year), int(month)


def month_start(year, month):
    return datetime(year, month, 1)


def month_end(year, month):
    """Last instant of the month (23:59:59.999 on its last day)."""
    last_day = calendar.monthrange(year, month)[1]
    return datetime(year, month, last_day, 23, 59, 59, 999000)


def closing_date(key):
    """Midnight of the last day of the month named by ``key``."""
    year, month = parse_month_key(key)
    return datetime(year, month, calendar.monthrange(year, month)[1])


def previous_month(year, month):
    if month == 1:
        return year - 1, 12
    return year, month - 1


def days_before_close(end_of_month, snapshot):
    return math.ceil((end_of_month - snapshot) / ONE_DAY)


def to_utc_naive(ts):
    """Normalise a pandas/py timestamp to a naive UTC ``datetime``."""
    if getattr(ts, 'tzinfo', None) is not None:
        ts = ts.astimezone(timezone.utc).replace(tzinfo=None)
    if hasattr(ts, 'to_pydatetime'):
        ts = ts.to_pydatetime()
    return ts


def day_string(d):
    if isinstance(d, datetime):
        d = d.date()
    if isinstance(d, date):
        return d.isoformat()
    return str(d)
