"""
Calendar-month helpers.

A *period* is a calendar month identified by ``(year, month)`` with
``month`` in 1-12.  Planned expenses, payments and category budgets are all
keyed by period.
"""
from calendar import monthrange
from datetime import date

from dateutil.relativedelta import relativedelta

from services.errors import ValidationError


MONTH_NAMES = [
    'January', 'February', 'March', 'April', 'May', 'June',
    'July', 'August', 'September', 'October', 'November', 'December',
]


def validate_period(year, month):
    """Raise ``ValueError`` unless *month* is 1-12 and *year* is plausible."""
    if not isinstance(month, int) or not 1 <= month <= 12:
        raise ValueError(f'month must be between 1 and 12, got {month!r}')
    if not isinstance(year, int) or not 1900 <= year <= 9999:
        raise ValueError(f'year out of range: {year!r}')


def check_period(year, month):
    """Like ``validate_period`` but raises the user-facing ``ValidationError``."""
    try:
        validate_period(year, month)
    except ValueError as e:
        raise ValidationError(str(e))


def days_in_month(year, month):
    return monthrange(year, month)[1]


def period_start(year, month):
    return date(year, month, 1)


def period_end(year, month):
    """Last calendar day of the period."""
    return date(year, month, days_in_month(year, month))


def period_bounds(year, month):
    return period_start(year, month), period_end(year, month)


def clamp_day(year, month, day):
    """Return the date for *day* in the period, clamped to the month's last day.

    ``clamp_day(2026, 2, 31)`` is 28 February 2026.
    """
    return date(year, month, min(day, days_in_month(year, month)))


def shift_month(year, month, delta):
    """Move *delta* months forward (or back) and return ``(year, month)``."""
    shifted = period_start(year, month) + relativedelta(months=delta)
    return shifted.year, shifted.month


def compare_periods(a, b):
    """Three-way compare two ``(year, month)`` tuples: -1, 0 or 1."""
    return (a > b) - (a < b)


def month_label(year, month):
    return f'{MONTH_NAMES[month - 1]} {year}'


def year_choices(today=None, span=2):
    """Years offered by period selectors: *span* years either side of today."""
    today = today or date.today()
    return list(range(today.year - span, today.year + span + 1))
