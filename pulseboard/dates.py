"""Calendar arithmetic on plain dates.

Dates never carry a time or timezone, so every result is the same wherever the
code runs. Month arithmetic clamps the day to the end of the target month.
"""

import calendar
from datetime import date, timedelta

_MONTH_ABBR = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")

DEFAULT_CUSTOM_INTERVAL_DAYS = 30


def today() -> date:
    return date.today()


def to_date(value: date | str) -> date:
    if isinstance(value, date):
        return value
    return date.fromisoformat(value)


def add_days(value: date | str, days: int) -> date:
    return to_date(value) + timedelta(days=days)


def add_months(value: date | str, months: int) -> date:
    """Add calendar months; Jan 31 + 1 month is the last day of February."""
    d = to_date(value)
    month_index = d.month - 1 + months
    year = d.year + month_index // 12
    month = month_index % 12 + 1
    day = min(d.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def days_between(a: date | str, b: date | str) -> int:
    """Signed whole days from ``b`` to ``a``; positive when ``a`` is later."""
    return (to_date(a) - to_date(b)).days


def is_date_in_window(target: date | str, start: date | str, window_days: int) -> bool:
    delta = days_between(target, start)
    return 0 <= delta <= window_days


def month_key(value: date | str) -> str:
    return to_date(value).isoformat()[:7]


def month_label(key: str) -> str:
    year, month = key.split("-")
    return f"{_MONTH_ABBR[int(month) - 1]} {year}"


def next_charge_date(value: date | str, cycle: str, custom_interval_days: int | None = None) -> date:
    """Single forward step along a billing cycle."""
    if cycle == "weekly":
        return add_days(value, 7)
    if cycle == "monthly":
        return add_months(value, 1)
    if cycle == "yearly":
        return add_months(value, 12)
    if cycle == "custom_days":
        interval = DEFAULT_CUSTOM_INTERVAL_DAYS if custom_interval_days is None else custom_interval_days
        return add_days(value, interval)
    return to_date(value)
