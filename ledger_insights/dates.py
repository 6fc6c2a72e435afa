# ledger_insights/dates.py
from __future__ import annotations

import math
from calendar import monthrange
from datetime import date, datetime
from typing import Iterable, List, Optional

from ledger_insights.core.models import DateRangeResult, Transaction

DAYS_PER_MONTH = 30.44
MONTHS_PER_YEAR = 12
SECONDS_PER_DAY = 86400

# April is month index 3 (0-based) and opens the financial year.
FY_START_MONTH_INDEX = 3


def valid_dates(transactions: Iterable[Transaction]) -> List[datetime]:
    return [t.date for t in transactions if isinstance(getattr(t, "date", None), datetime)]


def days_between(start: datetime, end: datetime) -> float:
    """Fractional days from *start* to *end*."""
    return (end - start).total_seconds() / SECONDS_PER_DAY


def calculate_date_range(transactions: Optional[Iterable[Transaction]]) -> DateRangeResult:
    """Return the observed span of *transactions*.

    ``days`` is at least 1 whenever one valid date exists, so same-day sets
    never produce a zero denominator downstream. With no valid dates every
    field is zero or ``None``.
    """
    dates = valid_dates(transactions or [])
    if not dates:
        return DateRangeResult()

    start_date = min(dates)
    end_date = max(dates)
    days = max(1, math.ceil(days_between(start_date, end_date)))
    months = days / DAYS_PER_MONTH
    return DateRangeResult(
        days=days,
        months=months,
        years=months / MONTHS_PER_YEAR,
        start_date=start_date,
        end_date=end_date,
    )


def month_key(value: date) -> str:
    """``YYYY-MM`` bucket for *value*."""
    return f"{value.year:04d}-{value.month:02d}"


def add_months(original: datetime, months: int) -> datetime:
    """Shift *original* by whole calendar months, clamping the day of month."""
    month_index = original.month - 1 + months
    year = original.year + month_index // 12
    month = month_index % 12 + 1
    day = min(original.day, monthrange(year, month)[1])
    return original.replace(year=year, month=month, day=day)


def fiscal_month_index(as_of: date) -> int:
    """0 for April through 11 for March."""
    current = as_of.month - 1
    if current >= FY_START_MONTH_INDEX:
        return current - FY_START_MONTH_INDEX
    return current + 12 - FY_START_MONTH_INDEX


def fiscal_year_start(as_of: date) -> datetime:
    """April 1 of the financial year containing *as_of*."""
    year = as_of.year if as_of.month - 1 >= FY_START_MONTH_INDEX else as_of.year - 1
    return datetime(year, FY_START_MONTH_INDEX + 1, 1)


def financial_year_label(as_of: date) -> str:
    """``FY 2024-25`` style label for the financial year containing *as_of*."""
    start = fiscal_year_start(as_of).year
    return f"FY {start}-{(start + 1) % 100:02d}"


def months_remaining_in_fiscal_year(as_of: date) -> int:
    return max(0, 11 - fiscal_month_index(as_of))


def resolve_now(as_of: Optional[datetime]) -> datetime:
    if as_of is None:
        return datetime.now()
    if isinstance(as_of, datetime):
        return as_of
    return datetime(as_of.year, as_of.month, as_of.day)
