# ledger_insights/recurring.py
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Optional, Tuple

import pandas as pd

from ledger_insights.core.models import RecurringPattern, Transaction, TransactionType
from ledger_insights.dates import DAYS_PER_MONTH, days_between, resolve_now

logger = logging.getLogger(__name__)

IRREGULAR = "irregular"

# Inclusive day ranges for the mean interval of a series.
FREQUENCY_BUCKETS: Tuple[Tuple[str, int, int], ...] = (
    ("weekly", 6, 8),
    ("bi-weekly", 13, 16),
    ("monthly", 27, 33),
    ("bi-monthly", 60, 70),
    ("quarterly", 85, 95),
    ("semi-annually", 175, 185),
    ("annually", 360, 370),
)

_SKIPPED_TYPES = (TransactionType.INCOME, TransactionType.TRANSFER_IN)


@dataclass
class _Series:
    description: str
    category: str
    type: TransactionType
    amounts: List[float] = field(default_factory=list)
    dates: List[datetime] = field(default_factory=list)


def classify_frequency(mean_interval: float) -> Tuple[str, bool]:
    """Map a mean interval in days to ``(frequency, is_recurring)``."""
    for name, low, high in FREQUENCY_BUCKETS:
        if low <= mean_interval <= high:
            return name, True
    return IRREGULAR, False


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _series_key(t: Transaction, amount_bucket: float) -> str:
    bucket = _round_half_up(t.amount / amount_bucket) * amount_bucket if amount_bucket else t.amount
    return f"{t.label.strip().lower()}-{t.type.value}-{bucket:g}"


def _group_series(
    transactions: Iterable[Transaction], min_amount: float, amount_bucket: float
) -> Dict[str, _Series]:
    groups: Dict[str, _Series] = {}
    for t in transactions:
        if t.type in _SKIPPED_TYPES or t.amount < min_amount:
            continue
        key = _series_key(t, amount_bucket)
        series = groups.get(key)
        if series is None:
            series = _Series(description=t.label.strip(), category=t.category, type=t.type)
            groups[key] = series
        series.amounts.append(t.amount)
        series.dates.append(t.date)
    return groups


def _analyse_series(
    series: _Series, now: datetime, tolerance: float
) -> Optional[RecurringPattern]:
    dates = sorted(series.dates)
    intervals = pd.Series([days_between(a, b) for a, b in zip(dates, dates[1:])], dtype="float64")
    mean = float(intervals.mean())
    if mean <= 0:
        return None
    stdev = float(intervals.std(ddof=0))

    consistent = len(intervals) == 1 or stdev < mean * tolerance
    if not consistent:
        logger.debug("Series %r has inconsistent intervals", series.description)
        return None

    frequency, is_recurring = classify_frequency(mean)
    if not is_recurring:
        logger.debug("Series %r has irregular mean interval %.1f", series.description, mean)
        return None

    average = float(pd.Series(series.amounts, dtype="float64").mean())
    last = dates[-1]
    since_last = days_between(last, now)
    return RecurringPattern(
        description=series.description,
        category=series.category,
        type=series.type,
        average_amount=average,
        min_amount=min(series.amounts),
        max_amount=max(series.amounts),
        frequency=frequency,
        interval_days=_round_half_up(mean),
        occurrence_count=len(dates),
        consistency_percent=(1 - stdev / mean) * 100,
        is_active=since_last < mean * 2,
        first_occurrence=dates[0],
        last_occurrence=last,
        next_expected=last + timedelta(days=mean),
        monthly_equivalent=average / mean * DAYS_PER_MONTH,
        days_since_last_occurrence=_round_half_up(since_last),
    )


def detect_recurring_transactions(
    transactions: Optional[Iterable[Transaction]],
    *,
    as_of: Optional[datetime] = None,
    min_amount: float = 10,
    amount_bucket: float = 10,
    tolerance: float = 0.2,
) -> List[RecurringPattern]:
    """Find outgoing series that repeat at a steady weekly-to-annual cadence.

    Records are grouped by lower-cased label, type and amount rounded to
    *amount_bucket*. A group with two or more records qualifies when the
    population standard deviation of its day intervals is below *tolerance*
    times their mean (a single interval always qualifies) and the mean falls
    in one of :data:`FREQUENCY_BUCKETS`. Results are ordered by monthly
    equivalent cost, highest first.
    """
    if not transactions:
        return []
    if tolerance < 0:
        raise ValueError("tolerance must be zero or greater")

    now = resolve_now(as_of)
    groups = _group_series(transactions, min_amount, amount_bucket)
    logger.debug("Recurring detection formed %d candidate group(s)", len(groups))

    patterns = []
    for series in groups.values():
        if len(series.dates) < 2:
            continue
        pattern = _analyse_series(series, now, tolerance)
        if pattern is not None:
            patterns.append(pattern)

    patterns.sort(key=lambda p: p.monthly_equivalent, reverse=True)
    return patterns


def calculate_recurring_total(patterns: Iterable[RecurringPattern], active_only: bool = True) -> float:
    """Monthly cost of the detected series."""
    return sum(p.monthly_equivalent for p in patterns if p.is_active or not active_only)
