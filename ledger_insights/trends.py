# ledger_insights/trends.py
"""Month-over-month growth, weekday and day-of-month cadence, category drift."""
from __future__ import annotations

import logging
from calendar import day_name
from datetime import timedelta
from typing import Dict, Iterable, List, Optional, Set

from ledger_insights.aggregations import (
    calculate_average_per_transaction,
    calculate_growth_rate,
    calculate_monthly_average,
    filter_by_date_range,
)
from ledger_insights.core.models import (
    UNCATEGORIZED,
    CategoryTrend,
    DayOfMonthBucket,
    DayOfWeekBucket,
    DayOfWeekPattern,
    Insight,
    MonthlyComparison,
    Transaction,
    TransactionType,
)
from ledger_insights.dates import calculate_date_range

logger = logging.getLogger(__name__)

RECENT_GROWTH_WINDOW = 6
WEEKEND = (5, 6)


def _expenses(transactions: Optional[Iterable[Transaction]]) -> List[Transaction]:
    return [t for t in transactions or [] if t.type == TransactionType.EXPENSE]


def classify_trend(value: float, threshold: float) -> str:
    if value > threshold:
        return "increasing"
    if value < -threshold:
        return "decreasing"
    return "stable"


def calculate_monthly_comparison(
    transactions: Optional[Iterable[Transaction]], threshold_percent: float = 5
) -> MonthlyComparison:
    """Expense totals per calendar month and the average of the latest growth rates.

    Up to six of the most recent month-over-month growth rates are averaged;
    the trend is ``increasing`` above *threshold_percent*, ``decreasing``
    below its negative, else ``stable``.
    """
    by_month: Dict[str, Dict[str, float]] = {}
    for t in _expenses(transactions):
        bucket = by_month.setdefault(t.month, {"total": 0.0, "count": 0})
        bucket["total"] += t.amount
        bucket["count"] += 1

    months = sorted(by_month)
    growth_rates = [
        calculate_growth_rate(by_month[current]["total"], by_month[previous]["total"])
        for previous, current in zip(months, months[1:])
    ]
    recent = growth_rates[-RECENT_GROWTH_WINDOW:]
    avg_growth = sum(recent) / len(recent) if recent else 0.0

    return MonthlyComparison(
        by_month={month: by_month[month] for month in months},
        months=months,
        growth_rates=growth_rates,
        avg_growth=avg_growth,
        trend=classify_trend(avg_growth, threshold_percent),
    )


def analyze_day_of_week_patterns(
    transactions: Optional[Iterable[Transaction]], spike_multiplier: float = 1.5
) -> Optional[DayOfWeekPattern]:
    """Spend per weekday, averaged over distinct calendar dates.

    Weekend and weekday averages divide total spend by the number of distinct
    dates seen on those days, so a day with many small purchases does not
    outweigh a day with one large one. Returns ``None`` without expenses.
    """
    expenses = _expenses(transactions)
    if not expenses:
        return None

    totals = [0.0] * 7
    counts = [0] * 7
    distinct: List[Set] = [set() for _ in range(7)]
    for t in expenses:
        weekday = t.date.weekday()
        totals[weekday] += t.amount
        counts[weekday] += 1
        distinct[weekday].add(t.date.date())

    day_data = [
        DayOfWeekBucket(
            day=day_name[i],
            total=totals[i],
            count=counts[i],
            distinct_days=len(distinct[i]),
            per_day_average=calculate_average_per_transaction(totals[i], len(distinct[i])),
            average=calculate_average_per_transaction(totals[i], counts[i]),
        )
        for i in range(7)
    ]

    weekend_days = sum(len(distinct[i]) for i in WEEKEND)
    weekday_days = sum(len(distinct[i]) for i in range(7) if i not in WEEKEND)
    weekend_avg = calculate_average_per_transaction(sum(totals[i] for i in WEEKEND), weekend_days)
    weekday_avg = calculate_average_per_transaction(
        sum(totals[i] for i in range(7) if i not in WEEKEND), weekday_days
    )

    insights = []
    if weekend_days and weekday_days and weekend_avg > weekday_avg * spike_multiplier:
        more = (weekend_avg / weekday_avg - 1) * 100 if weekday_avg else 0.0
        insights.append(
            Insight(
                type="pattern-detected",
                priority="high",
                title="Weekend Spending Spike",
                message=(
                    f"You spend {more:.0f}% more on weekends ({weekend_avg:.0f}/day) "
                    f"compared to weekdays ({weekday_avg:.0f}/day)"
                ),
                actionable=True,
            )
        )

    return DayOfWeekPattern(
        day_data=day_data,
        weekend_avg=weekend_avg,
        weekday_avg=weekday_avg,
        insights=insights,
    )


def calculate_day_of_month_pattern(transactions: Optional[Iterable[Transaction]]) -> List[DayOfMonthBucket]:
    """Thirty-one buckets of expense spend, one per day of the month."""
    expenses = _expenses(transactions)
    if not expenses:
        return []

    totals = [0.0] * 31
    counts = [0] * 31
    for t in expenses:
        totals[t.date.day - 1] += t.amount
        counts[t.date.day - 1] += 1

    return [
        DayOfMonthBucket(
            day=i + 1,
            total=totals[i],
            count=counts[i],
            average=calculate_average_per_transaction(totals[i], counts[i]),
        )
        for i in range(31)
    ]


def calculate_category_trends(
    transactions: Optional[Iterable[Transaction]], threshold_percent: float = 10
) -> List[CategoryTrend]:
    """Compare each category's spend before and after the midpoint of its own date span.

    Categories with fewer than two expenses are skipped. A record dated exactly
    on the midpoint is counted in both halves. Ordered by absolute change.
    """
    by_category: Dict[str, List[Transaction]] = {}
    for t in _expenses(transactions):
        by_category.setdefault(t.category or UNCATEGORIZED, []).append(t)

    trends = []
    for category, records in by_category.items():
        if len(records) < 2:
            continue
        span = calculate_date_range(records)
        if span.start_date is None or span.end_date is None:
            continue
        midpoint = span.start_date + timedelta(
            seconds=(span.end_date - span.start_date).total_seconds() / 2
        )
        first = sum(t.amount for t in filter_by_date_range(records, span.start_date, midpoint))
        second = sum(t.amount for t in filter_by_date_range(records, midpoint, span.end_date))
        change = calculate_growth_rate(second, first)
        trends.append(
            CategoryTrend(
                category=category,
                first_half_total=first,
                second_half_total=second,
                trend=change,
                direction=classify_trend(change, threshold_percent),
                monthly_average=calculate_monthly_average(first + second, span.days),
            )
        )

    logger.debug("Category trends computed for %d categories", len(trends))
    trends.sort(key=lambda item: abs(item.trend), reverse=True)
    return trends
