# ledger_insights/aggregations.py
"""Totals, averages, ratios and category grouping.

All ratios return ``0`` instead of dividing by zero, and every numeric input
that is ``None``, ``NaN``, infinite or unparseable is read as ``0``.
"""
from __future__ import annotations

import logging
import math
from collections import defaultdict
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence

import pandas as pd

from ledger_insights.core.models import (
    UNCATEGORIZED,
    CategoryGroup,
    CategoryTotal,
    Transaction,
    TransactionType,
)
from ledger_insights.dates import DAYS_PER_MONTH, calculate_date_range

logger = logging.getLogger(__name__)

PERCENT = 100


def to_number(value) -> float:
    """Signed counterpart of ``coerce_amount``: keeps the sign, drops garbage."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


def _sum_amounts(transactions: Iterable[Transaction]) -> float:
    return sum(abs(to_number(t.amount)) for t in transactions)


def filter_by_type(transactions: Iterable[Transaction], type_) -> List[Transaction]:
    return [t for t in transactions if t.type == type_]


def filter_by_date_range(
    transactions: Iterable[Transaction], start_date: datetime, end_date: datetime
) -> List[Transaction]:
    """Records dated within ``[start_date, end_date]`` (both inclusive)."""
    return [t for t in transactions if start_date <= t.date <= end_date]


def calculate_total_income(transactions: Optional[Iterable[Transaction]]) -> float:
    if not transactions:
        return 0.0
    return _sum_amounts(filter_by_type(transactions, TransactionType.INCOME))


def calculate_total_expense(transactions: Optional[Iterable[Transaction]]) -> float:
    if not transactions:
        return 0.0
    return _sum_amounts(filter_by_type(transactions, TransactionType.EXPENSE))


def calculate_savings(income, expense) -> float:
    return to_number(income) - to_number(expense)


def calculate_savings_rate(income, expense) -> float:
    income = to_number(income)
    if income == 0:
        return 0.0
    return (income - to_number(expense)) / income * PERCENT


def calculate_percentage(part, total) -> float:
    total = to_number(total)
    if total == 0:
        return 0.0
    return to_number(part) / total * PERCENT


def calculate_daily_average(total, days) -> float:
    days = to_number(days)
    if days == 0:
        return 0.0
    return to_number(total) / days


def calculate_monthly_average(total, days) -> float:
    """Daily rate scaled to an average month of 30.44 days."""
    return calculate_daily_average(total, days) * DAYS_PER_MONTH


def calculate_average_per_transaction(total, count) -> float:
    count = to_number(count)
    if count == 0:
        return 0.0
    return to_number(total) / count


def calculate_per_day_frequency(count, total_days) -> float:
    return calculate_daily_average(count, total_days)


def calculate_per_week_frequency(count, total_days) -> float:
    return calculate_daily_average(count, total_days) * 7


def calculate_per_month_frequency(count, total_days) -> float:
    return calculate_monthly_average(count, total_days)


def calculate_growth_rate(current, previous) -> float:
    previous = to_number(previous)
    if previous == 0:
        return 0.0
    return (to_number(current) - previous) / previous * PERCENT


def round_to(number, nearest: float = 1) -> float:
    if not nearest:
        return to_number(number)
    return round(to_number(number) / nearest) * nearest


def group_by_category(transactions: Optional[Iterable[Transaction]]) -> Dict[str, CategoryGroup]:
    """Bucket records by category with a running total and count."""
    grouped: Dict[str, CategoryGroup] = {}
    for t in transactions or []:
        category = t.category or UNCATEGORIZED
        group = grouped.setdefault(category, CategoryGroup())
        group.total += abs(to_number(t.amount))
        group.count += 1
        group.transactions.append(t)
    return grouped


def get_top_categories(transactions: Iterable[Transaction], limit: int = 10) -> List[CategoryTotal]:
    """Expense categories ranked by total spend, highest first."""
    if limit < 0:
        raise ValueError("limit must be zero or greater")
    grouped = group_by_category(filter_by_type(transactions or [], TransactionType.EXPENSE))
    ranked = sorted(
        (CategoryTotal(category=name, total=g.total, count=g.count) for name, g in grouped.items()),
        key=lambda item: item.total,
        reverse=True,
    )
    return ranked[:limit]


def calculate_category_spending(transactions: Iterable[Transaction]) -> Dict[str, float]:
    spending: Dict[str, float] = defaultdict(float)
    for t in filter_by_type(transactions or [], TransactionType.EXPENSE):
        spending[t.category or UNCATEGORIZED] += abs(to_number(t.amount))
    return dict(spending)


def monthly_totals(transactions: Iterable[Transaction], type_=TransactionType.EXPENSE) -> Dict[str, float]:
    """Chronologically ordered ``YYYY-MM`` -> total for one transaction type."""
    totals: Dict[str, float] = defaultdict(float)
    for t in filter_by_type(transactions or [], type_):
        totals[t.month] += abs(to_number(t.amount))
    return {month: totals[month] for month in sorted(totals)}


def calculate_metrics(transactions: Iterable[Transaction], category: Optional[str] = None) -> Dict[str, object]:
    """Compound expense metrics, optionally restricted to one category."""
    filtered = list(transactions or [])
    if category:
        filtered = [t for t in filtered if t.category == category]

    expenses = filter_by_type(filtered, TransactionType.EXPENSE)
    date_range = calculate_date_range(filtered)
    total = _sum_amounts(expenses)
    count = len(expenses)

    return {
        "total": total,
        "count": count,
        "date_range": date_range,
        "average_per_transaction": calculate_average_per_transaction(total, count),
        "daily_average": calculate_daily_average(total, date_range.days),
        "monthly_average": calculate_monthly_average(total, date_range.days),
        "frequency_per_day": calculate_per_day_frequency(count, date_range.days),
        "frequency_per_week": calculate_per_week_frequency(count, date_range.days),
        "frequency_per_month": calculate_per_month_frequency(count, date_range.days),
    }


def calculate_monthly_health_ratio(transactions: Iterable[Transaction]) -> List[Dict[str, object]]:
    """Per-month expense-to-income ratio with a coarse status label."""
    by_month: Dict[str, Dict[str, float]] = {}
    for t in transactions or []:
        bucket = by_month.setdefault(t.month, {"income": 0.0, "expense": 0.0})
        if t.type == TransactionType.INCOME:
            bucket["income"] += abs(to_number(t.amount))
        elif t.type == TransactionType.EXPENSE:
            bucket["expense"] += abs(to_number(t.amount))

    rows = []
    for month in sorted(by_month):
        income = by_month[month]["income"]
        expense = by_month[month]["expense"]
        status = "healthy"
        if expense > income:
            status = "deficit"
        elif expense > income * 0.9:
            status = "tight"
        rows.append(
            {
                "month": month,
                "income": income,
                "expense": expense,
                "ratio": calculate_percentage(expense, income),
                "surplus": income - expense,
                "is_healthy": expense < income * 0.8,
                "status": status,
            }
        )
    return rows


def coefficient_of_variation(values: Sequence[float]) -> float:
    """Population standard deviation over mean; ``0`` for a non-positive mean."""
    if not values:
        return 0.0
    series = pd.Series(list(values), dtype="float64")
    mean = float(series.mean())
    if mean <= 0:
        return 0.0
    return float(series.std(ddof=0)) / mean


def calculate_income_stability(transactions: Iterable[Transaction]) -> Dict[str, object]:
    income = filter_by_type(transactions or [], TransactionType.INCOME)
    if not income:
        return {
            "stability": 0.0,
            "is_stable": False,
            "average_income": 0.0,
            "variance": 0.0,
            "coefficient_of_variation": 0.0,
            "rating": "Unknown",
        }
    if len(income) < 2:
        return {
            "stability": 1.0,
            "is_stable": True,
            "average_income": abs(to_number(income[0].amount)),
            "variance": 0.0,
            "coefficient_of_variation": 0.0,
            "rating": "Very Stable",
        }

    amounts = pd.Series([abs(to_number(t.amount)) for t in income], dtype="float64")
    cv = coefficient_of_variation(amounts.tolist())
    if cv < 0.1:
        rating = "Very Stable"
    elif cv < 0.2:
        rating = "Stable"
    elif cv < 0.4:
        rating = "Moderate"
    else:
        rating = "Volatile"

    return {
        "stability": max(0.0, 1 - min(cv, 1.0)),
        "is_stable": cv < 0.15,
        "average_income": float(amounts.mean()),
        "variance": float(amounts.var(ddof=0)),
        "coefficient_of_variation": cv,
        "rating": rating,
    }


def validate_data_completeness(transactions: Optional[Sequence[Transaction]]) -> Dict[str, object]:
    if not transactions:
        return {
            "is_valid": False,
            "message": "No transactions found",
            "suggestions": ["Load a ledger export to see insights"],
        }

    has_amount = any(t.amount for t in transactions)
    if not has_amount:
        return {
            "is_valid": False,
            "message": "Incomplete transaction data",
            "suggestions": [
                "Ensure your data has date, amount, and type fields",
                "Check the export file format",
            ],
        }
    return {"is_valid": True, "message": "Data is valid", "suggestions": []}
