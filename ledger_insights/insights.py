# ledger_insights/insights.py
"""Rule-based observations about a ledger, ordered by priority."""
from __future__ import annotations

import logging
from collections import Counter
from typing import Iterable, List, Optional

from ledger_insights.aggregations import (
    calculate_per_day_frequency,
    calculate_per_week_frequency,
    calculate_savings_rate,
)
from ledger_insights.budgets import calculate_savings_potential
from ledger_insights.core.models import Insight, Transaction, TransactionType
from ledger_insights.dates import calculate_date_range
from ledger_insights.trends import analyze_day_of_week_patterns

logger = logging.getLogger(__name__)

PRIORITY_ORDER = {"high": 1, "medium": 2, "positive": 3, "low": 4}
DELIVERY_MARKERS = ("Delivery", "Swiggy", "Zomato")
CAFETERIA_MARKER = "Office Cafeteria"


def _delivery(expenses: List[Transaction], days: int) -> Optional[Insight]:
    orders = [t for t in expenses if any(m in (t.subcategory or "") for m in DELIVERY_MARKERS)]
    if not orders:
        return None
    per_week = calculate_per_week_frequency(len(orders), days)
    if per_week <= 3:
        return None
    total = sum(t.amount for t in orders)
    savings = calculate_savings_potential(total, days, 0.3)
    if not savings.monthly_savings:
        return None
    return Insight(
        type="saving-opportunity",
        priority="high",
        title="Delivery App Savings Potential",
        message=(
            f"You order food {per_week:.1f} times per week (avg {total / len(orders):.0f} per order). "
            f"Reducing by 30% could save {savings.monthly_savings:.0f} per month "
            f"({savings.annual_savings:.0f} per year)"
        ),
        actionable=True,
        category="Food",
    )


def _weekend(transactions: List[Transaction], multiplier: float) -> Optional[Insight]:
    pattern = analyze_day_of_week_patterns(transactions, multiplier)
    if pattern is None or not pattern.insights:
        return None
    return Insight(
        type="pattern-detected",
        priority="medium",
        title="Weekend Spending Pattern",
        message=pattern.insights[0].message,
    )


def _savings_rate(income: float, expense: float) -> Optional[Insight]:
    rate = calculate_savings_rate(income, expense)
    if rate >= 25:
        return Insight(
            type="achievement",
            priority="positive",
            title="Excellent Savings Rate!",
            message=f"You're saving {rate:.1f}% of your income - that's excellent! Keep it up!",
        )
    if 0 < rate < 10:
        return Insight(
            type="warning",
            priority="high",
            title="Low Savings Rate",
            message=f"You're only saving {rate:.1f}% of income. Aim for at least 20% for financial health.",
            actionable=True,
        )
    return None


def _high_frequency(expenses: List[Transaction], days: int) -> Optional[Insight]:
    counts = Counter(t.category for t in expenses)
    if not counts:
        return None
    category, count = counts.most_common(1)[0]
    frequency = calculate_per_day_frequency(count, days)
    if frequency <= 0.5:
        return None
    return Insight(
        type="pattern-detected",
        priority="low",
        title="High-Frequency Category",
        message=f"You make {count} transactions in {category} ({frequency * 7:.1f} times per week on average)",
        category=category,
    )


def _cafeteria(expenses: List[Transaction], days: int) -> Optional[Insight]:
    meals = [t for t in expenses if CAFETERIA_MARKER in (t.subcategory or "")]
    if not meals:
        return None
    per_day = calculate_per_day_frequency(len(meals), days)
    if per_day <= 0.3:
        return None
    total = sum(t.amount for t in meals)
    savings = calculate_savings_potential(total, days, 0.5)
    return Insight(
        type="saving-opportunity",
        priority="medium",
        title="Pack Lunch Savings",
        message=(
            f"You eat at the office cafeteria {per_day:.1f} times per day (avg {total / len(meals):.0f} per meal). "
            f"Packing lunch 50% of the time could save {savings.monthly_savings:.0f} per month"
        ),
        actionable=True,
        category="Food",
    )


def _large_transactions(expenses: List[Transaction], total_expense: float) -> Optional[Insight]:
    if not expenses or total_expense <= 0:
        return None
    average = total_expense / len(expenses)
    large = [t for t in expenses if t.amount > average * 3]
    if not large or len(large) >= 10:
        return None
    share = sum(t.amount for t in large) / total_expense * 100
    plural = "s" if len(large) > 1 else ""
    return Insight(
        type="pattern-detected",
        priority="low",
        title="Large Transactions Detected",
        message=f"You have {len(large)} large transaction{plural} accounting for {share:.0f}% of your expenses",
    )


def generate_smart_insights(
    transactions: Optional[Iterable[Transaction]], weekend_spike_multiplier: float = 1.5
) -> List[Insight]:
    transactions = list(transactions or [])
    days = calculate_date_range(transactions).days
    if not transactions or days == 0:
        return []

    expenses = [t for t in transactions if t.type == TransactionType.EXPENSE]
    income = sum(t.amount for t in transactions if t.type == TransactionType.INCOME)
    total_expense = sum(t.amount for t in expenses)

    candidates = [
        _delivery(expenses, days),
        _weekend(transactions, weekend_spike_multiplier),
        _savings_rate(income, total_expense),
        _high_frequency(expenses, days),
        _cafeteria(expenses, days),
        _large_transactions(expenses, total_expense),
    ]
    insights = [insight for insight in candidates if insight is not None]
    logger.debug("Generated %d insight(s)", len(insights))
    return sorted(insights, key=lambda insight: PRIORITY_ORDER.get(insight.priority, 99))
