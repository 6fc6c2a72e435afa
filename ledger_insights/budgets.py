# ledger_insights/budgets.py
from __future__ import annotations

import math
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Mapping, Optional

from ledger_insights.aggregations import (
    calculate_category_spending,
    calculate_monthly_average,
    calculate_percentage,
    to_number,
)
from ledger_insights.core.models import BudgetStatus, SavingsPotential, Transaction
from ledger_insights.dates import resolve_now

# Budget suggested for a category with no limit set: spend plus a 20% buffer.
SUGGESTED_BUFFER = 1.2
STATUS_WARNING_SHARE = 0.9
COMPARISON_WARNING_PERCENT = 80
GOAL_MONTH_DAYS = 30


def _check_categories(budgets: Mapping[str, float]) -> None:
    for category in budgets:
        if not category or not str(category).strip():
            raise ValueError("budget categories must be non-empty names")


def calculate_category_budget_status(
    transactions: Optional[Iterable[Transaction]],
    budgets: Optional[Mapping[str, float]] = None,
) -> List[BudgetStatus]:
    """Spend against each category limit.

    Without *budgets* every spending category is listed with a suggested
    limit of its spend plus 20%. Status is ``over`` past the limit,
    ``warning`` past 90% of it, else ``under``.
    """
    transactions = list(transactions or [])
    if not transactions:
        return []
    budgets = dict(budgets or {})
    _check_categories(budgets)

    spending = calculate_category_spending(transactions)
    categories = list(budgets) if budgets else list(spending)

    rows = []
    for category in categories:
        spent = spending.get(category, 0.0)
        budget = to_number(budgets.get(category)) or spent * SUGGESTED_BUFFER
        if spent > budget:
            status = "over"
        elif spent > budget * STATUS_WARNING_SHARE:
            status = "warning"
        else:
            status = "under"
        rows.append(
            BudgetStatus(
                category=category,
                spent=spent,
                budget=budget,
                remaining=budget - spent,
                percent_used=calculate_percentage(spent, budget),
                status=status,
            )
        )
    return rows


def calculate_budget_comparison(
    budgets: Mapping[str, float], actual_spending: Mapping[str, float]
) -> Dict[str, BudgetStatus]:
    """Budget against actual for the union of budgeted and spent categories."""
    budgets = dict(budgets or {})
    actual_spending = dict(actual_spending or {})
    _check_categories(budgets)

    comparison = {}
    for category in list(budgets) + [c for c in actual_spending if c not in budgets]:
        budget = to_number(budgets.get(category))
        actual = to_number(actual_spending.get(category))
        percent = calculate_percentage(actual, budget)
        if percent > 100:
            status = "over"
        elif percent > COMPARISON_WARNING_PERCENT:
            status = "warning"
        else:
            status = "good"
        comparison[category] = BudgetStatus(
            category=category,
            spent=actual,
            budget=budget,
            remaining=budget - actual,
            percent_used=percent,
            status=status,
        )
    return comparison


def calculate_savings_potential(total: float, total_days: float, reduction_percentage: float) -> SavingsPotential:
    """What cutting a spend of *total* over *total_days* by a fraction would save.

    *reduction_percentage* is a fraction (``0.2`` for 20%).
    """
    monthly = calculate_monthly_average(total, total_days)
    monthly_savings = monthly * to_number(reduction_percentage)
    return SavingsPotential(
        monthly_amount=monthly,
        monthly_savings=monthly_savings,
        annual_savings=monthly_savings * 12,
        percentage=to_number(reduction_percentage) * 100,
    )


def calculate_simulated_spending(
    actual_spending: Mapping[str, float], adjustments: Mapping[str, float]
) -> Dict[str, float]:
    """Apply per-category percentage adjustments (``-10`` cuts 10%)."""
    adjustments = adjustments or {}
    return {
        category: to_number(actual) * (1 + to_number(adjustments.get(category)) / 100)
        for category, actual in (actual_spending or {}).items()
    }


def calculate_impact(actual_spending: Mapping[str, float], simulated_spending: Mapping[str, float]) -> Dict[str, float]:
    actual_total = sum(to_number(v) for v in (actual_spending or {}).values())
    simulated_total = sum(to_number(v) for v in (simulated_spending or {}).values())
    monthly_savings = actual_total - simulated_total
    return {
        "actual_total": actual_total,
        "simulated_total": simulated_total,
        "monthly_savings": monthly_savings,
        "annual_savings": monthly_savings * 12,
        "percentage_change": calculate_percentage(monthly_savings, actual_total),
    }


def calculate_goal_progress(
    target_amount: float,
    current_amount: float,
    deadline: datetime,
    monthly_savings: float = 0,
    *,
    as_of: Optional[datetime] = None,
) -> Dict[str, object]:
    """Progress toward a savings target and whether the current pace meets the deadline.

    Months are counted as 30-day blocks, with at least one month remaining.
    """
    now = resolve_now(as_of)
    deadline = resolve_now(deadline)
    target_amount = to_number(target_amount)
    current_amount = to_number(current_amount)
    monthly_savings = to_number(monthly_savings)

    remaining = target_amount - current_amount
    months_remaining = max(1, math.ceil((deadline - now).total_seconds() / 86400 / GOAL_MONTH_DAYS))

    projected_date = None
    if monthly_savings > 0:
        projected_months = max(0, math.ceil(remaining / monthly_savings))
        projected_date = now + timedelta(days=projected_months * GOAL_MONTH_DAYS)

    return {
        "progress": min(100.0, calculate_percentage(current_amount, target_amount)),
        "remaining": remaining,
        "months_remaining": months_remaining,
        "required_monthly_savings": remaining / months_remaining,
        "projected_date": projected_date,
        "on_track": projected_date is not None and projected_date <= deadline,
    }
