# ledger_insights/health.py
"""Composite 0-100 financial health score.

Five sub-scores are bucketed independently and summed:

==================  ===  ==============================================
sub-score           max  measured as
==================  ===  ==============================================
savings_rate         30  savings / income, in percent
consistency          20  coefficient of variation of monthly expenses
emergency_fund       25  liquid balance / monthly expenses, in months
ratio                15  income / expenses
category_balance     10  largest category's share of expenses
==================  ===  ==============================================
"""
from __future__ import annotations

import logging
from typing import Iterable, List, Mapping, Optional, Sequence

from ledger_insights.aggregations import (
    calculate_category_spending,
    calculate_percentage,
    calculate_total_expense,
    calculate_total_income,
    coefficient_of_variation,
    monthly_totals,
    to_number,
)
from ledger_insights.core.models import (
    BudgetStatus,
    HealthInputs,
    HealthScore,
    Recommendation,
    Transaction,
)

logger = logging.getLogger(__name__)

# Used for the consistency sub-score when fewer than two months are known.
DEFAULT_SPENDING_VARIANCE = 20.0

MAX_SCORE = 100

GRADE_BANDS = (
    (90, "A+"),
    (85, "A"),
    (80, "A-"),
    (75, "B+"),
    (70, "B"),
    (65, "B-"),
    (60, "C+"),
    (55, "C"),
    (50, "C-"),
)


def score_savings_rate(savings_rate: float) -> int:
    if savings_rate >= 20:
        return 30
    if savings_rate >= 15:
        return 25
    if savings_rate >= 10:
        return 20
    if savings_rate >= 5:
        return 10
    return 5


def score_consistency(variance: float) -> int:
    if variance <= 15:
        return 20
    if variance <= 25:
        return 15
    if variance <= 35:
        return 10
    return 5


def score_emergency_fund(months_covered: float) -> int:
    if months_covered >= 6:
        return 25
    if months_covered >= 3:
        return 20
    if months_covered >= 1:
        return 10
    return 5


def score_income_expense_ratio(ratio: float) -> int:
    if ratio >= 1.5:
        return 15
    if ratio >= 1.2:
        return 12
    if ratio >= 1:
        return 8
    return 3


def score_category_balance(max_category_percent: float) -> int:
    if max_category_percent <= 30:
        return 10
    if max_category_percent <= 40:
        return 7
    if max_category_percent <= 50:
        return 4
    return 2


def get_financial_grade(score: float) -> str:
    for floor, grade in GRADE_BANDS:
        if score >= floor:
            return grade
    return "D"


def calculate_spending_variance(monthly_expense_totals: Sequence[float]) -> float:
    """Coefficient of variation of monthly expense totals, in percent."""
    values = [to_number(v) for v in monthly_expense_totals or []]
    if len(values) < 2:
        return DEFAULT_SPENDING_VARIANCE
    return coefficient_of_variation(values) * 100


def _is_credit_card(name: str) -> bool:
    return "credit card" in (name or "").lower()


def calculate_liquid_balance(account_balances: Optional[Mapping[str, float]]) -> float:
    """Positive balances held outside credit-card accounts."""
    total = 0.0
    for name, balance in (account_balances or {}).items():
        balance = to_number(balance)
        if balance > 0 and not _is_credit_card(name):
            total += balance
    return total


def calculate_total_debt(account_balances: Optional[Mapping[str, float]]) -> float:
    """Overdrawn balances plus amounts owed on credit cards."""
    total = 0.0
    for name, balance in (account_balances or {}).items():
        balance = to_number(balance)
        if balance < 0:
            total += abs(balance)
        elif balance > 0 and _is_credit_card(name):
            total += balance
    return total


def calculate_health_score(inputs: HealthInputs) -> HealthScore:
    income = to_number(inputs.income)
    expenses = to_number(inputs.expenses)
    savings = to_number(inputs.savings)

    savings_rate = calculate_percentage(savings, income)
    variance = calculate_spending_variance(inputs.monthly_expense_totals)

    month_totals = [to_number(v) for v in inputs.monthly_expense_totals or []]
    monthly_expenses = sum(month_totals) / len(month_totals) if month_totals else expenses
    liquid = calculate_liquid_balance(inputs.account_balances)
    months_covered = liquid / monthly_expenses if monthly_expenses > 0 else 0.0

    ratio = income / expenses if expenses > 0 else 1.0

    category_values = [to_number(v) for v in (inputs.category_spending or {}).values()]
    max_category_percent = max(
        (calculate_percentage(v, expenses) for v in category_values), default=0.0
    )

    metrics = {
        "savings_rate": score_savings_rate(savings_rate),
        "consistency": score_consistency(variance),
        "emergency_fund": score_emergency_fund(months_covered),
        "ratio": score_income_expense_ratio(ratio),
        "category_balance": score_category_balance(max_category_percent),
    }
    score = min(MAX_SCORE, sum(metrics.values()))
    logger.debug("Health sub-scores %s -> %d", metrics, score)

    return HealthScore(
        score=score,
        grade=get_financial_grade(score),
        metrics=metrics,
        savings_rate=savings_rate,
        months_covered=months_covered,
        details={
            "savings_rate": savings_rate,
            "consistency": variance,
            "months_covered": months_covered,
            "ratio": ratio,
            "max_category_percent": max_category_percent,
            "liquid_balance": liquid,
            "total_debt": calculate_total_debt(inputs.account_balances),
        },
    )


def health_inputs_from_transactions(
    transactions: Iterable[Transaction],
    account_balances: Optional[Mapping[str, float]] = None,
) -> HealthInputs:
    """Derive health-score inputs from a ledger. Transfers are left out."""
    transactions = list(transactions or [])
    income = calculate_total_income(transactions)
    expenses = calculate_total_expense(transactions)
    return HealthInputs(
        income=income,
        expenses=expenses,
        savings=income - expenses,
        account_balances=dict(account_balances or {}),
        category_spending=calculate_category_spending(transactions),
        monthly_expense_totals=list(monthly_totals(transactions).values()),
    )


def generate_recommendations(
    health: Optional[HealthScore],
    budget_comparison: Optional[Mapping[str, BudgetStatus]] = None,
) -> List[Recommendation]:
    recommendations = []

    for category, status in (budget_comparison or {}).items():
        if status.status != "over":
            continue
        recommendations.append(
            Recommendation(
                type="warning",
                category=category,
                message=f"{category} is over budget by {abs(status.remaining):.0f}",
                action=f"Reduce {category} spending by {status.percent_used - 100:.0f}%",
            )
        )

    if health is None:
        return recommendations

    if health.savings_rate < 10:
        recommendations.append(
            Recommendation(
                type="alert",
                category="Savings",
                message=f"Savings rate is {health.savings_rate:.1f}% (Target: 20%+)",
                action="Try to save at least 10-20% of your income",
            )
        )
    elif health.savings_rate < 15:
        recommendations.append(
            Recommendation(
                type="tip",
                category="Savings",
                message=f"Savings rate is {health.savings_rate:.1f}% (Good, but aim higher)",
                action="Increase savings rate to 20% for excellent financial health",
            )
        )

    if health.months_covered < 3:
        recommendations.append(
            Recommendation(
                type="alert",
                category="Emergency Fund",
                message=f"Emergency fund covers {health.months_covered:.1f} months (Target: 6 months)",
                action="Build emergency fund to cover 3-6 months of expenses",
            )
        )
    elif health.months_covered < 6:
        recommendations.append(
            Recommendation(
                type="tip",
                category="Emergency Fund",
                message=f"Emergency fund covers {health.months_covered:.1f} months (On track!)",
                action="Continue building to reach 6-month target",
            )
        )

    if health.score >= 80:
        recommendations.append(
            Recommendation(
                type="success",
                category="Overall",
                message="Excellent financial health!",
                action="Keep up the great work with your current financial habits",
            )
        )
    elif health.score < 60:
        recommendations.append(
            Recommendation(
                type="warning",
                category="Overall",
                message="Financial health needs attention",
                action="Focus on increasing savings rate and building emergency fund",
            )
        )

    return recommendations
