# ledger_insights/report.py
"""Run every analysis over one ledger and collect JSON-friendly sections."""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Dict, Iterable, Mapping, Optional, Sequence

from ledger_insights.aggregations import (
    calculate_category_spending,
    calculate_savings,
    calculate_savings_rate,
    calculate_total_expense,
    calculate_total_income,
    get_top_categories,
    validate_data_completeness,
)
from ledger_insights.anomalies import detect_anomalies
from ledger_insights.budgets import calculate_budget_comparison, calculate_category_budget_status
from ledger_insights.cashback import calculate_cashback_metrics
from ledger_insights.config import AnalyticsSettings
from ledger_insights.core.models import InvestmentTransaction, Transaction, to_jsonable
from ledger_insights.dates import calculate_date_range, resolve_now
from ledger_insights.forecasts import calculate_cash_flow_forecast, forecast_monthly_expenses
from ledger_insights.health import (
    calculate_health_score,
    generate_recommendations,
    health_inputs_from_transactions,
)
from ledger_insights.insights import generate_smart_insights
from ledger_insights.investments import (
    calculate_investment_metrics,
    calculate_investment_performance,
    calculate_monthly_pnl,
)
from ledger_insights.recurring import detect_recurring_transactions
from ledger_insights.reimbursement import calculate_reimbursement_metrics
from ledger_insights.tax import (
    calculate_projected_tax,
    calculate_tax_planning,
    calculate_tax_planning_for_year,
    current_year_transactions,
)
from ledger_insights.trends import (
    analyze_day_of_week_patterns,
    calculate_category_trends,
    calculate_day_of_month_pattern,
    calculate_monthly_comparison,
)

logger = logging.getLogger(__name__)

SECTIONS = (
    "summary",
    "date_range",
    "top_categories",
    "recurring",
    "anomalies",
    "monthly_comparison",
    "day_of_week",
    "day_of_month",
    "category_trends",
    "tax_planning",
    "tax_projection",
    "investments",
    "cashback",
    "reimbursements",
    "budgets",
    "cash_flow",
    "forecast",
    "health",
    "insights",
)


def _dump(value):
    if value is None:
        return None
    if hasattr(value, "to_dict"):
        return value.to_dict()
    if isinstance(value, (list, tuple)):
        return [_dump(v) for v in value]
    if isinstance(value, dict):
        return {k: _dump(v) for k, v in value.items()}
    return to_jsonable(value)


def _tax_options(settings):
    return {
        "standard_deduction": settings.standard_deduction,
        "professional_tax": settings.professional_tax,
        "cess_percent": settings.cess_percent,
        "slabs": settings.tax_slabs,
        "salary_category": settings.salary_category,
        "salary_subcategories": settings.salary_subcategories,
    }


def _tax_section(transactions, settings, as_of):
    now = resolve_now(as_of)
    this_year = calculate_tax_planning_for_year(current_year_transactions(transactions, now), **_tax_options(settings))
    return calculate_projected_tax(
        transactions,
        this_year.total_income,
        this_year.standard_deduction,
        this_year.estimated_tax + this_year.cess,
        as_of=now,
        lookback_months=settings.tax_lookback_months,
        professional_tax=settings.professional_tax,
        cess_percent=settings.cess_percent,
        slabs=settings.tax_slabs,
        salary_category=settings.salary_category,
        salary_subcategories=settings.salary_subcategories,
    )


def build_report(
    transactions: Iterable[Transaction],
    *,
    settings: Optional[AnalyticsSettings] = None,
    account_balances: Optional[Mapping[str, float]] = None,
    budgets: Optional[Mapping[str, float]] = None,
    investments: Optional[Iterable[InvestmentTransaction]] = None,
    as_of: Optional[datetime] = None,
    sections: Optional[Sequence[str]] = None,
) -> Dict[str, object]:
    """Build the selected *sections* (all by default) for *transactions*.

    The tax projection starts from income received between April 1 of the
    current financial year and *as_of*, and compares against the tax due on
    it. Unknown section names raise ValueError.
    """
    settings = settings or AnalyticsSettings()
    wanted = list(sections or SECTIONS)
    unknown = [name for name in wanted if name not in SECTIONS]
    if unknown:
        raise ValueError(f"Unknown report section(s): {', '.join(unknown)}")

    transactions = list(transactions)
    investments = list(investments or [])
    income = calculate_total_income(transactions)
    expense = calculate_total_expense(transactions)
    logger.info("Building report over %d transaction(s)", len(transactions))

    def health():
        score = calculate_health_score(health_inputs_from_transactions(transactions, account_balances))
        comparison = (
            calculate_budget_comparison(budgets, calculate_category_spending(transactions)) if budgets else None
        )
        score.recommendations = generate_recommendations(score, comparison)
        return score

    builders = {
        "summary": lambda: {
            "transactions": len(transactions),
            "total_income": income,
            "total_expense": expense,
            "savings": calculate_savings(income, expense),
            "savings_rate": calculate_savings_rate(income, expense),
            "data_quality": validate_data_completeness(transactions),
        },
        "date_range": lambda: calculate_date_range(transactions),
        "top_categories": lambda: get_top_categories(transactions),
        "recurring": lambda: detect_recurring_transactions(
            transactions,
            as_of=as_of,
            min_amount=settings.recurring_min_amount,
            amount_bucket=settings.recurring_amount_bucket,
            tolerance=settings.recurring_tolerance,
        ),
        "anomalies": lambda: detect_anomalies(transactions, settings.anomaly_sensitivity),
        "monthly_comparison": lambda: calculate_monthly_comparison(
            transactions, settings.trend_threshold_percent
        ),
        "day_of_week": lambda: analyze_day_of_week_patterns(transactions, settings.weekend_spike_multiplier),
        "day_of_month": lambda: calculate_day_of_month_pattern(transactions),
        "category_trends": lambda: calculate_category_trends(
            transactions, settings.category_trend_threshold_percent
        ),
        "tax_planning": lambda: calculate_tax_planning(transactions, **_tax_options(settings)),
        "tax_projection": lambda: _tax_section(transactions, settings, as_of),
        "investments": lambda: {
            "monthly_pnl": calculate_monthly_pnl(investments),
            "metrics": calculate_investment_metrics(investments),
            "performance": calculate_investment_performance(transactions),
        },
        "cashback": lambda: calculate_cashback_metrics(
            transactions, settings.cashback_category, settings.cashback_shared_account
        ),
        "reimbursements": lambda: calculate_reimbursement_metrics(transactions, as_of=as_of),
        "budgets": lambda: calculate_category_budget_status(transactions, budgets),
        "cash_flow": lambda: calculate_cash_flow_forecast(transactions),
        "forecast": lambda: forecast_monthly_expenses(transactions, settings.forecast_periods),
        "health": health,
        "insights": lambda: generate_smart_insights(transactions, settings.weekend_spike_multiplier),
    }

    return {name: _dump(builders[name]()) for name in wanted}
