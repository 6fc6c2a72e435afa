# ledger_insights/tax.py
"""Progressive slab tax, per-financial-year tax planning and a projection
from recent salary.

Slabs are ``(lower, upper, rate_percent)`` triples with ``upper=None`` for the
open top slab. The defaults are the 4L/8L/12L/16L/20L/24L new-regime slabs.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from ledger_insights.core.models import (
    Recommendation,
    TaxDeduction,
    TaxPlanning,
    TaxProjection,
    Transaction,
    TransactionType,
)
from ledger_insights.dates import (
    add_months,
    financial_year_label,
    fiscal_year_start,
    months_remaining_in_fiscal_year,
    resolve_now,
)

logger = logging.getLogger(__name__)

Slab = Tuple[float, Optional[float], float]

DEFAULT_TAX_SLABS: Tuple[Slab, ...] = (
    (0, 400_000, 0),
    (400_000, 800_000, 5),
    (800_000, 1_200_000, 10),
    (1_200_000, 1_600_000, 15),
    (1_600_000, 2_000_000, 20),
    (2_000_000, 2_400_000, 25),
    (2_400_000, None, 30),
)

DEFAULT_STANDARD_DEDUCTION = 75_000
DEFAULT_PROFESSIONAL_TAX = 2_400
DEFAULT_CESS_PERCENT = 4
DEFAULT_SALARY_CATEGORY = "Employment Income"
DEFAULT_SALARY_SUBCATEGORIES = ("Salary", "Base Salary")


def normalize_slabs(slabs: Sequence[Sequence]) -> Tuple[Slab, ...]:
    """Validate and order slabs read from configuration."""
    normalized = []
    for entry in slabs:
        if len(entry) != 3:
            raise ValueError(f"Tax slab must be (lower, upper, rate): {entry!r}")
        lower, upper, rate = entry
        lower = float(lower)
        upper = None if upper is None else float(upper)
        if upper is not None and upper <= lower:
            raise ValueError(f"Tax slab upper bound must exceed lower bound: {entry!r}")
        normalized.append((lower, upper, float(rate)))
    return tuple(sorted(normalized, key=lambda slab: slab[0]))


def calculate_tax_for_slab(income: float, slab_min: float, slab_max: Optional[float], rate: float) -> float:
    """Tax owed on the part of *income* inside ``(slab_min, slab_max]`` at *rate* percent."""
    if income <= slab_min:
        return 0.0
    top = income if slab_max is None else min(income, slab_max)
    return (top - slab_min) * rate / 100


def calculate_tax_for_income(income: float, slabs: Sequence[Slab] = DEFAULT_TAX_SLABS) -> float:
    """Bracket tax on *income*, without cess."""
    return sum(calculate_tax_for_slab(income, lower, upper, rate) for lower, upper, rate in slabs)


def calculate_total_tax_with_cess(
    income: float,
    cess_percent: float = DEFAULT_CESS_PERCENT,
    slabs: Sequence[Slab] = DEFAULT_TAX_SLABS,
) -> float:
    tax = calculate_tax_for_income(income, slabs)
    return tax + tax * cess_percent / 100


def recent_salary_transactions(
    transactions: Iterable[Transaction],
    now: datetime,
    lookback_months: int = 3,
    salary_category: str = DEFAULT_SALARY_CATEGORY,
    salary_subcategories: Sequence[str] = DEFAULT_SALARY_SUBCATEGORIES,
):
    since = add_months(now, -lookback_months)
    return [
        t
        for t in transactions
        if t.type == TransactionType.INCOME
        and t.category == salary_category
        and t.subcategory in salary_subcategories
        and since <= t.date <= now
    ]


def calculate_projected_tax(
    transactions: Optional[Iterable[Transaction]],
    total_income: float,
    standard_deduction: float = DEFAULT_STANDARD_DEDUCTION,
    total_tax_liability: float = 0,
    *,
    as_of: Optional[datetime] = None,
    lookback_months: int = 3,
    professional_tax: float = DEFAULT_PROFESSIONAL_TAX,
    cess_percent: float = DEFAULT_CESS_PERCENT,
    slabs: Sequence[Slab] = DEFAULT_TAX_SLABS,
    salary_category: str = DEFAULT_SALARY_CATEGORY,
    salary_subcategories: Sequence[str] = DEFAULT_SALARY_SUBCATEGORIES,
) -> Optional[TaxProjection]:
    """Project the year-end tax bill from salary received in the trailing months.

    Returns ``None`` with no transactions, in the last month of the financial
    year, or when no salary arrived within *lookback_months* of *as_of*.
    """
    transactions = list(transactions or [])
    if not transactions:
        return None

    now = resolve_now(as_of)
    months_remaining = months_remaining_in_fiscal_year(now)
    if months_remaining == 0:
        logger.debug("No months remain in the financial year as of %s", now.date())
        return None

    salary = recent_salary_transactions(
        transactions, now, lookback_months, salary_category, salary_subcategories
    )
    if not salary:
        logger.debug("No salary in the last %d months; skipping projection", lookback_months)
        return None

    avg_monthly_salary = sum(t.amount for t in salary) / len(salary)
    projected_annual = total_income + avg_monthly_salary * months_remaining
    taxable = max(0.0, projected_annual - standard_deduction - professional_tax)
    projected_total = calculate_total_tax_with_cess(taxable, cess_percent, slabs)

    return TaxProjection(
        avg_monthly_salary=avg_monthly_salary,
        months_remaining=months_remaining,
        projected_annual_salary=projected_annual,
        projected_taxable_income=taxable,
        projected_total_tax=projected_total,
        additional_tax_liability=projected_total - total_tax_liability,
        current_tax=total_tax_liability,
    )


# -----------------------------------------------------------------------------
# Financial-year tax planning
# -----------------------------------------------------------------------------

SECTION_80C_LIMIT = 150_000
SECTION_80C_SUBCATEGORIES = ("PPF", "ELSS", "LIC", "Tax Saving FD", "EPF")
SECTION_80C_CATEGORY = "Tax Saving Investments"
BONUS_SUBCATEGORIES = ("Bonuses", "Bonus", "Joining Bonus")
OLD_REGIME_HINT_THRESHOLD = 100_000


def _note(t: Transaction) -> str:
    return (t.note or "").lower()


def _total(transactions) -> float:
    return sum(t.amount for t in transactions)


def _planning_recommendations(section_80c_investments, section_80c_deduction, hra_exemption, meal_voucher):
    recommendations = []
    old_regime_deductions = section_80c_deduction + hra_exemption
    if old_regime_deductions > OLD_REGIME_HINT_THRESHOLD:
        recommendations.append(
            Recommendation(
                type="high",
                category="Tax",
                message=f"You have {old_regime_deductions:,.0f} in 80C + HRA. Consider comparing with Old Regime.",
                action="Compare tax regimes",
            )
        )
    if section_80c_investments < SECTION_80C_LIMIT:
        remaining = SECTION_80C_LIMIT - section_80c_investments
        recommendations.append(
            Recommendation(
                type="medium",
                category="Tax",
                message=f"You can invest {remaining:,.0f} more in 80C to maximize deductions (if using Old Regime).",
                action="Invest in ELSS/PPF/Tax-saving FD",
            )
        )
    if meal_voucher == 0:
        recommendations.append(
            Recommendation(
                type="low",
                category="Tax",
                message="Consider opting for meal vouchers from employer (up to 50/day tax-free).",
                action="Check with HR for meal voucher option",
            )
        )
    return recommendations


def calculate_tax_planning_for_year(
    transactions: Iterable[Transaction],
    *,
    standard_deduction: float = DEFAULT_STANDARD_DEDUCTION,
    professional_tax: float = DEFAULT_PROFESSIONAL_TAX,
    cess_percent: float = DEFAULT_CESS_PERCENT,
    slabs: Sequence[Slab] = DEFAULT_TAX_SLABS,
    salary_category: str = DEFAULT_SALARY_CATEGORY,
    salary_subcategories: Sequence[str] = DEFAULT_SALARY_SUBCATEGORIES,
) -> TaxPlanning:
    """New-regime liability for *transactions*, usually one financial year.

    Only the standard deduction, professional tax and meal vouchers reduce
    taxable income. 80C and HRA are tracked for an old-regime comparison.
    Professional tax is the amount actually paid, or *professional_tax* when
    none is recorded. ``total_tax_liability`` includes professional tax.
    """
    transactions = list(transactions)
    if not transactions:
        return TaxPlanning(standard_deduction=standard_deduction)

    income = [t for t in transactions if t.type == TransactionType.INCOME]
    expenses = [t for t in transactions if t.type == TransactionType.EXPENSE]

    salary_income = _total(
        t for t in income if t.category == salary_category and t.subcategory in salary_subcategories
    )
    bonus_income = _total(t for t in income if t.subcategory in BONUS_SUBCATEGORIES or "bonus" in _note(t))
    rsu_income = _total(
        t
        for t in income
        if "RSU" in t.subcategory or "Stock" in t.subcategory or "rsu" in _note(t) or "esop" in _note(t)
    )
    total_income = _total(income)
    other_income = max(0.0, total_income - salary_income - bonus_income - rsu_income)

    rent_paid = _total(t for t in expenses if t.subcategory == "Rent" or t.category == "Rent")
    hra_exemption = min(rent_paid * 0.9, salary_income * 0.5)

    section_80c_investments = _total(
        t
        for t in expenses
        if any(name in t.subcategory for name in SECTION_80C_SUBCATEGORIES) or t.category == SECTION_80C_CATEGORY
    )
    section_80c_deduction = min(section_80c_investments, SECTION_80C_LIMIT)
    epf_deduction = _total(t for t in expenses if "EPF" in t.subcategory or "epf" in _note(t))
    meal_voucher = _total(t for t in transactions if "Meal" in t.subcategory or "meal voucher" in _note(t))
    professional_tax_paid = (
        _total(t for t in transactions if "Professional Tax" in t.subcategory or "professional tax" in _note(t))
        or professional_tax
    )

    taxable_income = max(0.0, total_income - standard_deduction - professional_tax_paid - meal_voucher)
    estimated_tax = calculate_tax_for_income(taxable_income, slabs)
    cess = estimated_tax * cess_percent / 100

    deductions = [
        TaxDeduction("Standard Deduction", standard_deduction, standard_deduction, standard_deduction),
        TaxDeduction("Professional Tax", professional_tax_paid, professional_tax, professional_tax_paid),
        TaxDeduction("Meal Voucher (Tax-Free)", meal_voucher, meal_voucher, meal_voucher),
    ]
    if section_80c_investments > 0:
        deductions.append(
            TaxDeduction(
                "Section 80C (Not applicable in New Regime)",
                0,
                SECTION_80C_LIMIT,
                section_80c_investments,
                note="Switch to Old Regime to claim",
            )
        )
    if hra_exemption > 0:
        deductions.append(
            TaxDeduction(
                "HRA (Not applicable in New Regime)",
                0,
                rent_paid,
                rent_paid,
                note="Switch to Old Regime to claim",
            )
        )

    return TaxPlanning(
        total_income=total_income,
        salary_income=salary_income,
        bonus_income=bonus_income,
        rsu_income=rsu_income,
        other_income=other_income,
        section_80c_investments=section_80c_investments,
        section_80c_deduction=section_80c_deduction,
        hra_exemption=hra_exemption,
        professional_tax=professional_tax_paid,
        epf_deduction=epf_deduction,
        meal_voucher_exemption=meal_voucher,
        standard_deduction=standard_deduction,
        taxable_income=taxable_income,
        estimated_tax=estimated_tax,
        cess=cess,
        total_tax_liability=estimated_tax + cess + professional_tax_paid,
        deductions=deductions,
        recommendations=_planning_recommendations(
            section_80c_investments, section_80c_deduction, hra_exemption, meal_voucher
        ),
    )


def calculate_tax_planning(transactions: Optional[Iterable[Transaction]], **options) -> Dict[str, object]:
    """Tax planning for every financial year in *transactions* and for all of them.

    Returns ``{"overall", "by_financial_year", "available_years"}`` with years
    labelled ``FY 2024-25`` and listed newest first. *options* are passed to
    :func:`calculate_tax_planning_for_year`.
    """
    transactions = list(transactions or [])
    by_year: Dict[str, List[Transaction]] = {}
    for t in transactions:
        by_year.setdefault(financial_year_label(t.date), []).append(t)

    available_years = sorted(by_year, reverse=True)
    logger.debug("Planning tax for %d financial year(s)", len(available_years))
    return {
        "overall": calculate_tax_planning_for_year(transactions, **options),
        "by_financial_year": {
            year: calculate_tax_planning_for_year(by_year[year], **options) for year in available_years
        },
        "available_years": available_years,
    }


def current_year_transactions(transactions: Iterable[Transaction], as_of: Optional[datetime] = None):
    """Records from April 1 of the financial year containing *as_of* up to *as_of*."""
    now = resolve_now(as_of)
    start = fiscal_year_start(now)
    return [t for t in transactions if start <= t.date <= now]
