# ledger_insights/core/models.py
from __future__ import annotations

import math
from dataclasses import asdict, dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional


UNCATEGORIZED = "Uncategorized"


class TransactionType(str, Enum):
    """Direction of a ledger record. Transfers move money between own accounts."""

    INCOME = "Income"
    EXPENSE = "Expense"
    TRANSFER_IN = "Transfer-In"
    TRANSFER_OUT = "Transfer-Out"


class InvestmentType(str, Enum):
    BUY = "Buy"
    SELL = "Sell"
    DIVIDEND = "Dividend"
    BROKERAGE = "Brokerage"


def coerce_amount(value) -> float:
    """Return a finite, non-negative float; anything unusable becomes 0.0."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(number):
        return 0.0
    return abs(number)


def _coerce_datetime(value) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    raise ValueError(f"Record date must be a date or datetime, got {value!r}")


def to_jsonable(value):
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, float):
        return round(value, 4)
    if isinstance(value, dict):
        return {k: to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(v) for v in value]
    return value


class _Serializable:
    def to_dict(self) -> Dict[str, Any]:
        return to_jsonable(asdict(self))


@dataclass(frozen=True)
class Transaction(_Serializable):
    """A single immutable ledger record.

    The sign of a record lives in ``type``; ``amount`` is always a magnitude.
    ``date`` must be a date or datetime; anything else raises ValueError, so
    loaders skip undated rows before they reach any aggregation.
    """

    id: str
    date: datetime
    amount: float
    type: TransactionType
    category: str = UNCATEGORIZED
    subcategory: str = UNCATEGORIZED
    account: str = ""
    note: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "amount", coerce_amount(self.amount))
        object.__setattr__(self, "date", _coerce_datetime(self.date))
        if not isinstance(self.type, TransactionType):
            object.__setattr__(self, "type", TransactionType(self.type))
        if not self.category:
            object.__setattr__(self, "category", UNCATEGORIZED)
        if not self.subcategory:
            object.__setattr__(self, "subcategory", UNCATEGORIZED)

    @property
    def label(self) -> str:
        """Grouping label: the memo when present, otherwise the category."""
        note = (self.note or "").strip()
        if note:
            return note
        return self.category or "Unknown"

    @property
    def month(self) -> str:
        return self.date.strftime("%Y-%m")


@dataclass(frozen=True)
class InvestmentTransaction(_Serializable):
    date: datetime
    type: InvestmentType
    amount: float
    symbol: Optional[str] = None
    note: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "amount", coerce_amount(self.amount))
        object.__setattr__(self, "date", _coerce_datetime(self.date))
        if not isinstance(self.type, InvestmentType):
            object.__setattr__(self, "type", InvestmentType(self.type))


# -----------------------------------------------------------------------------
# Derived value objects
# -----------------------------------------------------------------------------

@dataclass
class DateRangeResult(_Serializable):
    days: int = 0
    months: float = 0.0
    years: float = 0.0
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None


@dataclass
class CategoryGroup:
    total: float = 0.0
    count: int = 0
    transactions: List[Transaction] = field(default_factory=list)


@dataclass
class CategoryTotal(_Serializable):
    category: str
    total: float
    count: int


@dataclass
class RecurringPattern(_Serializable):
    description: str
    category: str
    type: TransactionType
    average_amount: float
    min_amount: float
    max_amount: float
    frequency: str
    interval_days: int
    occurrence_count: int
    consistency_percent: float
    is_active: bool
    first_occurrence: datetime
    last_occurrence: datetime
    next_expected: datetime
    monthly_equivalent: float
    days_since_last_occurrence: int = 0
    is_recurring: bool = True


@dataclass
class AnomalyRecord(_Serializable):
    transaction: Transaction
    deviation: float
    severity: str
    message: str

    @property
    def amount(self) -> float:
        return self.transaction.amount


@dataclass
class MonthlyComparison(_Serializable):
    by_month: Dict[str, Dict[str, float]]
    months: List[str]
    growth_rates: List[float]
    avg_growth: float
    trend: str
    comparison: str = "month-over-month"


@dataclass
class Insight(_Serializable):
    type: str
    priority: str
    title: str
    message: str
    actionable: bool = False
    category: Optional[str] = None


@dataclass
class DayOfWeekBucket(_Serializable):
    day: str
    total: float
    count: int
    distinct_days: int
    per_day_average: float
    average: float


@dataclass
class DayOfWeekPattern(_Serializable):
    day_data: List[DayOfWeekBucket]
    weekend_avg: float
    weekday_avg: float
    insights: List[Insight] = field(default_factory=list)


@dataclass
class DayOfMonthBucket(_Serializable):
    day: int
    total: float
    count: int
    average: float


@dataclass
class CategoryTrend(_Serializable):
    category: str
    first_half_total: float
    second_half_total: float
    trend: float
    direction: str
    monthly_average: float


@dataclass
class TaxProjection(_Serializable):
    avg_monthly_salary: float
    months_remaining: int
    projected_annual_salary: float
    projected_taxable_income: float
    projected_total_tax: float
    additional_tax_liability: float
    current_tax: float


@dataclass
class TaxDeduction(_Serializable):
    name: str
    amount: float
    limit: float
    used: float
    note: Optional[str] = None


@dataclass
class TaxPlanning(_Serializable):
    """Income split, deductions and new-regime liability for one set of records."""

    total_income: float = 0.0
    salary_income: float = 0.0
    bonus_income: float = 0.0
    rsu_income: float = 0.0
    other_income: float = 0.0
    section_80c_investments: float = 0.0
    section_80c_deduction: float = 0.0
    hra_exemption: float = 0.0
    professional_tax: float = 0.0
    epf_deduction: float = 0.0
    meal_voucher_exemption: float = 0.0
    standard_deduction: float = 0.0
    taxable_income: float = 0.0
    estimated_tax: float = 0.0
    cess: float = 0.0
    total_tax_liability: float = 0.0
    deductions: List[TaxDeduction] = field(default_factory=list)
    recommendations: List["Recommendation"] = field(default_factory=list)
    tax_regime: str = "new"


@dataclass
class MonthlyPnL(_Serializable):
    month: str
    amount: float
    cumulative: float


@dataclass
class InvestmentMetrics(_Serializable):
    total_profit: float = 0.0
    total_loss: float = 0.0
    net_pnl: float = 0.0
    total_brokerage: float = 0.0
    average_monthly_return: float = 0.0
    profit_months: int = 0
    loss_months: int = 0


@dataclass
class InvestmentPerformance(_Serializable):
    total_capital_deployed: float = 0.0
    total_withdrawals: float = 0.0
    current_holdings: float = 0.0
    realized_profits: float = 0.0
    realized_losses: float = 0.0
    brokerage_fees: float = 0.0
    net_profit_loss: float = 0.0
    return_percentage: float = 0.0
    transactions: List[Dict[str, Any]] = field(default_factory=list)


@dataclass
class HealthInputs(_Serializable):
    income: float
    expenses: float
    savings: float
    account_balances: Dict[str, float] = field(default_factory=dict)
    category_spending: Dict[str, float] = field(default_factory=dict)
    monthly_expense_totals: List[float] = field(default_factory=list)


@dataclass
class HealthScore(_Serializable):
    score: int
    grade: str
    metrics: Dict[str, int]
    savings_rate: float
    months_covered: float
    details: Dict[str, float] = field(default_factory=dict)
    recommendations: List["Recommendation"] = field(default_factory=list)


@dataclass
class Recommendation(_Serializable):
    type: str
    category: str
    message: str
    action: str


@dataclass
class BudgetStatus(_Serializable):
    category: str
    spent: float
    budget: float
    remaining: float
    percent_used: float
    status: str


@dataclass
class SavingsPotential(_Serializable):
    monthly_amount: float
    monthly_savings: float
    annual_savings: float
    percentage: float


@dataclass
class CashFlowForecast(_Serializable):
    forecasted_balance: float
    daily_income: float
    daily_expense: float
    net_daily: float
    days_until_zero: Optional[float]
    status: str
    projection: List[Dict[str, float]] = field(default_factory=list)


@dataclass
class Forecast(_Serializable):
    method: str
    forecast: List[float]
    upper: List[float]
    lower: List[float]
    r2: float
    volatility: float
    volatility_level: str
    outlier_count: int
    periods: List[str] = field(default_factory=list)
    alternatives: Dict[str, List[float]] = field(default_factory=dict)
