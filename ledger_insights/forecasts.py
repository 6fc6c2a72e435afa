# ledger_insights/forecasts.py
"""Short-horizon projections of balances and monthly series."""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

import pandas as pd

from ledger_insights.aggregations import (
    calculate_daily_average,
    calculate_total_expense,
    calculate_total_income,
    monthly_totals,
)
from ledger_insights.anomalies import detect_outliers
from ledger_insights.core.models import CashFlowForecast, Forecast, Transaction, TransactionType
from ledger_insights.dates import add_months, calculate_date_range

logger = logging.getLogger(__name__)

Z_SCORES = {0.9: 1.645, 0.95: 1.96, 0.99: 2.576}
SEASONALITY_THRESHOLD = 0.15
REGRESSION_R2_THRESHOLD = 0.7
SIMPLE_AVERAGE_WINDOW = 6


def _check_smoothing(name: str, value: float) -> None:
    if not 0 <= value <= 1:
        raise ValueError(f"{name} must be between 0 and 1")


def calculate_cash_flow_forecast(
    transactions: Optional[Iterable[Transaction]], forecast_days: int = 30
) -> CashFlowForecast:
    """Extend the observed daily net flow *forecast_days* ahead.

    The starting balance is net income over the whole history.
    ``days_until_zero`` is only set while the balance is shrinking.
    """
    transactions = list(transactions or [])
    if not transactions:
        return CashFlowForecast(
            forecasted_balance=0.0,
            daily_income=0.0,
            daily_expense=0.0,
            net_daily=0.0,
            days_until_zero=None,
            status="stable",
        )

    days = calculate_date_range(transactions).days
    income = calculate_total_income(transactions)
    expense = calculate_total_expense(transactions)
    daily_income = calculate_daily_average(income, days)
    daily_expense = calculate_daily_average(expense, days)
    net_daily = daily_income - daily_expense
    balance = income - expense

    projection = [
        {
            "day": day,
            "balance": balance + net_daily * day,
            "income": daily_income * day,
            "expense": daily_expense * day,
        }
        for day in range(1, forecast_days + 1)
    ]

    if net_daily > 0:
        status = "growing"
    elif net_daily < 0:
        status = "declining"
    else:
        status = "stable"

    return CashFlowForecast(
        forecasted_balance=balance + net_daily * forecast_days,
        daily_income=daily_income,
        daily_expense=daily_expense,
        net_daily=net_daily,
        days_until_zero=abs(balance / net_daily) if net_daily < 0 else None,
        status=status,
        projection=projection,
    )


def calculate_moving_average(data: Sequence[float], window: int = 3) -> List[float]:
    if window <= 0:
        raise ValueError("window must be a positive integer")
    if not data or len(data) < window:
        return []
    return pd.Series(list(data), dtype="float64").rolling(window).mean().dropna().tolist()


def exponential_smoothing(data: Sequence[float], alpha: float = 0.3, periods: int = 6) -> Dict[str, List[float]]:
    """Simple exponential smoothing with a flat forecast at the last level."""
    _check_smoothing("alpha", alpha)
    if not data:
        return {"smoothed": [], "forecast": []}
    smoothed = pd.Series(list(data), dtype="float64").ewm(alpha=alpha, adjust=False).mean().tolist()
    return {"smoothed": smoothed, "forecast": [smoothed[-1]] * periods}


def double_exponential_smoothing(
    data: Sequence[float], alpha: float = 0.3, beta: float = 0.1, periods: int = 6
) -> Dict[str, List[float]]:
    """Holt's linear method; forecasts are floored at zero."""
    _check_smoothing("alpha", alpha)
    _check_smoothing("beta", beta)
    if not data or len(data) < 2:
        return {"smoothed": [], "forecast": [], "level": [], "trend": []}

    level = [float(data[0])]
    trend = [float(data[1]) - float(data[0])]
    for value in data[1:]:
        new_level = alpha * value + (1 - alpha) * (level[-1] + trend[-1])
        trend.append(beta * (new_level - level[-1]) + (1 - beta) * trend[-1])
        level.append(new_level)

    forecast = [max(0.0, level[-1] + step * trend[-1]) for step in range(1, periods + 1)]
    return {"smoothed": list(level), "forecast": forecast, "level": level, "trend": trend}


def linear_regression(data: Sequence[float]) -> Dict[str, float]:
    """Least-squares line over the point index, with R² clamped to [0, 1]."""
    if not data or len(data) < 2:
        return {"slope": 0.0, "intercept": 0.0, "r2": 0.0}

    y = pd.Series(list(data), dtype="float64")
    x = pd.Series(range(len(y)), dtype="float64")

    slope = float(x.cov(y) / x.var())
    intercept = float(y.mean() - slope * x.mean())

    ss_total = float(((y - y.mean()) ** 2).sum())
    ss_residual = float(((y - (slope * x + intercept)) ** 2).sum())
    r2 = 1 - ss_residual / ss_total if ss_total > 0 else 0.0
    return {"slope": slope, "intercept": intercept, "r2": max(0.0, min(1.0, r2))}


def detect_seasonality(monthly_data: Mapping[str, float]) -> Dict[str, object]:
    """Seasonal index per calendar month from a ``YYYY-MM`` keyed series.

    Needs a year of data. Seasonality is reported when the coefficient of
    variation of the indices exceeds 15%.
    """
    if not monthly_data or len(monthly_data) < 12:
        return {"has_seasonality": False, "indices": {}, "strength": 0.0}

    groups: Dict[int, List[float]] = {}
    for key, value in monthly_data.items():
        groups.setdefault(int(key.split("-")[1]), []).append(float(value))

    averages = {
        month: float(pd.Series(values, dtype="float64").mean()) for month, values in sorted(groups.items())
    }
    overall = sum(averages.values()) / 12
    indices = {month: (avg / overall if overall > 0 else 1.0) for month, avg in averages.items()}

    values = pd.Series(list(indices.values()), dtype="float64")
    mean = float(values.mean())
    strength = float(values.std(ddof=0)) / mean if mean > 0 else 0.0
    return {
        "has_seasonality": strength > SEASONALITY_THRESHOLD,
        "indices": indices,
        "strength": strength,
        "monthly_averages": averages,
        "overall_average": overall,
    }


def calculate_confidence_intervals(
    historical: Sequence[float], forecast: Sequence[float], confidence: float = 0.95
) -> Dict[str, object]:
    """Bands that widen with the forecast horizon; lower bounds are floored at zero."""
    forecast = list(forecast or [])
    if not historical or len(historical) < 2:
        return {"upper": forecast, "lower": forecast}

    stdev = float(pd.Series(list(historical), dtype="float64").std())
    z = Z_SCORES.get(confidence, Z_SCORES[0.95])
    n = len(historical)
    margins = [stdev * z * (1 + (i + 1) / n) ** 0.5 for i in range(len(forecast))]
    return {
        "upper": [value + margin for value, margin in zip(forecast, margins)],
        "lower": [max(0.0, value - margin) for value, margin in zip(forecast, margins)],
        "std_dev": stdev,
        "margin": stdev * z,
    }


def volatility_level(volatility: float) -> str:
    if volatility > 30:
        return "very high"
    if volatility > 20:
        return "high"
    if volatility > 10:
        return "moderate"
    if volatility > 5:
        return "low"
    return "stable"


def calculate_volatility(data: Sequence[float]) -> Dict[str, object]:
    """Coefficient of variation in percent, with a named level."""
    if not data or len(data) < 2:
        return {"volatility": 0.0, "level": "stable"}
    values = pd.Series(list(data), dtype="float64")
    mean = float(values.mean())
    stdev = float(values.std(ddof=0))
    volatility = stdev / mean * 100 if mean > 0 else 0.0
    return {"volatility": volatility, "level": volatility_level(volatility), "std_dev": stdev, "mean": mean}


def comprehensive_forecast(historical: Sequence[float], periods: int = 6) -> Optional[Forecast]:
    """Run every method and keep the one suited to the series.

    IQR outliers are dropped first when at least three points survive.
    Regression wins when R² exceeds 0.7 and volatility is below "very high";
    otherwise Holt's method is used for low or stable series, and simple
    exponential smoothing for the rest. Returns ``None`` under three points.
    """
    if not historical or len(historical) < 3:
        return None

    outliers = detect_outliers(historical)
    data = outliers["clean_data"] if len(outliers["clean_data"]) >= 3 else list(historical)

    recent = data[-SIMPLE_AVERAGE_WINDOW:]
    simple = [sum(recent) / len(recent)] * periods
    single = exponential_smoothing(data, 0.3, periods)
    double = double_exponential_smoothing(data, 0.3, 0.1, periods)
    regression = linear_regression(data)
    regression_forecast = [
        max(0.0, regression["slope"] * (len(data) + i) + regression["intercept"]) for i in range(periods)
    ]
    volatility = calculate_volatility(data)

    method, best = "exponential", single["forecast"]
    if regression["r2"] > REGRESSION_R2_THRESHOLD and volatility["level"] != "very high":
        method, best = "regression", regression_forecast
    elif volatility["level"] in ("low", "stable"):
        method, best = "double-exponential", double["forecast"]
    logger.debug("Forecast method %s (r2 %.2f, volatility %s)", method, regression["r2"], volatility["level"])

    bands = calculate_confidence_intervals(data, best)
    return Forecast(
        method=method,
        forecast=best,
        upper=bands["upper"],
        lower=bands["lower"],
        r2=regression["r2"],
        volatility=volatility["volatility"],
        volatility_level=volatility["level"],
        outlier_count=len(outliers["outliers"]),
        alternatives={
            "simple": simple,
            "exponential": single["forecast"],
            "double-exponential": double["forecast"],
            "regression": regression_forecast,
        },
    )


def forecast_monthly_expenses(
    transactions: Optional[Iterable[Transaction]], periods: int = 6
) -> Optional[Forecast]:
    """Forecast the next *periods* monthly expense totals, labelled ``YYYY-MM``."""
    totals = monthly_totals(transactions or [], TransactionType.EXPENSE)
    result = comprehensive_forecast(list(totals.values()), periods)
    if result is None:
        return None
    year, month = (int(part) for part in list(totals)[-1].split("-"))
    last = datetime(year, month, 1)
    result.periods = [add_months(last, step).strftime("%Y-%m") for step in range(1, periods + 1)]
    return result
