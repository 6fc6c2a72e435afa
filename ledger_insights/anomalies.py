# ledger_insights/anomalies.py
from __future__ import annotations

import logging
import math
from typing import Dict, Iterable, List, Optional, Sequence

import pandas as pd

from ledger_insights.core.models import AnomalyRecord, Transaction, TransactionType

logger = logging.getLogger(__name__)

MIN_SAMPLE = 3
HIGH_SIGMA = 3
MEDIUM_SIGMA = 2
IQR_MULTIPLIER = 1.5


def _severity(amount: float, mean: float, stdev: float) -> str:
    if amount > mean + HIGH_SIGMA * stdev:
        return "high"
    if amount > mean + MEDIUM_SIGMA * stdev:
        return "medium"
    return "low"


def detect_anomalies(
    transactions: Optional[Iterable[Transaction]], sensitivity: float = 2
) -> List[AnomalyRecord]:
    """Flag expenses more than *sensitivity* population standard deviations above the mean.

    Fewer than three expenses give an empty result. Flagged records are
    returned largest amount first.
    """
    if sensitivity < 0:
        raise ValueError("sensitivity must be zero or greater")

    expenses = [t for t in transactions or [] if t.type == TransactionType.EXPENSE]
    if len(expenses) < MIN_SAMPLE:
        return []

    amounts = pd.Series([t.amount for t in expenses], dtype="float64")
    mean = float(amounts.mean())
    stdev = float(amounts.std(ddof=0))
    threshold = mean + sensitivity * stdev
    logger.debug("Anomaly threshold %.2f (mean %.2f, stdev %.2f)", threshold, mean, stdev)

    flagged = []
    for t in expenses:
        if t.amount <= threshold:
            continue
        deviation = (t.amount - mean) / stdev if stdev else 0.0
        above = (t.amount - mean) / mean * 100 if mean else 0.0
        flagged.append(
            AnomalyRecord(
                transaction=t,
                deviation=deviation,
                severity=_severity(t.amount, mean, stdev),
                message=f"{t.amount:.0f} is {above:.0f}% above average",
            )
        )

    flagged.sort(key=lambda record: record.amount, reverse=True)
    return flagged


def detect_outliers(data: Sequence[float]) -> Dict[str, object]:
    """Split *data* into IQR outliers and the remaining clean values.

    Quartiles are taken at the floor of the 25th/75th percentile positions of
    the sorted values; fewer than four points are returned as all clean.
    """
    values = [v for v in data or [] if isinstance(v, (int, float)) and math.isfinite(v)]
    if len(values) < 4:
        return {"outliers": [], "clean_data": list(values)}

    ordered = sorted(values)
    q1 = ordered[int(len(ordered) * 0.25)]
    q3 = ordered[int(len(ordered) * 0.75)]
    iqr = q3 - q1
    lower = q1 - IQR_MULTIPLIER * iqr
    upper = q3 + IQR_MULTIPLIER * iqr

    outliers = []
    clean = []
    for index, value in enumerate(values):
        if value < lower or value > upper:
            outliers.append({"index": index, "value": value})
        else:
            clean.append(value)

    return {
        "outliers": outliers,
        "clean_data": clean,
        "lower_bound": lower,
        "upper_bound": upper,
        "q1": q1,
        "q3": q3,
        "iqr": iqr,
    }
