from datetime import datetime, timedelta

import pytest

from ledger_insights.anomalies import detect_anomalies, detect_outliers
from ledger_insights.core.models import Transaction

AROUND_1000 = [950, 1000, 1050, 980, 1020, 990, 1010, 1000, 970, 1030]


def _expenses(amounts, type_="Expense"):
    start = datetime(2024, 1, 1)
    return [
        Transaction(id=str(i), date=start + timedelta(days=i), amount=amount, type=type_, category="Shopping")
        for i, amount in enumerate(amounts)
    ]


def test_large_expense_is_flagged_high():
    flagged = detect_anomalies(_expenses(AROUND_1000 + [10000]))
    assert len(flagged) == 1
    record = flagged[0]
    assert record.amount == 10000
    assert record.severity == "high"
    assert record.deviation > 3
    assert record.message.startswith("10000 is ")


def test_flagged_records_are_ordered_by_amount():
    flagged = detect_anomalies(_expenses(AROUND_1000 + [6000, 9000]), sensitivity=1)
    assert [r.amount for r in flagged] == [9000, 6000]


def test_sensitivity_controls_threshold():
    txs = _expenses(AROUND_1000 + [10000])
    assert detect_anomalies(txs, sensitivity=4) == []


def test_needs_three_expenses():
    assert detect_anomalies(_expenses([100, 5000])) == []
    assert detect_anomalies([]) == []
    assert detect_anomalies(None) == []


def test_income_is_ignored():
    txs = _expenses(AROUND_1000) + _expenses([50000], type_="Income")
    assert detect_anomalies(txs) == []


def test_identical_amounts_have_no_anomalies():
    assert detect_anomalies(_expenses([500] * 5)) == []


def test_negative_sensitivity_is_rejected():
    with pytest.raises(ValueError):
        detect_anomalies(_expenses(AROUND_1000), sensitivity=-1)


def test_detect_outliers_iqr():
    result = detect_outliers([10, 12, 11, 13, 100])
    assert result["outliers"] == [{"index": 4, "value": 100}]
    assert result["clean_data"] == [10, 12, 11, 13]
    assert result["q1"] == 11
    assert result["q3"] == 13
    assert result["upper_bound"] == 16


def test_detect_outliers_short_series_is_clean():
    assert detect_outliers([1, 100, 2]) == {"outliers": [], "clean_data": [1, 100, 2]}


def test_deviation_uses_population_standard_deviation():
    flagged = detect_anomalies(_expenses([100, 100, 100, 100, 1000]), sensitivity=1.5)
    assert len(flagged) == 1
    assert flagged[0].deviation == pytest.approx(2.0)
    assert detect_anomalies(_expenses([100, 100, 100, 100, 1000]), sensitivity=2.5) == []
