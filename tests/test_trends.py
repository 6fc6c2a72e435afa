from datetime import datetime

import pytest

from ledger_insights.core.models import Transaction
from ledger_insights.trends import (
    analyze_day_of_week_patterns,
    calculate_category_trends,
    calculate_day_of_month_pattern,
    calculate_monthly_comparison,
    classify_trend,
)


def _tx(when, amount, category="Food", type_="Expense"):
    return Transaction(id=f"{when:%Y%m%d}-{amount}", date=when, amount=amount, type=type_, category=category)


def test_monthly_comparison_growth_and_trend():
    txs = [
        _tx(datetime(2024, 1, 5), 100),
        _tx(datetime(2024, 2, 5), 100),
        _tx(datetime(2024, 2, 20), 50),
        _tx(datetime(2024, 3, 5), 150),
        _tx(datetime(2024, 3, 6), 9999, type_="Income"),
    ]
    result = calculate_monthly_comparison(txs)
    assert result.months == ["2024-01", "2024-02", "2024-03"]
    assert result.by_month["2024-02"] == {"total": 150, "count": 2}
    assert result.growth_rates == [pytest.approx(50), pytest.approx(0)]
    assert result.avg_growth == pytest.approx(25)
    assert result.trend == "increasing"


def test_monthly_comparison_threshold_is_configurable():
    txs = [_tx(datetime(2024, 1, 5), 100), _tx(datetime(2024, 2, 5), 104)]
    assert calculate_monthly_comparison(txs).trend == "stable"
    assert calculate_monthly_comparison(txs, threshold_percent=2).trend == "increasing"


def test_monthly_comparison_empty():
    result = calculate_monthly_comparison([])
    assert result.months == []
    assert result.avg_growth == 0
    assert result.trend == "stable"


def test_classify_trend():
    assert classify_trend(6, 5) == "increasing"
    assert classify_trend(-6, 5) == "decreasing"
    assert classify_trend(5, 5) == "stable"


def _week():
    # 2024-01-01 is a Monday.
    weekdays = [_tx(datetime(2024, 1, day), 100) for day in range(2, 6)]
    monday = [_tx(datetime(2024, 1, 1, 9), 50), _tx(datetime(2024, 1, 1, 18), 50)]
    weekend = [_tx(datetime(2024, 1, 6), 300), _tx(datetime(2024, 1, 7), 300)]
    return weekdays + monday + weekend


def test_weekend_spike_uses_distinct_day_averages():
    pattern = analyze_day_of_week_patterns(_week())
    assert pattern.weekday_avg == pytest.approx(100)
    assert pattern.weekend_avg == pytest.approx(300)
    monday = pattern.day_data[0]
    assert monday.day == "Monday"
    assert monday.count == 2
    assert monday.distinct_days == 1
    assert monday.per_day_average == pytest.approx(100)
    assert monday.average == pytest.approx(50)

    assert len(pattern.insights) == 1
    insight = pattern.insights[0]
    assert insight.title == "Weekend Spending Spike"
    assert insight.priority == "high"
    assert "200% more" in insight.message


def test_weekend_spike_multiplier_is_configurable():
    pattern = analyze_day_of_week_patterns(_week(), spike_multiplier=3.5)
    assert pattern.insights == []


def test_no_weekend_spend_has_no_insight():
    txs = [_tx(datetime(2024, 1, day), 100) for day in range(1, 6)]
    pattern = analyze_day_of_week_patterns(txs)
    assert pattern.weekend_avg == 0
    assert pattern.insights == []


def test_day_of_week_without_expenses():
    assert analyze_day_of_week_patterns([]) is None
    assert analyze_day_of_week_patterns([_tx(datetime(2024, 1, 1), 10, type_="Income")]) is None


def test_day_of_month_pattern():
    txs = [_tx(datetime(2024, 1, 1), 100), _tx(datetime(2024, 2, 1), 300), _tx(datetime(2024, 1, 31), 40)]
    buckets = calculate_day_of_month_pattern(txs)
    assert len(buckets) == 31
    assert buckets[0].day == 1
    assert buckets[0].total == 400
    assert buckets[0].average == 200
    assert buckets[30].count == 1
    assert buckets[14].average == 0
    assert calculate_day_of_month_pattern([]) == []


def test_category_trends():
    txs = [
        _tx(datetime(2024, 1, 1), 100, "Food"),
        _tx(datetime(2024, 1, 31), 300, "Food"),
        _tx(datetime(2024, 1, 1), 200, "Travel"),
        _tx(datetime(2024, 1, 31), 190, "Travel"),
        _tx(datetime(2024, 1, 10), 5000, "Rent"),
    ]
    trends = calculate_category_trends(txs)
    assert [t.category for t in trends] == ["Food", "Travel"]
    food = trends[0]
    assert food.first_half_total == 100
    assert food.second_half_total == 300
    assert food.trend == pytest.approx(200)
    assert food.direction == "increasing"
    assert trends[1].direction == "stable"


def test_category_trend_midpoint_counts_in_both_halves():
    txs = [
        _tx(datetime(2024, 1, 1), 100),
        _tx(datetime(2024, 1, 16), 50),
        _tx(datetime(2024, 1, 31), 100),
    ]
    trend = calculate_category_trends(txs)[0]
    assert trend.first_half_total == 150
    assert trend.second_half_total == 150
    assert trend.direction == "stable"
