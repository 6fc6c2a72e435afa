from datetime import datetime, timedelta

import pytest

from ledger_insights.core.models import Transaction
from ledger_insights.recurring import (
    calculate_recurring_total,
    classify_frequency,
    detect_recurring_transactions,
)


def _tx(when, amount, note="Netflix", type_="Expense", category="Entertainment"):
    return Transaction(
        id=f"{note}-{when:%Y%m%d}",
        date=when,
        amount=amount,
        type=type_,
        category=category,
        note=note,
    )


def _monthly(note="Netflix"):
    # Intervals of 33 and 30 days, amounts that round to the same bucket.
    return [
        _tx(datetime(2024, 1, 1), 499, note),
        _tx(datetime(2024, 2, 3), 501, note),
        _tx(datetime(2024, 3, 4), 500, note),
    ]


def test_monthly_series_is_detected():
    patterns = detect_recurring_transactions(_monthly(), as_of=datetime(2024, 3, 20))
    assert len(patterns) == 1
    pattern = patterns[0]
    assert pattern.frequency == "monthly"
    assert pattern.is_recurring is True
    assert pattern.description == "Netflix"
    assert pattern.occurrence_count == 3
    assert pattern.interval_days == 32
    assert pattern.average_amount == pytest.approx(500)
    assert pattern.min_amount == 499
    assert pattern.max_amount == 501
    assert pattern.first_occurrence == datetime(2024, 1, 1)
    assert pattern.last_occurrence == datetime(2024, 3, 4)
    assert pattern.next_expected == datetime(2024, 3, 4) + timedelta(days=31.5)
    assert pattern.monthly_equivalent == pytest.approx(500 / 31.5 * 30.44)
    assert pattern.is_active is True
    assert pattern.days_since_last_occurrence == 16


def test_series_goes_inactive_after_two_missed_intervals():
    patterns = detect_recurring_transactions(_monthly(), as_of=datetime(2024, 6, 1))
    assert patterns[0].is_active is False


def test_grouping_ignores_case_of_description():
    txs = _monthly()
    txs[1] = _tx(datetime(2024, 2, 3), 501, "NETFLIX")
    patterns = detect_recurring_transactions(txs, as_of=datetime(2024, 3, 20))
    assert len(patterns) == 1
    assert patterns[0].occurrence_count == 3


def test_category_is_used_when_note_is_missing():
    txs = [
        Transaction(id=str(i), date=datetime(2024, m, 1), amount=15000, type="Expense", category="Rent")
        for i, m in enumerate((1, 2, 3, 4))
    ]
    patterns = detect_recurring_transactions(txs, as_of=datetime(2024, 4, 10))
    assert [p.description for p in patterns] == ["Rent"]


def test_weekly_series_ranks_above_cheaper_monthly():
    gym = [_tx(datetime(2024, 1, 1) + timedelta(days=7 * i), 200, "Gym") for i in range(4)]
    patterns = detect_recurring_transactions(gym + _monthly(), as_of=datetime(2024, 3, 10))
    assert [p.frequency for p in patterns] == ["weekly", "monthly"]
    assert patterns[0].monthly_equivalent > patterns[1].monthly_equivalent


def test_irregular_intervals_are_rejected():
    txs = [
        _tx(datetime(2024, 1, 1), 300, "Cab"),
        _tx(datetime(2024, 1, 5), 300, "Cab"),
        _tx(datetime(2024, 2, 9), 300, "Cab"),
    ]
    assert detect_recurring_transactions(txs, as_of=datetime(2024, 3, 1)) == []


def test_income_and_small_amounts_are_skipped():
    salary = [_tx(datetime(2024, m, 1), 100000, "Salary", type_="Income") for m in (1, 2, 3)]
    coffee = [_tx(datetime(2024, m, 1), 5, "Coffee") for m in (1, 2, 3)]
    assert detect_recurring_transactions(salary + coffee, as_of=datetime(2024, 3, 5)) == []


def test_single_occurrence_is_not_a_pattern():
    assert detect_recurring_transactions([_tx(datetime(2024, 1, 1), 500)]) == []
    assert detect_recurring_transactions([]) == []


def test_negative_tolerance_is_rejected():
    with pytest.raises(ValueError):
        detect_recurring_transactions(_monthly(), tolerance=-0.1)


def test_classify_frequency():
    assert classify_frequency(7) == ("weekly", True)
    assert classify_frequency(30) == ("monthly", True)
    assert classify_frequency(365) == ("annually", True)
    assert classify_frequency(45) == ("irregular", False)


def test_recurring_total_counts_active_patterns():
    active = detect_recurring_transactions(_monthly(), as_of=datetime(2024, 3, 20))
    stale = detect_recurring_transactions(_monthly("Spotify"), as_of=datetime(2024, 9, 1))
    assert calculate_recurring_total(active + stale) == pytest.approx(active[0].monthly_equivalent)
    assert calculate_recurring_total(active + stale, active_only=False) == pytest.approx(
        active[0].monthly_equivalent + stale[0].monthly_equivalent
    )
