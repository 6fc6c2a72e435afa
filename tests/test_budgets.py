from datetime import datetime, timedelta

import pytest

from ledger_insights.budgets import (
    calculate_budget_comparison,
    calculate_category_budget_status,
    calculate_goal_progress,
    calculate_impact,
    calculate_savings_potential,
    calculate_simulated_spending,
)
from ledger_insights.core.models import Transaction


def _spend(category, amount):
    return Transaction(id=f"{category}-{amount}", date=datetime(2024, 1, 10), amount=amount, type="Expense", category=category)


def _ledger():
    return [_spend("Food", 700), _spend("Food", 500), _spend("Rent", 9500)]


def test_budget_status_against_limits():
    rows = calculate_category_budget_status(_ledger(), {"Food": 1000, "Rent": 10000, "Travel": 5000})
    by_category = {row.category: row for row in rows}
    assert by_category["Food"].status == "over"
    assert by_category["Food"].remaining == -200
    assert by_category["Food"].percent_used == pytest.approx(120)
    assert by_category["Rent"].status == "warning"
    assert by_category["Travel"].status == "under"
    assert by_category["Travel"].spent == 0


def test_budget_status_suggests_limits_without_budgets():
    rows = calculate_category_budget_status(_ledger())
    assert [row.category for row in rows] == ["Food", "Rent"]
    assert rows[0].budget == pytest.approx(1440)
    assert rows[0].status == "under"


def test_budget_status_rejects_blank_categories():
    with pytest.raises(ValueError):
        calculate_category_budget_status(_ledger(), {" ": 100})


def test_budget_status_empty_ledger():
    assert calculate_category_budget_status([], {"Food": 100}) == []


def test_budget_comparison_covers_unbudgeted_categories():
    comparison = calculate_budget_comparison({"Food": 1000, "Rent": 500}, {"Food": 850, "Fun": 100, "Rent": 600})
    assert list(comparison) == ["Food", "Rent", "Fun"]
    assert comparison["Food"].status == "warning"
    assert comparison["Rent"].status == "over"
    assert comparison["Fun"].budget == 0
    assert comparison["Fun"].status == "good"


def test_savings_potential_takes_a_fraction():
    potential = calculate_savings_potential(300, 30, 0.2)
    assert potential.monthly_amount == pytest.approx(304.4)
    assert potential.monthly_savings == pytest.approx(60.88)
    assert potential.annual_savings == pytest.approx(730.56)
    assert potential.percentage == pytest.approx(20)


def test_simulated_spending_and_impact():
    actual = {"Food": 1000, "Rent": 5000}
    simulated = calculate_simulated_spending(actual, {"Food": -10})
    assert simulated == {"Food": pytest.approx(900), "Rent": pytest.approx(5000)}

    impact = calculate_impact(actual, simulated)
    assert impact["monthly_savings"] == pytest.approx(100)
    assert impact["annual_savings"] == pytest.approx(1200)
    assert impact["percentage_change"] == pytest.approx(100 / 6000 * 100)


def test_goal_progress_on_track():
    start = datetime(2024, 1, 1)
    progress = calculate_goal_progress(100000, 40000, start + timedelta(days=180), 10000, as_of=start)
    assert progress["progress"] == pytest.approx(40)
    assert progress["remaining"] == 60000
    assert progress["months_remaining"] == 6
    assert progress["required_monthly_savings"] == pytest.approx(10000)
    assert progress["projected_date"] == start + timedelta(days=180)
    assert progress["on_track"] is True


def test_goal_progress_without_savings_is_off_track():
    start = datetime(2024, 1, 1)
    progress = calculate_goal_progress(1000, 2000, start - timedelta(days=5), as_of=start)
    assert progress["progress"] == 100
    assert progress["months_remaining"] == 1
    assert progress["projected_date"] is None
    assert progress["on_track"] is False
