from datetime import datetime

import pytest

from ledger_insights.core.models import Transaction
from ledger_insights.reimbursement import (
    calculate_average_reimbursement,
    calculate_reimbursement_by_period,
    calculate_reimbursement_metrics,
    calculate_total_reimbursements,
    get_reimbursement_transactions,
    is_reimbursement,
)


def _tx(when, amount, subcategory, type_="Income"):
    return Transaction(
        id=f"{when:%Y%m%d}",
        date=when,
        amount=amount,
        type=type_,
        category="Other Income",
        subcategory=subcategory,
    )


def _ledger():
    return [
        _tx(datetime(2024, 1, 10), 1000, "Expense Reimbursement"),
        _tx(datetime(2024, 2, 20), 500, "Travel Reimbursement"),
        _tx(datetime(2024, 2, 21), 800, "Expense Reimbursement", type_="Expense"),
        _tx(datetime(2024, 2, 22), 50000, "Salary"),
    ]


def test_is_reimbursement():
    txs = _ledger()
    assert [is_reimbursement(t) for t in txs] == [True, True, False, False]


def test_reimbursements_newest_first():
    matched = get_reimbursement_transactions(_ledger())
    assert [t.amount for t in matched] == [500, 1000]


def test_reimbursement_totals():
    txs = _ledger()
    assert calculate_total_reimbursements(txs) == 1500
    assert calculate_average_reimbursement(txs) == pytest.approx(750)
    by_period = calculate_reimbursement_by_period(txs)
    assert list(by_period) == ["2024-02", "2024-01"]
    assert by_period["2024-01"]["total"] == 1000
    assert by_period["2024-02"]["count"] == 1


def test_reimbursement_metrics_recent_window():
    metrics = calculate_reimbursement_metrics(_ledger(), as_of=datetime(2024, 3, 1))
    assert metrics["reimbursement_count"] == 2
    assert [i.title for i in metrics["insights"]] == [
        "Total Reimbursements",
        "Average Reimbursement",
        "Recent Activity",
    ]
    assert "500 reimbursed in last 30 days" in metrics["insights"][2].message
    assert len(metrics["recent_transactions"]) == 2

    later = calculate_reimbursement_metrics(_ledger(), as_of=datetime(2024, 6, 1))
    assert len(later["insights"]) == 2


def test_reimbursement_metrics_empty():
    metrics = calculate_reimbursement_metrics(None)
    assert metrics["total_reimbursements"] == 0
    assert metrics["by_period"] == {}
