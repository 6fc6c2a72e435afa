# ledger_insights/reimbursement.py
from __future__ import annotations

from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Optional

from ledger_insights.aggregations import calculate_average_per_transaction
from ledger_insights.core.models import Insight, Transaction, TransactionType
from ledger_insights.dates import resolve_now

REIMBURSEMENT_SUBCATEGORY = "Expense Reimbursement"
RECENT_WINDOW_DAYS = 30
RECENT_LIMIT = 10


def is_reimbursement(t: Transaction) -> bool:
    subcategory = t.subcategory or ""
    matches = subcategory == REIMBURSEMENT_SUBCATEGORY or "reimburs" in subcategory.lower()
    return matches and t.type == TransactionType.INCOME


def get_reimbursement_transactions(transactions: Optional[Iterable[Transaction]]) -> List[Transaction]:
    """Reimbursement income, newest first."""
    matched = [t for t in transactions or [] if is_reimbursement(t)]
    return sorted(matched, key=lambda t: t.date, reverse=True)


def calculate_total_reimbursements(transactions: Optional[Iterable[Transaction]]) -> float:
    return sum(t.amount for t in get_reimbursement_transactions(transactions))


def calculate_average_reimbursement(transactions: Optional[Iterable[Transaction]]) -> float:
    matched = get_reimbursement_transactions(transactions)
    return calculate_average_per_transaction(sum(t.amount for t in matched), len(matched))


def calculate_reimbursement_by_period(transactions: Optional[Iterable[Transaction]]) -> Dict[str, Dict[str, object]]:
    by_period: Dict[str, Dict[str, object]] = {}
    for t in get_reimbursement_transactions(transactions):
        bucket = by_period.setdefault(t.month, {"total": 0.0, "count": 0, "transactions": []})
        bucket["total"] += t.amount
        bucket["count"] += 1
        bucket["transactions"].append(t)
    return by_period


def calculate_reimbursement_metrics(
    transactions: Optional[Iterable[Transaction]],
    as_of: Optional[datetime] = None,
) -> Dict[str, object]:
    """Totals, monthly breakdown and insights, with "recent" measured from *as_of*."""
    matched = get_reimbursement_transactions(transactions)
    if not matched:
        return {
            "total_reimbursements": 0.0,
            "average_reimbursement": 0.0,
            "reimbursement_count": 0,
            "by_period": {},
            "recent_transactions": [],
            "insights": [],
        }

    total = sum(t.amount for t in matched)
    average = total / len(matched)
    cutoff = resolve_now(as_of) - timedelta(days=RECENT_WINDOW_DAYS)

    insights = [
        Insight(
            type="reimbursement",
            priority="positive",
            title="Total Reimbursements",
            message=f"{total:,.0f} received from {len(matched)} reimbursements",
        ),
        Insight(
            type="reimbursement",
            priority="neutral",
            title="Average Reimbursement",
            message=f"{average:,.0f} per reimbursement",
        ),
    ]
    recent_total = sum(t.amount for t in matched if t.date >= cutoff)
    if recent_total > 0:
        insights.append(
            Insight(
                type="reimbursement",
                priority="positive",
                title="Recent Activity",
                message=f"{recent_total:,.0f} reimbursed in last {RECENT_WINDOW_DAYS} days",
            )
        )

    return {
        "total_reimbursements": total,
        "average_reimbursement": average,
        "reimbursement_count": len(matched),
        "by_period": calculate_reimbursement_by_period(matched),
        "recent_transactions": matched[:RECENT_LIMIT],
        "insights": insights,
    }
