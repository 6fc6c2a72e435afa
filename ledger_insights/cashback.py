# ledger_insights/cashback.py
"""Cashback earned on cards, the part passed on to others, and per-card rates.

Cashback is income booked under the cashback category. Amounts handed on to
other people are booked as expenses or outgoing transfers from a dedicated
"shared" account.
"""
from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional

from ledger_insights.aggregations import calculate_percentage
from ledger_insights.core.models import Insight, Transaction, TransactionType

logger = logging.getLogger(__name__)

DEFAULT_CASHBACK_CATEGORY = "Refund & Cashbacks"
DEFAULT_SHARED_ACCOUNT = "Cashback Shared"

# A rate at or above this percentage counts as a good card.
GOOD_CASHBACK_RATE = 2


def _is_cashback(t: Transaction, category: str) -> bool:
    return t.category == category and t.type == TransactionType.INCOME


def calculate_total_cashback_earned(
    transactions: Optional[Iterable[Transaction]],
    category: str = DEFAULT_CASHBACK_CATEGORY,
) -> float:
    return sum(t.amount for t in transactions or [] if _is_cashback(t, category))


def calculate_cashback_shared(
    transactions: Optional[Iterable[Transaction]],
    shared_account: str = DEFAULT_SHARED_ACCOUNT,
) -> float:
    outgoing = (TransactionType.EXPENSE, TransactionType.TRANSFER_OUT)
    return sum(
        t.amount
        for t in transactions or []
        if t.account == shared_account and t.type in outgoing
    )


def calculate_actual_cashback(
    transactions: Optional[Iterable[Transaction]],
    category: str = DEFAULT_CASHBACK_CATEGORY,
    shared_account: str = DEFAULT_SHARED_ACCOUNT,
) -> float:
    """Cashback retained after sharing; negative when more was shared than earned."""
    transactions = list(transactions or [])
    return calculate_total_cashback_earned(transactions, category) - calculate_cashback_shared(
        transactions, shared_account
    )


def calculate_cashback_by_card(
    transactions: Optional[Iterable[Transaction]],
    category: str = DEFAULT_CASHBACK_CATEGORY,
) -> Dict[str, Dict[str, float]]:
    """Cashback, spend and rate per credit-card account.

    A credit-card account is any account whose name contains ``credit``.
    """
    transactions = list(transactions or [])
    cards: List[str] = []
    for t in transactions:
        if "credit" in (t.account or "").lower() and t.account not in cards:
            cards.append(t.account)

    by_card: Dict[str, Dict[str, float]] = {}
    for card in cards:
        card_transactions = [t for t in transactions if t.account == card]
        cashback = sum(t.amount for t in card_transactions if _is_cashback(t, category))
        spending = sum(t.amount for t in card_transactions if t.type == TransactionType.EXPENSE)
        by_card[card] = {
            "cashback": cashback,
            "spending": spending,
            "cashback_rate": calculate_percentage(cashback, spending),
            "transaction_count": len(card_transactions),
        }
    logger.debug("Cashback breakdown covers %d card(s)", len(by_card))
    return by_card


def calculate_cashback_metrics(
    transactions: Optional[Iterable[Transaction]],
    category: str = DEFAULT_CASHBACK_CATEGORY,
    shared_account: str = DEFAULT_SHARED_ACCOUNT,
) -> Dict[str, object]:
    transactions = list(transactions or [])
    if not transactions:
        return {
            "total_cashback_earned": 0.0,
            "cashback_shared": 0.0,
            "actual_cashback": 0.0,
            "cashback_rate": 0.0,
            "by_card": {},
            "breakdown": [],
            "insights": [],
        }

    earned = calculate_total_cashback_earned(transactions, category)
    shared = calculate_cashback_shared(transactions, shared_account)
    actual = earned - shared
    by_card = calculate_cashback_by_card(transactions, category)
    card_spending = sum(card["spending"] for card in by_card.values())
    rate = calculate_percentage(earned, card_spending)

    insights: List[Insight] = []
    if earned > 0:
        insights.append(
            Insight(
                type="cashback",
                priority="positive",
                title="Total Cashback Earned",
                message=f"{earned:,.0f} earned across all cards",
            )
        )
    if shared > 0:
        insights.append(
            Insight(
                type="cashback",
                priority="neutral",
                title="Cashback Shared",
                message=f"{shared:,.0f} shared ({calculate_percentage(shared, earned):.1f}% of total)",
            )
        )
    if actual > 0:
        insights.append(
            Insight(
                type="cashback",
                priority="positive",
                title="Actual Cashback Retained",
                message=f"{actual:,.0f} after sharing",
            )
        )
    if rate > 0:
        insights.append(
            Insight(
                type="cashback",
                priority="positive" if rate >= GOOD_CASHBACK_RATE else "neutral",
                title="Cashback Rate",
                message=f"Earning {rate:.2f}% back on credit card spending",
            )
        )

    breakdown = sorted(
        ({"card": card, **data} for card, data in by_card.items()),
        key=lambda row: row["cashback"],
        reverse=True,
    )
    return {
        "total_cashback_earned": earned,
        "cashback_shared": shared,
        "actual_cashback": actual,
        "cashback_rate": rate,
        "by_card": by_card,
        "breakdown": breakdown,
        "insights": insights,
    }
