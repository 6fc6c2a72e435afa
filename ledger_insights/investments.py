# ledger_insights/investments.py
from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Sequence

from ledger_insights.core.models import (
    InvestmentMetrics,
    InvestmentPerformance,
    InvestmentTransaction,
    InvestmentType,
    MonthlyPnL,
    Transaction,
    TransactionType,
)
from ledger_insights.dates import month_key

logger = logging.getLogger(__name__)

DEFAULT_INVESTMENT_CATEGORIES = (
    "Investment Charges & Loss",
    "Investment Income",
    "Invest",
)
DEFAULT_INVESTMENT_ACCOUNTS = ("Zerodha", "Upstox", "Grow Stocks")
_INVESTMENT_SUBCATEGORY_MARKERS = ("Stock", "F&O", "Brokerage")


def calculate_monthly_pnl(transactions: Optional[Iterable[InvestmentTransaction]]) -> List[MonthlyPnL]:
    """Realized P&L per month with a running total.

    Dividends add and brokerage subtracts; buys and sells only move capital
    and are ignored here, though they still open an empty month.
    """
    monthly: Dict[str, float] = {}
    for t in transactions or []:
        if t.date is None:
            continue
        month = month_key(t.date)
        monthly.setdefault(month, 0.0)
        if t.type == InvestmentType.DIVIDEND:
            monthly[month] += t.amount
        elif t.type == InvestmentType.BROKERAGE:
            monthly[month] -= t.amount

    series = []
    cumulative = 0.0
    for month in sorted(monthly):
        cumulative += monthly[month]
        series.append(MonthlyPnL(month=month, amount=monthly[month], cumulative=cumulative))
    return series


def calculate_investment_metrics(transactions: Optional[Iterable[InvestmentTransaction]]) -> InvestmentMetrics:
    transactions = list(transactions or [])
    monthly = calculate_monthly_pnl(transactions)
    if not monthly:
        return InvestmentMetrics()

    gains = [m.amount for m in monthly if m.amount > 0]
    losses = [m.amount for m in monthly if m.amount < 0]
    total_profit = sum(gains)
    total_loss = abs(sum(losses))
    return InvestmentMetrics(
        total_profit=total_profit,
        total_loss=total_loss,
        net_pnl=total_profit - total_loss,
        total_brokerage=sum(t.amount for t in transactions if t.type == InvestmentType.BROKERAGE),
        average_monthly_return=sum(m.amount for m in monthly) / len(monthly),
        profit_months=len(gains),
        loss_months=len(losses),
    )


def calculate_return_percentage(invested: float, current_value: float) -> float:
    if invested == 0:
        return 0.0
    return (current_value - invested) / invested * 100


def _is_investment(t: Transaction, categories: Sequence[str], accounts: Sequence[str]) -> bool:
    if t.category in categories or t.account in accounts:
        return True
    return any(marker in (t.subcategory or "") for marker in _INVESTMENT_SUBCATEGORY_MARKERS)


def calculate_investment_performance(
    transactions: Optional[Iterable[Transaction]],
    categories: Sequence[str] = DEFAULT_INVESTMENT_CATEGORIES,
    accounts: Sequence[str] = DEFAULT_INVESTMENT_ACCOUNTS,
) -> InvestmentPerformance:
    """Capital flows and realized results of brokerage activity booked in the ledger.

    Outgoing transfers into an investment account deploy capital and incoming
    ones withdraw it. Profits, losses and fees are recognised from the
    category and subcategory. The return is net result over capital still
    deployed.
    """
    matched = [t for t in transactions or [] if _is_investment(t, categories, accounts)]
    if not matched:
        return InvestmentPerformance()

    deployed = withdrawals = profits = losses = fees = 0.0
    details = []
    for t in matched:
        subcategory = t.subcategory or ""
        is_profit = (
            "Profit" in subcategory
            or t.category == "Investment Income"
            or t.type == TransactionType.INCOME
        )
        is_loss = "Loss" in subcategory or t.category == "Investment Charges & Loss"
        is_fee = "Brokerage" in subcategory or "Fees" in subcategory

        if t.type == TransactionType.TRANSFER_OUT and not is_loss and not is_fee:
            deployed += t.amount
        elif t.type == TransactionType.TRANSFER_IN and not is_profit:
            withdrawals += t.amount
        elif is_profit:
            profits += t.amount
        elif is_loss:
            losses += t.amount
        elif is_fee:
            fees += t.amount

        if is_profit:
            kind = "Profit"
        elif is_loss:
            kind = "Loss"
        elif is_fee:
            kind = "Fee"
        else:
            kind = t.type.value
        details.append(
            {
                "date": t.date,
                "category": t.category,
                "subcategory": t.subcategory,
                "amount": t.amount,
                "type": kind,
                "note": t.note,
            }
        )

    holdings = deployed - withdrawals
    net = profits - losses - fees
    logger.debug("Investment performance over %d records", len(matched))
    return InvestmentPerformance(
        total_capital_deployed=deployed,
        total_withdrawals=withdrawals,
        current_holdings=holdings,
        realized_profits=profits,
        realized_losses=losses,
        brokerage_fees=fees,
        net_profit_loss=net,
        return_percentage=net / holdings * 100 if holdings > 0 else 0.0,
        transactions=details,
    )
