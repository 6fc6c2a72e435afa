# ledger_insights/core/__init__.py
from ledger_insights.core.models import (
    InvestmentTransaction,
    InvestmentType,
    Transaction,
    TransactionType,
)

__all__ = [
    "InvestmentTransaction",
    "InvestmentType",
    "Transaction",
    "TransactionType",
]
