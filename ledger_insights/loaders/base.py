# ledger_insights/loaders/base.py
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import date, datetime
from typing import Iterator, Mapping, Optional

import pandas as pd

from ledger_insights.core.models import (
    InvestmentTransaction,
    InvestmentType,
    Transaction,
    TransactionType,
    coerce_amount,
)

logger = logging.getLogger(__name__)

TYPE_ALIASES = {
    "income": TransactionType.INCOME,
    "inc.": TransactionType.INCOME,
    "expense": TransactionType.EXPENSE,
    "exp.": TransactionType.EXPENSE,
    "transfer-in": TransactionType.TRANSFER_IN,
    "transfer in": TransactionType.TRANSFER_IN,
    "transfer-out": TransactionType.TRANSFER_OUT,
    "transfer out": TransactionType.TRANSFER_OUT,
}

# Alternative field names seen in ledger exports, in lookup order.
FIELD_ALIASES = {
    "id": ("id",),
    "date": ("date", "period"),
    "amount": ("amount",),
    "type": ("type", "income/expense"),
    "category": ("category",),
    "subcategory": ("subcategory",),
    "account": ("account", "accounts"),
    "note": ("note", "description"),
}


class BaseLoader(ABC):
    @abstractmethod
    def load(self, file_path: str) -> Iterator[Transaction]:
        """
        Yield Transaction instances from file_path.
        Rows with an unusable date or type are skipped with a warning.
        """


def parse_type(value) -> TransactionType:
    if isinstance(value, TransactionType):
        return value
    key = str(value or "").strip().lower()
    if key not in TYPE_ALIASES:
        raise ValueError(f"Unrecognized transaction type {value!r}")
    return TYPE_ALIASES[key]


def parse_date(value) -> datetime:
    if isinstance(value, pd.Timestamp):
        return value.to_pydatetime()
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if value is None:
        raise ValueError("Missing date")
    try:
        parsed = pd.to_datetime(value, errors="coerce")
    except (TypeError, ValueError):
        parsed = pd.NaT
    if pd.isna(parsed):
        raise ValueError(f"Unrecognized date {value!r}")
    return parsed.to_pydatetime()


def _lookup(record: Mapping, name: str):
    lowered = {str(k).strip().lower(): v for k, v in record.items()}
    for alias in FIELD_ALIASES[name]:
        value = lowered.get(alias)
        if value is not None and not (isinstance(value, float) and pd.isna(value)):
            return value
    return None


def _unreadable(value) -> bool:
    try:
        float(value)
    except (TypeError, ValueError):
        return True
    return False


def _text(value) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def transaction_from_record(record: Mapping, default_id: Optional[str] = None) -> Transaction:
    """Build a Transaction from a loosely shaped mapping.

    Raises ValueError when the date or type cannot be read; every other field
    falls back to its default.
    """
    when = parse_date(_lookup(record, "date"))
    kind = parse_type(_lookup(record, "type"))

    raw_amount = _lookup(record, "amount")
    amount = coerce_amount(raw_amount)
    if raw_amount is not None and amount == 0 and _unreadable(raw_amount):
        logger.warning("Amount %r could not be read; using 0", raw_amount)

    return Transaction(
        id=_text(_lookup(record, "id")) or default_id or f"{when.isoformat()}-{kind.value}",
        date=when,
        amount=amount,
        type=kind,
        category=_text(_lookup(record, "category")),
        subcategory=_text(_lookup(record, "subcategory")),
        account=_text(_lookup(record, "account")) or "",
        note=_text(_lookup(record, "note")),
    )


def investment_from_record(record: Mapping) -> InvestmentTransaction:
    lowered = {str(k).strip().lower(): v for k, v in record.items()}
    kind = str(lowered.get("type") or "").strip().capitalize()
    try:
        investment_type = InvestmentType(kind)
    except ValueError:
        raise ValueError(f"Unrecognized investment type {lowered.get('type')!r}") from None
    return InvestmentTransaction(
        date=parse_date(lowered.get("date")),
        type=investment_type,
        amount=lowered.get("amount"),
        symbol=_text(lowered.get("symbol")),
        note=_text(lowered.get("note")),
    )
