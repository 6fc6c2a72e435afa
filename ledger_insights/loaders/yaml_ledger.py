# ledger_insights/loaders/yaml_ledger.py
import logging
from pathlib import Path
from typing import List

import yaml

from ledger_insights.core.models import InvestmentTransaction
from ledger_insights.loaders.base import BaseLoader, investment_from_record, transaction_from_record

logger = logging.getLogger(__name__)


def _read(file_path):
    with Path(file_path).open("r", encoding="utf-8") as fp:
        return yaml.safe_load(fp) or []


class YAMLLedgerLoader(BaseLoader):
    """Reads a list of transaction mappings, or a mapping with a ``transactions`` list."""

    def load(self, file_path):
        data = _read(file_path)
        if isinstance(data, dict):
            data = data.get("transactions") or []
        if not isinstance(data, list):
            raise ValueError(f"Expected a list of transactions in {file_path}")

        for position, entry in enumerate(data, start=1):
            if not isinstance(entry, dict):
                logger.warning("Skipping entry %d of %s: not a mapping", position, file_path)
                continue
            try:
                yield transaction_from_record(entry, default_id=f"row-{position}")
            except ValueError as exc:
                logger.warning("Skipping entry %d of %s: %s", position, file_path, exc)


def load_investment_transactions(file_path) -> List[InvestmentTransaction]:
    """Read the ``investments`` list of a YAML ledger; missing list means none."""
    data = _read(file_path)
    if not isinstance(data, dict):
        return []
    investments = []
    for position, entry in enumerate(data.get("investments") or [], start=1):
        try:
            investments.append(investment_from_record(entry))
        except (ValueError, AttributeError) as exc:
            logger.warning("Skipping investment %d of %s: %s", position, file_path, exc)
    return investments
