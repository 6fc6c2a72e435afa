# ledger_insights/loaders/csv_ledger.py
import logging

import pandas as pd

from ledger_insights.loaders.base import BaseLoader, transaction_from_record

logger = logging.getLogger(__name__)

_REQUIRED = ("date", "type", "amount")


class CSVLedgerLoader(BaseLoader):
    def load(self, file_path):
        df = pd.read_csv(file_path, dtype=str, keep_default_na=False)

        # Column lookup
        cols = {str(c).strip().lower(): c for c in df.columns}
        def find(*frags, exact=False):
            for frag in frags:
                if frag in cols:
                    return cols[frag]
            if exact:
                return None
            for frag in frags:
                match = next((orig for low, orig in cols.items() if frag in low), None)
                if match is not None:
                    return match
            return None

        columns = {
            "date": find("date", "period"),
            "type": find("income/expense", "type"),
            "amount": find("amount"),
            "category": find("category", exact=True),
            "subcategory": find("subcategory", "sub category"),
            "account": find("account"),
            "note": find("note", "description"),
            "id": find("id", exact=True),
        }

        for name in _REQUIRED:
            if columns[name] is None:
                raise ValueError(f"Missing required column '{name}' in {file_path}")

        skipped = 0
        for idx, row in df.iterrows():
            record = {
                field_name: (row[column] or None)
                for field_name, column in columns.items()
                if column is not None
            }
            position = idx + 1
            try:
                yield transaction_from_record(record, default_id=f"row-{position}")
            except ValueError as exc:
                skipped += 1
                logger.warning("Skipping row %d of %s: %s", position, file_path, exc)

        if skipped:
            logger.warning("Skipped %d unreadable row(s) in %s", skipped, file_path)
