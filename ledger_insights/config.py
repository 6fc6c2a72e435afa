# ledger_insights/config.py
from __future__ import annotations

import copy
import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Dict, Optional, Tuple

import yaml

from ledger_insights.tax import DEFAULT_TAX_SLABS, Slab, normalize_slabs

logger = logging.getLogger(__name__)

LOG_LEVEL_ENV = "LEDGER_INSIGHTS_LOG_LEVEL"
CONFIG_ENV = "LEDGER_INSIGHTS_CONFIG"

DEFAULT_CONFIG: Dict[str, object] = {
    "analytics": {
        "anomaly_sensitivity": 2.0,
        "recurring_min_amount": 10,
        "recurring_amount_bucket": 10,
        "recurring_tolerance": 0.2,
        "weekend_spike_multiplier": 1.5,
        "trend_threshold_percent": 5,
        "category_trend_threshold_percent": 10,
        "tax_lookback_months": 3,
        "standard_deduction": 75000,
        "professional_tax": 2400,
        "cess_percent": 4,
        "tax_slabs": [list(slab) for slab in DEFAULT_TAX_SLABS],
        "salary_category": "Employment Income",
        "salary_subcategories": ["Salary", "Base Salary"],
        "cashback_category": "Refund & Cashbacks",
        "cashback_shared_account": "Cashback Shared",
        "forecast_periods": 6,
    },
    "loaders": {
        "csv": "ledger_insights.loaders.csv_ledger.CSVLedgerLoader",
        "yaml": "ledger_insights.loaders.yaml_ledger.YAMLLedgerLoader",
    },
    "account_balances": {},
    "budgets": {},
    "log_level": "WARNING",
}

CONFIG_PATH = Path("ledger_insights.yaml")


@dataclass
class AnalyticsSettings:
    """Tuning constants handed to the analytics functions as keyword arguments."""

    anomaly_sensitivity: float = 2.0
    recurring_min_amount: float = 10
    recurring_amount_bucket: float = 10
    recurring_tolerance: float = 0.2
    weekend_spike_multiplier: float = 1.5
    trend_threshold_percent: float = 5
    category_trend_threshold_percent: float = 10
    tax_lookback_months: int = 3
    standard_deduction: float = 75000
    professional_tax: float = 2400
    cess_percent: float = 4
    tax_slabs: Tuple[Slab, ...] = DEFAULT_TAX_SLABS
    salary_category: str = "Employment Income"
    salary_subcategories: Tuple[str, ...] = ("Salary", "Base Salary")
    cashback_category: str = "Refund & Cashbacks"
    cashback_shared_account: str = "Cashback Shared"
    forecast_periods: int = 6


def _merge_defaults(current: Dict[str, object], defaults: Dict[str, object]) -> Dict[str, object]:
    """Merge missing default keys into the current config recursively."""
    merged = dict(current)
    for key, value in defaults.items():
        if key not in merged:
            merged[key] = copy.deepcopy(value)
        elif isinstance(value, dict) and isinstance(merged[key], dict):
            merged[key] = _merge_defaults(merged[key], value)
    return merged


def load_config(path: Optional[Path] = None) -> Dict[str, object]:
    target = Path(path or os.environ.get(CONFIG_ENV) or CONFIG_PATH)
    if not target.exists():
        if path is not None:
            logger.warning("Config file %s not found; using defaults", target)
        return copy.deepcopy(DEFAULT_CONFIG)
    with target.open("r", encoding="utf-8") as fp:
        data = yaml.safe_load(fp) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file {target} must contain a mapping")
    return _merge_defaults(data, DEFAULT_CONFIG)


def load_settings(config: Optional[Dict[str, object]] = None) -> AnalyticsSettings:
    analytics = dict((config or {}).get("analytics") or {})
    known = {f.name for f in fields(AnalyticsSettings)}
    for key in sorted(set(analytics) - known):
        logger.warning("Ignoring unknown analytics setting '%s'", key)

    values = {key: value for key, value in analytics.items() if key in known}
    if "tax_slabs" in values:
        values["tax_slabs"] = normalize_slabs(values["tax_slabs"])
    if "salary_subcategories" in values:
        values["salary_subcategories"] = tuple(values["salary_subcategories"])
    return AnalyticsSettings(**values)


def resolve_log_level(config: Optional[Dict[str, object]] = None) -> str:
    level = os.environ.get(LOG_LEVEL_ENV) or (config or {}).get("log_level") or "WARNING"
    return str(level).upper()
