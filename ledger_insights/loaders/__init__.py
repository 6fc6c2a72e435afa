# ledger_insights/loaders/__init__.py
from importlib import import_module

from ledger_insights.config import DEFAULT_CONFIG
from ledger_insights.loaders.base import BaseLoader, transaction_from_record

DEFAULT_LOADERS = DEFAULT_CONFIG["loaders"]


def get_loader(name, config=None) -> BaseLoader:
    loaders = dict(DEFAULT_LOADERS)
    loaders.update((config or {}).get("loaders") or {})
    if name not in loaders:
        raise KeyError(f"Unknown loader '{name}'. Available: {', '.join(sorted(loaders))}")
    module_name, cls_name = loaders[name].rsplit(".", 1)
    mod = import_module(module_name)
    return getattr(mod, cls_name)()


def loader_for_path(file_path) -> str:
    """Pick a loader name from a file extension."""
    suffix = str(file_path).lower().rsplit(".", 1)[-1]
    return "yaml" if suffix in ("yaml", "yml") else "csv"


__all__ = ["BaseLoader", "DEFAULT_LOADERS", "get_loader", "loader_for_path", "transaction_from_record"]
