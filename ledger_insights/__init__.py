"""Analytics over a personal finance ledger.

Every function in this package is a pure computation over an in-memory
collection of :class:`~ledger_insights.core.models.Transaction` records.
See :mod:`ledger_insights.report` for the combined entry point.
"""

__version__ = "0.1.0"
