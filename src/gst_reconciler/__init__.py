"""GST invoice/ledger reconciliation toolkit.

Exposes the pure ``reconcile`` engine and the high-level ``run_reconciliation``
API for programmatic use.
"""

from .reconciliation import reconcile  # Pure matching engine
from .runner import run_reconciliation  # Public API for file-based runs

__all__ = ["reconcile", "run_reconciliation"]
