"""Login reconciliation between the device and the remote store."""

from larder.reconciliation.engine import (
    LoginReconciliationEngine,
    ReconciliationOutcome,
    ReconciliationPath,
    is_stale,
)

__all__ = [
    "LoginReconciliationEngine",
    "ReconciliationOutcome",
    "ReconciliationPath",
    "is_stale",
]
