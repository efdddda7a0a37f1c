"""Synchronization: outbound mutation queue, conflict resolution, push/pull.

The engine and background worker live in ``larder.sync.engine`` and
``larder.sync.worker``; they depend on the local repository, which in turn
depends on the queue and models exported here.
"""

from larder.sync.conflict import resolve_conflict, resolve_records
from larder.sync.models import (
    ConflictResolution,
    MutationType,
    PendingMutation,
    PullResult,
    PushResult,
    SyncResult,
    SyncStatus,
)
from larder.sync.queue import SyncQueue

__all__ = [
    "ConflictResolution",
    "MutationType",
    "PendingMutation",
    "PullResult",
    "PushResult",
    "SyncQueue",
    "SyncResult",
    "SyncStatus",
    "resolve_conflict",
    "resolve_records",
]
