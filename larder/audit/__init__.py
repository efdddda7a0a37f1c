"""Audit: bounded event log and the sync manifest integrity gate."""

from larder.audit.event_log import EventLog
from larder.audit.manifest import SyncManifest
from larder.audit.models import CollectionTally, EventAction, EventLogEntry, ManifestState

__all__ = [
    "CollectionTally",
    "EventAction",
    "EventLog",
    "EventLogEntry",
    "ManifestState",
    "SyncManifest",
]
