"""Prometheus metrics for larder.

Counters for repository writes, push/pull progress, conflict outcomes,
login reconciliation paths and manifest integrity failures.
"""

from prometheus_client import Counter, Gauge, Histogram

# Repository metrics
REPOSITORY_WRITES = Counter(
    "larder_repository_writes_total",
    "Total number of dirtying repository writes",
    labelnames=["collection", "operation"],
)

# Push metrics
MUTATIONS_PUSHED = Counter(
    "larder_mutations_pushed_total",
    "Queued mutations successfully pushed to the remote store",
    labelnames=["collection", "type"],
)

MUTATIONS_FAILED = Counter(
    "larder_mutations_failed_total",
    "Push attempts that failed and were requeued",
    labelnames=["collection"],
)

MUTATIONS_DROPPED = Counter(
    "larder_mutations_dropped_total",
    "Queued mutations dropped after reaching the retry ceiling",
    labelnames=["collection"],
)

SYNC_QUEUE_DEPTH = Gauge(
    "larder_sync_queue_depth",
    "Number of pending mutations waiting to be pushed",
)

# Pull metrics
RECORDS_PULLED = Counter(
    "larder_records_pulled_total",
    "Remote records examined during pull",
    labelnames=["collection"],
)

CONFLICT_RESOLUTIONS = Counter(
    "larder_conflict_resolutions_total",
    "Conflict resolution outcomes during pull",
    labelnames=["collection", "winner"],
)

SYNC_LATENCY = Histogram(
    "larder_sync_latency_seconds",
    "Full sync latency in seconds",
    buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
)

# Integrity metrics
MANIFEST_MISMATCHES = Counter(
    "larder_manifest_mismatches_total",
    "Full syncs blocked by a manifest count mismatch",
    labelnames=["collection"],
)

# Login reconciliation metrics
RECONCILIATIONS = Counter(
    "larder_reconciliations_total",
    "Login reconciliation outcomes",
    labelnames=["path", "refreshed"],
)

ARCHIVE_OPERATIONS = Counter(
    "larder_archive_operations_total",
    "Archive manager operations",
    labelnames=["operation"],
)
