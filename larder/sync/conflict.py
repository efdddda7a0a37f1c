"""Per-entity conflict resolution between a local and a remote record.

Higher version wins. On a version tie the later ``updatedAt`` wins, and
an exact tie keeps the local copy. A missing timestamp sorts before any
real one. The rule is total: every pair has exactly one winner.
"""

from datetime import UTC, datetime

from larder.errors import ConflictUnresolvedError
from larder.repository.models import Record
from larder.sync.models import ConflictResolution

_EPOCH = datetime.fromtimestamp(0, UTC)


def resolve_conflict(
    local_version: int,
    local_time: datetime | None,
    remote_version: int,
    remote_time: datetime | None,
) -> ConflictResolution:
    """Pick the surviving side of a version/timestamp pair."""
    if local_version != remote_version:
        return ConflictResolution.LOCAL if local_version > remote_version else ConflictResolution.REMOTE

    if (local_time or _EPOCH) >= (remote_time or _EPOCH):
        return ConflictResolution.LOCAL
    return ConflictResolution.REMOTE


def resolve_records(local: Record, remote: Record) -> ConflictResolution:
    """Resolve two copies of the same entity.

    Raises:
        ConflictUnresolvedError: If the records are not the same entity.
    """
    if local.id != remote.id:
        raise ConflictUnresolvedError(
            f"Cannot resolve {local.id} against a different entity {remote.id}"
        )
    return resolve_conflict(local.version, local.updated_at, remote.version, remote.updated_at)
