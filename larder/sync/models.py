"""Sync domain models."""

from datetime import datetime
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, Field

from larder.repository.enums import Collection
from larder.repository.models import utc_now


class MutationType(str, Enum):
    """Kind of local write waiting to be pushed."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class PendingMutation(BaseModel):
    """One queued outbound change.

    The payload is not stored: push reads the current record at send time.
    """

    op_id: str = Field(default_factory=lambda: uuid4().hex)
    type: MutationType
    collection: Collection
    entity_id: str
    version: int = Field(..., ge=0, description="Repository write counter at enqueue time")
    retries: int = Field(default=0, ge=0)
    enqueued_at: datetime = Field(default_factory=utc_now)


class ConflictResolution(str, Enum):
    """Which side of a local/remote pair is kept."""

    LOCAL = "local"
    REMOTE = "remote"


class PushResult(BaseModel):
    """Outcome of one push cycle."""

    pushed: int = 0
    failed: int = 0
    dropped: int = 0
    skipped: int = 0
    errors: list[str] = Field(default_factory=list)


class PullResult(BaseModel):
    """Outcome of one pull for a tenant."""

    pulled: int = 0
    inserted: int = 0
    overwritten: int = 0
    kept_local: int = 0
    pushed_back: int = 0
    cancelled: bool = False
    errors: list[str] = Field(default_factory=list)


class SyncResult(BaseModel):
    """Outcome of a full sync (push, pull, validate, finalize)."""

    push: PushResult = Field(default_factory=PushResult)
    pull: PullResult = Field(default_factory=PullResult)
    finalized: bool = False
    errors: list[str] = Field(default_factory=list)


class SyncStatus(BaseModel):
    """Snapshot for the UI's sync indicator."""

    is_online: bool
    is_syncing: bool
    pending_operations: int
    last_synced_at: datetime | None = None
    has_unsynced_changes: bool = False
    last_error: str | None = None
