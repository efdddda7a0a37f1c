"""Event log and sync manifest models."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from larder.repository.models import utc_now


class EventAction(str, Enum):
    """Actions recorded in the device event log."""

    LOGIN = "EVENT:LOGIN"
    LOGOUT = "EVENT:LOGOUT"
    CREATE = "CREATE"
    EDIT = "EDIT"
    DELETE = "DELETE"
    SYNC_ERROR = "SYNC_ERROR"


class EventLogEntry(BaseModel):
    """Single diagnostic entry."""

    timestamp: datetime = Field(default_factory=utc_now)
    action: EventAction
    data: dict[str, Any] = Field(default_factory=dict)


class CollectionTally(BaseModel):
    """Baseline count plus deltas for one tracked collection."""

    model_config = ConfigDict(populate_by_name=True)

    count_at_login: int = Field(default=0, ge=0, alias="countAtLogin")
    creates: int = Field(default=0, ge=0)
    deletes: int = Field(default=0, ge=0)

    @property
    def expected(self) -> int:
        return self.count_at_login + self.creates - self.deletes


class ManifestState(BaseModel):
    """Persisted manifest: one tally per tracked collection."""

    model_config = ConfigDict(populate_by_name=True)

    tallies: dict[str, CollectionTally] = Field(default_factory=dict)
    baseline_at: datetime | None = Field(default=None, alias="baselineAt")
