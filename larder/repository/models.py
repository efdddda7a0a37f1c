"""Repository domain models.

Records keep a JSON-like external shape (camelCase aliases, unknown fields
retained) but are decoded into typed models at the repository boundary.
"""

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator

from larder.repository.enums import CampaignStatus, Collection


def utc_now() -> datetime:
    """Return current UTC time."""
    return datetime.now(UTC)


def _as_utc(value: datetime | None) -> datetime | None:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


class Record(BaseModel):
    """Base for every repository record.

    ``version`` is bumped by every dirtying local write and is the primary
    key for conflict resolution; ``dirty`` marks a write not yet pushed.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        extra="allow",
        validate_assignment=True,
    )

    id: str = Field(..., min_length=1, description="Unique within collection and tenant")
    created_at: datetime | None = Field(default=None, alias="createdAt")
    updated_at: datetime | None = Field(default=None, alias="updatedAt")
    version: int = Field(default=0, ge=0, description="Local write counter")
    dirty: bool = Field(default=False, description="Has unpushed local changes")

    @field_validator("created_at", "updated_at")
    @classmethod
    def _normalize_tz(cls, value: datetime | None) -> datetime | None:
        return _as_utc(value)

    def to_wire(self) -> dict[str, Any]:
        """JSON-compatible dict using the external camelCase names."""
        return self.model_dump(mode="json", by_alias=True)


class Profile(Record):
    """Business profile. Its ``id`` is the tenant identifier."""

    name: str = ""
    email: str | None = None
    phone: str | None = None
    category: str | None = None
    description: str | None = None


class Reward(Record):
    """Reward definition (e.g. free product after N stamps)."""

    name: str = ""
    requirement: int | None = Field(default=None, ge=0)
    reward_type: str | None = Field(default=None, alias="rewardType")
    is_active: bool = Field(default=True, alias="isActive")


class Campaign(Record):
    """Time-boxed campaign."""

    name: str = ""
    start_date: str | None = Field(default=None, alias="startDate")
    end_date: str | None = Field(default=None, alias="endDate")
    status: CampaignStatus = CampaignStatus.ACTIVE


class Customer(Record):
    """Customer roster entry."""

    name: str = ""
    email: str | None = None
    phone: str | None = None
    stamps: int = Field(default=0, ge=0)


RECORD_TYPES: dict[Collection, type[Record]] = {
    Collection.PROFILE: Profile,
    Collection.REWARDS: Reward,
    Collection.CAMPAIGNS: Campaign,
    Collection.CUSTOMERS: Customer,
}

LIST_ADAPTERS: dict[Collection, TypeAdapter[Any]] = {
    collection: TypeAdapter(list[record_type])
    for collection, record_type in RECORD_TYPES.items()
    if collection is not Collection.PROFILE
}


def parse_record(collection: Collection, data: dict[str, Any]) -> Record:
    """Decode a wire dict into the typed record for collection."""
    return RECORD_TYPES[collection].model_validate(data)


class SyncMetadata(BaseModel):
    """Per-repository sync bookkeeping; travels with archive/restore."""

    model_config = ConfigDict(populate_by_name=True, validate_assignment=True)

    last_synced_at: datetime | None = Field(default=None, alias="lastSyncedAt")
    last_downloaded_at: datetime | None = Field(default=None, alias="lastDownloadedAt")
    has_unsynced_changes: bool = Field(default=False, alias="hasUnsyncedChanges")
    version: int = Field(default=0, ge=0, description="Local write counter")
    last_modified: datetime | None = Field(default=None, alias="lastModified")


@dataclass
class RepositoryState:
    """Which tenant's data is resident in the primary slot.

    Owned by the LocalRepository and shared by reference with the archive
    manager, reconciliation engine and sync engine.
    """

    current_tenant_id: str | None = None

    @property
    def is_empty(self) -> bool:
        return self.current_tenant_id is None
