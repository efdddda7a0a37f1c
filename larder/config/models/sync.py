"""Synchronization and event log configuration models."""

from pydantic import BaseModel, Field, field_validator

from larder.repository.enums import Collection


class SyncConfig(BaseModel):
    """Push/pull engine configuration."""

    max_retries: int = Field(
        default=3,
        ge=1,
        description="Push attempts per queued mutation before it is dropped",
    )
    interval_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Background worker drain interval (seconds)",
    )
    tracked_collections: list[Collection] = Field(
        default_factory=lambda: [Collection.REWARDS, Collection.CAMPAIGNS],
        description="Collections validated by the sync manifest",
    )

    @field_validator("tracked_collections")
    @classmethod
    def no_profile_tracking(cls, value: list[Collection]) -> list[Collection]:
        if Collection.PROFILE in value:
            raise ValueError("the profile is a single record and cannot be tallied")
        return value


class EventLogConfig(BaseModel):
    """Bounded event log configuration."""

    capacity: int = Field(
        default=300,
        gt=0,
        description="Maximum retained entries (oldest evicted first)",
    )
