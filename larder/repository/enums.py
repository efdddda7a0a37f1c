"""Enums for the repository domain."""

from enum import Enum


class Collection(str, Enum):
    """Typed collections held by a primary repository."""

    PROFILE = "profile"
    REWARDS = "rewards"
    CAMPAIGNS = "campaigns"
    CUSTOMERS = "customers"

    @property
    def entity_name(self) -> str:
        """Singular entity name used in event log entries."""
        return {
            Collection.PROFILE: "business_profile",
            Collection.REWARDS: "reward",
            Collection.CAMPAIGNS: "campaign",
            Collection.CUSTOMERS: "customer",
        }[self]


class CampaignStatus(str, Enum):
    """Lifecycle status of a campaign."""

    DRAFT = "draft"
    SCHEDULED = "scheduled"
    ACTIVE = "active"
    INACTIVE = "inactive"
    COMPLETED = "completed"
