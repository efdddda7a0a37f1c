"""Local repository: typed collections over the device key-value store.

The single source of truth the UI reads and writes. Owns dirty tracking
and the "which tenant is resident" state.
"""

from larder.repository.enums import CampaignStatus, Collection
from larder.repository.models import (
    Campaign,
    Customer,
    Profile,
    Record,
    RepositoryState,
    Reward,
    SyncMetadata,
)

__all__ = [
    # Enums
    "CampaignStatus",
    "Collection",
    # Models
    "Campaign",
    "Customer",
    "Profile",
    "Record",
    "RepositoryState",
    "Reward",
    "SyncMetadata",
]
