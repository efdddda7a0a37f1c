"""Key layout for the primary repository and tenant archives.

Primary:  {prefix}:{part}              e.g. local_repo:rewards
Archive:  {archive_prefix}:{tenant}:{part}
"""

from larder.repository.enums import Collection

PROFILE_PART = "business_profile"
SYNC_METADATA_PART = "sync_metadata"
REWARDS_TRASH_PART = "rewards_trash"
SYNC_QUEUE_PART = "sync_queue"
CURRENT_TENANT_PART = "current_business_id"
EVENT_LOG_PART = "event_log"
SYNC_MANIFEST_PART = "sync_manifest"

# Parts copied into an archive, in copy order
ARCHIVED_PARTS: tuple[str, ...] = (
    PROFILE_PART,
    Collection.REWARDS.value,
    Collection.CAMPAIGNS.value,
    Collection.CUSTOMERS.value,
    SYNC_METADATA_PART,
    REWARDS_TRASH_PART,
    SYNC_QUEUE_PART,
)


class RepositoryKeys:
    """Builds every storage key used by one device."""

    def __init__(self, prefix: str = "local_repo", archive_prefix: str = "archived_repo") -> None:
        self.prefix = prefix
        self.archive_prefix = archive_prefix

    def part(self, name: str) -> str:
        return f"{self.prefix}:{name}"

    def collection(self, collection: Collection) -> str:
        if collection is Collection.PROFILE:
            return self.part(PROFILE_PART)
        return self.part(collection.value)

    @property
    def sync_metadata(self) -> str:
        return self.part(SYNC_METADATA_PART)

    @property
    def rewards_trash(self) -> str:
        return self.part(REWARDS_TRASH_PART)

    @property
    def sync_queue(self) -> str:
        return self.part(SYNC_QUEUE_PART)

    @property
    def current_tenant(self) -> str:
        return self.part(CURRENT_TENANT_PART)

    @property
    def event_log(self) -> str:
        return self.part(EVENT_LOG_PART)

    @property
    def sync_manifest(self) -> str:
        return self.part(SYNC_MANIFEST_PART)

    def primary_keys(self) -> list[str]:
        """Every key cleared when the primary repository is vacated.

        The event log and manifest are device-wide and survive.
        """
        return [self.part(name) for name in ARCHIVED_PARTS] + [self.current_tenant]

    def archive_namespace(self, tenant_id: str) -> str:
        return f"{self.archive_prefix}:{tenant_id}:"

    def archived(self, tenant_id: str, part: str) -> str:
        return f"{self.archive_namespace(tenant_id)}{part}"

    def archived_keys(self, tenant_id: str) -> list[str]:
        return [self.archived(tenant_id, part) for part in ARCHIVED_PARTS]

    def tenant_from_archived_profile(self, key: str) -> str | None:
        """Extract the tenant id from an archived profile key, if it is one."""
        head = f"{self.archive_prefix}:"
        tail = f":{PROFILE_PART}"
        if key.startswith(head) and key.endswith(tail):
            tenant_id = key[len(head):-len(tail)]
            return tenant_id or None
        return None
