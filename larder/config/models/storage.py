"""Storage backend configuration models."""

from typing import Literal

from pydantic import BaseModel, Field

BackendType = Literal["inmemory", "redis"]


class StoreBackendConfig(BaseModel):
    """Configuration for a single store backend."""

    backend: BackendType = Field(
        default="inmemory",
        description="Backend type",
    )
    connection_url: str | None = Field(
        default=None,
        description="Connection URL (from env var)",
    )


class LocalStorageConfig(StoreBackendConfig):
    """Device-local key-value store configuration."""

    key_prefix: str = Field(
        default="local_repo",
        min_length=1,
        description="Namespace for primary repository keys",
    )
    archive_prefix: str = Field(
        default="archived_repo",
        min_length=1,
        description="Namespace for tenant-scoped archives",
    )


class RemoteStoreConfig(StoreBackendConfig):
    """Remote store of record configuration."""

    timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Socket timeout for remote calls (seconds)",
    )
    key_prefix: str = Field(
        default="business",
        min_length=1,
        description="Namespace for tenant keys in the remote store",
    )
