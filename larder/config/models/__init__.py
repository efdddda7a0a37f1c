"""Configuration model exports.

    from larder.config.models import LocalStorageConfig, SyncConfig
"""

from larder.config.models.observability import (
    LoggingConfig,
    MetricsConfig,
    ObservabilityConfig,
)
from larder.config.models.storage import (
    LocalStorageConfig,
    RemoteStoreConfig,
    StoreBackendConfig,
)
from larder.config.models.sync import EventLogConfig, SyncConfig

__all__ = [
    "EventLogConfig",
    "LocalStorageConfig",
    "LoggingConfig",
    "MetricsConfig",
    "ObservabilityConfig",
    "RemoteStoreConfig",
    "StoreBackendConfig",
    "SyncConfig",
]
