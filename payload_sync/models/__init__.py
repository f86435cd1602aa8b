"""Data models for the Payload sync system."""

from payload_sync.models.config import (
    AppConfig,
    LoggingConfig,
    PayloadConfig,
    SchedulerConfig,
    StoreConfig,
    SyncConfig,
)
from payload_sync.models.entry import (
    NormalizedRecord,
    PayloadResponse,
    RemoteEntry,
    SyncMetadata,
    entry_id_to_str,
)

__all__ = [
    "AppConfig",
    "LoggingConfig",
    "PayloadConfig",
    "SchedulerConfig",
    "StoreConfig",
    "SyncConfig",
    "NormalizedRecord",
    "PayloadResponse",
    "RemoteEntry",
    "SyncMetadata",
    "entry_id_to_str",
]
