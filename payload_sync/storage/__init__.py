"""Local storage for synced records and sync metadata."""

from payload_sync.storage.store import (
    InMemoryStore,
    JsonFileStore,
    MetadataStore,
    RecordStore,
    build_store,
)

__all__ = ["InMemoryStore", "JsonFileStore", "MetadataStore", "RecordStore", "build_store"]
