"""Data models for synchronization operations."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Mapping

import structlog
from pydantic import BaseModel, Field

from payload_sync.processing.digest import generate_digest
from payload_sync.processing.parser import EntryParser
from payload_sync.storage.store import MetadataStore, RecordStore


class CyclePhase(str, Enum):
    """Where a coordinator is in its current (or last) cycle."""

    IDLE = "idle"
    GATED = "gated"
    FETCHING = "fetching"
    VALIDATING = "validating"
    PROCESSING = "processing"
    COMMITTING = "committing"
    FAILED = "failed"


@dataclass(frozen=True)
class LoaderContext:
    """Capabilities a coordinator needs to run a cycle.

    ``parse_data`` receives ``{"id": str, "data": entry}`` and returns the
    payload to store. ``generate_digest`` maps that payload to a digest.
    """

    store: RecordStore
    meta: MetadataStore
    parse_data: Callable[[Mapping[str, Any]], dict[str, Any]] = field(default_factory=EntryParser)
    generate_digest: Callable[[Any], str] = generate_digest
    logger: Any = field(default_factory=structlog.stdlib.get_logger)

    @classmethod
    def for_store(cls, store: Any, **kwargs: Any) -> "LoaderContext":
        """Build a context from a store exposing its metadata as ``store.meta``."""
        return cls(store=store, meta=store.meta, **kwargs)


class PipelineResult(BaseModel):
    """Outcome of running the entry pipeline over one batch."""

    entries_processed: int = Field(default=0, ge=0, description="Entries parsed and upserted")
    records_written: int = Field(
        default=0, ge=0, description="Upserts the store reported as actual writes"
    )
    record_ids: list[str] = Field(default_factory=list, description="Processed ids, in order")

    @property
    def records_unchanged(self) -> int:
        """Upserts skipped by the store because the digest matched."""
        return self.entries_processed - self.records_written


class SyncReport(BaseModel):
    """Report of a completed sync cycle."""

    collection: str = Field(..., description="Payload collection that was synced")
    skipped: bool = Field(default=False, description="True if the interval gate skipped the cycle")
    entries_fetched: int = Field(default=0, ge=0, description="Entries returned by the API")
    entries_processed: int = Field(default=0, ge=0, description="Entries parsed and upserted")
    records_written: int = Field(default=0, ge=0, description="Records actually changed in the store")
    start_time: datetime = Field(..., description="Cycle start timestamp")
    end_time: datetime = Field(..., description="Cycle end timestamp")
    last_synced: datetime | None = Field(
        default=None, description="lastSynced value after the cycle"
    )

    @property
    def duration_seconds(self) -> float:
        """Wall-clock duration of the cycle."""
        return max((self.end_time - self.start_time).total_seconds(), 0.0)

    @property
    def records_unchanged(self) -> int:
        return self.entries_processed - self.records_written
