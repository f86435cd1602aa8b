"""Synchronization components for incremental collection refreshes."""

from payload_sync.sync.gate import should_sync
from payload_sync.sync.models import CyclePhase, LoaderContext, PipelineResult, SyncReport
from payload_sync.sync.pipeline import EntryPipeline
from payload_sync.sync.sync_coordinator import SyncCoordinator, payload_loader
from payload_sync.sync.timestamp_tracker import TimestampTracker

__all__ = [
    "CyclePhase",
    "EntryPipeline",
    "LoaderContext",
    "PipelineResult",
    "SyncCoordinator",
    "SyncReport",
    "TimestampTracker",
    "payload_loader",
    "should_sync",
]
