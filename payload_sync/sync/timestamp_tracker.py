"""Timestamp tracking for maintaining synchronization state."""

from datetime import datetime, timezone

import structlog

from payload_sync.models.entry import SyncMetadata
from payload_sync.storage.store import MetadataStore
from payload_sync.sync.gate import ensure_utc

log = structlog.stdlib.get_logger()


class TimestampTracker:
    """Manages the ``lastSynced`` value in a collection's metadata store."""

    # Metadata key holding the last successful sync time
    LAST_SYNCED_KEY: str = "lastSynced"

    def __init__(self, meta: MetadataStore, collection: str):
        """
        Initialize timestamp tracker.

        Args:
            meta: Metadata store for the collection
            collection: Collection slug, used for logging
        """
        self._meta: MetadataStore = meta
        self._collection = collection

    def load_last_synced(self) -> datetime | None:
        """
        Load the last successful sync time.

        Values are stored as ISO-8601 strings. Purely numeric values are read
        as epoch milliseconds.

        Returns:
            Timestamp in UTC, or None if the collection never synced

        Raises:
            RuntimeError: If the stored value cannot be parsed
        """
        raw = self._meta.get(self.LAST_SYNCED_KEY)
        if not raw:
            log.info("no_sync_state_found", collection=self._collection)
            return None

        try:
            if raw.strip().isdigit():
                return datetime.fromtimestamp(int(raw) / 1000, tz=timezone.utc)
            return ensure_utc(datetime.fromisoformat(raw.replace("Z", "+00:00")))
        except (ValueError, OverflowError) as e:
            log.error(
                "failed_to_parse_last_synced",
                collection=self._collection,
                value=raw,
                error=str(e),
            )
            raise RuntimeError(f"Failed to load sync state: {e}") from e

    def save_last_synced(self, timestamp: datetime) -> None:
        """
        Record a successful sync.

        Args:
            timestamp: Start time of the cycle that just completed
        """
        value = ensure_utc(timestamp).isoformat()
        self._meta.set(self.LAST_SYNCED_KEY, value)
        log.info("sync_state_saved", collection=self._collection, last_synced=value)

    def load_sync_metadata(self) -> SyncMetadata:
        return SyncMetadata(collection=self._collection, last_synced=self.load_last_synced())
