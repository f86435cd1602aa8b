"""Entry pipeline: identify, parse, digest and upsert fetched entries."""

from typing import Any, Callable, Iterable, Mapping

import structlog
from pydantic import ValidationError

from payload_sync.errors import DigestError, EntryValidationError, PayloadSyncError
from payload_sync.models.entry import NormalizedRecord, entry_id_to_str
from payload_sync.storage.store import RecordStore
from payload_sync.sync.models import PipelineResult

log = structlog.stdlib.get_logger()


class EntryPipeline:
    """Turns raw Payload entries into records and writes them to the store.

    Entries are handled one at a time, in order. The first failure is raised
    immediately and the remaining entries are left untouched; records written
    before the failure stay written.
    """

    def __init__(
        self,
        store: RecordStore,
        parse_data: Callable[[Mapping[str, Any]], dict[str, Any]],
        generate_digest: Callable[[Any], str],
        collection: str = "default",
    ):
        self._store = store
        self._parse_data = parse_data
        self._generate_digest = generate_digest
        self._collection = collection

    def identify(self, entry: Any) -> str:
        """
        Derive the stable record id for an entry.

        Raises:
            EntryValidationError: If the entry is not an object or has no usable id
        """
        if not isinstance(entry, Mapping):
            raise EntryValidationError(
                f"Invalid entry: expected an object, got {type(entry).__name__}"
            )

        try:
            return entry_id_to_str(entry.get("id"))
        except ValueError as e:
            raise EntryValidationError(f"Invalid entry: {e}") from e

    def process(self, entry: Any) -> tuple[NormalizedRecord, bool]:
        """
        Run one entry through the pipeline.

        Args:
            entry: Raw entry from the Payload response

        Returns:
            Tuple of (record, written) where written is False when the store
            already held the same digest

        Raises:
            EntryValidationError: If the entry has no id or fails parsing
            DigestError: If the digest cannot be computed
        """
        entry_id = self.identify(entry)

        try:
            data = self._parse_data({"id": entry_id, "data": entry})
        except PayloadSyncError:
            raise
        except (ValidationError, ValueError, TypeError) as e:
            raise EntryValidationError(f"Entry {entry_id} failed validation: {e}", entry_id=entry_id) from e

        try:
            digest = self._generate_digest(data)
        except DigestError as e:
            e.entry_id = entry_id
            raise
        except (TypeError, ValueError) as e:
            raise DigestError(f"Failed to compute digest for entry {entry_id}: {e}", entry_id=entry_id) from e

        record = NormalizedRecord(id=entry_id, data=data, digest=digest)
        written = self._store.upsert(record)

        log.debug(
            "entry_processed",
            collection=self._collection,
            entry_id=entry_id,
            digest=digest,
            written=written,
        )
        return record, written

    def process_all(self, entries: Iterable[Any]) -> PipelineResult:
        """
        Process entries sequentially, stopping at the first failure.

        Args:
            entries: Entries in response order

        Returns:
            PipelineResult with counts and processed ids

        Raises:
            EntryValidationError, DigestError, RuntimeError: From the failing entry
        """
        result = PipelineResult()

        for position, entry in enumerate(entries):
            try:
                record, written = self.process(entry)
            except Exception as e:
                log.error(
                    "entry_processing_failed",
                    collection=self._collection,
                    position=position,
                    entries_processed=result.entries_processed,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                raise

            result.entries_processed += 1
            result.records_written += int(written)
            result.record_ids.append(record.id)

        return result
