"""Synchronization coordinator for refreshing one Payload collection."""

from datetime import datetime, timezone
from typing import Any, Mapping

from pydantic import ValidationError

from payload_sync.errors import ConfigurationError, ShapeError
from payload_sync.ingestion.payload_client import PayloadClient
from payload_sync.models.config import DEFAULT_SYNC_INTERVAL_MS, SyncConfig
from payload_sync.models.entry import PayloadResponse
from payload_sync.sync.gate import ensure_utc, should_sync
from payload_sync.sync.models import CyclePhase, LoaderContext, SyncReport
from payload_sync.sync.pipeline import EntryPipeline
from payload_sync.sync.timestamp_tracker import TimestampTracker


class SyncCoordinator:
    """Runs sync cycles for a single collection.

    A cycle moves through gate, fetch, envelope validation, entry processing
    and commit. ``lastSynced`` is written only after every entry has been
    upserted, so a failed cycle is retried in full next time.

    Cycles for the same collection must not overlap; callers serialize
    invocations (see ``payload_sync.scheduler.SyncScheduler``).
    """

    def __init__(self, config: SyncConfig, client: PayloadClient, context: LoaderContext):
        """
        Initialize sync coordinator.

        Args:
            config: Collection settings
            client: Client for the Payload API
            context: Store, metadata, parser, digest function and logger
        """
        self._config: SyncConfig = config
        self._client: PayloadClient = client
        self._context: LoaderContext = context
        self._log = context.logger
        self._tracker = TimestampTracker(context.meta, config.api_path)
        self._pipeline = EntryPipeline(
            context.store,
            context.parse_data,
            context.generate_digest,
            collection=config.api_path,
        )
        self.phase: CyclePhase = CyclePhase.IDLE

        self._log.info(
            "sync_coordinator_initialized",
            loader=config.loader_name,
            sync_interval_ms=config.sync_interval,
            depth=config.depth,
        )

    @property
    def name(self) -> str:
        return self._config.loader_name

    @property
    def config(self) -> SyncConfig:
        return self._config

    def run_cycle(self, now: datetime | None = None) -> SyncReport:
        """
        Run one sync cycle.

        Args:
            now: Cycle start time (defaults to the current UTC time). On
                success it becomes the new ``lastSynced``.

        Returns:
            SyncReport describing the cycle

        Raises:
            TransportError: If the Payload API request fails
            ResponseParseError: If the response body is not JSON
            ShapeError: If the response has no ``docs`` list
            EntryValidationError: If an entry has no id or fails parsing
            DigestError: If a digest cannot be computed
        """
        start_time = ensure_utc(now) if now is not None else datetime.now(timezone.utc)
        collection = self._config.api_path

        last_synced = self._tracker.load_last_synced()

        if not should_sync(last_synced, self._config.interval, start_time):
            self.phase = CyclePhase.GATED
            self._log.info(
                "payload_sync_skipped",
                collection=collection,
                last_synced=last_synced.isoformat() if last_synced else None,
                sync_interval_ms=self._config.sync_interval,
            )
            self.phase = CyclePhase.IDLE
            return SyncReport(
                collection=collection,
                skipped=True,
                start_time=start_time,
                end_time=start_time,
                last_synced=last_synced,
            )

        self._log.info(
            "payload_sync_started",
            collection=collection,
            start_time=start_time.isoformat(),
        )

        try:
            self.phase = CyclePhase.FETCHING
            body = self._client.fetch_entries(f"api/{collection}", self._query_params())

            self.phase = CyclePhase.VALIDATING
            entries = self._validate_envelope(body)

            self.phase = CyclePhase.PROCESSING
            result = self._pipeline.process_all(entries)

            self.phase = CyclePhase.COMMITTING
            self._tracker.save_last_synced(start_time)
        except Exception as e:
            self.phase = CyclePhase.FAILED
            self._log.error(
                "payload_sync_failed",
                collection=collection,
                error=f"Error loading Payload content: {e}",
                error_type=type(e).__name__,
            )
            raise

        self.phase = CyclePhase.IDLE
        report = SyncReport(
            collection=collection,
            entries_fetched=len(entries),
            entries_processed=result.entries_processed,
            records_written=result.records_written,
            start_time=start_time,
            end_time=datetime.now(timezone.utc),
            last_synced=start_time,
        )

        self._log.info(
            "payload_sync_completed",
            collection=collection,
            entries_fetched=report.entries_fetched,
            records_written=report.records_written,
            records_unchanged=report.records_unchanged,
            duration_seconds=report.duration_seconds,
        )
        return report

    def _query_params(self) -> dict[str, str | None]:
        depth = self._config.depth
        return {"depth": str(depth) if depth is not None else None}

    def _validate_envelope(self, body: Any) -> list[Any]:
        """
        Check the response envelope and return its entries.

        Raises:
            ShapeError: If the body is not an object with a ``docs`` list
        """
        if not isinstance(body, Mapping) or not isinstance(body.get("docs"), list):
            raise ShapeError("Invalid response format: entries is not an array")

        try:
            envelope = PayloadResponse.model_validate(dict(body))
        except ValidationError as e:
            raise ShapeError(f"Invalid response format: {e}") from e

        if envelope.has_next_page:
            self._log.warning(
                "payload_response_has_more_pages",
                collection=self._config.api_path,
                returned=len(envelope.docs),
                total_docs=envelope.total_docs,
            )
        return envelope.docs


def payload_loader(
    api_path: str,
    sync_interval: int = DEFAULT_SYNC_INTERVAL_MS,
    depth: int | None = None,
    *,
    context: LoaderContext,
    base_url: str | None = None,
    client: PayloadClient | None = None,
    timeout: float = 30.0,
) -> SyncCoordinator:
    """
    Create a coordinator for a Payload collection.

    Configuration is validated here, before any cycle can run.

    Args:
        api_path: Collection slug (e.g. 'posts', 'users')
        sync_interval: Minimum milliseconds between refreshes (default: 60000)
        depth: Relationship depth for the Payload query
        context: Store, metadata, parser, digest function and logger
        base_url: Payload instance URL, required when no client is given
        client: Optional pre-built client
        timeout: Request timeout in seconds for a client built here

    Returns:
        SyncCoordinator for the collection

    Raises:
        ConfigurationError: When api_path is empty, sync_interval is invalid,
            or neither base_url nor client is provided
    """
    config = SyncConfig.create(api_path, sync_interval, depth)

    if client is None:
        if not base_url:
            raise ConfigurationError("Payload base URL is not set")
        client = PayloadClient(base_url, timeout=timeout)

    return SyncCoordinator(config, client, context)


