"""Periodic runner that drives sync cycles for every configured collection."""

import threading
import time
from datetime import datetime
from typing import Callable, Literal, Sequence

import structlog
from pydantic import BaseModel, Field

from payload_sync.errors import TransportError
from payload_sync.ingestion.payload_client import PayloadClient
from payload_sync.models.config import AppConfig
from payload_sync.storage.store import build_store
from payload_sync.sync.models import LoaderContext, SyncReport
from payload_sync.sync.sync_coordinator import SyncCoordinator
from payload_sync.utils.logging_config import bind_sync_context, clear_sync_context
from payload_sync.utils.retry import exponential_backoff_retry

log = structlog.stdlib.get_logger()


class CollectionOutcome(BaseModel):
    """Result of one scheduler pass for one collection."""

    collection: str = Field(..., description="Payload collection slug")
    status: Literal["synced", "skipped", "busy", "failed"] = Field(..., description="Pass outcome")
    report: SyncReport | None = Field(default=None, description="Cycle report when one ran")
    error: str | None = Field(default=None, description="Error message for failed passes")
    error_type: str | None = Field(default=None, description="Exception class name for failed passes")

    @property
    def success(self) -> bool:
        return self.status != "failed"


class SyncScheduler:
    """Invokes coordinators one after another, never overlapping a collection.

    Transport failures are retried with exponential backoff. Every other
    failure is logged and reported for that pass; the next pass tries again
    because the coordinator did not advance ``lastSynced``.
    """

    def __init__(
        self,
        coordinators: Sequence[SyncCoordinator],
        poll_seconds: float = 30.0,
        max_retries: int = 3,
        base_delay: float = 1.0,
        max_delay: float = 60.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._coordinators = list(coordinators)
        self._poll_seconds = poll_seconds
        self._max_retries = max_retries
        self._base_delay = base_delay
        self._max_delay = max_delay
        self._sleep = sleep
        self._locks: dict[str, threading.Lock] = {c.name: threading.Lock() for c in self._coordinators}

        log.info(
            "sync_scheduler_initialized",
            collections=[c.config.api_path for c in self._coordinators],
            poll_seconds=poll_seconds,
        )

    @classmethod
    def from_config(cls, config: AppConfig, client: PayloadClient | None = None) -> "SyncScheduler":
        """Build a scheduler, its client, stores and coordinators from AppConfig."""
        if client is None:
            client = PayloadClient(
                str(config.payload.base_url), timeout=config.payload.timeout_seconds
            )

        coordinators = []
        for collection in config.collections:
            store = build_store(config.store, collection.metadata_namespace)
            coordinators.append(SyncCoordinator(collection, client, LoaderContext.for_store(store)))

        return cls(
            coordinators,
            poll_seconds=config.scheduler.poll_seconds,
            max_retries=config.scheduler.max_retries,
            base_delay=config.scheduler.base_delay,
            max_delay=config.scheduler.max_delay,
        )

    @property
    def coordinators(self) -> list[SyncCoordinator]:
        return list(self._coordinators)

    def run_collection(self, coordinator: SyncCoordinator, now: datetime | None = None) -> CollectionOutcome:
        """
        Run one cycle for a collection unless a cycle for it is still running.

        Args:
            coordinator: Coordinator to invoke
            now: Optional cycle start time, used for the first attempt only

        Returns:
            CollectionOutcome for this pass
        """
        collection = coordinator.config.api_path
        lock = self._locks.setdefault(coordinator.name, threading.Lock())

        if not lock.acquire(blocking=False):
            log.warning("collection_sync_already_running", collection=collection)
            return CollectionOutcome(collection=collection, status="busy")

        attempts = iter([now])

        def attempt() -> SyncReport:
            # Retries start a fresh cycle at the current time
            return coordinator.run_cycle(next(attempts, None))

        run = exponential_backoff_retry(
            max_retries=self._max_retries,
            base_delay=self._base_delay,
            max_delay=self._max_delay,
            exceptions=(TransportError,),
            sleep=self._sleep,
        )(attempt)

        try:
            bind_sync_context(collection=collection)
            report = run()
        except Exception as e:
            log.error(
                "collection_sync_failed",
                collection=collection,
                error=str(e),
                error_type=type(e).__name__,
            )
            return CollectionOutcome(
                collection=collection,
                status="failed",
                error=str(e),
                error_type=type(e).__name__,
            )
        finally:
            clear_sync_context()
            lock.release()

        return CollectionOutcome(
            collection=collection,
            status="skipped" if report.skipped else "synced",
            report=report,
        )

    def run_once(self, now: datetime | None = None) -> list[CollectionOutcome]:
        """Run one pass over every collection, in configuration order."""
        outcomes = [self.run_collection(coordinator, now) for coordinator in self._coordinators]

        log.info(
            "scheduler_pass_completed",
            synced=sum(1 for o in outcomes if o.status == "synced"),
            skipped=sum(1 for o in outcomes if o.status == "skipped"),
            failed=sum(1 for o in outcomes if o.status == "failed"),
        )
        return outcomes

    def run_forever(
        self,
        stop_event: threading.Event | None = None,
        max_passes: int | None = None,
    ) -> None:
        """
        Run passes every ``poll_seconds`` until stopped.

        Args:
            stop_event: Event that ends the loop when set
            max_passes: Optional cap on the number of passes
        """
        stop_event = stop_event or threading.Event()
        passes = 0

        log.info("scheduler_started", poll_seconds=self._poll_seconds)
        while not stop_event.is_set():
            self.run_once()
            passes += 1
            if max_passes is not None and passes >= max_passes:
                break
            stop_event.wait(self._poll_seconds)

        log.info("scheduler_stopped", passes=passes)
