"""Tests for the sync coordinator and the payload_loader factory.

Feature: payload-sync
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest

from payload_sync.errors import (
    ConfigurationError,
    EntryValidationError,
    ShapeError,
    TransportError,
)
from payload_sync.ingestion.payload_client import PayloadClient
from payload_sync.models.config import SyncConfig
from payload_sync.processing.digest import generate_digest
from payload_sync.storage.store import InMemoryStore
from payload_sync.sync.models import CyclePhase, LoaderContext
from payload_sync.sync.sync_coordinator import SyncCoordinator, payload_loader
from payload_sync.sync.timestamp_tracker import TimestampTracker

T0 = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)


def make_client(body=None, side_effect=None) -> MagicMock:
    client = MagicMock(spec=PayloadClient)
    if side_effect is not None:
        client.fetch_entries.side_effect = side_effect
    else:
        client.fetch_entries.return_value = body
    return client


def make_coordinator(
    body=None,
    side_effect=None,
    sync_interval: int = 0,
    depth: int | None = None,
    store: InMemoryStore | None = None,
) -> tuple[SyncCoordinator, MagicMock, InMemoryStore]:
    store = store if store is not None else InMemoryStore("posts")
    client = make_client(body, side_effect)
    coordinator = SyncCoordinator(
        SyncConfig.create("posts", sync_interval, depth),
        client,
        LoaderContext.for_store(store),
    )
    return coordinator, client, store


def last_synced_value(store: InMemoryStore) -> str | None:
    return store.meta.get(TimestampTracker.LAST_SYNCED_KEY)


class TestSuccessfulCycle:
    def test_first_run_stores_entries_and_records_start_time(self) -> None:
        body = {"docs": [{"id": 1, "title": "a"}, {"id": 2, "title": "b"}]}
        coordinator, client, store = make_coordinator(body)

        report = coordinator.run_cycle(now=T0)

        assert store.ids() == ["1", "2"]
        assert store.get("1").data == {"id": "1", "title": "a"}
        assert last_synced_value(store) == T0.isoformat()
        assert report.skipped is False
        assert report.entries_fetched == 2
        assert report.records_written == 2
        assert report.last_synced == T0
        assert coordinator.phase is CyclePhase.IDLE
        client.fetch_entries.assert_called_once_with("api/posts", {"depth": None})

    def test_identical_rerun_produces_identical_digests(self) -> None:
        body = {"docs": [{"id": 1, "title": "a"}, {"id": 2, "title": "b"}]}
        coordinator, _, store = make_coordinator(body)
        coordinator.run_cycle(now=T0)
        digests = {record_id: store.get(record_id).digest for record_id in store.ids()}

        report = coordinator.run_cycle(now=T0 + timedelta(seconds=1))

        assert report.entries_processed == 2
        assert report.records_written == 0
        assert report.records_unchanged == 2
        assert {record_id: store.get(record_id).digest for record_id in store.ids()} == digests
        assert digests["1"] == generate_digest({"id": "1", "title": "a"})

    def test_changed_entry_is_rewritten(self) -> None:
        coordinator, client, store = make_coordinator({"docs": [{"id": 1, "title": "a"}]})
        coordinator.run_cycle(now=T0)
        client.fetch_entries.return_value = {"docs": [{"id": 1, "title": "b"}]}

        report = coordinator.run_cycle(now=T0 + timedelta(seconds=1))

        assert report.records_written == 1
        assert store.get("1").data["title"] == "b"

    def test_empty_collection_still_commits(self) -> None:
        coordinator, _, store = make_coordinator({"docs": []})

        report = coordinator.run_cycle(now=T0)

        assert report.entries_fetched == 0
        assert last_synced_value(store) == T0.isoformat()

    @pytest.mark.parametrize("depth, expected", [(2, "2"), (0, "0"), (None, None)])
    def test_depth_is_forwarded(self, depth, expected) -> None:
        coordinator, client, _ = make_coordinator({"docs": []}, depth=depth)

        coordinator.run_cycle(now=T0)

        client.fetch_entries.assert_called_once_with("api/posts", {"depth": expected})

    def test_extra_envelope_fields_are_accepted(self) -> None:
        body = {"docs": [{"id": "a"}], "totalDocs": 1, "hasNextPage": True, "page": 1}
        coordinator, _, store = make_coordinator(body)

        coordinator.run_cycle(now=T0)

        assert store.ids() == ["a"]


class TestIntervalGate:
    """Property 4 in context: a gated cycle makes no request.

    **Feature: payload-sync, Property 4: Interval comparison**
    """

    def test_skip_within_interval(self) -> None:
        coordinator, client, store = make_coordinator({"docs": []}, sync_interval=60_000)
        store.meta.set(TimestampTracker.LAST_SYNCED_KEY, (T0 - timedelta(seconds=10)).isoformat())

        report = coordinator.run_cycle(now=T0)

        assert report.skipped is True
        assert report.last_synced == T0 - timedelta(seconds=10)
        assert coordinator.phase is CyclePhase.IDLE
        client.fetch_entries.assert_not_called()
        assert last_synced_value(store) == (T0 - timedelta(seconds=10)).isoformat()

    def test_sync_once_interval_elapsed(self) -> None:
        coordinator, client, store = make_coordinator({"docs": []}, sync_interval=60_000)
        store.meta.set(TimestampTracker.LAST_SYNCED_KEY, (T0 - timedelta(seconds=60)).isoformat())

        report = coordinator.run_cycle(now=T0)

        assert report.skipped is False
        client.fetch_entries.assert_called_once()
        assert last_synced_value(store) == T0.isoformat()

    def test_legacy_epoch_millisecond_value_is_honored(self) -> None:
        coordinator, client, store = make_coordinator({"docs": []}, sync_interval=60_000)
        last = T0 - timedelta(seconds=10)
        store.meta.set(TimestampTracker.LAST_SYNCED_KEY, str(int(last.timestamp() * 1000)))

        assert coordinator.run_cycle(now=T0).skipped is True
        client.fetch_entries.assert_not_called()


class TestFailedCycle:
    """Property 2: lastSynced only advances on a fully successful cycle.

    **Feature: payload-sync, Property 2: Commit after success**
    """

    def seed(self, store: InMemoryStore) -> str:
        value = (T0 - timedelta(hours=1)).isoformat()
        store.meta.set(TimestampTracker.LAST_SYNCED_KEY, value)
        return value

    def test_fetch_failure_keeps_last_synced(self) -> None:
        coordinator, _, store = make_coordinator(
            side_effect=TransportError("Failed to fetch from Payload: Internal Server Error", 500)
        )
        previous = self.seed(store)

        with pytest.raises(TransportError):
            coordinator.run_cycle(now=T0)

        assert last_synced_value(store) == previous
        assert coordinator.phase is CyclePhase.FAILED
        assert len(store) == 0

    @pytest.mark.parametrize(
        "body",
        [
            {"docs": "not-a-list"},
            {"docs": {"id": 1}},
            {"items": []},
            [{"id": 1}],
            None,
            "docs",
        ],
    )
    def test_bad_envelope_raises_shape_error(self, body) -> None:
        coordinator, _, store = make_coordinator(body)
        previous = self.seed(store)

        with pytest.raises(ShapeError) as exc_info:
            coordinator.run_cycle(now=T0)

        assert "entries is not an array" in str(exc_info.value)
        assert last_synced_value(store) == previous
        assert coordinator.phase is CyclePhase.FAILED

    def test_bad_entry_stops_cycle_after_earlier_upserts(self) -> None:
        body = {"docs": [{"id": 1, "title": "a"}, {"title": "no id"}, {"id": 3, "title": "c"}]}
        coordinator, _, store = make_coordinator(body)
        previous = self.seed(store)

        with pytest.raises(EntryValidationError):
            coordinator.run_cycle(now=T0)

        assert store.ids() == ["1"]
        assert store.get("3") is None
        assert last_synced_value(store) == previous
        assert coordinator.phase is CyclePhase.FAILED

    def test_failed_cycle_is_retried_next_time(self) -> None:
        coordinator, client, store = make_coordinator(
            side_effect=[TransportError("down"), {"docs": [{"id": 1}]}],
            sync_interval=60_000,
        )

        with pytest.raises(TransportError):
            coordinator.run_cycle(now=T0)
        report = coordinator.run_cycle(now=T0 + timedelta(seconds=1))

        assert report.skipped is False
        assert store.ids() == ["1"]
        assert client.fetch_entries.call_count == 2

    def test_store_failure_propagates(self) -> None:
        store = InMemoryStore("posts")
        store.upsert = MagicMock(side_effect=RuntimeError("disk full"))
        coordinator, _, _ = make_coordinator({"docs": [{"id": 1}]}, store=store)

        with pytest.raises(RuntimeError):
            coordinator.run_cycle(now=T0)

        assert last_synced_value(store) is None


class TestPayloadLoader:
    def test_builds_named_coordinator(self) -> None:
        coordinator = payload_loader(
            "posts",
            context=LoaderContext.for_store(InMemoryStore("posts")),
            client=make_client({"docs": []}),
        )

        assert coordinator.name == "payload-posts"
        assert coordinator.config.sync_interval == 60_000
        assert coordinator.config.depth is None

    def test_builds_client_from_base_url(self) -> None:
        coordinator = payload_loader(
            "posts",
            30_000,
            2,
            context=LoaderContext.for_store(InMemoryStore("posts")),
            base_url="https://cms.example.com",
        )

        assert coordinator.config.sync_interval == 30_000
        assert coordinator.config.depth == 2

    @pytest.mark.parametrize("api_path", ["", "   "])
    def test_empty_api_path_is_rejected(self, api_path: str) -> None:
        with pytest.raises(ConfigurationError, match="api_path is required"):
            payload_loader(
                api_path,
                context=LoaderContext.for_store(InMemoryStore()),
                client=make_client(),
            )

    def test_negative_interval_is_rejected(self) -> None:
        with pytest.raises(ConfigurationError, match="sync_interval must be a non-negative number"):
            payload_loader(
                "posts",
                -1,
                context=LoaderContext.for_store(InMemoryStore()),
                client=make_client(),
            )

    @pytest.mark.parametrize("base_url", [None, ""])
    def test_missing_base_url_is_rejected(self, base_url) -> None:
        with pytest.raises(ConfigurationError, match="Payload base URL is not set"):
            payload_loader(
                "posts",
                context=LoaderContext.for_store(InMemoryStore()),
                base_url=base_url,
            )
