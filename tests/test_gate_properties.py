"""Property-based tests for the sync interval gate.

Feature: payload-sync
"""

from datetime import datetime, timedelta, timezone

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from payload_sync.sync.gate import should_sync

now_strategy = st.datetimes(
    min_value=datetime(2020, 1, 1), max_value=datetime(2030, 1, 1)
).map(lambda dt: dt.replace(tzinfo=timezone.utc))
interval_strategy = st.integers(min_value=0, max_value=24 * 60 * 60 * 1000)


class TestFirstRun:
    """Property 3: First run always syncs.

    **Feature: payload-sync, Property 3: First run always syncs**
    """

    @given(interval_ms=interval_strategy, now=now_strategy)
    @settings(max_examples=100)
    def test_absent_last_synced_always_syncs(self, interval_ms: int, now: datetime) -> None:
        assert should_sync(None, interval_ms, now) is True
        assert should_sync(None, timedelta(milliseconds=interval_ms), now) is True


class TestIntervalComparison:
    """Property 4: Interval comparison.

    For any last sync time and interval, the gate skips while less than the
    interval has elapsed and syncs once it has elapsed (equality syncs).

    **Feature: payload-sync, Property 4: Interval comparison**
    """

    @given(
        now=now_strategy,
        interval_ms=st.integers(min_value=1, max_value=24 * 60 * 60 * 1000),
        data=st.data(),
    )
    @settings(max_examples=100)
    def test_skips_before_interval_elapsed(self, now: datetime, interval_ms: int, data) -> None:
        elapsed_ms = data.draw(st.integers(min_value=0, max_value=interval_ms - 1))
        last_synced = now - timedelta(milliseconds=elapsed_ms)

        assert should_sync(last_synced, interval_ms, now) is False

    @given(
        now=now_strategy,
        interval_ms=interval_strategy,
        extra_ms=st.integers(min_value=0, max_value=10**9),
    )
    @settings(max_examples=100)
    def test_syncs_after_interval_elapsed(self, now: datetime, interval_ms: int, extra_ms: int) -> None:
        last_synced = now - timedelta(milliseconds=interval_ms + extra_ms)

        assert should_sync(last_synced, interval_ms, now) is True

    @given(now=now_strategy, interval_ms=interval_strategy)
    @settings(max_examples=50)
    def test_boundary_equality_is_due(self, now: datetime, interval_ms: int) -> None:
        last_synced = now - timedelta(milliseconds=interval_ms)

        assert should_sync(last_synced, timedelta(milliseconds=interval_ms), now) is True


@given(now=now_strategy, offset_seconds=st.integers(min_value=0, max_value=3600))
@settings(max_examples=50)
def test_zero_interval_always_syncs(now: datetime, offset_seconds: int) -> None:
    last_synced = now - timedelta(seconds=offset_seconds)

    assert should_sync(last_synced, 0, now) is True


def test_skip_scenario_ten_seconds_into_sixty_second_interval() -> None:
    now = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)

    assert should_sync(now - timedelta(seconds=10), timedelta(seconds=60), now) is False


def test_naive_datetimes_are_treated_as_utc() -> None:
    now = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)
    naive_last = datetime(2024, 5, 1, 11, 59, 30)

    assert should_sync(naive_last, 60_000, now) is False
    assert should_sync(naive_last, 30_000, now) is True


def test_negative_interval_is_rejected() -> None:
    with pytest.raises(ValueError):
        should_sync(None, -1, datetime.now(timezone.utc))
