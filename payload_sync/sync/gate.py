"""Interval gate deciding whether a collection is due for a refresh."""

from datetime import datetime, timedelta, timezone


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def should_sync(
    last_synced: datetime | None,
    interval: timedelta | int,
    now: datetime,
) -> bool:
    """
    Decide whether a refresh should run now.

    A refresh is skipped only when a previous sync exists and less than
    ``interval`` has elapsed since it. Elapsed time equal to the interval is
    due, and a zero interval always syncs.

    Args:
        last_synced: Start time of the last successful cycle, or None
        interval: Minimum time between refreshes (timedelta or milliseconds)
        now: Current time

    Returns:
        True if the cycle should fetch, False to skip

    Raises:
        ValueError: If interval is negative
    """
    if not isinstance(interval, timedelta):
        interval = timedelta(milliseconds=interval)
    if interval < timedelta(0):
        raise ValueError("interval must be non-negative")

    if last_synced is None:
        return True

    return ensure_utc(now) - ensure_utc(last_synced) >= interval
