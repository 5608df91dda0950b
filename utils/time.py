"""Time utilities for sync timestamps.

``sync_at`` is stored as ``TIMESTAMPTZ`` and read back as an aware datetime.
Naive values are interpreted in the host's local timezone.
"""

from datetime import datetime, timezone


def now_utc() -> datetime:
    """Return the current time as an aware UTC datetime."""

    return datetime.now(timezone.utc)


def to_epoch_seconds(value: datetime | None) -> int:
    """Convert a datetime into whole epoch seconds.

    Returns ``0`` when the value is missing.
    """

    if value is None:
        return 0
    return int(value.timestamp())
