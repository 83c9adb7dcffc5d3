"""Timestamps stored on users, specs and versions."""

from datetime import datetime, timezone


def utc_timestamp() -> str:
    """Current UTC time as ISO 8601, to the second (``2024-05-01T12:00:00+00:00``)."""
    return datetime.now(timezone.utc).isoformat(timespec="seconds")
