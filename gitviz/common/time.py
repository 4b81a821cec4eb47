"""Common time utilities."""

from __future__ import annotations

import datetime as dt


def utcnow() -> dt.datetime:
    """Return an aware UTC timestamp suitable for DB defaults."""
    return dt.datetime.now(dt.UTC)


def parse_github_timestamp(value: str | None) -> dt.datetime | None:
    """Parse a GitHub ISO-8601 timestamp into an aware UTC datetime.

    GitHub emits both ``Z`` suffixed values (REST objects) and explicit
    offsets (push commit timestamps such as ``2015-05-05T19:40:15-04:00``).
    Naive values are rejected.
    """
    if value is None:
        return None
    parsed = dt.datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        msg = f"timestamp {value!r} must include timezone information"
        raise ValueError(msg)
    return parsed.astimezone(dt.UTC)
