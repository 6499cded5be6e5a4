"""Time helpers shared by token issuance, rotation and rate limiting."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime
from datetime import timezone

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_utc_iso(value: datetime) -> str:
    """Render a datetime as second-precision UTC ISO-8601 with a trailing Z."""
    return value.astimezone(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


def from_utc_iso(value: str) -> datetime:
    """Parse a value produced by to_utc_iso back into an aware datetime."""
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def to_timestamp(value: datetime) -> int:
    return int(value.astimezone(timezone.utc).timestamp())
