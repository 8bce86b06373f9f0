"""Duration parsing and TTL normalization."""

import re
import time
from datetime import datetime, timedelta

from tagstash.types import Ttl

# Roughly ten years; "forever" entries still carry a finite expiry.
FOREVER_MINUTES = 5_256_000

_DURATION_PATTERN = re.compile(r"^(\d+)(ms|s|m|h|d)$")
_UNITS: dict[str, int] = {
    "ms": 1,
    "s": 1000,
    "m": 60_000,
    "h": 3_600_000,
    "d": 86_400_000,
}


def parse_duration(duration: str | int) -> int:
    """Parse duration string to milliseconds. Passthrough if already int."""
    if isinstance(duration, int):
        return duration

    match = _DURATION_PATTERN.match(duration)
    if not match:
        raise ValueError(f"Invalid duration: {duration!r}")

    value, unit = match.groups()
    return int(value) * _UNITS[unit]


def resolve_minutes(ttl: Ttl | None) -> float | None:
    """Resolve a TTL to a positive number of minutes.

    Numbers are taken as minutes, strings go through parse_duration and a
    datetime is treated as the instant the entry should expire at.

    Returns None when nothing should be written (missing or non-positive TTL).
    """
    if ttl is None:
        return None

    minutes: float
    if isinstance(ttl, datetime):
        now = datetime.now(ttl.tzinfo)
        minutes = (ttl - now).total_seconds() / 60
    elif isinstance(ttl, timedelta):
        minutes = ttl.total_seconds() / 60
    elif isinstance(ttl, str):
        minutes = parse_duration(ttl) / 60_000
    else:
        minutes = ttl

    return minutes if minutes * 60 > 0 else None


def ttl_seconds(minutes: float) -> int:
    """Convert minutes to whole seconds, never less than one."""
    return max(1, int(minutes * 60))


def expiration_for(minutes: float, now: float | None = None) -> int:
    """Absolute expiry (Unix seconds) for an entry written now."""
    if now is None:
        now = time.time()
    return int(now) + ttl_seconds(minutes)
