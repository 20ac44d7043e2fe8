# PATH: core/time.py
"""
Time utilities for chainprobe.

Freshness rules and timestamp parsing for block times.
"""

import re
import time
from datetime import datetime, timezone
from typing import Optional

from core.constants import STALE_BLOCK_THRESHOLD_MS

# 2024-01-01T12:00:00.123456789Z / +00:00 offsets, fraction optional
_RFC3339_RE = re.compile(
    r"^(?P<base>\d{4}-\d{2}-\d{2}[T ]\d{2}:\d{2}:\d{2})"
    r"(?:\.(?P<frac>\d+))?"
    r"(?P<tz>Z|z|[+-]\d{2}:?\d{2})?$"
)


def now_utc() -> datetime:
    """Get current UTC datetime."""
    return datetime.now(timezone.utc)


def now_iso() -> str:
    """Get current UTC datetime as ISO string."""
    return now_utc().isoformat()


def now_ms() -> int:
    """Get current Unix timestamp in milliseconds."""
    return int(time.time() * 1000)


def to_ms(dt: datetime) -> int:
    """Convert an aware datetime to Unix milliseconds."""
    return int(dt.timestamp() * 1000)


def from_unix_seconds(seconds: int) -> datetime:
    """Build a UTC datetime from Unix seconds."""
    return datetime.fromtimestamp(seconds, tz=timezone.utc)


def parse_rfc3339(value: str) -> datetime:
    """
    Parse an RFC3339 timestamp as produced by CometBFT and the Cosmos SDK.

    Fractions longer than microseconds are truncated. A missing offset is
    read as UTC.

    Args:
        value: Timestamp string

    Returns:
        Timezone-aware datetime

    Raises:
        ValueError: If the string is not a timestamp
    """
    match = _RFC3339_RE.match(value.strip())
    if match is None:
        raise ValueError(f"Not an RFC3339 timestamp: {value!r}")

    text = match.group("base").replace(" ", "T")
    frac = match.group("frac")
    if frac:
        text += "." + frac[:6].ljust(6, "0")

    tz = match.group("tz")
    if tz is None or tz in ("Z", "z"):
        text += "+00:00"
    elif ":" not in tz:
        text += f"{tz[:3]}:{tz[3:]}"
    else:
        text += tz

    return datetime.fromisoformat(text)


def block_age_ms(block_time: datetime, current_ms: Optional[int] = None) -> int:
    """Age of a block in milliseconds. Negative for future timestamps."""
    current = current_ms if current_ms is not None else now_ms()
    return current - to_ms(block_time)


def is_block_fresh(
    block_time: datetime,
    threshold_ms: int = STALE_BLOCK_THRESHOLD_MS,
    current_ms: Optional[int] = None,
) -> bool:
    """
    Check whether a latest block time is fresh.

    Fresh means strictly younger than the threshold: a block exactly
    threshold_ms old is stale.

    Args:
        block_time: Latest block time reported by the endpoint
        threshold_ms: Staleness threshold
        current_ms: Current time in ms (defaults to now)

    Returns:
        True if the block is fresh
    """
    return block_age_ms(block_time, current_ms) < threshold_ms
