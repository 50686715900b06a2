"""
Shared utility functions for the span dependency pipeline.
"""
import json
from datetime import datetime, timezone
from typing import Iterable, Iterator, List


def uniq(values: Iterable[str]) -> List[str]:
    """
    Remove duplicates while keeping the first-seen order.

    Args:
        values: Strings to deduplicate.

    Returns:
        A new list with every value appearing once.
    """
    seen = set()
    out = []
    for value in values:
        if value in seen:
            continue
        seen.add(value)
        out.append(value)
    return out


def chunked(values: List[str], size: int) -> Iterator[List[str]]:
    """Yield consecutive slices of at most `size` items."""
    if size <= 0:
        raise ValueError(f"Chunk size must be positive, got: {size}")
    for start in range(0, len(values), size):
        yield values[start:start + size]


def to_utc(moment: datetime) -> datetime:
    """Convert a datetime to UTC. Naive datetimes are taken as UTC already."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO 8601 timestamp, accepting a trailing Z for UTC."""
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


def format_utc(moment: datetime) -> str:
    """Format a datetime as an RFC 3339 UTC timestamp, e.g. 2024-05-01T12:00:00Z."""
    return to_utc(moment).strftime("%Y-%m-%dT%H:%M:%SZ")


def quote(value: str) -> str:
    """Double-quote a value for use inside a search query."""
    return json.dumps(value, ensure_ascii=False)
