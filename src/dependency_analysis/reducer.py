"""
Merging and deterministic ordering of partial aggregate results.
"""

from collections import defaultdict
from typing import Dict, Iterable, List, Mapping

from .models import DependencyRow, ServiceBucket


def reduce_rows(rows: Iterable[DependencyRow]) -> List[DependencyRow]:
    """
    Sum rows sharing (outgoing_resource, peer_service) and sort them.

    Order: count descending, then peer service ascending, then outgoing
    resource ascending. The result does not depend on input order, and
    reducing an already reduced list returns it unchanged.
    """
    totals = defaultdict(float)
    for row in rows:
        totals[(row.outgoing_resource, row.peer_service)] += row.count

    reduced = [DependencyRow(resource, peer, count) for (resource, peer), count in totals.items()]
    reduced.sort(key=lambda r: (-r.count, r.peer_service, r.outgoing_resource))
    return reduced


def merge_counts(parts: Iterable[Mapping[str, float]]) -> Dict[str, float]:
    """Sum several name -> count mappings into one."""
    out = defaultdict(float)
    for part in parts:
        for name, count in part.items():
            out[name] += count
    return dict(out)


def to_sorted_buckets(counts: Mapping[str, float]) -> List[ServiceBucket]:
    """Buckets sorted by count descending, then name; blank names are dropped."""
    buckets = [ServiceBucket(name, count) for name, count in counts.items() if name.strip()]
    buckets.sort(key=lambda b: (-b.count, b.name))
    return buckets
