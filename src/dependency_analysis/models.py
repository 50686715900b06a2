"""
Result records for dependency aggregation and the decoding step that turns
raw aggregate responses into typed buckets.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Sequence

from trace_collection.utils import format_utc


@dataclass(frozen=True)
class DependencyRow:
    """One client-side call shape: outgoing resource x peer service."""
    outgoing_resource: str
    peer_service: str
    count: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            'outgoing_resource': self.outgoing_resource,
            'peer_service': self.peer_service,
            'count': self.count
        }


@dataclass(frozen=True)
class ServiceBucket:
    """Participation count of another service across the collected traces."""
    name: str
    count: float

    def to_dict(self) -> Dict[str, Any]:
        return {'name': self.name, 'count': self.count}


@dataclass
class AccurateResult:
    site: str
    service: str
    env: str
    incoming_endpoint: str
    start: datetime
    end: datetime
    collected_trace_ids: int
    external_deps: List[DependencyRow] = field(default_factory=list)
    internal_services: List[ServiceBucket] = field(default_factory=list)
    mode: str = "accurate"

    def to_dict(self) -> Dict[str, Any]:
        return {
            'mode': self.mode,
            'site': self.site,
            'service': self.service,
            'env': self.env,
            'incoming_endpoint': self.incoming_endpoint,
            'from': format_utc(self.start),
            'to': format_utc(self.end),
            'collected_trace_ids': self.collected_trace_ids,
            'external_deps': [row.to_dict() for row in self.external_deps],
            'internal_services': [bucket.to_dict() for bucket in self.internal_services]
        }


@dataclass
class FastResult:
    site: str
    service: str
    env: str
    start: datetime
    end: datetime
    external_deps: List[DependencyRow] = field(default_factory=list)
    approximate: bool = True
    mode: str = "fast"

    def to_dict(self) -> Dict[str, Any]:
        return {
            'mode': self.mode,
            'site': self.site,
            'service': self.service,
            'env': self.env,
            'from': format_utc(self.start),
            'to': format_utc(self.end),
            'approximate': self.approximate,
            'external_deps': [row.to_dict() for row in self.external_deps]
        }


@dataclass(frozen=True)
class AggregateBucket:
    """A decoded aggregate bucket: facet values and the computed count."""
    by: Dict[str, str]
    count: float

    def facet(self, name: str) -> str:
        return self.by.get(name, "")


def decode_aggregate_buckets(raw: Any, facets: Sequence[str]) -> List[AggregateBucket]:
    """
    Decode a raw aggregate response into typed buckets.

    Malformed content is tolerated: a missing or non-string facet becomes
    "" and an unreadable compute value becomes 0.0.

    Args:
        raw: Response payload as returned by the backend or the cache.
        facets: Facet names the query grouped by.

    Returns:
        One AggregateBucket per bucket in the response.
    """
    buckets = []
    data = raw.get('data') if isinstance(raw, dict) else None
    if not isinstance(data, list):
        return buckets

    for item in data:
        attributes = item.get('attributes') if isinstance(item, dict) else None
        if not isinstance(attributes, dict):
            attributes = {}
        by = attributes.get('by')
        if not isinstance(by, dict):
            by = {}

        values = {}
        for facet in facets:
            value = by.get(facet)
            values[facet] = value if isinstance(value, str) else ""

        buckets.append(AggregateBucket(by=values, count=_first_compute(attributes)))
    return buckets


def _first_compute(attributes: Dict[str, Any]) -> float:
    computes = attributes.get('computes')
    if not isinstance(computes, dict) or not computes:
        computes = attributes.get('compute')
    if not isinstance(computes, dict):
        return 0.0

    for value in computes.values():
        return _number(value)
    return 0.0


def _number(value: Any) -> float:
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, dict):
        for key in ('value', 'sum'):
            inner = value.get(key)
            if isinstance(inner, (int, float)) and not isinstance(inner, bool):
                return float(inner)
    return 0.0


def rows_from_buckets(buckets: List[AggregateBucket], resource_facet: str,
                      peer_facet: str) -> List[DependencyRow]:
    """Turn buckets grouped by (resource, peer) into rows; fully empty keys are dropped."""
    rows = []
    for bucket in buckets:
        resource = bucket.facet(resource_facet)
        peer = bucket.facet(peer_facet)
        if not resource and not peer:
            continue
        rows.append(DependencyRow(resource, peer, bucket.count))
    return rows


def counts_from_buckets(buckets: List[AggregateBucket], facet: str) -> Dict[str, float]:
    """Sum bucket counts per facet value; empty values are dropped."""
    out = {}
    for bucket in buckets:
        key = bucket.facet(facet)
        if not key:
            continue
        out[key] = out.get(key, 0.0) + bucket.count
    return out
