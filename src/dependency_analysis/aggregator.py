"""
Dependency Aggregator for Datadog Spans

This module turns span aggregations into dependency rows. The accurate path
first collects the trace IDs that went through one incoming endpoint and
then aggregates, chunk by chunk, the client spans of the service (external
dependencies) and the server spans of every other service (internal
dependencies) inside those traces. The fast path runs one aggregation over
all client spans of the service without trace scoping.
"""

import logging
import threading
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional, Tuple, TypeVar

from trace_collection import TraceCollector, QueryRunner
from trace_collection.utils import chunked, format_utc, quote, to_utc
from .models import (
    AccurateResult,
    DependencyRow,
    FastResult,
    counts_from_buckets,
    decode_aggregate_buckets,
    rows_from_buckets,
)
from .reducer import merge_counts, reduce_rows, to_sorted_buckets

logger = logging.getLogger("dependency-aggregator")

T = TypeVar("T")

RESOURCE_FACET = "resource_name"
PEER_SERVICE_FACET = "@peer.service"
SERVICE_FACET = "service"

# Bounded by the backend's query string length
EXTERNAL_CHUNK_SIZE = 80
INTERNAL_CHUNK_SIZE = 120


def build_aggregate_request(query: str, start: datetime, end: datetime, facets: List[str]) -> dict:
    """Build a count aggregation request grouped by the given facets."""
    return {
        "data": {
            "attributes": {
                "compute": [{"aggregation": "count"}],
                "filter": {
                    "from": format_utc(start),
                    "to": format_utc(end),
                    "query": query,
                },
                "group_by": [{"facet": facet} for facet in facets],
            },
            "type": "aggregate_request",
        }
    }


def trace_id_predicate(trace_ids: List[str]) -> str:
    return f"trace_id:({' OR '.join(trace_ids)})"


def resolve_window(start: Optional[datetime], end: Optional[datetime],
                   loopback: timedelta, now: Optional[datetime] = None) -> Tuple[datetime, datetime]:
    """Return the UTC window; if either bound is unset use [now - loopback, now)."""
    if start is None or end is None:
        now = now or datetime.now(timezone.utc)
        return to_utc(now - loopback), to_utc(now)
    return to_utc(start), to_utc(end)


class DependencyAggregator:
    """Computes endpoint dependencies from span aggregations."""

    def __init__(self, api, runner: QueryRunner, collector: TraceCollector,
                 site: str, max_workers: int = 4):
        self.api = api
        self.runner = runner
        self.collector = collector
        self.site = site
        self.max_workers = max(1, max_workers)

    def aggregate_fast(self, service: str, env: str, start: datetime, end: datetime,
                       cancel: Optional[threading.Event] = None) -> FastResult:
        """
        Approximate outgoing dependencies of a whole service in one query.

        Not scoped to an incoming endpoint, hence `approximate=True`.
        """
        query = f"service:{quote(service)} env:{quote(env)} @span.kind:\"client\""
        body = build_aggregate_request(query, start, end, [RESOURCE_FACET, PEER_SERVICE_FACET])

        raw = self.runner.run("v2.AggregateSpansFast", "AggregateSpans(fast)",
                              self.api.aggregate_spans, body, cancel)
        buckets = decode_aggregate_buckets(raw, [RESOURCE_FACET, PEER_SERVICE_FACET])
        rows = reduce_rows(rows_from_buckets(buckets, RESOURCE_FACET, PEER_SERVICE_FACET))
        logger.info(f"Fast aggregation for {service}: {len(rows)} dependency rows")

        return FastResult(
            site=self.site,
            service=service,
            env=env,
            start=to_utc(start),
            end=to_utc(end),
            external_deps=rows
        )

    def aggregate_accurate(self, service: str, env: str, endpoint: str,
                           start: datetime, end: datetime,
                           page_limit: int = 0, max_traces: int = 0,
                           cancel: Optional[threading.Event] = None) -> AccurateResult:
        """
        Dependencies observed while serving one incoming endpoint.

        Raises:
            SpanQueryError: Trace collection or any chunk query failed.
            OperationCancelled: `cancel` was set.
        """
        trace_ids = self.collector.list_trace_ids(
            service, env, endpoint, start, end,
            page_limit=page_limit, max_traces=max_traces, cancel=cancel
        )
        logger.info(f"Aggregating dependencies of {service} {endpoint!r} over {len(trace_ids)} traces")

        external = self.aggregate_client_peers(service, trace_ids, start, end, cancel)
        internal = self.aggregate_other_services(service, trace_ids, start, end, cancel)

        return AccurateResult(
            site=self.site,
            service=service,
            env=env,
            incoming_endpoint=endpoint,
            start=to_utc(start),
            end=to_utc(end),
            collected_trace_ids=len(trace_ids),
            external_deps=external,
            internal_services=to_sorted_buckets(internal)
        )

    def aggregate_client_peers(self, service: str, trace_ids: List[str],
                               start: datetime, end: datetime,
                               cancel: Optional[threading.Event] = None) -> List[DependencyRow]:
        """Client spans of `service` in the traces, by resource x peer service."""
        if not trace_ids:
            return []

        def query_chunk(ids: List[str]) -> List[DependencyRow]:
            query = f"{trace_id_predicate(ids)} service:{quote(service)} @span.kind:\"client\""
            body = build_aggregate_request(query, start, end, [RESOURCE_FACET, PEER_SERVICE_FACET])
            raw = self.runner.run("v2.AggregateSpansClient", "AggregateSpans(client)",
                                  self.api.aggregate_spans, body, cancel)
            buckets = decode_aggregate_buckets(raw, [RESOURCE_FACET, PEER_SERVICE_FACET])
            return rows_from_buckets(buckets, RESOURCE_FACET, PEER_SERVICE_FACET)

        chunks = list(chunked(trace_ids, EXTERNAL_CHUNK_SIZE))
        logger.debug(f"External dependency aggregation: {len(chunks)} chunk(s)")
        parts = self._fan_out(query_chunk, chunks)
        return reduce_rows(row for part in parts for row in part)

    def aggregate_other_services(self, service: str, trace_ids: List[str],
                                 start: datetime, end: datetime,
                                 cancel: Optional[threading.Event] = None) -> Dict[str, float]:
        """Server spans of every other service in the traces, counted per service."""
        if not trace_ids:
            return {}

        def query_chunk(ids: List[str]) -> Dict[str, float]:
            query = f"{trace_id_predicate(ids)} @span.kind:\"server\" -service:{quote(service)}"
            body = build_aggregate_request(query, start, end, [SERVICE_FACET])
            raw = self.runner.run("v2.AggregateSpansInternal", "AggregateSpans(internal)",
                                  self.api.aggregate_spans, body, cancel)
            return counts_from_buckets(decode_aggregate_buckets(raw, [SERVICE_FACET]), SERVICE_FACET)

        chunks = list(chunked(trace_ids, INTERNAL_CHUNK_SIZE))
        logger.debug(f"Internal service aggregation: {len(chunks)} chunk(s)")
        return merge_counts(self._fan_out(query_chunk, chunks))

    def _fan_out(self, fn: Callable[[List[str]], T], chunks: List[List[str]]) -> List[T]:
        """Run `fn` over every chunk and wait for all of them; the first failure wins."""
        if self.max_workers == 1 or len(chunks) == 1:
            return [fn(chunk) for chunk in chunks]

        # Workers stop picking up chunks once one has failed
        stop = threading.Event()

        def guarded(chunk):
            if stop.is_set():
                return None
            return fn(chunk)

        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(chunks))) as executor:
            futures = [executor.submit(guarded, chunk) for chunk in chunks]
            _, pending = wait(futures, return_when=FIRST_EXCEPTION)
            for future in futures:
                if future.done() and future.exception() is not None:
                    stop.set()
                    for other in pending:
                        other.cancel()
                    raise future.exception()
        return [future.result() for future in futures]
