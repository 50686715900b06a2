"""
Trace ID Collection

Pages through the span search API and accumulates the unique trace IDs of
server spans that hit one endpoint of one service.
"""

import logging
import threading
from datetime import datetime
from typing import List, Optional

from .utils import format_utc, quote
from .errors import OperationCancelled
from .query_runner import QueryRunner

logger = logging.getLogger("trace-collector")

LIST_SPANS_CACHE_OP = "v2.ListSpans"
DEFAULT_MAX_PAGES = 1000


def build_search_request(query: str, start: datetime, end: datetime, page_limit: int,
                         cursor: str = "") -> dict:
    """Build a span search request body for the half-open window [start, end)."""
    page = {}
    if page_limit > 0:
        page["limit"] = page_limit
    if cursor:
        page["cursor"] = cursor
    return {
        "data": {
            "attributes": {
                "filter": {
                    "from": format_utc(start),
                    "to": format_utc(end),
                    "query": query,
                },
                "options": {"timezone": "UTC"},
                "page": page,
                "sort": "timestamp",
            },
            "type": "search_request",
        }
    }


def endpoint_query(service: str, env: str, endpoint: str) -> str:
    return (f"service:{quote(service)} env:{quote(env)} "
            f"resource_name:{quote(endpoint)} @span.kind:\"server\"")


class TraceCollector:
    """Collects unique trace IDs for an incoming endpoint."""

    def __init__(self, api, runner: QueryRunner, max_pages: int = DEFAULT_MAX_PAGES):
        self.api = api
        self.runner = runner
        self.max_pages = max_pages

    def list_trace_ids(self, service: str, env: str, endpoint: str,
                       start: datetime, end: datetime,
                       page_limit: int = 0, max_traces: int = 0,
                       cancel: Optional[threading.Event] = None) -> List[str]:
        """
        Collect trace IDs of server spans matching service/env/endpoint.

        Args:
            service: Service name.
            env: Environment name.
            endpoint: Incoming resource name.
            start: Window start (inclusive).
            end: Window end (exclusive).
            page_limit: Spans per page; 0 leaves it to the backend.
            max_traces: Stop once this many unique IDs are collected; 0 = no limit.
            cancel: Optional event checked before every page fetch.

        Returns:
            Unique trace IDs in first-seen order.

        Raises:
            SpanQueryError: A page fetch failed. No partial list is returned.
        """
        query = endpoint_query(service, env, endpoint)

        trace_ids = {}
        cursor = ""
        pages = 0

        while True:
            if cancel is not None and cancel.is_set():
                raise OperationCancelled("ListSpans cancelled")
            # Fresh body per page; the cursor is part of the cache key
            request = build_search_request(query, start, end, page_limit, cursor)

            payload = self.runner.run(LIST_SPANS_CACHE_OP, "ListSpans", self.api.list_spans, request, cancel)
            pages += 1

            for trace_id in _trace_ids_from_page(payload):
                trace_ids[trace_id] = None
                if max_traces > 0 and len(trace_ids) >= max_traces:
                    logger.info(f"Reached max traces ({max_traces}) after {pages} page(s)")
                    return list(trace_ids)

            meta = _as_dict(_as_dict(payload).get("meta"))
            cursor = _as_dict(meta.get("page")).get("after") or ""
            if not isinstance(cursor, str):
                cursor = ""
            logger.debug(f"Page {pages}: {len(trace_ids)} unique trace IDs so far")

            if not cursor:
                break
            if str(meta.get("status", "")).lower() == "timeout":
                logger.warning(f"Span search timed out after {pages} page(s); results may be incomplete")
                break
            if pages >= self.max_pages:
                logger.warning(f"Stopped after {pages} pages (page cap); results may be incomplete")
                break

        logger.info(f"Collected {len(trace_ids)} unique trace IDs from {pages} page(s)")
        return list(trace_ids)


def _trace_ids_from_page(payload) -> List[str]:
    ids = []
    data = _as_dict(payload).get("data")
    if not isinstance(data, list):
        return ids
    for span in data:
        trace_id = _as_dict(_as_dict(span).get("attributes")).get("trace_id")
        if isinstance(trace_id, str) and trace_id:
            ids.append(trace_id)
    return ids


def _as_dict(value) -> dict:
    return value if isinstance(value, dict) else {}
