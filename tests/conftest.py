"""
Pytest configuration and shared fixtures for the span dependency tests.
"""

import threading
from datetime import datetime, timezone
from pathlib import Path

import pytest

from trace_collection import CacheStore, QueryRunner, Throttle, TraceCollector
from dependency_analysis import DependencyAggregator

WINDOW_START = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
WINDOW_END = datetime(2024, 5, 1, 13, 0, tzinfo=timezone.utc)


class FakeResponse:
    def __init__(self, headers=None):
        self.headers = headers or {}


class FakeSpansApi:
    """In-memory stand-in for SpansApiClient.

    `pages` is a list of search responses returned in order. `aggregate`
    is a callable taking the request body and returning a payload.
    """

    def __init__(self, pages=None, aggregate=None, headers=None, fail_on=None):
        self.pages = list(pages or [])
        self.aggregate = aggregate or (lambda body: {"data": []})
        self.headers = headers or {}
        self.fail_on = fail_on
        self.list_calls = []
        self.aggregate_calls = []
        self._lock = threading.Lock()

    def list_spans(self, body):
        with self._lock:
            index = len(self.list_calls)
            self.list_calls.append(body)
        if index >= len(self.pages):
            raise AssertionError("list_spans called after the last page")
        return self.pages[index], FakeResponse(self.headers)

    def aggregate_spans(self, body):
        with self._lock:
            self.aggregate_calls.append(body)
        query = body["data"]["attributes"]["filter"]["query"]
        if self.fail_on and self.fail_on in query:
            raise ConnectionError("backend unavailable")
        return self.aggregate(body), FakeResponse(self.headers)


def search_page(trace_ids, after=None, status="done"):
    """Build a span search response."""
    meta = {"status": status}
    if after is not None:
        meta["page"] = {"after": after}
    return {
        "data": [{"type": "spans", "attributes": {"trace_id": tid}} for tid in trace_ids],
        "meta": meta,
    }


def aggregate_payload(*buckets):
    """Build an aggregate response from (by, count) pairs."""
    return {
        "data": [
            {"type": "bucket", "attributes": {"by": by, "computes": {"c0": count}}}
            for by, count in buckets
        ],
        "meta": {"status": "done"},
    }


def query_trace_ids(body):
    """Trace IDs named in the trace_id:(...) predicate of a request."""
    query = body["data"]["attributes"]["filter"]["query"]
    inner = query[query.index("trace_id:(") + len("trace_id:("):query.index(")")]
    return inner.split(" OR ")


class FakeClock:
    def __init__(self, now=1_700_000_000.0):
        self.now = now
        self.sleeps = []

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def cache_dir(tmp_path) -> Path:
    return tmp_path / "cache"


@pytest.fixture
def cache(cache_dir) -> CacheStore:
    return CacheStore(cache_dir)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def throttle(clock) -> Throttle:
    return Throttle(cooldown=3.0, clock=clock, sleep=clock.sleep)


@pytest.fixture
def runner(cache, throttle) -> QueryRunner:
    return QueryRunner(cache, throttle, "datadoghq.com", 3600)


@pytest.fixture
def make_aggregator(runner):
    """Factory building a DependencyAggregator around a fake API."""

    def _make(api, max_workers=1, max_pages=1000):
        collector = TraceCollector(api, runner, max_pages=max_pages)
        return DependencyAggregator(api, runner, collector, site="datadoghq.com",
                                    max_workers=max_workers)

    return _make
