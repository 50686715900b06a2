"""
Trace Collection Package

This package provides functionality for querying spans from the Datadog
Spans API: on-disk caching of query results, rate-limit throttling and
paginated trace ID collection.
"""

from .config import Config
from .cache import CacheStore
from .errors import SpanQueryError, OperationCancelled
from .throttle import Throttle
from .spans_client import SpansApiClient
from .query_runner import QueryRunner
from .trace_collector import TraceCollector

__all__ = [
    'Config',
    'CacheStore',
    'SpanQueryError',
    'OperationCancelled',
    'Throttle',
    'SpansApiClient',
    'QueryRunner',
    'TraceCollector'
]
