"""
Dependency Analysis Package

This package provides functionality for aggregating span counts into
service dependencies and building dependency graphs from the results.
"""

from .models import DependencyRow, ServiceBucket, AccurateResult, FastResult
from .reducer import reduce_rows, to_sorted_buckets, merge_counts
from .aggregator import DependencyAggregator, resolve_window
from .dependency_graph import build_dependency_graph

__all__ = [
    'DependencyRow',
    'ServiceBucket',
    'AccurateResult',
    'FastResult',
    'reduce_rows',
    'to_sorted_buckets',
    'merge_counts',
    'DependencyAggregator',
    'resolve_window',
    'build_dependency_graph'
]
