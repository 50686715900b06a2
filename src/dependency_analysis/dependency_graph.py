"""
Dependency Graph Builder for Aggregation Results

This module turns a fast or accurate aggregation result into a NetworkX
directed graph rooted at the analysed service: one edge per peer service
(external dependencies) and, for accurate results, one edge per other
service seen in the same traces (internal dependencies).
"""

import networkx as nx
import logging
from collections import defaultdict
from typing import Dict, Union

from .models import AccurateResult, FastResult

logger = logging.getLogger("dependency-graph")

UNKNOWN_PEER = "(unknown peer)"


def build_dependency_graph(result: Union[AccurateResult, FastResult]) -> nx.DiGraph:
    """
    Build a NetworkX graph from an aggregation result.

    Args:
        result: AccurateResult or FastResult

    Returns:
        nx.DiGraph with `weight` (summed count) and `kind` on every edge
    """
    graph = nx.DiGraph()
    graph.add_node(result.service, kind="service", subject=True)

    # peer -> resources / total count
    peer_counts = defaultdict(float)
    peer_resources = defaultdict(set)
    for row in result.external_deps:
        peer = row.peer_service or UNKNOWN_PEER
        peer_counts[peer] += row.count
        if row.outgoing_resource:
            peer_resources[peer].add(row.outgoing_resource)

    for peer, count in peer_counts.items():
        if peer not in graph:
            graph.add_node(peer, kind="peer")
        graph.add_edge(result.service, peer, weight=count, kind="external",
                       resources=sorted(peer_resources[peer]))

    for bucket in getattr(result, "internal_services", []):
        if bucket.name not in graph:
            graph.add_node(bucket.name, kind="service")
        if graph.has_edge(result.service, bucket.name):
            graph[result.service][bucket.name]["internal_weight"] = bucket.count
            continue
        graph.add_edge(result.service, bucket.name, weight=bucket.count, kind="internal")

    logger.info(f"Built dependency graph for {result.service}: "
                f"{graph.number_of_nodes()} nodes, {graph.number_of_edges()} edges")
    return graph


def graph_to_node_link(graph: nx.DiGraph) -> Dict:
    """Serializable node-link representation of the graph."""
    return nx.node_link_data(graph)
