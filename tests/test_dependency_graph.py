"""Unit tests for the dependency graph view."""

from dependency_analysis import AccurateResult, DependencyRow, FastResult, ServiceBucket, build_dependency_graph
from dependency_analysis.dependency_graph import UNKNOWN_PEER, graph_to_node_link

from conftest import WINDOW_END, WINDOW_START


def accurate_result():
    return AccurateResult(
        site="datadoghq.com", service="web", env="prod", incoming_endpoint="GET /users",
        start=WINDOW_START, end=WINDOW_END, collected_trace_ids=10,
        external_deps=[
            DependencyRow("GET", "redis", 6.0),
            DependencyRow("SET", "redis", 2.0),
            DependencyRow("SELECT", "", 1.0),
        ],
        internal_services=[ServiceBucket("billing", 4.0)],
    )


class TestBuildDependencyGraph:

    def test_external_edges_grouped_by_peer(self):
        graph = build_dependency_graph(accurate_result())

        edge = graph["web"]["redis"]
        assert edge["weight"] == 8.0
        assert edge["kind"] == "external"
        assert edge["resources"] == ["GET", "SET"]
        assert graph["web"][UNKNOWN_PEER]["weight"] == 1.0

    def test_internal_edges(self):
        graph = build_dependency_graph(accurate_result())
        assert graph["web"]["billing"] == {"weight": 4.0, "kind": "internal"}
        assert graph.nodes["web"]["subject"] is True
        assert graph.number_of_edges() == 3

    def test_fast_result_has_no_internal_edges(self):
        result = FastResult(site="datadoghq.com", service="web", env="prod",
                            start=WINDOW_START, end=WINDOW_END,
                            external_deps=[DependencyRow("GET", "redis", 1.0)])
        graph = build_dependency_graph(result)
        assert [data["kind"] for _, _, data in graph.edges(data=True)] == ["external"]

    def test_node_link_export(self):
        data = graph_to_node_link(build_dependency_graph(accurate_result()))
        assert {node["id"] for node in data["nodes"]} == {"web", "redis", UNKNOWN_PEER, "billing"}
