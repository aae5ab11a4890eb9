"""Tests for GraphBuilder and the node/edge factories."""

import pytest

from codeviz.analyzers.builder import GraphBuilder, create_edge, create_node
from codeviz.models.graph import GraphEdge, NodeMetrics


class TestCreateNode:
    """Tests for the node factory."""

    def test_defaults_metrics_and_vulnerabilities(self) -> None:
        """Missing metrics default to zero; vulnerabilities start empty."""
        node = create_node("a.ts", "file", "a.ts", path="src/a.ts")

        assert node.metrics == NodeMetrics()
        assert node.metrics.complexity == 0
        assert node.metrics.impact_score == 0
        assert node.vulnerabilities == []
        assert node.position is None

    def test_accepts_partial_camel_case_metrics(self) -> None:
        """Metrics dicts may use camelCase keys and omit fields."""
        node = create_node("a", "function", "a", metrics={"impactScore": 42, "complexity": 3})

        assert node.metrics.impact_score == 42
        assert node.metrics.complexity == 3
        assert node.metrics.change_frequency == 0

    def test_passes_extra_fields(self) -> None:
        """Extra keyword arguments populate optional node fields."""
        node = create_node("a#f", "method", "f", parent_id="a", start_line=10)

        assert node.parent_id == "a"
        assert node.start_line == 10

    def test_rejects_unknown_type(self) -> None:
        """Node types are a closed set."""
        with pytest.raises(ValueError):
            create_node("a", "package", "a")


class TestCreateEdge:
    """Tests for the edge factory."""

    def test_default_weight_is_one(self) -> None:
        edge = create_edge("a", "b", "imports")
        assert edge.weight == 1.0
        assert edge.key == ("a", "b", "imports")


class TestGraphBuilder:
    """Tests for accumulating and freezing graphs."""

    def test_add_node_replaces_same_id(self) -> None:
        """Re-adding an id replaces the node without duplicating it."""
        builder = GraphBuilder()
        builder.add_node(create_node("a", "file", "old"))
        builder.add_node(create_node("a", "file", "new"))

        graph = builder.build()

        assert len(graph.nodes) == 1
        assert graph.nodes[0].name == "new"

    def test_duplicate_edges_merge_weights(self) -> None:
        """Edges with the same (source, target, type) sum their weights."""
        builder = GraphBuilder()
        builder.add_node(create_node("a", "file", "a")).add_node(create_node("b", "file", "b"))
        builder.add_edge(create_edge("a", "b", "imports"))
        builder.add_edge(create_edge("a", "b", "imports", weight=2.5))

        graph = builder.build()

        assert len(graph.edges) == 1
        assert graph.edges[0].weight == 3.5

    def test_different_edge_types_stay_separate(self) -> None:
        builder = GraphBuilder()
        builder.add_edge(create_edge("a", "b", "imports"))
        builder.add_edge(create_edge("a", "b", "calls"))

        assert len(builder.get_edges_between("a", "b")) == 2
        assert len(builder.get_edges_between("b", "a")) == 2

    def test_neighbors(self) -> None:
        """Outgoing and incoming neighbors are tracked without duplicates."""
        builder = GraphBuilder()
        for node_id in ("a", "b", "c"):
            builder.add_node(create_node(node_id, "file", node_id))
        builder.add_edge(create_edge("a", "b", "imports"))
        builder.add_edge(create_edge("a", "b", "calls"))
        builder.add_edge(create_edge("a", "c", "imports"))

        assert builder.get_neighbors("a") == ["b", "c"]
        assert builder.get_incoming_neighbors("b") == ["a"]
        assert builder.get_neighbors("missing") == []

    def test_dangling_edge_is_kept(self) -> None:
        """Edges to unknown ids are stored as-is."""
        builder = GraphBuilder()
        builder.add_node(create_node("a", "file", "a"))
        builder.add_edge(create_edge("a", "ghost", "imports"))

        graph = builder.build()

        assert graph.edges == [GraphEdge(source="a", target="ghost", type="imports")]
        assert not builder.has_node("ghost")

    def test_build_metadata(self) -> None:
        """Metadata carries counts, max depth, and the root file."""
        builder = GraphBuilder()
        for node_id in ("a", "b", "c"):
            builder.add_node(create_node(node_id, "file", node_id))
        builder.add_edge(create_edge("a", "b", "imports"))
        builder.add_edge(create_edge("b", "c", "imports"))

        graph = builder.build(root_file="a")

        assert graph.metadata.total_nodes == 3
        assert graph.metadata.total_edges == 2
        assert graph.metadata.max_depth == 2
        assert graph.metadata.root_file == "a"

    def test_max_depth_terminates_on_cycles(self) -> None:
        builder = GraphBuilder()
        for node_id in ("a", "b"):
            builder.add_node(create_node(node_id, "file", node_id))
        builder.add_edge(create_edge("a", "b", "imports"))
        builder.add_edge(create_edge("b", "a", "imports"))

        assert builder.build().metadata.max_depth == 1

    def test_snapshot_is_isolated_from_later_mutation(self) -> None:
        """Mutating the builder after build() leaves the snapshot unchanged."""
        builder = GraphBuilder()
        builder.add_node(create_node("a", "file", "a"))
        builder.add_node(create_node("b", "file", "b"))
        builder.add_edge(create_edge("a", "b", "imports"))

        snapshot = builder.build()
        builder.add_node(create_node("c", "file", "c"))
        builder.add_node(create_node("a", "file", "renamed"))
        builder.add_edge(create_edge("a", "b", "imports"))

        assert snapshot.node_ids() == ["a", "b"]
        assert snapshot.nodes[0].name == "a"
        assert snapshot.edges[0].weight == 1.0
        assert snapshot.metadata.total_nodes == 2

    def test_empty_build(self) -> None:
        graph = GraphBuilder().build()

        assert graph.nodes == []
        assert graph.edges == []
        assert graph.metadata.max_depth == 0
