"""Tests for GraphAnalyzer."""

import networkx as nx
import pytest

from codeviz.analyzers.graph_algorithms import GraphAnalyzer, top_n
from codeviz.models.graph import Graph


class TestCircularDependencies:
    """Tests for three-color DFS cycle detection."""

    def test_acyclic_graph_has_no_cycles(self, chain_graph: Graph) -> None:
        assert GraphAnalyzer(chain_graph).find_circular_dependencies() == []

    def test_reports_cycle_path(self, cycle_graph: Graph) -> None:
        """The back-edge c -> a reports the path a, b, c."""
        cycles = GraphAnalyzer(cycle_graph).find_circular_dependencies()

        assert cycles == [["a", "b", "c"]]

    def test_self_loop_is_a_cycle(self, make_graph) -> None:
        graph = make_graph(["x", "y"], [("x", "x"), ("x", "y")])

        assert GraphAnalyzer(graph).find_circular_dependencies() == [["x"]]

    def test_diamond_is_not_a_cycle(self, diamond_graph: Graph) -> None:
        """Two paths to the same node are not a cycle."""
        assert GraphAnalyzer(diamond_graph).find_circular_dependencies() == []

    def test_empty_graph(self) -> None:
        assert GraphAnalyzer(Graph()).find_circular_dependencies() == []

    def test_long_chain_does_not_recurse(self, make_graph) -> None:
        """Deep graphs are handled without hitting the recursion limit."""
        ids = [f"n{i}" for i in range(1500)]
        edges = list(zip(ids, ids[1:]))
        graph = make_graph(ids, edges + [(ids[-1], ids[0])])

        cycles = GraphAnalyzer(graph).find_circular_dependencies()

        assert len(cycles) == 1
        assert len(cycles[0]) == 1500


class TestStronglyConnectedComponents:
    """Tests for SCC discovery."""

    def test_only_cyclic_components_reported(self, cycle_graph: Graph) -> None:
        """Singleton d is not reported; the a-b-c ring is."""
        components = GraphAnalyzer(cycle_graph).find_strongly_connected_components()

        assert components == [["a", "b", "c"]]

    def test_self_loop_singleton_reported(self, make_graph) -> None:
        graph = make_graph(["x", "y"], [("x", "x"), ("x", "y")])

        assert GraphAnalyzer(graph).find_strongly_connected_components() == [["x"]]

    def test_largest_first(self, make_graph) -> None:
        graph = make_graph(
            ["a", "b", "c", "d", "e"],
            [("a", "b"), ("b", "a"), ("c", "d"), ("d", "e"), ("e", "c")],
        )

        components = GraphAnalyzer(graph).find_strongly_connected_components()

        assert [len(c) for c in components] == [3, 2]
        assert components[0] == ["c", "d", "e"]

    def test_acyclic_graph_has_none(self, chain_graph: Graph) -> None:
        assert GraphAnalyzer(chain_graph).find_strongly_connected_components() == []


class TestImportanceScores:
    """Tests for PageRank importance ranking."""

    def test_high_score_for_heavily_depended_node(self, make_graph) -> None:
        """Nodes with many incoming edges should rank higher."""
        graph = make_graph(
            ["a", "b", "c", "d", "e", "core"],
            [("a", "core"), ("b", "core"), ("c", "core"), ("d", "core"), ("e", "a")],
        )

        scores = GraphAnalyzer(graph).calculate_importance_scores()

        assert scores["core"] > scores["a"]
        assert scores["core"] > scores["e"]

    def test_every_node_scored(self, make_graph) -> None:
        """Isolated nodes still get a non-negative score."""
        graph = make_graph(["a", "b", "lonely"], [("a", "b")])

        scores = GraphAnalyzer(graph).calculate_importance_scores()

        assert set(scores) == {"a", "b", "lonely"}
        assert all(score >= 0 for score in scores.values())

    def test_dangling_edges_ignored(self, make_graph) -> None:
        graph = make_graph(["a"], [("a", "ghost")])

        scores = GraphAnalyzer(graph).calculate_importance_scores()

        assert list(scores) == ["a"]

    def test_falls_back_when_not_converged(
        self, cycle_graph: Graph, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """A PageRank convergence failure degrades to in-degree centrality."""

        def fail(*args, **kwargs):
            raise nx.PowerIterationFailedConvergence(1)

        monkeypatch.setattr(nx, "pagerank", fail)

        scores = GraphAnalyzer(cycle_graph).calculate_importance_scores()

        assert set(scores) == {"a", "b", "c", "d"}
        assert all(score >= 0 for score in scores.values())

    def test_empty_graph(self) -> None:
        assert GraphAnalyzer(Graph()).calculate_importance_scores() == {}


class TestBetweenness:
    """Tests for betweenness centrality."""

    def test_bridge_node_scores_highest(self, make_graph) -> None:
        graph = make_graph(
            ["a1", "a2", "bridge", "b1", "b2"],
            [("a1", "bridge"), ("a2", "bridge"), ("bridge", "b1"), ("bridge", "b2")],
        )

        scores = GraphAnalyzer(graph).calculate_betweenness_centrality()

        assert scores["bridge"] == 1.0
        assert scores["a1"] == 0.0

    def test_no_paths_all_zero(self, make_graph) -> None:
        graph = make_graph(["a", "b"], [])

        assert GraphAnalyzer(graph).calculate_betweenness_centrality() == {"a": 0.0, "b": 0.0}


class TestReachability:
    """Tests for bounded BFS in both directions."""

    def test_find_reachable_respects_depth(self, chain_graph: Graph) -> None:
        reachable = GraphAnalyzer(chain_graph).find_reachable("a", 2)

        assert reachable == {"a": 0, "b": 1, "c": 2}

    def test_depth_zero_is_start_only(self, chain_graph: Graph) -> None:
        assert GraphAnalyzer(chain_graph).find_reachable("b", 0) == {"b": 0}

    def test_minimum_depth_recorded(self, make_graph) -> None:
        """A node reached by a short and a long path keeps the short depth."""
        graph = make_graph(["a", "b", "c"], [("a", "b"), ("b", "c"), ("a", "c")])

        assert GraphAnalyzer(graph).find_reachable("a", 5) == {"a": 0, "b": 1, "c": 1}

    def test_cycles_terminate(self, cycle_graph: Graph) -> None:
        reachable = GraphAnalyzer(cycle_graph).find_reachable("a", 10)

        assert reachable == {"a": 0, "b": 1, "c": 2, "d": 3}

    def test_find_dependents(self, chain_graph: Graph) -> None:
        dependents = GraphAnalyzer(chain_graph).find_dependents("d", 10)

        assert dependents == {"d": 0, "c": 1, "b": 2, "a": 3}

    def test_unknown_start_returns_empty(self, chain_graph: Graph) -> None:
        assert GraphAnalyzer(chain_graph).find_reachable("missing", 3) == {}

    def test_negative_depth_rejected(self, chain_graph: Graph) -> None:
        with pytest.raises(ValueError, match="max_depth"):
            GraphAnalyzer(chain_graph).find_reachable("a", -1)

    def test_dangling_edges_not_followed(self, make_graph) -> None:
        graph = make_graph(["a", "b"], [("a", "ghost"), ("a", "b")])

        assert GraphAnalyzer(graph).find_reachable("a", 3) == {"a": 0, "b": 1}


class TestStatistics:
    """Tests for summary statistics."""

    def test_chain_statistics(self, chain_graph: Graph) -> None:
        stats = GraphAnalyzer(chain_graph).get_statistics()

        assert stats.node_count == 4
        assert stats.edge_count == 3
        assert stats.density == pytest.approx(0.25)
        assert stats.avg_degree == pytest.approx(1.5)
        assert stats.max_degree == 2
        assert stats.connected_components == 1
        assert stats.has_cycles is False

    def test_cycle_flag(self, cycle_graph: Graph) -> None:
        assert GraphAnalyzer(cycle_graph).get_statistics().has_cycles is True

    def test_triangle_with_isolated_node(self, make_graph) -> None:
        """a -> b -> c -> a plus a lone d."""
        graph = make_graph(["a", "b", "c", "d"], [("a", "b"), ("b", "c"), ("c", "a")])

        stats = GraphAnalyzer(graph).get_statistics()

        assert stats.model_dump(
            by_alias=True, include={"node_count", "edge_count", "has_cycles"}
        ) == {"nodeCount": 4, "edgeCount": 3, "hasCycles": True}
        assert stats.connected_components == 2

    def test_empty_graph(self) -> None:
        stats = GraphAnalyzer(Graph()).get_statistics()

        assert stats.node_count == 0
        assert stats.density == 0.0
        assert stats.connected_components == 0


class TestTopN:
    """Tests for top_n helper."""

    def test_returns_top_n_descending(self) -> None:
        scores = {"a": 0.1, "b": 0.5, "c": 0.3, "d": 0.9}

        assert top_n(scores, n=2) == [("d", 0.9), ("b", 0.5)]

    def test_returns_bottom_n_ascending(self) -> None:
        scores = {"a": 0.1, "b": 0.5, "c": 0.3}

        assert top_n(scores, n=2, descending=False) == [("a", 0.1), ("c", 0.3)]
