"""Graph algorithms for code intelligence.

Provides read-only analysis over a Graph snapshot:
- Cycle detection for circular dependencies
- Strongly connected components for coupled modules
- PageRank for importance ranking
- Betweenness centrality for bottleneck detection
- Bounded reachability in both directions
- Summary statistics

Uses NetworkX for the standard algorithms. Traversals only follow edges
whose endpoints are known node ids; dangling edges are ignored.
"""

from collections import deque
from functools import cached_property

import networkx as nx

from codeviz.logging import logger
from codeviz.models.graph import Graph, GraphStatistics

_WHITE, _GRAY, _BLACK = 0, 1, 2


class GraphAnalyzer:
    """Analyze one immutable Graph.

    Results are computed on demand; callers that need them repeatedly
    should keep the returned values.
    """

    def __init__(self, graph: Graph):
        self.graph = graph
        self._order: dict[str, int] = {}
        self._adjacency: dict[str, list[str]] = {}
        self._reverse_adjacency: dict[str, list[str]] = {}
        self._build_adjacency()

    def _build_adjacency(self) -> None:
        """Index known node ids and their deduplicated neighbors."""
        for idx, node in enumerate(self.graph.nodes):
            self._order[node.id] = idx

        outgoing: dict[str, dict[str, None]] = {node_id: {} for node_id in self._order}
        incoming: dict[str, dict[str, None]] = {node_id: {} for node_id in self._order}

        for edge in self.graph.edges:
            if edge.source not in self._order or edge.target not in self._order:
                continue
            outgoing[edge.source][edge.target] = None
            incoming[edge.target][edge.source] = None

        self._adjacency = {node_id: list(targets) for node_id, targets in outgoing.items()}
        self._reverse_adjacency = {node_id: list(sources) for node_id, sources in incoming.items()}

    @cached_property
    def digraph(self) -> nx.DiGraph:
        """NetworkX view of the graph (known nodes only)."""
        return self.graph.to_digraph()

    def find_circular_dependencies(self) -> list[list[str]]:
        """Find circular dependencies with a three-color depth-first search.

        Every back-edge to a node still on the DFS path (gray) reports the
        path slice from that node to the current node.

        Returns:
            List of cycles, each a list of node ids. Empty for acyclic graphs.
        """
        color = dict.fromkeys(self._order, _WHITE)
        cycles: list[list[str]] = []

        for root in self._order:
            if color[root] != _WHITE:
                continue

            color[root] = _GRAY
            path = [root]
            path_index = {root: 0}
            stack = [(root, iter(self._adjacency[root]))]

            while stack:
                node_id, neighbors = stack[-1]
                descended = False

                for neighbor in neighbors:
                    state = color[neighbor]
                    if state == _WHITE:
                        color[neighbor] = _GRAY
                        path_index[neighbor] = len(path)
                        path.append(neighbor)
                        stack.append((neighbor, iter(self._adjacency[neighbor])))
                        descended = True
                        break
                    if state == _GRAY:
                        cycles.append(path[path_index[neighbor]:])

                if not descended:
                    stack.pop()
                    path.pop()
                    del path_index[node_id]
                    color[node_id] = _BLACK

        return cycles

    def find_strongly_connected_components(self) -> list[list[str]]:
        """Find tightly coupled node groups.

        Only components that participate in a cycle are returned: two or
        more nodes, or a single node with a self-loop.

        Returns:
            Components sorted largest first; members keep graph order.
        """
        if not self.graph.nodes:
            return []

        G = self.digraph
        components = []
        for scc in nx.strongly_connected_components(G):
            if len(scc) > 1 or any(G.has_edge(n, n) for n in scc):
                components.append(sorted(scc, key=self._order.__getitem__))

        components.sort(key=len, reverse=True)
        return components

    def calculate_importance_scores(
        self,
        damping: float = 0.85,
        max_iter: int = 100,
    ) -> dict[str, float]:
        """Rank nodes by importance (most depended upon).

        Args:
            damping: PageRank damping factor.
            max_iter: Maximum iterations for convergence.

        Returns:
            Dict mapping every node id to a non-negative score.
        """
        if not self.graph.nodes:
            return {}

        try:
            scores = nx.pagerank(self.digraph, alpha=damping, max_iter=max_iter, weight=None)
        except nx.PowerIterationFailedConvergence:
            logger.warning("PageRank did not converge in %d iterations, using in-degree", max_iter)
            scores = nx.in_degree_centrality(self.digraph)

        return {node_id: max(0.0, float(scores.get(node_id, 0.0))) for node_id in self._order}

    def calculate_betweenness_centrality(self) -> dict[str, float]:
        """Find bottleneck nodes that sit on many dependency paths.

        Returns:
            Dict mapping node id to betweenness scaled so the maximum is 1.
        """
        if not self.graph.nodes:
            return {}

        raw = nx.betweenness_centrality(self.digraph, normalized=False)
        peak = max(raw.values(), default=0.0)
        if peak <= 0:
            return dict.fromkeys(self._order, 0.0)
        return {node_id: raw.get(node_id, 0.0) / peak for node_id in self._order}

    def find_reachable(self, start_id: str, max_depth: int) -> dict[str, int]:
        """Find all nodes reachable along outgoing edges within a depth limit.

        Args:
            start_id: Starting node id (depth 0).
            max_depth: Maximum traversal depth.

        Returns:
            Dict mapping node id to the minimum depth at which it is reached.
        """
        return self._bounded_bfs(start_id, max_depth, self._adjacency)

    def find_dependents(self, target_id: str, max_depth: int) -> dict[str, int]:
        """Find all nodes that reach the target within a depth limit.

        Args:
            target_id: Target node id (depth 0).
            max_depth: Maximum traversal depth.

        Returns:
            Dict mapping dependent node id to its distance from the target.
        """
        return self._bounded_bfs(target_id, max_depth, self._reverse_adjacency)

    def _bounded_bfs(
        self,
        start_id: str,
        max_depth: int,
        adjacency: dict[str, list[str]],
    ) -> dict[str, int]:
        if max_depth < 0:
            raise ValueError(f"max_depth must be >= 0, got {max_depth}")
        if start_id not in self._order:
            return {}

        result = {start_id: 0}
        current_level = [start_id]

        for depth in range(1, max_depth + 1):
            next_level: list[str] = []
            for node_id in current_level:
                for neighbor in adjacency[node_id]:
                    if neighbor not in result:
                        result[neighbor] = depth
                        next_level.append(neighbor)
            current_level = next_level
            if not current_level:
                break

        return result

    def get_statistics(self) -> GraphStatistics:
        """Summarize size, connectivity, and whether the graph has cycles."""
        node_count = len(self.graph.nodes)
        edge_count = len(self.graph.edges)
        max_possible_edges = node_count * (node_count - 1)
        density = edge_count / max_possible_edges if max_possible_edges > 0 else 0.0

        degrees = [
            len(self._adjacency[node_id]) + len(self._reverse_adjacency[node_id])
            for node_id in self._order
        ]
        avg_degree = sum(degrees) / node_count if node_count > 0 else 0.0

        return GraphStatistics(
            node_count=node_count,
            edge_count=edge_count,
            has_cycles=len(self.find_circular_dependencies()) > 0,
            density=density,
            avg_degree=avg_degree,
            max_degree=max(degrees, default=0),
            connected_components=(
                nx.number_weakly_connected_components(self.digraph) if node_count else 0
            ),
        )


def top_n(
    scores: dict[str, float],
    n: int = 10,
    descending: bool = True,
) -> list[tuple[str, float]]:
    """Get top N items from a score dictionary.

    Args:
        scores: Dict mapping node ID to score.
        n: Number of items to return.
        descending: Sort descending (highest first).

    Returns:
        List of (node_id, score) tuples.
    """
    sorted_items = sorted(
        scores.items(),
        key=lambda x: x[1],
        reverse=descending,
    )
    return sorted_items[:n]
