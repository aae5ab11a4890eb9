"""Graph builder and node/edge factories.

GraphBuilder is a single-owner mutable accumulator: nodes are upserted by
id, edges are merged by (source, target, type), and ``build()`` freezes the
current state into an independent Graph snapshot.
"""

from collections import deque
from datetime import datetime
from typing import Any

from codeviz.logging import logger
from codeviz.models.graph import (
    EdgeType,
    Graph,
    GraphEdge,
    GraphMetadata,
    GraphNode,
    NodeMetrics,
    NodeType,
)


class GraphBuilder:
    """Accumulate nodes and edges, then build an immutable Graph."""

    def __init__(self) -> None:
        self._nodes: dict[str, GraphNode] = {}
        self._edges: dict[tuple[str, str, str], GraphEdge] = {}
        self._adjacency: dict[str, dict[str, None]] = {}
        self._reverse_adjacency: dict[str, dict[str, None]] = {}

    def add_node(self, node: GraphNode) -> "GraphBuilder":
        """Add a node, replacing any existing node with the same id.

        Args:
            node: The node to insert.

        Returns:
            The builder, for chaining.
        """
        if node.id in self._nodes:
            logger.debug("Node %s already exists, replacing", node.id)
        self._nodes[node.id] = node
        self._adjacency.setdefault(node.id, {})
        self._reverse_adjacency.setdefault(node.id, {})
        return self

    def add_edge(self, edge: GraphEdge) -> "GraphBuilder":
        """Add an edge, merging duplicates of (source, target, type).

        A duplicate edge adds its weight to the existing edge instead of
        being appended. Edges may reference ids that are never added as
        nodes; they are kept as-is.

        Args:
            edge: The edge to insert.

        Returns:
            The builder, for chaining.
        """
        existing = self._edges.get(edge.key)
        if existing is not None:
            self._edges[edge.key] = existing.model_copy(
                update={"weight": existing.weight + edge.weight}
            )
            return self

        self._edges[edge.key] = edge
        # dicts double as insertion-ordered sets
        self._adjacency.setdefault(edge.source, {})[edge.target] = None
        self._reverse_adjacency.setdefault(edge.target, {})[edge.source] = None
        return self

    def has_node(self, node_id: str) -> bool:
        """Check whether a node with this id has been added."""
        return node_id in self._nodes

    def get_node(self, node_id: str) -> GraphNode | None:
        """Get a node by id."""
        return self._nodes.get(node_id)

    def get_neighbors(self, node_id: str) -> list[str]:
        """Get ids of nodes this node has outgoing edges to."""
        return list(self._adjacency.get(node_id, {}))

    def get_incoming_neighbors(self, node_id: str) -> list[str]:
        """Get ids of nodes with edges pointing to this node."""
        return list(self._reverse_adjacency.get(node_id, {}))

    def get_edges_between(self, source_id: str, target_id: str) -> list[GraphEdge]:
        """Get all edges between two nodes, in either direction."""
        return [
            edge
            for edge in self._edges.values()
            if (edge.source == source_id and edge.target == target_id)
            or (edge.source == target_id and edge.target == source_id)
        ]

    def build(self, root_file: str | None = None) -> Graph:
        """Build a Graph snapshot of the accumulated state.

        Nodes and edges are deep-copied so later builder mutations cannot
        reach the returned graph.

        Args:
            root_file: Optional root file recorded in metadata.

        Returns:
            Graph with nodes and edges in insertion order.
        """
        nodes = [node.model_copy(deep=True) for node in self._nodes.values()]
        edges = [edge.model_copy(deep=True) for edge in self._edges.values()]

        max_depth = 0
        for node in nodes:
            if node.parent_id is None:
                max_depth = max(max_depth, self._calculate_depth(node.id))

        return Graph(
            nodes=nodes,
            edges=edges,
            metadata=GraphMetadata(
                total_nodes=len(nodes),
                total_edges=len(edges),
                max_depth=max_depth,
                generated_at=datetime.now(tz=None),
                root_file=root_file,
            ),
        )

    def _calculate_depth(self, start_id: str) -> int:
        """Greatest BFS depth reachable from a node along outgoing edges."""
        visited = {start_id}
        queue: deque[tuple[str, int]] = deque([(start_id, 0)])
        max_depth = 0

        while queue:
            node_id, depth = queue.popleft()
            max_depth = max(max_depth, depth)
            for neighbor in self._adjacency.get(node_id, {}):
                if neighbor not in visited:
                    visited.add(neighbor)
                    queue.append((neighbor, depth + 1))

        return max_depth


# =============================================================================
# Node / Edge factories
# =============================================================================


def create_node(
    id: str,
    type: NodeType,
    name: str,
    path: str = "",
    metrics: NodeMetrics | dict[str, Any] | None = None,
    **extra: Any,
) -> GraphNode:
    """Create a node with default metrics and no vulnerabilities.

    Args:
        id: Unique node id.
        type: Node type (file, function, class, ...).
        name: Display name.
        path: File path.
        metrics: Partial metrics; missing values default to 0 / None.
            Keys may be snake_case or camelCase.
        **extra: Other GraphNode fields (start_line, language, parent_id, ...).

    Returns:
        A new GraphNode.
    """
    if metrics is None:
        metrics = NodeMetrics()
    elif isinstance(metrics, dict):
        metrics = NodeMetrics.model_validate(metrics)

    return GraphNode(
        id=id,
        type=type,
        name=name,
        path=path,
        metrics=metrics,
        vulnerabilities=[],
        **extra,
    )


def create_edge(
    source: str,
    target: str,
    type: EdgeType,
    weight: float = 1.0,
    line_number: int | None = None,
) -> GraphEdge:
    """Create an edge with a default weight of 1."""
    return GraphEdge(
        source=source,
        target=target,
        type=type,
        weight=weight,
        line_number=line_number,
    )
