"""Graph data models for dependency visualization.

Includes Pydantic models for serialization and NetworkX conversion utilities.
All graph models are frozen: layouts and analyzers derive new values with
``model_copy`` instead of mutating a snapshot.
"""

from datetime import datetime
from typing import Any, Literal

import networkx as nx
from pydantic import BaseModel, Field

NodeType = Literal["file", "function", "class", "method", "module", "interface", "variable"]
EdgeType = Literal["imports", "calls", "extends", "implements", "contains", "references"]

NODE_TYPES: tuple[str, ...] = ("file", "function", "class", "method", "module", "interface", "variable")
EDGE_TYPES: tuple[str, ...] = ("imports", "calls", "extends", "implements", "contains", "references")


class Position(BaseModel):
    """A 2D canvas coordinate."""

    x: float
    y: float

    model_config = {"frozen": True}


class NodeMetrics(BaseModel):
    """Code metrics attached to a node."""

    complexity: float = Field(default=0, description="Complexity estimate")
    change_frequency: float = Field(
        default=0, alias="changeFrequency", description="How often the entity changes"
    )
    impact_score: float = Field(
        default=0, alias="impactScore", description="Impact score (0-100)"
    )
    test_coverage: float | None = Field(
        default=None, alias="testCoverage", description="Test coverage percentage"
    )
    lines_of_code: int | None = Field(default=None, alias="linesOfCode")
    cyclomatic_complexity: float | None = Field(default=None, alias="cyclomaticComplexity")

    model_config = {"frozen": True, "populate_by_name": True}


class Vulnerability(BaseModel):
    """A known vulnerability affecting a node."""

    id: str
    severity: Literal["critical", "high", "medium", "low"]
    title: str
    cwe: str | None = None
    affected_versions: str | None = Field(default=None, alias="affectedVersions")

    model_config = {"frozen": True, "populate_by_name": True}


class GraphNode(BaseModel):
    """A node in the dependency graph representing a code entity."""

    id: str = Field(description="Unique identifier within a graph")
    type: NodeType = Field(description="Type of code entity")
    name: str = Field(description="Display name")
    path: str = Field(default="", description="File path")
    metrics: NodeMetrics = Field(default_factory=NodeMetrics)
    vulnerabilities: list[Vulnerability] = Field(default_factory=list)
    position: Position | None = Field(default=None, description="Layout position")
    fx: float | None = Field(default=None, description="Pinned x coordinate (force layout)")
    fy: float | None = Field(default=None, description="Pinned y coordinate (force layout)")
    start_line: int | None = Field(default=None, alias="startLine")
    end_line: int | None = Field(default=None, alias="endLine")
    language: str | None = None
    parent_id: str | None = Field(default=None, alias="parentId")

    model_config = {"frozen": True, "populate_by_name": True}


class GraphEdge(BaseModel):
    """A directed, typed, weighted relationship between two nodes."""

    source: str = Field(description="Source node ID")
    target: str = Field(description="Target node ID")
    type: EdgeType = Field(description="Type of relationship")
    weight: float = Field(default=1.0, description="Edge weight (merged duplicates add up)")
    line_number: int | None = Field(default=None, alias="lineNumber")

    model_config = {"frozen": True, "populate_by_name": True}

    @property
    def key(self) -> tuple[str, str, str]:
        """Identity of the logical edge: (source, target, type)."""
        return (self.source, self.target, self.type)


class GraphMetadata(BaseModel):
    """Metadata about a built graph."""

    total_nodes: int = Field(default=0, alias="totalNodes")
    total_edges: int = Field(default=0, alias="totalEdges")
    max_depth: int = Field(default=0, alias="maxDepth")
    generated_at: datetime = Field(
        default_factory=lambda: datetime.now(tz=None), alias="generatedAt"
    )
    root_file: str | None = Field(default=None, alias="rootFile")

    model_config = {"frozen": True, "populate_by_name": True}


class Graph(BaseModel):
    """Immutable graph snapshot with nodes, edges, and metadata."""

    nodes: list[GraphNode] = Field(default_factory=list, description="Nodes, ids unique")
    edges: list[GraphEdge] = Field(default_factory=list, description="Edges")
    metadata: GraphMetadata = Field(default_factory=GraphMetadata)

    model_config = {"frozen": True}

    def node_ids(self) -> list[str]:
        """Return node ids in graph order."""
        return [node.id for node in self.nodes]

    def get_node(self, node_id: str) -> GraphNode | None:
        """Look up a node by id."""
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def with_nodes(self, nodes: list[GraphNode]) -> "Graph":
        """Return a copy of this graph with a replacement node list."""
        return self.model_copy(update={"nodes": nodes})

    def to_digraph(self) -> nx.DiGraph:
        """Convert to a NetworkX DiGraph.

        Edges whose endpoints are not known nodes are dropped. Edges of
        different types between the same pair collapse into one NetworkX
        edge whose weight is the sum of the originals.
        """
        G = nx.DiGraph()
        for node in self.nodes:
            G.add_node(node.id, type=node.type, name=node.name, path=node.path)

        for edge in self.edges:
            if edge.source not in G or edge.target not in G:
                continue
            if G.has_edge(edge.source, edge.target):
                G[edge.source][edge.target]["weight"] += edge.weight
            else:
                G.add_edge(edge.source, edge.target, type=edge.type, weight=edge.weight)

        return G


class GraphStatistics(BaseModel):
    """Summary statistics for a graph."""

    node_count: int = Field(alias="nodeCount")
    edge_count: int = Field(alias="edgeCount")
    has_cycles: bool = Field(alias="hasCycles")
    density: float = Field(default=0.0, description="Edges over n*(n-1)")
    avg_degree: float = Field(default=0.0, alias="avgDegree")
    max_degree: int = Field(default=0, alias="maxDegree")
    connected_components: int = Field(
        default=0, alias="connectedComponents", description="Weakly connected components"
    )

    model_config = {"populate_by_name": True}


# JSON Conversion Utilities


def graph_to_json(graph: Graph) -> dict[str, Any]:
    """Serialize a Graph to a JSON-compatible dict with camelCase keys.

    Args:
        graph: The graph snapshot.

    Returns:
        Dict with nodes, edges, and metadata.
    """
    return graph.model_dump(mode="json", by_alias=True, exclude_none=True)


def json_to_graph(data: dict[str, Any]) -> Graph:
    """Deserialize a JSON dict to a Graph.

    Accepts either camelCase or snake_case keys. When metadata is missing,
    node and edge totals are derived from the payload.

    Args:
        data: Dict with nodes, edges, and optional metadata.

    Returns:
        Graph snapshot.
    """
    nodes = [GraphNode.model_validate(node) for node in data.get("nodes", [])]
    edges = []
    for edge in data.get("edges", []):
        edge = dict(edge)
        # Accept the from/to spelling used by other graph dumps
        if "source" not in edge and "from" in edge:
            edge["source"] = edge.pop("from")
        if "target" not in edge and "to" in edge:
            edge["target"] = edge.pop("to")
        edges.append(GraphEdge.model_validate(edge))

    raw_metadata = data.get("metadata")
    if raw_metadata:
        metadata = GraphMetadata.model_validate(raw_metadata)
    else:
        metadata = GraphMetadata(total_nodes=len(nodes), total_edges=len(edges))

    return Graph(nodes=nodes, edges=edges, metadata=metadata)
