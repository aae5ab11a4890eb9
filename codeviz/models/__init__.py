"""Data models for codeviz."""

from codeviz.models.clusters import (
    ClusteringAlgorithm,
    ClusteringMetadata,
    ClusteringOptions,
    ClusteringResult,
    CodeEntity,
    SemanticCluster,
    create_default_clustering_options,
)
from codeviz.models.graph import (
    EDGE_TYPES,
    NODE_TYPES,
    EdgeType,
    Graph,
    GraphEdge,
    GraphMetadata,
    GraphNode,
    GraphStatistics,
    NodeMetrics,
    NodeType,
    Position,
    Vulnerability,
    graph_to_json,
    json_to_graph,
)

__all__ = [
    # Graph
    "EDGE_TYPES",
    "NODE_TYPES",
    "EdgeType",
    "Graph",
    "GraphEdge",
    "GraphMetadata",
    "GraphNode",
    "GraphStatistics",
    "NodeMetrics",
    "NodeType",
    "Position",
    "Vulnerability",
    "graph_to_json",
    "json_to_graph",
    # Clustering
    "ClusteringAlgorithm",
    "ClusteringMetadata",
    "ClusteringOptions",
    "ClusteringResult",
    "CodeEntity",
    "SemanticCluster",
    "create_default_clustering_options",
]
