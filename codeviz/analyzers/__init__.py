"""Graph engine: building, analysis, layout, and semantic clustering."""

from codeviz.analyzers.builder import GraphBuilder, create_edge, create_node
from codeviz.analyzers.clustering import (
    agglomerative,
    dbscan,
    default_cluster_count,
    kmeans,
    silhouette_score,
)
from codeviz.analyzers.collaborators import (
    EmbeddingProvider,
    HttpEmbeddingProvider,
    HttpLabelGenerator,
    LabelGenerator,
    NullEmbeddingProvider,
    NullLabelGenerator,
    get_embedding_provider,
    get_label_generator,
    parse_label_reply,
    reset_collaborators,
)
from codeviz.analyzers.constants import is_test_file
from codeviz.analyzers.embeddings import (
    calculate_centroid,
    euclidean_distance,
    extract_keywords,
    local_embedding,
)
from codeviz.analyzers.graph_algorithms import GraphAnalyzer, top_n
from codeviz.analyzers.impact import (
    ImpactSeverity,
    calculate_impact_severity,
    is_core_module,
)
from codeviz.analyzers.layout import (
    LayoutOptions,
    LayoutType,
    apply_layout,
    force_directed_layout,
    hierarchical_layout,
    organic_layout,
    radial_layout,
)
from codeviz.analyzers.semantic_clusters import ClusteringError, SemanticClusteringEngine

__all__ = [
    # Builder
    "GraphBuilder",
    "create_edge",
    "create_node",
    # Analysis
    "GraphAnalyzer",
    "top_n",
    # Impact
    "ImpactSeverity",
    "calculate_impact_severity",
    "is_core_module",
    # Layout
    "LayoutOptions",
    "LayoutType",
    "apply_layout",
    "force_directed_layout",
    "hierarchical_layout",
    "organic_layout",
    "radial_layout",
    # Embeddings
    "calculate_centroid",
    "euclidean_distance",
    "extract_keywords",
    "local_embedding",
    # Clustering
    "ClusteringError",
    "SemanticClusteringEngine",
    "agglomerative",
    "dbscan",
    "default_cluster_count",
    "is_test_file",
    "kmeans",
    "silhouette_score",
    # Collaborators
    "EmbeddingProvider",
    "HttpEmbeddingProvider",
    "HttpLabelGenerator",
    "LabelGenerator",
    "NullEmbeddingProvider",
    "NullLabelGenerator",
    "get_embedding_provider",
    "get_label_generator",
    "parse_label_reply",
    "reset_collaborators",
]
