"""Models for semantic clustering of code entities."""

import os
from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field

from codeviz.models.graph import NodeType, Position


class ClusteringAlgorithm(StrEnum):
    """Supported clustering algorithms."""

    KMEANS = "kmeans"
    DBSCAN = "dbscan"
    HIERARCHICAL = "hierarchical"


class CodeEntity(BaseModel):
    """A code entity to be clustered."""

    id: str
    content: str = ""
    type: NodeType = "function"
    path: str = ""


class ClusteringOptions(BaseModel):
    """Options controlling a clustering run."""

    algorithm: ClusteringAlgorithm = ClusteringAlgorithm.KMEANS
    num_clusters: int | None = Field(
        default=None, alias="numClusters", ge=1, description="Target cluster count (auto if None)"
    )
    min_cluster_size: int = Field(
        default=3, alias="minClusterSize", ge=1, description="DBSCAN minPoints"
    )
    epsilon: float = Field(default=0.5, gt=0, description="DBSCAN neighborhood radius")
    exclude_tests: bool = Field(default=True, alias="excludeTests")
    use_embeddings: bool = Field(
        default=True, alias="useEmbeddings", description="Query the embedding provider first"
    )
    seed: int | None = Field(default=None, description="Seed for k-means initialization")
    max_iterations: int = Field(default=50, alias="maxIterations", ge=1)
    label_timeout_ms: int = Field(default=10000, alias="labelTimeoutMs", ge=1)
    max_workers: int = Field(
        default_factory=lambda: int(os.getenv("CODEVIZ_COLLABORATOR_WORKERS", "4")),
        alias="maxWorkers",
        ge=1,
        description="Concurrent collaborator calls",
    )

    model_config = {"populate_by_name": True}


class SemanticCluster(BaseModel):
    """A group of semantically similar code entities."""

    id: str
    label: str
    description: str = ""
    members: list[str] = Field(default_factory=list)
    centroid: list[float] = Field(default_factory=list)
    cohesion: float = Field(ge=0.0, le=1.0, description="1 / (1 + mean distance to centroid)")
    keywords: list[str] = Field(default_factory=list)
    dominant_type: NodeType = Field(alias="dominantType")
    color: str | None = None
    position: Position | None = None

    model_config = {"populate_by_name": True}


class ClusteringMetadata(BaseModel):
    """Summary of a clustering run."""

    algorithm: ClusteringAlgorithm
    total_entities: int = Field(default=0, alias="totalEntities")
    total_clusters: int = Field(default=0, alias="totalClusters")
    avg_cluster_size: int = Field(default=0, alias="avgClusterSize")
    generated_at: datetime = Field(
        default_factory=lambda: datetime.now(tz=None), alias="generatedAt"
    )

    model_config = {"populate_by_name": True}


class ClusteringResult(BaseModel):
    """Result of clustering code entities."""

    clusters: list[SemanticCluster] = Field(default_factory=list)
    unclustered: list[str] = Field(default_factory=list, description="Ids left out (noise)")
    silhouette_score: float = Field(default=0.0, alias="silhouetteScore")
    metadata: ClusteringMetadata

    model_config = {"populate_by_name": True}


def create_default_clustering_options() -> ClusteringOptions:
    """Default options: auto-sized k-means with embeddings, tests excluded."""
    return ClusteringOptions(
        algorithm=ClusteringAlgorithm.KMEANS,
        num_clusters=None,
        min_cluster_size=3,
        epsilon=0.5,
        use_embeddings=True,
        exclude_tests=True,
    )
