"""Semantic clustering of code entities.

Groups code entities by embedding similarity:

1. Drop test files (optional).
2. Embed each entity through the configured provider, falling back to
   the local hashed embedding per entity.
3. Cluster with k-means, DBSCAN, or agglomerative clustering.
4. Describe each cluster: centroid, cohesion, dominant type, keywords,
   color, and a grid position.
5. Label clusters with the AI label generator, falling back to keywords.
6. Score the result with the silhouette coefficient.

Collaborator calls fan out over a bounded thread pool under one deadline;
a late or failed call only affects that entity or cluster.
"""

import logging
import math
from collections import Counter
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any, TypeVar

import numpy as np

from codeviz.analyzers.clustering import (
    agglomerative,
    dbscan,
    default_cluster_count,
    groups_from_labels,
    kmeans,
    silhouette_score,
)
from codeviz.analyzers.collaborators import (
    EmbeddingProvider,
    LabelGenerator,
    get_embedding_provider,
    get_label_generator,
    parse_label_reply,
)
from codeviz.analyzers.constants import (
    CLUSTER_CANVAS_HEIGHT,
    CLUSTER_CANVAS_WIDTH,
    cluster_color,
    is_test_file,
)
from codeviz.analyzers.embeddings import DEFAULT_DIMENSIONS, extract_keywords, local_embedding
from codeviz.logging import ProgressBar, log_operation, logger
from codeviz.models.clusters import (
    ClusteringAlgorithm,
    ClusteringMetadata,
    ClusteringOptions,
    ClusteringResult,
    CodeEntity,
    SemanticCluster,
)
from codeviz.models.graph import Position

T = TypeVar("T")

# Backstop wait per wave of embedding lookups (the HTTP client has its own timeout)
EMBEDDING_TIMEOUT_S = 60.0
SAMPLE_MEMBERS = 3
SAMPLE_CHARS = 200


class ClusteringError(Exception):
    """Raised when clustering fails for a reason other than a collaborator."""


class SemanticClusteringEngine:
    """Cluster code entities by semantic similarity.

    Example:
        engine = SemanticClusteringEngine()
        result = engine.cluster_entities(entities, ClusteringOptions(num_clusters=4))
    """

    def __init__(
        self,
        embedding_provider: EmbeddingProvider | None = None,
        label_generator: LabelGenerator | None = None,
    ):
        """Initialize the engine.

        Args:
            embedding_provider: Embedding source (defaults to the configured one).
            label_generator: AI labeler (defaults to the configured one).
        """
        self.embedding_provider = (
            embedding_provider if embedding_provider is not None else get_embedding_provider()
        )
        self.label_generator = (
            label_generator if label_generator is not None else get_label_generator()
        )

    def cluster_entities(
        self,
        entities: Sequence[CodeEntity | dict[str, Any]],
        options: ClusteringOptions | dict[str, Any] | None = None,
    ) -> ClusteringResult:
        """Cluster code entities.

        Args:
            entities: Entities as models or dicts with id, content, type, path.
            options: Clustering options (defaults to auto-sized k-means).

        Returns:
            ClusteringResult with clusters, noise ids, and a quality score.

        Raises:
            ClusteringError: On unexpected internal failures. Collaborator
                failures never raise.
        """
        opts = _resolve_options(options)
        items = [
            entity if isinstance(entity, CodeEntity) else CodeEntity.model_validate(entity)
            for entity in entities
        ]

        details = {"entities": len(items), "algorithm": opts.algorithm.value}
        try:
            with log_operation("semantic clustering", details, level=logging.INFO):
                return self._cluster(items, opts)
        except Exception as e:
            raise ClusteringError(f"Semantic clustering failed: {e}") from e

    def _cluster(self, items: list[CodeEntity], opts: ClusteringOptions) -> ClusteringResult:
        if opts.exclude_tests:
            items = [item for item in items if not is_test_file(item.path)]

        if not items:
            return _empty_result(opts.algorithm)

        vectors = self._get_embeddings(items, opts)
        groups = _run_algorithm(vectors, opts)

        clusters = [
            _describe_cluster(idx, members, items, vectors)
            for idx, members in enumerate(groups)
        ]
        clusters = self._label_clusters(clusters, items, opts)
        clusters = _position_clusters(clusters)

        clustered = {idx for members in groups for idx in members}
        unclustered = [item.id for idx, item in enumerate(items) if idx not in clustered]
        score = silhouette_score(vectors, groups)

        logger.info(
            "  %d clusters, %d unclustered, silhouette %.3f",
            len(clusters),
            len(unclustered),
            score,
        )

        return ClusteringResult(
            clusters=clusters,
            unclustered=unclustered,
            silhouette_score=score,
            metadata=ClusteringMetadata(
                algorithm=opts.algorithm,
                total_entities=len(items),
                total_clusters=len(clusters),
                avg_cluster_size=math.floor(len(items) / len(clusters) + 0.5) if clusters else 0,
            ),
        )

    # =========================================================================
    # Embeddings
    # =========================================================================

    def _get_embeddings(self, items: list[CodeEntity], opts: ClusteringOptions) -> np.ndarray:
        """One embedding row per entity.

        Provider vectors set the shared dimension (the first valid one
        wins); entities whose lookup fails or disagrees on dimension get a
        local embedding of that dimension.
        """
        remote: list[list[float] | None] = [None] * len(items)
        if opts.use_embeddings:
            remote = _fan_out(
                [lambda item=item: self.embedding_provider.search(item.content) for item in items],
                timeout_s=EMBEDDING_TIMEOUT_S,
                max_workers=opts.max_workers,
                desc="Embedding entities",
            )

        dimensions = next((len(vec) for vec in remote if vec), DEFAULT_DIMENSIONS)
        rows: list[list[float]] = []
        fallbacks = 0
        for item, vector in zip(items, remote, strict=True):
            if vector and len(vector) == dimensions:
                rows.append(vector)
            else:
                fallbacks += 1
                rows.append(local_embedding(item.content, dimensions))

        if opts.use_embeddings and fallbacks:
            logger.debug("  Local embeddings used for %d/%d entities", fallbacks, len(items))

        return np.array(rows, dtype=float)

    # =========================================================================
    # Labels
    # =========================================================================

    def _label_clusters(
        self,
        clusters: list[SemanticCluster],
        items: list[CodeEntity],
        opts: ClusteringOptions,
    ) -> list[SemanticCluster]:
        by_id = {item.id: item for item in items}
        prompts = [_label_prompt(cluster, by_id) for cluster in clusters]

        replies = _fan_out(
            [
                lambda prompt=prompt: self.label_generator.generate(prompt, opts.label_timeout_ms)
                for prompt in prompts
            ],
            timeout_s=opts.label_timeout_ms / 1000,
            max_workers=opts.max_workers,
            desc="Labeling clusters",
        )

        labeled = []
        for cluster, reply in zip(clusters, replies, strict=True):
            parsed = parse_label_reply(reply)
            if parsed is None:
                label, description = _fallback_label(cluster)
            else:
                label, description = parsed
                description = description or _fallback_label(cluster)[1]
            labeled.append(cluster.model_copy(update={"label": label, "description": description}))
        return labeled


def _resolve_options(options: ClusteringOptions | dict[str, Any] | None) -> ClusteringOptions:
    if options is None:
        return ClusteringOptions()
    if isinstance(options, ClusteringOptions):
        return options
    return ClusteringOptions.model_validate(options)


def _fan_out(
    calls: list[Callable[[], T]],
    timeout_s: float,
    max_workers: int,
    desc: str,
) -> list[T | None]:
    """Run collaborator calls on a bounded pool.

    All calls share one deadline: ``timeout_s`` per wave of
    ``max_workers`` calls. A call that raises or is still running at the
    deadline yields None.
    """
    results: list[T | None] = [None] * len(calls)
    if not calls:
        return results

    deadline_s = timeout_s * math.ceil(len(calls) / max_workers)
    executor = ThreadPoolExecutor(max_workers=max_workers)
    try:
        futures = {executor.submit(call): idx for idx, call in enumerate(calls)}
        with ProgressBar(total=len(calls), desc=desc, unit="calls") as pbar:
            try:
                for future in as_completed(futures, timeout=deadline_s):
                    idx = futures[future]
                    try:
                        results[idx] = future.result()
                    except Exception as e:
                        logger.warning("  %s: call %d failed: %s", desc, idx, e)
                    pbar.update()
            except TimeoutError:
                pending = sum(1 for future in futures if not future.done())
                logger.warning(
                    "  %s: %d calls timed out after %.1fs", desc, pending, deadline_s
                )
    finally:
        # Hung calls are abandoned rather than awaited
        executor.shutdown(wait=False, cancel_futures=True)

    return results


def _run_algorithm(vectors: np.ndarray, opts: ClusteringOptions) -> list[list[int]]:
    """Cluster the embedding matrix into index groups."""
    n = len(vectors)

    if opts.algorithm == ClusteringAlgorithm.DBSCAN:
        return groups_from_labels(dbscan(vectors, opts.epsilon, opts.min_cluster_size))

    k = opts.num_clusters or default_cluster_count(n)
    if n < k:
        logger.debug("  %d entities < %d clusters, using a single cluster", n, k)
        return [list(range(n))]

    if opts.algorithm == ClusteringAlgorithm.HIERARCHICAL:
        return agglomerative(vectors, k)

    rng = np.random.default_rng(opts.seed)
    return groups_from_labels(kmeans(vectors, k, rng, opts.max_iterations))


def _describe_cluster(
    idx: int,
    members: list[int],
    items: list[CodeEntity],
    vectors: np.ndarray,
) -> SemanticCluster:
    """Build a cluster record from member indices."""
    member_vectors = vectors[members]
    centroid = member_vectors.mean(axis=0)
    mean_distance = float(np.linalg.norm(member_vectors - centroid, axis=1).mean())

    type_counts = Counter(items[m].type for m in members)
    dominant_type = type_counts.most_common(1)[0][0]

    return SemanticCluster(
        id=f"cluster-{idx}",
        label=f"Cluster {idx + 1}",
        members=[items[m].id for m in members],
        centroid=centroid.tolist(),
        cohesion=1 / (1 + mean_distance),
        keywords=extract_keywords([items[m].content for m in members]),
        dominant_type=dominant_type,
        color=cluster_color(idx),
    )


def _label_prompt(cluster: SemanticCluster, by_id: dict[str, CodeEntity]) -> str:
    samples = "\n---\n".join(
        by_id[member].content[:SAMPLE_CHARS]
        for member in cluster.members[:SAMPLE_MEMBERS]
        if by_id[member].content
    )
    return (
        "Generate a short descriptive label (2-4 words) and a one-sentence "
        "description for this code cluster:\n\n"
        f"Keywords: {', '.join(cluster.keywords)}\n"
        f"Dominant type: {cluster.dominant_type}\n\n"
        f"Sample code snippets:\n{samples}\n\n"
        "Format: LABEL: [label] DESCRIPTION: [description]"
    )


def _fallback_label(cluster: SemanticCluster) -> tuple[str, str]:
    """Keyword-based label and description."""
    label = ", ".join(cluster.keywords[:3]) or f"{cluster.dominant_type} cluster"
    description = f"Contains {len(cluster.members)} {cluster.dominant_type}(s)"
    if cluster.keywords:
        description += f" with keywords: {', '.join(cluster.keywords[:5])}"
    return label, description


def _position_clusters(clusters: list[SemanticCluster]) -> list[SemanticCluster]:
    """Lay clusters out on a square grid over the cluster canvas."""
    if not clusters:
        return clusters

    grid_size = math.ceil(math.sqrt(len(clusters)))
    cell_width = CLUSTER_CANVAS_WIDTH / grid_size
    cell_height = CLUSTER_CANVAS_HEIGHT / grid_size

    positioned = []
    for idx, cluster in enumerate(clusters):
        row, col = divmod(idx, grid_size)
        position = Position(
            x=col * cell_width + cell_width / 2,
            y=row * cell_height + cell_height / 2,
        )
        positioned.append(cluster.model_copy(update={"position": position}))
    return positioned


def _empty_result(algorithm: ClusteringAlgorithm) -> ClusteringResult:
    return ClusteringResult(
        clusters=[],
        unclustered=[],
        silhouette_score=0.0,
        metadata=ClusteringMetadata(algorithm=algorithm),
    )
