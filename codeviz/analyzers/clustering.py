"""Unsupervised clustering over embedding matrices.

Pure NumPy implementations of k-means (Lloyd), DBSCAN, centroid-linkage
agglomerative clustering, and the silhouette quality score. All functions
take an ``(n, d)`` float matrix and return labels or index groups; mapping
indices back to entities is the caller's job.
"""

import math
from collections import deque

import numpy as np
from scipy.spatial.distance import cdist

NOISE = -1
_UNVISITED = -2


def default_cluster_count(n: int) -> int:
    """Automatic cluster count for ``n`` entities: ``max(2, ceil(sqrt(n / 2)))``."""
    return max(2, math.ceil(math.sqrt(n / 2)))


def pairwise_distances(vectors: np.ndarray) -> np.ndarray:
    """Euclidean distance matrix of shape ``(n, n)``."""
    return cdist(vectors, vectors)


def groups_from_labels(labels: np.ndarray) -> list[list[int]]:
    """Turn a label array into index groups.

    Groups are ordered by the first index that carries each label; noise
    (negative labels) is dropped.
    """
    groups: dict[int, list[int]] = {}
    for idx, label in enumerate(labels.tolist()):
        if label < 0:
            continue
        groups.setdefault(label, []).append(idx)
    return list(groups.values())


def kmeans(
    vectors: np.ndarray,
    k: int,
    rng: np.random.Generator,
    max_iterations: int = 50,
) -> np.ndarray:
    """Lloyd's k-means.

    Initial centroids are ``k`` distinct vectors drawn from a shuffle.
    Iterates until assignments stop changing or ``max_iterations`` is hit.
    A centroid that loses all its members keeps its previous value.

    Args:
        vectors: ``(n, d)`` matrix with ``n >= k``.
        k: Number of clusters.
        rng: Random generator for the initial shuffle.
        max_iterations: Iteration cap.

    Returns:
        Label array of length ``n`` with values in ``[0, k)``.

    Raises:
        ValueError: If k < 1 or there are fewer vectors than clusters.
    """
    n = len(vectors)
    if k < 1:
        raise ValueError(f"k must be >= 1, got {k}")
    if n < k:
        raise ValueError(f"k-means needs at least {k} vectors, got {n}")

    centroids = vectors[rng.permutation(n)[:k]].astype(float, copy=True)
    labels = np.full(n, -1, dtype=np.intp)

    for _ in range(max_iterations):
        new_labels = cdist(vectors, centroids).argmin(axis=1)
        if np.array_equal(new_labels, labels):
            break
        labels = new_labels

        for c in range(k):
            mask = labels == c
            if mask.any():
                centroids[c] = vectors[mask].mean(axis=0)

    return labels


def dbscan(vectors: np.ndarray, epsilon: float, min_points: int) -> np.ndarray:
    """Density-based clustering.

    A point is a core point when at least ``min_points`` other points lie
    within ``epsilon``. Clusters grow outward from core points; points are
    marked visited when dequeued, so border points reached from any core
    point join its cluster. Points reached by no cluster are noise.

    Args:
        vectors: ``(n, d)`` matrix.
        epsilon: Neighborhood radius.
        min_points: Neighbors (excluding the point itself) for a core point.

    Returns:
        Label array of length ``n``; noise is ``NOISE`` (-1).
    """
    n = len(vectors)
    labels = np.full(n, _UNVISITED, dtype=np.intp)
    if n == 0:
        return labels

    distances = pairwise_distances(vectors)
    within = distances <= epsilon
    np.fill_diagonal(within, False)

    cluster = 0
    for i in range(n):
        if labels[i] != _UNVISITED:
            continue

        neighbors = np.flatnonzero(within[i])
        if len(neighbors) < min_points:
            labels[i] = NOISE
            continue

        labels[i] = cluster
        queue = deque(neighbors.tolist())
        while queue:
            j = queue.popleft()
            if labels[j] == NOISE:
                # Border point
                labels[j] = cluster
            if labels[j] != _UNVISITED:
                continue

            labels[j] = cluster
            expansion = np.flatnonzero(within[j])
            if len(expansion) >= min_points:
                queue.extend(expansion.tolist())

        cluster += 1

    return labels


def agglomerative(vectors: np.ndarray, target_clusters: int) -> list[list[int]]:
    """Bottom-up clustering with centroid linkage.

    Starts with singleton clusters and repeatedly merges the pair whose
    centroids are closest (lowest slot pair wins ties) until
    ``target_clusters`` remain. The merged cluster goes to the end of the
    list.

    One centroid distance matrix is kept for the whole run; a merge only
    recomputes the row and column of the merged cluster.

    Args:
        vectors: ``(n, d)`` matrix.
        target_clusters: Number of clusters to stop at.

    Returns:
        Index groups.

    Raises:
        ValueError: If target_clusters < 1.
    """
    if target_clusters < 1:
        raise ValueError(f"target_clusters must be >= 1, got {target_clusters}")

    n = len(vectors)
    members: list[list[int]] = [[i] for i in range(n)]
    if n <= target_clusters:
        return members

    centroids = np.asarray(vectors, dtype=float).copy()
    distances = pairwise_distances(centroids)
    np.fill_diagonal(distances, np.inf)
    active = np.ones(n, dtype=bool)
    order = list(range(n))

    for _ in range(n - target_clusters):
        first, second = np.unravel_index(np.argmin(distances), distances.shape)
        i, j = int(min(first, second)), int(max(first, second))

        # Slot i holds the merged cluster, slot j is retired
        members[i] = members[i] + members[j]
        members[j] = []
        active[j] = False
        distances[j, :] = np.inf
        distances[:, j] = np.inf

        centroids[i] = vectors[members[i]].mean(axis=0)
        row = cdist(centroids[i : i + 1], centroids)[0]
        row[~active] = np.inf
        row[i] = np.inf
        distances[i, :] = row
        distances[:, i] = row

        order.remove(i)
        order.remove(j)
        order.append(i)

    return [members[slot] for slot in order]


def silhouette_score(vectors: np.ndarray, groups: list[list[int]]) -> float:
    """Mean silhouette coefficient over all clustered points.

    For each point, ``a`` is its mean distance to the rest of its cluster
    (0 for singletons) and ``b`` the smallest mean distance to another
    cluster; the point scores ``(b - a) / max(a, b)``.

    Args:
        vectors: ``(n, d)`` matrix.
        groups: Index groups; points outside every group are ignored.

    Returns:
        Score in [-1, 1]; 0 when there are fewer than two clusters.
    """
    groups = [group for group in groups if group]
    if len(groups) <= 1:
        return 0.0

    distances = pairwise_distances(vectors)
    total = 0.0
    count = 0

    for gi, members in enumerate(groups):
        for point in members:
            if len(members) > 1:
                a = distances[point, members].sum() / (len(members) - 1)
            else:
                a = 0.0
            b = min(
                distances[point, other].mean()
                for gj, other in enumerate(groups)
                if gj != gi
            )
            denominator = max(a, b)
            total += (b - a) / denominator if denominator > 0 else 0.0
            count += 1

    return float(total / count) if count else 0.0
