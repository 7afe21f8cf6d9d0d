"""
Cluster quality evaluation.
Silhouette coefficients, elbow knee detection and seed stability.
"""

import numpy as np
from scipy.spatial.distance import cdist
from sklearn.metrics import adjusted_rand_score
from typing import Dict, List, Optional, Sequence

from .clustering import KMeansEngine
from .config import OPTIMAL_K_MAX_ITERATIONS


def silhouette_samples(X: np.ndarray,
                       labels: np.ndarray,
                       n_clusters: int,
                       indices: Optional[np.ndarray] = None) -> np.ndarray:
    """
    Exact silhouette coefficient of selected points.

    a(i) is the mean distance to the other members of i's cluster (0 for a
    sole member), b(i) the smallest mean distance to the members of another
    non-empty cluster. s(i) = (b - a) / max(a, b), or 0 when both are 0.
    Distances are taken against the full population even when only a
    subset of points is scored.

    Args:
        X: Data matrix (n_samples, n_features)
        labels: Cluster label of each sample
        n_clusters: Number of clusters
        indices: Points to score (default: all)

    Returns:
        Silhouette coefficient of each selected point
    """
    X = np.asarray(X, dtype=float)
    labels = np.asarray(labels)
    n = X.shape[0]
    if indices is None:
        indices = np.arange(n)
    m = len(indices)
    if n < 2 or n_clusters < 2:
        return np.zeros(m)

    dist = cdist(X[indices], X, 'euclidean')
    counts = np.bincount(labels, minlength=n_clusters)

    sums = np.zeros((m, n_clusters))
    for c in range(n_clusters):
        mask = labels == c
        if mask.any():
            sums[:, c] = dist[:, mask].sum(axis=1)

    rows = np.arange(m)
    own = labels[indices]
    # The point itself contributes a zero distance to its own cluster sum
    others = counts[own] - 1
    a = np.where(others > 0, sums[rows, own] / np.maximum(others, 1), 0.0)

    with np.errstate(divide='ignore', invalid='ignore'):
        mean_dist = sums / counts
    mean_dist[:, counts == 0] = np.inf
    mean_dist[rows, own] = np.inf
    b = mean_dist.min(axis=1)
    b[np.isinf(b)] = 0.0

    denom = np.maximum(a, b)
    safe = np.where(denom > 0, denom, 1.0)
    return np.where(denom > 0, (b - a) / safe, 0.0)


def silhouette_score(X: np.ndarray,
                     labels: np.ndarray,
                     n_clusters: int,
                     sample_size: Optional[int] = None,
                     rng: Optional[np.random.Generator] = None) -> float:
    """
    Mean silhouette coefficient, optionally over a sample.

    When sample_size is smaller than the population the result is an
    estimate: a random subset drawn from rng, or the first sample_size
    points if no generator is given.

    Returns:
        Score in [-1, 1]; 0 for fewer than 2 points or clusters
    """
    n = np.asarray(X).shape[0]
    if n < 2 or n_clusters < 2:
        return 0.0

    indices = None
    if sample_size is not None and sample_size < n:
        if rng is not None:
            indices = np.sort(rng.choice(n, size=sample_size, replace=False))
        else:
            indices = np.arange(sample_size)

    return float(np.mean(silhouette_samples(X, labels, n_clusters, indices)))


def approximate_silhouette(nearest: float, second_nearest: float) -> float:
    """
    Approximate silhouette of a point from its two nearest centroid distances.

    Uses (d2 - d1) / max(d1, d2). This stands in for the exact coefficient
    when cluster memberships are not at hand; it is 0 when d1 == d2.
    """
    denom = max(nearest, second_nearest)
    if denom <= 0 or nearest == second_nearest:
        return 0.0
    return float((second_nearest - nearest) / denom)


def knee_point(k_values: List[int], inertia_values: List[float]) -> int:
    """
    Simple 'knee' detection:
    compute distance of each (k, inertia) point to the line between first and last.
    choose k with maximum distance.
    """
    ks = np.array(k_values, dtype=float)
    ys = np.array(inertia_values, dtype=float)

    # Normalize to [0,1] for numeric stability
    ks_n = (ks - ks.min()) / (ks.max() - ks.min() + 1e-12)
    ys_n = (ys - ys.min()) / (ys.max() - ys.min() + 1e-12)

    p1 = np.array([ks_n[0], ys_n[0]])
    line = np.array([ks_n[-1], ys_n[-1]]) - p1
    line_norm = np.linalg.norm(line) + 1e-12

    # |cross(line, p - p1)| / |line|
    distances = np.abs(line[0] * (ys_n - p1[1]) - line[1] * (ks_n - p1[0])) / line_norm
    return int(k_values[int(np.argmax(distances))])


def stability_ari(X: np.ndarray, k: int, seeds: Sequence[int],
                  max_iterations: int = OPTIMAL_K_MAX_ITERATIONS) -> Dict[str, float]:
    """
    Compute stability as mean/std ARI between clusterings from different seeds.
    """
    labels_list = []
    for seed in seeds:
        km = KMeansEngine(k, max_iterations, rng=np.random.default_rng(seed))
        labels_list.append(km.fit_predict(X))

    aris = []
    for i in range(len(labels_list)):
        for j in range(i + 1, len(labels_list)):
            aris.append(adjusted_rand_score(labels_list[i], labels_list[j]))

    if not aris:
        return {"ari_mean": float("nan"), "ari_std": float("nan")}
    return {"ari_mean": float(np.mean(aris)), "ari_std": float(np.std(aris))}
