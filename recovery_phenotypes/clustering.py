"""
K-means clustering for patient phenotyping.
K-means++ seeding, Lloyd's iterations and reseeding of empty clusters.
"""

import numpy as np
from scipy.spatial.distance import cdist
from typing import Dict, Optional

from .config import DEFAULT_MAX_ITERATIONS, DEFAULT_RANDOM_SEED
from .exceptions import InvalidInput, InvalidK, NotClusteredYet


def euclidean_distance(a: np.ndarray, b: np.ndarray) -> float:
    """Euclidean distance between two points."""
    return float(np.sqrt(np.sum((np.asarray(a, dtype=float) - np.asarray(b, dtype=float)) ** 2)))


def kmeans_plus_plus(X: np.ndarray, k: int, rng: np.random.Generator) -> np.ndarray:
    """
    Choose k initial centroids with K-means++.

    The first centroid is a uniformly random point. Each following one is
    sampled with probability proportional to the squared distance of a point
    to its nearest already-chosen centroid.

    Args:
        X: Data matrix (n_samples, n_features)
        k: Number of centroids
        rng: Seeded generator

    Returns:
        Centroid matrix (k, n_features)
    """
    n = X.shape[0]
    centroids = np.empty((k, X.shape[1]))
    centroids[0] = X[rng.integers(n)]
    closest_sq = cdist(X, centroids[:1], 'sqeuclidean').ravel()

    for c in range(1, k):
        total = closest_sq.sum()
        if total > 0:
            idx = rng.choice(n, p=closest_sq / total)
        else:
            # Every point already coincides with a chosen centroid
            idx = rng.integers(n)
        centroids[c] = X[idx]
        closest_sq = np.minimum(
            closest_sq, cdist(X, centroids[c:c + 1], 'sqeuclidean').ravel()
        )

    return centroids


def assign_clusters(X: np.ndarray, centroids: np.ndarray) -> np.ndarray:
    """Index of the nearest centroid for each point; ties go to the lowest index."""
    return np.argmin(cdist(X, centroids, 'euclidean'), axis=1)


def update_centroids(X: np.ndarray, labels: np.ndarray, k: int,
                     rng: np.random.Generator) -> np.ndarray:
    """
    Move each centroid to the mean of its points.

    A centroid left without points is reseeded to a uniformly random point.
    """
    centroids = np.empty((k, X.shape[1]))
    for c in range(k):
        members = X[labels == c]
        if len(members) == 0:
            centroids[c] = X[rng.integers(X.shape[0])]
        else:
            centroids[c] = members.mean(axis=0)
    return centroids


def compute_inertia(X: np.ndarray, labels: np.ndarray, centroids: np.ndarray) -> float:
    """Sum of squared distances from each point to its assigned centroid."""
    return float(np.sum((X - centroids[labels]) ** 2))


class KMeansEngine:
    """
    Lloyd's K-means over a normalized feature matrix.
    """

    def __init__(self,
                 n_clusters: int,
                 max_iterations: int = DEFAULT_MAX_ITERATIONS,
                 rng: Optional[np.random.Generator] = None):
        """
        Initialize the engine.

        Args:
            n_clusters: Number of clusters
            max_iterations: Cap on update/assign rounds
            rng: Generator used for seeding and reseeding (default: seeded with 42)
        """
        if max_iterations < 1:
            raise InvalidInput(f"max_iterations must be >= 1, got {max_iterations}")
        self.n_clusters = n_clusters
        self.max_iterations = max_iterations
        self.rng = rng if rng is not None else np.random.default_rng(DEFAULT_RANDOM_SEED)

        self.labels_: Optional[np.ndarray] = None
        self.cluster_centers_: Optional[np.ndarray] = None
        self.n_iter_: int = 0
        self.converged_: bool = False
        self._X: Optional[np.ndarray] = None

    def fit_predict(self, X: np.ndarray) -> np.ndarray:
        """
        Cluster the data and return the label of each point.

        Stops when no assignment changes between two rounds or after
        max_iterations rounds. A run that hits the cap is still returned,
        with converged_ set to False.

        Args:
            X: Normalized data matrix (n_samples, n_features)

        Returns:
            Cluster labels for each sample
        """
        X = np.asarray(X, dtype=float)
        n = X.shape[0]
        if n == 0:
            raise InvalidInput("Cannot cluster an empty dataset")
        if self.n_clusters < 1 or self.n_clusters > n:
            raise InvalidK(f"k must be between 1 and {n}, got {self.n_clusters}")

        centroids = kmeans_plus_plus(X, self.n_clusters, self.rng)
        labels = assign_clusters(X, centroids)
        converged = False
        n_iter = 0

        while n_iter < self.max_iterations:
            n_iter += 1
            centroids = update_centroids(X, labels, self.n_clusters, self.rng)
            new_labels = assign_clusters(X, centroids)
            changed = np.any(new_labels != labels)
            labels = new_labels
            if not changed:
                converged = True
                break

        self.labels_ = labels
        self.cluster_centers_ = centroids
        self.n_iter_ = n_iter
        self.converged_ = converged
        self._X = X
        return self.labels_

    def get_cluster_labels(self) -> np.ndarray:
        """Get cluster labels."""
        if self.labels_ is None:
            raise NotClusteredYet("Clusterer not fitted. Call fit_predict() first.")
        return self.labels_

    def get_cluster_sizes(self) -> Dict[int, int]:
        """Get the size of each cluster, including empty ones."""
        labels = self.get_cluster_labels()
        counts = np.bincount(labels, minlength=self.n_clusters)
        return {c: int(count) for c, count in enumerate(counts)}

    def get_inertia(self) -> float:
        """Get inertia (sum of squared distances to centers)."""
        labels = self.get_cluster_labels()
        return compute_inertia(self._X, labels, self.cluster_centers_)

    def get_cluster_centers(self) -> np.ndarray:
        """Get cluster centers in normalized space."""
        if self.cluster_centers_ is None:
            raise NotClusteredYet("Clusterer not fitted. Call fit_predict() first.")
        return self.cluster_centers_
