"""
Feature engineering for patient feature vectors.
Converts vectors to a matrix and applies z-score normalization.
"""

import numpy as np
from typing import Optional, Sequence

from .data_structures import FeatureVector, PopulationStats, N_FEATURES
from .exceptions import InvalidInput, NotClusteredYet


def vectors_to_matrix(vectors: Sequence[FeatureVector]) -> np.ndarray:
    """
    Stack feature vectors into a matrix.

    Args:
        vectors: Patient feature vectors

    Returns:
        Dense matrix of shape (n_patients, n_features)
    """
    if len(vectors) == 0:
        return np.empty((0, N_FEATURES))
    return np.vstack([vector.to_array() for vector in vectors])


class FeatureNormalizer:
    """
    Z-score normalization fitted on a patient population.
    """

    def __init__(self):
        self.stats: Optional[PopulationStats] = None

    @staticmethod
    def compute_stats(matrix: np.ndarray) -> PopulationStats:
        """
        Compute per-feature mean and population standard deviation.

        A feature with zero variance gets a standard deviation of 1 so that
        normalization never divides by zero.

        Args:
            matrix: Raw feature matrix (n_patients, n_features)

        Returns:
            PopulationStats for the matrix
        """
        matrix = np.asarray(matrix, dtype=float)
        if matrix.ndim != 2 or matrix.shape[0] == 0:
            raise InvalidInput("Cannot compute feature statistics of an empty population")

        means = matrix.mean(axis=0)
        stds = matrix.std(axis=0)
        # Test constancy on the values, rounding can leave a ~1e-17 std
        stds[np.ptp(matrix, axis=0) == 0] = 1.0
        return PopulationStats(means=means, stds=stds)

    def fit(self, matrix: np.ndarray) -> PopulationStats:
        """Compute and keep the statistics of the matrix."""
        self.stats = self.compute_stats(matrix)
        return self.stats

    def _resolve(self, stats: Optional[PopulationStats]) -> PopulationStats:
        stats = stats or self.stats
        if stats is None:
            raise NotClusteredYet("Normalizer not fitted. Call fit() first.")
        return stats

    def normalize(self, matrix: np.ndarray,
                  stats: Optional[PopulationStats] = None) -> np.ndarray:
        """(x - mean) / std per feature."""
        stats = self._resolve(stats)
        return (np.asarray(matrix, dtype=float) - stats.means) / stats.stds

    def denormalize(self, matrix: np.ndarray,
                    stats: Optional[PopulationStats] = None) -> np.ndarray:
        """Inverse of normalize(); brings centroids back to original units."""
        stats = self._resolve(stats)
        return np.asarray(matrix, dtype=float) * stats.stds + stats.means
