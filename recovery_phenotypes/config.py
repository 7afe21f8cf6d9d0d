"""
Engine configuration.
"""

from dataclasses import dataclass
from typing import Literal

from .exceptions import InvalidInput

DEFAULT_K = 4
DEFAULT_MAX_ITERATIONS = 100
DEFAULT_RANDOM_SEED = 42

# Silhouette is O(n^2); score a bounded sample of the population
SILHOUETTE_SAMPLE_SIZE = 100

OPTIMAL_K_MAX_ITERATIONS = 50
OPTIMAL_K_SAMPLE_SIZE = 80

SYNTHETIC_SEED = 77

STORAGE_PREFIX = "recovery_pilot_pce_"


@dataclass(frozen=True)
class EngineConfig:
    """
    Tunables for a ClusteringEngine instance.

    Args:
        default_k: Cluster count used when none is given
        max_iterations: Iteration cap for cluster()/recluster()
        random_seed: Seed of the generator created for every run
        silhouette_sample_size: Points scored when computing the aggregate silhouette
        silhouette_sampling: 'random' (seeded subset) or 'first' (first m points)
        optimal_k_max_iterations: Iteration cap for each find_optimal_k() pass
        optimal_k_sample_size: Silhouette sample size for find_optimal_k()
        storage_prefix: Prefix of the persisted record keys
    """
    default_k: int = DEFAULT_K
    max_iterations: int = DEFAULT_MAX_ITERATIONS
    random_seed: int = DEFAULT_RANDOM_SEED
    silhouette_sample_size: int = SILHOUETTE_SAMPLE_SIZE
    silhouette_sampling: Literal['random', 'first'] = 'random'
    optimal_k_max_iterations: int = OPTIMAL_K_MAX_ITERATIONS
    optimal_k_sample_size: int = OPTIMAL_K_SAMPLE_SIZE
    storage_prefix: str = STORAGE_PREFIX

    def __post_init__(self):
        for name in ('default_k', 'max_iterations', 'silhouette_sample_size',
                     'optimal_k_max_iterations', 'optimal_k_sample_size'):
            if getattr(self, name) < 1:
                raise InvalidInput(f"{name} must be >= 1, got {getattr(self, name)}")
        if self.silhouette_sampling not in ('random', 'first'):
            raise InvalidInput(f"Unknown silhouette sampling: {self.silhouette_sampling}")
