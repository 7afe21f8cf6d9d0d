"""
Post-Operative Recovery Phenotyping

Groups post-surgical patients into recovery phenotypes with a from-scratch
K-means over demographics, vitals, labs and recovery metrics, then assigns
new patients to the nearest learned phenotype.
"""

from .data_structures import FeatureVector, RecoveryPhenotype
from .engine import ClusteringEngine

__version__ = "0.1.0"

__all__ = ["ClusteringEngine", "FeatureVector", "RecoveryPhenotype"]
