"""
Data structures for post-operative recovery phenotyping.
"""

import math
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np
import pandas as pd


class RecoveryPhenotype(Enum):
    """Recovery phenotypes a cluster can be labelled with."""
    FAST_RECOVERER = "fast_recoverer"
    STEADY_RECOVERER = "steady_recoverer"
    STRUGGLING = "struggling"
    COMPLEX = "complex"
    # Null state for callers; centroid interpretation never yields it
    UNASSIGNED = "unassigned"


@dataclass(frozen=True)
class FeatureVector:
    """One patient's clustering features."""
    patient_id: str
    # Demographics
    age: float
    bmi: float
    comorbidity_count: float
    # Vitals (most recent)
    heart_rate: float
    systolic_bp: float
    oxygen_saturation: float
    temperature: float
    # Labs
    hemoglobin: float
    white_blood_cell_count: float
    creatinine: float
    albumin: float
    # Recovery metrics
    pain_level: float                # 0-10
    mobility_score: float            # 0-10, 10 = fully mobile
    wound_healing_score: float       # 0-10, 10 = fully healed
    medication_adherence: float      # 0-1
    days_since_surgery: float
    exercise_completion_rate: float  # 0-1
    sleep_quality_score: float       # 0-10
    appetite_score: float            # 0-10
    mood_score: float                # 0-10
    functional_independence: float   # 0-10

    def to_array(self) -> np.ndarray:
        """Feature values in canonical FEATURE_NAMES order."""
        return np.array([getattr(self, name) for name in FEATURE_NAMES], dtype=float)

    def to_dict(self) -> Dict[str, Any]:
        data = {'patient_id': self.patient_id}
        data.update({name: float(getattr(self, name)) for name in FEATURE_NAMES})
        return data

    def is_finite(self) -> bool:
        return all(math.isfinite(getattr(self, name)) for name in FEATURE_NAMES)

    @classmethod
    def from_array(cls, patient_id: str, values: Sequence[float]) -> 'FeatureVector':
        """Build a vector from values in canonical order."""
        if len(values) != len(FEATURE_NAMES):
            raise ValueError(f"Expected {len(FEATURE_NAMES)} features, got {len(values)}")
        return cls(patient_id, *(float(v) for v in values))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'FeatureVector':
        return cls(
            patient_id=str(data['patient_id']),
            **{name: float(data[name]) for name in FEATURE_NAMES}
        )


FEATURE_NAMES: Tuple[str, ...] = tuple(
    f.name for f in fields(FeatureVector) if f.name != 'patient_id'
)
N_FEATURES = len(FEATURE_NAMES)


@dataclass
class PopulationStats:
    """Per-feature mean and standard deviation of the clustered population."""
    means: np.ndarray
    stds: np.ndarray

    def to_dict(self) -> Dict[str, List[float]]:
        return {'means': self.means.tolist(), 'stds': self.stds.tolist()}

    @classmethod
    def from_dict(cls, data: Mapping[str, Sequence[float]]) -> 'PopulationStats':
        return cls(
            means=np.asarray(data['means'], dtype=float),
            stds=np.asarray(data['stds'], dtype=float),
        )


@dataclass(frozen=True)
class Cluster:
    """A single cluster of one clustering run. Centroid is in original units."""
    cluster_id: int
    centroid: Tuple[float, ...]
    patient_ids: Tuple[str, ...]
    phenotype: RecoveryPhenotype
    phenotype_description: str
    average_features: Dict[str, float] = field(default_factory=dict, hash=False)

    @property
    def size(self) -> int:
        return len(self.patient_ids)


@dataclass
class ClusteringResult:
    """Outcome of one clustering run."""
    clusters: List[Cluster]
    assignments: Dict[str, int]
    silhouette_score: float
    iterations: int
    converged: bool
    k: int
    total_patients: int

    def get_cluster_summary(self) -> pd.DataFrame:
        """
        Get summary statistics for each cluster.

        Returns:
            DataFrame with one row per cluster
        """
        summaries = []
        for cluster in self.clusters:
            summaries.append({
                'cluster_id': cluster.cluster_id,
                'n_patients': cluster.size,
                'share': cluster.size / self.total_patients if self.total_patients else 0.0,
                'phenotype': cluster.phenotype.value,
                'pain_level': cluster.average_features.get('pain_level'),
                'mobility_score': cluster.average_features.get('mobility_score'),
                'functional_independence': cluster.average_features.get('functional_independence'),
                'medication_adherence': cluster.average_features.get('medication_adherence'),
            })
        return pd.DataFrame(summaries)

    def get_patient_assignments(self) -> pd.DataFrame:
        """Get DataFrame mapping patients to their clusters."""
        return pd.DataFrame({
            'patient_id': list(self.assignments.keys()),
            'cluster_id': list(self.assignments.values()),
        })


@dataclass
class PatientClusterAssignment:
    """
    Nearest-phenotype assignment of a single patient.

    silhouette_coefficient is the approximation (d2 - d1) / max(d1, d2) from
    the two nearest centroid distances, not the exact per-point silhouette.
    """
    patient_id: str
    cluster_id: int
    phenotype: RecoveryPhenotype
    distance_to_centroid: float
    nearest_other_cluster: Optional[int]
    silhouette_coefficient: float
    recommendations: List[str]


@dataclass(frozen=True)
class OptimalKEntry:
    k: int
    inertia: float
    silhouette: float


@dataclass(frozen=True)
class FeatureImportance:
    feature: str
    variance: float
