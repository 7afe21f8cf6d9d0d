"""
Cluster interpretation and explainability.
Map cluster centroids to recovery phenotypes.
"""

import numpy as np
from typing import Dict, List, Sequence, Tuple

from .data_structures import Cluster, FEATURE_NAMES, RecoveryPhenotype


PHENOTYPE_DESCRIPTIONS: Dict[RecoveryPhenotype, str] = {
    RecoveryPhenotype.FAST_RECOVERER: (
        "Young, healthy patients with excellent recovery metrics. High mobility, "
        "low pain, good adherence. Expected to meet recovery milestones ahead of schedule."
    ),
    RecoveryPhenotype.STEADY_RECOVERER: (
        "Patients progressing at expected pace. Moderate comorbidities but adequate "
        "functional status. May need encouragement but generally on track."
    ),
    RecoveryPhenotype.STRUGGLING: (
        "Patients with significant recovery challenges. High pain, low mobility, often "
        "elderly with multiple comorbidities. Require intensive support and monitoring."
    ),
    RecoveryPhenotype.COMPLEX: (
        "Patients with mixed recovery patterns. May excel in some areas but struggle in "
        "others. Require individualized care plans addressing specific deficits."
    ),
    RecoveryPhenotype.UNASSIGNED: (
        "No recovery phenotype has been determined for this patient yet. "
        "Follow the standard post-operative protocol."
    ),
}


class PhenotypeInterpreter:
    """
    Label denormalized centroids with a recovery phenotype.
    """

    def interpret(self, centroid: Sequence[float]) -> Tuple[RecoveryPhenotype, str]:
        """
        Classify a centroid given in original units.

        Rules are checked in order and the first match wins.

        Args:
            centroid: Feature values in canonical order

        Returns:
            (phenotype, narrative)
        """
        features = dict(zip(FEATURE_NAMES, centroid))
        mobility = features['mobility_score']
        independence = features['functional_independence']
        pain = features['pain_level']
        adherence = features['medication_adherence']
        comorbidities = features['comorbidity_count']

        if mobility > 6.5 and independence > 6.5 and pain < 4 and adherence > 0.75:
            phenotype = RecoveryPhenotype.FAST_RECOVERER
        elif mobility > 3.5 and independence > 3.5 and pain < 7 and comorbidities < 4:
            phenotype = RecoveryPhenotype.STEADY_RECOVERER
        elif mobility < 3.5 and independence < 4 and pain > 5:
            phenotype = RecoveryPhenotype.STRUGGLING
        else:
            phenotype = RecoveryPhenotype.COMPLEX

        return phenotype, PHENOTYPE_DESCRIPTIONS[phenotype]

    def build_clusters(self,
                       centroids: np.ndarray,
                       labels: np.ndarray,
                       patient_ids: Sequence[str],
                       raw_matrix: np.ndarray) -> List[Cluster]:
        """
        Build the cluster records of a run.

        Args:
            centroids: Denormalized centroids (k, n_features)
            labels: Cluster label of each patient
            patient_ids: Patient ids in matrix row order
            raw_matrix: Raw (not normalized) feature matrix

        Returns:
            One Cluster per centroid, ordered by cluster id
        """
        clusters = []
        ids = np.asarray(patient_ids, dtype=object)

        for cluster_id, centroid in enumerate(centroids):
            mask = labels == cluster_id
            if mask.any():
                averages = raw_matrix[mask].mean(axis=0)
            else:
                averages = centroid

            phenotype, description = self.interpret(centroid)
            clusters.append(Cluster(
                cluster_id=cluster_id,
                centroid=tuple(float(v) for v in centroid),
                patient_ids=tuple(ids[mask]),
                phenotype=phenotype,
                phenotype_description=description,
                average_features={name: float(v) for name, v in zip(FEATURE_NAMES, averages)},
            ))

        return clusters
