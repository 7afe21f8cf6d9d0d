"""
Main engine orchestrating the phenotyping workflow.
"""

import logging
from typing import Callable, Iterable, List, Optional, Tuple

import numpy as np
from scipy.spatial.distance import cdist

from .clustering import KMeansEngine, compute_inertia
from .config import EngineConfig
from .data_structures import (
    ClusteringResult,
    FeatureImportance,
    FeatureVector,
    FEATURE_NAMES,
    OptimalKEntry,
    PatientClusterAssignment,
    PopulationStats,
    RecoveryPhenotype,
)
from .evaluation import approximate_silhouette, silhouette_score
from .exceptions import (
    InvalidInput,
    InvalidK,
    NotClusteredYet,
    PersistenceReadFailure,
    PersistenceWriteFailure,
)
from .feature_engineering import FeatureNormalizer, vectors_to_matrix
from .interpretation import PhenotypeInterpreter
from .persistence import EngineStateStore, InMemoryStore, KeyValueStore
from .recommendations import generate_recommendations
from .synthetic import generate_synthetic_dataset

logger = logging.getLogger(__name__)

CorpusSupplier = Callable[[], Iterable[FeatureVector]]


class ClusteringEngine:
    """
    Recovery phenotyping over a seed corpus plus accumulated new patients.

    Not safe for concurrent mutation: callers must serialize cluster(),
    recluster(), add_patient() and reset_new_patients().
    """

    def __init__(self,
                 corpus_supplier: Optional[CorpusSupplier] = None,
                 store: Optional[KeyValueStore] = None,
                 config: Optional[EngineConfig] = None):
        """
        Initialize the engine.

        Args:
            corpus_supplier: Returns the seed population; called once (default: synthetic corpus)
            store: Key-value store for persisted state (default: in-memory)
            config: Engine tunables
        """
        self.config = config or EngineConfig()
        supplier = corpus_supplier or generate_synthetic_dataset
        self._seed_corpus: List[FeatureVector] = list(supplier())
        if not self._seed_corpus:
            raise InvalidInput("The training corpus is empty")
        self._validate_population(self._seed_corpus)

        self.state_store = EngineStateStore(store or InMemoryStore(), self.config.storage_prefix)
        self.normalizer = FeatureNormalizer()
        self.interpreter = PhenotypeInterpreter()

        # State
        self._loaded = False
        self._new_patients: List[FeatureVector] = []
        self._stats: Optional[PopulationStats] = None
        self._centroids: Optional[np.ndarray] = None
        self._phenotypes: Optional[List[RecoveryPhenotype]] = None
        self._last_result: Optional[ClusteringResult] = None

    # ------------------------------------------------------------------
    # State handling
    # ------------------------------------------------------------------

    @staticmethod
    def _validate_population(vectors: List[FeatureVector]):
        seen = set()
        for vector in vectors:
            if vector.patient_id in seen:
                raise InvalidInput(f"Duplicate patient id: {vector.patient_id}")
            if not vector.is_finite():
                raise InvalidInput(f"Non-finite feature value for patient {vector.patient_id}")
            seen.add(vector.patient_id)

    def _ensure_loaded(self):
        """Load persisted state before the first operation."""
        if self._loaded:
            return
        try:
            new_patients, stats, centroids = self.state_store.load()
            self._validate_population(self._seed_corpus + new_patients)
        except (PersistenceReadFailure, InvalidInput) as e:
            logger.warning("Ignoring stored engine state, starting from the seed corpus: %s", e)
            new_patients, stats, centroids = [], None, None

        self._new_patients = new_patients
        self._set_model(stats, centroids)
        self._loaded = True

    def _set_model(self, stats: Optional[PopulationStats], centroids: Optional[np.ndarray],
                   phenotypes: Optional[List[RecoveryPhenotype]] = None):
        self._stats = stats
        self._centroids = centroids
        if stats is not None and centroids is not None and phenotypes is None:
            denormalized = self.normalizer.denormalize(centroids, stats)
            phenotypes = [self.interpreter.interpret(c)[0] for c in denormalized]
        self._phenotypes = phenotypes

    def _current_model(self) -> Tuple[PopulationStats, np.ndarray, List[RecoveryPhenotype]]:
        if self._stats is None or self._centroids is None or self._phenotypes is None:
            raise NotClusteredYet("No clustering model yet. Call cluster() first.")
        return self._stats, self._centroids, self._phenotypes

    def _population(self) -> List[FeatureVector]:
        return self._seed_corpus + self._new_patients

    @staticmethod
    def _validate_k(k: int, n: int):
        if k < 1 or k > n:
            raise InvalidK(f"k must be between 1 and {n}, got {k}")

    # ------------------------------------------------------------------
    # Clustering
    # ------------------------------------------------------------------

    def cluster(self, k: Optional[int] = None,
                max_iterations: Optional[int] = None) -> ClusteringResult:
        """
        Run K-means over the seed corpus plus all new patients.

        Stats are recomputed over the combined population and the run uses
        the configured fixed seed, so identical data gives identical results.

        Args:
            k: Number of clusters (default: config.default_k)
            max_iterations: Iteration cap (default: config.max_iterations)

        Returns:
            The new current ClusteringResult
        """
        self._ensure_loaded()
        k = self.config.default_k if k is None else k
        max_iterations = self.config.max_iterations if max_iterations is None else max_iterations

        population = self._population()
        self._validate_k(k, len(population))

        raw = vectors_to_matrix(population)
        stats = self.normalizer.compute_stats(raw)
        X = self.normalizer.normalize(raw, stats)

        rng = np.random.default_rng(self.config.random_seed)
        kmeans = KMeansEngine(k, max_iterations, rng=rng)
        labels = kmeans.fit_predict(X)
        centroids = kmeans.get_cluster_centers()

        sampling_rng = rng if self.config.silhouette_sampling == 'random' else None
        score = silhouette_score(X, labels, k,
                                 sample_size=self.config.silhouette_sample_size,
                                 rng=sampling_rng)

        patient_ids = [p.patient_id for p in population]
        clusters = self.interpreter.build_clusters(
            self.normalizer.denormalize(centroids, stats), labels, patient_ids, raw
        )

        result = ClusteringResult(
            clusters=clusters,
            assignments={pid: int(label) for pid, label in zip(patient_ids, labels)},
            silhouette_score=score,
            iterations=kmeans.n_iter_,
            converged=kmeans.converged_,
            k=k,
            total_patients=len(population),
        )

        # Commit only after the write succeeded
        self.state_store.save(self._new_patients, stats, centroids)
        self.normalizer.stats = stats
        self._set_model(stats, centroids, [c.phenotype for c in clusters])
        self._last_result = result

        if kmeans.converged_:
            logger.info("Clustered %d patients into %d clusters in %d iterations (silhouette=%.3f)",
                        result.total_patients, k, result.iterations, score)
        else:
            logger.warning("K-means did not converge within %d iterations for k=%d",
                           max_iterations, k)
        return result

    def recluster(self, k: Optional[int] = None) -> ClusteringResult:
        """
        Full re-clustering, by default with the k of the last run.

        After a restart the last k is the number of stored centroids.
        """
        self._ensure_loaded()
        if k is None:
            if self._last_result is not None:
                k = self._last_result.k
            elif self._centroids is not None:
                k = len(self._centroids)
            else:
                k = self.config.default_k
        return self.cluster(k)

    def add_patient(self, patient: FeatureVector) -> None:
        """
        Add a patient to the training population and persist it.

        Existing clusters are unaffected until recluster() is called.
        """
        self._ensure_loaded()
        if not patient.is_finite():
            raise InvalidInput(f"Non-finite feature value for patient {patient.patient_id}")
        if any(p.patient_id == patient.patient_id for p in self._population()):
            raise InvalidInput(f"Patient {patient.patient_id} is already in the population")

        self._new_patients.append(patient)
        try:
            self.state_store.save(self._new_patients, self._stats, self._centroids)
        except PersistenceWriteFailure:
            self._new_patients.pop()
            raise

    def assign_patient(self, patient: FeatureVector) -> PatientClusterAssignment:
        """
        Assign a patient to the nearest learned phenotype.

        Uses the stats of the last run (not recomputed). Clusters with the
        default k first if no model exists yet.
        """
        self._ensure_loaded()
        if not patient.is_finite():
            raise InvalidInput(f"Non-finite feature value for patient {patient.patient_id}")

        try:
            stats, centroids, phenotypes = self._current_model()
        except NotClusteredYet:
            logger.info("No clustering model yet; clustering with k=%d", self.config.default_k)
            self.cluster()
            stats, centroids, phenotypes = self._current_model()

        x = self.normalizer.normalize(patient.to_array()[np.newaxis, :], stats)
        distances = cdist(x, centroids, 'euclidean').ravel()
        order = np.argsort(distances, kind='stable')

        best = int(order[0])
        if len(order) > 1:
            nearest_other: Optional[int] = int(order[1])
            coefficient = approximate_silhouette(distances[best], distances[nearest_other])
        else:
            nearest_other = None
            coefficient = 0.0

        phenotype = phenotypes[best]
        return PatientClusterAssignment(
            patient_id=patient.patient_id,
            cluster_id=best,
            phenotype=phenotype,
            distance_to_centroid=float(distances[best]),
            nearest_other_cluster=nearest_other,
            silhouette_coefficient=coefficient,
            recommendations=generate_recommendations(patient, phenotype),
        )

    def find_optimal_k(self, min_k: int = 2, max_k: int = 8) -> List[OptimalKEntry]:
        """
        Inertia and silhouette for each k in [min_k, max_k], for elbow selection.

        Every pass uses the fixed seed and a reduced iteration cap. Engine
        state is left untouched and no k is chosen.
        """
        X = self.get_normalized_population()
        n = X.shape[0]
        if min_k < 1 or max_k < min_k or max_k > n:
            raise InvalidK(f"Invalid k range [{min_k}, {max_k}] for {n} patients")

        results = []
        for k in range(min_k, max_k + 1):
            rng = np.random.default_rng(self.config.random_seed)
            kmeans = KMeansEngine(k, self.config.optimal_k_max_iterations, rng=rng)
            labels = kmeans.fit_predict(X)

            sampling_rng = rng if self.config.silhouette_sampling == 'random' else None
            results.append(OptimalKEntry(
                k=k,
                inertia=compute_inertia(X, labels, kmeans.get_cluster_centers()),
                silhouette=silhouette_score(X, labels, k,
                                            sample_size=self.config.optimal_k_sample_size,
                                            rng=sampling_rng),
            ))
        return results

    def get_feature_importance(self) -> List[FeatureImportance]:
        """
        Variance of each feature across the denormalized centroids.

        Higher variance means the feature separates clusters more strongly.
        Empty if nothing has been clustered yet.
        """
        self._ensure_loaded()
        try:
            stats, centroids, _ = self._current_model()
        except NotClusteredYet:
            return []

        variances = np.var(self.normalizer.denormalize(centroids, stats), axis=0)
        importance = [FeatureImportance(feature=name, variance=float(v))
                      for name, v in zip(FEATURE_NAMES, variances)]
        importance.sort(key=lambda item: item.variance, reverse=True)
        return importance

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    def get_synthetic_dataset(self) -> List[FeatureVector]:
        """Snapshot of the seed corpus."""
        return list(self._seed_corpus)

    def get_last_result(self) -> Optional[ClusteringResult]:
        return self._last_result

    def get_new_patients(self) -> List[FeatureVector]:
        self._ensure_loaded()
        return list(self._new_patients)

    def get_normalized_population(self) -> np.ndarray:
        """
        Seed corpus plus new patients, z-scored with freshly computed stats.

        Rows follow get_synthetic_dataset() + get_new_patients().
        """
        self._ensure_loaded()
        raw = vectors_to_matrix(self._population())
        return self.normalizer.normalize(raw, self.normalizer.compute_stats(raw))

    def reset_new_patients(self) -> None:
        """Drop accumulated patients and the current model."""
        self._ensure_loaded()
        self.state_store.save([], None, None)
        self._new_patients = []
        self._set_model(None, None)
        self._last_result = None
        self.normalizer.stats = None
