"""
Tests for phenotype interpretation and care recommendations.
"""

import numpy as np

from recovery_phenotypes.data_structures import FEATURE_NAMES, FeatureVector, RecoveryPhenotype
from recovery_phenotypes.interpretation import PHENOTYPE_DESCRIPTIONS, PhenotypeInterpreter
from recovery_phenotypes.recommendations import RECOMMENDATION_RULES, generate_recommendations


def create_centroid(**values) -> np.ndarray:
    base = dict(mobility_score=5, functional_independence=5, pain_level=5,
                medication_adherence=0.7, comorbidity_count=2)
    base.update(values)
    return np.array([base.get(name, 0.0) for name in FEATURE_NAMES], dtype=float)


def create_patient(**overrides) -> FeatureVector:
    values = {name: 5.0 for name in FEATURE_NAMES}
    values.update(medication_adherence=0.9, exercise_completion_rate=0.5, albumin=3.5)
    values.update(overrides)
    return FeatureVector(patient_id='rec-001', **values)


def test_fast_recoverer():
    phenotype, description = PhenotypeInterpreter().interpret(create_centroid(
        mobility_score=8, functional_independence=8, pain_level=2, medication_adherence=0.9))
    assert phenotype == RecoveryPhenotype.FAST_RECOVERER
    assert len(description) > 20


def test_steady_recoverer():
    phenotype, _ = PhenotypeInterpreter().interpret(create_centroid(
        mobility_score=5, functional_independence=5, pain_level=4, comorbidity_count=2))
    assert phenotype == RecoveryPhenotype.STEADY_RECOVERER


def test_fast_rule_needs_adherence():
    """High function but poor adherence falls through to the next rule."""
    phenotype, _ = PhenotypeInterpreter().interpret(create_centroid(
        mobility_score=8, functional_independence=8, pain_level=2, medication_adherence=0.5))
    assert phenotype == RecoveryPhenotype.STEADY_RECOVERER


def test_struggling():
    phenotype, _ = PhenotypeInterpreter().interpret(create_centroid(
        mobility_score=2, functional_independence=2, pain_level=8, comorbidity_count=5))
    assert phenotype == RecoveryPhenotype.STRUGGLING


def test_complex():
    # Decent mobility but many comorbidities
    phenotype, _ = PhenotypeInterpreter().interpret(create_centroid(
        mobility_score=5, functional_independence=5, pain_level=5, comorbidity_count=5))
    assert phenotype == RecoveryPhenotype.COMPLEX
    # Low mobility without high pain
    phenotype, _ = PhenotypeInterpreter().interpret(create_centroid(
        mobility_score=2, functional_independence=2, pain_level=3))
    assert phenotype == RecoveryPhenotype.COMPLEX


def test_every_phenotype_has_description_and_rules():
    for phenotype in RecoveryPhenotype:
        assert len(PHENOTYPE_DESCRIPTIONS[phenotype]) > 20
        assert RECOMMENDATION_RULES[phenotype]


def test_build_clusters():
    raw = np.vstack([create_centroid(pain_level=2), create_centroid(pain_level=4),
                     create_centroid(pain_level=9)])
    centroids = np.vstack([create_centroid(pain_level=3), create_centroid(pain_level=9)])
    clusters = PhenotypeInterpreter().build_clusters(
        centroids, np.array([0, 0, 1]), ['a', 'b', 'c'], raw)

    assert [c.cluster_id for c in clusters] == [0, 1]
    assert clusters[0].patient_ids == ('a', 'b')
    assert clusters[0].size == 2
    assert clusters[0].average_features['pain_level'] == 3.0
    assert clusters[1].centroid[FEATURE_NAMES.index('pain_level')] == 9.0


def test_struggling_recommendations():
    patient = create_patient(pain_level=8, mobility_score=2, mood_score=3, albumin=2.5)
    recs = generate_recommendations(patient, RecoveryPhenotype.STRUGGLING)

    assert recs[0] == "Intensive recovery support protocol"
    assert "Urgent pain management review needed" in recs
    assert any("depression" in r for r in recs)
    assert any("Nutritional" in r for r in recs)
    assert recs[-1] == "Increase follow-up frequency to twice weekly"


def test_recommendations_depend_on_thresholds():
    calm = create_patient(pain_level=2, medication_adherence=0.95)
    sore = create_patient(pain_level=6, medication_adherence=0.5)

    calm_recs = generate_recommendations(calm, RecoveryPhenotype.STEADY_RECOVERER)
    sore_recs = generate_recommendations(sore, RecoveryPhenotype.STEADY_RECOVERER)
    assert len(calm_recs) == 2
    assert len(sore_recs) == 4

    fast = generate_recommendations(create_patient(exercise_completion_rate=0.95),
                                    RecoveryPhenotype.FAST_RECOVERER)
    assert "Consider advancing physical therapy goals" in fast

    complex_recs = generate_recommendations(
        create_patient(wound_healing_score=3, sleep_quality_score=3, medication_adherence=0.5),
        RecoveryPhenotype.COMPLEX)
    assert len(complex_recs) == 5


def test_unassigned_recommendation():
    assert generate_recommendations(create_patient(), RecoveryPhenotype.UNASSIGNED) == [
        "Standard post-operative follow-up protocol"]
