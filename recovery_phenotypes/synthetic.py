"""
Synthetic training corpus of post-operative patients.

WARNING: generated algorithmically. It does not represent real patients and
must not be used for clinical decisions.
"""

import numpy as np
from typing import Dict, List, Optional, Tuple

from .config import SYNTHETIC_SEED
from .data_structures import FeatureVector, FEATURE_NAMES

# feature -> (low, spread); values are drawn uniformly from [low, low + spread)
Profile = Dict[str, Tuple[float, float]]

RECOVERY_PROFILES: Dict[str, Profile] = {
    # Young, healthy, high compliance
    'fast': {
        'age': (35, 20), 'bmi': (20, 8), 'comorbidity_count': (0, 2),
        'heart_rate': (60, 20), 'systolic_bp': (110, 20), 'oxygen_saturation': (96, 4),
        'temperature': (36.5, 0.8), 'hemoglobin': (12, 4), 'white_blood_cell_count': (5, 5),
        'creatinine': (0.7, 0.4), 'albumin': (3.5, 1), 'pain_level': (0, 3),
        'mobility_score': (7, 3), 'wound_healing_score': (7, 3),
        'medication_adherence': (0.85, 0.15), 'days_since_surgery': (3, 14),
        'exercise_completion_rate': (0.8, 0.2), 'sleep_quality_score': (7, 3),
        'appetite_score': (7, 3), 'mood_score': (7, 3), 'functional_independence': (7, 3),
    },
    # Middle-aged, some comorbidities, adequate compliance
    'steady': {
        'age': (50, 20), 'bmi': (24, 10), 'comorbidity_count': (1, 3),
        'heart_rate': (65, 25), 'systolic_bp': (120, 25), 'oxygen_saturation': (94, 5),
        'temperature': (36.5, 1), 'hemoglobin': (11, 4), 'white_blood_cell_count': (5, 7),
        'creatinine': (0.8, 0.6), 'albumin': (3.0, 1.2), 'pain_level': (2, 4),
        'mobility_score': (4, 4), 'wound_healing_score': (5, 3),
        'medication_adherence': (0.65, 0.25), 'days_since_surgery': (5, 21),
        'exercise_completion_rate': (0.5, 0.35), 'sleep_quality_score': (5, 3),
        'appetite_score': (5, 4), 'mood_score': (5, 3), 'functional_independence': (4, 4),
    },
    # Older, multiple comorbidities, poor metrics
    'struggle': {
        'age': (65, 20), 'bmi': (28, 14), 'comorbidity_count': (3, 5),
        'heart_rate': (75, 30), 'systolic_bp': (130, 35), 'oxygen_saturation': (90, 6),
        'temperature': (36.8, 1.5), 'hemoglobin': (9, 3), 'white_blood_cell_count': (7, 10),
        'creatinine': (1.0, 1.5), 'albumin': (2.5, 1), 'pain_level': (5, 5),
        'mobility_score': (1, 4), 'wound_healing_score': (2, 4),
        'medication_adherence': (0.3, 0.4), 'days_since_surgery': (7, 28),
        'exercise_completion_rate': (0.1, 0.4), 'sleep_quality_score': (2, 4),
        'appetite_score': (2, 4), 'mood_score': (2, 4), 'functional_independence': (1, 4),
    },
    # Mixed: good in some areas, poor in others
    'complex': {
        'age': (45, 30), 'bmi': (22, 16), 'comorbidity_count': (2, 4),
        'heart_rate': (70, 25), 'systolic_bp': (115, 35), 'oxygen_saturation': (92, 7),
        'temperature': (36.5, 1.5), 'hemoglobin': (10, 5), 'white_blood_cell_count': (6, 8),
        'creatinine': (0.9, 1), 'albumin': (2.8, 1.5), 'pain_level': (3, 6),
        'mobility_score': (3, 5), 'wound_healing_score': (3, 5),
        'medication_adherence': (0.5, 0.4), 'days_since_surgery': (4, 25),
        'exercise_completion_rate': (0.3, 0.5), 'sleep_quality_score': (3, 5),
        'appetite_score': (4, 5), 'mood_score': (3, 5), 'functional_independence': (3, 5),
    },
}

DEFAULT_GROUP_SIZES: Dict[str, int] = {'fast': 55, 'steady': 60, 'struggle': 50, 'complex': 45}

INTEGER_FEATURES = ('comorbidity_count',)


def generate_synthetic_dataset(seed: int = SYNTHETIC_SEED,
                               group_sizes: Optional[Dict[str, int]] = None) -> List[FeatureVector]:
    """
    Generate synthetic post-operative patients.

    Creates patients from four recovery profiles:
    - Fast recoverers
    - Steady recoverers
    - Struggling patients
    - Complex (mixed) patients

    Args:
        seed: Seed of the generator
        group_sizes: Patients per profile (default: 55/60/50/45)

    Returns:
        List of FeatureVector, ids like 'fast-000'
    """
    rng = np.random.default_rng(seed)
    group_sizes = group_sizes if group_sizes is not None else DEFAULT_GROUP_SIZES

    patients = []
    for group, size in group_sizes.items():
        profile = RECOVERY_PROFILES[group]
        for i in range(size):
            values = []
            for name in FEATURE_NAMES:
                low, spread = profile[name]
                value = low + rng.random() * spread
                if name in INTEGER_FEATURES:
                    value = float(np.floor(value))
                values.append(value)
            patients.append(FeatureVector.from_array(f"{group}-{i:03d}", values))

    return patients
