"""
Care recommendations keyed by recovery phenotype.
"""

from typing import Callable, Dict, List, Optional, Tuple

from .data_structures import FeatureVector, RecoveryPhenotype

Rule = Tuple[Optional[Callable[[FeatureVector], bool]], str]

# (condition, recommendation); a None condition always applies
RECOMMENDATION_RULES: Dict[RecoveryPhenotype, List[Rule]] = {
    RecoveryPhenotype.FAST_RECOVERER: [
        (None, "Continue current recovery plan - patient on track for early milestones"),
        (lambda p: p.exercise_completion_rate > 0.9, "Consider advancing physical therapy goals"),
        (None, "Monitor for overexertion; ensure adequate rest periods"),
    ],
    RecoveryPhenotype.STEADY_RECOVERER: [
        (None, "Standard recovery protocol with regular milestone monitoring"),
        (lambda p: p.pain_level > 4, "Optimize pain management to support rehabilitation"),
        (lambda p: p.medication_adherence < 0.8, "Address medication adherence with reminders"),
        (None, "Encourage consistent exercise and mobility activities"),
    ],
    RecoveryPhenotype.STRUGGLING: [
        (None, "Intensive recovery support protocol"),
        (lambda p: p.pain_level > 6, "Urgent pain management review needed"),
        (lambda p: p.mobility_score < 3, "Physical therapy intensification; consider assistive devices"),
        (lambda p: p.mood_score < 4, "Screen for post-operative depression; consider mental health referral"),
        (lambda p: p.albumin < 3.0, "Nutritional supplementation for wound healing support"),
        (None, "Increase follow-up frequency to twice weekly"),
    ],
    RecoveryPhenotype.COMPLEX: [
        (None, "Individualized care plan addressing specific deficits"),
        (lambda p: p.wound_healing_score < 4, "Wound care specialist consultation"),
        (lambda p: p.medication_adherence < 0.6, "Comprehensive medication management review"),
        (lambda p: p.sleep_quality_score < 4, "Sleep hygiene assessment and intervention"),
        (None, "Multidisciplinary team review recommended"),
    ],
    RecoveryPhenotype.UNASSIGNED: [
        (None, "Standard post-operative follow-up protocol"),
    ],
}


def generate_recommendations(patient: FeatureVector,
                             phenotype: RecoveryPhenotype) -> List[str]:
    """Recommendations for a patient, in rule-table order."""
    return [
        text for condition, text in RECOMMENDATION_RULES[phenotype]
        if condition is None or condition(patient)
    ]
