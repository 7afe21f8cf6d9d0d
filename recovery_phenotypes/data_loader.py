"""
Data loading utilities for patient feature vectors.
"""

import logging
from typing import Any, Dict, List

import pandas as pd

from .data_structures import FeatureVector, FEATURE_NAMES
from .exceptions import InvalidInput

logger = logging.getLogger(__name__)


class FeatureVectorLoader:
    """Load training corpora of FeatureVectors from tabular data."""

    @staticmethod
    def from_dataframe(df: pd.DataFrame,
                       patient_id_col: str = 'patient_id') -> List[FeatureVector]:
        """
        Load feature vectors from a pandas DataFrame.

        Expected DataFrame columns:
        - patient_id: unique patient identifier
        - one numeric column per feature in FEATURE_NAMES

        Rows with a missing or non-numeric feature value are skipped.

        Args:
            df: Input DataFrame, one row per patient
            patient_id_col: Name of patient ID column

        Returns:
            List of FeatureVector objects
        """
        missing = [col for col in (patient_id_col,) + FEATURE_NAMES if col not in df.columns]
        if missing:
            raise InvalidInput(f"Missing columns: {missing}")

        features = df[list(FEATURE_NAMES)].apply(pd.to_numeric, errors='coerce')
        valid = features.notna().all(axis=1) & df[patient_id_col].notna()
        skipped = int((~valid).sum())
        if skipped:
            logger.warning("Skipped %d rows with missing or invalid feature values", skipped)

        vectors = []
        for pid, row in zip(df.loc[valid, patient_id_col], features[valid].itertuples(index=False)):
            vectors.append(FeatureVector.from_array(str(pid), list(row)))
        return vectors

    @staticmethod
    def from_csv(path: str, patient_id_col: str = 'patient_id') -> List[FeatureVector]:
        """Load feature vectors from a CSV file with one row per patient."""
        return FeatureVectorLoader.from_dataframe(pd.read_csv(path), patient_id_col)

    @staticmethod
    def from_dict_list(data: List[Dict[str, Any]]) -> List[FeatureVector]:
        """
        Load feature vectors from a list of dictionaries.

        Each dictionary needs 'patient_id' and every feature name.
        """
        try:
            return [FeatureVector.from_dict(item) for item in data]
        except (KeyError, TypeError, ValueError) as e:
            raise InvalidInput(f"Invalid patient record: {e}") from e

    @staticmethod
    def to_dataframe(vectors: List[FeatureVector]) -> pd.DataFrame:
        """Convert feature vectors to a DataFrame with one row per patient."""
        return pd.DataFrame(
            [vector.to_dict() for vector in vectors],
            columns=['patient_id'] + list(FEATURE_NAMES),
        )
