"""
Persistence of engine state behind a minimal key-value port.
"""

import json
import logging
import os
import tempfile
from typing import Dict, List, Optional, Protocol, Tuple

import numpy as np

from .config import STORAGE_PREFIX
from .data_structures import FeatureVector, N_FEATURES, PopulationStats
from .exceptions import PersistenceReadFailure, PersistenceWriteFailure

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    """get/set contract the engine persists through."""

    def get(self, key: str) -> Optional[bytes]:
        ...

    def set(self, key: str, value: bytes) -> None:
        ...


class InMemoryStore:
    """Dictionary-backed store, e.g. for tests or short-lived engines."""

    def __init__(self):
        self._data: Dict[str, bytes] = {}

    def get(self, key: str) -> Optional[bytes]:
        return self._data.get(key)

    def set(self, key: str, value: bytes) -> None:
        self._data[key] = bytes(value)


class FileStore:
    """
    One file per key inside a directory.

    Each write goes to a temporary file that is then renamed over the
    target, so a record is either fully old or fully new.
    """

    def __init__(self, directory: str):
        self.directory = directory
        os.makedirs(directory, exist_ok=True)

    def _path(self, key: str) -> str:
        return os.path.join(self.directory, f"{key}.json")

    def get(self, key: str) -> Optional[bytes]:
        path = self._path(key)
        if not os.path.exists(path):
            return None
        with open(path, "rb") as f:
            return f.read()

    def set(self, key: str, value: bytes) -> None:
        fd, tmp_path = tempfile.mkstemp(dir=self.directory, prefix=f".{key}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(value)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self._path(key))
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise


class EngineStateStore:
    """
    JSON encoding of the engine state: accumulated new patients, last
    population stats and last centroids (normalized space).

    The three records live in one document under a single key, so a save
    either replaces all of them or none.
    """

    def __init__(self, store: KeyValueStore, prefix: str = STORAGE_PREFIX):
        self.store = store
        self.state_key = f"{prefix}state"

    def _read(self, key: str):
        try:
            raw = self.store.get(key)
            if raw is None:
                return None
            return json.loads(raw.decode("utf-8"))
        except (OSError, UnicodeDecodeError, ValueError) as e:
            raise PersistenceReadFailure(f"Could not read '{key}': {e}") from e

    def _write(self, key: str, value) -> None:
        try:
            self.store.set(key, json.dumps(value).encode("utf-8"))
        except (OSError, TypeError, ValueError) as e:
            raise PersistenceWriteFailure(f"Could not write '{key}': {e}") from e

    def load(self) -> Tuple[List[FeatureVector], Optional[PopulationStats], Optional[np.ndarray]]:
        """
        Load (new_patients, stats, centroids).

        Raises PersistenceReadFailure if the document is unreadable or malformed.
        """
        document = self._read(self.state_key)
        if document is None:
            return [], None, None

        try:
            patients_data = document["new_patients"]
            stats_data = document["feature_stats"]
            centroids_data = document["centroids"]
            new_patients = [FeatureVector.from_dict(item) for item in patients_data]
            stats = PopulationStats.from_dict(stats_data) if stats_data is not None else None
            centroids = (np.asarray(centroids_data, dtype=float)
                         if centroids_data is not None else None)
        except (KeyError, TypeError, ValueError) as e:
            raise PersistenceReadFailure(f"Malformed engine state: {e}") from e

        if stats is not None and (stats.means.shape != (N_FEATURES,)
                                  or stats.stds.shape != (N_FEATURES,)):
            raise PersistenceReadFailure("Stored feature stats have the wrong shape")
        if centroids is not None and (centroids.ndim != 2 or centroids.shape[1] != N_FEATURES
                                      or centroids.shape[0] == 0):
            raise PersistenceReadFailure("Stored centroids have the wrong shape")
        if (stats is None) != (centroids is None):
            raise PersistenceReadFailure("Stored stats and centroids are out of sync")

        return new_patients, stats, centroids

    def save(self,
             new_patients: List[FeatureVector],
             stats: Optional[PopulationStats],
             centroids: Optional[np.ndarray]) -> None:
        """Replace the whole state document; raises PersistenceWriteFailure."""
        self._write(self.state_key, {
            "new_patients": [p.to_dict() for p in new_patients],
            "feature_stats": stats.to_dict() if stats is not None else None,
            "centroids": centroids.tolist() if centroids is not None else None,
        })
        logger.debug("Persisted %d new patients", len(new_patients))
