"""
Tests for the key-value stores and engine state encoding.
"""

import os

import numpy as np
import pytest

from recovery_phenotypes.data_structures import N_FEATURES, PopulationStats
from recovery_phenotypes.exceptions import PersistenceReadFailure, PersistenceWriteFailure
from recovery_phenotypes.persistence import EngineStateStore, FileStore, InMemoryStore
from recovery_phenotypes.synthetic import generate_synthetic_dataset


class FailingStore(InMemoryStore):
    """Store whose writes always fail."""

    def set(self, key, value):
        raise OSError("disk full")


def create_state():
    patients = generate_synthetic_dataset(group_sizes={'fast': 2, 'complex': 1})
    stats = PopulationStats(means=np.arange(N_FEATURES, dtype=float), stds=np.ones(N_FEATURES))
    centroids = np.random.default_rng(0).normal(size=(3, N_FEATURES))
    return patients, stats, centroids


def test_in_memory_store():
    store = InMemoryStore()
    assert store.get('missing') is None
    store.set('key', b'value')
    assert store.get('key') == b'value'


def test_file_store(tmp_path):
    store = FileStore(str(tmp_path / 'state'))
    assert store.get('key') is None

    store.set('key', b'first')
    store.set('key', b'second')
    assert store.get('key') == b'second'
    # No temporary files left behind
    assert os.listdir(tmp_path / 'state') == ['key.json']


def test_state_round_trip(tmp_path):
    patients, stats, centroids = create_state()
    state = EngineStateStore(FileStore(str(tmp_path)))
    state.save(patients, stats, centroids)

    loaded_patients, loaded_stats, loaded_centroids = state.load()
    assert loaded_patients == patients
    assert loaded_stats.means == pytest.approx(stats.means)
    assert loaded_stats.stds == pytest.approx(stats.stds)
    assert loaded_centroids == pytest.approx(centroids)


def test_empty_state():
    assert EngineStateStore(InMemoryStore()).load() == ([], None, None)


def test_corrupt_record_raises_read_failure():
    store = InMemoryStore()
    state = EngineStateStore(store, prefix='test_')
    store.set('test_state', b'{not json')

    with pytest.raises(PersistenceReadFailure):
        state.load()


def test_malformed_records_raise_read_failure():
    patients, stats, centroids = create_state()

    store = InMemoryStore()
    state = EngineStateStore(store)
    state.save(patients, stats, centroids[:, :5])
    with pytest.raises(PersistenceReadFailure):
        state.load()

    state.save(patients, stats, None)
    with pytest.raises(PersistenceReadFailure):
        state.load()

    store.set(state.state_key, b'{"new_patients": [{"patient_id": "x"}], '
              b'"feature_stats": null, "centroids": null}')
    with pytest.raises(PersistenceReadFailure):
        state.load()

    store.set(state.state_key, b'[1, 2, 3]')
    with pytest.raises(PersistenceReadFailure):
        state.load()


def test_write_failure():
    patients, stats, centroids = create_state()
    with pytest.raises(PersistenceWriteFailure):
        EngineStateStore(FailingStore()).save(patients, stats, centroids)


class FailAfterFirstWriteStore(InMemoryStore):
    """Store that accepts one write, then fails every later one."""

    def __init__(self):
        super().__init__()
        self.writes = 0

    def set(self, key, value):
        self.writes += 1
        if self.writes > 1:
            raise OSError("disk full")
        super().set(key, value)


def test_failed_save_keeps_previous_state_whole():
    patients, stats, centroids = create_state()
    store = FailAfterFirstWriteStore()
    state = EngineStateStore(store)
    state.save(patients, stats, centroids)

    new_stats = PopulationStats(means=np.zeros(N_FEATURES), stds=np.full(N_FEATURES, 2.0))
    with pytest.raises(PersistenceWriteFailure):
        state.save(patients[:1], new_stats, centroids[:2])

    loaded_patients, loaded_stats, loaded_centroids = state.load()
    assert loaded_patients == patients
    assert loaded_stats.means == pytest.approx(stats.means)
    assert loaded_stats.stds == pytest.approx(stats.stds)
    assert loaded_centroids == pytest.approx(centroids)


def test_state_is_a_single_record():
    patients, stats, centroids = create_state()
    store = InMemoryStore()
    EngineStateStore(store, prefix='test_').save(patients, stats, centroids)
    assert store.get('test_state') is not None
    assert store.get('test_new_patients') is None
    assert store.get('test_centroids') is None
