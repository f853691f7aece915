"""
Model persistence tests: local store, file export fallback, validation on load
"""
import dataclasses
import json
import numpy as np
import pytest
import torch
from unittest.mock import patch
from automata_ai.core.dqn_model import ValueNetwork
from automata_ai.core.model import BehaviorCloningNetwork, ModelKind, PolicyModel
from automata_ai.storage.local_store import LocalStore, StorageQuotaError
from automata_ai.storage.model_store import ModelLoadError, ModelStore, SaveStatus

INPUT_SIZE = 21

def _imitation_model():
    torch.manual_seed(0)
    return PolicyModel(ModelKind.IMITATION, BehaviorCloningNetwork(INPUT_SIZE, 9, (16, 8)), trained=True)

def _value_model():
    torch.manual_seed(1)
    return PolicyModel(ModelKind.VALUE, ValueNetwork(INPUT_SIZE, 9, (32, 16), 0.2), trained=True)

def _observations(count=20):
    return np.random.default_rng(3).random((count, INPUT_SIZE)).astype(np.float32)

@pytest.fixture
def store(cfg):
    return ModelStore(LocalStore(quota=cfg.LOCAL_STORE_QUOTA), cfg=cfg)

def test_imitation_model_round_trip_is_exact(store):
    model = _imitation_model()
    result = store.save(model, "policy", {'training_count': 3})
    assert result.status == SaveStatus.OK
    assert result.location == "automata-model/policy"

    loaded, metrics = store.load("policy", kind=ModelKind.IMITATION)
    assert loaded.trained
    assert metrics == {'training_count': 3}
    for observation in _observations():
        original = model.predict(observation)
        restored = loaded.predict(observation)
        assert np.array_equal(original, restored)
        assert int(np.argmax(original)) == int(np.argmax(restored))

def test_value_model_round_trip_is_exact(store):
    model = _value_model()
    assert store.save(model, "value").saved
    loaded, _ = store.load("value", kind=ModelKind.VALUE)
    assert loaded.architecture == model.architecture
    for observation in _observations():
        assert np.array_equal(model.predict(observation), loaded.predict(observation))

def test_over_quota_falls_back_to_file_export(cfg):
    store = ModelStore(LocalStore(quota=100), cfg=cfg)
    model = _imitation_model()
    result = store.save(model, "policy")
    assert result.status == SaveStatus.FALLBACK
    assert result.saved
    assert result.location.startswith(cfg.EXPORT_PATH)
    assert result.size_bytes > 0
    assert store.list_models() == []

    loaded, _ = store.load(path=result.location, kind=ModelKind.IMITATION)
    observation = _observations(1)[0]
    assert np.array_equal(model.predict(observation), loaded.predict(observation))

def test_oversized_document_skips_local_store(cfg):
    small = dataclasses.replace(cfg, MAX_LOCAL_MODEL_BYTES=1000)
    store = ModelStore(LocalStore(), cfg=small)
    result = store.save(_imitation_model(), "policy")
    assert result.status == SaveStatus.FALLBACK
    with open(result.location) as f:
        assert json.load(f)['kind'] == "imitation"

def test_both_locations_failing_is_an_error(cfg):
    store = ModelStore(LocalStore(quota=100), cfg=cfg)
    with patch('automata_ai.storage.model_store.save_json', return_value=False):
        result = store.save(_imitation_model(), "policy")
    assert result.status == SaveStatus.ERROR
    assert not result.saved
    assert result.error

def test_missing_model_raises(store):
    with pytest.raises(ModelLoadError):
        store.load("nothing-here")
    with pytest.raises(ModelLoadError):
        store.load(path="/nonexistent/model.json")

def test_wrong_kind_raises(store):
    store.save(_value_model(), "value")
    with pytest.raises(ModelLoadError):
        store.load("value", kind=ModelKind.IMITATION)

def _tamper(store, name, mutate):
    key = store.key_for(name)
    document = json.loads(store.local_store.get_item(key))
    mutate(document)
    store.local_store.set_item(key, json.dumps(document))

def test_tampered_shape_raises(store):
    store.save(_imitation_model(), "policy")

    def _shrink(document):
        weight = document['weights'][0]
        weight['shape'] = [weight['shape'][0] - 1, weight['shape'][1]]
    _tamper(store, "policy", _shrink)

    with pytest.raises(ModelLoadError, match="shape"):
        store.load("policy")

def test_unknown_version_raises(store):
    store.save(_imitation_model(), "policy")
    _tamper(store, "policy", lambda document: document.update(format_version=1))
    with pytest.raises(ModelLoadError, match="version"):
        store.load("policy")

def test_corrupt_payload_raises(store):
    store.local_store.set_item(store.key_for("policy"), "{not json")
    with pytest.raises(ModelLoadError):
        store.load("policy")

def test_list_and_delete(store):
    store.save(_imitation_model(), "a")
    store.save(_value_model(), "b")
    assert store.list_models() == ["a", "b"]
    assert store.delete("a")
    assert not store.delete("a")
    assert store.list_models() == ["b"]

def test_directory_store_persists_across_instances(tmp_path):
    path = str(tmp_path / "local")
    first = LocalStore(path, quota=10_000)
    first.set_item("automata-model/policy", "{\"x\": 1}")
    second = LocalStore(path, quota=10_000)
    assert second.keys() == ["automata-model/policy"]
    assert second.get_item("automata-model/policy") == "{\"x\": 1}"
    assert second.usage() == len("{\"x\": 1}")

def test_quota_is_enforced():
    store = LocalStore(quota=10)
    store.set_item("a", "12345")
    with pytest.raises(StorageQuotaError):
        store.set_item("b", "123456")
    # Overwriting a key only counts the difference
    store.set_item("a", "1234567890")
    assert store.get_item("a") == "1234567890"
