"""
Imitation learner tests: insufficient data, training, rollback, schedule, back-off, corpus selection
"""
import dataclasses
import numpy as np
import pytest
import torch
from unittest.mock import patch
from automata_ai.core.actions import Action
from automata_ai.learning.human_recorder import DemonstrationExample, DemonstrationStore
from automata_ai.learning.imitation_learner import ImitationLearner

INPUT_SIZE = 21

def _store_with(count, stay_fraction=0.0, seed=0, source="human", store=None):
    """Separable synthetic corpus: feature 8 encodes the label"""
    rng = np.random.default_rng(seed)
    store = store if store is not None else DemonstrationStore()
    stay_count = int(count * stay_fraction)
    for i in range(count):
        action = Action.STAY if i < stay_count else 1 + (i % 8)
        state = rng.random(INPUT_SIZE).astype(np.float32)
        state[0] = state[1] = 0.5
        state[8] = action / 8.0
        store.examples.append(DemonstrationExample(state=state, action=int(action), timestamp=float(i), source=source))
    return store

def _snapshot(learner):
    return {k: v.clone() for k, v in learner.model.network.state_dict().items()}

def _assert_unchanged(learner, snapshot):
    for name, tensor in learner.model.network.state_dict().items():
        assert torch.equal(tensor, snapshot[name])

def test_insufficient_data_leaves_model_unchanged(cfg):
    store = _store_with(cfg.MIN_DEMONSTRATIONS - 1)
    learner = ImitationLearner(INPUT_SIZE, store, cfg=cfg)
    before = _snapshot(learner)
    result = learner.train()
    assert result.status == "insufficient_data"
    assert not learner.trained
    _assert_unchanged(learner, before)
    assert len(store) == cfg.MIN_DEMONSTRATIONS - 1

def test_training_produces_a_usable_policy(cfg):
    store = _store_with(200)
    learner = ImitationLearner(INPUT_SIZE, store, cfg=cfg)
    result = learner.train()
    assert result.status == "trained"
    assert result.examples == 200
    assert result.epochs == 50
    assert 0.0 <= result.val_accuracy <= 1.0
    assert learner.trained
    assert len(store) == 0
    probs = learner.predict_probs(np.full(INPUT_SIZE, 0.5, dtype=np.float32))
    assert probs.shape == (9,)
    assert probs.sum() == pytest.approx(1.0, abs=1e-5)
    assert learner.tracker.metrics.training_count == 1

def test_corpus_kept_when_requested(cfg):
    store = _store_with(150)
    learner = ImitationLearner(INPUT_SIZE, store, cfg=cfg)
    assert learner.train(clear_on_success=False).trained
    assert len(store) == 150

def test_failure_restores_previous_weights(cfg):
    learner = ImitationLearner(INPUT_SIZE, _store_with(150), cfg=cfg)
    before = _snapshot(learner)

    def _broken_fit(states, actions, learning_rate):
        with torch.no_grad():
            for parameter in learner.model.network.parameters():
                parameter.add_(1.0)
        raise RuntimeError("fit exploded")

    with patch.object(learner, '_fit', side_effect=_broken_fit):
        result = learner.train()
    assert result.status == "error"
    assert "fit exploded" in result.error
    assert not learner.trained
    _assert_unchanged(learner, before)
    assert len(learner.store) == 150

def test_busy_while_training_in_flight(cfg):
    learner = ImitationLearner(INPUT_SIZE, _store_with(150), cfg=cfg)
    learner.guard.begin_training()
    assert learner.train().status == "busy"
    learner.guard.end_training()

def test_untrained_policy_is_never_queried(cfg):
    learner = ImitationLearner(INPUT_SIZE, cfg=cfg)
    with patch.object(learner.model.network, 'forward', side_effect=AssertionError("network queried")):
        assert learner.predict_probs(np.zeros(INPUT_SIZE)) is None

def test_schedule_scales_with_data(cfg):
    learner = ImitationLearner(INPUT_SIZE, cfg=cfg)
    assert learner.epochs_for(100) == 50
    assert learner.epochs_for(1500) < learner.epochs_for(100)
    assert learner.epochs_for(5000) < learner.epochs_for(1500)
    learner.model.trained = True
    assert learner.epochs_for(100) == 20
    assert learner.batch_size_for(80) == cfg.MIN_BATCH_SIZE
    assert learner.batch_size_for(400) == 40
    assert learner.batch_size_for(100000) == cfg.MAX_BATCH_SIZE

def test_learning_rate_backs_off_after_plateau(cfg):
    learner = ImitationLearner(INPUT_SIZE, _store_with(150), cfg=cfg)
    learner.tracker.metrics.sessions_since_improvement = cfg.LR_PATIENCE
    result = learner.train()
    assert result.learning_rate == pytest.approx(cfg.BC_LEARNING_RATE * cfg.LR_BACKOFF)

def test_stay_dominated_corpus_is_rebalanced(cfg):
    learner = ImitationLearner(INPUT_SIZE, _store_with(500, stay_fraction=0.8), cfg=cfg)
    states, actions, quality, removed, dropped = learner.prepare_corpus()
    assert quality['score'] >= cfg.QUALITY_FLOOR
    assert removed > 0 and dropped == 0
    assert actions.count(Action.STAY) / len(actions) <= cfg.STAY_MAX_FRACTION
    assert sum(1 for a in actions if a != Action.STAY) == 100

def test_sufficiency_judged_before_stay_down_sampling(cfg):
    store = _store_with(300, stay_fraction=0.8)
    learner = ImitationLearner(INPUT_SIZE, store, cfg=cfg)
    result = learner.train()
    assert result.status == "trained"
    assert result.removed_stay == 215
    assert result.examples == 85
    assert result.quality['total'] == 300
    assert len(store) == 0

def test_wrong_shape_examples_are_dropped(cfg):
    store = _store_with(120)
    store.examples.append(DemonstrationExample(state=np.zeros(136, dtype=np.float32), action=1, timestamp=0.0))
    learner = ImitationLearner(INPUT_SIZE, store, cfg=cfg)
    result = learner.train()
    assert result.trained
    assert result.dropped_inconsistent == 1
    assert result.examples == 120

def test_train_async_reports_completion(cfg):
    learner = ImitationLearner(INPUT_SIZE, _store_with(150), cfg=cfg)
    results = []
    assert learner.train_async(on_complete=results.append)
    assert learner.guard.wait(timeout=60)
    assert results and results[0].trained

def test_examples_added_during_async_fit_survive(cfg):
    store = _store_with(150)
    learner = ImitationLearner(INPUT_SIZE, store, cfg=cfg)
    late = _store_with(40, seed=1).examples
    results = []
    with learner.guard.weights():
        assert learner.train_async(on_complete=results.append)
        store.add_examples(late)
    assert learner.guard.wait(timeout=60)
    assert results[0].trained
    assert results[0].examples == 150
    assert len(store) == 40
    assert all(any(e is kept for kept in store.examples) for e in late)

def test_examples_added_during_sync_fit_survive(cfg):
    store = _store_with(150)
    learner = ImitationLearner(INPUT_SIZE, store, cfg=cfg)
    real_fit = learner._fit

    def _fit_with_arrivals(states, actions, learning_rate):
        store.add_examples(_store_with(40, seed=1).examples)
        return real_fit(states, actions, learning_rate)

    with patch.object(learner, '_fit', side_effect=_fit_with_arrivals):
        assert learner.train().trained
    assert len(store) == 40

def test_async_completion_callback_can_take_the_weights(cfg):
    learner = ImitationLearner(INPUT_SIZE, _store_with(150), cfg=cfg)
    saved = []

    def _on_complete(result):
        with learner.guard.weights():
            saved.append(result.status)

    assert learner.train_async(on_complete=_on_complete)
    assert learner.guard.wait(timeout=60)
    assert saved == ["trained"]
    assert not learner.guard.training

def test_only_human_demonstrations_train_by_default(cfg):
    store = _store_with(120)
    _store_with(50, source="ai", seed=2, store=store)
    learner = ImitationLearner(INPUT_SIZE, store, cfg=cfg)
    result = learner.train()
    assert result.trained
    assert result.examples == 120
    assert len(store) == 50
    assert all(e.source == "ai" for e in store.examples)

def test_ai_frames_alone_are_insufficient(cfg):
    learner = ImitationLearner(INPUT_SIZE, _store_with(150, source="ai"), cfg=cfg)
    result = learner.train()
    assert result.status == "insufficient_data"
    assert result.examples == 0
    assert len(learner.store) == 150

def test_training_sources_are_configurable(cfg):
    mixed = dataclasses.replace(cfg, TRAIN_SOURCES=("human", "ai"))
    store = _store_with(60)
    _store_with(60, source="ai", seed=2, store=store)
    result = ImitationLearner(INPUT_SIZE, store, cfg=mixed).train()
    assert result.trained
    assert result.examples == 120
