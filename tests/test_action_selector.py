"""
Action selector tests: boundary override, danger penalty, crowd escape, sampling
"""
import numpy as np
import pytest
from automata_ai.core.action_selector import ActionSelector, BlendMode
from automata_ai.core.actions import Action
from conftest import make_context

UNIFORM = np.full(9, 1.0 / 9.0)

def test_left_edge_pure_imitation(cfg):
    selector = ActionSelector(cfg)
    weights = selector.blend(UNIFORM, make_context(x=0.02, y=0.5), BlendMode.PURE_IMITATION)
    for action in (Action.LEFT, Action.UP_LEFT, Action.DOWN_LEFT):
        assert weights[action] == pytest.approx(UNIFORM[action] * cfg.BOUNDARY_PENALTY)
    for action in (Action.STAY, Action.UP, Action.DOWN, Action.RIGHT, Action.UP_RIGHT, Action.DOWN_RIGHT):
        assert weights[action] == pytest.approx(UNIFORM[action])

def test_center_is_untouched_in_pure_mode(cfg):
    selector = ActionSelector(cfg)
    crowd = [(0.52, 0.5), (0.48, 0.5), (0.5, 0.52), (0.5, 0.48)]
    weights = selector.blend(UNIFORM, make_context(hostiles=crowd), BlendMode.PURE_IMITATION)
    np.testing.assert_allclose(weights, UNIFORM)

def test_crowd_escape_drops_stay(cfg):
    selector = ActionSelector(cfg)
    crowd = [(0.55, 0.5), (0.45, 0.5), (0.5, 0.55), (0.5, 0.45)]
    weights = selector.blend(UNIFORM, make_context(hostiles=crowd), BlendMode.ASSISTED)
    assert weights[Action.STAY] <= UNIFORM[Action.STAY] / 100.0
    assert selector.crowd_escapes == 1

def test_crowd_escape_prefers_open_side(cfg):
    selector = ActionSelector(cfg)
    # Everything on the right side: moving left should dominate
    crowd = [(0.56, 0.5), (0.56, 0.45), (0.56, 0.55), (0.6, 0.5)]
    weights = selector.blend(UNIFORM, make_context(hostiles=crowd), BlendMode.ASSISTED)
    assert int(np.argmax(weights)) in (Action.LEFT, Action.UP_LEFT, Action.DOWN_LEFT)
    assert weights[Action.RIGHT] < weights[Action.LEFT]

def test_danger_penalizes_approach(cfg):
    selector = ActionSelector(cfg)
    weights = selector.blend(UNIFORM, make_context(hostiles=[(0.58, 0.5)]), BlendMode.ASSISTED)
    assert weights[Action.RIGHT] < weights[Action.LEFT]
    assert selector.crowd_escapes == 0

def test_elite_danger_is_higher(cfg):
    selector = ActionSelector(cfg)
    regular = selector.action_danger(make_context(hostiles=[(0.58, 0.5, 0.0)]))
    elite = selector.action_danger(make_context(hostiles=[(0.58, 0.5, 1.0)]))
    assert elite[Action.RIGHT] == pytest.approx(2 * regular[Action.RIGHT])

def test_wrong_shape_rejected(cfg):
    with pytest.raises(ValueError):
        ActionSelector(cfg).blend(np.ones(4), make_context(), BlendMode.ASSISTED)

def test_sample_action_degenerate_weights():
    rng = np.random.default_rng(0)
    assert ActionSelector.sample_action(np.zeros(9), rng) == Action.STAY
    assert ActionSelector.sample_action(np.full(9, np.nan), rng) == Action.STAY

def test_sample_action_one_hot():
    rng = np.random.default_rng(0)
    weights = np.zeros(9)
    weights[Action.DOWN_LEFT] = 5.0
    assert all(ActionSelector.sample_action(weights, rng) == Action.DOWN_LEFT for _ in range(50))

def test_sample_action_follows_weights():
    rng = np.random.default_rng(7)
    weights = np.zeros(9)
    weights[Action.UP] = 3.0
    weights[Action.DOWN] = 1.0
    draws = [ActionSelector.sample_action(weights, rng) for _ in range(2000)]
    assert set(draws) == {Action.UP, Action.DOWN}
    assert 0.65 < draws.count(Action.UP) / len(draws) < 0.85
