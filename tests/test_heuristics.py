"""
Heuristic policy tests
"""
import numpy as np
from automata_ai.core.actions import Action
from automata_ai.core.heuristics import bootstrap_action, exploration_weights, heuristic_action
from conftest import make_context

def test_bootstrap_leaves_edges(cfg):
    assert bootstrap_action(make_context(x=0.05), cfg) == Action.RIGHT
    assert bootstrap_action(make_context(x=0.95), cfg) == Action.LEFT
    assert bootstrap_action(make_context(y=0.05), cfg) == Action.DOWN
    assert bootstrap_action(make_context(y=0.95), cfg) == Action.UP

def test_bootstrap_flees_nearest_hostile(cfg):
    context = make_context(x=0.5, y=0.5, hostiles=[(0.6, 0.5), (0.5, 0.9)])
    assert bootstrap_action(context, cfg) == Action.LEFT

def test_bootstrap_escapes_sideways_near_edge(cfg):
    # Fleeing left would enter the edge band, so step perpendicular
    context = make_context(x=0.2, y=0.45, hostiles=[(0.3, 0.5)])
    assert bootstrap_action(context, cfg) == Action.UP

def test_bootstrap_stays_at_center(cfg):
    assert bootstrap_action(make_context(), cfg) == Action.STAY

def test_bootstrap_drifts_back_to_center(cfg):
    assert bootstrap_action(make_context(x=0.2, y=0.8), cfg) == Action.UP

def test_exploration_damps_edges_and_threats(cfg):
    weights = exploration_weights(make_context(x=0.2, y=0.5, hostiles=[(0.4, 0.5)]), cfg)
    assert weights[Action.LEFT] < 1.0
    assert weights[Action.RIGHT] < 1.0
    assert weights[Action.UP] == 1.0

def test_low_health_boosts_stay(cfg):
    weights = exploration_weights(make_context(health=0.1), cfg)
    assert weights[Action.STAY] == cfg.HEURISTIC_STAY_BOOST

def test_heuristic_action_in_range(cfg):
    rng = np.random.default_rng(0)
    context = make_context(x=0.3, y=0.6, hostiles=[(0.35, 0.6, 1.0)])
    assert all(0 <= heuristic_action(context, rng, cfg) < 9 for _ in range(50))
