"""
Reward shaping tests
"""
import pytest
from automata_ai.learning.reward_shaper import RewardShaper, RewardSnapshot
from conftest import make_world

def _snap(health=100.0, score=0.0, game_time=0.0, x=0.5, y=0.5, game_over=False):
    return RewardSnapshot(health=health, score=score, game_time=game_time, x=x, y=y, game_over=game_over)

def test_survival_only_in_open_field(cfg):
    shaper = RewardShaper(cfg)
    reward = shaper.compute(_snap(), _snap(game_time=0.15))
    assert reward == pytest.approx(cfg.REWARD_SURVIVAL)
    assert set(shaper.last_components) == {'survival'}

def test_damage_and_kills(cfg):
    shaper = RewardShaper(cfg)
    reward = shaper.compute(_snap(), _snap(health=90.0, score=2.0, game_time=0.15))
    expected = cfg.REWARD_SURVIVAL - 10 * cfg.REWARD_DAMAGE_SCALE + 2 * cfg.REWARD_KILL_SCALE
    assert reward == pytest.approx(expected)

def test_no_damage_bonus_after_streak(cfg):
    shaper = RewardShaper(cfg)
    shaper.compute(_snap(), _snap(game_time=1.0))
    reward = shaper.compute(_snap(game_time=5.0), _snap(game_time=6.0))
    assert 'no_damage' in shaper.last_components
    assert reward == pytest.approx(cfg.REWARD_SURVIVAL + cfg.REWARD_NO_DAMAGE_BONUS)

def test_edge_and_corner_penalties(cfg):
    shaper = RewardShaper(cfg)
    shaper.compute(_snap(), _snap(x=0.05))
    assert shaper.last_components['boundary'] == pytest.approx(-cfg.REWARD_EDGE_PENALTY)
    shaper.compute(_snap(), _snap(x=0.05, y=0.95))
    expected = 2 * cfg.REWARD_EDGE_PENALTY + cfg.REWARD_CORNER_PENALTY
    assert shaper.last_components['boundary'] == pytest.approx(-expected)

def test_death_replaces_survival(cfg):
    shaper = RewardShaper(cfg)
    shaper.compute(_snap(), _snap(game_over=True))
    assert 'survival' not in shaper.last_components
    assert shaper.last_components['death'] == -cfg.REWARD_DEATH_PENALTY

def test_snapshot_from_world():
    snapshot = RewardSnapshot.from_world(make_world(px=200.0, py=150.0, health=80.0, score=3.0))
    assert snapshot.x == pytest.approx(0.25) and snapshot.y == pytest.approx(0.25)
    assert snapshot.health == 80.0 and snapshot.score == 3.0
    assert RewardSnapshot.from_world(make_world(player=False)) is None
