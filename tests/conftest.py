"""
Shared fixtures: deterministic config and world snapshot builders
"""
import dataclasses
import numpy as np
import pytest
from automata_ai.config import Config
from automata_ai.core.encoder import ThreatContext
from automata_ai.core.world import Hostile, PlayerState, WorldSnapshot

@pytest.fixture
def cfg(tmp_path):
    """Config with fixed seed, synchronous training and a temp export dir"""
    return dataclasses.replace(
        Config(),
        RANDOM_SEED=0,
        TRAIN_ASYNC=False,
        DEVICE="cpu",
        LOCAL_STORE_PATH=None,
        EXPORT_PATH=str(tmp_path / "exports"),
        LOG_PATH=str(tmp_path / "logs"),
    )

@pytest.fixture
def rng():
    return np.random.default_rng(1234)

def make_world(px=400.0, py=300.0, hostiles=(), width=800.0, height=600.0, health=100.0,
               game_time=0.0, elapsed_time=None, score=0.0, game_over=False, player=True,
               level_up_active=False):
    """WorldSnapshot builder; hostiles are (x, y) or (x, y, elite) tuples or Hostile objects"""
    built = []
    for hostile in hostiles:
        if isinstance(hostile, Hostile):
            built.append(hostile)
        else:
            built.append(Hostile(*hostile))
    return WorldSnapshot(
        width=width,
        height=height,
        player=PlayerState(px, py, health, 100.0) if player else None,
        hostiles=tuple(built),
        elapsed_time=game_time if elapsed_time is None else elapsed_time,
        game_time=game_time,
        score=score,
        game_over=game_over,
        level_up_active=level_up_active,
    )

def make_context(x=0.5, y=0.5, hostiles=(), health=1.0):
    """ThreatContext builder with normalized (x, y, elite) hostiles"""
    if hostiles:
        array = np.array([list(h) + [0.0] * (3 - len(h)) for h in hostiles], dtype=np.float64)
    else:
        array = np.zeros((0, 3), dtype=np.float64)
    return ThreatContext(x=x, y=y, health=health, hostiles=array)

@pytest.fixture
def world_factory():
    return make_world

@pytest.fixture
def context_factory():
    return make_context
