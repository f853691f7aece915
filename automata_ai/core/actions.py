"""
Action Table
Maps the 9 discrete movement actions to virtual directional keys and unit deltas
Screen coordinates: +x is right, +y is down
"""
import logging
import math
import numpy as np
from enum import IntEnum
from typing import Dict, FrozenSet, Iterable, Tuple

logger = logging.getLogger(__name__)

class Action(IntEnum):
    """Discrete movement actions (index order is part of the persisted model contract)"""
    STAY = 0
    UP = 1
    UP_RIGHT = 2
    RIGHT = 3
    DOWN_RIGHT = 4
    DOWN = 5
    DOWN_LEFT = 6
    LEFT = 7
    UP_LEFT = 8

# Action mapping table: name, held keys and direction of travel
ACTION_TABLE: Dict[Action, Dict] = {
    Action.STAY: {'name': 'Stay', 'keys': frozenset(), 'dx': 0, 'dy': 0},
    Action.UP: {'name': 'Up', 'keys': frozenset({'up'}), 'dx': 0, 'dy': -1},
    Action.UP_RIGHT: {'name': 'Up-Right', 'keys': frozenset({'up', 'right'}), 'dx': 1, 'dy': -1},
    Action.RIGHT: {'name': 'Right', 'keys': frozenset({'right'}), 'dx': 1, 'dy': 0},
    Action.DOWN_RIGHT: {'name': 'Down-Right', 'keys': frozenset({'down', 'right'}), 'dx': 1, 'dy': 1},
    Action.DOWN: {'name': 'Down', 'keys': frozenset({'down'}), 'dx': 0, 'dy': 1},
    Action.DOWN_LEFT: {'name': 'Down-Left', 'keys': frozenset({'down', 'left'}), 'dx': -1, 'dy': 1},
    Action.LEFT: {'name': 'Left', 'keys': frozenset({'left'}), 'dx': -1, 'dy': 0},
    Action.UP_LEFT: {'name': 'Up-Left', 'keys': frozenset({'up', 'left'}), 'dx': -1, 'dy': -1},
}

NUM_ACTIONS = len(Action)
MOVING_ACTIONS: Tuple[Action, ...] = tuple(a for a in Action if a != Action.STAY)
DIRECTION_KEYS: FrozenSet[str] = frozenset({'up', 'down', 'left', 'right'})

_DELTA_TO_ACTION = {(entry['dx'], entry['dy']): action for action, entry in ACTION_TABLE.items()}

def action_keys(action: int) -> FrozenSet[str]:
    """Keys to hold for an action index"""
    return ACTION_TABLE[Action(action)]['keys']

def action_name(action: int) -> str:
    return ACTION_TABLE[Action(action)]['name']

def action_delta(action: int) -> Tuple[int, int]:
    """Raw (dx, dy) direction, components in {-1, 0, 1}"""
    entry = ACTION_TABLE[Action(action)]
    return entry['dx'], entry['dy']

def unit_delta(action: int) -> Tuple[float, float]:
    """
    Direction of travel with unit length (diagonals scaled by 1/sqrt(2))
    
    Returns:
        (dx, dy); (0, 0) for stay
    """
    dx, dy = action_delta(action)
    if dx and dy:
        return dx / math.sqrt(2), dy / math.sqrt(2)
    return float(dx), float(dy)

def action_from_keys(keys: Iterable[str]) -> Action:
    """
    Convert held directional keys into an action index
    Right wins over left and down wins over up when both are held
    
    Args:
        keys: Names of held keys (non-directional keys are ignored)
    
    Returns:
        Matching Action
    """
    held = set(keys)
    dx = 0
    dy = 0
    if 'left' in held:
        dx = -1
    if 'right' in held:
        dx = 1
    if 'up' in held:
        dy = -1
    if 'down' in held:
        dy = 1
    return _DELTA_TO_ACTION[(dx, dy)]

def unit_delta_table() -> np.ndarray:
    """(NUM_ACTIONS, 2) array of unit deltas indexed by action"""
    return np.array([unit_delta(a) for a in Action], dtype=np.float64)
