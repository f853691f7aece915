"""
Heuristic Policies
Deterministic center-seeking bootstrap policy and weighted-random exploration policy
Used before a network is trained, while its weights are busy, and for epsilon exploration
"""
import logging
import numpy as np
from typing import Optional
from automata_ai.config import Config, config as default_config
from automata_ai.core.actions import Action, NUM_ACTIONS, MOVING_ACTIONS, action_delta, unit_delta_table
from automata_ai.core.encoder import ThreatContext

logger = logging.getLogger(__name__)

_UNIT_DELTAS = unit_delta_table()

def _toward_center(x: float, y: float) -> Action:
    """Cardinal action that closes the larger center offset"""
    to_center_x = 0.5 - x
    to_center_y = 0.5 - y
    if abs(to_center_x) > abs(to_center_y):
        return Action.RIGHT if to_center_x > 0 else Action.LEFT
    return Action.DOWN if to_center_y > 0 else Action.UP

def _nearest_hostile(context: ThreatContext) -> Optional[np.ndarray]:
    if len(context.hostiles) == 0:
        return None
    offsets = context.hostiles[:, :2] - np.array([context.x, context.y])
    return context.hostiles[int(np.argmin(np.hypot(offsets[:, 0], offsets[:, 1])))]

def bootstrap_action(context: ThreatContext, cfg: Config = None) -> int:
    """
    Deterministic center-seeking policy

    Priority:
        1. Near an edge: move toward center
        2. Hostile present: move away from the nearest one, sideways if that hits an edge
        3. Far from center: drift back
        4. Otherwise stay

    Args:
        context: Normalized threat context
        cfg: Optional config override

    Returns:
        Action index in [0, 8]
    """
    cfg = cfg or default_config
    edge = cfg.HEURISTIC_EDGE_DISTANCE
    x, y = context.x, context.y

    if x < edge or x > 1 - edge or y < edge or y > 1 - edge:
        return int(_toward_center(x, y))

    nearest = _nearest_hostile(context)
    if nearest is not None:
        dx = x - nearest[0]
        dy = y - nearest[1]
        horizontal = abs(dx) > abs(dy)
        if horizontal:
            preferred = Action.RIGHT if dx > 0 else Action.LEFT
        else:
            preferred = Action.DOWN if dy > 0 else Action.UP

        step_x, step_y = action_delta(preferred)
        future_x = x + step_x * cfg.HEURISTIC_LOOKAHEAD
        future_y = y + step_y * cfg.HEURISTIC_LOOKAHEAD
        if future_x < edge or future_x > 1 - edge or future_y < edge or future_y > 1 - edge:
            # Perpendicular escape
            if horizontal:
                return int(Action.DOWN if dy > 0 else Action.UP)
            return int(Action.RIGHT if dx > 0 else Action.LEFT)
        return int(preferred)

    if np.hypot(x - 0.5, y - 0.5) > cfg.HEURISTIC_CENTER_RADIUS:
        return int(_toward_center(x, y))

    return int(Action.STAY)

def exploration_weights(context: ThreatContext, cfg: Config = None) -> np.ndarray:
    """
    Per-action weights for weighted-random exploration
    Actions heading toward nearby threats or edges are damped, stay is boosted at low health

    Returns:
        (NUM_ACTIONS,) non-negative weights (unnormalized)
    """
    cfg = cfg or default_config
    weights = np.ones(NUM_ACTIONS, dtype=np.float64)
    edge = cfg.HEURISTIC_EDGE_DISTANCE
    position = np.array([context.x, context.y])

    for action in MOVING_ACTIONS:
        direction = _UNIT_DELTAS[action]
        future = position + direction * cfg.HEURISTIC_LOOKAHEAD
        toward_edge = (
            (direction[0] < 0 and future[0] < edge) or
            (direction[0] > 0 and future[0] > 1 - edge) or
            (direction[1] < 0 and future[1] < edge) or
            (direction[1] > 0 and future[1] > 1 - edge)
        )
        if toward_edge:
            weights[action] *= cfg.HEURISTIC_BOUNDARY_DAMPING

    if len(context.hostiles) > 0:
        offsets = context.hostiles[:, :2] - position
        distances = np.hypot(offsets[:, 0], offsets[:, 1])
        close = offsets[distances < cfg.HEURISTIC_THREAT_RADIUS]
        for action in MOVING_ACTIONS:
            # Any close hostile in front of the direction of travel damps the action
            if np.any(close @ _UNIT_DELTAS[action] > 0):
                weights[action] *= cfg.HEURISTIC_THREAT_DAMPING

    if context.health < cfg.HEURISTIC_LOW_HEALTH:
        weights[Action.STAY] *= cfg.HEURISTIC_STAY_BOOST

    return weights

def heuristic_action(context: ThreatContext, rng: np.random.Generator, cfg: Config = None) -> int:
    """Sample an action from the exploration weights"""
    weights = exploration_weights(context, cfg)
    total = weights.sum()
    if not np.isfinite(total) or total <= 0:
        return int(Action.STAY)
    return int(rng.choice(NUM_ACTIONS, p=weights / total))
