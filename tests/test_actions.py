"""
Action table and key mapping tests
"""
import math
from automata_ai.core.actions import (
    Action, NUM_ACTIONS, action_from_keys, action_keys, unit_delta
)

def test_action_indices_are_stable():
    assert NUM_ACTIONS == 9
    assert [a.value for a in Action] == list(range(9))
    assert Action.UP == 1 and Action.RIGHT == 3 and Action.DOWN == 5 and Action.LEFT == 7

def test_keys_map_back_to_actions():
    for action in Action:
        assert action_from_keys(action_keys(action)) == action

def test_opposing_keys_resolve_right_and_down():
    assert action_from_keys({'left', 'right'}) == Action.RIGHT
    assert action_from_keys({'up', 'down'}) == Action.DOWN
    assert action_from_keys({'left', 'right', 'up'}) == Action.UP_RIGHT

def test_non_directional_keys_ignored():
    assert action_from_keys({'space', 'shift'}) == Action.STAY

def test_diagonals_have_unit_length():
    for action in Action:
        dx, dy = unit_delta(action)
        length = math.hypot(dx, dy)
        if action == Action.STAY:
            assert length == 0
        else:
            assert abs(length - 1.0) < 1e-9
    # Screen coordinates: up is negative y
    assert unit_delta(Action.UP)[1] < 0
