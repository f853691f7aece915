"""
Actuator: asserts virtual directional inputs for the AI and reports the human's inputs
The host reads `pressed()` each frame and feeds the human's key state through `set_human_keys`
"""
import threading
import logging
from typing import FrozenSet, Iterable, Set
from automata_ai.core.actions import Action, DIRECTION_KEYS, action_from_keys, action_keys

logger = logging.getLogger(__name__)

class Actuator:
    """Interface between the controller and the game's input system"""

    def assert_direction(self, keys: Iterable[str]):
        raise NotImplementedError

    def release_all(self):
        raise NotImplementedError

    def read_human_action(self) -> Action:
        raise NotImplementedError

    def apply_action(self, action: int):
        """Hold exactly the keys of an action index"""
        self.assert_direction(action_keys(action))

class VirtualKeyActuator(Actuator):
    """
    In-process actuator with a virtual key set
    Thread-safe: the host input thread and the controller may touch it concurrently
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._asserted: Set[str] = set()
        self._human: Set[str] = set()
        self.assert_count = 0
        self.release_count = 0

    def assert_direction(self, keys: Iterable[str]):
        """Hold exactly `keys`; every other directional key is released"""
        requested = set(keys)
        unknown = requested - DIRECTION_KEYS
        if unknown:
            raise ValueError(f"Unknown directional keys: {sorted(unknown)}")
        with self._lock:
            self._asserted = requested
            self.assert_count += 1

    def release_all(self):
        with self._lock:
            if self._asserted:
                logger.debug(f"Releasing virtual keys {sorted(self._asserted)}")
            self._asserted = set()
            self.release_count += 1

    def pressed(self) -> FrozenSet[str]:
        """Keys currently asserted by the AI"""
        with self._lock:
            return frozenset(self._asserted)

    def set_human_keys(self, keys: Iterable[str]):
        """Mirror the human's held keys (non-directional keys are ignored)"""
        with self._lock:
            self._human = set(keys) & DIRECTION_KEYS

    def read_human_action(self) -> Action:
        with self._lock:
            return action_from_keys(self._human)
