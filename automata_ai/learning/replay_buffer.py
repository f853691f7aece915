"""
Experience Replay Buffer
Fixed-capacity circular store of transitions with uniform sampling
"""
import numpy as np
import logging
from collections import deque
from dataclasses import dataclass
from typing import List, Optional, Tuple
from automata_ai.config import config

logger = logging.getLogger(__name__)

@dataclass(frozen=True)
class Transition:
    """One step of experience"""
    state: np.ndarray
    action: int
    reward: float
    next_state: Optional[np.ndarray]
    terminal: bool

class ReplayBuffer:
    """
    Circular replay buffer: once full, each push overwrites the oldest transition
    """
    
    def __init__(self, capacity: int = None, rng: np.random.Generator = None):
        self.capacity = capacity or config.REPLAY_BUFFER_SIZE
        self.buffer = deque(maxlen=self.capacity)
        self.rng = rng or np.random.default_rng(config.RANDOM_SEED)
        self.total_pushed = 0
    
    def push(self, state: np.ndarray, action: int, reward: float,
             next_state: Optional[np.ndarray] = None, terminal: bool = False):
        """
        Add a transition
        
        Args:
            state: Observation the action was taken in
            action: Action index
            reward: Reward observed on the following decision
            next_state: Following observation (None allowed for terminal transitions)
            terminal: Episode ended after this transition
        """
        if next_state is None and not terminal:
            raise ValueError("Non-terminal transitions need a next_state")
        self.buffer.append(Transition(
            state=np.asarray(state, dtype=np.float32),
            action=int(action),
            reward=float(reward),
            next_state=None if next_state is None else np.asarray(next_state, dtype=np.float32),
            terminal=bool(terminal),
        ))
        self.total_pushed += 1
    
    def sample(self, batch_size: int) -> List[Transition]:
        """
        Uniform sample with replacement
        
        Returns:
            List of transitions (empty if the buffer is empty)
        """
        if not self.buffer:
            return []
        indices = self.rng.integers(0, len(self.buffer), size=batch_size)
        return [self.buffer[i] for i in indices]
    
    def sample_arrays(self, batch_size: int) -> Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
        """
        Sample and stack into arrays
        Terminal transitions get a zero next_state (masked out by `terminals`)
        
        Returns:
            (states, actions, rewards, next_states, terminals)
        """
        batch = self.sample(batch_size)
        states = np.stack([t.state for t in batch])
        actions = np.array([t.action for t in batch], dtype=np.int64)
        rewards = np.array([t.reward for t in batch], dtype=np.float32)
        next_states = np.stack([
            t.next_state if t.next_state is not None else np.zeros_like(t.state)
            for t in batch
        ])
        terminals = np.array([t.terminal for t in batch], dtype=np.float32)
        return states, actions, rewards, next_states, terminals
    
    def clear(self):
        self.buffer.clear()
    
    def get_stats(self) -> dict:
        return {
            'size': len(self.buffer),
            'capacity': self.capacity,
            'total_pushed': self.total_pushed,
        }
    
    def __len__(self):
        return len(self.buffer)
