"""
Automata AI - autonomous play and learning from demonstration
Movement controller for a real-time arcade survival game

The package observes the live game world each tick, picks one of 9 movement
actions and improves its policy from two sources: its own experience
(reinforcement learning) and recorded human play (behavior cloning).

Main Components:
    - Core: Controller, observation encoder, policies, action selector
    - Learning: Replay buffer, reward shaping, demonstration recording, imitation training
    - Storage: Local key/value store and JSON model persistence
    - Input: Virtual key actuator
    - Utils: Shared utilities for logging, file I/O, math and game-time throttling

Quick Start:
    >>> from automata_ai import AutomataController, configure_logging
    >>> configure_logging()
    >>> controller = AutomataController()
    >>> controller.toggle_ai_control()
    >>> action = controller.update(world_snapshot)
"""

__version__ = "1.0.0"

# Main exports for convenience
from automata_ai.core import AutomataController, PolicyMode, ObservationEncoder, EncoderMode
from automata_ai.config import Config, config
from automata_ai.utils.pretty_logger import configure_logging

# Additional convenient exports
from automata_ai.core.world import Hostile, PlayerState, WorldSnapshot
from automata_ai.learning import DemonstrationRecorder, ImitationLearner, ReplayBuffer
from automata_ai.storage import ModelStore, LocalStore
from automata_ai.input import VirtualKeyActuator

__all__ = [
    # Core components
    'AutomataController',
    'PolicyMode',
    'ObservationEncoder',
    'EncoderMode',
    # Configuration
    'Config',
    'config',
    # Logging
    'configure_logging',
    # World snapshot
    'Hostile',
    'PlayerState',
    'WorldSnapshot',
    # Learning
    'DemonstrationRecorder',
    'ImitationLearner',
    'ReplayBuffer',
    # Storage
    'ModelStore',
    'LocalStore',
    # Input
    'VirtualKeyActuator',
]
