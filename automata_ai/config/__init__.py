"""
Configuration module for Automata AI
Centralized configuration for every tunable of the control loop, encoders and learners
"""
import os
from dataclasses import dataclass, field
from typing import Optional, Tuple

@dataclass
class Config:
    # Action space (8 directions + stay)
    NUM_ACTIONS: int = 9

    # Control loop timing (seconds of GAME time, not wall-clock)
    DECISION_INTERVAL: float = 0.15  # AI decision every 150ms (~6.7 decisions/s)
    RECORDING_INTERVAL: float = 0.15  # Human demonstration frames every 150ms

    # Observation encoder
    ENCODER_MODE: str = "spatial_grid"  # "coarse" (21 features) or "spatial_grid" (136 features)
    MAX_ELAPSED_TIME: float = 1800.0  # 30 minute run normalizes elapsed time to 1.0
    GRID_SIZE: int = 8  # 8x8 spatial grid
    GRID_SATURATION: float = 5.0  # Hostiles per cell that saturate density at 1.0
    EMPTY_CELL_DISTANCE: float = 0.5  # Neutral sentinel for cells without hostiles
    THREAT_RADIUS: float = 0.35  # Directional threat radius (fraction of playfield diagonal)
    ELITE_THREAT: float = 1.0
    REGULAR_THREAT: float = 0.5

    # Heuristic policy
    HEURISTIC_EDGE_DISTANCE: float = 0.15  # Stay this far from edges (normalized)
    HEURISTIC_THREAT_RADIUS: float = 0.25  # Hostiles closer than this reduce action weights
    HEURISTIC_LOW_HEALTH: float = 0.3  # Below this health fraction "stay" gets boosted
    HEURISTIC_STAY_BOOST: float = 2.5
    HEURISTIC_THREAT_DAMPING: float = 0.2  # Weight multiplier for actions heading into threats
    HEURISTIC_BOUNDARY_DAMPING: float = 0.1  # Weight multiplier for actions heading into edges
    HEURISTIC_CENTER_RADIUS: float = 0.3  # Drift back to center when farther than this
    HEURISTIC_LOOKAHEAD: float = 0.1  # Evasion step used to check for edge collisions

    # Action selector / policy blending
    LOOKAHEAD_STEP: float = 0.05  # Normalized distance covered by one action on the lookahead step
    BOUNDARY_MARGIN: float = 0.05  # Pure imitation: only block actions landing within 5% of an edge
    ASSISTED_BOUNDARY_MARGIN: float = 0.1
    BOUNDARY_PENALTY: float = 0.01
    DANGER_RADIUS: float = 0.15  # Normalized radius for the per-action danger penalty
    DANGER_WEIGHT: float = 4.0
    ELITE_DANGER_MULTIPLIER: float = 2.0
    CROWD_THRESHOLD: int = 4  # Hostiles inside DANGER_RADIUS that engage crowd escape
    CROWD_RISK_MULTIPLIER: float = 0.01
    CROWD_SAFE_MULTIPLIER: float = 3.0
    CROWD_STAY_MULTIPLIER: float = 0.001
    CROWD_RISKY_COUNT: int = 3
    CROWD_SAFE_COUNT: int = 3

    # Reinforcement learning (DQN-style value agent)
    REPLAY_BUFFER_SIZE: int = 5000
    BATCH_SIZE: int = 32
    GAMMA: float = 0.95  # Discount factor
    LEARNING_RATE: float = 5e-4
    EPSILON_START: float = 0.9
    EPSILON_MIN: float = 0.1  # Permanent minimum exploration
    EPSILON_DECAY: float = 0.995  # Multiplicative decay per training pass
    BOOTSTRAP_TRANSITIONS: int = 10  # Act heuristically until this many transitions exist
    TARGET_SYNC_INTERVAL: int = 50  # Copy online -> target every N training calls
    AUTOSAVE_INTERVAL: int = 200  # Persist the value model every N training calls
    TRAIN_EVERY_DECISIONS: int = 8  # Controller schedules a replay pass every N AI decisions
    VALUE_HIDDEN_SIZES: Tuple[int, ...] = (128, 64)
    VALUE_DROPOUT: float = 0.2

    # Reward shaping
    REWARD_SURVIVAL: float = 0.01  # Per decision while alive
    REWARD_DAMAGE_SCALE: float = 0.1  # Penalty per point of health lost
    REWARD_KILL_SCALE: float = 0.2  # Reward per point of score gained
    REWARD_NO_DAMAGE_BONUS: float = 0.05
    REWARD_NO_DAMAGE_SECONDS: float = 5.0  # Damage-free streak before the bonus kicks in
    REWARD_EDGE_DISTANCE: float = 0.1
    REWARD_EDGE_PENALTY: float = 0.02
    REWARD_CORNER_PENALTY: float = 0.03
    REWARD_DEATH_PENALTY: float = 1.0

    # Imitation learning (behavior cloning)
    MIN_DEMONSTRATIONS: int = 100  # Minimum examples before training
    TRAIN_SOURCES: Tuple[str, ...] = ("human",)  # Demonstration sources used for training
    QUALITY_FLOOR: float = 0.6  # Below this composite score the stay class is down-sampled
    QUALITY_VOLUME_TARGET: int = 500  # Examples needed for full volume score
    STAY_MAX_FRACTION: float = 0.3  # "Stay" above this share is always down-sampled
    NEAR_BOUNDARY_MARGIN: float = 0.1  # Frames this close to an edge feed the boundary score
    BC_LEARNING_RATE: float = 1e-3
    BC_HIDDEN_SIZES: Tuple[int, ...] = (64, 32)
    VALIDATION_SPLIT: float = 0.2
    MIN_BATCHES_PER_EPOCH: int = 10
    MIN_BATCH_SIZE: int = 8
    MAX_BATCH_SIZE: int = 64
    OVERFIT_GAP: float = 0.15  # Train/validation accuracy gap that triggers a warning
    LR_BACKOFF: float = 0.5
    LR_PATIENCE: int = 2  # Sessions without improvement before backing off
    MIN_LEARNING_RATE: float = 1e-5
    METRICS_HISTORY: int = 50  # Recent loss/accuracy entries kept in persisted metrics
    AUTO_TRAIN_ON_GAME_OVER: bool = True

    # Controller
    POLICY_MODE: str = "reinforcement"  # "reinforcement", "imitation" or "assisted_imitation"
    TRAIN_ASYNC: bool = True  # Run training passes on a daemon thread

    # Model persistence
    MODEL_KEY_PREFIX: str = "automata-model/"
    MAX_LOCAL_MODEL_BYTES: int = 4 * 1024 * 1024  # Larger documents go straight to file export
    LOCAL_STORE_QUOTA: int = 5 * 1024 * 1024  # Browser-style local storage quota
    LOCAL_STORE_PATH: Optional[str] = None  # None keeps the local store in memory

    # Error handling
    MAX_ERRORS: int = 10
    ERROR_WINDOW: float = 60.0  # seconds

    # Randomness (None = nondeterministic)
    RANDOM_SEED: Optional[int] = None

    # Paths
    EXPORT_PATH: str = "exports"
    LOG_PATH: str = "logs"
    DETAILED_LOGGING: bool = False

    # Device Configuration
    DEVICE: str = "cuda" if os.getenv("CUDA_VISIBLE_DEVICES") else "cpu"

    def __post_init__(self):
        """Validate derived configuration"""
        if not 0.0 < self.EPSILON_MIN <= self.EPSILON_START <= 1.0:
            raise ValueError("EPSILON_MIN must be above zero and not exceed EPSILON_START")
        if not 0.0 < self.STAY_MAX_FRACTION < 1.0:
            raise ValueError("STAY_MAX_FRACTION must be in (0, 1)")
        if self.GRID_SIZE < 1:
            raise ValueError("GRID_SIZE must be positive")

# Global configuration instance
config = Config()

__all__ = ['Config', 'config']
