"""
Learning components: Replay buffer, reward shaping, demonstration recording, data quality and imitation training
"""
from automata_ai.learning.replay_buffer import ReplayBuffer, Transition
from automata_ai.learning.reward_shaper import RewardShaper, RewardSnapshot
from automata_ai.learning.model_tracker import ModelTracker, TrainingMetrics
from automata_ai.learning.human_recorder import (
    DemonstrationExample, DemonstrationRecorder, DemonstrationStore, LevelUpRecord, import_examples
)
from automata_ai.learning.data_quality import QualityReport, assess_quality, rebalance_stay_class
from automata_ai.learning.imitation_learner import ImitationLearner, TrainingResult

__all__ = [
    'ReplayBuffer',
    'Transition',
    'RewardShaper',
    'RewardSnapshot',
    'ModelTracker',
    'TrainingMetrics',
    'DemonstrationExample',
    'DemonstrationRecorder',
    'DemonstrationStore',
    'LevelUpRecord',
    'import_examples',
    'QualityReport',
    'assess_quality',
    'rebalance_stay_class',
    'ImitationLearner',
    'TrainingResult',
]
