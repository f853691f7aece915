"""
Core components: Controller, encoder, policies and action selection
"""
from automata_ai.core.actions import Action, action_from_keys
from automata_ai.core.world import Hostile, PlayerState, WorldSnapshot
from automata_ai.core.encoder import ObservationEncoder, EncoderMode, ThreatContext
from automata_ai.core.action_selector import ActionSelector, BlendMode
from automata_ai.core.model import BehaviorCloningNetwork, ModelKind, PolicyModel, build_network
from automata_ai.core.dqn_model import ValueNetwork, create_value_network
from automata_ai.core.rl_agent import SurvivalAgent
from automata_ai.core.agent import AutomataController, PolicyMode

__all__ = [
    'Action', 'action_from_keys',
    'Hostile', 'PlayerState', 'WorldSnapshot',
    'ObservationEncoder', 'EncoderMode', 'ThreatContext',
    'ActionSelector', 'BlendMode',
    'BehaviorCloningNetwork', 'ModelKind', 'PolicyModel', 'build_network',
    'ValueNetwork', 'create_value_network',
    'SurvivalAgent',
    'AutomataController', 'PolicyMode',
]
