"""
Policy Networks and PolicyModel container
Behavior cloning classifier plus a registry that rebuilds either network from
its persisted architecture descriptor
"""
import torch
import torch.nn as nn
import torch.nn.functional as F
import numpy as np
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Sequence
from automata_ai.config import config
from automata_ai.core.dqn_model import ValueNetwork

logger = logging.getLogger(__name__)

class ModelKind(str, Enum):
    VALUE = "value"
    IMITATION = "imitation"

class BehaviorCloningNetwork(nn.Module):
    """
    Classifier from observation to a distribution over the 9 actions
    """
    
    def __init__(self, input_size: int, num_actions: int = None, hidden_sizes: Sequence[int] = None):
        super().__init__()
        self.input_size = input_size
        self.num_actions = num_actions or config.NUM_ACTIONS
        self.hidden_sizes = tuple(hidden_sizes or config.BC_HIDDEN_SIZES)
        
        layers = []
        previous = input_size
        for size in self.hidden_sizes:
            layers.append(nn.Linear(previous, size))
            layers.append(nn.ReLU())
            previous = size
        layers.append(nn.Linear(previous, self.num_actions))
        self.layers = nn.Sequential(*layers)
    
    def forward(self, states: torch.Tensor) -> torch.Tensor:
        """
        Args:
            states: (batch, input_size) observations
        
        Returns:
            Logits (batch, num_actions); softmax is applied by callers / the loss
        """
        if states.dim() == 1:
            states = states.unsqueeze(0)
        return self.layers(states)
    
    def action_probabilities(self, states: torch.Tensor) -> torch.Tensor:
        return F.softmax(self.forward(states), dim=-1)
    
    def architecture(self) -> Dict:
        return {
            'type': 'bc_mlp',
            'input_size': self.input_size,
            'hidden_sizes': list(self.hidden_sizes),
            'num_actions': self.num_actions,
        }

# Architecture type -> builder
_NETWORK_BUILDERS: Dict[str, Callable[[Dict], nn.Module]] = {
    'value_mlp': lambda arch: ValueNetwork(
        arch['input_size'], arch['num_actions'], arch['hidden_sizes'], arch.get('dropout', 0.0)
    ),
    'bc_mlp': lambda arch: BehaviorCloningNetwork(
        arch['input_size'], arch['num_actions'], arch['hidden_sizes']
    ),
}

KIND_ARCHITECTURES: Dict[ModelKind, str] = {
    ModelKind.VALUE: 'value_mlp',
    ModelKind.IMITATION: 'bc_mlp',
}

def build_network(architecture: Dict) -> nn.Module:
    """
    Rebuild an untrained network from an architecture descriptor
    
    Raises:
        ValueError: Unknown architecture type or malformed descriptor
    """
    arch_type = architecture.get('type')
    builder = _NETWORK_BUILDERS.get(arch_type)
    if builder is None:
        raise ValueError(f"Unknown architecture type: {arch_type!r}")
    try:
        return builder(architecture)
    except (KeyError, TypeError) as e:
        raise ValueError(f"Malformed architecture descriptor: {e}") from e

@dataclass
class PolicyModel:
    """A network with its kind and trained flag; untrained models are never queried"""
    kind: ModelKind
    network: nn.Module
    trained: bool = False
    
    @property
    def architecture(self) -> Dict:
        return self.network.architecture()
    
    def predict(self, observation: np.ndarray) -> np.ndarray:
        """
        Run inference on one observation
        
        Returns:
            Action values (VALUE) or action probabilities (IMITATION), shape (num_actions,)
        
        Raises:
            RuntimeError: if the model is untrained
        """
        if not self.trained:
            raise RuntimeError(f"{self.kind.value} model is untrained")
        device = next(self.network.parameters()).device
        self.network.eval()
        with torch.no_grad():
            state = torch.as_tensor(np.asarray(observation, dtype=np.float32), device=device)
            if self.kind == ModelKind.IMITATION:
                output = self.network.action_probabilities(state)
            else:
                output = self.network(state)
        return output.squeeze(0).cpu().numpy()
