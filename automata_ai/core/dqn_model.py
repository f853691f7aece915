"""
Value Network - action-value model for the survival agent
MLP over the observation vector with dropout between hidden layers
"""
import torch
import torch.nn as nn
import numpy as np
import logging
from typing import Dict, Sequence
from automata_ai.config import config

logger = logging.getLogger(__name__)

class ValueNetwork(nn.Module):
    """
    Q-network for the discrete movement action space
    Outputs one action value per action (linear head)
    """
    
    def __init__(self, input_size: int, num_actions: int = None,
                 hidden_sizes: Sequence[int] = None, dropout: float = None):
        super().__init__()
        self.input_size = input_size
        self.num_actions = num_actions or config.NUM_ACTIONS
        self.hidden_sizes = tuple(hidden_sizes or config.VALUE_HIDDEN_SIZES)
        self.dropout = config.VALUE_DROPOUT if dropout is None else dropout
        
        layers = []
        previous = input_size
        for index, size in enumerate(self.hidden_sizes):
            layers.append(nn.Linear(previous, size))
            layers.append(nn.ReLU())
            # Dropout after the first hidden layer only
            if index == 0 and self.dropout > 0:
                layers.append(nn.Dropout(self.dropout))
            previous = size
        layers.append(nn.Linear(previous, self.num_actions))
        self.layers = nn.Sequential(*layers)
        
        self._initialize_weights()
    
    def _initialize_weights(self):
        """Initialize network weights (orthogonal initialization)"""
        for m in self.modules():
            if isinstance(m, nn.Linear):
                nn.init.orthogonal_(m.weight, gain=np.sqrt(2))
                nn.init.constant_(m.bias, 0)
    
    def forward(self, states: torch.Tensor) -> torch.Tensor:
        """
        Forward pass - outputs Q-values for each discrete action
        
        Args:
            states: (batch, input_size) observations
            
        Returns:
            Q-values: (batch, num_actions)
        """
        if states.dim() == 1:
            states = states.unsqueeze(0)
        return self.layers(states)
    
    def architecture(self) -> Dict:
        """Architecture descriptor persisted alongside the weights"""
        return {
            'type': 'value_mlp',
            'input_size': self.input_size,
            'hidden_sizes': list(self.hidden_sizes),
            'num_actions': self.num_actions,
            'dropout': self.dropout,
        }

def create_value_network(input_size: int, device: str = None, **kwargs) -> ValueNetwork:
    """Create and initialize value network"""
    device = device or config.DEVICE
    model = ValueNetwork(input_size, **kwargs)
    model = model.to(device)
    return model
