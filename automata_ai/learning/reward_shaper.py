"""
Reward Shaping for the survival agent
Dense per-decision reward from health, score and position deltas
"""
import logging
from dataclasses import dataclass
from typing import Dict, Optional
from automata_ai.config import Config, config as default_config
from automata_ai.core.world import WorldSnapshot

logger = logging.getLogger(__name__)

@dataclass(frozen=True)
class RewardSnapshot:
    """The parts of the world the reward depends on (x, y normalized)"""
    health: float
    score: float
    game_time: float
    x: float
    y: float
    game_over: bool = False

    @classmethod
    def from_world(cls, world: WorldSnapshot) -> Optional['RewardSnapshot']:
        position = world.normalized_position()
        if position is None:
            return None
        return cls(
            health=world.player.health,
            score=world.score,
            game_time=world.game_time,
            x=position[0],
            y=position[1],
            game_over=world.game_over,
        )

class RewardShaper:
    """
    Reward components:
        survival   - small bonus per decision while alive
        damage     - penalty proportional to health lost
        no_damage  - bonus once a damage-free streak passes REWARD_NO_DAMAGE_SECONDS
        kill       - reward from score gained
        boundary   - penalty per axis within REWARD_EDGE_DISTANCE of an edge, extra in corners
        death      - terminal penalty
    """
    
    def __init__(self, cfg: Config = None):
        self.config = cfg or default_config
        self.last_damage_time: Optional[float] = None
        self.last_components: Dict[str, float] = {}
        self.total_reward = 0.0
    
    def reset(self):
        """Start a new episode"""
        self.last_damage_time = None
        self.last_components = {}
        self.total_reward = 0.0
    
    def compute(self, previous: RewardSnapshot, current: RewardSnapshot) -> float:
        """
        Reward for the transition previous -> current
        
        Returns:
            Scalar reward
        """
        cfg = self.config
        components = {}
        
        if self.last_damage_time is None:
            self.last_damage_time = previous.game_time
        
        if current.game_over:
            components['death'] = -cfg.REWARD_DEATH_PENALTY
        else:
            components['survival'] = cfg.REWARD_SURVIVAL
        
        damage = max(0.0, previous.health - current.health)
        if damage > 0:
            components['damage'] = -cfg.REWARD_DAMAGE_SCALE * damage
            self.last_damage_time = current.game_time
        elif current.game_time - self.last_damage_time >= cfg.REWARD_NO_DAMAGE_SECONDS:
            components['no_damage'] = cfg.REWARD_NO_DAMAGE_BONUS
        
        score_gain = max(0.0, current.score - previous.score)
        if score_gain > 0:
            components['kill'] = cfg.REWARD_KILL_SCALE * score_gain
        
        boundary = self._boundary_penalty(current.x, current.y)
        if boundary:
            components['boundary'] = -boundary
        
        reward = float(sum(components.values()))
        self.last_components = components
        self.total_reward += reward
        
        if current.game_over:
            logger.debug(f"Episode ended - total shaped reward {self.total_reward:.3f}")
        
        return reward
    
    def _boundary_penalty(self, x: float, y: float) -> float:
        edge = self.config.REWARD_EDGE_DISTANCE
        near_x = x < edge or x > 1.0 - edge
        near_y = y < edge or y > 1.0 - edge
        penalty = self.config.REWARD_EDGE_PENALTY * (int(near_x) + int(near_y))
        if near_x and near_y:
            penalty += self.config.REWARD_CORNER_PENALTY
        return penalty
