"""
Action Selector: blends a policy's action distribution with safety overrides
Pure imitation keeps the learned behavior and only blocks walking into walls,
assisted mode also steers away from nearby hostiles and breaks out of crowds
"""
import logging
import numpy as np
from enum import Enum
from typing import Dict, Optional
from automata_ai.config import Config, config as default_config
from automata_ai.core.actions import Action, NUM_ACTIONS, unit_delta_table
from automata_ai.core.encoder import ThreatContext

logger = logging.getLogger(__name__)

class BlendMode(str, Enum):
    PURE_IMITATION = "pure_imitation"
    ASSISTED = "assisted"

class ActionSelector:
    """
    Turns policy probabilities into concrete actions
    """

    def __init__(self, cfg: Config = None):
        self.config = cfg or default_config
        self.deltas = unit_delta_table()
        self._margins: Dict[BlendMode, float] = {
            BlendMode.PURE_IMITATION: self.config.BOUNDARY_MARGIN,
            BlendMode.ASSISTED: self.config.ASSISTED_BOUNDARY_MARGIN,
        }
        self.crowd_escapes = 0

    def _lookahead(self, context: ThreatContext) -> np.ndarray:
        """(NUM_ACTIONS, 2) predicted positions one step ahead"""
        return np.array([context.x, context.y]) + self.deltas * self.config.LOOKAHEAD_STEP

    def boundary_multipliers(self, context: ThreatContext, margin: float) -> np.ndarray:
        """
        Penalize actions whose one-step lookahead lands within `margin` of an edge
        while moving toward that edge

        Returns:
            (NUM_ACTIONS,) multipliers (1.0 or BOUNDARY_PENALTY)
        """
        future = self._lookahead(context)
        dx = self.deltas[:, 0]
        dy = self.deltas[:, 1]
        toward_edge = (
            ((dx < 0) & (future[:, 0] < margin)) |
            ((dx > 0) & (future[:, 0] > 1.0 - margin)) |
            ((dy < 0) & (future[:, 1] < margin)) |
            ((dy > 0) & (future[:, 1] > 1.0 - margin))
        )
        return np.where(toward_edge, self.config.BOUNDARY_PENALTY, 1.0)

    def action_danger(self, context: ThreatContext) -> np.ndarray:
        """
        Danger of each action: sum over hostiles of (1 - predicted_distance / DANGER_RADIUS)
        for hostiles inside the radius after the step, elites weighted by ELITE_DANGER_MULTIPLIER

        Returns:
            (NUM_ACTIONS,) danger values (0 with no hostiles nearby)
        """
        if len(context.hostiles) == 0:
            return np.zeros(NUM_ACTIONS, dtype=np.float64)

        radius = self.config.DANGER_RADIUS
        future = self._lookahead(context)
        hostile_xy = context.hostiles[:, :2]
        weights = np.where(context.hostiles[:, 2] > 0, self.config.ELITE_DANGER_MULTIPLIER, 1.0)

        # (actions, hostiles) predicted distances
        offsets = future[:, None, :] - hostile_xy[None, :, :]
        distances = np.hypot(offsets[..., 0], offsets[..., 1])
        closeness = np.clip(1.0 - distances / radius, 0.0, None)
        return (closeness * weights[None, :]).sum(axis=1)

    def crowd_size(self, context: ThreatContext) -> int:
        """Number of hostiles inside DANGER_RADIUS of the player"""
        if len(context.hostiles) == 0:
            return 0
        offsets = context.hostiles[:, :2] - np.array([context.x, context.y])
        return int(np.count_nonzero(np.hypot(offsets[:, 0], offsets[:, 1]) < self.config.DANGER_RADIUS))

    def blend(self, probs: np.ndarray, context: ThreatContext, mode: BlendMode = BlendMode.PURE_IMITATION) -> np.ndarray:
        """
        Apply safety overrides to a policy distribution

        Args:
            probs: (NUM_ACTIONS,) policy probabilities
            context: Normalized threat context
            mode: Blend mode

        Returns:
            (NUM_ACTIONS,) unnormalized weights
        """
        mode = BlendMode(mode)
        weights = np.asarray(probs, dtype=np.float64).copy()
        if weights.shape != (NUM_ACTIONS,):
            raise ValueError(f"Expected {NUM_ACTIONS} action probabilities, got shape {weights.shape}")
        weights = np.where(np.isfinite(weights), np.clip(weights, 0.0, None), 0.0)

        weights *= self.boundary_multipliers(context, self._margins[mode])

        if mode == BlendMode.ASSISTED:
            danger = self.action_danger(context)
            weights *= 1.0 / (1.0 + self.config.DANGER_WEIGHT * danger)

            if self.crowd_size(context) >= self.config.CROWD_THRESHOLD:
                weights = self._crowd_escape(weights, danger)

        return weights

    def _crowd_escape(self, weights: np.ndarray, danger: np.ndarray) -> np.ndarray:
        """Suppress the riskiest moves and stay, promote the safest moves"""
        self.crowd_escapes += 1
        moving = np.arange(1, NUM_ACTIONS)
        # Stable sort keeps ties in action order
        ranked = moving[np.argsort(danger[moving], kind='stable')]
        safest = ranked[:self.config.CROWD_SAFE_COUNT]
        riskiest = ranked[-self.config.CROWD_RISKY_COUNT:]

        weights = weights.copy()
        weights[riskiest] *= self.config.CROWD_RISK_MULTIPLIER
        weights[safest] *= self.config.CROWD_SAFE_MULTIPLIER
        weights[Action.STAY] *= self.config.CROWD_STAY_MULTIPLIER
        logger.debug(f"Crowd escape - safest={safest.tolist()} riskiest={riskiest.tolist()}")
        return weights

    @staticmethod
    def sample_action(weights: np.ndarray, rng: np.random.Generator) -> int:
        """
        Normalize and sample by inverse CDF

        Returns:
            Action index; STAY when the weights are degenerate
        """
        weights = np.asarray(weights, dtype=np.float64)
        total = weights.sum()
        if not np.isfinite(total) or total <= 0 or np.any(weights < 0):
            return int(Action.STAY)
        cdf = np.cumsum(weights / total)
        index = int(np.searchsorted(cdf, rng.random(), side='right'))
        return min(index, NUM_ACTIONS - 1)

    def select(self, probs: np.ndarray, context: ThreatContext, mode: BlendMode,
               rng: np.random.Generator) -> int:
        """Blend then sample"""
        return self.sample_action(self.blend(probs, context, mode), rng)
