"""
Training Data Quality
Scores a demonstration corpus before behavior cloning and repairs the most common defect
(a corpus dominated by "stay" frames)
"""
import logging
import numpy as np
from collections import Counter
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple
from automata_ai.config import Config, config as default_config
from automata_ai.core.actions import Action, NUM_ACTIONS, action_delta
from automata_ai.utils.math_utils import normalized_entropy

logger = logging.getLogger(__name__)

# Composite score weights
BALANCE_WEIGHT = 0.35
BOUNDARY_WEIGHT = 0.25
CONSISTENCY_WEIGHT = 0.2
VOLUME_WEIGHT = 0.2

# Share of the balance score taken by normalized entropy (rest is class variety)
ENTROPY_SHARE = 0.7

@dataclass
class QualityReport:
    total: int
    score: float
    balance: float
    boundary: float
    consistency: float
    volume: float
    counts: List[int] = field(default_factory=list)
    sufficient: bool = False
    issues: List[str] = field(default_factory=list)

    @property
    def stay_fraction(self) -> float:
        return self.counts[Action.STAY] / self.total if self.total else 0.0

    def to_dict(self) -> dict:
        return {
            'total': self.total,
            'score': self.score,
            'balance': self.balance,
            'boundary': self.boundary,
            'consistency': self.consistency,
            'volume': self.volume,
            'counts': list(self.counts),
            'sufficient': self.sufficient,
            'issues': list(self.issues),
        }

def modal_length(states: Sequence) -> Optional[int]:
    """Most common state length (ties broken toward the longer vector)"""
    lengths = Counter(len(s) for s in states)
    if not lengths:
        return None
    return max(lengths.items(), key=lambda item: (item[1], item[0]))[0]

def _boundary_score(states: Sequence, actions: Sequence[int], margin: float) -> float:
    """Fraction of near-boundary frames whose action does not move further toward that boundary"""
    near = 0
    good = 0
    for state, action in zip(states, actions):
        if len(state) < 2:
            continue
        x, y = float(state[0]), float(state[1])
        dx, dy = action_delta(action)
        near_left, near_right = x < margin, x > 1.0 - margin
        near_top, near_bottom = y < margin, y > 1.0 - margin
        if not (near_left or near_right or near_top or near_bottom):
            continue
        near += 1
        toward = (
            (near_left and dx < 0) or (near_right and dx > 0) or
            (near_top and dy < 0) or (near_bottom and dy > 0)
        )
        if not toward:
            good += 1
    return good / near if near else 1.0

def assess_quality(states: Sequence, actions: Sequence[int], cfg: Config = None) -> QualityReport:
    """
    Composite quality score in [0, 1]

    Components:
        balance     - normalized entropy over the 9 classes blended with class variety
        boundary    - near-edge frames that do not push further into the edge
        consistency - states matching the modal vector length
        volume      - n / QUALITY_VOLUME_TARGET, capped at 1

    Args:
        states: Observation vectors
        actions: Action labels
        cfg: Optional config override

    Returns:
        QualityReport
    """
    cfg = cfg or default_config
    total = len(actions)
    counts = [0] * NUM_ACTIONS
    for action in actions:
        counts[int(action)] += 1

    if total == 0:
        return QualityReport(total=0, score=0.0, balance=0.0, boundary=0.0, consistency=0.0,
                             volume=0.0, counts=counts, sufficient=False, issues=["no examples"])

    entropy = normalized_entropy(counts)
    variety = sum(1 for c in counts if c > 0) / NUM_ACTIONS
    balance = ENTROPY_SHARE * entropy + (1.0 - ENTROPY_SHARE) * variety

    boundary = _boundary_score(states, actions, cfg.NEAR_BOUNDARY_MARGIN)

    modal = modal_length(states)
    consistency = sum(1 for s in states if len(s) == modal) / total

    volume = min(1.0, total / cfg.QUALITY_VOLUME_TARGET)

    score = (BALANCE_WEIGHT * balance + BOUNDARY_WEIGHT * boundary +
             CONSISTENCY_WEIGHT * consistency + VOLUME_WEIGHT * volume)

    issues = []
    sufficient = total >= cfg.MIN_DEMONSTRATIONS
    if not sufficient:
        issues.append(f"only {total} examples (need {cfg.MIN_DEMONSTRATIONS})")
    stay_fraction = counts[Action.STAY] / total
    if stay_fraction > cfg.STAY_MAX_FRACTION:
        issues.append(f"'stay' is {stay_fraction:.0%} of labels")
    if variety < 0.5:
        issues.append(f"only {sum(1 for c in counts if c > 0)} distinct actions")
    if boundary < 0.5:
        issues.append("frequent movement into edges")
    if consistency < 1.0:
        issues.append(f"{total - int(round(consistency * total))} examples with inconsistent state length")

    return QualityReport(
        total=total, score=float(score), balance=float(balance), boundary=float(boundary),
        consistency=float(consistency), volume=float(volume), counts=counts,
        sufficient=sufficient, issues=issues,
    )

def filter_consistent(states: Sequence, actions: Sequence[int],
                      expected_length: Optional[int] = None) -> Tuple[list, list, int]:
    """
    Drop examples whose state length differs from the expected (default: modal) length

    Returns:
        (states, actions, dropped_count)
    """
    length = expected_length or modal_length(states)
    kept_states, kept_actions = [], []
    for state, action in zip(states, actions):
        if len(state) == length:
            kept_states.append(state)
            kept_actions.append(action)
    dropped = len(states) - len(kept_states)
    if dropped:
        logger.warning(f"Dropped {dropped} examples with state length != {length}")
    return kept_states, kept_actions, dropped

def rebalance_stay_class(states: Sequence, actions: Sequence[int], max_fraction: float = None,
                         rng: np.random.Generator = None) -> Tuple[list, list, int]:
    """
    Down-sample "stay" so it is at most `max_fraction` of the corpus
    Every non-stay example is kept and relative order is preserved

    Returns:
        (states, actions, removed_count); the corpus is returned unchanged
        when it has no non-stay examples
    """
    max_fraction = default_config.STAY_MAX_FRACTION if max_fraction is None else max_fraction
    rng = rng or np.random.default_rng(default_config.RANDOM_SEED)

    stay_indices = [i for i, a in enumerate(actions) if int(a) == Action.STAY]
    other_count = len(actions) - len(stay_indices)
    if other_count == 0 or not stay_indices:
        return list(states), list(actions), 0

    cap = int(np.floor(max_fraction / (1.0 - max_fraction) * other_count))
    if len(stay_indices) <= cap:
        return list(states), list(actions), 0

    keep_stay = set(rng.choice(stay_indices, size=cap, replace=False).tolist()) if cap > 0 else set()
    kept_states, kept_actions = [], []
    for i, (state, action) in enumerate(zip(states, actions)):
        if int(action) != Action.STAY or i in keep_stay:
            kept_states.append(state)
            kept_actions.append(action)

    removed = len(actions) - len(kept_actions)
    logger.info(f"⚖️  Rebalanced 'stay': kept {cap}/{len(stay_indices)} ({removed} removed)")
    return kept_states, kept_actions, removed
