"""
Math and Statistics Utilities
Provides running averages and distribution statistics
"""
import numpy as np
from typing import Deque, List, Sequence, Union

def moving_average(values: Union[List, Deque, np.ndarray], window: int = None) -> float:
    """
    Calculate moving average over the last `window` values
    
    Args:
        values: Sequence of values
        window: Window size (defaults to all values)
    
    Returns:
        Moving average (0.0 for an empty sequence)
    """
    if len(values) == 0:
        return 0.0
    
    if window is None:
        window = len(values)
    
    window = min(window, len(values))
    recent = list(values)[-window:]
    
    return float(np.mean(recent))

def normalized_entropy(counts: Sequence[float]) -> float:
    """
    Shannon entropy of a count histogram divided by log(num_bins)
    
    Returns:
        Value in [0, 1]; 1.0 means perfectly balanced, 0.0 means a single class
    """
    counts = np.asarray(counts, dtype=np.float64)
    total = counts.sum()
    if total <= 0 or len(counts) < 2:
        return 0.0
    probs = counts[counts > 0] / total
    entropy = -np.sum(probs * np.log(probs))
    return float(entropy / np.log(len(counts)))
