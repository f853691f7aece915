"""
Time Utilities
Game-time throttling, timing context manager and duration formatting
"""
import time
import logging
from typing import Optional

logger = logging.getLogger(__name__)

def format_duration(seconds: float, precision: int = 2) -> str:
    """
    Format duration in human-readable format
    
    Args:
        seconds: Duration in seconds
        precision: Decimal precision for seconds
    
    Returns:
        Formatted string (e.g., "1h 23m 45.67s")
    """
    if seconds < 0:
        return "0s"
    
    hours = int(seconds // 3600)
    minutes = int((seconds % 3600) // 60)
    secs = seconds % 60
    
    parts = []
    if hours > 0:
        parts.append(f"{hours}h")
    if minutes > 0:
        parts.append(f"{minutes}m")
    if secs > 0 or not parts:
        parts.append(f"{secs:.{precision}f}s")
    
    return " ".join(parts)

class Timer:
    """
    Context manager for timing code blocks (wall-clock, diagnostics only)
    """
    
    def __init__(self, name: str = "Operation", logger_instance: Optional[logging.Logger] = None):
        self.name = name
        self.start_time = None
        self.end_time = None
        self.logger = logger_instance or logger
    
    def __enter__(self):
        self.start_time = time.perf_counter()
        return self
    
    def __exit__(self, exc_type, exc_val, exc_tb):
        self.end_time = time.perf_counter()
        self.logger.debug(f"{self.name} took {format_duration(self.elapsed(), precision=3)}")
        return False
    
    def elapsed(self) -> float:
        """Elapsed seconds (running total while inside the block)"""
        if self.start_time is None:
            return 0.0
        end = self.end_time if self.end_time else time.perf_counter()
        return end - self.start_time

class GameTimeThrottle:
    """
    Check whether enough GAME time has passed since the last accepted tick.
    A paused game does not advance game time, so it accrues no ticks.
    """
    
    def __init__(self, interval: float):
        """
        Args:
            interval: Minimum game-time interval between accepted ticks (seconds)
        """
        self.interval = interval
        self.last_tick: Optional[float] = None
    
    def ready(self, game_time: float) -> bool:
        """
        Accept the tick if the interval has elapsed in game time
        
        Returns:
            True if this tick should run, False otherwise
        """
        if self.last_tick is not None:
            # Game time went backwards: a new run started
            if game_time < self.last_tick:
                self.last_tick = None
            elif game_time - self.last_tick < self.interval:
                return False
        self.last_tick = game_time
        return True
    
    def reset(self):
        """Forget the last tick so the next call is accepted"""
        self.last_tick = None
    
    def time_until_next(self, game_time: float) -> float:
        """Game seconds remaining until the next tick is accepted"""
        if self.last_tick is None:
            return 0.0
        return max(0.0, self.interval - (game_time - self.last_tick))
