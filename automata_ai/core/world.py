"""
World Snapshot Types
Read-only view of the live game world handed to the controller every tick
"""
from dataclasses import dataclass, field
from typing import Optional, Sequence, Tuple

@dataclass(frozen=True)
class Hostile:
    """A single enemy on the playfield (pixel coordinates)"""
    x: float
    y: float
    elite: bool = False
    active: bool = True

@dataclass(frozen=True)
class PlayerState:
    """Player position (pixels) and health"""
    x: float
    y: float
    health: float
    max_health: float = 100.0

    @property
    def health_fraction(self) -> float:
        if self.max_health <= 0:
            return 0.0
        return max(0.0, min(1.0, self.health / self.max_health))

@dataclass(frozen=True)
class WorldSnapshot:
    """
    Snapshot of the game world at one tick
    
    Attributes:
        width, height: Current playfield size in pixels (may change between ticks)
        player: Player state, or None while the player object is unavailable
        hostiles: Enemies on the field
        elapsed_time: Seconds survived in the current run
        game_time: Monotonic game clock in seconds (does not advance while paused)
        score: Current score / kill count
        game_over: True on the tick the run ends
        level_up_active: True while the level-up choice screen is shown
    """
    width: float
    height: float
    player: Optional[PlayerState]
    hostiles: Sequence[Hostile] = field(default_factory=tuple)
    elapsed_time: float = 0.0
    game_time: float = 0.0
    score: float = 0.0
    game_over: bool = False
    level_up_active: bool = False

    @property
    def diagonal(self) -> float:
        return (self.width ** 2 + self.height ** 2) ** 0.5

    def normalized_position(self) -> Optional[Tuple[float, float]]:
        """Player position in [0, 1] playfield coordinates, None without a player"""
        if self.player is None or self.width <= 0 or self.height <= 0:
            return None
        x = max(0.0, min(1.0, self.player.x / self.width))
        y = max(0.0, min(1.0, self.player.y / self.height))
        return x, y
