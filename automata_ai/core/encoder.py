"""
Observation Encoder
Turns a WorldSnapshot into a fixed-length float32 observation vector

Layout (always first, 8 features):
    player x, player y, health fraction, elapsed-time fraction,
    distance to left, right, top and bottom edges
COARSE remainder (13 features):
    8 directional threat scalars (N, NE, E, SE, S, SW, W, NW - same order as actions 1..8)
    nearest enemy distance, angle, threat level
SPATIAL_GRID remainder (GRID_SIZE^2 * 2 features):
    row-major cells of (density, nearest distance)
"""
import math
import logging
import numpy as np
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional
from automata_ai.config import Config, config as default_config
from automata_ai.core.world import WorldSnapshot

logger = logging.getLogger(__name__)

BASE_FEATURES = 8
NUM_SECTORS = 8
NEAREST_FEATURES = 3

class EncoderMode(str, Enum):
    COARSE = "coarse"
    SPATIAL_GRID = "spatial_grid"

@dataclass
class ThreatContext:
    """
    Normalized threat picture consumed by heuristics and the action selector

    Attributes:
        x, y: Player position in [0, 1]
        health: Health fraction in [0, 1]
        hostiles: (N, 3) array of (x, y, elite) in normalized playfield coordinates
    """
    x: float
    y: float
    health: float
    hostiles: np.ndarray

    @classmethod
    def empty(cls, x: float = 0.5, y: float = 0.5, health: float = 1.0) -> 'ThreatContext':
        return cls(x=x, y=y, health=health, hostiles=np.zeros((0, 3), dtype=np.float64))

def _live_hostiles(world: WorldSnapshot):
    """Active hostiles with finite coordinates"""
    for hostile in world.hostiles:
        if not hostile.active:
            continue
        if not (math.isfinite(hostile.x) and math.isfinite(hostile.y)):
            continue
        yield hostile

class ObservationEncoder:
    """
    Builds observation vectors for the policies
    Playfield size is read from the snapshot on every call (resolution independent)
    """

    def __init__(self, mode: EncoderMode = None, cfg: Config = None):
        self.config = cfg or default_config
        self.mode = EncoderMode(mode or self.config.ENCODER_MODE)
        self.grid_size = self.config.GRID_SIZE

        # Section builders dispatched by mode
        self._section_builders: Dict[EncoderMode, Callable] = {
            EncoderMode.COARSE: self._coarse_section,
            EncoderMode.SPATIAL_GRID: self._grid_section,
        }
        self._neutral_sections: Dict[EncoderMode, Callable] = {
            EncoderMode.COARSE: self._neutral_coarse,
            EncoderMode.SPATIAL_GRID: self._neutral_grid,
        }

        # Last good vector survives exactly one missing-player tick
        self.last_observation: Optional[np.ndarray] = None
        self.consecutive_failures = 0
        self.section_failures = 0

        logger.info(f"Observation encoder initialized - mode={self.mode.value}, size={self.observation_size}")

    @property
    def observation_size(self) -> int:
        return self.size_for(self.mode, self.grid_size)

    @staticmethod
    def size_for(mode: EncoderMode, grid_size: int = 8) -> int:
        """Observation length for an encoder mode"""
        if EncoderMode(mode) == EncoderMode.COARSE:
            return BASE_FEATURES + NUM_SECTORS + NEAREST_FEATURES
        return BASE_FEATURES + grid_size * grid_size * 2

    def encode(self, world: WorldSnapshot) -> Optional[np.ndarray]:
        """
        Encode the snapshot into an observation

        Args:
            world: Current world snapshot

        Returns:
            float32 vector, or None when the player is unavailable (caller skips the tick)
        """
        if world.player is None or world.width <= 0 or world.height <= 0:
            self._register_failure()
            return None

        base = self._base_features(world)
        try:
            section = self._section_builders[self.mode](world)
        except (ArithmeticError, AttributeError, TypeError, ValueError) as e:
            self.section_failures += 1
            logger.debug(f"Encoder section failed, using neutral values: {e}")
            section = self._neutral_sections[self.mode]()

        observation = np.concatenate([base, section]).astype(np.float32)
        self.last_observation = observation
        self.consecutive_failures = 0
        return observation

    def _register_failure(self):
        self.consecutive_failures += 1
        if self.consecutive_failures >= 2 and self.last_observation is not None:
            logger.debug("Player missing for consecutive ticks - dropping cached observation")
            self.last_observation = None

    def _base_features(self, world: WorldSnapshot) -> np.ndarray:
        x, y = world.normalized_position()
        health = world.player.health_fraction
        max_time = self.config.MAX_ELAPSED_TIME
        time_fraction = min(1.0, max(0.0, world.elapsed_time / max_time)) if max_time > 0 else 0.0
        return np.array([x, y, health, time_fraction, x, 1.0 - x, y, 1.0 - y], dtype=np.float64)

    def _grid_section(self, world: WorldSnapshot) -> np.ndarray:
        """Row-major (density, nearest distance) per cell"""
        g = self.grid_size
        counts = np.zeros((g, g), dtype=np.float64)
        min_dist = np.full((g, g), np.inf)
        cell_w = world.width / g
        cell_h = world.height / g
        diagonal = world.diagonal
        px, py = world.player.x, world.player.y

        for hostile in _live_hostiles(world):
            col = min(g - 1, max(0, int(hostile.x // cell_w)))
            row = min(g - 1, max(0, int(hostile.y // cell_h)))
            counts[row, col] += 1
            dist = math.hypot(hostile.x - px, hostile.y - py)
            if dist < min_dist[row, col]:
                min_dist[row, col] = dist

        density = np.minimum(1.0, counts / self.config.GRID_SATURATION)
        distance = np.where(
            counts > 0,
            np.minimum(1.0, min_dist / diagonal),
            self.config.EMPTY_CELL_DISTANCE
        )
        return np.stack([density, distance], axis=-1).reshape(-1)

    def _coarse_section(self, world: WorldSnapshot) -> np.ndarray:
        """Directional threats plus nearest enemy"""
        diagonal = world.diagonal
        radius = self.config.THREAT_RADIUS * diagonal
        px, py = world.player.x, world.player.y
        sectors = np.zeros(NUM_SECTORS, dtype=np.float64)

        nearest_dist = None
        nearest_angle = 0.0
        nearest_threat = 0.0

        for hostile in _live_hostiles(world):
            dx = hostile.x - px
            dy = hostile.y - py
            dist = math.hypot(dx, dy)
            threat = self.config.ELITE_THREAT if hostile.elite else self.config.REGULAR_THREAT

            if dist < radius:
                sectors[self._sector_index(dx, dy)] += threat * (1.0 - dist / radius)

            if nearest_dist is None or dist < nearest_dist:
                nearest_dist = dist
                nearest_angle = math.atan2(dy, dx) / math.pi
                nearest_threat = threat

        sectors = np.minimum(1.0, sectors)
        if nearest_dist is None:
            nearest = [1.0, 0.0, 0.0]
        else:
            nearest = [min(1.0, nearest_dist / diagonal), nearest_angle, nearest_threat]
        return np.concatenate([sectors, nearest])

    @staticmethod
    def _sector_index(dx: float, dy: float) -> int:
        """
        45 degree sector of a screen-space offset
        0=N, 1=NE, 2=E, 3=SE, 4=S, 5=SW, 6=W, 7=NW (screen y grows downward)
        """
        # Bearing clockwise from north
        bearing = math.degrees(math.atan2(dx, -dy)) % 360.0
        return int(((bearing + 22.5) % 360.0) // 45.0)

    def _neutral_grid(self) -> np.ndarray:
        cells = self.grid_size * self.grid_size
        section = np.zeros((cells, 2), dtype=np.float64)
        section[:, 1] = self.config.EMPTY_CELL_DISTANCE
        return section.reshape(-1)

    def _neutral_coarse(self) -> np.ndarray:
        return np.concatenate([np.zeros(NUM_SECTORS), [1.0, 0.0, 0.0]])

    def threat_context(self, world: WorldSnapshot) -> Optional[ThreatContext]:
        """
        Build the normalized threat picture from the same snapshot as the observation

        Returns:
            ThreatContext, or None when the player is unavailable
        """
        position = world.normalized_position()
        if position is None:
            return None
        rows: List[List[float]] = [
            [h.x / world.width, h.y / world.height, 1.0 if h.elite else 0.0]
            for h in _live_hostiles(world)
        ]
        hostiles = np.array(rows, dtype=np.float64) if rows else np.zeros((0, 3), dtype=np.float64)
        return ThreatContext(x=position[0], y=position[1],
                             health=world.player.health_fraction, hostiles=hostiles)

    def describe(self, observation: Optional[np.ndarray]) -> str:
        """One-line human-readable summary for debug logging"""
        if observation is None:
            return "observation unavailable"
        x, y, health = observation[0], observation[1], observation[2]
        summary = f"pos=({x:.2f}, {y:.2f}) health={health:.0%}"
        rest = observation[BASE_FEATURES:]
        if len(observation) == self.size_for(EncoderMode.COARSE):
            sector = int(np.argmax(rest[:NUM_SECTORS]))
            summary += (f" max_threat={rest[sector]:.2f}@sector{sector}"
                        f" nearest={rest[NUM_SECTORS]:.2f}")
        else:
            density = rest[0::2]
            occupied = int(np.count_nonzero(density))
            summary += f" occupied_cells={occupied}/{len(density)}"
        return summary
