"""
Human Demonstration Recorder: records (observation, action) pairs while a human plays
Sessions are committed into the demonstration corpus or discarded as a whole
"""
import time
import threading
import numpy as np
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple
from automata_ai.config import Config, config as default_config
from automata_ai.core.actions import Action, NUM_ACTIONS, action_name
from automata_ai.learning.data_quality import assess_quality
from automata_ai.utils.file_utils import get_timestamped_filename, save_json
from automata_ai.utils.time_utils import GameTimeThrottle

logger = logging.getLogger(__name__)

EXPORT_FORMAT = "automata-ai-demonstrations"
EXPORT_VERSION = 2
SOURCES = ('human', 'ai')

@dataclass
class DemonstrationExample:
    state: np.ndarray
    action: int
    timestamp: float
    source: str = 'human'
    metadata: Dict = field(default_factory=dict)

@dataclass
class LevelUpRecord:
    """Level-up choice (recorded and exported for analysis, never trained on)"""
    options: List[str]
    choice: str
    timestamp: float

class DemonstrationStore:
    """
    Committed demonstration corpus used by the imitation trainer
    Background training snapshots it while the recorder keeps committing to it
    """

    def __init__(self):
        self._lock = threading.Lock()
        self.examples: List[DemonstrationExample] = []
        self.level_ups: List[LevelUpRecord] = []

    def add_examples(self, examples: Sequence[DemonstrationExample]):
        with self._lock:
            self.examples.extend(examples)

    def snapshot(self, sources: Optional[Sequence[str]] = None) -> List[DemonstrationExample]:
        """Copy of the current examples, optionally limited to the given sources"""
        with self._lock:
            if sources is None:
                return list(self.examples)
            return [e for e in self.examples if e.source in sources]

    def remove_examples(self, examples: Sequence[DemonstrationExample]) -> int:
        """
        Remove exactly these example objects (by identity)
        Examples committed after a snapshot was taken are kept

        Returns:
            Number of examples removed
        """
        targets = {id(e) for e in examples}
        with self._lock:
            before = len(self.examples)
            self.examples[:] = [e for e in self.examples if id(e) not in targets]
            return before - len(self.examples)

    def add_level_ups(self, records: Sequence[LevelUpRecord]):
        self.level_ups.extend(records)

    def states(self) -> List[np.ndarray]:
        return [e.state for e in self.examples]

    def actions(self) -> List[int]:
        return [e.action for e in self.examples]

    def import_document(self, document: Dict, source: str = 'human') -> int:
        """
        Add examples from an imported document

        Returns:
            Number of examples added

        Raises:
            ValueError: malformed document
        """
        if source not in SOURCES:
            raise ValueError(f"Unknown demonstration source: {source!r}")
        states, actions = import_examples(document)
        now = time.time()
        self.add_examples([
            DemonstrationExample(state=state, action=action, timestamp=now, source=source,
                                 metadata={'imported': True})
            for state, action in zip(states, actions)
        ])
        logger.info(f"📥 Imported {len(states)} demonstration examples ({len(self.examples)} total)")
        return len(states)

    def __len__(self):
        return len(self.examples)

def _valid_action(action) -> int:
    action = int(action)
    if not 0 <= action < NUM_ACTIONS:
        raise ValueError(f"Action {action} out of range")
    return action

def import_examples(document: Dict) -> Tuple[List[np.ndarray], List[int]]:
    """
    Parse an imported demonstration document

    Accepted layouts:
        {"states": [...], "actions": [...]}                      (compact / session export)
        {"examples": [{"state"|"s": [...], "action"|"a": n}]}   (per-example)

    Returns:
        (states, actions)

    Raises:
        ValueError: unknown layout, mismatched lengths or invalid actions
    """
    if not isinstance(document, dict):
        raise ValueError("Demonstration document must be a JSON object")

    if 'states' in document and 'actions' in document:
        raw_states, raw_actions = document['states'], document['actions']
        if len(raw_states) != len(raw_actions):
            raise ValueError(f"{len(raw_states)} states but {len(raw_actions)} actions")
    elif 'examples' in document:
        raw_states, raw_actions = [], []
        for index, example in enumerate(document['examples']):
            state = example.get('state', example.get('s'))
            action = example.get('action', example.get('a'))
            if state is None or action is None:
                raise ValueError(f"Example {index} has no state/action")
            raw_states.append(state)
            raw_actions.append(action)
    else:
        raise ValueError("Unknown demonstration layout (expected 'states'/'actions' or 'examples')")

    try:
        states = [np.asarray(s, dtype=np.float32) for s in raw_states]
        actions = [_valid_action(a) for a in raw_actions]
    except (TypeError, ValueError) as e:
        raise ValueError(f"Invalid demonstration data: {e}") from e
    return states, actions

class DemonstrationRecorder:
    """
    Records demonstrations at a fixed game-time rate
    A session is either committed to the store in full or dropped
    """

    def __init__(self, store: DemonstrationStore = None, cfg: Config = None):
        self.config = cfg or default_config
        self.store = store if store is not None else DemonstrationStore()

        # Recording state
        self.recording = False
        self.session_name: Optional[str] = None
        self.session_examples: List[DemonstrationExample] = []
        self.session_level_ups: List[LevelUpRecord] = []
        self.session_start_time: Optional[float] = None
        self.throttle = GameTimeThrottle(self.config.RECORDING_INTERVAL)

        # Statistics
        self.total_sessions = 0
        self.total_committed = 0
        self.rate_limited = 0

    def start_recording(self, name: str = None):
        """Start a new recording session"""
        if self.recording:
            logger.warning("Already recording")
            return

        self.recording = True
        self.session_name = name or f"session_{int(time.time())}"
        self.session_examples = []
        self.session_level_ups = []
        self.session_start_time = time.time()
        self.throttle.reset()

        logger.info(f"🎥 Demonstration recording started ({self.session_name})")

    def record(self, state: np.ndarray, action: int, game_time: float,
               source: str = 'human', metadata: Dict = None) -> bool:
        """
        Record one (observation, action) pair

        Args:
            state: Encoded observation
            action: Action index the player took
            game_time: Game clock in seconds (rate limit runs on game time)
            source: 'human' or 'ai'
            metadata: Extra context (game time, health, score)

        Returns:
            True if the example was recorded
        """
        if not self.recording:
            return False
        if source not in SOURCES:
            raise ValueError(f"Unknown demonstration source: {source!r}")

        action = _valid_action(action)
        if not self.throttle.ready(game_time):
            self.rate_limited += 1
            return False

        example = DemonstrationExample(
            state=np.asarray(state, dtype=np.float32).copy(),
            action=action,
            timestamp=game_time,
            source=source,
            metadata=dict(metadata or {}),
        )
        self.session_examples.append(example)

        if self.config.DETAILED_LOGGING and len(self.session_examples) % 100 == 0:
            logger.debug(f"Recorded {len(self.session_examples)} examples (last: {action_name(action)})")
        return True

    def record_level_up(self, options: Sequence[str], choice: str, game_time: float):
        """Record a level-up choice for export"""
        if not self.recording:
            return
        self.session_level_ups.append(LevelUpRecord(options=list(options), choice=choice, timestamp=game_time))
        logger.debug(f"Level-up recorded: {choice} from {list(options)}")

    def stop_recording(self, commit: bool = True) -> int:
        """
        Stop the session

        Args:
            commit: True moves the session into the store, False discards it

        Returns:
            Number of examples committed
        """
        if not self.recording:
            return 0

        self.recording = False
        examples = self.session_examples
        level_ups = self.session_level_ups
        self.session_examples = []
        self.session_level_ups = []
        duration = time.time() - self.session_start_time

        if not commit:
            logger.info(f"🗑️  Recording discarded ({len(examples)} examples, {duration:.1f}s)")
            return 0

        self.store.add_examples(examples)
        self.store.add_level_ups(level_ups)
        self.total_sessions += 1
        self.total_committed += len(examples)
        logger.info(f"Recording stopped. Committed {len(examples)} examples over {duration:.1f}s "
                    f"({len(self.store)} in corpus)")
        return len(examples)

    def _export_source(self) -> Tuple[List[DemonstrationExample], List[LevelUpRecord]]:
        if self.recording:
            return self.session_examples, self.session_level_ups
        return self.store.examples, self.store.level_ups

    def export_session(self) -> Dict:
        """
        Export document of the active session (or the committed corpus when idle)
        """
        examples, level_ups = self._export_source()
        states = [e.state.tolist() for e in examples]
        actions = [int(e.action) for e in examples]
        quality = assess_quality(states, actions, self.config) if examples else None
        duration = (examples[-1].timestamp - examples[0].timestamp) if len(examples) > 1 else 0.0

        return {
            'format': EXPORT_FORMAT,
            'version': EXPORT_VERSION,
            'session': self.session_name,
            'summary': {
                'total_examples': len(examples),
                'movement_examples': sum(1 for a in actions if a != Action.STAY),
                'level_up_examples': len(level_ups),
                'quality_score': quality.score if quality else 0.0,
                'duration': duration,
            },
            'states': states,
            'actions': actions,
            'timestamps': [e.timestamp for e in examples],
            'sources': [e.source for e in examples],
            'level_ups': [
                {'options': r.options, 'choice': r.choice, 'timestamp': r.timestamp}
                for r in level_ups
            ],
        }

    def save_export(self, path: str = None) -> Optional[str]:
        """
        Write the export document to disk

        Returns:
            File path, or None on failure
        """
        path = path or get_timestamped_filename(self.session_name or "demonstrations", "json",
                                                self.config.EXPORT_PATH)
        if save_json(self.export_session(), path):
            logger.info(f"💾 Demonstrations exported to {path}")
            return path
        return None

    def get_action_statistics(self) -> Dict:
        """Label histogram of the active session (or corpus)"""
        examples, _ = self._export_source()
        counts = {action_name(a): 0 for a in Action}
        for example in examples:
            counts[action_name(example.action)] += 1
        total = len(examples)
        return {
            'total': total,
            'counts': counts,
            'stay_fraction': counts[action_name(Action.STAY)] / total if total else 0.0,
            'rate_limited': self.rate_limited,
            'sessions': self.total_sessions,
        }
