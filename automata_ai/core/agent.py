"""
Main Orchestrator: Automata Controller
Brings together encoder, policies, recorder and actuator into one per-tick control loop
"""
import logging
import numpy as np
from enum import Enum
from typing import Dict, Optional, Sequence
from automata_ai.config import Config, config as default_config
from automata_ai.core.action_selector import ActionSelector, BlendMode
from automata_ai.core.encoder import ObservationEncoder, ThreatContext
from automata_ai.core.error_handler import ErrorHandler
from automata_ai.core.heuristics import bootstrap_action, heuristic_action
from automata_ai.core.rl_agent import SurvivalAgent
from automata_ai.core.world import WorldSnapshot
from automata_ai.input.actuator import Actuator, VirtualKeyActuator
from automata_ai.learning.human_recorder import DemonstrationRecorder, DemonstrationStore
from automata_ai.learning.imitation_learner import ImitationLearner, TrainingResult
from automata_ai.learning.reward_shaper import RewardShaper, RewardSnapshot
from automata_ai.storage.model_store import ModelLoadError, ModelStore
from automata_ai.utils.time_utils import GameTimeThrottle

logger = logging.getLogger(__name__)

class PolicyMode(str, Enum):
    REINFORCEMENT = "reinforcement"
    IMITATION = "imitation"
    ASSISTED_IMITATION = "assisted_imitation"

BLEND_MODES: Dict[PolicyMode, BlendMode] = {
    PolicyMode.IMITATION: BlendMode.PURE_IMITATION,
    PolicyMode.ASSISTED_IMITATION: BlendMode.ASSISTED,
}

class AutomataController:
    """
    Per-tick orchestrator driven by the host game loop via `update(world)`

    Modes (mutually exclusive):
        AI control - the active policy steers through the actuator
        Recording  - the human plays, (observation, action) pairs are recorded
    """

    def __init__(self, actuator: Actuator = None, cfg: Config = None, model_store: ModelStore = None,
                 encoder: ObservationEncoder = None, rng: np.random.Generator = None):
        self.config = cfg or default_config
        self.rng = rng or np.random.default_rng(self.config.RANDOM_SEED)
        self.actuator = actuator or VirtualKeyActuator()

        self.encoder = encoder or ObservationEncoder(cfg=self.config)
        input_size = self.encoder.observation_size
        self.model_store = model_store or ModelStore(cfg=self.config)
        self.selector = ActionSelector(self.config)
        self.agent = SurvivalAgent(input_size, model_store=self.model_store, cfg=self.config, rng=self.rng)
        self.demonstrations = DemonstrationStore()
        self.recorder = DemonstrationRecorder(self.demonstrations, cfg=self.config)
        self.imitation = ImitationLearner(input_size, self.demonstrations, model_store=self.model_store,
                                          cfg=self.config, rng=self.rng)
        self.reward_shaper = RewardShaper(self.config)
        self.error_handler = ErrorHandler(controller=self, max_errors=self.config.MAX_ERRORS,
                                          error_window=self.config.ERROR_WINDOW)
        self.throttle = GameTimeThrottle(self.config.DECISION_INTERVAL)

        self.policy_mode = PolicyMode(self.config.POLICY_MODE)
        self.ai_control = False

        # Transition waiting for the next decision's reward
        self._pending = None
        self._game_over_handled = False

        # Statistics
        self.decisions = 0
        self.skipped_ticks = 0
        self.last_action: Optional[int] = None
        self.last_training: Optional[TrainingResult] = None

        logger.info(f"Automata controller initialized - mode={self.policy_mode.value}, "
                    f"observation={input_size} features")

    @property
    def recording(self) -> bool:
        return self.recorder.recording

    # ---- error handling -------------------------------------------------

    def _handle_error(self, error: Exception, context: str):
        logger.error(f"Controller error in {context}: {error}", exc_info=True)
        self.error_handler.record_error(error, context=context, component="controller")

    # ---- main loop ------------------------------------------------------

    def update(self, world: WorldSnapshot) -> Optional[int]:
        """
        Process one host tick

        Args:
            world: Current world snapshot

        Returns:
            Action asserted (AI) or recorded (human) on this tick, None when nothing happened
        """
        try:
            if world.game_over:
                if not self._game_over_handled:
                    self._game_over_handled = True
                    self._handle_game_over(world)
                return None
            self._game_over_handled = False

            if self.recording:
                return self._record_tick(world)
            if not self.ai_control:
                return None
            if world.level_up_active:
                # Level-up screen pauses movement
                self.actuator.release_all()
                return None
            if not self.throttle.ready(world.game_time):
                return None

            observation = self.encoder.encode(world)
            if observation is None:
                self.skipped_ticks += 1
                return None
            context = self.encoder.threat_context(world)

            action = self._decide(observation, context, world)
            self.actuator.apply_action(action)
            self.decisions += 1
            self.last_action = action

            if self.config.DETAILED_LOGGING:
                logger.debug(f"Decision {self.decisions}: action={action} {self.encoder.describe(observation)}")
            return action
        except Exception as e:
            self._handle_error(e, "update")
            return None

    def _record_tick(self, world: WorldSnapshot) -> Optional[int]:
        observation = self.encoder.encode(world)
        if observation is None:
            self.skipped_ticks += 1
            return None
        action = int(self.actuator.read_human_action())
        metadata = {
            'game_time': world.game_time,
            'health': world.player.health,
            'score': world.score,
        }
        if self.recorder.record(observation, action, world.game_time, source='human', metadata=metadata):
            return action
        return None

    def _decide(self, observation: np.ndarray, context: ThreatContext, world: WorldSnapshot) -> int:
        if self.policy_mode == PolicyMode.REINFORCEMENT:
            return self._decide_reinforcement(observation, context, world)

        probs = self.imitation.predict_probs(observation)
        if probs is None:
            # Untrained or busy training
            if not self.imitation.trained:
                return bootstrap_action(context, self.config)
            return heuristic_action(context, self.rng, self.config)
        return self.selector.select(probs, context, BLEND_MODES[self.policy_mode], self.rng)

    def _decide_reinforcement(self, observation: np.ndarray, context: ThreatContext,
                              world: WorldSnapshot) -> int:
        snapshot = RewardSnapshot.from_world(world)
        if self._pending is not None:
            prev_observation, prev_action, prev_snapshot = self._pending
            reward = self.reward_shaper.compute(prev_snapshot, snapshot)
            self.agent.remember(prev_observation, prev_action, reward, observation, False)

        action = self.agent.choose_action(observation, context)
        self._pending = (observation, action, snapshot)

        if (self.decisions + 1) % self.config.TRAIN_EVERY_DECISIONS == 0:
            self._schedule_replay()
        return action

    def _schedule_replay(self):
        if self.config.TRAIN_ASYNC:
            self.agent.replay_async(on_error=lambda e: self.error_handler.record_error(e, "replay", "rl_agent"))
        else:
            self.agent.replay()

    def _handle_game_over(self, world: WorldSnapshot):
        """Close the RL episode, finish recording and auto-train"""
        logger.info(f"💀 Game over - survived {world.elapsed_time:.1f}s, score {world.score}")

        if self._pending is not None:
            prev_observation, prev_action, prev_snapshot = self._pending
            final = RewardSnapshot(
                health=world.player.health if world.player else 0.0,
                score=world.score,
                game_time=world.game_time,
                x=prev_snapshot.x,
                y=prev_snapshot.y,
                game_over=True,
            )
            reward = self.reward_shaper.compute(prev_snapshot, final)
            self.agent.remember(prev_observation, prev_action, reward, None, True)
            self._pending = None
        self.reward_shaper.reset()
        self.throttle.reset()

        if self.ai_control:
            self.actuator.release_all()

        if self.recording:
            committed = self.recorder.stop_recording(commit=True)
            if committed and self.config.AUTO_TRAIN_ON_GAME_OVER:
                logger.info("🎓 Auto-training on the recorded session")
                self.train_imitation(auto_save=True)

    # ---- commands -------------------------------------------------------

    def toggle_ai_control(self) -> bool:
        """
        Toggle AI control (stops recording, committing it)

        Returns:
            New AI control state
        """
        try:
            if self.ai_control:
                self.stop_ai_control(reason="toggled off")
                return False
            if self.recording:
                self.recorder.stop_recording(commit=True)
            self.ai_control = True
            self._pending = None
            self.throttle.reset()
            logger.info(f"🤖 AI control enabled ({self.policy_mode.value})")
            return True
        except Exception as e:
            self._handle_error(e, "toggle_ai_control")
            return self.ai_control

    def stop_ai_control(self, reason: str = None):
        """Leave AI control and release every asserted input immediately"""
        was_active = self.ai_control
        self.ai_control = False
        self._pending = None
        self.actuator.release_all()
        if was_active:
            logger.info(f"🛑 AI control disabled{f' ({reason})' if reason else ''}")

    def toggle_recording(self, commit: bool = True) -> bool:
        """
        Toggle recording (stops AI control)

        Args:
            commit: When stopping, keep (True) or discard (False) the session

        Returns:
            New recording state
        """
        try:
            if self.recording:
                self.recorder.stop_recording(commit=commit)
                return False
            if self.ai_control:
                self.stop_ai_control(reason="recording started")
            self.recorder.start_recording()
            return True
        except Exception as e:
            self._handle_error(e, "toggle_recording")
            return self.recording

    def record_level_up(self, options: Sequence[str], choice: str, game_time: float):
        try:
            self.recorder.record_level_up(options, choice, game_time)
        except Exception as e:
            self._handle_error(e, "record_level_up")

    def set_policy_mode(self, mode) -> bool:
        """Switch the policy used under AI control"""
        try:
            self.policy_mode = PolicyMode(mode)
            self._pending = None
            logger.info(f"Policy mode set to {self.policy_mode.value}")
            return True
        except Exception as e:
            self._handle_error(e, "set_policy_mode")
            return False

    def train_imitation(self, asynchronous: bool = None, auto_save: bool = False) -> Optional[TrainingResult]:
        """
        Train the imitation policy on the demonstration corpus

        Args:
            asynchronous: Train on a background thread (defaults to TRAIN_ASYNC)
            auto_save: Save the model after a successful pass

        Returns:
            TrainingResult (synchronous), None when started in the background or on error
        """
        asynchronous = self.config.TRAIN_ASYNC if asynchronous is None else asynchronous
        try:
            if asynchronous:
                def _done(result: TrainingResult):
                    self.last_training = result
                    if result.trained and auto_save:
                        self.imitation.save_model("auto_trained")
                self.imitation.train_async(on_complete=_done)
                return None

            result = self.imitation.train()
            self.last_training = result
            if result.trained and auto_save:
                self.imitation.save_model("auto_trained")
            return result
        except Exception as e:
            self._handle_error(e, "train_imitation")
            return None

    def save_models(self) -> Dict:
        """Save both policies; returns SaveResult (or None) per policy"""
        results = {}
        try:
            results['value'] = self.agent.save_model()
            results['imitation'] = self.imitation.save_model()
        except Exception as e:
            self._handle_error(e, "save_models")
        return results

    def load_models(self, value_name: str = None, imitation_name: str = None) -> Dict[str, bool]:
        """Load both policies; a policy that fails to load keeps its current model"""
        results = {'value': False, 'imitation': False}
        loaders = {
            'value': lambda: self.agent.load_model(value_name),
            'imitation': lambda: self.imitation.load_model(imitation_name),
        }
        for key, loader in loaders.items():
            try:
                results[key] = loader()
            except ModelLoadError as e:
                logger.warning(f"Could not load {key} model: {e}")
            except Exception as e:
                self._handle_error(e, f"load_models.{key}")
        return results

    def export_session(self, save: bool = True) -> Optional[Dict]:
        """
        Export the active session (or committed corpus)

        Returns:
            Export document, or None on error
        """
        try:
            document = self.recorder.export_session()
            if save:
                self.recorder.save_export()
            return document
        except Exception as e:
            self._handle_error(e, "export_session")
            return None

    def import_demonstrations(self, document: Dict) -> int:
        try:
            return self.demonstrations.import_document(document)
        except Exception as e:
            self._handle_error(e, "import_demonstrations")
            return 0

    def get_stats(self) -> Dict:
        return {
            'ai_control': self.ai_control,
            'recording': self.recording,
            'policy_mode': self.policy_mode.value,
            'decisions': self.decisions,
            'skipped_ticks': self.skipped_ticks,
            'last_action': self.last_action,
            'agent': self.agent.get_stats(),
            'imitation': self.imitation.get_stats(),
            'recorder': self.recorder.get_action_statistics(),
            'errors': self.error_handler.get_error_stats(),
        }
