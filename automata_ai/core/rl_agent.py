"""
Survival Agent: DQN-style action-value learner
Learns from its own experience; acts with heuristics until it has data and a trained network
"""
import torch
import torch.nn.functional as F
import torch.optim as optim
import numpy as np
import logging
from typing import Dict, Optional
from automata_ai.config import Config, config as default_config
from automata_ai.core.dqn_model import ValueNetwork, create_value_network
from automata_ai.core.encoder import ThreatContext
from automata_ai.core.heuristics import bootstrap_action, heuristic_action
from automata_ai.core.model import ModelKind, PolicyModel
from automata_ai.core.policy_guard import PolicyGuard
from automata_ai.learning.model_tracker import ModelTracker
from automata_ai.learning.replay_buffer import ReplayBuffer

logger = logging.getLogger(__name__)

class SurvivalAgent:
    """
    Epsilon-greedy value agent with experience replay and a target network

    Lifecycle:
        untrained -> bootstrapping (fewer than BOOTSTRAP_TRANSITIONS stored, deterministic heuristic)
        -> trained (epsilon-greedy) -> exploiting (epsilon at EPSILON_MIN)
    """

    MODEL_NAME = "survival_value"

    def __init__(self, input_size: int, model_store=None, cfg: Config = None,
                 rng: np.random.Generator = None):
        self.config = cfg or default_config
        self.input_size = input_size
        self.model_store = model_store
        self.rng = rng or np.random.default_rng(self.config.RANDOM_SEED)
        self.device = self.config.DEVICE

        network = create_value_network(
            input_size, device=self.device,
            num_actions=self.config.NUM_ACTIONS,
            hidden_sizes=self.config.VALUE_HIDDEN_SIZES,
            dropout=self.config.VALUE_DROPOUT,
        )
        self.model = PolicyModel(kind=ModelKind.VALUE, network=network, trained=False)
        self.target_network = self._make_target(network)
        self.optimizer = optim.Adam(network.parameters(), lr=self.config.LEARNING_RATE)

        self.memory = ReplayBuffer(self.config.REPLAY_BUFFER_SIZE, rng=self.rng)
        self.guard = PolicyGuard("value")
        self.tracker = ModelTracker(self.config.LEARNING_RATE, cfg=self.config, name="value agent")

        self.epsilon = self.config.EPSILON_START
        self.train_calls = 0
        self.action_sources: Dict[str, int] = {'bootstrap': 0, 'explore': 0, 'network': 0, 'busy': 0}

        logger.info(f"Survival agent initialized - input={input_size}, epsilon={self.epsilon:.2f}")

    def _make_target(self, network: ValueNetwork) -> ValueNetwork:
        target = ValueNetwork(network.input_size, network.num_actions, network.hidden_sizes, network.dropout)
        target = target.to(self.device)
        target.load_state_dict(network.state_dict())
        target.eval()
        return target

    @property
    def trained(self) -> bool:
        return self.model.trained

    def remember(self, state: np.ndarray, action: int, reward: float,
                 next_state: Optional[np.ndarray], terminal: bool):
        self.memory.push(state, action, reward, next_state, terminal)

    def choose_action(self, observation: np.ndarray, context: ThreatContext) -> int:
        """
        Pick an action for the current observation

        Args:
            observation: Encoded observation
            context: Threat context from the same snapshot

        Returns:
            Action index in [0, NUM_ACTIONS)
        """
        if not self.model.trained or len(self.memory) < self.config.BOOTSTRAP_TRANSITIONS:
            self.action_sources['bootstrap'] += 1
            return bootstrap_action(context, self.config)

        if self.rng.random() < self.epsilon:
            self.action_sources['explore'] += 1
            return heuristic_action(context, self.rng, self.config)

        with self.guard.try_inference() as available:
            if not available:
                self.action_sources['busy'] += 1
                return heuristic_action(context, self.rng, self.config)
            q_values = self.model.predict(observation)

        self.action_sources['network'] += 1
        return int(np.argmax(q_values))

    def replay(self) -> Optional[float]:
        """
        One synchronous training pass over a uniform batch

        Returns:
            Loss, or None when there is not enough data or training is already in flight
        """
        if len(self.memory) < self.config.BATCH_SIZE:
            return None
        started, loss = self.guard.run_training(self._train_step)
        return loss if started else None

    def replay_async(self, on_error=None) -> bool:
        """Run a training pass on a daemon thread; False if skipped"""
        if len(self.memory) < self.config.BATCH_SIZE:
            return False
        return self.guard.run_training_async(self._train_step, on_error=on_error)

    def _train_step(self) -> float:
        """Caller holds the weights"""
        cfg = self.config
        states, actions, rewards, next_states, terminals = self.memory.sample_arrays(cfg.BATCH_SIZE)

        states_t = torch.as_tensor(states, device=self.device)
        actions_t = torch.as_tensor(actions, device=self.device)
        rewards_t = torch.as_tensor(rewards, device=self.device)
        next_states_t = torch.as_tensor(next_states, device=self.device)
        terminals_t = torch.as_tensor(terminals, device=self.device)

        with torch.no_grad():
            next_q = self.target_network(next_states_t).max(dim=1).values
            targets = rewards_t + cfg.GAMMA * next_q * (1.0 - terminals_t)

        network = self.model.network
        network.train()
        q_taken = network(states_t).gather(1, actions_t.unsqueeze(1)).squeeze(1)
        loss = F.mse_loss(q_taken, targets)

        self.optimizer.zero_grad()
        loss.backward()
        self.optimizer.step()
        network.eval()

        loss_value = float(loss.item())
        self.model.trained = True
        self.epsilon = max(cfg.EPSILON_MIN, self.epsilon * cfg.EPSILON_DECAY)
        self.train_calls += 1
        self.tracker.record_step(loss_value)

        if self.train_calls % cfg.TARGET_SYNC_INTERVAL == 0:
            self.target_network.load_state_dict(network.state_dict())
            logger.debug(f"Target network synced at training call {self.train_calls}")

        if self.model_store is not None and self.train_calls % cfg.AUTOSAVE_INTERVAL == 0:
            self._autosave()

        return loss_value

    def _autosave(self):
        try:
            result = self.model_store.save(self.model, self.MODEL_NAME, self._metrics_document())
            if not result.saved:
                logger.warning(f"Value model autosave failed: {result.error}")
        except Exception as e:
            logger.error(f"Value model autosave raised: {e}", exc_info=True)

    def _metrics_document(self) -> Dict:
        metrics = self.tracker.metrics.to_dict()
        metrics['epsilon'] = self.epsilon
        metrics['train_calls'] = self.train_calls
        return metrics

    def save_model(self, name: str = None):
        """
        Persist the value network

        Returns:
            SaveResult, or None without a model store or while untrained
        """
        if self.model_store is None:
            logger.warning("No model store configured - value model not saved")
            return None
        if not self.model.trained:
            logger.info("Value model is untrained - nothing to save")
            return None
        with self.guard.weights():
            return self.model_store.save(self.model, name or self.MODEL_NAME, self._metrics_document())

    def load_model(self, name: str = None, path: str = None) -> bool:
        """
        Replace the value network with a persisted one; the current model is kept on failure

        Raises:
            ModelLoadError: from the model store
        """
        if self.model_store is None:
            return False
        model, metrics = self.model_store.load(name=name or (None if path else self.MODEL_NAME),
                                               path=path, kind=ModelKind.VALUE)
        if model.network.input_size != self.input_size:
            logger.warning(
                f"Value model input size {model.network.input_size} does not match encoder size {self.input_size}"
            )
            return False

        with self.guard.weights():
            self.model = model
            self.target_network = self._make_target(model.network)
            self.optimizer = optim.Adam(model.network.parameters(), lr=self.config.LEARNING_RATE)
            self.tracker.load_metrics(metrics)
            self.epsilon = float(metrics.get('epsilon', self.epsilon))
            self.train_calls = int(metrics.get('train_calls', self.train_calls))
        logger.info(f"✅ Value model loaded (epsilon={self.epsilon:.3f})")
        return True

    def get_stats(self) -> Dict:
        return {
            'trained': self.model.trained,
            'epsilon': self.epsilon,
            'train_calls': self.train_calls,
            'memory': len(self.memory),
            'training_in_flight': self.guard.training,
            'action_sources': dict(self.action_sources),
            'best_loss': self.tracker.get_training_stats()['best_loss'],
        }
