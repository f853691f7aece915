"""
Imitation Learner: behavior cloning from recorded human demonstrations
Quality-gated corpus preparation, data-size aware schedule, learning rate back-off,
overfitting warnings and weight rollback on failure
"""
import copy
import torch
import torch.nn.functional as F
import torch.optim as optim
import numpy as np
import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple
from automata_ai.config import Config, config as default_config
from automata_ai.core.model import BehaviorCloningNetwork, ModelKind, PolicyModel
from automata_ai.core.policy_guard import PolicyGuard
from automata_ai.learning.data_quality import assess_quality, filter_consistent, rebalance_stay_class
from automata_ai.learning.human_recorder import DemonstrationExample, DemonstrationStore
from automata_ai.learning.model_tracker import ModelTracker
from automata_ai.utils.time_utils import Timer

logger = logging.getLogger(__name__)

@dataclass
class TrainingResult:
    """Outcome of one imitation training request"""
    status: str  # "trained" | "insufficient_data" | "busy" | "error"
    examples: int = 0
    epochs: int = 0
    batch_size: int = 0
    learning_rate: float = 0.0
    train_loss: Optional[float] = None
    train_accuracy: Optional[float] = None
    val_loss: Optional[float] = None
    val_accuracy: Optional[float] = None
    quality: Dict = field(default_factory=dict)
    removed_stay: int = 0
    dropped_inconsistent: int = 0
    overfitting: bool = False
    error: Optional[str] = None

    @property
    def trained(self) -> bool:
        return self.status == "trained"

class ImitationLearner:
    """
    Trains the behavior cloning policy from the demonstration store
    """

    MODEL_NAME = "imitation_policy"

    def __init__(self, input_size: int, store: DemonstrationStore = None, model_store=None,
                 cfg: Config = None, rng: np.random.Generator = None):
        self.config = cfg or default_config
        self.input_size = input_size
        self.store = store if store is not None else DemonstrationStore()
        self.model_store = model_store
        self.rng = rng or np.random.default_rng(self.config.RANDOM_SEED)
        self.device = self.config.DEVICE

        network = BehaviorCloningNetwork(input_size, self.config.NUM_ACTIONS, self.config.BC_HIDDEN_SIZES)
        self.model = PolicyModel(kind=ModelKind.IMITATION, network=network.to(self.device), trained=False)
        self.guard = PolicyGuard("imitation")
        self.tracker = ModelTracker(self.config.BC_LEARNING_RATE, cfg=self.config, name="imitation policy")
        self.last_result: Optional[TrainingResult] = None

        logger.info(f"Imitation learner initialized - input={input_size}")

    @property
    def trained(self) -> bool:
        return self.model.trained

    # ---- schedule -------------------------------------------------------

    def epochs_for(self, count: int) -> int:
        """Fewer epochs for larger corpora and for retraining sessions"""
        base = 20 if self.model.trained else 50
        if count <= 500:
            scale = 1.0
        elif count <= 2000:
            scale = 0.6
        else:
            scale = 0.4
        return max(5, int(base * scale))

    def batch_size_for(self, train_count: int) -> int:
        """Batch size giving at least MIN_BATCHES_PER_EPOCH batches, within the configured bounds"""
        size = train_count // self.config.MIN_BATCHES_PER_EPOCH
        return int(min(self.config.MAX_BATCH_SIZE, max(self.config.MIN_BATCH_SIZE, size)))

    # ---- corpus ---------------------------------------------------------

    def training_examples(self) -> List[DemonstrationExample]:
        """Snapshot of the stored examples whose source is used for training"""
        return self.store.snapshot(self.config.TRAIN_SOURCES)

    def prepare_corpus(self, examples: List[DemonstrationExample] = None
                       ) -> Tuple[List[np.ndarray], List[int], Dict, int, int]:
        """
        Filter and rebalance a corpus snapshot

        Args:
            examples: Snapshot to prepare (defaults to `training_examples()`)

        Returns:
            (states, actions, quality_report_dict, removed_stay, dropped_inconsistent);
            the quality report describes the corpus before down-sampling
        """
        examples = self.training_examples() if examples is None else examples
        states, actions, dropped = filter_consistent([e.state for e in examples],
                                                     [e.action for e in examples], self.input_size)
        report = assess_quality(states, actions, self.config)
        removed = 0
        if not report.sufficient:
            return states, actions, report.to_dict(), removed, dropped

        stay_heavy = report.stay_fraction > self.config.STAY_MAX_FRACTION
        if stay_heavy or report.score < self.config.QUALITY_FLOOR:
            logger.warning(f"⚠️  Demonstration quality {report.score:.2f}, stay {report.stay_fraction:.0%} "
                           f"- issues: {', '.join(report.issues) or 'none'}")
            states, actions, removed = rebalance_stay_class(states, actions, self.config.STAY_MAX_FRACTION, self.rng)
        return states, actions, report.to_dict(), removed, dropped

    def _insufficient(self, states: List[np.ndarray], quality: Dict, dropped: int) -> Optional[TrainingResult]:
        """
        Minimum-count gate, applied to the filtered corpus before down-sampling
        A down-sampled corpus still needs enough examples for one batch
        """
        if quality['sufficient'] and len(states) >= self.config.MIN_BATCH_SIZE:
            return None
        logger.info(f"Not enough demonstrations to train ({quality['total']}/{self.config.MIN_DEMONSTRATIONS})")
        result = TrainingResult(status="insufficient_data", examples=quality['total'], quality=quality,
                                dropped_inconsistent=dropped)
        self.last_result = result
        return result

    def _finish(self, result: TrainingResult, examples: List[DemonstrationExample], quality: Dict,
                removed: int, dropped: int, clear_on_success: bool) -> TrainingResult:
        result.quality = quality
        result.removed_stay = removed
        result.dropped_inconsistent = dropped
        self.last_result = result
        if result.trained and clear_on_success:
            cleared = self.store.remove_examples(examples)
            logger.debug(f"Removed {cleared} trained examples ({len(self.store)} left in corpus)")
        return result

    # ---- training -------------------------------------------------------

    def train(self, clear_on_success: bool = True) -> TrainingResult:
        """
        Synchronous training pass over the current corpus

        Args:
            clear_on_success: Remove the trained examples from the store after a successful pass

        Returns:
            TrainingResult; the existing model is untouched unless status is "trained"
        """
        if self.guard.training:
            return TrainingResult(status="busy")

        examples = self.training_examples()
        states, actions, quality, removed, dropped = self.prepare_corpus(examples)
        insufficient = self._insufficient(states, quality, dropped)
        if insufficient:
            return insufficient

        started, result = self.guard.run_training(self._fit_guarded, states, actions)
        if not started:
            return TrainingResult(status="busy")
        return self._finish(result, examples, quality, removed, dropped, clear_on_success)

    def train_async(self, on_complete: Callable[[TrainingResult], None] = None,
                    clear_on_success: bool = True) -> bool:
        """
        Train on a daemon thread
        `on_complete` runs on that thread once the weights are released

        Returns:
            True if training started
        """
        examples = self.training_examples()
        states, actions, quality, removed, dropped = self.prepare_corpus(examples)
        insufficient = self._insufficient(states, quality, dropped)
        if insufficient:
            if on_complete:
                on_complete(insufficient)
            return False

        def _done(result: TrainingResult):
            self._finish(result, examples, quality, removed, dropped, clear_on_success)
            if on_complete:
                on_complete(result)

        return self.guard.run_training_async(self._fit_guarded, states, actions, on_done=_done)

    def _fit_guarded(self, states: List[np.ndarray], actions: List[int]) -> TrainingResult:
        """Fit with rollback; caller holds the weights"""
        if self.tracker.should_back_off():
            self.tracker.back_off()
        learning_rate = self.tracker.learning_rate

        snapshot = copy.deepcopy(self.model.network.state_dict())
        was_trained = self.model.trained
        try:
            with Timer("Imitation training", logger) as timer:
                result = self._fit(states, actions, learning_rate)
        except Exception as e:
            self.model.network.load_state_dict(snapshot)
            self.model.trained = was_trained
            logger.error(f"❌ Imitation training failed - previous weights restored: {e}", exc_info=True)
            return TrainingResult(status="error", examples=len(states), learning_rate=learning_rate, error=str(e))

        self.model.trained = True
        self.tracker.record_session(result.val_loss, result.val_accuracy)
        result.overfitting = self.tracker.check_overfitting(result.train_accuracy, result.val_accuracy)
        logger.info(f"✅ Imitation policy trained on {result.examples} examples - "
                    f"val_acc={result.val_accuracy:.2%}, val_loss={result.val_loss:.4f} ({timer.elapsed():.1f}s)")
        return result

    def _fit(self, states: List[np.ndarray], actions: List[int], learning_rate: float) -> TrainingResult:
        x = torch.as_tensor(np.stack(states).astype(np.float32), device=self.device)
        y = torch.as_tensor(np.asarray(actions, dtype=np.int64), device=self.device)

        count = len(actions)
        order = self.rng.permutation(count)
        val_count = max(1, int(count * self.config.VALIDATION_SPLIT))
        val_idx = torch.as_tensor(order[:val_count], device=self.device)
        train_idx = order[val_count:]

        epochs = self.epochs_for(count)
        batch_size = self.batch_size_for(len(train_idx))
        network = self.model.network
        optimizer = optim.Adam(network.parameters(), lr=learning_rate)

        logger.info(f"🎓 Training imitation policy: {count} examples, {epochs} epochs, batch {batch_size}, lr {learning_rate:.6f}")
        for epoch in range(epochs):
            network.train()
            shuffled = train_idx[self.rng.permutation(len(train_idx))]
            epoch_loss = 0.0
            for start in range(0, len(shuffled), batch_size):
                batch = torch.as_tensor(shuffled[start:start + batch_size], device=self.device)
                loss = F.cross_entropy(network(x[batch]), y[batch])
                optimizer.zero_grad()
                loss.backward()
                optimizer.step()
                epoch_loss += float(loss.item()) * len(batch)
            if not np.isfinite(epoch_loss):
                raise FloatingPointError(f"Loss diverged at epoch {epoch + 1}")
            if self.config.DETAILED_LOGGING:
                logger.debug(f"Epoch {epoch + 1}/{epochs} loss={epoch_loss / len(train_idx):.4f}")

        train_loss, train_accuracy = self._evaluate(x[torch.as_tensor(train_idx, device=self.device)],
                                                    y[torch.as_tensor(train_idx, device=self.device)])
        val_loss, val_accuracy = self._evaluate(x[val_idx], y[val_idx])
        return TrainingResult(
            status="trained", examples=count, epochs=epochs, batch_size=batch_size,
            learning_rate=learning_rate, train_loss=train_loss, train_accuracy=train_accuracy,
            val_loss=val_loss, val_accuracy=val_accuracy,
        )

    def _evaluate(self, x: torch.Tensor, y: torch.Tensor) -> Tuple[float, float]:
        network = self.model.network
        network.eval()
        with torch.no_grad():
            logits = network(x)
            loss = F.cross_entropy(logits, y).item()
            accuracy = (logits.argmax(dim=1) == y).float().mean().item()
        return float(loss), float(accuracy)

    # ---- inference ------------------------------------------------------

    def predict_probs(self, observation: np.ndarray) -> Optional[np.ndarray]:
        """
        Action probabilities for an observation

        Returns:
            (NUM_ACTIONS,) probabilities, or None when untrained or training holds the weights
        """
        if not self.model.trained:
            return None
        with self.guard.try_inference() as available:
            if not available:
                return None
            return self.model.predict(observation)

    # ---- persistence ----------------------------------------------------

    def save_model(self, name: str = None):
        if self.model_store is None:
            logger.warning("No model store configured - imitation model not saved")
            return None
        if not self.model.trained:
            logger.info("Imitation model is untrained - nothing to save")
            return None
        with self.guard.weights():
            return self.model_store.save(self.model, name or self.MODEL_NAME, self.tracker.metrics.to_dict())

    def load_model(self, name: str = None, path: str = None) -> bool:
        """
        Replace the policy with a persisted one; the current model is kept on failure

        Raises:
            ModelLoadError: from the model store
        """
        if self.model_store is None:
            return False
        model, metrics = self.model_store.load(name=name or (None if path else self.MODEL_NAME),
                                               path=path, kind=ModelKind.IMITATION)
        if model.network.input_size != self.input_size:
            logger.warning(
                f"Imitation model input size {model.network.input_size} does not match encoder size {self.input_size}"
            )
            return False
        with self.guard.weights():
            self.model = model
            self.tracker.load_metrics(metrics)
        logger.info(f"✅ Imitation model loaded ({self.tracker.metrics.training_count} prior sessions)")
        return True

    def get_stats(self) -> Dict:
        stats = self.tracker.get_training_stats()
        stats.update({
            'trained': self.model.trained,
            'corpus_size': len(self.store),
            'training_in_flight': self.guard.training,
            'last_status': self.last_result.status if self.last_result else None,
        })
        return stats
