"""
Model Tracker: training metrics with learning rate back-off and overfitting detection
Tracks how a policy is improving across training sessions
"""
import numpy as np
import time
import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Dict, List, Optional
from automata_ai.config import Config, config as default_config
from automata_ai.utils.math_utils import moving_average

logger = logging.getLogger(__name__)

@dataclass
class TrainingMetrics:
    """Persisted training metrics of one policy"""
    loss_history: List[float] = field(default_factory=list)
    accuracy_history: List[float] = field(default_factory=list)
    best_accuracy: float = 0.0
    best_loss: float = float('inf')
    training_count: int = 0
    sessions_since_improvement: int = 0
    learning_rate: float = 0.0

    def to_dict(self) -> Dict:
        """JSON-safe form (an unset best loss is stored as None)"""
        return {
            'training_count': self.training_count,
            'best_accuracy': self.best_accuracy,
            'best_loss': self.best_loss if np.isfinite(self.best_loss) else None,
            'loss_history': list(self.loss_history),
            'accuracy_history': list(self.accuracy_history),
            'learning_rate': self.learning_rate,
            'sessions_since_improvement': self.sessions_since_improvement,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict], learning_rate: float = 0.0) -> 'TrainingMetrics':
        data = data or {}
        best_loss = data.get('best_loss')
        return cls(
            loss_history=[float(v) for v in data.get('loss_history', [])],
            accuracy_history=[float(v) for v in data.get('accuracy_history', [])],
            best_accuracy=float(data.get('best_accuracy', 0.0)),
            best_loss=float('inf') if best_loss is None else float(best_loss),
            training_count=int(data.get('training_count', 0)),
            sessions_since_improvement=int(data.get('sessions_since_improvement', 0)),
            learning_rate=float(data.get('learning_rate') or learning_rate),
        )

class ModelTracker:
    """
    Tracks training progress of one policy
    A session "improves" when it sets a new best accuracy or best loss
    """

    def __init__(self, learning_rate: float, cfg: Config = None, name: str = "model"):
        self.config = cfg or default_config
        self.name = name
        self.metrics = TrainingMetrics(learning_rate=learning_rate)
        self.history_size = self.config.METRICS_HISTORY

        # Recent per-step losses (value agent)
        self.step_losses = deque(maxlen=self.history_size)
        self.overfitting_detected = False
        self.last_session_time: Optional[float] = None

    @property
    def learning_rate(self) -> float:
        return self.metrics.learning_rate

    def _trim(self):
        self.metrics.loss_history = self.metrics.loss_history[-self.history_size:]
        self.metrics.accuracy_history = self.metrics.accuracy_history[-self.history_size:]

    def record_step(self, loss: float):
        """Record one optimizer step (value agent replay pass)"""
        self.metrics.training_count += 1
        self.step_losses.append(loss)
        self.metrics.loss_history.append(float(loss))
        if loss < self.metrics.best_loss:
            self.metrics.best_loss = float(loss)
        self._trim()

    def record_session(self, loss: float, accuracy: Optional[float] = None) -> bool:
        """
        Record a completed training session

        Args:
            loss: Final (validation if available) loss
            accuracy: Final (validation if available) accuracy

        Returns:
            True if the session improved on the best loss or best accuracy
        """
        metrics = self.metrics
        metrics.training_count += 1
        metrics.loss_history.append(float(loss))
        if accuracy is not None:
            metrics.accuracy_history.append(float(accuracy))

        improved = False
        if loss < metrics.best_loss:
            metrics.best_loss = float(loss)
            improved = True
        if accuracy is not None and accuracy > metrics.best_accuracy:
            metrics.best_accuracy = float(accuracy)
            improved = True

        if improved:
            metrics.sessions_since_improvement = 0
            logger.info(f"📈 {self.name} improved - best_loss={metrics.best_loss:.4f}, best_accuracy={metrics.best_accuracy:.2%}")
        else:
            metrics.sessions_since_improvement += 1

        self._trim()
        self.last_session_time = time.time()
        return improved

    def should_back_off(self) -> bool:
        return self.metrics.sessions_since_improvement >= self.config.LR_PATIENCE

    def back_off(self) -> float:
        """
        Reduce the learning rate after a plateau

        Returns:
            New learning rate
        """
        old_rate = self.metrics.learning_rate
        self.metrics.learning_rate = max(self.config.MIN_LEARNING_RATE, old_rate * self.config.LR_BACKOFF)
        self.metrics.sessions_since_improvement = 0
        logger.info(f"📉 {self.name}: reducing learning rate {old_rate:.6f} -> {self.metrics.learning_rate:.6f}")
        return self.metrics.learning_rate

    def check_overfitting(self, train_accuracy: float, val_accuracy: float) -> bool:
        """Warn when train accuracy outruns validation accuracy by more than OVERFIT_GAP"""
        gap = train_accuracy - val_accuracy
        self.overfitting_detected = gap > self.config.OVERFIT_GAP
        if self.overfitting_detected:
            logger.warning(f"⚠️  {self.name}: potential overfitting - train {train_accuracy:.2%} vs validation {val_accuracy:.2%}")
        return self.overfitting_detected

    def load_metrics(self, data: Optional[Dict]):
        """Restore persisted metrics"""
        self.metrics = TrainingMetrics.from_dict(data, learning_rate=self.metrics.learning_rate)
        self._trim()

    def get_training_stats(self) -> Dict:
        """Summary statistics for logging / UI"""
        losses = self.metrics.loss_history
        trend = 'no_data'
        if len(losses) >= 4:
            half = len(losses) // 2
            older = np.mean(losses[:half])
            recent = np.mean(losses[half:])
            if recent < older * 0.95:
                trend = 'improving'
            elif recent > older * 1.1:
                trend = 'degrading'
            else:
                trend = 'stable'
        stats = self.metrics.to_dict()
        stats.update({
            'avg_loss': moving_average(losses),
            'recent_step_loss': moving_average(self.step_losses, window=10),
            'trend': trend,
            'overfitting_detected': self.overfitting_detected,
        })
        return stats
