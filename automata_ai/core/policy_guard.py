"""
Policy Guard: mutual exclusion between training and inference on one policy's weights
"""
import logging
import threading
from contextlib import contextmanager
from typing import Callable, Optional

logger = logging.getLogger(__name__)

class PolicyGuard:
    """
    Lock over a policy's weights plus an "in flight" training flag

    - At most one training task per policy
    - Inference never blocks: while training holds the weights callers fall back
    """

    def __init__(self, name: str = "policy"):
        self.name = name
        self._lock = threading.Lock()
        self._state_lock = threading.Lock()
        self._training = False
        self._thread: Optional[threading.Thread] = None

    @property
    def training(self) -> bool:
        return self._training

    @contextmanager
    def try_inference(self):
        """
        Non-blocking acquire for inference

        Yields:
            True if the weights are available, False if training holds them
        """
        acquired = self._lock.acquire(blocking=False)
        try:
            yield acquired
        finally:
            if acquired:
                self._lock.release()

    def begin_training(self) -> bool:
        """Claim the training slot; False if a task is already in flight"""
        with self._state_lock:
            if self._training:
                return False
            self._training = True
            return True

    def end_training(self):
        with self._state_lock:
            self._training = False

    @contextmanager
    def weights(self):
        """Blocking acquire of the weights (training, save, load)"""
        with self._lock:
            yield

    def run_training(self, task: Callable, *args, **kwargs):
        """
        Run a training task synchronously under the guard

        Returns:
            (started, result): started is False when another task is in flight
        """
        if not self.begin_training():
            logger.debug(f"{self.name}: training already in flight - skipped")
            return False, None
        try:
            with self._lock:
                return True, task(*args, **kwargs)
        finally:
            self.end_training()

    def run_training_async(self, task: Callable, *args, on_error: Callable = None,
                           on_done: Callable = None, **kwargs) -> bool:
        """
        Run a training task on a daemon thread

        Args:
            task: Callable doing the training
            on_error: Optional callback receiving the exception
            on_done: Optional callback receiving the task result, run after the
                weights are released so it may save or read the model

        Returns:
            True if the task was started
        """
        if not self.begin_training():
            logger.debug(f"{self.name}: training already in flight - skipped")
            return False

        def _worker():
            try:
                with self._lock:
                    result = task(*args, **kwargs)
                if on_done:
                    on_done(result)
            except Exception as e:
                logger.error(f"{self.name}: background training failed: {e}", exc_info=True)
                if on_error:
                    on_error(e)
            finally:
                self.end_training()

        self._thread = threading.Thread(target=_worker, daemon=True, name=f"{self.name}-trainer")
        self._thread.start()
        return True

    def wait(self, timeout: float = None) -> bool:
        """Join the background training thread; True when nothing is running"""
        thread = self._thread
        if thread is not None:
            thread.join(timeout)
            return not thread.is_alive()
        return True
