"""
Error Handler: error bookkeeping and automatic AI shutdown
Drops AI control when errors are critical or arrive too fast; the host loop keeps running
"""
import logging
import time
import traceback
from typing import Dict, Optional
from collections import deque
from automata_ai.config import config

logger = logging.getLogger(__name__)

class ErrorHandler:
    """
    Records errors from controller entry points and decides when the AI must stand down
    """

    def __init__(self, controller=None, max_errors: int = None, error_window: float = None):
        """
        Initialize error handler

        Args:
            controller: Controller to stop (anything with `stop_ai_control(reason)`)
            max_errors: Errors within the window that trigger a stop
            error_window: Time window in seconds to count errors
        """
        self.controller = controller
        self.max_errors = max_errors or config.MAX_ERRORS
        self.error_window = error_window or config.ERROR_WINDOW

        # Error tracking
        self.errors = deque(maxlen=1000)
        self.error_count = 0
        self.last_error_time = 0
        self.critical_errors = []
        self.stops_triggered = 0

        # Error patterns that always stop the AI
        self.critical_patterns = [
            'out of memory',
            'cuda error',
            'memoryerror',
            'recursionerror',
        ]

        logger.info("Error handler initialized - auto-stop enabled")

    def record_error(self, error: Exception, context: str = "unknown",
                     component: str = "unknown") -> bool:
        """
        Record an error and decide if AI control should be dropped

        Args:
            error: The exception that occurred
            context: Operation where the error occurred
            component: Component that generated the error

        Returns:
            True if AI control was (or should be) stopped
        """
        current_time = time.time()
        error_info = {
            'timestamp': current_time,
            'error_type': type(error).__name__,
            'error_message': str(error),
            'context': context,
            'component': component,
            'traceback': ''.join(traceback.format_exception(type(error), error, error.__traceback__)),
            'critical': self._is_critical_error(error)
        }

        self.errors.append(error_info)
        self.error_count += 1
        self.last_error_time = current_time

        should_stop = False
        if error_info['critical']:
            self.critical_errors.append(error_info)
            should_stop = True
            logger.critical(f"🔴 CRITICAL ERROR in {component}/{context}: {error}")
        elif self._should_stop_due_to_error_rate(current_time):
            should_stop = True
            logger.error(f"🚨 Too many errors ({self.recent_error_count(current_time)} in {self.error_window}s) - dropping AI control")

        if should_stop:
            self._stop_controller(error_info)

        return should_stop

    def _is_critical_error(self, error: Exception) -> bool:
        """Check if error is critical"""
        error_str = str(error).lower()
        error_type = type(error).__name__.lower()

        for pattern in self.critical_patterns:
            if pattern in error_str or pattern in error_type:
                return True

        return False

    def recent_error_count(self, now: Optional[float] = None) -> int:
        now = now if now is not None else time.time()
        return len([e for e in self.errors if now - e['timestamp'] <= self.error_window])

    def _should_stop_due_to_error_rate(self, now: float) -> bool:
        """More than max_errors within the window"""
        return self.recent_error_count(now) > self.max_errors

    def _stop_controller(self, error_info: Dict):
        """Ask the controller to drop AI control and release inputs"""
        self.stops_triggered += 1
        logger.critical("=" * 60)
        logger.critical("🚨 AUTOMATIC ERROR DETECTION - DROPPING AI CONTROL")
        logger.critical(f"Error: {error_info['error_type']}: {error_info['error_message']}")
        logger.critical(f"Component: {error_info['component']} / Context: {error_info['context']}")
        logger.critical("=" * 60)

        if self.controller is None:
            return
        try:
            self.controller.stop_ai_control(reason=f"{error_info['error_type']} in {error_info['component']}")
        except Exception as e:
            logger.error(f"Error while stopping AI control: {e}")

    def get_error_stats(self) -> Dict:
        """Get error statistics"""
        current_time = time.time()
        recent_errors = [
            e for e in self.errors
            if current_time - e['timestamp'] <= self.error_window
        ]

        critical_count = len([e for e in recent_errors if e['critical']])

        return {
            'total_errors': len(self.errors),
            'recent_errors': len(recent_errors),
            'critical_errors': critical_count,
            'error_rate': len(recent_errors) / self.error_window if self.error_window > 0 else 0,
            'last_error_time': self.last_error_time,
            'stops_triggered': self.stops_triggered,
        }

    def reset(self):
        """Reset error handler (clear error history)"""
        self.error_count = 0
        self.errors.clear()
        self.critical_errors.clear()
        logger.info("Error handler reset")
