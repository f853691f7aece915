"""
Utilities module for Automata AI
Centralized utility functions used across the codebase
"""
from automata_ai.utils.pretty_logger import ColoredFormatter, setup_pretty_logging, configure_logging
from automata_ai.utils.file_utils import (
    ensure_dir, save_json, load_json, get_timestamped_filename,
    get_file_size, format_file_size, to_json_compatible
)
from automata_ai.utils.time_utils import format_duration, Timer, GameTimeThrottle
from automata_ai.utils.math_utils import moving_average, normalized_entropy

__all__ = [
    # Logger
    'ColoredFormatter', 'setup_pretty_logging', 'configure_logging',
    # File utils
    'ensure_dir', 'save_json', 'load_json', 'get_timestamped_filename',
    'get_file_size', 'format_file_size', 'to_json_compatible',
    # Time utils
    'format_duration', 'Timer', 'GameTimeThrottle',
    # Math utils
    'moving_average', 'normalized_entropy',
]
