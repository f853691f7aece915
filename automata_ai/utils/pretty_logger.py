"""
Pretty Terminal Logger - readable console output for the host game process
Uses colors and component icons so controller, learner and recorder lines stand apart
"""
import logging
import os
import re
import sys
import time
from typing import Optional
from automata_ai.config import Config, config as default_config

_EMOJI_PATTERN = re.compile(
    "["
    "\U0001F600-\U0001F64F"  # emoticons
    "\U0001F300-\U0001F5FF"  # symbols & pictographs
    "\U0001F680-\U0001F6FF"  # transport & map symbols
    "\U0001F900-\U0001F9FF"  # supplemental symbols and pictographs
    "\U00002600-\U000027BF"  # misc symbols and dingbats
    "\ufe0f"  # variation selector
    "]+", flags=re.UNICODE)

class ColoredFormatter(logging.Formatter):
    """Custom formatter with colors and emojis"""
    
    # ANSI color codes
    COLORS = {
        'DEBUG': '\033[36m',      # Cyan
        'INFO': '\033[32m',       # Green
        'WARNING': '\033[33m',    # Yellow
        'ERROR': '\033[31m',      # Red
        'CRITICAL': '\033[35m',   # Magenta
        'RESET': '\033[0m',
        'BOLD': '\033[1m',
        'DIM': '\033[2m',
    }
    
    EMOJIS = {
        'DEBUG': '🔍',
        'INFO': 'ℹ️',
        'WARNING': '⚠️',
        'ERROR': '❌',
        'CRITICAL': '🚨',
    }
    
    # Component icons, keyed by the last segment of the logger name
    COMPONENT_ICONS = {
        'agent': '🤖',
        'rl_agent': '🧠',
        'imitation_learner': '🎭',
        'human_recorder': '🎬',
        'encoder': '👁️',
        'action_selector': '🎯',
        'model_store': '💾',
        'local_store': '💾',
        'error_handler': '🛡️',
        'actuator': '🎮',
    }
    
    def __init__(self, use_colors: bool = True, use_emojis: bool = True):
        super().__init__()
        self.use_colors = use_colors and sys.stdout.isatty()
        self.use_emojis = use_emojis
    
    def format(self, record: logging.LogRecord) -> str:
        component = record.name.split('.')[-1]
        component_icon = self.COMPONENT_ICONS.get(component, '•') if self.use_emojis else ''
        emoji = self.EMOJIS.get(record.levelname, '') if self.use_emojis else ''
        color = self.COLORS.get(record.levelname, '') if self.use_colors else ''
        reset = self.COLORS['RESET'] if self.use_colors else ''
        
        message = record.getMessage()
        if not self.use_emojis:
            message = _EMOJI_PATTERN.sub('', message).strip()
        if record.exc_info:
            message = f"{message}\n{self.formatException(record.exc_info)}"
        
        if record.levelname == 'INFO':
            icon_space = ' ' if component_icon else ''
            return f"{color}{component_icon}{icon_space}{component.upper()}:{reset} {message}"
        emoji_space = ' ' if emoji else ''
        if record.levelname == 'WARNING':
            return f"{color}{emoji}{emoji_space}{component.upper()}:{reset} {message}"
        if record.levelname == 'ERROR':
            return f"{color}{emoji}{emoji_space}ERROR [{component}]:{reset} {message}"
        if record.levelname == 'CRITICAL':
            bold = self.COLORS['BOLD'] if self.use_colors else ''
            return f"{color}{bold}{emoji}{emoji_space}CRITICAL [{component}]:{reset} {message}"
        dim = self.COLORS['DIM'] if self.use_colors else ''
        return f"{dim}{emoji}{emoji_space}[{component}]:{reset} {message}"

def setup_pretty_logging(use_colors: bool = True, use_emojis: bool = True,
                         log_path: Optional[str] = None,
                         level: int = logging.INFO) -> logging.Logger:
    """Setup pretty console logging on the root logger, plus a plain file log if log_path is given"""
    root_logger = logging.getLogger()
    
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(ColoredFormatter(use_colors=use_colors, use_emojis=use_emojis))
    root_logger.addHandler(console_handler)
    
    if log_path:
        os.makedirs(log_path, exist_ok=True)
        file_handler = logging.FileHandler(os.path.join(log_path, f'automata_{int(time.time())}.log'))
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'
        ))
        root_logger.addHandler(file_handler)
    
    root_logger.setLevel(min(level, logging.DEBUG) if log_path else level)
    
    return root_logger

def configure_logging(cfg: Config = None, log_to_file: bool = False, use_colors: bool = True) -> logging.Logger:
    """
    Host entry point: pretty console logging driven by the config

    DETAILED_LOGGING selects DEBUG on the console; log_to_file adds a file log under LOG_PATH
    """
    cfg = cfg or default_config
    level = logging.DEBUG if cfg.DETAILED_LOGGING else logging.INFO
    return setup_pretty_logging(use_colors=use_colors, use_emojis=use_colors,
                                log_path=cfg.LOG_PATH if log_to_file else None, level=level)
