# utils.py
#
# Contains utility functions shared across different modules.

from . import config

_LEVELS = {"DEBUG": 10, "INFO": 20, "WARN": 30, "ERROR": 40}


def set_log_level(level):
    """Sets the minimum level printed by print_status."""
    if level not in _LEVELS:
        raise ValueError(f"Unknown log level: {level}")
    config.LOG_LEVEL = level


def print_status(message, level="INFO"):
    """Prints a formatted status message to the console."""
    if _LEVELS.get(level, 20) < _LEVELS.get(config.LOG_LEVEL, 30):
        return
    print(f"[{level}] {message}")
