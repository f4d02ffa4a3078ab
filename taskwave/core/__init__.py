"""Core module - configuration, logging and task file loading."""

from taskwave.core.config import Settings, clear_settings_cache, get_settings
from taskwave.core.loader import TaskFileError, load_tasks, parse_tasks
from taskwave.core.logging import configure_logging

__all__ = [
    "Settings",
    "TaskFileError",
    "clear_settings_cache",
    "configure_logging",
    "get_settings",
    "load_tasks",
    "parse_tasks",
]
