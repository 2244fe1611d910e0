# notifyrouter/utils/__init__.py

"""
notifyrouter utilities: configuration and logging
"""
from .config import (
    Config, WatcherConfig, LoggingConfig, WatchSpec, load_config
)
from .logger import setup_logging, get_logger, log_exception

__all__ = [
    'Config', 'WatcherConfig', 'LoggingConfig', 'WatchSpec', 'load_config',
    'setup_logging', 'get_logger', 'log_exception',
]
