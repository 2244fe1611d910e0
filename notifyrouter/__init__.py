"""
notifyrouter - file system change notification router
"""
from .watch import (
    FileSystemWatcher, Event, Op, WatchError, WatcherClosed, SourceError
)

__version__ = "1.0.0"

__all__ = [
    'FileSystemWatcher', 'Event', 'Op', 'WatchError', 'WatcherClosed',
    'SourceError',
]
