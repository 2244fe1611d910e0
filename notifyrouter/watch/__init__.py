# notifyrouter/watch/__init__.py

"""
notifyrouter watch module
File system change notification: registration, filtering and dispatch
"""
from .events import Event, Op, RawEvent, normalize_event
from .errors import (
    WatchError, WatcherClosed, ExpectedFileError, ExpectedDirectoryError,
    SourceError
)
from .registry import WatchEntry, WatchRegistry
from .patterns import accepts_operation, accepts_pattern, match_filename
from .source import EventSource, WatchdogEventSource
from .watcher import FileSystemWatcher

__all__ = [
    'Event',
    'Op',
    'RawEvent',
    'normalize_event',
    'WatchError',
    'WatcherClosed',
    'ExpectedFileError',
    'ExpectedDirectoryError',
    'SourceError',
    'WatchEntry',
    'WatchRegistry',
    'accepts_operation',
    'accepts_pattern',
    'match_filename',
    'EventSource',
    'WatchdogEventSource',
    'FileSystemWatcher',
]
