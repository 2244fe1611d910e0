# notifyrouter/watch/source.py

"""
Event sources feeding the file system watcher
"""
import os
import queue
import logging
import threading
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from watchdog.observers import Observer
from watchdog.observers.api import ObservedWatch
from watchdog.observers.polling import PollingObserver

from .events import RawEvent
from .handlers import RawEventHandler

logger = logging.getLogger(__name__)


class EventSource(ABC):
    """
    Producer of raw events and transport errors

    Both streams flow into one queue so a consumer can block on whichever
    item arrives first. ``emit`` feeds the event stream and ``fail`` the
    error stream.
    """

    def __init__(self):
        self.queue: 'queue.Queue[Any]' = queue.Queue()

    def emit(self, raw_event: RawEvent):
        """Push a raw event"""
        self.queue.put(raw_event)

    def fail(self, error: BaseException):
        """Push a transport error"""
        self.queue.put(error)

    @abstractmethod
    def register(self, path: str):
        """Start producing events for a path"""

    @abstractmethod
    def unregister(self, path: str):
        """Stop producing events for a path"""

    @abstractmethod
    def close(self):
        """Release all resources"""


class WatchdogEventSource(EventSource):
    """
    Event source built on a watchdog observer

    Directories are scheduled non-recursively; a file is watched through
    its parent directory. Schedules are reference counted per directory.
    """

    def __init__(self, use_polling: bool = False, poll_interval: float = 1.0,
                 join_timeout: float = 10.0):
        """
        Initialize watchdog event source

        Args:
            use_polling: Use polling instead of OS events
            poll_interval: Polling interval in seconds
            join_timeout: Seconds to wait for the observer thread on close
        """
        super().__init__()
        self.use_polling = use_polling
        self.poll_interval = poll_interval
        self.join_timeout = join_timeout

        self.handler = RawEventHandler(self)

        # Scheduled directory (absolute) -> watch / reference count
        self._watches: Dict[str, ObservedWatch] = {}
        self._refcounts: Dict[str, int] = {}
        # Absolute directory -> caller's spelling of that directory
        self._aliases: Dict[str, str] = {}
        # Registered path -> scheduled directories, one per registration
        self._targets: Dict[str, List[str]] = {}
        self._lock = threading.RLock()
        self._closed = False

        if self.use_polling:
            self.observer = PollingObserver(timeout=self.poll_interval)
            logger.debug(f"Using polling observer (interval: {self.poll_interval}s)")
        else:
            self.observer = Observer()
            logger.debug("Using OS event observer")

        self.observer.start()

    def register(self, path: str):
        """
        Start watching a file or directory

        Raises:
            FileNotFoundError: If the path does not exist
            OSError: If the observer cannot add the watch
        """
        if not os.path.exists(path):
            raise FileNotFoundError(f"No such file or directory: {path}")

        if os.path.isdir(path):
            directory = path
        else:
            directory = os.path.dirname(path) or os.curdir
        absolute = os.path.abspath(directory)

        with self._lock:
            if self._closed:
                raise RuntimeError("Event source is closed")

            if absolute not in self._watches:
                self._watches[absolute] = self.observer.schedule(
                    self.handler, absolute, recursive=False
                )
                self._refcounts[absolute] = 0
                logger.debug(f"Scheduled watch for {absolute}")

            self._refcounts[absolute] += 1
            self._aliases[absolute] = os.path.normpath(directory)
            self._targets.setdefault(path, []).append(absolute)

        if absolute == os.path.abspath(path):
            self.handler.remember_directory(path)
        else:
            self.handler.remember(path)

    def unregister(self, path: str):
        """
        Stop watching a file or directory

        Raises:
            KeyError: If the path was never registered
        """
        with self._lock:
            targets = self._targets.get(path)
            if not targets:
                raise KeyError(f"Can't remove non-existent watch: {path}")

            absolute = targets.pop(0)
            if not targets:
                del self._targets[path]

            self._refcounts[absolute] -= 1
            if self._refcounts[absolute] > 0:
                return

            watch = self._watches.pop(absolute)
            del self._refcounts[absolute]
            alias = self._aliases.pop(absolute, absolute)

        self.handler.forget_directory(alias)
        self.observer.unschedule(watch)
        logger.debug(f"Unscheduled watch for {absolute}")

    def translate_path(self, path: str) -> str:
        """Rewrite an observer path using the caller's directory spelling"""
        absolute = os.path.abspath(path)
        with self._lock:
            alias = self._aliases.get(absolute)
            if alias is not None:
                return alias
            alias = self._aliases.get(os.path.dirname(absolute))
        if alias == os.curdir:
            return os.path.basename(absolute)
        if alias is not None:
            return os.path.join(alias, os.path.basename(absolute))
        return path

    def watched_directories(self) -> List[str]:
        with self._lock:
            return sorted(self._watches)

    def close(self):
        """Stop the observer thread"""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._watches.clear()
            self._refcounts.clear()
            self._targets.clear()

        self.observer.stop()
        if self.observer.is_alive():
            self.observer.join(timeout=self.join_timeout)
        logger.debug("Watchdog event source closed")

    def get_stats(self) -> Dict[str, Any]:
        return {
            'watched_directories': len(self._watches),
            'use_polling': self.use_polling,
            **self.handler.get_stats(),
        }
