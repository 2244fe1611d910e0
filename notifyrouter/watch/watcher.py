# notifyrouter/watch/watcher.py

"""
File system watcher: registration, filtering and dispatch of events
"""
import os
import stat
import logging
import threading
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from ..utils.config import WatcherConfig
from .errors import (
    ExpectedDirectoryError,
    ExpectedFileError,
    SourceError,
    WatchError,
    WatcherClosed,
)
from .events import Event, Op, RawEvent, normalize_event
from .patterns import accepts_operation, accepts_pattern, validate_pattern
from .registry import WatchEntry, WatchRegistry, clean_path
from .source import EventSource, WatchdogEventSource

logger = logging.getLogger(__name__)

NotifyCallback = Callable[[Optional[Event], Optional[Exception]], None]

# Put back into the source queue by every consumer that takes it, so all
# blocked consumers wake up
_CLOSED = object()


def _is_dir(path: str) -> bool:
    try:
        return stat.S_ISDIR(os.stat(path).st_mode)
    except OSError as e:
        raise WatchError(f"Cannot stat {path}: {e}") from e


class FileSystemWatcher:
    """
    Watches files and directories and delivers filtered events

    Events are consumed either by blocking on ``wait_event`` or by
    subscribing a callback with ``notify_event``. All consumers share one
    stream: each raw event is delivered to exactly one of them.
    """

    def __init__(self, source: Optional[EventSource] = None,
                 config: Optional[WatcherConfig] = None):
        """
        Initialize file system watcher

        Args:
            source: Event source (a watchdog observer by default)
            config: Watcher configuration
        """
        self.config = config or WatcherConfig()
        self.source = source or WatchdogEventSource(
            use_polling=self.config.use_polling,
            poll_interval=self.config.poll_interval,
        )
        self.registry = WatchRegistry()

        self._closed_lock = threading.Lock()
        self._closed = threading.Event()
        self._subscriptions: List[threading.Thread] = []
        self._stats_lock = threading.Lock()

        self.stats = {
            'created': datetime.now(),
            'raw_events': 0,
            'events_delivered': 0,
            'events_filtered': 0,
            'errors': 0,
            'subscriptions': 0,
        }

        logger.info(f"FileSystemWatcher initialized with {type(self.source).__name__}")

    def __enter__(self) -> 'FileSystemWatcher':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    @property
    def is_closed(self) -> bool:
        return self._closed.is_set()

    # Registration

    def add_file(self, path: str, ops: Op = Op.ALL_OPS):
        """
        Watch a single file

        Args:
            path: File to watch
            ops: Operations to deliver

        Raises:
            ExpectedFileError: If the path is a directory
            WatchError: If the path cannot be checked or watched
        """
        self._check_open()
        if _is_dir(path):
            raise ExpectedFileError(path, "add")

        self._register(path)
        self.registry.add(WatchEntry(path=path, ops=Op(ops)))
        logger.info(f"Watching file {path} for {Op(ops).names()}")

    def remove_file(self, path: str):
        """
        Stop watching a single file

        A file that no longer exists can still be removed.

        Raises:
            ExpectedFileError: If the path is a directory
            WatchError: If the source does not watch the path
        """
        if os.path.exists(path) and _is_dir(path):
            raise ExpectedFileError(path, "remove")

        self._unregister(path)
        self.registry.remove(path)
        logger.info(f"Stopped watching file {path}")

    def add_dir(self, path: str, pattern: str = '', ops: Op = Op.ALL_OPS,
                recursive: bool = False):
        """
        Watch a directory

        Subdirectories added by a recursive walk inherit ``pattern`` and
        ``ops``. A failure partway through the walk leaves the directories
        added so far in place.

        Args:
            path: Directory to watch
            pattern: Glob matched against file names ('' matches all)
            ops: Operations to deliver
            recursive: Also watch every subdirectory

        Raises:
            ExpectedDirectoryError: If the path is not a directory
            WatchError: If the path cannot be checked, walked or watched
        """
        self._check_open()
        validate_pattern(pattern)

        self._add_single_dir(path, pattern, ops, recursive)
        if recursive:
            for subdir in self._walk_subdirs(path):
                self._add_single_dir(subdir, pattern, ops, recursive)

    def remove_dir(self, path: str, recursive: bool = False):
        """
        Stop watching a directory

        Args:
            path: Directory to stop watching
            recursive: Also stop watching every subdirectory on disk

        Raises:
            ExpectedDirectoryError: If the path is a file
            WatchError: If the walk fails or the source does not watch a
                directory
        """
        self._remove_single_dir(path)
        if recursive and os.path.isdir(path):
            for subdir in self._walk_subdirs(path):
                self._remove_single_dir(subdir)

    def get_watches(self) -> List[WatchEntry]:
        """Get a snapshot of the registered watches"""
        return self.registry.entries()

    def _add_single_dir(self, path: str, pattern: str, ops: Op, recursive: bool):
        if not _is_dir(path):
            raise ExpectedDirectoryError(path, "add")

        self._register(path)
        self.registry.add(WatchEntry(
            path=path,
            pattern=pattern or '',
            ops=Op(ops),
            is_directory=True,
            recursive=recursive,
        ))
        logger.info(f"Watching directory {path} (pattern={pattern!r}, ops={Op(ops).names()})")

    def _remove_single_dir(self, path: str):
        if os.path.exists(path) and not _is_dir(path):
            raise ExpectedDirectoryError(path, "remove")

        self._unregister(path)
        self.registry.remove(path)
        logger.info(f"Stopped watching directory {path}")

    def _walk_subdirs(self, root: str):
        """Yield every directory below root, top-down, excluding root"""
        def on_error(error: OSError):
            raise WatchError(f"Error walking {root}: {error}") from error

        for dirpath, dirnames, _ in os.walk(root, onerror=on_error):
            dirnames.sort()
            for name in dirnames:
                yield os.path.join(dirpath, name)

    def _register(self, path: str):
        try:
            self.source.register(path)
        except Exception as e:
            raise SourceError(f"Cannot watch {path}: {e}") from e

    def _unregister(self, path: str):
        try:
            self.source.unregister(path)
        except Exception as e:
            raise SourceError(f"Cannot stop watching {path}: {e}") from e

    def _check_open(self):
        if self._closed.is_set():
            raise WatcherClosed()

    # Dispatch

    def wait_event(self) -> Event:
        """
        Block until an accepted event, a source error, or close

        Raw events rejected by the filters are discarded without
        returning.

        Returns:
            Next accepted event

        Raises:
            SourceError: For a failure reported by the event source
            WatcherClosed: When the watcher has been closed
        """
        while True:
            if self._closed.is_set():
                raise WatcherClosed()

            item = self.source.queue.get()

            if item is _CLOSED:
                self.source.queue.put(_CLOSED)
                raise WatcherClosed()

            if isinstance(item, BaseException):
                self._count('errors')
                raise SourceError(str(item)) from item

            self._count('raw_events')
            raw = RawEvent(*item)

            if raw.op & Op.CREATE and self.config.auto_watch_new_dirs:
                self._watch_new_subdir(raw.path)

            accepted = self._accepts(raw)

            if raw.op & (Op.REMOVE | Op.RENAME):
                self._drop_vanished_subdirs(raw.path)

            if accepted:
                self._count('events_delivered')
                return normalize_event(raw)

            self._count('events_filtered')
            logger.debug(f"Filtered event: {raw.path} ({Op(raw.op).names()})")

    def _accepts(self, raw: RawEvent) -> bool:
        return (accepts_operation(self.registry, raw.path, raw.op)
                and accepts_pattern(self.registry, raw.path))

    def _count(self, key: str):
        with self._stats_lock:
            self.stats[key] += 1

    def _recursive_parent(self, path: str) -> Optional[WatchEntry]:
        """Recursive directory entry for the direct parent of a path"""
        parent_path = clean_path(os.path.dirname(clean_path(path)))
        entry = self.registry.find_for(parent_path)
        if (entry is not None and entry.is_directory and entry.recursive
                and clean_path(entry.path) == parent_path):
            return entry
        return None

    def _watch_new_subdir(self, path: str):
        """Register a directory created inside a recursive watch"""
        parent = self._recursive_parent(path)
        if parent is None or not os.path.isdir(path):
            return

        if path in self.registry:
            # Recreated before its removal was seen; the old watch is dead
            self._refresh_watch(path)
            return

        logger.info(f"New subdirectory {path} under recursive watch {parent.path}")
        try:
            self.add_dir(path, parent.pattern, parent.ops, recursive=True)
        except WatchError:
            self._count('errors')
            raise

    def _refresh_watch(self, path: str):
        logger.info(f"Renewing watch for recreated directory {path}")
        try:
            self._unregister(path)
        except WatchError as e:
            logger.debug(f"Stale watch for {path} already released: {e}")
        try:
            self._register(path)
        except WatchError:
            self._count('errors')
            self.registry.remove(path)
            raise

    def _drop_vanished_subdirs(self, path: str):
        """
        Forget watches on a removed or renamed subdirectory of a recursive watch

        Directories nested below the vanished one are dropped as well.
        Watches added explicitly stay until the caller removes them, and a
        directory that already exists again keeps its watch.
        """
        removed = clean_path(path)
        prefix = removed.rstrip(os.sep) + os.sep
        vanished = [
            entry for entry in self.registry.entries()
            if entry.is_directory
            and (clean_path(entry.path) == removed
                 or clean_path(entry.path).startswith(prefix))
            and not os.path.isdir(entry.path)
            and self._recursive_parent(entry.path) is not None
        ]

        for entry in vanished:
            self.registry.remove(entry.path)
            try:
                self._unregister(entry.path)
            except WatchError as e:
                self._count('errors')
                logger.warning(f"Cannot release watch for vanished directory: {e}")
            logger.info(f"Dropped watch for vanished directory {entry.path}")

    def notify_event(self, callback: NotifyCallback) -> threading.Thread:
        """
        Call ``callback(event, error)`` for every event or error

        Starts a thread that loops on ``wait_event``. The thread ends
        silently when the watcher is closed.

        Args:
            callback: Receives (event, None) or (None, error)

        Returns:
            The subscription thread
        """
        self._check_open()

        with self._closed_lock:
            thread = threading.Thread(
                target=self._subscription_loop,
                args=(callback,),
                name=f"notifyrouter-subscription-{len(self._subscriptions) + 1}",
                daemon=True,
            )
            self._subscriptions.append(thread)
        self._count('subscriptions')
        thread.start()
        return thread

    def _subscription_loop(self, callback: NotifyCallback):
        while True:
            try:
                event = self.wait_event()
            except WatcherClosed:
                return
            except WatchError as e:
                self._invoke(callback, None, e)
                continue
            self._invoke(callback, event, None)

    def _invoke(self, callback: NotifyCallback, event: Optional[Event],
                error: Optional[Exception]):
        try:
            callback(event, error)
        except Exception as e:
            logger.exception(f"Error in notify callback: {e}")

    # Lifecycle

    def close(self):
        """
        Close the watcher and release the event source

        Safe to call more than once and from any thread. Blocked
        ``wait_event`` calls raise WatcherClosed.

        Raises:
            SourceError: If the event source fails to close
        """
        with self._closed_lock:
            if self._closed.is_set():
                return
            self._closed.set()
            self.source.queue.put(_CLOSED)
            subscriptions = list(self._subscriptions)

            try:
                self.source.close()
            except Exception as e:
                raise SourceError(f"Error closing event source: {e}") from e
            finally:
                self.registry.clear()
                logger.info("FileSystemWatcher closed")

        current = threading.current_thread()
        for thread in subscriptions:
            if thread is not current:
                thread.join(timeout=self.config.close_timeout)
                if thread.is_alive():
                    logger.warning(f"Subscription {thread.name} did not stop "
                                   f"within {self.config.close_timeout}s")

    def get_status(self) -> Dict[str, Any]:
        """Get watcher status"""
        with self._stats_lock:
            stats = self.stats.copy()
        return {
            'state': 'closed' if self.is_closed else 'open',
            'watches': len(self.registry),
            'source': type(self.source).__name__,
            'active_subscriptions': sum(1 for t in self._subscriptions if t.is_alive()),
            'stats': stats,
        }
