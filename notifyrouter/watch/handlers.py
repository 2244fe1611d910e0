# notifyrouter/watch/handlers.py

"""
Translation of watchdog events into raw watcher events
"""
import os
import logging
import threading
from datetime import datetime
from typing import Any, Dict, List, Optional, Set, Tuple, TYPE_CHECKING

from watchdog.events import (
    FileSystemEventHandler,
    FileSystemEvent,
    FileCreatedEvent,
    FileModifiedEvent,
    FileDeletedEvent,
    FileMovedEvent,
    DirCreatedEvent,
    DirModifiedEvent,
    DirDeletedEvent,
    DirMovedEvent
)

from .events import Op, RawEvent

if TYPE_CHECKING:
    from .source import WatchdogEventSource

logger = logging.getLogger(__name__)


def _decode(path) -> str:
    return os.fsdecode(path) if isinstance(path, bytes) else path


class RawEventHandler(FileSystemEventHandler):
    """
    Converts watchdog events into raw events for an event source

    A modification is reported as CHMOD when the file's attributes changed
    but its content did not, and as WRITE otherwise. Mode, modification
    time and change time of seen files are cached to tell the two apart.

    The stat is taken when an event is handled, so a write followed
    quickly by a chmod can both show up in the first event. That event
    is reported as WRITE and the chmod is held back for the next event
    on the same path, which finds nothing new.
    """

    def __init__(self, source: 'WatchdogEventSource'):
        self.source = source
        self._stat_cache: Dict[str, Tuple[int, int, int]] = {}
        self._pending_chmod: Set[str] = set()
        self._cache_lock = threading.Lock()

        # Statistics
        self.stats = {
            'events_received': 0,
            'events_emitted': 0,
            'events_dropped': 0,
            'errors': 0,
            'last_event': None,
        }

    def on_any_event(self, event: FileSystemEvent):
        """Handle any file system event"""
        self.stats['events_received'] += 1
        self.stats['last_event'] = datetime.now()

        try:
            raw_events = self._convert_event(event)
        except Exception as e:
            self.stats['errors'] += 1
            logger.error(f"Error converting event {event!r}: {e}")
            self.source.fail(e)
            return

        if not raw_events:
            self.stats['events_dropped'] += 1
            return

        for raw in raw_events:
            self.source.emit(raw)
            self.stats['events_emitted'] += 1

    def _convert_event(self, event: FileSystemEvent) -> List[RawEvent]:
        """Convert a watchdog event into zero or more raw events"""
        src_path = self.source.translate_path(_decode(event.src_path))

        if isinstance(event, (FileCreatedEvent, DirCreatedEvent)):
            self.remember(src_path)
            return [RawEvent(src_path, Op.CREATE)]

        if isinstance(event, FileModifiedEvent):
            return [RawEvent(src_path, self._modification_op(src_path))]

        if isinstance(event, DirModifiedEvent):
            # Synthesized for the parent of a changed entry
            return []

        if isinstance(event, (FileDeletedEvent, DirDeletedEvent)):
            self.forget(src_path)
            return [RawEvent(src_path, Op.REMOVE)]

        if isinstance(event, (FileMovedEvent, DirMovedEvent)):
            dest_path = self.source.translate_path(_decode(event.dest_path))
            self.forget(src_path)
            self.remember(dest_path)
            return [
                RawEvent(src_path, Op.RENAME),
                RawEvent(dest_path, Op.CREATE),
            ]

        # Opened/closed notifications have no counterpart
        return []

    def _modification_op(self, path: str) -> Op:
        current = self._stat(path)
        if current is None:
            return Op.WRITE

        with self._cache_lock:
            previous = self._stat_cache.get(path)
            self._stat_cache[path] = current
            if previous is None:
                return Op.WRITE

            mode_changed = previous[0] != current[0]
            mtime_changed = previous[1] != current[1]
            ctime_changed = previous[2] != current[2]

            if mtime_changed:
                if mode_changed:
                    self._pending_chmod.add(path)
                return Op.WRITE
            if mode_changed or ctime_changed:
                self._pending_chmod.discard(path)
                return Op.CHMOD
            if path in self._pending_chmod:
                self._pending_chmod.discard(path)
                return Op.CHMOD
        return Op.WRITE

    def _stat(self, path: str) -> Optional[Tuple[int, int, int]]:
        try:
            st = os.stat(path)
        except OSError:
            return None
        return st.st_mode, st.st_mtime_ns, st.st_ctime_ns

    def remember(self, path: str):
        """Cache the current mode and timestamps of a path"""
        current = self._stat(path)
        if current is None:
            return
        with self._cache_lock:
            self._stat_cache[path] = current

    def remember_directory(self, directory: str):
        """Cache every entry of a directory"""
        try:
            with os.scandir(directory) as entries:
                names = [entry.name for entry in entries]
        except OSError as e:
            logger.debug(f"Cannot list {directory}: {e}")
            return
        for name in names:
            self.remember(os.path.join(directory, name))

    def forget(self, path: str):
        with self._cache_lock:
            self._stat_cache.pop(path, None)
            self._pending_chmod.discard(path)

    def forget_directory(self, directory: str):
        """Drop cached entries for a directory and its direct children"""
        directory = os.path.normpath(directory)
        with self._cache_lock:
            stale = [
                path for path in self._stat_cache
                if os.path.normpath(path) == directory
                or os.path.normpath(os.path.dirname(path) or os.curdir) == directory
            ]
            for path in stale:
                del self._stat_cache[path]
                self._pending_chmod.discard(path)

    def get_stats(self) -> Dict[str, Any]:
        """Get handler statistics"""
        return self.stats.copy()
