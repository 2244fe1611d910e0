# notifyrouter/watch/registry.py

"""
Watch registry: ordered, lock-guarded collection of watch registrations
"""
import os
import logging
import threading
from dataclasses import dataclass
from typing import List, Optional

from .events import Op

logger = logging.getLogger(__name__)


def clean_path(path: str) -> str:
    """Lexically clean a path ('' becomes '.')"""
    return os.path.normpath(path) if path else '.'


@dataclass(frozen=True)
class WatchEntry:
    """One registered path with its filter configuration"""
    path: str
    pattern: str = ''
    ops: Op = Op.ALL_OPS
    is_directory: bool = False
    recursive: bool = False


class WatchRegistry:
    """
    Ordered sequence of watch entries.

    Insertion order is preserved and duplicate paths are allowed. All
    mutations and scans happen under one lock so registrations can change
    while events are being dispatched.
    """

    def __init__(self):
        self._entries: List[WatchEntry] = []
        self._lock = threading.RLock()

    def add(self, entry: WatchEntry):
        """Append an entry"""
        with self._lock:
            self._entries.append(entry)
        logger.debug(f"Registered watch entry: {entry}")

    def remove(self, path: str) -> Optional[WatchEntry]:
        """
        Delete the first entry whose path equals ``path`` exactly

        Args:
            path: Path as it was given when the entry was added

        Returns:
            The removed entry, or None if no entry matched
        """
        with self._lock:
            for index, entry in enumerate(self._entries):
                if entry.path == path:
                    del self._entries[index]
                    logger.debug(f"Removed watch entry: {entry}")
                    return entry
        return None

    def find_for(self, raw_path: str) -> Optional[WatchEntry]:
        """
        Resolve the entry responsible for a raw event path

        An entry for the path itself wins over an entry for its parent
        directory, regardless of insertion order.

        Args:
            raw_path: Path reported by the event source

        Returns:
            Matching entry or None
        """
        target = clean_path(raw_path)
        parent = clean_path(os.path.dirname(raw_path))

        with self._lock:
            for entry in self._entries:
                if clean_path(entry.path) == target:
                    return entry
            for entry in self._entries:
                if clean_path(entry.path) == parent:
                    return entry
        return None

    def entries(self) -> List[WatchEntry]:
        """Snapshot of the entries in insertion order"""
        with self._lock:
            return list(self._entries)

    def clear(self):
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, path: str) -> bool:
        with self._lock:
            return any(entry.path == path for entry in self._entries)
