"""Global test fixtures and configuration."""

import logging
import queue
from pathlib import Path
from typing import List, Set

import pytest

from notifyrouter.watch import FileSystemWatcher, RawEvent
from notifyrouter.watch.source import EventSource
from notifyrouter.utils.config import WatcherConfig


class FakeEventSource(EventSource):
    """In-memory event source driven by the test."""

    def __init__(self, fail_on: Set[str] = None):
        super().__init__()
        self.registered: List[str] = []
        self.fail_on = set(fail_on or ())
        self.close_calls = 0

    def register(self, path: str) -> None:
        if path in self.fail_on:
            raise OSError(28, "No space left on device (watch limit)", path)
        self.registered.append(path)

    def unregister(self, path: str) -> None:
        if path not in self.registered:
            raise KeyError(f"Can't remove non-existent watch: {path}")
        self.registered.remove(path)

    def close(self) -> None:
        self.close_calls += 1

    def push(self, path, op) -> None:
        self.emit(RawEvent(str(path), op))


@pytest.fixture
def source() -> FakeEventSource:
    return FakeEventSource()


@pytest.fixture
def watcher(source: FakeEventSource):
    """Watcher over the fake source, closed after the test."""
    fsw = FileSystemWatcher(source=source, config=WatcherConfig(close_timeout=2.0))
    yield fsw
    fsw.close()


@pytest.fixture
def tree(tmp_path: Path) -> Path:
    """Directory tree: root/{a.txt, b.ini, sub/{c.txt, deep/}, other/}."""
    root = tmp_path / "root"
    (root / "sub" / "deep").mkdir(parents=True)
    (root / "other").mkdir()
    (root / "a.txt").write_text("a")
    (root / "b.ini").write_text("b")
    (root / "sub" / "c.txt").write_text("c")
    return root


def drain(q: "queue.Queue", timeout: float = 0.5) -> list:
    """Collect items from a queue until it stays empty for ``timeout``."""
    items = []
    while True:
        try:
            items.append(q.get(timeout=timeout))
        except queue.Empty:
            return items


@pytest.fixture
def restore_root_logger():
    """Undo handler and level changes made by setup_logging."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield root
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        if handler not in handlers:
            handler.close()
    for handler in handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(level)
