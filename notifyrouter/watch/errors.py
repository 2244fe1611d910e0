# notifyrouter/watch/errors.py

"""
Exceptions raised by the file system watcher
"""


class WatchError(Exception):
    """Base class for watcher errors"""


class WatcherClosed(WatchError):
    """
    Raised when the watcher has been closed.

    This is a clean termination signal, not an operational failure.
    """

    def __init__(self, message: str = "FileSystemWatcher closed"):
        super().__init__(message)


class ExpectedFileError(WatchError):
    """A directory was given where a file was expected"""

    def __init__(self, path: str, operation: str = "add"):
        self.path = path
        super().__init__(f"Use {operation}_dir instead for {path}")


class ExpectedDirectoryError(WatchError):
    """A file was given where a directory was expected"""

    def __init__(self, path: str, operation: str = "add"):
        self.path = path
        super().__init__(f"Use {operation}_file instead for {path}")


class SourceError(WatchError):
    """Failure reported by the underlying event source"""
