# notifyrouter/watch/patterns.py

"""
Operation and filename filtering for file system events
"""
import os
import re
import fnmatch
import logging
from functools import lru_cache
from typing import Optional, Pattern

from .events import Op
from .registry import WatchRegistry

logger = logging.getLogger(__name__)


class MalformedPatternError(ValueError):
    """Raised for a glob pattern that cannot be compiled"""


def is_malformed(pattern: str) -> bool:
    """
    Check if a glob pattern is malformed

    A pattern is malformed when a character class is never closed or the
    pattern ends with an escaping backslash.

    Args:
        pattern: Glob pattern

    Returns:
        True if the pattern cannot be used
    """
    i, n = 0, len(pattern)
    while i < n:
        char = pattern[i]
        if char == '\\':
            if i + 1 >= n:
                return True
            i += 2
            continue
        if char == '[':
            j = i + 1
            if j < n and pattern[j] in '!^':
                j += 1
            # A ']' right after the opening bracket is a literal member
            if j < n and pattern[j] == ']':
                j += 1
            while j < n and pattern[j] != ']':
                j += 1
            if j >= n:
                return True
            i = j + 1
            continue
        i += 1
    return False


@lru_cache(maxsize=1024)
def compile_pattern(pattern: str) -> Pattern:
    """
    Compile a shell-style glob into a regular expression

    Args:
        pattern: Glob using '*', '?', and '[...]' classes ('[^...]' is
            accepted as a synonym for '[!...]')

    Returns:
        Compiled regular expression

    Raises:
        MalformedPatternError: If the pattern is malformed
    """
    if is_malformed(pattern):
        raise MalformedPatternError(f"Malformed pattern: {pattern!r}")

    # fnmatch has no escape syntax, so a backslash escape becomes a
    # one-character class before translation
    translated = re.sub(
        r'\\(.)',
        lambda m: m.group(1) if m.group(1) in '!^]' else f'[{m.group(1)}]',
        pattern,
    )
    translated = translated.replace('[^', '[!')
    try:
        return re.compile(fnmatch.translate(translated))
    except re.error as e:
        raise MalformedPatternError(f"Malformed pattern {pattern!r}: {e}") from e


def match_filename(pattern: str, path: str) -> bool:
    """
    Match a glob against the filename component of a path

    Args:
        pattern: Glob pattern
        path: Path whose last component is tested

    Returns:
        True if the filename matches

    Raises:
        MalformedPatternError: If the pattern is malformed
    """
    filename = os.path.basename(path)
    return compile_pattern(pattern).match(filename) is not None


def accepts_operation(registry: WatchRegistry, path: str, op: Op) -> bool:
    """
    Check if the watch responsible for a path accepts an operation

    Matching is a subset test: WRITE is accepted by WRITE|CHMOD.

    Args:
        registry: Watch registry
        path: Raw event path
        op: Operation bits of the event

    Returns:
        True if accepted
    """
    entry = registry.find_for(path)
    if entry is None:
        return False
    return entry.ops & op == op


def accepts_pattern(registry: WatchRegistry, path: str) -> bool:
    """
    Check if the watch responsible for a path accepts its filename

    Files that were added individually are always accepted.

    Args:
        registry: Watch registry
        path: Raw event path

    Returns:
        True if accepted
    """
    entry = registry.find_for(path)
    if entry is None:
        return False

    if not entry.is_directory:
        return True

    if not entry.pattern:
        return True

    try:
        return match_filename(entry.pattern, path)
    except MalformedPatternError as e:
        logger.warning(f"Treating event for {path} as filtered: {e}")
        return False


def validate_pattern(pattern: Optional[str]) -> bool:
    """Return False (and log) if a pattern will never match anything"""
    if pattern and is_malformed(pattern):
        logger.warning(f"Malformed pattern {pattern!r}; no file will match it")
        return False
    return True
