"""Tests for operation and filename filtering."""

import logging

import pytest

from notifyrouter.watch.events import Op
from notifyrouter.watch.patterns import (
    MalformedPatternError,
    accepts_operation,
    accepts_pattern,
    is_malformed,
    match_filename,
)
from notifyrouter.watch.registry import WatchEntry, WatchRegistry

SINGLE_OPS = [Op.CREATE, Op.WRITE, Op.REMOVE, Op.RENAME, Op.CHMOD]


class TestAcceptsOperation:
    """Tests for the operation mask predicate."""

    def test_unknown_path_is_rejected(self) -> None:
        registry = WatchRegistry()
        registry.add(WatchEntry(path="test.txt", ops=Op.WRITE))
        assert not accepts_operation(registry, "none", Op.WRITE)

    @pytest.mark.parametrize("path", ["test.txt", "testdir", "testdir/test.txt"])
    def test_single_bit_mask(self, path: str) -> None:
        registry = WatchRegistry()
        for p in ["test.txt", "testdir", "testdir/test.txt"]:
            registry.add(WatchEntry(path=p, ops=Op.WRITE))

        assert accepts_operation(registry, path, Op.WRITE)
        for op in SINGLE_OPS:
            if op != Op.WRITE:
                assert not accepts_operation(registry, path, op)

    @pytest.mark.parametrize("op", SINGLE_OPS)
    def test_all_ops_accepts_every_operation(self, op: Op) -> None:
        registry = WatchRegistry()
        registry.add(WatchEntry(path="dir", is_directory=True, ops=Op.ALL_OPS))
        assert accepts_operation(registry, "dir/file", op)

    def test_subset_semantics(self) -> None:
        registry = WatchRegistry()
        registry.add(WatchEntry(path="f", ops=Op.WRITE | Op.CHMOD))

        assert accepts_operation(registry, "f", Op.WRITE)
        assert accepts_operation(registry, "f", Op.CHMOD)
        assert accepts_operation(registry, "f", Op.WRITE | Op.CHMOD)
        assert not accepts_operation(registry, "f", Op.WRITE | Op.CREATE)


class TestAcceptsPattern:
    """Tests for the filename pattern predicate."""

    def test_unknown_path_is_rejected(self) -> None:
        registry = WatchRegistry()
        assert not accepts_pattern(registry, "none")

    def test_all_registered_paths_match_their_pattern(self) -> None:
        registry = WatchRegistry()
        for p in ["test.txt", "testdir", "testdir/test.txt"]:
            registry.add(WatchEntry(path=p, pattern="*test*"))
        for p in ["test.txt", "testdir", "testdir/test.txt"]:
            assert accepts_pattern(registry, p)

    def test_directory_pattern_matches_filename_only(self) -> None:
        registry = WatchRegistry()
        registry.add(WatchEntry(path="logs.txt", pattern="*.txt", is_directory=True))

        assert accepts_pattern(registry, "logs.txt/app.txt")
        assert not accepts_pattern(registry, "logs.txt/app.log")

    def test_empty_pattern_accepts_everything(self) -> None:
        registry = WatchRegistry()
        registry.add(WatchEntry(path="d", is_directory=True))
        assert accepts_pattern(registry, "d/anything.bin")

    def test_file_entries_ignore_pattern(self) -> None:
        registry = WatchRegistry()
        registry.add(WatchEntry(path="d", pattern="*.txt", is_directory=True))
        registry.add(WatchEntry(path="d/config.ini", pattern="*.txt"))

        assert accepts_pattern(registry, "d/config.ini")
        assert not accepts_pattern(registry, "d/other.ini")

    def test_malformed_pattern_rejects_and_logs(self, caplog: pytest.LogCaptureFixture) -> None:
        registry = WatchRegistry()
        registry.add(WatchEntry(path="d", pattern="[abc", is_directory=True))

        with caplog.at_level(logging.WARNING):
            assert not accepts_pattern(registry, "d/a")

        assert "Malformed pattern" in caplog.text


class TestMatchFilename:
    """Tests for glob matching."""

    @pytest.mark.parametrize(
        ("pattern", "name", "expected"),
        [
            ("*.txt", "dir/file.txt", True),
            ("*.txt", "dir/file.txt.bak", False),
            ("file?.log", "file1.log", True),
            ("file?.log", "file12.log", False),
            ("[abc]*", "apple", True),
            ("[abc]*", "dog", False),
            ("[!abc]*", "dog", True),
            ("[^abc]*", "dog", True),
            ("[^abc]*", "apple", False),
            ("[0-9].dat", "7.dat", True),
            ("*.TXT", "file.txt", False),
            (r"\*.txt", "*.txt", True),
            (r"\*.txt", "a.txt", False),
        ],
    )
    def test_glob(self, pattern: str, name: str, expected: bool) -> None:
        assert match_filename(pattern, name) is expected

    def test_directory_part_is_not_matched(self) -> None:
        assert not match_filename("dir*", "dir/file")

    @pytest.mark.parametrize("pattern", ["[abc", "abc\\", "[!", "x[]"])
    def test_malformed(self, pattern: str) -> None:
        assert is_malformed(pattern)
        with pytest.raises(MalformedPatternError):
            match_filename(pattern, "abc")

    @pytest.mark.parametrize("pattern", ["*.txt", "[]]x", "[a-z]", "", "a\\[b"])
    def test_well_formed(self, pattern: str) -> None:
        assert not is_malformed(pattern)
