"""Tests for operation masks and event shapes."""

import pytest

from notifyrouter.watch.events import Event, Op, RawEvent, normalize_event


class TestOp:
    """Tests for the Op bitmask."""

    def test_all_ops_is_union_of_bits(self) -> None:
        assert Op.ALL_OPS == Op.CREATE | Op.WRITE | Op.REMOVE | Op.RENAME | Op.CHMOD
        assert int(Op.ALL_OPS) == 31

    def test_bits_are_independent(self) -> None:
        bits = [Op.CREATE, Op.WRITE, Op.REMOVE, Op.RENAME, Op.CHMOD]
        assert [int(b) for b in bits] == [1, 2, 4, 8, 16]

    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("create", Op.CREATE),
            ("Create|WRITE", Op.CREATE | Op.WRITE),
            ("remove, rename", Op.REMOVE | Op.RENAME),
            ("all", Op.ALL_OPS),
            ("chmod", Op.CHMOD),
        ],
    )
    def test_parse(self, text: str, expected: Op) -> None:
        assert Op.parse(text) == expected

    def test_parse_integer_mask(self) -> None:
        assert Op.parse(3) == Op.CREATE | Op.WRITE

    def test_parse_rejects_unknown_names(self) -> None:
        with pytest.raises(ValueError, match="Unknown operation"):
            Op.parse("create|touch")

    def test_parse_rejects_stray_bits(self) -> None:
        with pytest.raises(ValueError, match="Invalid operation mask"):
            Op.parse(64)

    def test_names(self) -> None:
        assert (Op.WRITE | Op.CHMOD).names() == "WRITE|CHMOD"
        assert Op.ALL_OPS.names() == "CREATE|WRITE|REMOVE|RENAME|CHMOD"


class TestEvent:
    """Tests for Event and normalization."""

    def test_string_form(self) -> None:
        event = Event(path="testfile.txt", op=Op.WRITE)
        assert str(event) == '"testfile.txt": WRITE'

    def test_string_form_combined_ops(self) -> None:
        event = Event(path="a/b.txt", op=Op.CREATE | Op.CHMOD)
        assert str(event) == '"a/b.txt": CREATE|CHMOD'

    def test_normalize_keeps_path_and_op(self) -> None:
        event = normalize_event(RawEvent("d/x.txt", Op.RENAME))
        assert event.path == "d/x.txt"
        assert event.op == Op.RENAME
        assert event.timestamp is not None

    def test_equality_ignores_timestamp(self) -> None:
        assert normalize_event(RawEvent("x", Op.WRITE)) == Event("x", Op.WRITE)
