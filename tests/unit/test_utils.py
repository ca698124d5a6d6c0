"""Tests for position helpers."""

from lsprotocol.types import Position
from pygls.workspace import TextDocument

from xqls.utils import (
    get_completion_prefix,
    location_from_lines,
    offset_at,
    position_at,
    range_from_offsets,
)

TEXT = "let $x := 1\nreturn $x\n"


def test_offset_at():
    assert offset_at(TEXT, Position(line=0, character=4)) == 4
    assert offset_at(TEXT, Position(line=1, character=7)) == TEXT.index("$x", 12)


def test_offset_at_clamps():
    assert offset_at(TEXT, Position(line=0, character=99)) == TEXT.index("\n")
    assert offset_at(TEXT, Position(line=10, character=0)) == len(TEXT)


def test_position_at():
    assert position_at(TEXT, 0) == Position(line=0, character=0)
    assert position_at(TEXT, TEXT.index("return")) == Position(line=1, character=0)
    assert position_at(TEXT, 1000) == Position(line=2, character=0)


def test_range_from_offsets():
    r = range_from_offsets(TEXT, 4, 6)
    assert r.start == Position(line=0, character=4)
    assert r.end == Position(line=0, character=6)


def test_location_from_lines():
    location = location_from_lines("file:///m.xqm", 3, 3)
    assert location.range.start == Position(line=3, character=0)
    assert location.range.end == Position(line=4, character=0)


class TestCompletionPrefix:
    def _prefix(self, line, character=None):
        doc = TextDocument("file:///t.xql", line + "\n")
        if character is None:
            character = len(line)
        return get_completion_prefix(doc, Position(line=0, character=character))

    def test_prefixed_name(self):
        assert self._prefix("return app:fo") == "app:fo"

    def test_variable(self):
        assert self._prefix("concat($con") == "$con"

    def test_from_line_start(self):
        assert self._prefix("fn:co") == "fn:co"

    def test_nothing_typed(self):
        assert self._prefix("return ") is None

    def test_line_out_of_range(self):
        doc = TextDocument("file:///t.xql", "x\n")
        assert get_completion_prefix(doc, Position(line=5, character=0)) is None
