"""Utility functions for the XQuery Language Server."""

import logging
import re
from typing import List, Optional

from lsprotocol.types import Location, Position, Range
from pygls.workspace import TextDocument

logger = logging.getLogger("xqls")

# Characters of a (possibly prefixed) XQuery name or variable reference
_COMPLETION_PREFIX = re.compile(r"[A-Za-z0-9_.\-:$]+$")


def _line_starts(text: str) -> List[int]:
    starts = [0]
    for i, ch in enumerate(text):
        if ch == "\n":
            starts.append(i + 1)
    return starts


def offset_at(text: str, position: Position) -> int:
    """Character offset of a line/column position, clamped to the text."""
    starts = _line_starts(text)
    if position.line >= len(starts):
        return len(text)
    line_start = starts[position.line]
    line_end = starts[position.line + 1] - 1 if position.line + 1 < len(starts) else len(text)
    return min(line_start + position.character, line_end)


def position_at(text: str, offset: int) -> Position:
    """Line/column position of a character offset."""
    offset = max(0, min(offset, len(text)))
    line = text.count("\n", 0, offset)
    line_start = text.rfind("\n", 0, offset) + 1
    return Position(line=line, character=offset - line_start)


def range_from_offsets(text: str, start: int, end: int) -> Range:
    """Create an LSP Range from character offsets."""
    return Range(start=position_at(text, start), end=position_at(text, end))


def range_from_lines(start_line: int, end_line: int) -> Range:
    """Create an LSP Range covering whole lines."""
    return Range(
        start=Position(line=start_line, character=0),
        end=Position(line=end_line + 1, character=0),
    )


def location_from_lines(uri: str, start_line: int, end_line: int) -> Location:
    return Location(uri=uri, range=range_from_lines(start_line, end_line))


def get_completion_prefix(doc: TextDocument, position: Position) -> Optional[str]:
    """
    Extract the partial name being typed before the cursor.

    Args:
        doc: The text document.
        position: The cursor position.

    Returns:
        The prefix (e.g. ``app:fo`` or ``$con``), or None if there is none.
    """
    try:
        line = doc.lines[position.line]
    except IndexError:
        return None

    match = _COMPLETION_PREFIX.search(line[: position.character])
    if match:
        return match.group()
    return None
