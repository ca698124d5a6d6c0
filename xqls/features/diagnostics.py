"""
Diagnostics for the XQuery Language Server.

Two sources contribute:
- warnings reported by the xqlint parser while building the syntax tree
- the eXist-db server, which compiles the query against the database so
  that imports and function calls are checked for real
"""

import logging
import re
from typing import TYPE_CHECKING, Any, List, Optional, Tuple

from lsprotocol import types

from xqls.ast.parser import ParseWarning
from xqls.exceptions import RemoteError
from xqls.features.resolve import ResolutionContext

if TYPE_CHECKING:
    from xqls.document import AnalyzedDocument

logger = logging.getLogger("xqls")

DIAGNOSTIC_SOURCE = "xquery"

# eXist format: "... [at line 12, column 5]" or "line: 12, column: 5"
_ERROR_LOCATION_PATTERN = re.compile(r"line:?\s*(\d+),\s*column:?\s*(\d+)", re.I)


def create_diagnostic(
    message: str,
    start_line: int,
    start_col: int,
    end_line: Optional[int] = None,
    end_col: Optional[int] = None,
    severity: types.DiagnosticSeverity = types.DiagnosticSeverity.Error,
) -> types.Diagnostic:
    """
    Create an LSP Diagnostic object.

    End line defaults to the start line, end column to one past the start.
    """
    if end_line is None:
        end_line = start_line
    if end_col is None:
        end_col = start_col + 1

    return types.Diagnostic(
        range=types.Range(
            start=types.Position(line=start_line, character=start_col),
            end=types.Position(line=end_line, character=end_col),
        ),
        message=message,
        severity=severity,
        source=DIAGNOSTIC_SOURCE,
    )


def warnings_to_diagnostics(warnings: List[ParseWarning]) -> List[types.Diagnostic]:
    return [
        create_diagnostic(
            warning.message,
            warning.start_line,
            warning.start_col,
            warning.end_line,
            warning.end_col,
            severity=types.DiagnosticSeverity.Warning,
        )
        for warning in warnings
    ]


def parse_error_location(error: Any) -> Tuple[int, int, str]:
    """
    Extract line, column and message from a compile error.

    The error is either a plain message or an object with ``line``,
    ``column`` and ``#text`` members. A location in the message text wins
    over the members. Returns 0-based (line, column, message).
    """
    if isinstance(error, dict):
        message = str(error.get("#text", ""))
    else:
        message = str(error or "")

    match = _ERROR_LOCATION_PATTERN.search(message)
    if match:
        line = int(match.group(1)) - 1
        col = int(match.group(2)) - 1
    elif isinstance(error, dict):
        line = _to_int(error.get("line")) - 1
        col = _to_int(error.get("column")) - 1
    else:
        line = col = 0
    return max(line, 0), max(col, 0), message


def _to_int(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def _line_length(text: str, line: int) -> int:
    lines = text.splitlines()
    if 0 <= line < len(lines):
        return len(lines[line])
    return 0


async def lint_document(
    document: "AnalyzedDocument", context: ResolutionContext
) -> List[types.Diagnostic]:
    """
    Recompute the diagnostics of a document and store them on it.

    A server that cannot be reached only reports its status; the parser
    warnings are kept.
    """
    diagnostics = warnings_to_diagnostics(document.parse_warnings)
    resolver = document.resolver
    try:
        response = await resolver.remote.compile_async(
            document.text, context.base, context.settings
        )
    except RemoteError as exc:
        logger.warning("Server-side compile failed: %s", exc)
        resolver.status(False, context.settings)
    else:
        resolver.status(True, context.settings)
        if not response.passed:
            line, col, message = parse_error_location(response.error)
            end_col = max(_line_length(document.text, line), col + 1)
            diagnostics.append(create_diagnostic(message, line, col, line, end_col))

    document.diagnostics = diagnostics
    return diagnostics
