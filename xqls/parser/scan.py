"""
Lightweight XQuery definition scanner.

Extracts function and variable declarations and module imports from raw
source text without a full grammar. The scanner never raises on malformed
input: anything it cannot make sense of is skipped. Reporting syntax errors
is the job of the diagnostics feature.
"""

import logging
import re
from typing import List, NamedTuple, Optional

from xqls.features.symbol_table import (
    Import,
    ImportTable,
    Span,
    Symbol,
    SymbolKind,
    SymbolTable,
    function_key,
)

logger = logging.getLogger("xqls")

# A definition unit: optional xqDoc comment, annotations, then either
# "function name(" or "variable $name"
_DEFINITION_PATTERN = re.compile(
    r"(?:\(:~(?P<doc>(?:(?!:\)).)*?):\))?\s*"
    r"\bdeclare\s+(?P<annotations>(?:%[\w:\-]+(?:\([^)]*\))?\s*)*)"
    r"(?:function\s+(?P<function>[^\s(]+)\s*\("
    r"|variable\s+\$(?P<variable>[^\s;:=]+(?::[^\s;:=]+)?))",
    re.DOTALL,
)

_IMPORT_PATTERN = re.compile(
    r"import\s+module\s+namespace\s+(?P<prefix>[^=\s]+)\s*=\s*"
    r"[\"'](?P<uri>[^\"']+)[\"']\s*"
    r"(?:at\s+[\"'](?P<path>[^\"']+)[\"']\s*)?;"
)

_PARAM_NAME_PATTERN = re.compile(r"\$\S+")

# ECMAScript whitespace, which includes a few characters str.strip() keeps
_TRIM_CHARS = (
    "\x09\x0a\x0b\x0c\x0d\x20\xa0\u1680\u180e\u2000\u2001\u2002\u2003"
    "\u2004\u2005\u2006\u2007\u2008\u2009\u200a\u2028\u2029\u202f\u205f\u3000"
)

_OPENERS = "([{"
_CLOSERS = ")]}"


class ScanResult(NamedTuple):
    symbols: SymbolTable
    imports: ImportTable


def scan(text: str) -> ScanResult:
    """Extract the symbol and import tables of an XQuery document."""
    symbols = SymbolTable(_scan_definitions(text))
    imports = scan_imports(text)
    logger.debug("Scanned %d symbols, %d imports", len(symbols), len(imports))
    return ScanResult(symbols, imports)


def scan_imports(text: str) -> ImportTable:
    """
    Collect module imports keyed by prefix.

    Imports without an ``at`` location hint cannot be resolved and are
    skipped. A prefix declared twice keeps the last declaration.
    """
    table = ImportTable()
    for match in _IMPORT_PATTERN.finditer(text):
        if match.group("path") is None:
            continue
        table.add(
            Import(
                prefix=match.group("prefix"),
                namespace_uri=match.group("uri"),
                source_path=match.group("path"),
            )
        )
    return table


def find_definition(text: str, name: str, arity: int) -> Optional[Symbol]:
    """
    Re-scan a module for the function ``name#arity``.

    The span of the returned symbol is expressed in lines rather than
    offsets, because the text may not be the exact text the caller's offsets
    were computed against.
    """
    for symbol in _scan_definitions(text, line_spans=True):
        if symbol.kind is SymbolKind.FUNCTION and symbol.key == function_key(
            name, arity
        ):
            return symbol
    return None


def _scan_definitions(text: str, line_spans: bool = False) -> List[Symbol]:
    definitions: List[Symbol] = []
    for match in _DEFINITION_PATTERN.finditer(text):
        documentation = _trim(match.group("doc") or "") or None
        if match.group("variable") is not None:
            symbol = _variable_symbol(match, documentation)
        else:
            symbol = _function_symbol(text, match, documentation)
            if symbol is None:
                logger.debug("Skipping unterminated definition at %d", match.start())
                continue
        if line_spans and symbol.span is not None:
            line = line_of_offset(text, symbol.span.start)
            symbol.span = Span(line, line)
        definitions.append(symbol)
    return definitions


def _function_symbol(
    text: str, match: "re.Match[str]", documentation: Optional[str]
) -> Optional[Symbol]:
    name = _trim(match.group("function"))
    if not name:
        return None
    offset = match.end()
    end = find_matching_paren(text, offset)
    if end < 0:
        return None

    params = split_parameters(text[offset:end])
    arity = len(params)
    return Symbol(
        key=function_key(name, arity),
        name=name,
        signature=f"{name}({', '.join(params)})",
        kind=SymbolKind.FUNCTION,
        snippet=build_snippet(name, params),
        arity=arity,
        documentation=documentation,
        span=Span(match.start("function"), end + 1),
    )


def _variable_symbol(match: "re.Match[str]", documentation: Optional[str]) -> Symbol:
    name = f"${match.group('variable')}"
    return Symbol(
        key=name,
        name=name,
        signature=name,
        kind=SymbolKind.VARIABLE,
        snippet=name,
        documentation=documentation,
        span=Span(match.start("variable") - 1, match.end("variable")),
    )


def find_matching_paren(text: str, offset: int) -> int:
    """
    Return the index of the parenthesis closing the one just before offset.

    Parentheses inside string literals and comments are counted like any
    other. Returns -1 if the list is never closed.
    """
    depth = 1
    for i in range(offset, len(text)):
        ch = text[i]
        if ch == ")":
            depth -= 1
            if depth == 0:
                return i
        elif ch == "(":
            depth += 1
    return -1


def split_parameters(params: str) -> List[str]:
    """Split a raw parameter list on commas that are not nested."""
    if not params.strip():
        return []
    parts: List[str] = []
    depth = 0
    current = []
    for ch in params:
        if ch in _OPENERS:
            depth += 1
        elif ch in _CLOSERS:
            depth = max(depth - 1, 0)
        elif ch == "," and depth == 0:
            parts.append("".join(current).strip())
            current = []
            continue
        current.append(ch)
    parts.append("".join(current).strip())
    return parts


def build_snippet(name: str, params: List[str]) -> str:
    """Build ``name(${1:$a}, ${2:$b})`` from the parameter declarations."""
    placeholders = []
    for param in params:
        match = _PARAM_NAME_PATTERN.search(param)
        if match:
            placeholders.append(f"${{{len(placeholders) + 1}:{match.group()}}}")
    return f"{name}({', '.join(placeholders)})"


def line_of_offset(text: str, offset: int) -> int:
    """Number of newlines before offset."""
    return text.count("\n", 0, offset)


def _trim(value: str) -> str:
    return value.strip(_TRIM_CHARS)
