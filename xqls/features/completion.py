"""
Completion support for the XQuery Language Server.

Completions combine the functions and variables declared in the document
with everything the server can see through the document's imports,
including Java bindings. Entries are not deduplicated: a local function and
a remote one with the same signature may both be offered, since their
documentation can differ.
"""

import logging
from typing import TYPE_CHECKING, Iterable, List, Optional

from lsprotocol import types
from lsprotocol.types import CompletionItemKind

from xqls.features.resolve import (
    ResolutionContext,
    build_query,
    build_search_scope,
)
from xqls.features.symbol_table import Symbol, SymbolKind

if TYPE_CHECKING:
    from xqls.document import AnalyzedDocument

logger = logging.getLogger("xqls")


def escape_snippet(snippet: str) -> str:
    """Escape ``$`` in placeholder defaults so ``${1:$a}`` inserts ``$a``."""
    return snippet.replace(":$", ":\\$")


def to_completion_item(symbol: Symbol) -> types.CompletionItem:
    if symbol.kind is SymbolKind.FUNCTION:
        item = types.CompletionItem(
            label=symbol.signature,
            kind=CompletionItemKind.Function,
            data=symbol.name,
            insert_text=escape_snippet(symbol.snippet),
            insert_text_format=types.InsertTextFormat.Snippet,
        )
    else:
        item = types.CompletionItem(
            label=symbol.signature,
            kind=CompletionItemKind.Variable,
            data=symbol.name,
            insert_text=symbol.snippet,
            insert_text_format=types.InsertTextFormat.PlainText,
        )
    if symbol.documentation:
        item.detail = symbol.name
        item.documentation = symbol.documentation
    return item


def to_completion_items(symbols: Iterable[Symbol]) -> List[types.CompletionItem]:
    return [to_completion_item(symbol) for symbol in symbols]


async def get_completions(
    document: "AnalyzedDocument",
    prefix: Optional[str],
    context: ResolutionContext,
) -> List[types.CompletionItem]:
    """
    Get completion items for a partially typed name.

    Args:
        document: The analyzed document.
        prefix: Text typed so far, used by the server to filter its answer.
        context: Settings and collection path for the remote lookup.

    Returns:
        Local items followed by remote items, or an empty list if the server
        could not be reached.
    """
    scope = build_search_scope(document.import_table, include_host_bindings=True)
    query = build_query(scope, context.base, prefix=prefix)
    items = await document.resolver.lookup(query, context.settings)
    if items is None:
        return []

    remote_symbols = [item.to_symbol() for item in items]
    document.symbol_table.merge(remote_symbols)
    logger.debug(
        "Completion for %r: %d remote symbols", prefix, len(remote_symbols)
    )
    return to_completion_items(document.symbol_table.local_symbols()) + (
        to_completion_items(remote_symbols)
    )
