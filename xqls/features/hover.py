"""
Hover support for the XQuery Language Server.

Shows the signature and xqDoc documentation of the function called at the
cursor, from the document itself or from the server's function registry.
"""

import logging
from typing import TYPE_CHECKING, Optional

from lsprotocol import types

from xqls.ast.tree import CallSignature
from xqls.features.resolve import (
    ResolutionContext,
    build_query,
    build_search_scope,
)
from xqls.features.symbol_table import Symbol
from xqls.remote.schema import RemoteItem

if TYPE_CHECKING:
    from xqls.document import AnalyzedDocument

logger = logging.getLogger("xqls")


def _markdown(parts) -> types.Hover:
    return types.Hover(
        contents=types.MarkupContent(
            kind=types.MarkupKind.Markdown, value="\n\n".join(parts)
        )
    )


def local_hover(symbol: Symbol) -> types.Hover:
    parts = [f"**{symbol.signature}**"]
    if symbol.documentation:
        parts.append(symbol.documentation)
    return _markdown(parts)


def remote_hover(item: RemoteItem) -> types.Hover:
    title = f"**{item.display_text}**"
    if item.left_label:
        title += f" as **{item.left_label}**"
    parts = [title]
    if item.description:
        parts.append(item.description)
    for arg in item.arguments:
        parts.append(f"**${arg.name}** *{arg.type}* {arg.description or ''}".rstrip())
    return _markdown(parts)


async def get_hover(
    document: "AnalyzedDocument",
    position: types.Position,
    context: ResolutionContext,
) -> Optional[types.Hover]:
    """
    Describe the function call at the given position.

    Args:
        document: The analyzed document.
        position: The cursor position.
        context: Settings and collection path for a remote lookup.

    Returns:
        A markdown Hover, or None if there is no call at the position or
        nothing is known about it.
    """
    signature = document.signature_at(position)
    if signature is None:
        return None

    symbol = document.symbol_table.lookup(signature.name, signature.arity)
    if symbol is not None:
        return local_hover(symbol)
    return await _get_hover_remote(document, signature, context)


async def _get_hover_remote(
    document: "AnalyzedDocument",
    signature: CallSignature,
    context: ResolutionContext,
) -> Optional[types.Hover]:
    scope = build_search_scope(document.import_table, signature.name)
    query = build_query(scope, context.base, signature=signature.key)
    items = await document.resolver.lookup(query, context.settings)
    if not items:
        if items is not None:
            logger.info("hover: no description found for %s", signature.key)
        return None

    document.symbol_table.merge(item.to_symbol() for item in items)
    return remote_hover(items[0])
