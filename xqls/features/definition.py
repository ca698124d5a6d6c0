"""
Definition finding functionality for the XQuery Language Server.

Functions declared in the document resolve to their declaration directly.
Anything else is looked up on the server, which reports the database path of
the declaring module; that path is mapped back onto the local workspace
mirror, and the module file is re-scanned to find the declaration line.
"""

import asyncio
import logging
import os
import posixpath
from pathlib import Path
from typing import TYPE_CHECKING, Callable, Optional

from lsprotocol import types
from pygls import uris

from xqls import utils
from xqls.ast.tree import CallSignature
from xqls.features.resolve import (
    ResolutionContext,
    build_query,
    build_search_scope,
)
from xqls.parser.scan import find_definition

if TYPE_CHECKING:
    from xqls.document import AnalyzedDocument

logger = logging.getLogger("xqls")

# Reads the text of a module given its local path; raises OSError
ModuleReader = Callable[[str], str]


def read_module(path: str) -> str:
    return Path(path).read_text(encoding="utf-8")


def local_module_path(
    document_uri: str, remote_path: str, base: str
) -> Optional[str]:
    """
    Map a module's database path onto the local file system.

    The database path is made relative to the collection of the requesting
    document, then resolved against the document's directory.

    Args:
        document_uri: URI of the requesting document.
        remote_path: Database path of the module, e.g. ``/db/apps/x/lib.xqm``.
        base: Database collection of the requesting document.

    Returns:
        An absolute local path, or None for non-file documents.
    """
    doc_path = uris.to_fs_path(document_uri)
    if not doc_path:
        return None
    relative = posixpath.relpath(remote_path, base)
    return os.path.normpath(os.path.join(os.path.dirname(doc_path), relative))


async def get_definition_location(
    document: "AnalyzedDocument",
    position: types.Position,
    context: ResolutionContext,
    reader: ModuleReader = read_module,
) -> Optional[types.Location]:
    """
    Get the definition location for the function called at the given position.

    Args:
        document: The analyzed document.
        position: The cursor position.
        context: Settings and collection path for a remote lookup.
        reader: Reads a module file found through the server.

    Returns:
        Location of the definition, or None if not found.
    """
    signature = document.signature_at(position)
    if signature is None:
        return None

    symbol = document.symbol_table.lookup(signature.name, signature.arity)
    if symbol is not None and symbol.span is not None:
        return types.Location(
            uri=document.uri,
            range=utils.range_from_offsets(
                document.text, symbol.span.start, symbol.span.end
            ),
        )
    return await _get_definition_remote(document, signature, context, reader)


async def _get_definition_remote(
    document: "AnalyzedDocument",
    signature: CallSignature,
    context: ResolutionContext,
    reader: ModuleReader,
) -> Optional[types.Location]:
    scope = build_search_scope(document.import_table, signature.name)
    query = build_query(scope, context.base, signature=signature.key)
    items = await document.resolver.lookup(query, context.settings)
    if not items:
        if items is not None:
            logger.info("definition: no description found for %s", signature.key)
        return None

    document.symbol_table.merge(item.to_symbol() for item in items)
    remote_path = items[0].path
    if not remote_path:
        return None

    module_path = local_module_path(document.uri, remote_path, context.base)
    if module_path is None:
        return None

    logger.debug("Reading %s for %s", module_path, signature.key)
    try:
        content = await asyncio.to_thread(reader, module_path)
    except OSError as exc:
        logger.error("Failed to read %s: %s", module_path, exc)
        return None

    symbol = find_definition(content, signature.name, signature.arity)
    if symbol is None or symbol.span is None:
        return None
    return utils.location_from_lines(
        uris.from_fs_path(module_path) or module_path,
        symbol.span.start,
        symbol.span.end,
    )
