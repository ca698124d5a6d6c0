"""
Two-tier symbol resolution for the XQuery Language Server.

Hover, completion and definition first consult the document's own symbol
table and only fall back to the remote eXist-db lookup service on a miss.
This module holds the pieces shared by those features: building the import
scope of a request and performing the remote round trip with status
reporting.
"""

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

from xqls.exceptions import RemoteError
from xqls.features.symbol_table import Import, ImportTable
from xqls.remote.client import RemoteService
from xqls.remote.schema import LookupQuery, RemoteItem
from xqls.settings import ServerSettings, base_collection

logger = logging.getLogger("xqls")

# Called after every remote round trip with True (reachable) or False
StatusCallback = Callable[[bool, ServerSettings], None]


def _no_status(connected: bool, settings: ServerSettings) -> None:
    pass


@dataclass(frozen=True)
class ResolutionContext:
    """
    Per-request configuration of a remote resolution.

    Attributes:
        settings: Connection settings of the server to query.
        rel_path: Directory of the document relative to the workspace root.
    """

    settings: ServerSettings
    rel_path: str = ""

    @property
    def base(self) -> str:
        return base_collection(self.settings, self.rel_path)


def build_search_scope(
    imports: ImportTable,
    name: Optional[str] = None,
    include_host_bindings: bool = False,
) -> List[Import]:
    """
    Select the imports relevant to a lookup.

    A prefixed name (``app:foo``) restricts the scope to the import declaring
    that prefix, if the document has one; otherwise every import is used.
    Java bindings are left out unless explicitly requested.
    """
    scope: List[Import] = []
    if name is not None:
        prefix, sep, _ = name.partition(":")
        imp = imports.get(prefix) if sep else None
        if imp is not None:
            scope = [imp]
    if not scope:
        scope = list(imports)
    return [imp for imp in scope if include_host_bindings or not imp.is_host_binding]


def build_query(
    scope: List[Import],
    base: str,
    signature: Optional[str] = None,
    prefix: Optional[str] = None,
) -> LookupQuery:
    return LookupQuery(
        base=base,
        prefixes=[imp.prefix for imp in scope],
        namespace_uris=[imp.namespace_uri for imp in scope],
        sources=[imp.source_path for imp in scope],
        signature=signature,
        prefix=prefix,
    )


class Resolver:
    """Performs remote lookups and reports the server's reachability."""

    def __init__(self, remote: RemoteService, status: StatusCallback = _no_status):
        self.remote = remote
        self.status = status

    async def lookup(
        self, query: LookupQuery, settings: ServerSettings
    ) -> Optional[List[RemoteItem]]:
        """
        Run a lookup against the server.

        Returns:
            The items found (possibly empty), or None if the server could not
            be reached or answered with an error.
        """
        try:
            items = await self.remote.lookup_async(query, settings)
        except RemoteError as exc:
            logger.warning("Remote lookup failed: %s", exc)
            self.status(False, settings)
            return None
        self.status(True, settings)
        return items
