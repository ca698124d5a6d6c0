"""
Analysis state of an open XQuery document.

An AnalyzedDocument is created when a document is opened, re-analyzed on
every change and dropped when the document is closed. It owns the document's
symbol and import tables and the last syntax tree; documents never share
tables with each other.
"""

import logging
import threading
from typing import List, Optional

from lsprotocol import types

from xqls import utils
from xqls.ast.parser import ParseWarning, SyntaxParser
from xqls.ast.tree import CallSignature, SyntaxTree
from xqls.features import completion, definition, hover, symbols
from xqls.features.resolve import ResolutionContext, Resolver
from xqls.features.symbol_table import ImportTable, SymbolTable
from xqls.parser.scan import scan
from xqls.remote.client import RemoteService

logger = logging.getLogger("xqls")


class AnalyzedDocument:
    """
    Holds analysis information about an open document.

    Attributes:
        uri: The document URI.
        text: The text the tables were derived from.
        symbol_table: Functions and variables, keyed by ``name#arity``.
        import_table: Module imports, keyed by prefix.
        syntax_tree: Full parse of the text, or None if parsing failed.
        parse_warnings: Warnings reported by the parser.
        diagnostics: Diagnostics last computed for the document.
    """

    def __init__(
        self,
        uri: str,
        text: Optional[str] = None,
        parser: Optional[SyntaxParser] = None,
        resolver: Optional[Resolver] = None,
    ):
        self.uri = uri
        self.parser = parser
        self.resolver = resolver or Resolver(RemoteService())
        self.text = ""
        self.symbol_table = SymbolTable()
        self.import_table = ImportTable()
        self.syntax_tree: Optional[SyntaxTree] = None
        self.parse_warnings: List[ParseWarning] = []
        self.diagnostics: List[types.Diagnostic] = []
        self._lock = threading.Lock()
        if text is not None:
            self.analyze(text)

    def analyze(self, text: str) -> None:
        """Re-derive tables and syntax tree from a new version of the text."""
        self.rescan(text)
        self.reparse(text)

    def rescan(self, text: str) -> None:
        """
        Rebuild the tables from a new version of the text.

        The syntax tree of the previous version is dropped, so position
        queries answer None until ``reparse`` has run on the same text.
        """
        symbols, imports = scan(text)
        with self._lock:
            self.text = text
            self.symbol_table = symbols
            self.import_table = imports
            self.syntax_tree = None
            self.parse_warnings = []

    def reparse(self, text: str) -> bool:
        """
        Run the full parser on a version of the text.

        The result is only kept if ``text`` is still the current text of the
        document; a parse that finishes after a newer edit is discarded.

        Returns:
            True if the result was stored.
        """
        if self.parser is None:
            return False
        tree: Optional[SyntaxTree] = None
        warnings: List[ParseWarning] = []
        try:
            result = self.parser.parse(text)
        except Exception as e:
            # Position queries answer None until the text parses again
            logger.warning("Parse failed for %s: %s", self.uri, e)
        else:
            tree, warnings = result.tree, result.warnings

        with self._lock:
            if text != self.text:
                logger.debug("Discarding stale parse of %s", self.uri)
                return False
            self.syntax_tree = tree
            self.parse_warnings = warnings
        return True

    def signature_at(self, position: types.Position) -> Optional[CallSignature]:
        """Name and arity of the function call enclosing a position."""
        tree = self.syntax_tree
        if tree is None:
            return None
        offset = utils.offset_at(tree.text, position)
        try:
            return tree.signature_at(offset)
        except Exception as e:
            logger.debug("Position lookup failed in %s: %s", self.uri, e)
            return None

    async def get_hover(
        self, position: types.Position, context: ResolutionContext
    ) -> Optional[types.Hover]:
        return await hover.get_hover(self, position, context)

    async def get_completions(
        self, prefix: Optional[str], context: ResolutionContext
    ) -> List[types.CompletionItem]:
        return await completion.get_completions(self, prefix, context)

    async def goto_definition(
        self,
        position: types.Position,
        context: ResolutionContext,
        reader: definition.ModuleReader = definition.read_module,
    ) -> Optional[types.Location]:
        return await definition.get_definition_location(
            self, position, context, reader
        )

    def get_document_symbols(self) -> List[types.DocumentSymbol]:
        return symbols.get_document_symbols(self)
