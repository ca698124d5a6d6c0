"""
Document symbol extraction for the XQuery Language Server.

The outline only depends on the scanner, so it keeps working while the
document does not parse.
"""

from typing import TYPE_CHECKING, List

from lsprotocol import types
from lsprotocol.types import SymbolKind as LspSymbolKind

from xqls.features.symbol_table import SymbolKind
from xqls.utils import range_from_offsets

if TYPE_CHECKING:
    from xqls.document import AnalyzedDocument


def get_document_symbols(document: "AnalyzedDocument") -> List[types.DocumentSymbol]:
    """Return the functions and variables declared in a document."""
    symbols = []
    for symbol in document.symbol_table.local_symbols():
        assert symbol.span is not None
        kind = (
            LspSymbolKind.Function
            if symbol.kind is SymbolKind.FUNCTION
            else LspSymbolKind.Variable
        )
        symbol_range = range_from_offsets(
            document.text, symbol.span.start, symbol.span.end
        )
        symbols.append(
            types.DocumentSymbol(
                name=symbol.signature,
                kind=kind,
                range=symbol_range,
                selection_range=symbol_range,
                detail=symbol.documentation,
            )
        )
    return symbols
