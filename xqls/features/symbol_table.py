"""
Symbol and import tables for the XQuery Language Server.

Each analyzed document owns one SymbolTable and one ImportTable. Both are
rebuilt from scratch by the scanner on every content change.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, Iterator, List, Optional

# Module locations with this prefix are Java bindings, not XQuery modules
HOST_BINDING_PREFIX = "java:"


class SymbolKind(str, Enum):
    FUNCTION = "function"
    VARIABLE = "variable"


@dataclass(frozen=True)
class Span:
    """Start and end character offsets (or lines, for remote definitions)."""

    start: int
    end: int


@dataclass
class Symbol:
    """
    A function or variable known to a document.

    Attributes:
        key: Table key, ``name#arity`` for functions, ``$name`` for variables.
        name: The (possibly prefixed) name without arity.
        signature: Display text, e.g. ``local:add($a, $b)``.
        kind: Function or variable.
        snippet: Insert text with numbered placeholders.
        arity: Number of parameters (0 for variables).
        documentation: Text of the preceding ``(:~ ... :)`` comment.
        span: Location of the definition in the owning document.
    """

    key: str
    name: str
    signature: str
    kind: SymbolKind
    snippet: str
    arity: int = 0
    documentation: Optional[str] = None
    span: Optional[Span] = None


@dataclass(frozen=True)
class Import:
    """A module import declared with ``import module namespace``."""

    prefix: str
    namespace_uri: str
    source_path: str

    @property
    def is_host_binding(self) -> bool:
        return self.source_path.startswith(HOST_BINDING_PREFIX)


def function_key(name: str, arity: int) -> str:
    return f"{name}#{arity}"


class SymbolTable:
    """Symbols of a document keyed by qualified key. Last write wins."""

    def __init__(self, symbols: Iterable[Symbol] = ()):
        self._symbols: Dict[str, Symbol] = {}
        for symbol in symbols:
            self.add(symbol)

    def add(self, symbol: Symbol) -> None:
        self._symbols[symbol.key] = symbol

    def get(self, key: str) -> Optional[Symbol]:
        return self._symbols.get(key)

    def lookup(self, name: str, arity: int) -> Optional[Symbol]:
        """Find a function by name and arity."""
        return self._symbols.get(function_key(name, arity))

    def merge(self, symbols: Iterable[Symbol]) -> None:
        """
        Merge remotely resolved symbols, keyed by their symbol name.

        Remote items carry no arity grouping, so they are stored under the
        name the service reported. Merging the same items twice is a no-op.
        """
        for symbol in symbols:
            self._symbols[symbol.name] = symbol

    def local_symbols(self) -> List[Symbol]:
        """Symbols defined in the document itself, in definition order."""
        return [s for s in self._symbols.values() if s.span is not None]

    def __contains__(self, key: object) -> bool:
        return key in self._symbols

    def __iter__(self) -> Iterator[Symbol]:
        return iter(list(self._symbols.values()))

    def __len__(self) -> int:
        return len(self._symbols)


class ImportTable:
    """Imports of a document keyed by prefix. Last declaration wins."""

    def __init__(self, imports: Iterable[Import] = ()):
        self._imports: Dict[str, Import] = {}
        for imp in imports:
            self.add(imp)

    def add(self, imp: Import) -> None:
        self._imports[imp.prefix] = imp

    def get(self, prefix: str) -> Optional[Import]:
        return self._imports.get(prefix)

    def __contains__(self, prefix: object) -> bool:
        return prefix in self._imports

    def __iter__(self) -> Iterator[Import]:
        return iter(list(self._imports.values()))

    def __len__(self) -> int:
        return len(self._imports)
