"""
Response schema of the eXist-db editor support app.

Responses are validated here, at the boundary, and converted into the same
Symbol shape the local scanner produces.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from xqls.features.symbol_table import Symbol, SymbolKind


class RemoteArgument(BaseModel):
    name: str
    type: str = ""
    description: Optional[str] = None


class RemoteItem(BaseModel):
    """One function or variable description returned by the lookup service."""

    model_config = ConfigDict(populate_by_name=True)

    display_text: str = Field(alias="text")
    kind: str = Field(default="function", alias="type")
    snippet_template: str = Field(default="", alias="snippet")
    symbol_name: str = Field(alias="name")
    description: Optional[str] = None
    left_label: Optional[str] = Field(default=None, alias="leftLabel")
    arguments: List[RemoteArgument] = Field(default_factory=list)
    path: Optional[str] = None

    def to_symbol(self) -> Symbol:
        kind = SymbolKind.VARIABLE if self.kind == "variable" else SymbolKind.FUNCTION
        return Symbol(
            key=self.symbol_name,
            name=self.symbol_name,
            signature=self.display_text,
            kind=kind,
            snippet=self.snippet_template,
            arity=len(self.arguments),
            documentation=self.description or None,
        )


RemoteItemList = TypeAdapter(List[RemoteItem])


class CompileResponse(BaseModel):
    """Result of compiling a query on the server: ``pass`` or an error."""

    result: str
    error: Union[Dict[str, Any], str, None] = None

    @property
    def passed(self) -> bool:
        return self.result == "pass"


@dataclass
class LookupQuery:
    """
    Parameters of a lookup request.

    The import scope is sent as three parallel lists. Exactly one of
    ``signature`` (hover and definition) or ``prefix`` (completion) is set.
    """

    base: str
    prefixes: List[str] = field(default_factory=list)
    namespace_uris: List[str] = field(default_factory=list)
    sources: List[str] = field(default_factory=list)
    signature: Optional[str] = None
    prefix: Optional[str] = None

    def to_params(self) -> Dict[str, Any]:
        params: Dict[str, Any] = {
            "mprefix": self.prefixes,
            "uri": self.namespace_uris,
            "source": self.sources,
            "base": self.base,
        }
        if self.signature is not None:
            params["signature"] = self.signature
        if self.prefix:
            params["prefix"] = self.prefix
        return params
