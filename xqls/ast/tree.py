"""
Position queries over a parsed XQuery syntax tree.

The tree is an immutable snapshot produced by the external parser for one
version of the document. Every query degrades to ``None`` rather than raising.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from xqls.ast.nodes import (
    ARGUMENT,
    ARGUMENT_LIST,
    EQNAME,
    FUNCTION_CALL,
    SyntaxNode,
)

logger = logging.getLogger("xqls")


@dataclass(frozen=True)
class CallSignature:
    """Name and argument count of a function call expression."""

    name: str
    arity: int

    @property
    def key(self) -> str:
        return f"{self.name}#{self.arity}"

    @property
    def prefix(self) -> Optional[str]:
        prefix, sep, _ = self.name.partition(":")
        return prefix if sep else None


class SyntaxTree:
    def __init__(self, root: SyntaxNode, text: str):
        self.root = root
        self.text = text

    def find_node_at(self, offset: int) -> Optional[SyntaxNode]:
        """Return the innermost node whose span contains offset."""
        if not self.root.contains(offset):
            return None
        node = self.root
        while True:
            for child in node.children:
                if child.contains(offset):
                    node = child
                    break
            else:
                return node

    def nearest_enclosing_call(self, node: SyntaxNode) -> Optional[SyntaxNode]:
        for ancestor in node.ancestors_or_self():
            if ancestor.kind == FUNCTION_CALL:
                return ancestor
        return None

    def call_signature(self, call: SyntaxNode) -> Optional[CallSignature]:
        """Read the callee name and argument count of a FunctionCall node."""
        callee = call.first_child(EQNAME)
        if callee is None:
            return None
        name = callee.value or self.text[callee.start : callee.end]
        name = name.strip()
        if not name:
            return None
        arity = 0
        arguments = call.first_child(ARGUMENT_LIST)
        if arguments is not None:
            arity = sum(1 for child in arguments.children if child.kind == ARGUMENT)
        return CallSignature(name, arity)

    def signature_at(self, offset: int) -> Optional[CallSignature]:
        """Signature of the function call enclosing offset, if any."""
        node = self.find_node_at(offset)
        if node is None:
            return None
        call = self.nearest_enclosing_call(node)
        if call is None:
            return None
        return self.call_signature(call)
