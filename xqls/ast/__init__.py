from xqls.ast.nodes import SyntaxNode, from_json_ast
from xqls.ast.parser import (
    ParseResult,
    ParseWarning,
    SyntaxParser,
    XQLintParser,
    parse_result_from_json,
)
from xqls.ast.tree import CallSignature, SyntaxTree

__all__ = [
    "CallSignature",
    "ParseResult",
    "ParseWarning",
    "SyntaxNode",
    "SyntaxParser",
    "SyntaxTree",
    "XQLintParser",
    "from_json_ast",
    "parse_result_from_json",
]
