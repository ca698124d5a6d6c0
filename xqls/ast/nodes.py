from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional

# Node kinds as produced by xqlint
FUNCTION_CALL = "FunctionCall"
EQNAME = "EQName"
ARGUMENT_LIST = "ArgumentList"
ARGUMENT = "Argument"


@dataclass(eq=False)
class SyntaxNode:
    kind: str
    start: int = 0
    end: int = 0
    value: Optional[str] = None
    children: List["SyntaxNode"] = field(default_factory=list)
    parent: Optional["SyntaxNode"] = field(default=None, repr=False)

    def contains(self, offset: int) -> bool:
        return self.start <= offset <= self.end

    def ancestors_or_self(self) -> Iterator["SyntaxNode"]:
        node: Optional[SyntaxNode] = self
        while node is not None:
            yield node
            node = node.parent

    def first_child(self, kind: str) -> Optional["SyntaxNode"]:
        for child in self.children:
            if child.kind == kind:
                return child
        return None


def _line_starts(text: str) -> List[int]:
    starts = [0]
    for i, ch in enumerate(text):
        if ch == "\n":
            starts.append(i + 1)
    return starts


def _to_offset(line_starts: List[int], line: int, column: int) -> int:
    if line < 0:
        return 0
    if line >= len(line_starts):
        line = len(line_starts) - 1
    return line_starts[line] + max(column, 0)


def from_json_ast(ast_dict: Dict[str, Any], text: str) -> SyntaxNode:
    """
    Convert a parser JSON tree into SyntaxNode objects.

    Nodes carry either ``start``/``end`` character offsets, or an xqlint
    ``pos`` object with 0-based ``sl``/``sc``/``el``/``ec`` line and column
    values, which are converted using the document text.
    """
    line_starts = _line_starts(text)

    def _convert(item: Dict[str, Any], parent: Optional[SyntaxNode]) -> SyntaxNode:
        if "start" in item:
            start, end = int(item["start"]), int(item.get("end", item["start"]))
        elif item.get("pos"):
            pos = item["pos"]
            start = _to_offset(line_starts, pos["sl"], pos["sc"])
            end = _to_offset(line_starts, pos["el"], pos["ec"])
        else:
            start = end = 0
        node = SyntaxNode(
            kind=item.get("name") or item.get("kind") or "",
            start=start,
            end=end,
            value=item.get("value"),
            parent=parent,
        )
        node.children = [
            _convert(child, node)
            for child in item.get("children") or []
            if isinstance(child, dict)
        ]
        return node

    return _convert(ast_dict, None)
