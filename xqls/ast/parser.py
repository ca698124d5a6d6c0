import json
import logging
import subprocess
from dataclasses import dataclass, field
from textwrap import dedent
from typing import Any, Dict, List, Optional, Protocol

from xqls.ast.nodes import from_json_ast
from xqls.ast.tree import SyntaxTree
from xqls.exceptions import ParseError

logger = logging.getLogger("xqls")


@dataclass
class ParseWarning:
    """A warning reported by the parser, with 0-based line/column positions."""

    message: str
    start_line: int = 0
    start_col: int = 0
    end_line: int = 0
    end_col: int = 0


@dataclass
class ParseResult:
    tree: SyntaxTree
    warnings: List[ParseWarning] = field(default_factory=list)


class SyntaxParser(Protocol):
    def parse(self, text: str) -> ParseResult: ...


# The xqlint parse tree links nodes to their parent, so it is flattened into
# plain objects before serializing.
_XQLINT_SCRIPT = dedent(
    """
    const { XQLint } = require('xqlint');
    let source = '';
    process.stdin.setEncoding('utf8');
    process.stdin.on('data', chunk => { source += chunk; });
    process.stdin.on('end', () => {
        const linter = new XQLint(source, { fileName: 'document.xql' });
        const strip = node => ({
            name: node.name,
            value: node.value,
            pos: node.pos,
            children: (node.children || []).map(strip)
        });
        const ast = linter.getAST();
        process.stdout.write(JSON.stringify({
            ast: ast ? strip(ast) : null,
            warnings: linter.getWarnings().map(w => ({ message: w.message, pos: w.pos }))
        }));
    });
    """
)


class XQLintParser:
    """
    Full XQuery parser backed by the ``xqlint`` npm package.

    The parse runs in a ``node`` subprocess which prints the tree as JSON.
    """

    def __init__(self, node_bin: str = "node", cwd: Optional[str] = None):
        self.node_bin = node_bin
        self.cwd = cwd

    def run_script(self, text: str) -> subprocess.CompletedProcess:
        return subprocess.run(
            [self.node_bin, "-e", _XQLINT_SCRIPT],
            input=text,
            capture_output=True,
            text=True,
            cwd=self.cwd,
        )

    def parse(self, text: str) -> ParseResult:
        try:
            result = self.run_script(text)
        except OSError as exc:
            raise ParseError(f"Unable to run {self.node_bin}: {exc}") from exc

        if result.returncode != 0:
            error_message = result.stderr.strip() or "Unknown error"
            logger.error("Failed to get AST from xqlint: %s", error_message)
            raise ParseError(error_message)

        try:
            output = json.loads(result.stdout)
        except json.JSONDecodeError as exc:
            logger.error("Failed to decode xqlint output: %s", exc)
            raise ParseError(str(exc)) from exc

        return parse_result_from_json(output, text)


def parse_result_from_json(output: Dict[str, Any], text: str) -> ParseResult:
    """Build a ParseResult from the ``{ast, warnings}`` JSON of the parser."""
    if not isinstance(output, dict) or not isinstance(output.get("ast"), dict):
        raise ParseError("Parser returned no syntax tree")
    tree = SyntaxTree(from_json_ast(output["ast"], text), text)
    warnings = []
    for item in output.get("warnings") or []:
        pos = item.get("pos") or {}
        warnings.append(
            ParseWarning(
                message=item.get("message", ""),
                start_line=pos.get("sl", 0),
                start_col=pos.get("sc", 0),
                end_line=pos.get("el", 0),
                end_col=pos.get("ec", 0),
            )
        )
    return ParseResult(tree, warnings)
