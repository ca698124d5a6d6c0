"""
Shared test fixtures and utilities for xqls tests.
"""

from typing import Any, Dict, List, Optional

import pytest
from lsprotocol.types import Position

from xqls.ast.parser import ParseResult, parse_result_from_json
from xqls.document import AnalyzedDocument
from xqls.exceptions import ParseError, RemoteError
from xqls.features.resolve import ResolutionContext, Resolver
from xqls.remote.client import RemoteService
from xqls.remote.schema import CompileResponse, LookupQuery, RemoteItem
from xqls.settings import ServerSettings
from xqls.utils import position_at


# =============================================================================
# Remote Service Fakes
# =============================================================================


class FakeRemoteService(RemoteService):
    """RemoteService answering from canned items instead of HTTP."""

    def __init__(
        self,
        items: Optional[List[Dict[str, Any]]] = None,
        error: Optional[Exception] = None,
        compile_response: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(session=object())  # type: ignore[arg-type]
        self.items = items or []
        self.error = error
        self.compile_response = compile_response or {"result": "pass"}
        self.queries: List[LookupQuery] = []
        self.compiled: List[str] = []

    def lookup(self, query: LookupQuery, settings: ServerSettings) -> List[RemoteItem]:
        self.queries.append(query)
        if self.error is not None:
            raise self.error
        return [RemoteItem.model_validate(item) for item in self.items]

    def compile(self, text: str, base: str, settings: ServerSettings) -> CompileResponse:
        self.compiled.append(base)
        if self.error is not None:
            raise self.error
        return CompileResponse.model_validate(self.compile_response)


class StatusRecorder:
    """Collects connectivity notifications."""

    def __init__(self):
        self.calls: List[bool] = []

    def __call__(self, connected: bool, settings: ServerSettings) -> None:
        self.calls.append(connected)


# =============================================================================
# Parser Fakes
# =============================================================================


class CallTreeParser:
    """
    Stand-in for xqlint producing a tree with a single function call.

    The call is located in the parsed text, e.g. ``local:add(1, 2)``, and
    turned into Module > FunctionCall > (EQName, ArgumentList > Argument*)
    with offset spans, going through the same JSON conversion as xqlint
    output does.
    """

    def __init__(self, call: str):
        self.call = call

    def parse(self, text: str) -> ParseResult:
        start = text.find(self.call)
        if start < 0:
            raise ParseError(f"{self.call} not found")
        end = start + len(self.call)
        name, _, rest = self.call.partition("(")
        args_start = start + len(name)
        args_text = rest[:-1]

        arguments = []
        if args_text.strip():
            cursor = args_start + 1
            for arg in args_text.split(","):
                arg_start = text.index(arg.strip(), cursor)
                arguments.append(
                    {
                        "name": "Argument",
                        "start": arg_start,
                        "end": arg_start + len(arg.strip()),
                        "children": [],
                    }
                )
                cursor = arg_start + len(arg.strip())

        ast = {
            "name": "Module",
            "start": 0,
            "end": len(text),
            "children": [
                {
                    "name": "FunctionCall",
                    "start": start,
                    "end": end,
                    "children": [
                        {"name": "EQName", "start": start, "end": args_start},
                        {
                            "name": "ArgumentList",
                            "start": args_start,
                            "end": end,
                            "children": arguments,
                        },
                    ],
                }
            ],
        }
        return parse_result_from_json({"ast": ast, "warnings": []}, text)


class FailingParser:
    def parse(self, text: str) -> ParseResult:
        raise ParseError("syntax error")


def position_of(text: str, needle: str, delta: int = 1) -> Position:
    """Position just inside the first occurrence of needle."""
    return position_at(text, text.index(needle) + delta)


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def settings():
    return ServerSettings(uri="http://localhost:8080/exist", path="/db/apps/demo")


@pytest.fixture
def context(settings):
    return ResolutionContext(settings=settings, rel_path="modules")


@pytest.fixture
def status():
    return StatusRecorder()


@pytest.fixture
def make_document(status):
    """Build an AnalyzedDocument wired to a fake remote service."""

    def _make(
        text: str,
        call: Optional[str] = None,
        remote: Optional[FakeRemoteService] = None,
        uri: str = "file:///workspace/modules/test.xql",
    ) -> AnalyzedDocument:
        resolver = Resolver(remote or FakeRemoteService(), status)
        parser = CallTreeParser(call) if call else None
        return AnalyzedDocument(uri, text, parser=parser, resolver=resolver)

    return _make


@pytest.fixture
def unreachable():
    return FakeRemoteService(error=RemoteError("connection refused"))


@pytest.fixture
def call_parser():
    """Factory for single-call syntax trees."""
    return CallTreeParser


@pytest.fixture
def fake_remote():
    """Factory for remote services answering with canned items."""
    return FakeRemoteService


@pytest.fixture
def locate():
    return position_of
