"""
xqls - XQuery Language Server for eXist-db.

This module provides the main entry point for the XQuery LSP server,
implementing hover, completion, go-to-definition and document symbols on
top of a local definition scanner and the eXist-db editor support app.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

from lsprotocol import types
from pygls.cli import start_server
from pygls.lsp.server import LanguageServer
from pygls.workspace import TextDocument

from xqls import utils
from xqls.ast.parser import XQLintParser
from xqls.document import AnalyzedDocument
from xqls.features.diagnostics import lint_document
from xqls.features.resolve import ResolutionContext, Resolver
from xqls.logger_setup import set_log_level, setup_logging
from xqls.remote.client import RemoteService
from xqls.settings import (
    ServerSettings,
    read_workspace_config,
    relative_collection_path,
    settings_from_client,
    with_default_path,
    workspace_name,
)

logger = logging.getLogger("xqls")

# Client notification carrying the reachability of the eXist-db server
STATUS_NOTIFICATION = "xqls/status"

CONFIGURATION_SECTION = "existdb"

# Debounce delay for re-analysis (in seconds) - short for responsive navigation
ANALYZE_DEBOUNCE_DELAY = 0.3

# Debounce delay for server-side compilation diagnostics (in seconds)
DIAGNOSTICS_DEBOUNCE_DELAY = 1.0


class XQueryLanguageServer(LanguageServer):
    """Language server implementation for XQuery on eXist-db."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.documents: Dict[str, AnalyzedDocument] = {}
        self.logger = setup_logging(self)
        self.logger.info("XQuery Language Server starting...")
        self.parser = XQLintParser()
        self.remote = RemoteService()
        self.resolver = Resolver(self.remote, self.report_status)
        self.connected: Optional[bool] = None
        self._settings: Dict[str, ServerSettings] = {}
        self._analyze_tasks: Dict[str, asyncio.Task] = {}
        self._diagnostics_tasks: Dict[str, asyncio.Task] = {}

    @property
    def workspace_uri(self) -> Optional[str]:
        folders = list(self.workspace.folders.values())
        if folders:
            return folders[0].uri
        return self.workspace.root_uri

    def report_status(self, connected: bool, settings: ServerSettings) -> None:
        """Tell the client whether the eXist-db server could be reached."""
        if connected != self.connected:
            if connected:
                self.logger.info("Connected to %s", settings.uri)
            else:
                self.logger.warning("Server %s is not reachable", settings.uri)
        self.connected = connected
        self.protocol.notify(
            STATUS_NOTIFICATION, {"connected": connected, "server": settings.uri}
        )

    def get_document(self, doc: TextDocument) -> AnalyzedDocument:
        """Get or create the analysis state of a document."""
        document = self.documents.get(doc.uri)
        if document is None:
            document = AnalyzedDocument(
                doc.uri, parser=self.parser, resolver=self.resolver
            )
            document.rescan(doc.source)
            self.documents[doc.uri] = document
        return document

    def close_document(self, uri: str) -> None:
        self.documents.pop(uri, None)
        self._settings.pop(uri, None)
        for tasks in (self._analyze_tasks, self._diagnostics_tasks):
            task = tasks.pop(uri, None)
            if task is not None:
                task.cancel()

    async def get_settings(self, uri: str) -> ServerSettings:
        """
        Resolve the connection settings for a document.

        The client's ``existdb`` configuration wins over the workspace's
        ``.existdb.json``; defaults are used if neither is available.
        """
        settings = self._settings.get(uri)
        if settings is not None:
            return settings

        name = workspace_name(self.workspace_uri)
        settings = await self._client_settings(uri, name)
        if settings is None:
            settings = read_workspace_config(self.workspace.root_path)
        if settings is None:
            settings = ServerSettings()
        settings = with_default_path(settings, name)
        self._settings[uri] = settings
        return settings

    async def _client_settings(
        self, uri: str, name: Optional[str]
    ) -> Optional[ServerSettings]:
        workspace_caps = getattr(self.client_capabilities, "workspace", None)
        if not getattr(workspace_caps, "configuration", False):
            return None
        try:
            config: List[Any] = await self.workspace_configuration_async(
                types.ConfigurationParams(
                    items=[
                        types.ConfigurationItem(
                            scope_uri=uri, section=CONFIGURATION_SECTION
                        )
                    ]
                )
            )
        except Exception as e:
            self.logger.debug("Unable to fetch client configuration: %s", e)
            return None
        return settings_from_client(config[0] if config else None, name)

    async def resolution_context(self, uri: str) -> ResolutionContext:
        settings = await self.get_settings(uri)
        rel_path = relative_collection_path(self.workspace_uri, uri)
        return ResolutionContext(settings=settings, rel_path=rel_path)

    def publish_diagnostics(
        self, uri: str, diagnostics: List[types.Diagnostic]
    ) -> None:
        """Publish diagnostics for a document."""
        self.text_document_publish_diagnostics(
            types.PublishDiagnosticsParams(uri=uri, diagnostics=diagnostics)
        )

    def update_document(self, doc: TextDocument) -> AnalyzedDocument:
        """
        Bring a document up to date after an edit.

        The tables are rebuilt right away; the full parse and the diagnostics
        are debounced.
        """
        document = self.get_document(doc)
        if document.text != doc.source:
            document.rescan(doc.source)
        self.schedule_analysis(doc)
        self.schedule_diagnostics(doc)
        return document

    def schedule_analysis(self, doc: TextDocument) -> None:
        """
        Schedule a full parse of a changed document with debouncing.

        The parse runs xqlint in a subprocess, so it is not repeated on every
        keystroke.
        """
        uri = doc.uri

        if uri in self._analyze_tasks:
            self._analyze_tasks[uri].cancel()

        async def run_analysis_after_delay():
            try:
                await asyncio.sleep(ANALYZE_DEBOUNCE_DELAY)
                document = self.get_document(doc)
                source = doc.source
                if await asyncio.to_thread(document.reparse, source):
                    self.logger.debug("Parsed document: %s", uri)
            except asyncio.CancelledError:
                # Superseded by a newer edit
                pass

        self._analyze_tasks[uri] = asyncio.create_task(run_analysis_after_delay())

    def schedule_diagnostics(self, doc: TextDocument) -> None:
        """Schedule parser and server-side diagnostics with debouncing."""
        uri = doc.uri

        if uri in self._diagnostics_tasks:
            self._diagnostics_tasks[uri].cancel()

        async def run_diagnostics_after_delay():
            try:
                await asyncio.sleep(DIAGNOSTICS_DEBOUNCE_DELAY)
                await self._run_diagnostics(doc)
            except asyncio.CancelledError:
                pass

        self._diagnostics_tasks[uri] = asyncio.create_task(
            run_diagnostics_after_delay()
        )

    async def _run_diagnostics(self, doc: TextDocument) -> None:
        document = self.documents.get(doc.uri)
        if document is None:
            return
        try:
            context = await self.resolution_context(doc.uri)
            diagnostics = await lint_document(document, context)
        except Exception as e:
            self.logger.error("Diagnostics failed for %s: %s", doc.uri, e)
            return
        self.publish_diagnostics(doc.uri, diagnostics)
        self.logger.debug("Published %d diagnostics for %s", len(diagnostics), doc.uri)


server = XQueryLanguageServer("xqls", "v0.1.0")


# -----------------------------------------------------------------------------
# Lifecycle Events
# -----------------------------------------------------------------------------


@server.feature(types.INITIALIZE)
def initialize(ls: XQueryLanguageServer, params: types.InitializeParams) -> None:
    """Pick up the node binary used to run xqlint and the log level."""
    options = params.initialization_options or {}
    if isinstance(options, dict) and options.get("nodePath"):
        ls.parser = XQLintParser(node_bin=options["nodePath"])
    if isinstance(options, dict) and options.get("logLevel"):
        set_log_level(options["logLevel"])
    ls.logger.debug("Using %s to run xqlint", ls.parser.node_bin)


@server.feature(types.WORKSPACE_DID_CHANGE_CONFIGURATION)
def did_change_configuration(
    ls: XQueryLanguageServer, params: types.DidChangeConfigurationParams
) -> None:
    """Drop cached settings and revalidate all open documents."""
    ls._settings.clear()
    for uri in ls.documents:
        ls.schedule_diagnostics(ls.workspace.get_text_document(uri))


@server.feature(types.TEXT_DOCUMENT_DID_OPEN)
async def did_open(
    ls: XQueryLanguageServer, params: types.DidOpenTextDocumentParams
) -> None:
    """Analyze a document when it is opened and schedule diagnostics."""
    ls.logger.debug("Document opened: %s", params.text_document.uri)
    doc = ls.workspace.get_text_document(params.text_document.uri)
    document = AnalyzedDocument(doc.uri, parser=ls.parser, resolver=ls.resolver)
    source = doc.source
    document.rescan(source)
    ls.documents[doc.uri] = document
    await asyncio.to_thread(document.reparse, source)
    ls.schedule_diagnostics(doc)


@server.feature(types.TEXT_DOCUMENT_DID_CHANGE)
def did_change(
    ls: XQueryLanguageServer, params: types.DidChangeTextDocumentParams
) -> None:
    """Re-analyze a document when it changes and schedule diagnostics."""
    ls.logger.debug("Document changed: %s", params.text_document.uri)
    doc = ls.workspace.get_text_document(params.text_document.uri)
    ls.update_document(doc)


@server.feature(types.TEXT_DOCUMENT_DID_CLOSE)
def did_close(
    ls: XQueryLanguageServer, params: types.DidCloseTextDocumentParams
) -> None:
    """Forget a closed document and clear its diagnostics."""
    ls.logger.debug("Document closed: %s", params.text_document.uri)
    ls.close_document(params.text_document.uri)
    ls.publish_diagnostics(params.text_document.uri, [])


# -----------------------------------------------------------------------------
# Symbol Features
# -----------------------------------------------------------------------------


@server.feature(types.TEXT_DOCUMENT_DOCUMENT_SYMBOL)
def document_symbol(
    ls: XQueryLanguageServer, params: types.DocumentSymbolParams
) -> List[types.DocumentSymbol]:
    """Return all the functions and variables declared in the document."""
    ls.logger.debug("Document symbol requested: %s", params.text_document.uri)
    doc = ls.workspace.get_text_document(params.text_document.uri)
    return ls.get_document(doc).get_document_symbols()


@server.feature(types.TEXT_DOCUMENT_HOVER)
async def hover(
    ls: XQueryLanguageServer, params: types.HoverParams
) -> Optional[types.Hover]:
    """Describe the function called at the cursor."""
    ls.logger.debug("Hover requested: %s", params.text_document.uri)
    doc = ls.workspace.get_text_document(params.text_document.uri)
    document = ls.get_document(doc)
    context = await ls.resolution_context(doc.uri)
    return await document.get_hover(params.position, context)


# -----------------------------------------------------------------------------
# Completion Features
# -----------------------------------------------------------------------------


@server.feature(
    types.TEXT_DOCUMENT_COMPLETION,
    types.CompletionOptions(trigger_characters=[":", "$"]),
)
async def completion(
    ls: XQueryLanguageServer, params: types.CompletionParams
) -> List[types.CompletionItem]:
    """Complete function and variable names, local and from imported modules."""
    ls.logger.debug("Completion requested: %s", params.text_document.uri)
    doc = ls.workspace.get_text_document(params.text_document.uri)
    document = ls.get_document(doc)
    prefix = utils.get_completion_prefix(doc, params.position)
    context = await ls.resolution_context(doc.uri)
    return await document.get_completions(prefix, context)


# -----------------------------------------------------------------------------
# Navigation Features
# -----------------------------------------------------------------------------


@server.feature(types.TEXT_DOCUMENT_DEFINITION)
async def goto_definition(
    ls: XQueryLanguageServer, params: types.DefinitionParams
) -> Optional[types.Location]:
    """Jump to the definition of the function called at the cursor."""
    ls.logger.debug("Definition requested: %s", params.text_document.uri)
    doc = ls.workspace.get_text_document(params.text_document.uri)
    document = ls.get_document(doc)
    context = await ls.resolution_context(doc.uri)
    return await document.goto_definition(params.position, context)


# -----------------------------------------------------------------------------
# Entry Point
# -----------------------------------------------------------------------------


def main() -> None:
    """Start the XQuery language server."""
    start_server(server)
