import importlib
from unittest.mock import Mock

from pygls.workspace import TextDocument

from xqls.document import AnalyzedDocument
from xqls.server import STATUS_NOTIFICATION, XQueryLanguageServer
from xqls.settings import ServerSettings

server_module = importlib.import_module("xqls.server")

SETTINGS = ServerSettings(uri="http://localhost:8080/exist")


def make_server(monkeypatch):
    ls = XQueryLanguageServer("xqls-test", "v0")
    monkeypatch.setattr(ls.protocol, "notify", Mock())
    return ls


def test_report_status_notifies_client(monkeypatch):
    ls = make_server(monkeypatch)

    ls.report_status(True, SETTINGS)

    ls.protocol.notify.assert_called_once_with(
        STATUS_NOTIFICATION,
        {"connected": True, "server": "http://localhost:8080/exist"},
    )
    assert ls.connected is True


def test_report_status_on_every_round_trip(monkeypatch):
    ls = make_server(monkeypatch)

    ls.report_status(True, SETTINGS)
    ls.report_status(True, SETTINGS)
    ls.report_status(False, SETTINGS)

    assert ls.protocol.notify.call_count == 3
    assert ls.connected is False


def test_resolver_reports_through_server(monkeypatch):
    ls = make_server(monkeypatch)
    ls.resolver.status(False, SETTINGS)
    assert ls.connected is False


def test_close_document_forgets_state(monkeypatch):
    ls = make_server(monkeypatch)
    uri = "file:///workspace/app.xql"
    ls.documents[uri] = AnalyzedDocument(uri, "1", resolver=ls.resolver)
    ls._settings[uri] = SETTINGS
    task = Mock()
    ls._analyze_tasks[uri] = task

    ls.close_document(uri)

    assert uri not in ls.documents
    assert uri not in ls._settings
    assert uri not in ls._analyze_tasks
    task.cancel.assert_called_once()


def test_module_server_instance():
    assert isinstance(server_module.server, XQueryLanguageServer)
    assert server_module.server.parser.node_bin == "node"


def test_update_document_rescans_immediately(monkeypatch):
    ls = make_server(monkeypatch)
    ls.parser = Mock()
    monkeypatch.setattr(ls, "schedule_analysis", Mock())
    monkeypatch.setattr(ls, "schedule_diagnostics", Mock())
    uri = "file:///workspace/app.xql"
    ls.update_document(TextDocument(uri, "declare function local:a() { 1 };"))

    document = ls.update_document(
        TextDocument(uri, "declare function local:b($x) { $x };")
    )

    assert ls.documents[uri] is document
    assert "local:b#1" in document.symbol_table
    assert "local:a#0" not in document.symbol_table
    ls.parser.parse.assert_not_called()
    assert ls.schedule_analysis.call_count == 2
    assert ls.schedule_diagnostics.call_count == 2
