# tests/integrations/test_lsp_bridge.py
"""Unit tests for the language-server collaborator.
====================================================

Covers `quire.integrations.LspBridge`: diagnostic parsing from
``publishDiagnostics`` payloads, thread-safe queueing and main-thread
merging, and forwarding of document notifications to the client.
"""

import threading
from unittest.mock import MagicMock

from quire.core.Tokenizer import Language
from quire.integrations.LspBridge import (
    LANGUAGE_IDS,
    Diagnostic,
    LspBridge,
    Severity,
    parse_diagnostics,
    uri_for_path,
)


def test_diagnostic_from_lsp_item():
    item = {
        "range": {"start": {"line": 4, "character": 7}, "end": {"line": 4, "character": 9}},
        "severity": 3,
        "message": "consider this",
    }
    assert Diagnostic.from_lsp(item) == Diagnostic(4, 7, Severity.INFORMATION, "consider this")


def test_diagnostic_defaults():
    diag = Diagnostic.from_lsp({"range": {"start": {"line": 0}}, "severity": 99})
    assert diag.column == 0
    assert diag.severity is Severity.ERROR
    assert diag.message == "No message provided."


def test_parse_skips_malformed_items():
    good = Diagnostic(1, 0, Severity.HINT, "ok")
    items = [
        good,
        {"range": {"start": {"line": -1}}},
        {"range": "broken"},
        "not a dict",
        {"range": {"start": {"line": 2}}, "message": "fine"},
    ]
    parsed = parse_diagnostics(items)
    assert [d.message for d in parsed] == ["ok", "fine"]


def test_uri_for_path_is_file_uri(tmp_path):
    uri = uri_for_path(tmp_path / "a b.rs")
    assert uri.startswith("file://")
    assert uri.endswith("/a%20b.rs")


def test_every_language_has_an_id():
    assert {lang.value for lang in Language} <= set(LANGUAGE_IDS)


def test_notifications_forwarded(open_session, client):
    session = open_session("x", path="/proj/page.html")
    session.insert_text((0, 1), "y")
    session.close()

    assert [c[0] for c in client.calls] == ["open", "change", "close"]
    assert client.calls[0][3] == "html"


def test_client_errors_are_logged_not_raised(open_session, caplog):
    session = open_session("x")
    failing = MagicMock()
    failing.did_change.side_effect = RuntimeError("server gone")
    session.lsp = LspBridge(failing)

    assert session.insert_text((0, 0), "a").ok
    assert "didChange failed" in caplog.text


def test_bridge_without_client_is_silent(open_session):
    session = open_session("x")
    session.lsp = LspBridge()
    assert session.insert_text((0, 0), "a").ok
    assert session.close().ok


def test_diagnostics_pushed_from_worker_thread(open_session, lsp):
    session = open_session("a\nb\n")
    item = {"range": {"start": {"line": 1, "character": 0}}, "message": "from thread"}

    worker = threading.Thread(target=lsp.diagnostics_updated, args=(session.uri, [item]))
    worker.start()
    worker.join()

    # Nothing is merged until the main thread drains the queue.
    assert session.diagnostics == []
    assert lsp.process_queue([session]) is True
    assert session.diagnostics[0].message == "from thread"


def test_diagnostics_for_unknown_document_are_dropped(open_session, lsp):
    session = open_session("a")
    lsp.diagnostics_updated("file:///elsewhere.rs", [{"range": {"start": {"line": 0}}}])
    assert lsp.process_queue([session]) is False
    assert session.diagnostics == []


def test_full_queue_drops_updates(lsp):
    for _ in range(lsp.diagnostics_q.maxsize + 5):
        lsp.diagnostics_updated("file:///x", [])
    assert lsp.diagnostics_q.qsize() == lsp.diagnostics_q.maxsize
