# tests/integrations/test_recovery_store.py
"""Unit tests for the recovery-artifact collaborator.
======================================================

Covers `quire.integrations.RecoveryStore`: artifact naming, write/find/delete,
tolerance of malformed artifacts, and the recovery flow of a real
`DocumentSession` using the store.
"""

import json

import pytest

from quire.core.DocumentSession import DocumentSession, LifecycleState, RecoveryChoice
from quire.exceptions import MalformedRecovery
from quire.integrations.DiskBridge import DiskBridge
from quire.integrations.RecoveryStore import ARTIFACT_SUFFIX, RecoveryStore


@pytest.fixture
def store(tmp_path) -> RecoveryStore:
    return RecoveryStore(tmp_path / "recovery")


def test_write_find_delete(tmp_path, store):
    doc = tmp_path / "a.rs"

    assert store.find(doc) is None
    store.write(doc, "draft\n")
    assert store.find(doc) == "draft\n"

    payload = json.loads(store.artifact_path(doc).read_text(encoding="utf-8"))
    assert payload["path"] == str(doc.resolve())
    assert "saved_at" in payload

    store.delete(doc)
    assert store.find(doc) is None
    # Deleting again is not an error.
    store.delete(doc)


def test_artifact_names_are_per_path(tmp_path, store):
    first = store.artifact_path(tmp_path / "a.rs")
    second = store.artifact_path(tmp_path / "b.rs")

    assert first != second
    assert first.name.endswith(ARTIFACT_SUFFIX)
    assert first == store.artifact_path(str(tmp_path / "a.rs"))


@pytest.mark.parametrize(
    "raw",
    ["{not json", json.dumps(["list"]), json.dumps({"path": "/x"}), json.dumps({"text": 3})],
)
def test_malformed_artifact_counts_as_absent(tmp_path, store, raw):
    doc = tmp_path / "a.rs"
    artifact = store.artifact_path(doc)
    artifact.parent.mkdir(parents=True)
    artifact.write_text(raw, encoding="utf-8")

    with pytest.raises(MalformedRecovery):
        store.load(doc)
    assert store.find(doc) is None


def test_session_restores_from_store(tmp_path, store):
    doc = tmp_path / "a.rs"
    doc.write_text("fn a() {}\n", encoding="utf-8")
    store.write(doc, "fn a() { b(); }\n")

    session = DocumentSession.open(doc, DiskBridge(), store)
    assert session.state is LifecycleState.RECOVERY_PENDING

    session.resolve_recovery(RecoveryChoice.RESTORE)
    assert session.text == "fn a() { b(); }\n"
    assert session.save().ok

    assert store.find(doc) is None
    assert doc.read_text(encoding="utf-8") == "fn a() { b(); }\n"


def test_session_discard_removes_artifact_file(tmp_path, store):
    doc = tmp_path / "a.rs"
    doc.write_text("x\n", encoding="utf-8")
    store.write(doc, "y\n")

    session = DocumentSession.open(doc, DiskBridge(), store)
    session.resolve_recovery(RecoveryChoice.DISCARD)

    assert not store.artifact_path(doc).exists()
    assert session.state is LifecycleState.CLEAN
