# tests/conftest.py
"""Pytest configuration with shared fixtures for the quire editing-core tests.

Fixtures here wire a `DocumentSession` to in-memory collaborators from
`tests.stubs`, so most lifecycle tests run without touching the filesystem.
"""

from __future__ import annotations

from typing import Callable, Optional

import pytest

from quire.core.DocumentSession import DocumentSession
from quire.core.Tokenizer import Palette
from quire.integrations.LspBridge import LspBridge
from tests.stubs import MemoryDisk, MemoryRecovery, RecordingLanguageClient


BRACKET_COLORS = ("b0", "b1", "b2")


@pytest.fixture
def palette() -> Palette:
    """Palette whose styles are the role names, which keeps assertions readable."""
    return Palette(
        default="default",
        keyword="keyword",
        string="string",
        number="number",
        comment="comment",
        heading="heading",
        tag="tag",
        attribute="attribute",
    )


@pytest.fixture
def bracket_colors() -> tuple[str, str, str]:
    return BRACKET_COLORS


@pytest.fixture
def disk() -> MemoryDisk:
    return MemoryDisk()


@pytest.fixture
def recovery() -> MemoryRecovery:
    return MemoryRecovery()


@pytest.fixture
def client() -> RecordingLanguageClient:
    return RecordingLanguageClient()


@pytest.fixture
def lsp(client: RecordingLanguageClient) -> LspBridge:
    return LspBridge(client)


@pytest.fixture
def open_session(
    disk: MemoryDisk, recovery: MemoryRecovery, lsp: LspBridge
) -> Callable[..., DocumentSession]:
    """Factory: puts `text` on the memory disk and opens a session on it.

    Returns:
        Callable[..., DocumentSession]: ``open_session(text, path=..., preview=...)``.
    """

    def _open(
        text: str = "",
        path: str = "/proj/main.rs",
        preview: bool = False,
        artifact: Optional[str] = None,
    ) -> DocumentSession:
        disk.put(path, text)
        if artifact is not None:
            recovery.write(path, artifact)
        return DocumentSession.open(path, disk, recovery, lsp, preview=preview)

    return _open
