# quire/integrations/LspBridge.py
"""LspBridge.py
========================
Language-server collaborator for document sessions.

The bridge sits between the editing core and a language-server client that
owns the wire protocol. In one direction it forwards document lifecycle
notifications (``didOpen``/``didChange``/``didClose``) with the session's
``file://`` URI and version counter. In the other it accepts diagnostics
pushed from the client's own thread and queues them; the main loop calls
`process_queue()` to merge them into the matching sessions, so sessions are
only ever touched from one thread.

The client is any object implementing the `LanguageClient` protocol. When no
client is attached the bridge still tracks diagnostics but sends nothing.
"""

from __future__ import annotations

import logging
import queue
from dataclasses import dataclass
from enum import IntEnum
from pathlib import Path
from typing import TYPE_CHECKING, Any, Iterable, Optional, Protocol, Union

from quire.utils.logging_config import LSP_LOGGER


if TYPE_CHECKING:
    from quire.core.DocumentSession import DocumentSession


logger = logging.getLogger(__name__)

# Keyed by `Language.value`.
LANGUAGE_IDS: dict[str, str] = {
    "plain": "plaintext",
    "rust": "rust",
    "python": "python",
    "jsts": "javascript",
    "go": "go",
    "php": "php",
    "css": "css",
    "html_xml": "html",
    "shell": "shellscript",
    "json": "json",
    "markdown": "markdown",
}


class Severity(IntEnum):
    """LSP ``DiagnosticSeverity`` values."""

    ERROR = 1
    WARNING = 2
    INFORMATION = 3
    HINT = 4


@dataclass(frozen=True)
class Diagnostic:
    """One annotation attached to a document position (0-based line/column)."""

    line: int
    column: int
    severity: Severity
    message: str

    @classmethod
    def from_lsp(cls, item: dict[str, Any]) -> "Diagnostic":
        """Builds a diagnostic from a ``publishDiagnostics`` item.

        Raises:
            ValueError: The item has no usable start position.
        """
        start = item.get("range", {}).get("start", {})
        line = start.get("line")
        if not isinstance(line, int) or line < 0:
            raise ValueError(f"diagnostic without a valid start line: {item!r}")
        column = start.get("character", 0)
        try:
            severity = Severity(item.get("severity", Severity.ERROR))
        except ValueError:
            severity = Severity.ERROR
        return cls(
            line=line,
            column=column if isinstance(column, int) else 0,
            severity=severity,
            message=str(item.get("message", "No message provided.")),
        )


def parse_diagnostics(items: Iterable[Union[Diagnostic, dict[str, Any]]]) -> list[Diagnostic]:
    """Normalizes a pushed diagnostics list, skipping malformed entries."""
    parsed: list[Diagnostic] = []
    for item in items:
        if isinstance(item, Diagnostic):
            parsed.append(item)
            continue
        try:
            parsed.append(Diagnostic.from_lsp(item))
        except (AttributeError, TypeError, ValueError) as e:
            logger.warning(f"LSP: skipping malformed diagnostic item: {e}")
    return parsed


def uri_for_path(path: Union[str, Path]) -> str:
    """Returns the ``file://`` URI that identifies a document."""
    return Path(path).expanduser().resolve().as_uri()


class LanguageClient(Protocol):
    """Notifications the editing core sends to a language server."""

    def did_open(self, uri: str, version: int, language_id: str, text: str) -> None: ...

    def did_change(self, uri: str, version: int, text: str) -> None: ...

    def did_close(self, uri: str) -> None: ...


## ================== LspBridge Class ====================
class LspBridge:
    """Forwards session events to a `LanguageClient` and queues diagnostics."""

    def __init__(self, client: Optional[LanguageClient] = None) -> None:
        self.client = client
        self.diagnostics_q: queue.Queue[tuple[str, list[Any]]] = queue.Queue(maxsize=256)

    # --- Outgoing notifications (main thread) ---
    def notify_open(self, session: "DocumentSession") -> None:
        if self.client is None:
            return
        LSP_LOGGER.debug("-> didOpen %s v%d", session.uri, session.version)
        try:
            self.client.did_open(
                session.uri,
                session.version,
                LANGUAGE_IDS.get(session.language.value, "plaintext"),
                session.text,
            )
        except Exception as e:
            logger.error("LSP: didOpen failed for %s: %s", session.uri, e, exc_info=True)

    def notify_change(self, session: "DocumentSession") -> None:
        if self.client is None:
            return
        LSP_LOGGER.debug("-> didChange %s v%d", session.uri, session.version)
        try:
            self.client.did_change(session.uri, session.version, session.text)
        except Exception as e:
            logger.error("LSP: didChange failed for %s: %s", session.uri, e, exc_info=True)

    def notify_close(self, session: "DocumentSession") -> None:
        if self.client is None:
            return
        LSP_LOGGER.debug("-> didClose %s", session.uri)
        try:
            self.client.did_close(session.uri)
        except Exception as e:
            logger.error("LSP: didClose failed for %s: %s", session.uri, e, exc_info=True)

    # --- Incoming diagnostics (any thread) ---
    def diagnostics_updated(self, uri: str, items: list[Any]) -> None:
        """Queues a diagnostics push. Safe to call from the client's thread."""
        LSP_LOGGER.debug("<- publishDiagnostics %s (%d items)", uri, len(items))
        try:
            self.diagnostics_q.put_nowait((uri, list(items)))
        except queue.Full:
            logger.warning("LSP: diagnostics queue is full, dropping update for %s", uri)

    def process_queue(self, sessions: Iterable["DocumentSession"]) -> bool:
        """Merges queued diagnostics into `sessions`.

        Returns:
            bool: True if at least one session received new diagnostics.
        """
        by_uri = {session.uri: session for session in sessions}
        changed = False
        while True:
            try:
                uri, items = self.diagnostics_q.get_nowait()
            except queue.Empty:
                break
            session = by_uri.get(uri)
            if session is None:
                logger.debug("LSP: diagnostics for unknown document %s ignored", uri)
                continue
            session.set_diagnostics(items)
            changed = True
        return changed
