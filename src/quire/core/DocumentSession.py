# quire/core/DocumentSession.py
"""DocumentSession Module for the quire editing core
===================================================
One `DocumentSession` exists per open file. It owns the editable buffer, the
last content known to be on disk, the derived presentation state (bracket
depths, fold ranges, visible rows) and the lifecycle state machine that keeps
all of them consistent while the user edits, saves, and the file changes
underneath.

Lifecycle
---------
The lifecycle is a tagged variant::

    Clean | Dirty | ConflictPending(disk_text) | RecoveryPending(recovery_text)

Clean and Dirty are never stored: they are derived from ``buffer`` versus
``disk_snapshot`` after every operation, so ``dirty == (text != disk_snapshot)``
always holds. The two pending states are stored because they carry staged
text that waits for an explicit user decision. While one of them is open,
edits and saves are refused.

- Opening loads the file; if the recovery collaborator holds an artifact whose
  text differs from the disk content, the session starts in RecoveryPending.
- Disk changes are detected by `check_disk()`, which `save()` runs first and
  the UI runs on focus regain. A changed file on a Clean session is reloaded
  silently; on a Dirty session it stages ConflictPending.
- `resolve_conflict()` and `resolve_recovery()` leave the pending states.

Every public operation returns an `Outcome`; failures leave the in-memory state
as it was. Only `DocumentSession.open()` raises, because there is no session
to return when the file cannot be loaded.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any, ClassVar, Optional, Sequence, Union

from quire.exceptions import InvalidEditError, IoFailure, NotFoundError
from quire.core.FoldEngine import FoldEngine, FoldRange
from quire.core.History import History, Position, end_of_insert
from quire.core.Tokenizer import Language, Palette, Segment, highlight_line, language_for_path
from quire.integrations.DiskBridge import DiskStamp, decode_content, encode_content
from quire.integrations.LspBridge import Diagnostic, parse_diagnostics, uri_for_path
from quire.utils.utils import default_theme


if TYPE_CHECKING:
    from quire.integrations.DiskBridge import DiskBridge
    from quire.integrations.LspBridge import LspBridge
    from quire.integrations.RecoveryStore import RecoveryStore


logger = logging.getLogger(__name__)


## ==================== Lifecycle variant ====================
class LifecycleState(Enum):
    CLEAN = "clean"
    DIRTY = "dirty"
    CONFLICT_PENDING = "conflict_pending"
    RECOVERY_PENDING = "recovery_pending"


@dataclass(frozen=True)
class Clean:
    state: ClassVar[LifecycleState] = LifecycleState.CLEAN


@dataclass(frozen=True)
class Dirty:
    state: ClassVar[LifecycleState] = LifecycleState.DIRTY


@dataclass(frozen=True)
class ConflictPending:
    """The file changed on disk while the buffer held unsaved edits."""

    disk_text: str
    state: ClassVar[LifecycleState] = LifecycleState.CONFLICT_PENDING


@dataclass(frozen=True)
class RecoveryPending:
    """A recovery artifact differing from the disk content was found on open."""

    recovery_text: str
    state: ClassVar[LifecycleState] = LifecycleState.RECOVERY_PENDING


Lifecycle = Union[Clean, Dirty, ConflictPending, RecoveryPending]
Pending = Union[ConflictPending, RecoveryPending]


class ConflictChoice(Enum):
    KEEP_MINE = "keep_mine"
    RELOAD = "reload"
    CANCEL = "cancel"


class RecoveryChoice(Enum):
    RESTORE = "restore"
    DISCARD = "discard"


@dataclass(frozen=True)
class Outcome:
    """Result of a session operation: success flag plus a status-bar message."""

    ok: bool
    message: str = ""

    def __bool__(self) -> bool:
        return self.ok


def split_line_endings(text: str) -> tuple[str, str]:
    """Normalizes CRLF files to LF.

    Returns:
        tuple[str, str]: The LF text and the line terminator to write back.
        Files that mix terminators are left untouched and saved with LF.
    """
    lf_count = text.count("\n")
    if lf_count and text.count("\r\n") == lf_count:
        return text.replace("\r\n", "\n"), "\r\n"
    return text, "\n"


@dataclass(frozen=True)
class _DiskContent:
    text: str
    encoding: str
    newline: str
    stamp: Optional[DiskStamp]

    @classmethod
    def from_bytes(cls, data: bytes, stamp: Optional[DiskStamp]) -> "_DiskContent":
        decoded, encoding = decode_content(data)
        text, newline = split_line_endings(decoded)
        return cls(text, encoding, newline, stamp)


## ==================== DocumentSession Class ====================
class DocumentSession:
    """Editable state and derived presentation state of one open file.

    Attributes:
        path (Path): Absolute location on disk; the identity key.
        buffer (list[str]): The live lines, without terminators.
        disk_snapshot (str): Text last loaded from or saved to disk.
        encoding (str): Encoding used to decode the file and to save it.
        newline (str): Line terminator written on save.
        language (Language): Scanner used for highlighting and folding.
        is_preview (bool): True while the tab is replaceable by another preview.
        diagnostics (list[Diagnostic]): Annotations pushed by a language server.
        version (int): Document version sent with language-server notifications.
        theme (Optional[tuple]): Palette and bracket colors set by the owning
            session set; None selects the built-in theme.
        folds (FoldEngine): Bracket depths, fold ranges and visible rows.
        history (History): Undo/redo stacks.
    """

    def __init__(
        self,
        path: Union[str, Path],
        disk: "DiskBridge",
        recovery: Optional["RecoveryStore"] = None,
        lsp: Optional["LspBridge"] = None,
        *,
        preview: bool = False,
    ) -> None:
        self.path = Path(path).expanduser().resolve()
        self.disk = disk
        self.recovery = recovery
        self.lsp = lsp
        self.buffer: list[str] = [""]
        self.disk_snapshot: str = ""
        self.encoding: str = "utf-8"
        self.newline: str = "\n"
        self.language: Language = Language.PLAIN
        self.is_preview = preview
        self.diagnostics: list[Diagnostic] = []
        self.version: int = 1
        self.theme: Optional[tuple[Palette, Sequence[Any]]] = None
        self.folds = FoldEngine()
        self.history = History(self)
        self._pending: Optional[Pending] = None
        self._staged_disk: Optional[_DiskContent] = None
        self._disk_stamp: Optional[DiskStamp] = None
        self._line_count = 1

    @classmethod
    def open(
        cls,
        path: Union[str, Path],
        disk: "DiskBridge",
        recovery: Optional["RecoveryStore"] = None,
        lsp: Optional["LspBridge"] = None,
        *,
        preview: bool = False,
    ) -> "DocumentSession":
        """Loads `path` and returns a ready session.

        Raises:
            NotFoundError: The file does not exist.
            IoFailure: The file could not be read.
        """
        session = cls(path, disk, recovery, lsp, preview=preview)
        data = disk.read(session.path)
        try:
            stamp: Optional[DiskStamp] = disk.stat(session.path)
        except IoFailure as e:
            logger.warning(f"DocumentSession: cannot stat {session.path}: {e}")
            stamp = None

        content = _DiskContent.from_bytes(data, stamp)
        session.language = language_for_path(session.path, content.text)
        session._load(content)
        session._check_recovery()
        if session.lsp is not None:
            session.lsp.notify_open(session)
        logger.info(
            f"Opened {session.path} ({session.encoding}, {session.language.value}, "
            f"{session.line_count} lines, state={session.state.value})"
        )
        return session

    # --- Derived state ---
    @property
    def text(self) -> str:
        return "\n".join(self.buffer)

    @property
    def dirty(self) -> bool:
        return self.text != self.disk_snapshot

    @property
    def lifecycle(self) -> Lifecycle:
        if self._pending is not None:
            return self._pending
        return Dirty() if self.dirty else Clean()

    @property
    def state(self) -> LifecycleState:
        return self.lifecycle.state

    @property
    def is_pending(self) -> bool:
        return self._pending is not None

    @property
    def conflict_disk_text(self) -> Optional[str]:
        if isinstance(self._pending, ConflictPending):
            return self._pending.disk_text
        return None

    @property
    def recovery_text(self) -> Optional[str]:
        if isinstance(self._pending, RecoveryPending):
            return self._pending.recovery_text
        return None

    @property
    def uri(self) -> str:
        return uri_for_path(self.path)

    @property
    def line_count(self) -> int:
        return len(self.buffer)

    @property
    def bracket_depths(self) -> list[int]:
        return self.folds.bracket_depths

    @property
    def fold_ranges(self) -> list[FoldRange]:
        return self.folds.fold_ranges

    @property
    def folded_starts(self) -> set[int]:
        return self.folds.folded_starts

    @property
    def visible_rows(self) -> list[int]:
        return self.folds.visible_rows

    # --- Loading ---
    def _load(self, content: _DiskContent) -> None:
        """Replaces buffer and snapshot with `content` and resets derived state."""
        self.buffer = content.text.split("\n")
        self.disk_snapshot = content.text
        self.encoding = content.encoding
        self.newline = content.newline
        self._disk_stamp = content.stamp
        self.diagnostics = []
        self.history.clear()
        self._line_count = len(self.buffer)
        self.folds.recompute(self.buffer, self.language)

    def _check_recovery(self) -> None:
        if self.recovery is None:
            return
        artifact_text = self.recovery.find(self.path)
        if artifact_text is None:
            return
        if artifact_text == self.disk_snapshot:
            logger.debug(f"DocumentSession: stale recovery artifact for {self.path}")
            self._delete_recovery()
            return
        self._pending = RecoveryPending(artifact_text)
        logger.info(f"Recovery artifact found for {self.path}; awaiting resolution.")

    def _delete_recovery(self) -> bool:
        if self.recovery is None:
            return True
        try:
            self.recovery.delete(self.path)
        except IoFailure as e:
            logger.error(f"DocumentSession: cannot delete recovery artifact: {e}")
            return False
        return True

    def _refused(self, action: str) -> Outcome:
        reason = (
            "file changed on disk"
            if isinstance(self._pending, ConflictPending)
            else "recovery data is pending"
        )
        logger.debug(f"DocumentSession: {action} refused for {self.path}: {reason}")
        return Outcome(False, f"Cannot {action}: {reason}; resolve it first.")

    # --- Buffer mutation primitives (not recorded in history) ---
    def _check_position(self, pos: Position) -> Position:
        row, col = pos
        if not 0 <= row < len(self.buffer):
            raise InvalidEditError(f"Row {row} is outside the buffer (0..{len(self.buffer) - 1})")
        if not 0 <= col <= len(self.buffer[row]):
            raise InvalidEditError(f"Column {col} is outside line {row}")
        return row, col

    def text_between(self, start: Position, end: Position) -> str:
        (sr, sc), (er, ec) = start, end
        if sr == er:
            return self.buffer[sr][sc:ec]
        parts = [self.buffer[sr][sc:], *self.buffer[sr + 1:er], self.buffer[er][:ec]]
        return "\n".join(parts)

    def _replace_range(self, start: Position, end: Position, text: str) -> str:
        """Replaces `start..end` with `text` and returns the removed text."""
        (sr, sc), (er, ec) = start, end
        removed = self.text_between(start, end)
        joined = self.buffer[sr][:sc] + text + self.buffer[er][ec:]
        self.buffer[sr:er + 1] = joined.split("\n")
        self.folds.shift_folds(start, end, text.count("\n"))
        return removed

    def _after_change(self, first_row: int, last_row: Optional[int] = None) -> None:
        """Refreshes derived state after the buffer changed from `first_row` on."""
        line_count = len(self.buffer)
        if self.diagnostics:
            if line_count != self._line_count or last_row is None:
                self.diagnostics = [d for d in self.diagnostics if d.line < first_row]
            else:
                self.diagnostics = [
                    d for d in self.diagnostics if not first_row <= d.line <= last_row
                ]
        self._line_count = line_count
        self.version += 1
        self.folds.recompute(self.buffer, self.language)
        if self.lsp is not None:
            self.lsp.notify_change(self)

    # --- Edits ---
    def apply_edit(self, start: Position, end: Position, text: str) -> Outcome:
        """Replaces the text between two (row, column) positions with `text`."""
        if self._pending is not None:
            return self._refused("edit")
        try:
            start = self._check_position(start)
            end = self._check_position(end)
        except InvalidEditError as e:
            logger.warning(f"DocumentSession: rejected edit on {self.path}: {e}")
            return Outcome(False, str(e))
        if end < start:
            start, end = end, start

        if self.text_between(start, end) == text:
            return Outcome(True)
        removed = self._replace_range(start, end, text)
        self.history.add_action(
            {"type": "edit", "start": start, "removed": removed, "inserted": text}
        )
        self.is_preview = False
        self._after_change(start[0], end_of_insert(start, text)[0])
        return Outcome(True)

    def insert_text(self, pos: Position, text: str) -> Outcome:
        return self.apply_edit(pos, pos, text)

    def delete_range(self, start: Position, end: Position) -> Outcome:
        return self.apply_edit(start, end, "")

    def set_text(self, text: str) -> Outcome:
        """Replaces the whole buffer as one undoable edit."""
        last = len(self.buffer) - 1
        return self.apply_edit((0, 0), (last, len(self.buffer[last])), text)

    def undo(self) -> Outcome:
        if self._pending is not None:
            return self._refused("undo")
        if not self.history.undo():
            return Outcome(False, "Nothing to undo")
        return Outcome(True, "Undo")

    def redo(self) -> Outcome:
        if self._pending is not None:
            return self._refused("redo")
        if not self.history.redo():
            return Outcome(False, "Nothing to redo")
        return Outcome(True, "Redo")

    # --- Disk synchronisation ---
    def check_disk(self) -> Outcome:
        """Compares the file on disk with the snapshot and reacts to changes.

        Unchanged stamps short-circuit; otherwise the content decides:
        identical text only refreshes the stamp, a Clean session reloads, a
        buffer that already equals the new text becomes Clean, and anything
        else stages ConflictPending.
        """
        if self._pending is not None:
            return Outcome(True, "Resolution pending")
        try:
            stamp = self.disk.stat(self.path)
        except NotFoundError:
            logger.warning(f"DocumentSession: {self.path} no longer exists on disk")
            return Outcome(False, f"{self.path.name} no longer exists on disk")
        except IoFailure as e:
            return Outcome(False, str(e))

        if self._disk_stamp is not None and stamp == self._disk_stamp:
            return Outcome(True)

        try:
            content = _DiskContent.from_bytes(self.disk.read(self.path), stamp)
        except IoFailure as e:
            return Outcome(False, str(e))

        if content.text == self.disk_snapshot:
            # Only the encoding or line terminators changed; save must keep them.
            self.encoding = content.encoding
            self.newline = content.newline
            self._disk_stamp = stamp
            return Outcome(True)

        if not self.dirty:
            self._reload(content)
            logger.info(f"Reloaded {self.path} after an external change")
            return Outcome(True, f"{self.path.name} reloaded from disk")

        if content.text == self.text:
            self.disk_snapshot = content.text
            self.encoding = content.encoding
            self.newline = content.newline
            self._disk_stamp = stamp
            return Outcome(True)

        self._pending = ConflictPending(content.text)
        self._staged_disk = content
        logger.info(f"Conflict: {self.path} changed on disk while modified")
        return Outcome(True, f"{self.path.name} changed on disk")

    def _reload(self, content: _DiskContent) -> None:
        self._load(content)
        self._delete_recovery()
        self.version += 1
        if self.lsp is not None:
            self.lsp.notify_change(self)

    def _write_buffer(self) -> Outcome:
        text = self.text
        data, encoding = encode_content(self.newline.join(self.buffer), self.encoding)
        try:
            self.disk.write(self.path, data)
        except IoFailure as e:
            logger.error(f"Save failed for {self.path}: {e}")
            return Outcome(False, f"Error saving file: {e}")

        self.encoding = encoding
        self.disk_snapshot = text
        try:
            self._disk_stamp = self.disk.stat(self.path)
        except IoFailure as e:
            logger.warning(f"DocumentSession: cannot stat {self.path} after save: {e}")
            self._disk_stamp = None
        self._delete_recovery()
        logger.info(f"Saved {self.path} ({len(data)} bytes, {encoding})")
        return Outcome(True, f"Saved {self.path.name}")

    def save(self) -> Outcome:
        """Writes the buffer to disk unless the file changed underneath."""
        if self._pending is not None:
            return self._refused("save")
        self.check_disk()
        if self._pending is not None:
            return Outcome(False, f"{self.path.name} changed on disk; resolve the conflict first.")
        return self._write_buffer()

    def resolve_conflict(self, choice: ConflictChoice) -> Outcome:
        pending = self._pending
        if not isinstance(pending, ConflictPending):
            return Outcome(False, "No conflict to resolve")

        if choice is ConflictChoice.KEEP_MINE:
            self._pending = None
            outcome = self._write_buffer()
            if not outcome.ok:
                self._pending = pending
                return outcome
        elif choice is ConflictChoice.RELOAD:
            staged = self._staged_disk or _DiskContent(
                pending.disk_text, self.encoding, self.newline, None
            )
            self._pending = None
            self._reload(staged)
        else:
            self._pending = None

        self._staged_disk = None
        logger.info(f"Conflict on {self.path} resolved: {choice.value}")
        return Outcome(True, f"Conflict resolved ({choice.value})")

    def resolve_recovery(self, choice: RecoveryChoice) -> Outcome:
        pending = self._pending
        if not isinstance(pending, RecoveryPending):
            return Outcome(False, "No recovery to resolve")

        if choice is RecoveryChoice.DISCARD:
            if not self._delete_recovery():
                return Outcome(False, "Could not delete recovery data")
            self._pending = None
            message = "Recovery data discarded"
        else:
            self._pending = None
            self.buffer = pending.recovery_text.split("\n")
            self.history.clear()
            self.is_preview = False
            self._after_change(0)
            message = "Unsaved changes restored"

        logger.info(f"Recovery on {self.path} resolved: {choice.value}")
        return Outcome(True, message)

    def write_recovery_artifact(self) -> Outcome:
        """Snapshots unsaved edits through the recovery collaborator."""
        if self.recovery is None:
            return Outcome(False, "Recovery is disabled")
        if self._pending is not None or not self.dirty:
            return Outcome(True)
        try:
            self.recovery.write(self.path, self.text)
        except IoFailure as e:
            return Outcome(False, str(e))
        return Outcome(True)

    # --- Presentation ---
    def toggle_fold(self, row: int) -> Outcome:
        if self.folds.toggle_fold(row):
            return Outcome(True)
        return Outcome(False, f"No foldable block starts at line {row + 1}")

    def highlighted_line(
        self,
        index: int,
        palette: Optional[Palette] = None,
        bracket_colors: Optional[Sequence[Any]] = None,
    ) -> list[Segment]:
        """Styled segments for line `index`, using the stored entering depth.

        Missing colors come from `theme`, or from the built-in theme when the
        session was opened outside a configured session set.
        """
        if palette is None or bracket_colors is None:
            theme_palette, theme_brackets = self.theme or default_theme()
            palette = theme_palette if palette is None else palette
            if bracket_colors is None:
                bracket_colors = theme_brackets
        segments, _depth = highlight_line(
            self.buffer[index],
            self.language,
            palette,
            self.folds.bracket_depths[index],
            bracket_colors,
        )
        return segments

    def set_diagnostics(self, items: Sequence[Any]) -> Outcome:
        self.diagnostics = parse_diagnostics(items)
        return Outcome(True)

    # --- Identity ---
    def retarget(self, new_path: Union[str, Path]) -> Outcome:
        """Points the session at a renamed file without touching the buffer."""
        if self.lsp is not None:
            self.lsp.notify_close(self)
        old = self.path
        self.path = Path(new_path).expanduser().resolve()
        self.language = language_for_path(self.path, self.text)
        try:
            self._disk_stamp = self.disk.stat(self.path)
        except IoFailure:
            self._disk_stamp = None
        self.folds.recompute(self.buffer, self.language)
        if self.lsp is not None:
            self.lsp.notify_open(self)
        logger.info(f"Session moved from {old} to {self.path}")
        return Outcome(True)

    def close(self) -> Outcome:
        if self.lsp is not None:
            self.lsp.notify_close(self)
        logger.debug(f"Closed session for {self.path}")
        return Outcome(True)

    def __repr__(self) -> str:
        return f"<DocumentSession {self.path} {self.state.value}>"
