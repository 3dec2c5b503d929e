# quire/core/SessionSet.py
"""SessionSet Module for the quire editing core
==============================================
The ordered list of open document sessions (the tab bar) and the index of the
active one.

Tabs come in two flavours. A *preview* tab is opened by a single activation in
the file tree and is replaced in place by the next preview open, so browsing
files does not pile up tabs. A *pinned* tab stays until it is closed; a
preview tab becomes pinned when it is opened again non-preview, when it is
edited, or through `pin()`.

Opening a path that is already open never creates a duplicate: the existing
session is activated instead.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Iterator, Optional, Union

from quire.core.DocumentSession import DocumentSession, LifecycleState, Outcome
from quire.exceptions import IoFailure
from quire.integrations.DiskBridge import DiskBridge
from quire.integrations.LspBridge import LspBridge
from quire.integrations.RecoveryStore import RecoveryStore
from quire.utils import utils


logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def _normalize(path: PathLike) -> Path:
    return Path(path).expanduser().resolve()


def _is_within(path: Path, root: Path) -> bool:
    return path == root or root in path.parents


## ==================== SessionSet Class ====================
class SessionSet:
    """Ordered open sessions plus the active index.

    Attributes:
        sessions (list[DocumentSession]): Tabs in display order.
        active_index (Optional[int]): Index of the active tab, None when empty.
    """

    def __init__(
        self,
        disk: Optional[DiskBridge] = None,
        recovery: Optional[RecoveryStore] = None,
        lsp: Optional[LspBridge] = None,
    ) -> None:
        self.disk = disk or DiskBridge()
        self.recovery = recovery
        self.lsp = lsp
        self.sessions: list[DocumentSession] = []
        self.active_index: Optional[int] = None
        self.check_disk_on_focus = True
        self.theme: Optional[tuple[Any, Any]] = None

    @classmethod
    def from_config(
        cls, config: Optional[dict[str, Any]] = None, lsp: Optional[LspBridge] = None
    ) -> "SessionSet":
        """Builds a session set from the `editor` and `theme` sections.

        Without a config dict the user's config file is loaded over the defaults.
        """
        if config is None:
            config = utils.load_config()
        editor_cfg = config.get("editor", {})
        recovery = None
        if editor_cfg.get("recovery_enabled", True):
            recovery = RecoveryStore(editor_cfg.get("recovery_dir"))
        session_set = cls(DiskBridge(), recovery, lsp)
        session_set.check_disk_on_focus = bool(editor_cfg.get("check_disk_on_focus", True))
        session_set.theme = utils.theme_from_config(config)
        return session_set

    def __len__(self) -> int:
        return len(self.sessions)

    def __iter__(self) -> Iterator[DocumentSession]:
        return iter(self.sessions)

    @property
    def active(self) -> Optional[DocumentSession]:
        if self.active_index is None:
            return None
        return self.sessions[self.active_index]

    def find(self, path: PathLike) -> Optional[int]:
        """Index of the session open on `path`, or None."""
        target = _normalize(path)
        for idx, session in enumerate(self.sessions):
            if session.path == target:
                return idx
        return None

    def _replaceable_preview(self) -> Optional[int]:
        for idx, session in enumerate(self.sessions):
            if session.is_preview and not session.dirty and not session.is_pending:
                return idx
        return None

    # --- Opening and closing ---
    def open(self, path: PathLike, preview: bool = False) -> Outcome:
        """Opens `path` as a preview or pinned tab and activates it."""
        target = _normalize(path)
        existing = self.find(target)
        if existing is not None:
            self.active_index = existing
            if not preview:
                self.sessions[existing].is_preview = False
            return Outcome(True, f"Switched to {target.name}")

        try:
            session = DocumentSession.open(
                target, self.disk, self.recovery, self.lsp, preview=preview
            )
        except IoFailure as e:
            logger.error(f"SessionSet: failed to open {target}: {e}")
            return Outcome(False, str(e))
        session.theme = self.theme

        replace_idx = self._replaceable_preview() if preview else None
        if replace_idx is not None:
            replaced = self.sessions[replace_idx]
            replaced.close()
            self.sessions[replace_idx] = session
            self.active_index = replace_idx
            logger.debug(f"SessionSet: preview {replaced.path} replaced by {target}")
        else:
            self.sessions.append(session)
            self.active_index = len(self.sessions) - 1

        if session.is_pending:
            return Outcome(True, f"Recovered changes found for {target.name}")
        return Outcome(True, f"Opened {target.name}")

    def close(self, index: Optional[int] = None, force: bool = False) -> Outcome:
        """Closes a tab (the active one by default).

        A Dirty session is only closed with `force=True`, once the caller has
        confirmed that its changes may be dropped.
        """
        if index is None:
            index = self.active_index
        if index is None or not 0 <= index < len(self.sessions):
            return Outcome(False, "No such tab")

        session = self.sessions[index]
        if session.dirty and not force:
            return Outcome(False, f"{session.path.name} has unsaved changes")

        session.close()
        del self.sessions[index]
        if not self.sessions:
            self.active_index = None
        elif self.active_index is not None and self.active_index > index:
            self.active_index -= 1
        elif self.active_index == index:
            self.active_index = min(index, len(self.sessions) - 1)
        return Outcome(True, f"Closed {session.path.name}")

    def close_path(self, path: PathLike, force: bool = False) -> Outcome:
        """Closes every session at or below `path` (a file or a directory)."""
        root = _normalize(path)
        indices = [i for i, s in enumerate(self.sessions) if _is_within(s.path, root)]
        if not indices:
            return Outcome(True)
        if not force:
            blocked = [self.sessions[i].path.name for i in indices if self.sessions[i].dirty]
            if blocked:
                return Outcome(False, f"Unsaved changes in {', '.join(blocked)}")
        for idx in reversed(indices):
            self.close(idx, force=True)
        return Outcome(True, f"Closed {len(indices)} tab(s)")

    def rename_path(self, old: PathLike, new: PathLike) -> Outcome:
        """Follows a rename of a file or directory in every affected session."""
        old_root, new_root = _normalize(old), _normalize(new)
        moves = [
            (session, new_root / session.path.relative_to(old_root))
            for session in self.sessions
            if _is_within(session.path, old_root)
        ]
        moving = {id(session) for session, _target in moves}
        for _session, target in moves:
            idx = self.find(target)
            if idx is not None and id(self.sessions[idx]) not in moving:
                logger.warning(f"SessionSet: rename onto open tab {target} refused")
                return Outcome(False, f"{target.name} is already open in another tab")

        for session, target in moves:
            session.retarget(target)
        return Outcome(True, f"Updated {len(moves)} tab(s)")

    # --- Tab navigation ---
    def pin(self, index: Optional[int] = None) -> Outcome:
        if index is None:
            index = self.active_index
        if index is None or not 0 <= index < len(self.sessions):
            return Outcome(False, "No such tab")
        self.sessions[index].is_preview = False
        return Outcome(True)

    def switch_to(self, index: int) -> Outcome:
        if not 0 <= index < len(self.sessions):
            return Outcome(False, "No such tab")
        self.active_index = index
        return Outcome(True)

    def next_tab(self) -> Outcome:
        if not self.sessions or self.active_index is None:
            return Outcome(False, "No open tabs")
        return self.switch_to((self.active_index + 1) % len(self.sessions))

    def prev_tab(self) -> Outcome:
        if not self.sessions or self.active_index is None:
            return Outcome(False, "No open tabs")
        return self.switch_to((self.active_index - 1) % len(self.sessions))

    # --- Cross-session operations ---
    def dirty_sessions(self) -> list[DocumentSession]:
        return [s for s in self.sessions if s.dirty]

    def check_all_disk(self) -> list[DocumentSession]:
        """Runs the disk check on every session, e.g. when the terminal regains focus.

        Returns:
            list[DocumentSession]: Sessions now waiting on a conflict decision.
        """
        conflicts = []
        for session in self.sessions:
            outcome = session.check_disk()
            if not outcome.ok:
                logger.warning(f"SessionSet: disk check for {session.path}: {outcome.message}")
            if session.state is LifecycleState.CONFLICT_PENDING:
                conflicts.append(session)
        return conflicts

    def process_lsp_queue(self) -> bool:
        if self.lsp is None:
            return False
        return self.lsp.process_queue(self.sessions)

    def on_focus_gained(self) -> list[DocumentSession]:
        """Terminal focus-in hook; re-checks disk state when enabled."""
        if not self.check_disk_on_focus:
            return []
        return self.check_all_disk()
