# quire/core/History.py
"""History Module for the quire editing core
===========================================
This module provides the `History` class, which manages the undo and redo
stacks of one `DocumentSession`.

Every buffer change is recorded as a range replacement: the position where it
started, the text it removed and the text it inserted. Undoing an action
replaces the inserted text with the removed text again; redoing does the
reverse. Because the session recomputes its dirty flag from the buffer after
every change, undoing back to the loaded content returns the session to Clean.

Key Features:
-------------
- Multi-level undo and redo with the usual "new edit clears redo" rule.
- Compound actions, so a group of edits is undone or redone as one step.
- Works only through the session's non-recording `_replace_range()` and
  `_after_change()` hooks, so undo never re-enters the history.

Classes:
--------
- History: Manages the undo and redo stacks, and provides methods to add
  actions, clear history, and perform undo/redo operations.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any


if TYPE_CHECKING:
    from quire.core.DocumentSession import DocumentSession

Position = tuple[int, int]


def end_of_insert(start: Position, text: str) -> Position:
    """Position just past `text` once it is inserted at `start`."""
    parts = text.split("\n")
    if len(parts) == 1:
        return start[0], start[1] + len(text)
    return start[0] + len(parts) - 1, len(parts[-1])


## ==================== History Class (Undo/Redo) ====================
class History:
    """Class History
    ===================
    Manages the undo and redo action history for a document session.

    Attributes:
        session (DocumentSession): The session this history belongs to.
        _action_history (list[dict[str, Any]]): Stack of performed actions for undo.
        _undone_actions (list[dict[str, Any]]): Stack of undone actions for redo.
        _compound (list[dict[str, Any]] | None): Actions collected while a
            compound action is open.
    """

    def __init__(self, session: "DocumentSession") -> None:
        self.session = session
        self._action_history: list[dict[str, Any]] = []
        self._undone_actions: list[dict[str, Any]] = []
        self._compound: list[dict[str, Any]] | None = None

    @property
    def can_undo(self) -> bool:
        return bool(self._action_history)

    @property
    def can_redo(self) -> bool:
        return bool(self._undone_actions)

    def begin_compound_action(self) -> None:
        """Starts a sequence of actions that should be undone/redone together."""
        if self._compound is None:
            self._compound = []
            logging.debug("History: Beginning compound action.")

    def end_compound_action(self) -> None:
        """Ends a sequence of actions and records it as one step."""
        actions, self._compound = self._compound, None
        if actions:
            self._action_history.append({"type": "compound", "actions": actions})
            self._undone_actions.clear()
        logging.debug(
            f"History: Ended compound action with {len(actions or [])} step(s)."
        )

    def add_action(self, action: dict[str, Any]) -> None:
        """Adds a new action to the history."""
        if not isinstance(action, dict) or "type" not in action:
            logging.warning(f"History: Attempted to add invalid action: {action}")
            return

        if self._compound is not None:
            self._compound.append(action)
            return

        self._action_history.append(action)
        self._undone_actions.clear()
        logging.debug(
            f"History: Action '{action['type']}' added. History size: {len(self._action_history)}"
        )

    def clear(self) -> None:
        """Clears both undo and redo stacks."""
        self._action_history.clear()
        self._undone_actions.clear()
        self._compound = None
        logging.debug("History: Undo/Redo stacks cleared.")

    def undo(self) -> bool:
        """Undoes the last action.

        Returns:
            bool: True if the buffer changed, False if there was nothing to undo.
        """
        if not self._action_history:
            return False
        action = self._action_history.pop()
        first_row = self._apply(action, reverse=True)
        self._undone_actions.append(action)
        self.session._after_change(first_row)
        logging.debug(f"History: Undid '{action['type']}'.")
        return True

    def redo(self) -> bool:
        """Redoes the last undone action.

        Returns:
            bool: True if the buffer changed, False if there was nothing to redo.
        """
        if not self._undone_actions:
            return False
        action = self._undone_actions.pop()
        first_row = self._apply(action, reverse=False)
        self._action_history.append(action)
        self.session._after_change(first_row)
        logging.debug(f"History: Redid '{action['type']}'.")
        return True

    def _apply(self, action: dict[str, Any], *, reverse: bool) -> int:
        """Replays `action` (or its inverse) and returns the first touched row."""
        if action["type"] == "compound":
            steps = reversed(action["actions"]) if reverse else action["actions"]
            return min(self._apply(step, reverse=reverse) for step in steps)

        start: Position = action["start"]
        removed: str = action["removed"]
        inserted: str = action["inserted"]
        if reverse:
            self.session._replace_range(start, end_of_insert(start, inserted), removed)
        else:
            self.session._replace_range(start, end_of_insert(start, removed), inserted)
        return start[0]
