# tests/test_core/test_history_basic.py
"""History Basic Tests
========================

Unit tests for the History class (stack bookkeeping only).

This test module verifies that the History class:

1. Correctly records and clears individual actions.
2. Groups actions recorded between `begin_compound_action` and
   `end_compound_action` into a single undo step.
3. Ignores malformed actions.
"""

from types import SimpleNamespace

from quire.core.History import History, end_of_insert


def make_stub_session():
    """Return a minimal stub session; bookkeeping never touches it."""
    return SimpleNamespace()


def edit(start, removed, inserted):
    return {"type": "edit", "start": start, "removed": removed, "inserted": inserted}


def test_add_and_clear():
    """Actions are appended; `clear()` resets both stacks."""
    h = History(make_stub_session())  # type: ignore[arg-type]

    action1 = edit((0, 0), "", "hello")
    action2 = edit((0, 4), "o", "")

    h.add_action(action1)
    h.add_action(action2)

    assert h._action_history == [action1, action2]
    assert h._undone_actions == []
    assert h.can_undo and not h.can_redo

    h.clear()
    assert h._action_history == []
    assert h._undone_actions == []


def test_compound_action_is_one_step():
    h = History(make_stub_session())  # type: ignore[arg-type]

    h.begin_compound_action()
    h.add_action(edit((0, 0), "", "A"))
    h.add_action(edit((0, 1), "", "B"))
    h.end_compound_action()

    assert len(h._action_history) == 1
    assert h._action_history[0]["type"] == "compound"
    assert len(h._action_history[0]["actions"]) == 2


def test_empty_compound_records_nothing():
    h = History(make_stub_session())  # type: ignore[arg-type]
    h.begin_compound_action()
    h.end_compound_action()
    assert h._action_history == []


def test_invalid_action_is_ignored():
    h = History(make_stub_session())  # type: ignore[arg-type]
    h.add_action({"text": "no type"})
    h.add_action("not a dict")  # type: ignore[arg-type]
    assert h._action_history == []


def test_undo_redo_on_empty_history_report_no_change():
    h = History(make_stub_session())  # type: ignore[arg-type]
    assert h.undo() is False
    assert h.redo() is False


def test_end_of_insert():
    assert end_of_insert((2, 3), "abc") == (2, 6)
    assert end_of_insert((2, 3), "") == (2, 3)
    assert end_of_insert((2, 3), "ab\ncd\ne") == (4, 1)
