# quire/core/FoldEngine.py
"""FoldEngine Module for the quire editing core
==============================================
Derives collapsible line ranges from bracket structure and projects logical
lines onto the rows that are actually shown on screen.

Everything here is recomputed from the buffer lines by pure functions:

- `compute_bracket_depths()` replays the tokenizer's bracket transitions and
  records the depth entering every line.
- `compute_fold_ranges()` matches brackets across lines; a pair whose closing
  bracket sits on a later line than its opening bracket becomes a `FoldRange`.

The `FoldEngine` class keeps the user-facing state on top of that: which
ranges are collapsed (`folded_starts`), the resulting `visible_rows`
projection, and the scroll position, which is an index into `visible_rows`
rather than a logical line number.
"""

from __future__ import annotations

import bisect
import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from quire.core.Tokenizer import Language, TokenKind, bracket_transition, lex_line


logger = logging.getLogger(__name__)

FOLDED_MARKER = "▸"
UNFOLDED_MARKER = "▾"


@dataclass(frozen=True, order=True)
class FoldRange:
    """A collapsible block: lines `start_line + 1 .. end_line` hide when folded."""

    start_line: int
    end_line: int

    def hides(self, line: int) -> bool:
        return self.start_line < line <= self.end_line


def compute_bracket_depths(
    lines: Sequence[str], language: Language
) -> tuple[list[int], int]:
    """Returns `(depths, final_depth)`.

    `depths[i]` is the nesting depth entering line `i`; `final_depth` is the
    depth after the last line. Depth before line 0 is 0.
    """
    depths: list[int] = []
    depth = 0
    for line in lines:
        depths.append(depth)
        depth = bracket_transition(line, language, depth)
    return depths, depth


def compute_fold_ranges(lines: Sequence[str], language: Language) -> list[FoldRange]:
    """Matches brackets across lines and returns the multi-line pairs.

    Unmatched closing brackets are ignored. When several brackets opened on
    the same line span multiple lines, only the outermost range is kept so
    each start line maps to exactly one range.
    """
    stack: list[int] = []
    by_start: dict[int, int] = {}
    for row, line in enumerate(lines):
        for _text, kind in lex_line(line, language):
            if kind is TokenKind.OPEN_BRACKET:
                stack.append(row)
            elif kind is TokenKind.CLOSE_BRACKET and stack:
                start = stack.pop()
                if row > start and row > by_start.get(start, -1):
                    by_start[start] = row
    return [FoldRange(start, end) for start, end in sorted(by_start.items())]


## ==================== FoldEngine Class ====================
class FoldEngine:
    """Holds the fold state and visible-row projection for one document.

    Attributes:
        bracket_depths (list[int]): Depth entering each line.
        final_depth (int): Depth after the last line.
        fold_ranges (list[FoldRange]): Ranges sorted by start line.
        folded_starts (set[int]): Start lines of collapsed ranges.
        visible_rows (list[int]): Logical lines currently shown, ascending.
        scroll_row (int): Index into `visible_rows` of the top screen row.
    """

    def __init__(self) -> None:
        self.bracket_depths: list[int] = []
        self.final_depth: int = 0
        self.fold_ranges: list[FoldRange] = []
        self.folded_starts: set[int] = set()
        self.visible_rows: list[int] = []
        self.scroll_row: int = 0
        self._range_by_start: dict[int, FoldRange] = {}
        self._line_count: int = 0

    # --- Recomputation ---
    def recompute(self, lines: Sequence[str], language: Language) -> None:
        """Rebuilds depths and ranges from the full buffer.

        Collapsed ranges whose start line no longer opens a range are dropped
        from `folded_starts`.
        """
        self._line_count = len(lines)
        self.bracket_depths, self.final_depth = compute_bracket_depths(lines, language)
        self.fold_ranges = compute_fold_ranges(lines, language)
        self._range_by_start = {r.start_line: r for r in self.fold_ranges}

        stale = self.folded_starts - set(self._range_by_start)
        if stale:
            logger.debug(f"FoldEngine: dropping stale folds at {sorted(stale)}")
            self.folded_starts -= stale
        self.rebuild_visible_rows()

    def shift_folds(
        self, start: tuple[int, int], end: tuple[int, int], inserted_lines: int
    ) -> None:
        """Moves collapsed starts along with a replacement of `start..end`.

        `inserted_lines` is the number of newlines in the replacement text.
        Starts below the edit move by the change in line count; starts on
        rows the edit removed are dropped. A start on the first edited row
        stays put unless the edit begins at column 0, in which case the line
        is pushed below the inserted text. A start on the last edited row
        survives only when the edit ends at column 0 of it. Call before
        `recompute`, which prunes whatever no longer opens a range.
        """
        if not self.folded_starts:
            return
        (sr, sc), (er, ec) = start, end
        delta = inserted_lines - (er - sr)
        shifted: set[int] = set()
        for row in self.folded_starts:
            if row < sr or (row == sr and sc > 0):
                shifted.add(row)
            elif row == sr == er or (row == er and ec == 0):
                shifted.add(sr + inserted_lines)
            elif row > er:
                shifted.add(row + delta)
        if shifted != self.folded_starts:
            logger.debug(f"FoldEngine: folds moved {sorted(self.folded_starts)} -> {sorted(shifted)}")
        self.folded_starts = shifted

    def rebuild_visible_rows(self) -> None:
        """Recomputes `visible_rows` from `fold_ranges` and `folded_starts`."""
        rows: list[int] = []
        hidden_until = -1
        for line in range(self._line_count):
            if line > hidden_until:
                rows.append(line)
            if line in self.folded_starts:
                hidden_until = max(hidden_until, self._range_by_start[line].end_line)
        self.visible_rows = rows
        self._clamp_scroll()

    # --- Queries ---
    def range_at(self, row: int) -> Optional[FoldRange]:
        return self._range_by_start.get(row)

    def is_folded(self, row: int) -> bool:
        return row in self.folded_starts

    def is_visible(self, line: int) -> bool:
        idx = bisect.bisect_left(self.visible_rows, line)
        return idx < len(self.visible_rows) and self.visible_rows[idx] == line

    def visible_index_of(self, line: int) -> int:
        """Index of `line` in `visible_rows`.

        A hidden line maps onto the visible row that hides it (the nearest
        visible line before it).
        """
        if not self.visible_rows:
            return 0
        idx = bisect.bisect_right(self.visible_rows, line) - 1
        return max(idx, 0)

    def gutter_marker(self, line: int) -> Optional[str]:
        """Fold indicator for the gutter, or None when `line` opens no range."""
        if line not in self._range_by_start:
            return None
        return FOLDED_MARKER if line in self.folded_starts else UNFOLDED_MARKER

    # --- Fold toggling ---
    def toggle_fold(self, row: int) -> bool:
        """Flips the collapsed state of the range starting at `row`.

        Returns:
            bool: True if a range starts at `row` and the projection changed.
        """
        if row not in self._range_by_start:
            return False
        if row in self.folded_starts:
            self.folded_starts.discard(row)
        else:
            self.folded_starts.add(row)
        self.rebuild_visible_rows()
        return True

    def toggle_fold_at_visible(self, index: int) -> bool:
        """Gutter click: toggles the fold on the line shown at screen `index`."""
        visible_idx = self.scroll_row + index
        if not 0 <= visible_idx < len(self.visible_rows):
            return False
        return self.toggle_fold(self.visible_rows[visible_idx])

    def fold_all(self) -> bool:
        if self.folded_starts == set(self._range_by_start):
            return False
        self.folded_starts = set(self._range_by_start)
        self.rebuild_visible_rows()
        return True

    def unfold_all(self) -> bool:
        if not self.folded_starts:
            return False
        self.folded_starts.clear()
        self.rebuild_visible_rows()
        return True

    def unfold_to_reveal(self, line: int) -> bool:
        """Expands every collapsed range that hides `line`."""
        hiding = {
            start
            for start in self.folded_starts
            if self._range_by_start[start].hides(line)
        }
        if not hiding:
            return False
        self.folded_starts -= hiding
        self.rebuild_visible_rows()
        return True

    # --- Scrolling over visible rows ---
    def _clamp_scroll(self) -> None:
        max_row = max(len(self.visible_rows) - 1, 0)
        self.scroll_row = min(max(self.scroll_row, 0), max_row)

    def scroll_by(self, delta: int) -> bool:
        old = self.scroll_row
        self.scroll_row += delta
        self._clamp_scroll()
        return self.scroll_row != old

    def scroll_to_line(self, line: int, viewport_height: int) -> bool:
        """Scrolls the minimum amount so `line` is inside the viewport."""
        old = self.scroll_row
        idx = self.visible_index_of(line)
        height = max(viewport_height, 1)
        if idx < self.scroll_row:
            self.scroll_row = idx
        elif idx >= self.scroll_row + height:
            self.scroll_row = idx - height + 1
        self._clamp_scroll()
        return self.scroll_row != old

    def rows_in_viewport(self, viewport_height: int) -> list[int]:
        """Logical lines to draw for a viewport of `viewport_height` rows."""
        return self.visible_rows[self.scroll_row:self.scroll_row + max(viewport_height, 0)]
