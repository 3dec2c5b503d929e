# quire/__main__.py
"""
quire Entry Point
=================
Command-line entry for the quire editing core. It performs:
1) Configuration & Logging: loads config and initializes logging first.
2) Core Import: imports the session set once logging is ready.
3) Session Run: opens every path given on the command line and prints one
   status line per tab (state, encoding, language, line count, folds).

Usage:
    python -m quire src/main.rs README.md
"""

from __future__ import annotations

import logging
import sys
from typing import Any, Optional, Sequence

from quire.utils.logging_config import setup_logging
from quire.utils.utils import load_config


def status_line(session: Any) -> str:
    return (
        f"{session.path}: {session.state.value}, {session.encoding}, "
        f"{session.language.value}, {session.line_count} lines, "
        f"{len(session.fold_ranges)} foldable"
    )


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Opens the given files and reports their status.

    Returns:
        int: 0 when every path opened, 1 otherwise.
    """
    args = list(sys.argv[1:] if argv is None else argv)

    # --- Step 1: Configuration and logging ---
    config: dict[str, Any] = load_config()
    setup_logging(config)
    logger = logging.getLogger("quire")

    # --- Step 2: Core import ---
    from quire.core import SessionSet

    tabs = SessionSet.from_config(config)
    exit_code = 0
    for raw in args:
        outcome = tabs.open(raw)
        if not outcome.ok:
            logger.error(f"quire: {outcome.message}")
            print(f"{raw}: {outcome.message}", file=sys.stderr)
            exit_code = 1
    for session in tabs:
        print(status_line(session))
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
