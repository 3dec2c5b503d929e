# src/quire/core/__init__.py
"""Public facade for quire.core: re-export main classes from CamelCase modules.

Keeps one class-carrying module per file (DocumentSession.py, FoldEngine.py,
...), but provides flat imports for convenience and stability.
"""

# Re-export classes/symbols from CamelCase modules
from .DocumentSession import (  # noqa: F401
    ConflictChoice,
    DocumentSession,
    LifecycleState,
    Outcome,
    RecoveryChoice,
)
from .FoldEngine import FoldEngine, FoldRange  # noqa: F401
from .History import History  # noqa: F401
from .SessionSet import SessionSet  # noqa: F401
from .Tokenizer import Language, Palette, TokenKind, highlight_line  # noqa: F401


__all__ = [
    "ConflictChoice",
    "DocumentSession",
    "FoldEngine",
    "FoldRange",
    "History",
    "Language",
    "LifecycleState",
    "Outcome",
    "Palette",
    "RecoveryChoice",
    "SessionSet",
    "TokenKind",
    "highlight_line",
]
