# quire/exceptions.py
"""Exceptions raised by the quire editing core and its collaborators."""

from __future__ import annotations

from typing import Optional


class QuireError(Exception):
    """Base exception for all editing-core operations."""


class IoFailure(QuireError):
    """Raised when a disk read, write or stat fails.

    Attributes:
        path: The file the operation targeted, when known.
    """

    def __init__(self, message: str, *, path: Optional[str] = None) -> None:
        super().__init__(message)
        self.path = path


class NotFoundError(IoFailure):
    """Raised when the target file does not exist on disk."""


class MalformedRecovery(QuireError):
    """Raised when a recovery artifact exists but cannot be decoded."""


class InvalidEditError(QuireError):
    """Raised when an edit addresses a position outside the buffer."""
