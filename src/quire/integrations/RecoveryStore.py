# quire/integrations/RecoveryStore.py
"""RecoveryStore.py
========================
Recovery-artifact collaborator for document sessions.

While a document has unsaved edits the application may periodically snapshot
the buffer into a recovery artifact. When the same path is opened again and
an artifact is found whose text differs from the file on disk, the session
offers to restore it.

Artifacts live in one directory (by default ``~/.cache/quire/recovery``),
one JSON file per document, named after the SHA-1 of the document's absolute
path::

    {"path": "/abs/path/file.py", "text": "...", "saved_at": 1700000000.0}

An artifact that cannot be parsed is reported as absent; it is never fatal.
"""

from __future__ import annotations

import hashlib
import json
import logging
import time
from pathlib import Path
from typing import Optional, Union

from quire.exceptions import IoFailure, MalformedRecovery


logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

ARTIFACT_SUFFIX = ".recovery.json"
DEFAULT_RECOVERY_DIR = Path("~/.cache/quire/recovery")


## ================== RecoveryStore Class ====================
class RecoveryStore:
    """Stores one recovery artifact per document path in a directory."""

    def __init__(self, directory: Optional[PathLike] = None) -> None:
        self.directory = Path(directory or DEFAULT_RECOVERY_DIR).expanduser()

    def artifact_path(self, path: PathLike) -> Path:
        """Location of the artifact that belongs to document `path`."""
        key = str(Path(path).expanduser().resolve())
        digest = hashlib.sha1(key.encode("utf-8")).hexdigest()
        return self.directory / f"{digest}{ARTIFACT_SUFFIX}"

    def load(self, path: PathLike) -> Optional[str]:
        """Returns the artifact text for `path`, or None if there is none.

        Raises:
            MalformedRecovery: The artifact exists but cannot be decoded.
        """
        artifact = self.artifact_path(path)
        try:
            raw = artifact.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            raise MalformedRecovery(f"Unreadable recovery artifact {artifact}: {e}") from e

        try:
            payload = json.loads(raw)
        except json.JSONDecodeError as e:
            raise MalformedRecovery(f"Invalid JSON in {artifact}: {e}") from e

        if not isinstance(payload, dict) or not isinstance(payload.get("text"), str):
            raise MalformedRecovery(f"Recovery artifact {artifact} has no 'text' field")
        return payload["text"]

    def find(self, path: PathLike) -> Optional[str]:
        """Like `load`, but a malformed artifact counts as no artifact."""
        try:
            return self.load(path)
        except MalformedRecovery as e:
            logger.warning(f"RecoveryStore: ignoring artifact for {str(path)!r}: {e}")
            return None

    def write(self, path: PathLike, text: str) -> None:
        """Creates or replaces the artifact for `path`.

        Raises:
            IoFailure: The artifact could not be written.
        """
        artifact = self.artifact_path(path)
        payload = {
            "path": str(Path(path).expanduser().resolve()),
            "text": text,
            "saved_at": time.time(),
        }
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            tmp = artifact.with_suffix(".tmp")
            tmp.write_text(json.dumps(payload), encoding="utf-8")
            tmp.replace(artifact)
        except OSError as e:
            logger.error(f"RecoveryStore: failed to write {artifact}: {e}")
            raise IoFailure(f"Cannot write recovery artifact: {e}", path=str(artifact)) from e
        logger.debug(f"RecoveryStore: wrote artifact for {str(path)!r}")

    def delete(self, path: PathLike) -> None:
        """Removes the artifact for `path`; a missing artifact is not an error."""
        artifact = self.artifact_path(path)
        try:
            artifact.unlink()
            logger.debug(f"RecoveryStore: deleted artifact for {str(path)!r}")
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.error(f"RecoveryStore: failed to delete {artifact}: {e}")
            raise IoFailure(f"Cannot delete recovery artifact: {e}", path=str(artifact)) from e
