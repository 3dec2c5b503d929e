# quire/integrations/DiskBridge.py
"""DiskBridge.py
========================
Disk I/O collaborator for document sessions.

The bridge is the only place the editing core touches the filesystem for the
files being edited. It reads and writes raw bytes, reports a cheap change
stamp for conflict detection, and owns the text codec used on load and save:

- `decode_content()` tries strict UTF-8 first, then the encoding guessed by
  chardet, and finally latin-1 (which never fails).
- `encode_content()` encodes with the encoding the file was loaded with and
  falls back to UTF-8 when the buffer holds characters that encoding cannot
  represent.

Every OS-level failure is converted into `IoFailure` (or `NotFoundError` for
a missing file) so callers never see raw `OSError`s.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Union

import chardet

from quire.exceptions import IoFailure, NotFoundError


logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

# chardet only needs a sample to make its guess.
CHARDET_SAMPLE_SIZE = 1024 * 20
CHARDET_MIN_CONFIDENCE = 0.5


@dataclass(frozen=True)
class DiskStamp:
    """Cheap fingerprint of a file on disk, compared before reading content."""

    mtime_ns: int
    size: int


def decode_content(data: bytes) -> tuple[str, str]:
    """Decodes raw file bytes.

    Returns:
        tuple[str, str]: The decoded text and the encoding that produced it.
    """
    if not data:
        return "", "utf-8"

    try:
        return data.decode("utf-8"), "utf-8"
    except UnicodeDecodeError:
        logger.debug("DiskBridge: content is not valid UTF-8, asking chardet.")

    result = chardet.detect(data[:CHARDET_SAMPLE_SIZE])
    guess = result.get("encoding")
    confidence = result.get("confidence") or 0.0
    logger.debug(f"Chardet detected encoding '{guess}' with confidence {confidence:.2f}")

    if guess and confidence >= CHARDET_MIN_CONFIDENCE:
        try:
            return data.decode(guess), guess.lower()
        except (UnicodeDecodeError, LookupError) as e:
            logger.warning(f"DiskBridge: decoding with '{guess}' failed: {e}")

    return data.decode("latin-1"), "latin-1"


def encode_content(text: str, encoding: str) -> tuple[bytes, str]:
    """Encodes `text` for writing.

    Returns:
        tuple[bytes, str]: The encoded bytes and the encoding actually used.
    """
    try:
        return text.encode(encoding), encoding
    except (UnicodeEncodeError, LookupError) as e:
        logger.warning(
            f"DiskBridge: cannot encode buffer as '{encoding}' ({e}); saving as UTF-8."
        )
        return text.encode("utf-8"), "utf-8"


## ================== DiskBridge Class ====================
class DiskBridge:
    """Reads, writes and stats files on the local filesystem."""

    def read(self, path: PathLike) -> bytes:
        """Returns the full content of `path`.

        Raises:
            NotFoundError: The file does not exist.
            IoFailure: Any other read failure (directory, permissions...).
        """
        try:
            with open(path, "rb") as f:
                return f.read()
        except FileNotFoundError as e:
            raise NotFoundError(f"File not found: {path}", path=str(path)) from e
        except OSError as e:
            logger.error(f"DiskBridge: failed to read {str(path)!r}: {e}")
            raise IoFailure(f"Cannot read {path}: {e.strerror or e}", path=str(path)) from e

    def write(self, path: PathLike, data: bytes) -> None:
        """Replaces the content of `path` with `data`.

        Raises:
            IoFailure: The file could not be written.
        """
        try:
            with open(path, "wb") as f:
                f.write(data)
        except OSError as e:
            logger.error(f"DiskBridge: failed to write {str(path)!r}: {e}")
            raise IoFailure(f"Cannot write {path}: {e.strerror or e}", path=str(path)) from e
        logger.debug(f"DiskBridge: wrote {len(data)} bytes to {str(path)!r}")

    def stat(self, path: PathLike) -> DiskStamp:
        """Returns the change stamp of `path`.

        Raises:
            NotFoundError: The file does not exist.
            IoFailure: The file could not be stat'ed.
        """
        try:
            st = os.stat(path)
        except FileNotFoundError as e:
            raise NotFoundError(f"File not found: {path}", path=str(path)) from e
        except OSError as e:
            raise IoFailure(f"Cannot stat {path}: {e.strerror or e}", path=str(path)) from e
        return DiskStamp(mtime_ns=st.st_mtime_ns, size=st.st_size)
