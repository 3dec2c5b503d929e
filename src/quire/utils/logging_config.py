# quire/utils/logging_config.py
"""quire.utils.logging_config
============================

Logging configuration for applications embedding the quire editing core.
It defines the global logger objects and a single setup function,
`setup_logging`, which attaches handlers and levels from the ``[logging]``
section of the configuration dictionary.

Features:
    - Rotating file logging for general events (editor.log by default).
    - Optional console logging to stderr with its own level.
    - Optional separate error log file (error.log) for ERROR and CRITICAL events.
    - Optional language-server trace log (lsptrace.log) enabled via the
      QUIRE_LSPTRACE environment variable.
    - Log directories are created on demand; the system temp directory is
      used when that fails.
    - Safe reconfiguration: existing root handlers are replaced, so calling it
      twice (e.g. in tests) does not duplicate records.
    - Never raises; problems are reported to stderr.

Usage:
    >>> from quire.utils import logging_config
    >>> logging_config.setup_logging({"logging": {"file_level": "INFO"}})

Globals:
    logger: Main application logger ("quire").
    LSP_LOGGER: Logger for language-server traffic traces ("quire.lsp").
"""

import logging
import logging.handlers
import os
import sys
import tempfile
from typing import Any, Optional


# ======================== Global loggers ========================
# Created at import time; unconfigured until ``setup_logging()`` runs.
logger = logging.getLogger("quire")
LSP_LOGGER = logging.getLogger("quire.lsp")

TRACE_ENV_VAR = "QUIRE_LSPTRACE"

FILE_FORMAT = (
    "%(asctime)s - %(levelname)-8s - %(name)-15s - %(message)s (%(filename)s:%(lineno)d)"
)
CONSOLE_FORMAT = "%(levelname)-8s - %(name)-12s - %(message)s"
TRACE_FORMAT = "%(asctime)s - %(message)s"

MB = 1024 * 1024


def _level(name: Any, default: int) -> int:
    return getattr(logging, str(name).upper(), default)


def _prepare_log_path(filename: str, fallback_name: str) -> str:
    """Creates the parent directory of `filename`, or falls back to the temp dir."""
    log_dir = os.path.dirname(filename)
    if log_dir and not os.path.exists(log_dir):
        try:
            os.makedirs(log_dir)
        except OSError as e_mkdir:
            print(f"Error creating log directory '{log_dir}': {e_mkdir}", file=sys.stderr)
            filename = os.path.join(tempfile.gettempdir(), fallback_name)
            print(f"Logging to temporary file: '{filename}'", file=sys.stderr)
    return filename


def _rotating_handler(
    filename: str,
    fallback_name: str,
    *,
    max_bytes: int,
    backups: int,
    level: int,
    fmt: str,
) -> Optional[logging.Handler]:
    """Builds a rotating file handler, or returns None after reporting to stderr."""
    path = _prepare_log_path(filename, fallback_name)
    try:
        handler = logging.handlers.RotatingFileHandler(
            path, maxBytes=max_bytes, backupCount=backups, encoding="utf-8"
        )
    except Exception as e:
        print(f"Error setting up log file '{path}': {e}. File logging may be impaired.",
              file=sys.stderr)
        return None
    handler.setFormatter(logging.Formatter(fmt))
    handler.setLevel(level)
    return handler


def _configure_lsp_trace(log_dir: str) -> None:
    """Attaches lsptrace.log to ``quire.lsp`` when tracing is switched on."""
    LSP_LOGGER.propagate = False
    LSP_LOGGER.setLevel(logging.DEBUG)
    LSP_LOGGER.handlers = []

    if os.environ.get(TRACE_ENV_VAR, "").lower() not in {"1", "true", "yes"}:
        LSP_LOGGER.addHandler(logging.NullHandler())
        LSP_LOGGER.disabled = True
        logging.debug("LSP tracing is disabled.")
        return

    trace_handler = _rotating_handler(
        os.path.join(log_dir, "lsptrace.log"),
        "quire-lsptrace.log",
        max_bytes=1 * MB,
        backups=3,
        level=logging.DEBUG,
        fmt=TRACE_FORMAT,
    )
    if trace_handler is None:
        LSP_LOGGER.disabled = True
        return
    LSP_LOGGER.addHandler(trace_handler)
    LSP_LOGGER.disabled = False
    logging.info("LSP tracing enabled, logging to '%s'.", trace_handler.baseFilename)


def setup_logging(config: Optional[dict[str, Any]] = None) -> None:
    """Configures application-wide logging handlers and log levels.

    Root handlers, in this order:

    1. File handler: rotating ``log_file`` (default ``editor.log``) at
       ``file_level`` (default DEBUG).
    2. Console handler: optional stderr output at ``console_level``
       (default WARNING).
    3. Error-file handler: optional rotating error.log next to the main log,
       ERROR and above.

    The ``quire.lsp`` logger is detached from the root and writes to
    lsptrace.log only when ``QUIRE_LSPTRACE`` is ``1/true/yes``.

    Args:
        config (dict | None): Application configuration. Only the
            ``["logging"]`` section is consulted; recognised keys are
            ``file_level``, ``console_level``, ``log_to_console``,
            ``separate_error_log`` and ``log_file``.
    """
    log_cfg = (config or {}).get("logging", {})
    file_level = _level(log_cfg.get("file_level", "DEBUG"), logging.DEBUG)
    log_filename = os.path.expanduser(log_cfg.get("log_file", "editor.log"))
    log_dir = os.path.dirname(log_filename)

    handlers: list[logging.Handler] = []
    file_handler = _rotating_handler(
        log_filename, "quire.log", max_bytes=2 * MB, backups=5, level=file_level, fmt=FILE_FORMAT
    )
    if file_handler is not None:
        handlers.append(file_handler)
        log_dir = os.path.dirname(file_handler.baseFilename)

    if log_cfg.get("log_to_console", True):
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))
        console_handler.setLevel(_level(log_cfg.get("console_level", "WARNING"), logging.WARNING))
        handlers.append(console_handler)

    if log_cfg.get("separate_error_log", False):
        error_handler = _rotating_handler(
            os.path.join(log_dir, "error.log"),
            "quire-error.log",
            max_bytes=1 * MB,
            backups=3,
            level=logging.ERROR,
            fmt=FILE_FORMAT,
        )
        if error_handler is not None:
            handlers.append(error_handler)

    root_logger = logging.getLogger()
    root_logger.handlers = handlers
    root_logger.setLevel(file_level)

    _configure_lsp_trace(log_dir)

    for handler in handlers:
        target = getattr(handler, "baseFilename", "stderr")
        logging.info(f"Logging to '{target}' at level: {logging.getLevelName(handler.level)}.")
