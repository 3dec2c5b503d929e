# tests/utils/test_logging_config.py
"""Unit tests for logging configuration utility.
=================================================

Tests for the logging setup utility in `quire.utils.logging_config`.

This module verifies that `setup_logging`:
- Creates rotating file handlers for the main log and a separate error log
  when `separate_error_log` is enabled.
- Honors the configured levels for each handler.
- Can disable console logging when `log_to_console` is set to False.
- Enables the language-server trace log only through ``QUIRE_LSPTRACE``.

The tests run in a temporary working directory to avoid touching real files.
"""

import logging

import pytest

from quire.utils import logging_config


@pytest.fixture(autouse=True)
def restore_logging():
    """Puts the root and trace loggers back the way the test found them."""
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    lsp = logging_config.LSP_LOGGER
    saved_lsp = (lsp.handlers[:], lsp.level, lsp.propagate, lsp.disabled)
    yield
    for handler in root.handlers:
        if handler not in saved_handlers:
            handler.close()
    for handler in lsp.handlers:
        handler.close()
    root.handlers = saved_handlers
    root.setLevel(saved_level)
    lsp.handlers, lsp.level, lsp.propagate, lsp.disabled = (
        saved_lsp[0], saved_lsp[1], saved_lsp[2], saved_lsp[3],
    )


def test_setup_logging_creates_handlers(tmp_path, monkeypatch) -> None:
    """`setup_logging` should add rotating file handlers with proper levels.

    Scenario:
    - Console logging is disabled.
    - Separate error log is requested.
    - File handler level is INFO.
    - Error file handler level is ERROR.
    """
    monkeypatch.chdir(tmp_path)

    logging_config.setup_logging(
        {
            "logging": {
                "file_level": "INFO",
                "console_level": "ERROR",
                "log_to_console": False,
                "separate_error_log": True,
            }
        }
    )

    root = logging.getLogger()
    names = {type(h).__name__ for h in root.handlers}

    assert "RotatingFileHandler" in names
    # Exactly two handlers: main file + error file
    assert len(root.handlers) == 2
    assert root.handlers[0].level == logging.INFO
    assert root.handlers[1].level == logging.ERROR
    assert (tmp_path / "editor.log").exists()
    assert (tmp_path / "error.log").exists()


def test_log_file_in_nested_directory(tmp_path) -> None:
    """A ``log_file`` inside a missing directory creates that directory."""
    target = tmp_path / "logs" / "deep" / "quire.log"

    logging_config.setup_logging(
        {"logging": {"log_file": str(target), "log_to_console": True, "console_level": "ERROR"}}
    )

    root = logging.getLogger()
    assert target.exists()
    assert len(root.handlers) == 2
    assert isinstance(root.handlers[1], logging.StreamHandler)
    assert root.handlers[1].level == logging.ERROR


def test_reconfiguration_does_not_duplicate_handlers(tmp_path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    config = {"logging": {"log_to_console": False}}

    logging_config.setup_logging(config)
    logging_config.setup_logging(config)

    assert len(logging.getLogger().handlers) == 1


def test_lsp_trace_disabled_by_default(tmp_path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv(logging_config.TRACE_ENV_VAR, raising=False)

    logging_config.setup_logging({"logging": {"log_to_console": False}})

    lsp = logging_config.LSP_LOGGER
    assert lsp.disabled
    assert not lsp.propagate
    assert not (tmp_path / "lsptrace.log").exists()


def test_lsp_trace_enabled_by_environment(tmp_path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv(logging_config.TRACE_ENV_VAR, "true")

    logging_config.setup_logging({"logging": {"log_to_console": False}})
    logging_config.LSP_LOGGER.debug("-> didOpen file:///x v1")
    for handler in logging_config.LSP_LOGGER.handlers:
        handler.flush()

    assert not logging_config.LSP_LOGGER.disabled
    assert "didOpen" in (tmp_path / "lsptrace.log").read_text(encoding="utf-8")
