"""Tests for tsgen.logging."""

from __future__ import annotations

import logging
from pathlib import Path

from tsgen.logging import configure_logging, get_logger


def test_get_logger_is_scoped_under_tsgen() -> None:
    assert get_logger("zones").name == "tsgen.zones"
    assert get_logger().name == "tsgen"


def test_verbose_console_names_the_worker_thread() -> None:
    logger = configure_logging(verbose=True)

    (handler,) = logger.handlers
    assert logger.level == logging.DEBUG
    assert "%(threadName)s" in handler.formatter._fmt


def test_quiet_console_omits_thread_name() -> None:
    logger = configure_logging()

    (handler,) = logger.handlers
    assert logger.level == logging.INFO
    assert "%(threadName)s" not in handler.formatter._fmt


def test_log_file_directory_is_created(tmp_path: Path) -> None:
    log_file = tmp_path / "logs" / "tsgen.log"

    logger = configure_logging(log_file=log_file)
    get_logger("generator").info("rendered order.ts")
    for handler in logger.handlers:
        handler.flush()

    assert "rendered order.ts" in log_file.read_text(encoding="utf-8")


def test_reconfiguring_replaces_handlers() -> None:
    configure_logging()
    logger = configure_logging(verbose=True)

    assert len(logger.handlers) == 1
