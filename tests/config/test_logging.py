"""Tests for structlog configuration."""

from __future__ import annotations

import io
import json
import logging
from collections.abc import Generator

import pytest
import structlog

from formlogic.config.logging import configure_logging, resolve_level


@pytest.fixture(autouse=True)
def _restore_logging() -> Generator[None]:
    """Restore root logger state after each test."""
    root = logging.getLogger()
    original_handlers = root.handlers[:]
    original_level = root.level
    fl = logging.getLogger("formlogic")
    fl_level = fl.level
    yield
    root.handlers = original_handlers
    root.setLevel(original_level)
    fl.setLevel(fl_level)


class TestConfigureLogging:
    def test_verbose_enables_debug(self) -> None:
        configure_logging(verbose=True)
        assert logging.getLogger("formlogic").level == logging.DEBUG
        assert logging.getLogger().level == logging.WARNING

    def test_default_is_warning(self) -> None:
        configure_logging()
        assert logging.getLogger("formlogic").level == logging.WARNING

    def test_quiet_is_error(self) -> None:
        assert resolve_level(quiet=True) == logging.ERROR
        assert resolve_level(verbose=True, quiet=True) == logging.DEBUG

    def test_json_mode_output(self) -> None:
        stream = io.StringIO()
        configure_logging(verbose=True, log_json=True, stream=stream)
        structlog.get_logger("formlogic.test").warning("json test", answer=42)
        parsed = json.loads(stream.getvalue().strip())
        assert parsed["event"] == "json test"
        assert parsed["answer"] == 42
        assert parsed["level"] == "warning"
        assert parsed["logger"] == "formlogic.test"
        assert "timestamp" in parsed

    def test_stdlib_logger_gets_structured_fields(self) -> None:
        stream = io.StringIO()
        configure_logging(verbose=True, log_json=True, stream=stream)
        logging.getLogger("formlogic.domain.engine").debug("Pass %d", 2)
        parsed = json.loads(stream.getvalue().strip())
        assert parsed["event"] == "Pass 2"
        assert parsed["level"] == "debug"

    def test_reconfigure_does_not_stack_handlers(self) -> None:
        configure_logging()
        configure_logging()
        names = [h.get_name() for h in logging.getLogger().handlers]
        assert names.count("formlogic") == 1
