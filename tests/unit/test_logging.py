# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for logging setup."""

import json
import logging
import os
from unittest.mock import patch

import structlog

from src.core.config.settings import Settings
from src.utils.logging import setup_logging


def installed_formatters() -> list[structlog.stdlib.ProcessorFormatter]:
    return [
        handler.formatter
        for handler in logging.getLogger().handlers
        if isinstance(handler.formatter, structlog.stdlib.ProcessorFormatter)
    ]


def make_record(name: str, msg: str, *args: object) -> logging.LogRecord:
    return logging.LogRecord(name, logging.WARNING, __file__, 1, msg, args, None)


class TestSetupLogging:
    """Tests for structlog configuration."""

    def setup_method(self):
        self._root_level = logging.getLogger().level

    def teardown_method(self):
        root_logger = logging.getLogger()
        for handler in list(root_logger.handlers):
            if isinstance(handler.formatter, structlog.stdlib.ProcessorFormatter):
                root_logger.removeHandler(handler)
        root_logger.setLevel(self._root_level)
        structlog.reset_defaults()

    def test_development_uses_console_renderer(self):
        """Test development settings render for the console."""
        with patch.dict(os.environ, {}, clear=True):
            settings = Settings(environment="development", log_level="INFO")

        setup_logging(settings)

        formatters = installed_formatters()
        assert len(formatters) == 1
        assert isinstance(formatters[0].processors[-1], structlog.dev.ConsoleRenderer)
        assert logging.getLogger("src").level == logging.INFO
        assert logging.getLogger("sqlalchemy").level == logging.WARNING

    def test_production_renders_stdlib_records_as_json(self):
        """Test %-style stdlib records come out as JSON with logger name and level."""
        env = {"DB_PASSWORD": "a-real-production-password"}
        with patch.dict(os.environ, env, clear=True):
            settings = Settings(environment="production", debug=False, log_level="WARNING")

        setup_logging(settings)

        formatter = installed_formatters()[0]
        record = make_record(
            "src.domains.enrollment.bulk",
            "Bulk item failed: request=%s, code=%s",
            "req-1",
            "not_pending",
        )
        data = json.loads(formatter.format(record))

        assert data["event"] == "Bulk item failed: request=req-1, code=not_pending"
        assert data["logger"] == "src.domains.enrollment.bulk"
        assert data["level"] == "warning"
        assert "timestamp" in data

    def test_setup_twice_keeps_one_handler(self):
        """Test repeated setup replaces its own handler."""
        with patch.dict(os.environ, {}, clear=True):
            settings = Settings(environment="development", log_level="DEBUG")

        setup_logging(settings)
        setup_logging(settings)

        assert len(installed_formatters()) == 1
        assert logging.getLogger("src").level == logging.DEBUG

    def test_module_logger_reaches_handlers(self, caplog):
        """Test a module logger still writes records after setup."""
        with patch.dict(os.environ, {}, clear=True):
            settings = Settings(environment="development", log_level="INFO")
        setup_logging(settings)

        logging.getLogger("src.tests.configured").warning("Bulk item %s failed", "req-1")

        records = [r for r in caplog.records if r.name == "src.tests.configured"]
        assert len(records) == 1
        assert records[0].getMessage() == "Bulk item req-1 failed"
