"""
Tests for configuration and structured logging.
"""

import json
import logging

import pytest


class TestSettings:

    def test_defaults(self):
        from brandaudit.config import settings
        assert settings.ENGINE_VERSION == "1.0.0"
        assert settings.VARIANCE_THRESHOLD == pytest.approx(0.10)
        assert settings.MINIMUM_SOURCES == 2
        assert settings.Z_SCORE_THRESHOLD == pytest.approx(2.0)
        assert settings.SIMILARITY_THRESHOLD == pytest.approx(0.8)
        assert settings.MAX_SOURCE_AGE_DAYS == 730

    def test_settings_are_frozen(self):
        from dataclasses import FrozenInstanceError
        from brandaudit.config import settings
        with pytest.raises(FrozenInstanceError):
            settings.VARIANCE_THRESHOLD = 0.5

    def test_engines_use_settings(self):
        from brandaudit.config import settings
        from brandaudit.sources import source_assessor
        from brandaudit.variance import variance_validator
        assert variance_validator.variance_threshold == settings.VARIANCE_THRESHOLD
        assert variance_validator.z_score_threshold == settings.Z_SCORE_THRESHOLD
        assert source_assessor.max_source_age_days == settings.MAX_SOURCE_AGE_DAYS


class TestLogging:
    """Structured logging tests."""

    def _record(self, msg="Test message"):
        return logging.LogRecord(
            name="brandaudit.test",
            level=logging.INFO,
            pathname="test.py",
            lineno=1,
            msg=msg,
            args=(),
            exc_info=None,
        )

    def test_json_formatter(self):
        from brandaudit.logging import JSONFormatter

        parsed = json.loads(JSONFormatter().format(self._record()))
        assert parsed["level"] == "INFO"
        assert parsed["message"] == "Test message"
        assert parsed["logger"] == "brandaudit.test"
        assert "timestamp" in parsed

    def test_json_formatter_extra_fields(self):
        from brandaudit.logging import JSONFormatter

        record = self._record("Audit complete")
        record.brand = "Acme"
        record.overall_score = 7.4
        record.not_whitelisted = "hidden"
        parsed = json.loads(JSONFormatter().format(record))
        assert parsed["brand"] == "Acme"
        assert parsed["overall_score"] == 7.4
        assert "not_whitelisted" not in parsed

    def test_json_formatter_exception(self):
        from brandaudit.logging import JSONFormatter
        import sys

        try:
            raise RuntimeError("boom")
        except RuntimeError:
            record = logging.LogRecord(
                "brandaudit.test", logging.ERROR, "test.py", 1,
                "Failed", (), sys.exc_info(),
            )
        parsed = json.loads(JSONFormatter().format(record))
        assert "RuntimeError: boom" in parsed["exception"]

    def test_get_logger(self):
        from brandaudit.logging import get_logger
        log = get_logger("auditor")
        assert log.name == "brandaudit.auditor"

    def test_setup_logging_single_handler(self):
        from brandaudit.logging import setup_logging
        setup_logging()
        root = setup_logging()
        assert root.name == "brandaudit"
        assert len(root.handlers) == 1

    def test_module_loggers_are_children(self):
        from brandaudit import sources
        assert sources.logger.name == "brandaudit.sources"

    def test_text_formatter_appends_context(self):
        from brandaudit.logging import TextFormatter

        record = self._record("Sources assessed")
        record.sources_count = 3
        record.not_whitelisted = "hidden"
        line = TextFormatter().format(record)
        assert "brandaudit.test | Sources assessed [sources_count=3]" in line
        assert "hidden" not in line

    def test_text_formatter_without_context(self):
        from brandaudit.logging import TextFormatter

        line = TextFormatter().format(self._record())
        assert line.endswith("| Test message")

    def test_setup_logging_overrides(self):
        from brandaudit.logging import JSONFormatter, TextFormatter, setup_logging

        root = setup_logging(level="debug", fmt="text")
        assert root.level == logging.DEBUG
        assert isinstance(root.handlers[0].formatter, TextFormatter)

        root = setup_logging(level="warning", fmt="json")
        assert root.level == logging.WARNING
        assert isinstance(root.handlers[0].formatter, JSONFormatter)
        assert len(root.handlers) == 1
