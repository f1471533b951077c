"""
Test suite for logging helpers.

System role: Verification of structured logging utilities
"""

import logging

import pytest

from knowledge_rag.observability.log_utils import (
    log_exception_with_context,
    log_with_context,
    safe_log_value,
)
from knowledge_rag.observability.logger import configure_logging


class TestSafeLogValue:
    """Test suite for safe_log_value()."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            (None, "None"),
            ("text", "text"),
            ([1, 2, 3], "list(3 items)"),
            ({"a": 1}, "dict(1 keys)"),
            (42, "42"),
        ],
    )
    def test_safe_log_value_should_summarize_values(self, value, expected: str) -> None:
        assert safe_log_value(value) == expected

    def test_safe_log_value_should_truncate_long_strings(self) -> None:
        result = safe_log_value("x" * 600, max_length=500)

        assert result.startswith("x" * 500)
        assert result.endswith("... (truncated, 600 total)")


class TestLogWithContext:
    """Test suite for structured log helpers."""

    def test_log_with_context_should_attach_extras(self, caplog: pytest.LogCaptureFixture) -> None:
        logger = logging.getLogger("knowledge_rag.tests")

        with caplog.at_level(logging.INFO, logger="knowledge_rag.tests"):
            log_with_context(logger, logging.INFO, "Indexed file", module_key="blog-post", chunks=[1, 2])

        record = caplog.records[-1]
        assert record.getMessage() == "Indexed file"
        assert record.module_key == "blog-post"
        assert record.chunks == "list(2 items)"

    def test_log_exception_with_context_should_record_error(self, caplog: pytest.LogCaptureFixture) -> None:
        logger = logging.getLogger("knowledge_rag.tests")

        with caplog.at_level(logging.ERROR, logger="knowledge_rag.tests"):
            log_exception_with_context(logger, "Upsert failed", RuntimeError("boom"), file_id="f-1")

        record = caplog.records[-1]
        assert record.levelno == logging.ERROR
        assert record.error_type == "RuntimeError"
        assert record.error_msg == "boom"
        assert record.file_id == "f-1"


class TestConfigureLogging:
    """Test suite for configure_logging()."""

    def test_configure_logging_should_set_level_and_quiet_clients(self) -> None:
        root = logging.getLogger()
        previous_handlers, previous_level = root.handlers[:], root.level
        try:
            configure_logging("debug")

            assert root.level == logging.DEBUG
            assert len(root.handlers) == 1
            assert logging.getLogger("httpx").level == logging.WARNING
        finally:
            for handler in root.handlers[:]:
                root.removeHandler(handler)
            for handler in previous_handlers:
                root.addHandler(handler)
            root.setLevel(previous_level)
