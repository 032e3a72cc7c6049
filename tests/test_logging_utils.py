"""Tests for structured logging helpers."""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Iterator
from unittest.mock import patch

import pytest

from prd_storage.logging_utils import (
    StorageLoggerAdapter,
    StructuredJsonFormatter,
    configure_logging_from_environment,
    configure_structured_logging,
    get_storage_logger,
)


def make_record(msg: str, **extra: object) -> logging.LogRecord:
    record = logging.LogRecord("prd_storage.test", logging.WARNING, __file__, 1, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.fixture
def package_logger() -> Iterator[logging.Logger]:
    """Restore the package logger after a test reconfigures it."""
    logger = logging.getLogger("prd_storage")
    handlers, level = list(logger.handlers), logger.level
    yield logger
    logger.handlers[:] = handlers
    logger.setLevel(level)


class TestStructuredJsonFormatter:
    """Tests for StructuredJsonFormatter."""

    def test_basic_fields(self) -> None:
        output = json.loads(StructuredJsonFormatter().format(make_record("hello")))

        assert output["level"] == "WARNING"
        assert output["logger"] == "prd_storage.test"
        assert output["message"] == "hello"
        assert output["timestamp"].endswith("+00:00")
        assert "context" not in output

    def test_extra_fields_are_grouped(self) -> None:
        output = json.loads(
            StructuredJsonFormatter().format(
                make_record("hello", record_type="feature", payload=object())
            )
        )

        assert output["context"]["record_type"] == "feature"
        assert isinstance(output["context"]["payload"], str)

    def test_exception(self) -> None:
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            record = make_record("failed")
            record.exc_info = sys.exc_info()

        output = json.loads(StructuredJsonFormatter().format(record))

        assert "RuntimeError: boom" in output["exception"]


class TestLoggerConfiguration:
    """Tests for logger configuration helpers."""

    def test_get_storage_logger(self) -> None:
        assert get_storage_logger("sync").name == "prd_storage.sync"

    def test_configure_replaces_handlers(self, package_logger: logging.Logger) -> None:
        configure_structured_logging(logging.DEBUG)
        configure_structured_logging(logging.INFO)

        assert package_logger.level == logging.INFO
        assert len(package_logger.handlers) == 1
        assert isinstance(package_logger.handlers[0].formatter, StructuredJsonFormatter)

    def test_text_output(self, package_logger: logging.Logger) -> None:
        configure_structured_logging(json_output=False)

        formatter = package_logger.handlers[0].formatter
        assert formatter is not None
        assert not isinstance(formatter, StructuredJsonFormatter)

    def test_from_environment(self, package_logger: logging.Logger) -> None:
        env = {"PRD_STORAGE_LOG_LEVEL": "debug", "PRD_STORAGE_LOG_FORMAT": "text"}
        with patch.dict("os.environ", env, clear=True):
            configure_logging_from_environment()

        assert package_logger.level == logging.DEBUG
        assert not isinstance(package_logger.handlers[0].formatter, StructuredJsonFormatter)

    def test_from_environment_unknown_level(self, package_logger: logging.Logger) -> None:
        with patch.dict("os.environ", {"PRD_STORAGE_LOG_LEVEL": "chatty"}, clear=True):
            configure_logging_from_environment()

        assert package_logger.level == logging.INFO
        assert isinstance(package_logger.handlers[0].formatter, StructuredJsonFormatter)


class TestStorageLoggerAdapter:
    """Tests for StorageLoggerAdapter."""

    def test_binds_context(self) -> None:
        adapter = StorageLoggerAdapter(
            logging.getLogger("prd_storage.adapter"), {"record_type": "prd"}
        )
        extra = {"record_id": "p1"}

        msg, kwargs = adapter.process("hello", {"extra": extra})

        assert msg == "hello"
        assert kwargs["extra"] == {"record_id": "p1", "record_type": "prd"}
        assert extra == {"record_id": "p1"}

    def test_call_values_win(self) -> None:
        adapter = StorageLoggerAdapter(
            logging.getLogger("prd_storage.adapter"), {"record_type": "prd"}
        )

        _, kwargs = adapter.process("hello", {"extra": {"record_type": "feature"}})

        assert kwargs["extra"]["record_type"] == "feature"

    def test_context_reaches_records(self, caplog: pytest.LogCaptureFixture) -> None:
        adapter = StorageLoggerAdapter(
            logging.getLogger("prd_storage.adapter"), {"record_type": "prd"}
        )

        with caplog.at_level(logging.WARNING):
            adapter.warning("remote failed")

        assert caplog.records[-1].record_type == "prd"
