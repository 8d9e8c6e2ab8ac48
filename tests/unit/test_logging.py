"""
Copyright (c) 2025 Eric C. Mumford (@heymumford)
This file is part of TestIT Importer, licensed under the MIT License.
See LICENSE file for details.
"""

"""
Test suite for the contextual logging module.
"""

import json
import logging
from unittest.mock import MagicMock

import pytest

from testit_importer.core.logging import (
    ROOT_LOGGER_NAME,
    ContextFilter,
    JSONFormatter,
    LogRedactor,
    configure_logging,
    correlation_id,
    correlation_manager,
    log_operation,
)


@pytest.fixture
def restore_root_logger():
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    handlers, level, propagate = list(logger.handlers), logger.level, logger.propagate
    yield logger
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    for handler in handlers:
        logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = propagate


@pytest.mark.unit
class TestLogRedactor:
    def test_redacts_private_token_header(self):
        redactor = LogRedactor()
        message = "Headers: Authorization: PrivateToken abcdef1234567890"

        assert redactor.redact(message) == "Headers: Authorization: PrivateToken [REDACTED]"

    def test_redacts_config_keys(self):
        redactor = LogRedactor()

        redacted = redactor.redact('{"privateToken": "abcdef1234567890", "password": "pw"}')

        assert "abcdef1234567890" not in redacted
        assert '"pw"' not in redacted
        assert "[REDACTED]" in redacted

    def test_leaves_other_text_alone(self):
        message = "Importing project Demo Project"
        assert LogRedactor().redact(message) == message

    def test_non_strings_pass_through(self):
        assert LogRedactor().redact(42) == 42


@pytest.mark.unit
class TestCorrelationId:
    def test_context_manager_sets_and_restores(self):
        correlation_manager.set_correlation_id("outer")
        try:
            with correlation_id("inner") as value:
                assert value == "inner"
                assert correlation_manager.get_correlation_id() == "inner"
            assert correlation_manager.get_correlation_id() == "outer"
        finally:
            correlation_manager.clear_correlation_id()

    def test_generates_id(self):
        with correlation_id() as value:
            assert value.startswith("import-")

    def test_filter_stamps_and_redacts(self):
        record = logging.LogRecord(
            "testit_importer.test", logging.INFO, __file__, 1,
            "token=abcdef1234567890", None, None,
        )

        with correlation_id("run-1"):
            assert ContextFilter().filter(record)

        assert record.correlation_id == "run-1"
        assert "abcdef1234567890" not in record.msg


@pytest.mark.unit
class TestJSONFormatter:
    def test_formats_record(self):
        record = logging.LogRecord(
            "testit_importer.test", logging.WARNING, __file__, 7, "Skipped %s", ("a.png",), None
        )
        record.correlation_id = "run-2"
        record.context_data = {"phase": "attachments"}

        data = json.loads(JSONFormatter().format(record))

        assert data["level"] == "WARNING"
        assert data["message"] == "Skipped a.png"
        assert data["correlation_id"] == "run-2"
        assert data["context"] == {"phase": "attachments"}


@pytest.mark.unit
class TestLogOperation:
    def test_logs_start_and_completion(self):
        logger = MagicMock()

        with log_operation(logger, "sections", context={"project": "Demo"}):
            pass

        assert logger.log.call_count == 2
        start, end = logger.log.call_args_list
        assert start.args[1:] == ("Starting %s", "sections")
        assert start.kwargs["extra"]["context_data"]["project"] == "Demo"
        assert end.args[1] == "Completed %s in %.2fs"
        logger.error.assert_not_called()

    def test_logs_and_reraises_failure(self):
        logger = MagicMock()

        with pytest.raises(RuntimeError, match="boom"):
            with log_operation(logger, "attributes"):
                raise RuntimeError("boom")

        logger.error.assert_called_once()
        context = logger.error.call_args.kwargs["extra"]["context_data"]
        assert context["error_type"] == "RuntimeError"
        assert context["error"] == "boom"
        assert logger.error.call_args.kwargs["exc_info"] is True


@pytest.mark.unit
class TestConfigureLogging:
    def test_file_receives_debug_records(self, tmp_path, restore_root_logger):
        log_file = tmp_path / "logs" / "import-log.txt"

        configure_logging(level="WARNING", log_file=str(log_file), use_rich=False)
        logger = logging.getLogger("testit_importer.tms_client")
        logger.debug("Request headers PrivateToken abcdef1234567890")
        for handler in restore_root_logger.handlers:
            handler.flush()

        content = log_file.read_text()
        assert "Request headers PrivateToken [REDACTED]" in content
        assert restore_root_logger.level == logging.DEBUG
        assert restore_root_logger.propagate is False

    def test_debug_forces_console_level(self, restore_root_logger):
        configure_logging(level="ERROR", use_rich=False, debug=True)

        assert [handler.level for handler in restore_root_logger.handlers] == [logging.DEBUG]

