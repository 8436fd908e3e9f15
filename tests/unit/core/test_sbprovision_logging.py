"""
Tests for logging infrastructure.
"""

import json
import logging

import pytest

from sbprovision.core.logging_config import (
    JSONFormatter,
    SensitiveDataFilter,
    _parse_size,
    clear_correlation_id,
    get_correlation_id,
    get_logger,
    set_correlation_id,
    setup_logging,
)
from sbprovision.provisioning.exceptions import NonEmptyEntityError, TransportError
from sbprovision.provisioning.logging_utils import StructuredLogger, track_operation_time


@pytest.fixture(autouse=True)
def restore_root_logger():
    """setup_logging reconfigures the root logger; put it back afterwards."""
    root_logger = logging.getLogger()
    level = root_logger.level
    yield
    for handler in list(root_logger.handlers):
        if any(isinstance(f, SensitiveDataFilter) for f in handler.filters):
            root_logger.removeHandler(handler)
            handler.close()
    root_logger.setLevel(level)
    clear_correlation_id()


def _record(msg="message", **extra):
    record = logging.LogRecord(
        name="sbprovision.test",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg=msg,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestLoggingSetup:
    """Test suite for logging setup."""

    def test_setup_logging_defaults(self):
        """Test setting up logging with defaults."""
        setup_logging()

        root_logger = logging.getLogger()
        assert root_logger.level == logging.INFO
        assert len(root_logger.handlers) == 1

    def test_setup_logging_with_level(self):
        """Test setting up logging with custom level."""
        setup_logging(level="debug")

        assert logging.getLogger().level == logging.DEBUG

    def test_setup_logging_with_file(self, tmp_path):
        """Test setting up logging with file output."""
        log_file = tmp_path / "logs" / "sbprovision.log"
        setup_logging(log_file=str(log_file))

        get_logger("sbprovision.test").info("Test message")

        assert log_file.exists()
        assert "Test message" in log_file.read_text()

    def test_file_output_redacted(self, tmp_path):
        """Test secrets never reach the log file."""
        log_file = tmp_path / "sbprovision.log"
        setup_logging(log_file=str(log_file))

        get_logger("sbprovision.test").info(
            "Connecting with Endpoint=sb://orders/;SharedAccessKeyName=root;SharedAccessKey=c2VjcmV0"
        )

        content = log_file.read_text()
        assert "c2VjcmV0" not in content
        assert "SharedAccessKey=***REDACTED***" in content

    def test_module_levels(self):
        """Test per-module log levels."""
        setup_logging(module_levels={"sbprovision.backends.azure": "DEBUG"})

        assert logging.getLogger("sbprovision.backends.azure").level == logging.DEBUG
        logging.getLogger("sbprovision.backends.azure").setLevel(logging.NOTSET)

    def test_get_logger(self):
        """Test getting a logger instance."""
        logger = get_logger("test.module")

        assert isinstance(logger, logging.Logger)
        assert logger.name == "test.module"


class TestSensitiveDataFilter:
    """Secret redaction."""

    @pytest.mark.parametrize("text, secret", [
        ("SharedAccessKeyName=root;SharedAccessKey=abc123=", "abc123"),
        ("SharedAccessSignature=SharedAccessSignature sr=x&sig=abc123&se=1", "abc123"),
        ("DefaultEndpointsProtocol=https;AccountKey=abc123;", "abc123"),
        ('{"password": "abc123"}', "abc123"),
    ])
    def test_redact(self, text, secret):
        """Test known secret shapes are redacted."""
        redacted = SensitiveDataFilter.redact(text)

        assert secret not in redacted
        assert "***REDACTED***" in redacted

    def test_key_name_kept(self):
        """Test the key name is not mistaken for the key."""
        redacted = SensitiveDataFilter.redact(
            "SharedAccessKeyName=RootManageSharedAccessKey;SharedAccessKey=abc"
        )
        assert redacted == "SharedAccessKeyName=RootManageSharedAccessKey;SharedAccessKey=***REDACTED***"

    def test_filter_redacts_extra_fields(self):
        """Test structured extra fields are redacted too."""
        record = _record("plain", connection_string="Endpoint=sb://x/;SharedAccessKey=abc")

        assert SensitiveDataFilter().filter(record) is True
        assert record.connection_string == "Endpoint=sb://x/;SharedAccessKey=***REDACTED***"


class TestJSONFormatter:
    """JSON output."""

    def test_format(self):
        """Test JSON records carry level, logger, message and extras."""
        record = _record("queue_created: queue/orders", operation="queue_created", namespace="orders")

        data = json.loads(JSONFormatter().format(record))

        assert data["level"] == "INFO"
        assert data["logger"] == "sbprovision.test"
        assert data["message"] == "queue_created: queue/orders"
        assert data["operation"] == "queue_created"
        assert data["namespace"] == "orders"
        assert "timestamp" in data

    def test_correlation_id(self):
        """Test the correlation id is included when set."""
        set_correlation_id("req-42")

        data = json.loads(JSONFormatter().format(_record()))

        assert data["correlation_id"] == "req-42"

    def test_generated_correlation_id(self):
        """Test a correlation id is generated on demand and reused."""
        clear_correlation_id()

        first = get_correlation_id()

        assert first
        assert get_correlation_id() == first


class TestParseSize:
    """Rotation size parsing."""

    @pytest.mark.parametrize("size, expected", [
        ("10MB", 10 * 1024 ** 2),
        ("1GB", 1024 ** 3),
        ("512KB", 512 * 1024),
        ("100B", 100),
        ("2048", 2048),
        (" 1.5mb ", int(1.5 * 1024 ** 2)),
    ])
    def test_parse_size(self, size, expected):
        """Test size strings convert to bytes."""
        assert _parse_size(size) == expected


class TestStructuredLogger:
    """Structured provisioning logs."""

    def test_extra_fields(self, caplog):
        """Test context is attached as record attributes and None is dropped."""
        logger = StructuredLogger("sbprovision.test.structured")

        with caplog.at_level(logging.INFO, logger="sbprovision.test.structured"):
            logger.log_operation("queue_created", "queue", "orders", namespace=None, message_count=0)

        record = caplog.records[-1]
        assert record.getMessage() == "queue_created: queue/orders"
        assert record.entity_type == "queue"
        assert record.message_count == 0
        assert not hasattr(record, "namespace")

    def test_track_operation_time_success(self, caplog):
        """Test the decorator logs the duration of a successful call."""
        logger = StructuredLogger("sbprovision.test.timing")

        @track_operation_time(logger, "noop")
        def noop():
            return 42

        with caplog.at_level(logging.DEBUG, logger="sbprovision.test.timing"):
            assert noop() == 42

        assert caplog.records[-1].operation == "noop"
        assert caplog.records[-1].duration_ms >= 0

    def test_track_operation_time_failure(self, caplog):
        """Test failures are logged and re-raised."""
        logger = StructuredLogger("sbprovision.test.timing")

        @track_operation_time(logger, "explode")
        def explode():
            raise ValueError("boom")

        with caplog.at_level(logging.DEBUG, logger="sbprovision.test.timing"):
            with pytest.raises(ValueError):
                explode()

        record = caplog.records[-1]
        assert record.levelno == logging.ERROR
        assert record.error_type == "ValueError"
        assert record.error_message == "boom"

    def test_track_operation_time_expected_refusal_logs_info(self, caplog):
        """Test typed provisioning outcomes are logged below ERROR."""
        logger = StructuredLogger("sbprovision.test.timing")

        @track_operation_time(logger, "delete_entity")
        def refuse():
            raise NonEmptyEntityError("queue", "orders", 3)

        with caplog.at_level(logging.DEBUG, logger="sbprovision.test.timing"):
            with pytest.raises(NonEmptyEntityError):
                refuse()

        record = caplog.records[-1]
        assert record.levelno == logging.INFO
        assert record.error_type == "NonEmptyEntityError"
        assert record.error_code == "NonEmptyEntity"

    def test_track_operation_time_transport_failure_logs_warning(self, caplog):
        """Test transport failures are logged at WARNING."""
        logger = StructuredLogger("sbprovision.test.timing")

        @track_operation_time(logger, "create_entity")
        def unreachable():
            raise TransportError("create_queue", "connection refused")

        with caplog.at_level(logging.DEBUG, logger="sbprovision.test.timing"):
            with pytest.raises(TransportError):
                unreachable()

        assert caplog.records[-1].levelno == logging.WARNING
        assert not [r for r in caplog.records if r.levelno >= logging.ERROR]
