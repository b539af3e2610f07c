"""Tests for logging setup and the purchase audit trail"""

import json
import logging
import sys

import pytest

from cloudcommit.core.base.models import PurchaseResult
from cloudcommit.core.logging import (
    LoggerManager,
    PurchaseAuditLogger,
    SecurityFilter,
    StructuredFormatter,
)


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    audit = logging.getLogger("cloudcommit.audit")
    audit_handlers = list(audit.handlers)
    yield
    root.handlers = handlers
    root.setLevel(level)
    for handler in audit.handlers:
        if handler not in audit_handlers:
            handler.close()
    audit.handlers = audit_handlers


def make_record(msg, **extra):
    record = logging.LogRecord("cloudcommit.test", logging.INFO, __file__, 10, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestStructuredFormatter:
    """Test JSON log formatting"""

    def test_format(self):
        output = json.loads(StructuredFormatter().format(make_record("bought", region="us-east-1")))

        assert output["message"] == "bought"
        assert output["level"] == "INFO"
        assert output["logger"] == "cloudcommit.test"
        assert output["region"] == "us-east-1"
        assert "timestamp" in output

    def test_exception(self):
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            record = logging.LogRecord("x", logging.ERROR, __file__, 1, "failed", None, sys.exc_info())

        output = json.loads(StructuredFormatter().format(record))
        assert output["exception"]["type"] == "RuntimeError"
        assert output["exception"]["message"] == "boom"


class TestSecurityFilter:
    """Test secret redaction"""

    def test_redacts(self):
        record = make_record("using client_secret=abc123 for tenant")
        assert SecurityFilter().filter(record)
        assert "abc123" not in record.msg
        assert "***REDACTED***" in record.msg

    def test_leaves_plain_messages(self):
        record = make_record("Purchasing 1/3: 2x dc2.large")
        SecurityFilter().filter(record)
        assert record.msg == "Purchasing 1/3: 2x dc2.large"


class TestAuditLogger:
    """Test the purchase audit trail"""

    def test_log_purchase(self, make_recommendation):
        result = PurchaseResult.succeeded(make_recommendation(), "rn-1", "off-dc2", 1000.0, "ok")
        event = PurchaseAuditLogger().log_purchase(result)

        assert event["success"] is True
        assert event["commitment_id"] == "rn-1"
        assert event["resource_type"] == "dc2.large"
        assert event["term"] == "1yr"

    def test_writes_json_lines(self, tmp_path, make_recommendation, restore_root_logger):
        audit_file = tmp_path / "logs" / "audit.log"
        manager = LoggerManager()
        manager.setup_logging(level="DEBUG", audit_file=audit_file, console=False)

        manager.get_audit_logger().log_purchase(PurchaseResult.failed(make_recommendation(), "nope"))
        for handler in logging.getLogger("cloudcommit.audit").handlers:
            handler.flush()

        line = json.loads(audit_file.read_text().splitlines()[-1])
        assert line["level"] == "WARNING"
        assert line["audit"]["message"] == "nope"
        assert line["audit"]["success"] is False


class TestLoggerManager:
    """Test root logger configuration"""

    def test_setup(self, tmp_path, restore_root_logger):
        log_file = tmp_path / "app.log"
        LoggerManager().setup_logging(level="WARNING", log_file=log_file, structured=True)

        root = logging.getLogger()
        assert root.level == logging.WARNING
        assert len(root.handlers) == 2
        assert logging.getLogger("botocore").level == logging.WARNING

    def test_custom_handler(self, restore_root_logger):
        handler = logging.NullHandler()
        LoggerManager().setup_logging(handler=handler)
        assert logging.getLogger().handlers == [handler]
