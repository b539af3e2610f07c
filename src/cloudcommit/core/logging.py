"""Logging configuration, JSON formatting and the purchase audit trail"""

import json
import logging
import logging.handlers
import re
import sys
import traceback
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

EXTRA_FIELDS = ("provider", "region", "resource_type", "commitment_id", "offering_id", "service")

QUIET_LOGGERS = ("boto3", "botocore", "urllib3", "httpx", "httpcore", "azure", "google")


class StructuredFormatter(logging.Formatter):
    """JSON structured logging formatter"""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON"""
        log_data = {
            "timestamp": datetime.utcnow().isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
            "thread_name": record.threadName,
        }

        for name in EXTRA_FIELDS:
            if hasattr(record, name):
                log_data[name] = getattr(record, name)

        if hasattr(record, "audit"):
            log_data["audit"] = record.audit

        if record.exc_info:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": traceback.format_exception(*record.exc_info),
            }

        return json.dumps(log_data, default=str)


class SecurityFilter(logging.Filter):
    """Filter to redact sensitive information from logs"""

    SENSITIVE_PATTERNS = [
        "password", "secret", "token", "api_key",
        "access_key", "private_key", "credential", "authorization",
    ]

    def filter(self, record: logging.LogRecord) -> bool:
        """Redact sensitive information from log records"""
        if not isinstance(record.msg, str):
            return True

        message = record.msg.lower()
        for pattern in self.SENSITIVE_PATTERNS:
            if pattern in message:
                record.msg = self._redact_message(record.msg, pattern)

        return True

    def _redact_message(self, message: str, pattern: str) -> str:
        """Redact sensitive values in message"""
        patterns = [
            rf'{pattern}["\']?\s*[:=]\s*["\']?([^"\'\s,}}]+)',
            rf'"?{pattern}"?\s*:\s*"([^"]+)"',
            rf'{pattern}\s*:?\s*bearer\s+\S+',
        ]

        for p in patterns:
            message = re.sub(p, f"{pattern}=***REDACTED***", message, flags=re.IGNORECASE)

        return message


class PurchaseAuditLogger:
    """Audit trail of purchase attempts"""

    def __init__(self, log_file: Optional[Path] = None):
        self.logger = logging.getLogger("cloudcommit.audit")
        self.logger.setLevel(logging.INFO)

        if log_file:
            log_file.parent.mkdir(parents=True, exist_ok=True)
            handler = logging.handlers.RotatingFileHandler(
                log_file,
                maxBytes=10485760,  # 10MB
                backupCount=10
            )
            handler.setFormatter(StructuredFormatter())
            self.logger.addHandler(handler)

    def log_purchase(self, result: Any) -> Dict[str, Any]:
        """Record one purchase outcome"""
        rec = result.recommendation
        event = {
            "provider": rec.provider.value,
            "service": rec.service.value,
            "region": rec.region,
            "account": rec.account,
            "resource_type": rec.resource_type,
            "count": rec.count,
            "term": rec.term.value,
            "payment_option": rec.payment_option.value,
            "success": result.success,
            "message": result.message,
            "commitment_id": result.commitment_id,
            "offering_id": result.offering_id,
            "cost": result.cost,
            "timestamp": result.timestamp.isoformat(),
        }

        if result.success:
            self.logger.info(f"Audit: purchase {rec.resource_type} x{rec.count} succeeded", extra={"audit": event})
        else:
            self.logger.warning(f"Audit: purchase {rec.resource_type} x{rec.count} failed", extra={"audit": event})
        return event


class LoggerManager:
    """Centralized logger management"""

    def __init__(self):
        self.audit_logger: Optional[PurchaseAuditLogger] = None

    def setup_logging(self,
                      level: str = "INFO",
                      log_file: Optional[Path] = None,
                      structured: bool = False,
                      console: bool = True,
                      audit_file: Optional[Path] = None,
                      handler: Optional[logging.Handler] = None):
        """Setup application-wide logging configuration"""
        root_logger = logging.getLogger()
        root_logger.setLevel(getattr(logging, level.upper()))
        root_logger.handlers = []

        formatter = StructuredFormatter() if structured else logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )

        if handler is not None:
            handler.addFilter(SecurityFilter())
            root_logger.addHandler(handler)
        elif console:
            console_handler = logging.StreamHandler(sys.stderr)
            console_handler.setFormatter(formatter)
            console_handler.addFilter(SecurityFilter())
            root_logger.addHandler(console_handler)

        if log_file:
            log_file.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.handlers.RotatingFileHandler(
                log_file,
                maxBytes=10485760,  # 10MB
                backupCount=5
            )
            file_handler.setFormatter(formatter)
            file_handler.addFilter(SecurityFilter())
            root_logger.addHandler(file_handler)

        self.audit_logger = PurchaseAuditLogger(audit_file)

        for name in QUIET_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    def get_audit_logger(self) -> PurchaseAuditLogger:
        if self.audit_logger is None:
            self.audit_logger = PurchaseAuditLogger()
        return self.audit_logger


# Global logger manager instance
logger_manager = LoggerManager()


def setup_logging(**kwargs):
    """Setup logging for the application"""
    logger_manager.setup_logging(**kwargs)


def get_audit_logger() -> PurchaseAuditLogger:
    """Get audit logger instance"""
    return logger_manager.get_audit_logger()
