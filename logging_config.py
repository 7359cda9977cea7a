# logging_config.py

import logging
import structlog
import sys
from typing import Any, Dict, Optional
from flask import has_request_context, request, g


def add_request_context(logger: logging.Logger, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Add Flask request context to log entries"""
    if has_request_context():
        event_dict["request_id"] = getattr(g, 'request_id', None)
        event_dict["remote_addr"] = request.remote_addr
        event_dict["method"] = request.method
        event_dict["path"] = request.path
    return event_dict


def setup_logging(app_name: str = "street-contacts", log_level: str = "INFO") -> None:
    """
    Configure structured logging

    Args:
        app_name: Application name for log identification
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            add_request_context,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.JSONRenderer()
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=level,
    )

    logging.getLogger(app_name).setLevel(level)

    # Reduce noise from third-party libraries
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("werkzeug").setLevel(logging.WARNING)
    logging.getLogger("celery").setLevel(logging.WARNING)


def get_logger(name: str = None) -> structlog.BoundLogger:
    """
    Get a structured logger instance

    Args:
        name: Logger name (usually __name__)

    Returns:
        Configured structlog instance
    """
    return structlog.get_logger(name or __name__)


class ImportAuditLogger:
    """Structured events for contact import runs"""

    def __init__(self):
        self.logger = get_logger("contact_import")

    def log_import_completed(self, suburb: str, summary: Dict[str, Any], duration_ms: float,
                             filename: Optional[str] = None):
        self.logger.info(
            "Contact import completed",
            suburb=suburb,
            filename=filename,
            accepted_count=summary.get('accepted_count'),
            duplicate_count=summary.get('duplicate_count'),
            unmatched_count=summary.get('unmatched_count'),
            skipped_count=summary.get('skipped_count'),
            duration_ms=duration_ms,
            event_type="contact_import"
        )

    def log_import_failed(self, suburb: str, code: str, error: str, duration_ms: float,
                          filename: Optional[str] = None):
        self.logger.warning(
            "Contact import failed",
            suburb=suburb,
            filename=filename,
            error_code=code,
            error=error,
            duration_ms=duration_ms,
            event_type="contact_import"
        )


# Global logger instance
import_audit_logger = ImportAuditLogger()
