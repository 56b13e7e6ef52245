"""
Structured logging utilities
JSON log lines that are easy to search and filter in CloudWatch Logs
"""
import json
import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Any, Dict
from datetime import datetime, timezone

SERVICE_NAME = "dvir_emailer"


class StructuredLogger:
    """Emits one JSON object per event, carrying bound context fields"""

    def __init__(self, logger: logging.Logger, **context):
        """
        Args:
            logger: underlying logger instance
            **context: fields added to every event (database, command ...)
        """
        self.logger = logger
        self.context = context

    def bind(self, **context) -> "StructuredLogger":
        """Child logger with extra context fields"""
        merged = dict(self.context)
        merged.update(context)
        return StructuredLogger(self.logger, **merged)

    def log_event(self, level: str, event: str, message: str, extra: Dict[str, Any] = None, **kwargs):
        """
        Record a structured log event

        Args:
            level: log level name (INFO, WARNING, ERROR ...)
            event: event type (recipient_added, settings_updated ...)
            message: human readable message
            extra: additional metadata
            **kwargs: additional fields
        """
        log_level = getattr(logging, level.upper(), logging.INFO)
        if not self.logger.isEnabledFor(log_level):
            return

        record = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": level.upper(),
            "service": SERVICE_NAME,
            "event": event,
            "message": message,
        }
        record.update(self.context)
        record.update(extra or {})
        record.update(kwargs)

        self.logger.log(log_level, json.dumps(record, ensure_ascii=False, default=str))

    def info(self, event: str, message: str, **kwargs):
        self.log_event("INFO", event, message, **kwargs)

    def warning(self, event: str, message: str, **kwargs):
        self.log_event("WARNING", event, message, **kwargs)

    def error(self, event: str, message: str, **kwargs):
        self.log_event("ERROR", event, message, **kwargs)

    def debug(self, event: str, message: str, **kwargs):
        self.log_event("DEBUG", event, message, **kwargs)


def get_structured_logger(name: str, **context) -> StructuredLogger:
    """
    Create a structured logger

    Example:
        >>> logger = get_structured_logger(__name__, database="acme")
        >>> log_settings_updated(logger, "acme", False, 3)
    """
    return StructuredLogger(logging.getLogger(name), **context)


def setup_logging(level: int = logging.INFO):
    """
    Configure root logging

    - Lambda: stdout only (CloudWatch)
    - Local: console + RotatingFileHandler (logs/dvir_emailer.log)
    """
    is_lambda = os.environ.get('AWS_EXECUTION_ENV') is not None

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # repeated setup must not duplicate output
    root_logger.handlers.clear()

    formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    console = logging.StreamHandler()
    console.setFormatter(formatter)
    root_logger.addHandler(console)

    if not is_lambda:
        log_dir = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'logs')
        os.makedirs(log_dir, exist_ok=True)
        file_handler = RotatingFileHandler(
            os.path.join(log_dir, f'{SERVICE_NAME}.log'),
            maxBytes=10 * 1024 * 1024,  # 10MB
            backupCount=5,
            encoding='utf-8'
        )
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)


def log_recipient_change(
    logger: StructuredLogger, action: str, database: str, email: str, success: bool, error: str = None
):
    """Recipient add/remove log"""
    if success:
        logger.info(
            event=f"recipient_{action}",
            message=f"Recipient {action}: {email} ({database})",
            database=database,
            email=email,
            success=True
        )
    else:
        logger.error(
            event=f"recipient_{action}_failed",
            message=f"Recipient {action} failed: {email} ({database})",
            database=database,
            email=email,
            success=False,
            error=error
        )


def log_tenant_configured(logger: StructuredLogger, database: str, layout: str):
    """A database got its default recipient configuration"""
    logger.info(
        event="tenant_configured",
        message=f"Added database {database} to the recipient store",
        database=database,
        layout=layout,
    )


def log_recipients_loaded(logger: StructuredLogger, database: str, count: int):
    logger.info(
        event="recipients_loaded",
        message=f"Loaded {count} recipients",
        database=database,
        count=count,
    )


def log_settings_updated(logger: StructuredLogger, database: str, send_only_new_defects: bool, updated: int):
    """Shared defect filter applied to a database's recipients"""
    logger.info(
        event="settings_updated",
        message=f"send_only_new_defects={send_only_new_defects} for {updated} recipients",
        database=database,
        send_only_new_defects=send_only_new_defects,
        updated=updated,
    )


def log_panel_error(logger: StructuredLogger, action: str, error: Exception, database: str = None):
    """Failed panel command, as shown to the user"""
    logger.error(
        event="panel_error",
        message=f"{action}: {error}",
        action=action,
        error_type=type(error).__name__,
        database=database,
    )


def log_lambda_execution(logger: StructuredLogger, function_name: str, status_code: int, duration_ms: float):
    logger.info(
        event="lambda_execution",
        message="Panel API request handled",
        function_name=function_name,
        status_code=status_code,
        duration_ms=round(duration_ms, 1),
    )
