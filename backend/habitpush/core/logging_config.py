"""
Structured JSON logging for HabitPush

Every record is emitted as one JSON object carrying the request ID of the
trigger call (or scheduler run) it belongs to. Output goes to the console,
a rotating app.log and an error-only error.log under LOG_DIR.
"""
import logging
import logging.handlers
import os
import contextvars
import re
from datetime import datetime, timezone
from typing import Optional
from pythonjsonlogger import jsonlogger

from habitpush.core.config import settings

# Request ID of the work currently being logged
request_id_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    'request_id', default=None
)

# Stamped on every record; replaced by setup_logging(app_version=...)
APP_VERSION = "1.0.0"

# Used when neither the caller nor settings name a directory
DEFAULT_LOG_DIR = os.path.join(os.path.dirname(os.path.dirname(os.path.dirname(__file__))), 'data', 'logs')

LOG_FORMAT = '%(timestamp)s %(level)s %(name)s %(message)s'

_LINE_BREAKS = re.compile(r'\r\n|\r|\n')

# (filename, level, maxBytes, backupCount)
_FILE_TARGETS = (
    ('app.log', None, 50 * 1024 * 1024, 7),
    ('error.log', logging.ERROR, 10 * 1024 * 1024, 5),
)

_QUIET_LOGGERS = ('uvicorn.access', 'httpx', 'httpcore', 'apscheduler')


class RequestIdFilter(logging.Filter):
    """Copy the current request ID onto each record ("-" outside a request)."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get() or "-"
        return True


class SanitizingFilter(logging.Filter):
    """
    Flatten line breaks in messages and string args.

    Push service error bodies are third-party text and are logged as-is,
    so a crafted body could otherwise forge extra log lines.
    """

    @staticmethod
    def _flatten(value):
        return _LINE_BREAKS.sub(' ', value) if isinstance(value, str) else value

    def filter(self, record: logging.LogRecord) -> bool:
        record.msg = self._flatten(record.msg)
        if isinstance(record.args, tuple):
            record.args = tuple(self._flatten(arg) for arg in record.args)
        return True


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """
    JSON formatter adding the fields every HabitPush log line carries.

    Example:
    {
        "timestamp": "2026-06-15T20:00:00.104Z",
        "level": "INFO",
        "message": "Reminder run complete",
        "logger": "habitpush.services.reminder_service",
        "request_id": "uuid-here",
        "version": "1.0.0",
        "sent": 12,
        ...extra fields...
    }
    """

    def add_fields(
        self,
        log_record: dict,
        record: logging.LogRecord,
        message_dict: dict
    ) -> None:
        super().add_fields(log_record, record, message_dict)

        if not log_record.get('timestamp'):
            log_record['timestamp'] = datetime.now(timezone.utc).isoformat()
        log_record.setdefault('message', record.getMessage())

        log_record.update(
            level=record.levelname,
            module=record.module,
            logger=record.name,
            request_id=getattr(record, 'request_id', '-'),
            version=APP_VERSION,
        )
        if record.funcName:
            log_record['function'] = record.funcName
        if record.lineno:
            log_record['line'] = record.lineno


def _attach(root: logging.Logger, handler: logging.Handler, level: int, formatter: logging.Formatter) -> None:
    handler.setLevel(level)
    handler.setFormatter(formatter)
    handler.addFilter(RequestIdFilter())
    handler.addFilter(SanitizingFilter())
    root.addHandler(handler)


def setup_logging(
    log_level: Optional[str] = None,
    log_dir: Optional[str] = None,
    app_version: Optional[str] = None
) -> logging.Logger:
    """
    Configure the root logger for JSON output with rotation.

    Calling it again replaces the previous handlers.

    Args:
        log_level: Override log level (default settings.LOG_LEVEL)
        log_dir: Override log directory (default settings.LOG_DIR, then backend/data/logs)
        app_version: Version stamped on every record

    Returns:
        The configured root logger
    """
    global APP_VERSION

    level = getattr(logging, (log_level or settings.LOG_LEVEL).upper(), logging.INFO)
    directory = log_dir or settings.LOG_DIR or DEFAULT_LOG_DIR
    if app_version:
        APP_VERSION = app_version

    os.makedirs(directory, exist_ok=True)
    formatter = CustomJsonFormatter(LOG_FORMAT)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    _attach(root_logger, logging.StreamHandler(), level, formatter)
    for filename, file_level, max_bytes, backups in _FILE_TARGETS:
        file_handler = logging.handlers.RotatingFileHandler(
            os.path.join(directory, filename),
            maxBytes=max_bytes,
            backupCount=backups,
            encoding='utf-8'
        )
        _attach(root_logger, file_handler, file_level or level, formatter)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return root_logger


def get_logger(name: str) -> logging.Logger:
    """Return the named logger (typically called with __name__)."""
    return logging.getLogger(name)


def set_request_id(request_id: Optional[str]) -> contextvars.Token:
    """Bind a request ID to the current context; returns the reset token."""
    return request_id_var.set(request_id)


def get_request_id() -> Optional[str]:
    """Current request ID, or None outside a request."""
    return request_id_var.get()


def clear_request_id(token: contextvars.Token) -> None:
    """Restore the request ID that was current before set_request_id."""
    request_id_var.reset(token)
