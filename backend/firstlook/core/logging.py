"""
Logging configuration.

JSON lines for production (LOG_FORMAT=json) and a readable text format for
development. Every record carries a correlation id; records logged outside
a request get "system".
"""
import os
import sys
import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

# LogRecord attributes that are not user-supplied "extra" fields
_RESERVED = frozenset((
    'name', 'msg', 'args', 'created', 'filename', 'funcName', 'levelname',
    'levelno', 'lineno', 'module', 'msecs', 'pathname', 'process',
    'processName', 'relativeCreated', 'stack_info', 'thread', 'threadName',
    'exc_info', 'exc_text', 'message', 'correlation_id', 'taskName',
))


class CorrelationIdFilter(logging.Filter):
    """Ensure correlation_id is present on every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, 'correlation_id'):
            record.correlation_id = 'system'
        return True


class JSONFormatter(logging.Formatter):
    """One JSON object per record, including any ``extra`` fields."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "correlation_id": getattr(record, 'correlation_id', 'system'),
        }

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key in _RESERVED or key.startswith('_'):
                continue
            try:
                json.dumps(value)
            except (TypeError, ValueError):
                value = repr(value)
            log_data[key] = value

        return json.dumps(log_data)


class TextFormatter(logging.Formatter):
    """Readable text formatter for development."""

    def __init__(self):
        super().__init__(
            fmt='%(asctime)s - %(name)s - %(levelname)s - [%(correlation_id)s] - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )


def configure_logging(level: Optional[str] = None) -> None:
    """
    Configure root logging.

    Args:
        level: Log level name; defaults to the LOG_LEVEL env var, then INFO.
            LOG_FORMAT selects 'json' or 'text' (default).
    """
    log_format = os.getenv('LOG_FORMAT', 'text').lower()
    log_level = (level or os.getenv('LOG_LEVEL', 'INFO')).upper()

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level, logging.INFO))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(CorrelationIdFilter())
    handler.setFormatter(JSONFormatter() if log_format == 'json' else TextFormatter())
    root_logger.addHandler(handler)

    # Reduce noise from third-party libraries
    logging.getLogger('uvicorn.access').setLevel(logging.WARNING)
    logging.getLogger('httpx').setLevel(logging.WARNING)

    if log_format == 'json':
        root_logger.info("Structured JSON logging enabled")
