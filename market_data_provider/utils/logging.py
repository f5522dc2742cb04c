"""Logging configuration for the market data provider."""

import logging
import logging.handlers
import os
import re
import json
import traceback
from typing import Optional, Dict, Any
from datetime import datetime, timezone
import threading

from .config import config

ROOT_LOGGER_NAME = 'market_data_provider'

# Query parameters whose values must never reach a log sink
SENSITIVE_PARAMS = ('apikey',)
FILTERED = '[FILTERED]'

_SENSITIVE_PATTERN = re.compile(
    r'(?P<name>\b(?:' + '|'.join(SENSITIVE_PARAMS) + r'))=(?P<value>[^&\s\'"]+)',
    re.IGNORECASE
)


def redact_text(text: str) -> str:
    """Mask credential values embedded in URLs or messages.

    The parameter name is kept so the log still shows that a key was sent,
    e.g. ``apikey=abc123`` becomes ``apikey=[FILTERED]``.
    """
    if not text:
        return text
    return _SENSITIVE_PATTERN.sub(lambda m: f"{m.group('name')}={FILTERED}", text)


def redact_params(params: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Return a copy of query parameters with credential values masked."""
    if not params:
        return {}
    return {
        key: (FILTERED if key.lower() in SENSITIVE_PARAMS else value)
        for key, value in params.items()
    }


class StructuredFormatter(logging.Formatter):
    """Custom formatter that outputs structured JSON logs."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as structured JSON.

        Args:
            record: Log record to format

        Returns:
            Formatted log message as JSON string
        """
        log_entry = {
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': redact_text(record.getMessage()),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno,
            'thread': threading.current_thread().name,
            'process': os.getpid()
        }

        if record.exc_info:
            log_entry['exception'] = {
                'type': record.exc_info[0].__name__,
                'message': redact_text(str(record.exc_info[1])),
                'traceback': [redact_text(line) for line in traceback.format_exception(*record.exc_info)]
            }

        if hasattr(record, 'extra_fields'):
            log_entry.update(record.extra_fields)

        return json.dumps(log_entry, default=str)


class ContextualLogger:
    """Logger wrapper that adds contextual information to log messages."""

    def __init__(self, logger: logging.Logger):
        """Initialize contextual logger.

        Args:
            logger: Base logger instance
        """
        self.logger = logger
        self.context: Dict[str, Any] = {}

    def set_context(self, **kwargs):
        """Set context information for subsequent log messages."""
        self.context.update(kwargs)

    def clear_context(self):
        """Clear all context information."""
        self.context.clear()

    def _log_with_context(self, level: int, msg: str, *args, **kwargs):
        extra_fields = self.context.copy()

        if 'extra' in kwargs:
            extra_fields.update(kwargs.pop('extra'))

        if extra_fields:
            kwargs['extra'] = {'extra_fields': extra_fields}

        self.logger.log(level, msg, *args, **kwargs)

    def debug(self, msg: str, *args, **kwargs):
        """Log debug message with context."""
        self._log_with_context(logging.DEBUG, msg, *args, **kwargs)

    def info(self, msg: str, *args, **kwargs):
        """Log info message with context."""
        self._log_with_context(logging.INFO, msg, *args, **kwargs)

    def warning(self, msg: str, *args, **kwargs):
        """Log warning message with context."""
        self._log_with_context(logging.WARNING, msg, *args, **kwargs)

    def error(self, msg: str, *args, **kwargs):
        """Log error message with context."""
        self._log_with_context(logging.ERROR, msg, *args, **kwargs)

    def exception(self, msg: str, *args, **kwargs):
        """Log exception message with context."""
        kwargs['exc_info'] = True
        self._log_with_context(logging.ERROR, msg, *args, **kwargs)


def setup_logging(
    log_level: Optional[str] = None,
    log_file: Optional[str] = None,
    max_file_size: Optional[str] = None,
    backup_count: Optional[int] = None,
    structured_logging: bool = False
) -> logging.Logger:
    """Set up logging for the package logger.

    A console handler is always installed. A rotating file handler is added
    only when a log file is configured.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Path to log file
        max_file_size: Maximum log file size (e.g., '10MB')
        backup_count: Number of backup log files to keep
        structured_logging: Whether to use structured JSON logging

    Returns:
        Configured logger instance
    """
    log_level = log_level or config.get('market_data_provider.logging.level', 'INFO')
    log_file = log_file or config.get('market_data_provider.logging.file_path')
    max_file_size = max_file_size or config.get('market_data_provider.logging.max_file_size', '10MB')
    if backup_count is None:
        backup_count = config.get('market_data_provider.logging.backup_count', 5)
    structured_logging = structured_logging or config.get('market_data_provider.logging.structured', False)

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(getattr(logging, log_level.upper()))

    # Remove existing handlers to avoid duplicates
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    if structured_logging:
        formatter = StructuredFormatter()
    else:
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

    console_handler = logging.StreamHandler()
    console_handler.setLevel(getattr(logging, log_level.upper()))
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=_parse_file_size(max_file_size),
            backupCount=backup_count
        )
        file_handler.setLevel(getattr(logging, log_level.upper()))
        file_handler.setFormatter(StructuredFormatter())
        logger.addHandler(file_handler)

    return logger


def get_logger(name: str) -> ContextualLogger:
    """Get a contextual logger instance for a specific module.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Contextual logger instance
    """
    if name != ROOT_LOGGER_NAME and not name.startswith(f'{ROOT_LOGGER_NAME}.'):
        name = f'{ROOT_LOGGER_NAME}.{name}'
    return ContextualLogger(logging.getLogger(name))


def log_api_call(
    logger: ContextualLogger,
    api_name: str,
    endpoint: str,
    parameters: Optional[Dict[str, Any]] = None,
    response_time: Optional[float] = None,
    status_code: Optional[int] = None,
    error: Optional[Exception] = None
):
    """Log API call details with credentials redacted.

    Args:
        logger: Logger instance
        api_name: Name of the API
        endpoint: API endpoint
        parameters: Request parameters
        response_time: Response time in seconds
        status_code: HTTP status code
        error: Exception if call failed
    """
    context = {
        'api_name': api_name,
        'endpoint': endpoint,
        'parameters': redact_params(parameters),
        'response_time_seconds': response_time,
        'status_code': status_code
    }

    if error:
        context['error'] = redact_text(str(error))
        logger.error(f"API call failed: {api_name} - {endpoint}", extra=context)
    else:
        logger.debug(f"API call successful: {api_name} - {endpoint}", extra=context)


def _parse_file_size(size_str: str) -> int:
    """Parse file size string to bytes.

    Args:
        size_str: Size string (e.g., '10MB', '1GB')

    Returns:
        Size in bytes
    """
    size_str = size_str.upper().strip()

    if size_str.endswith('KB'):
        return int(size_str[:-2]) * 1024
    elif size_str.endswith('MB'):
        return int(size_str[:-2]) * 1024 * 1024
    elif size_str.endswith('GB'):
        return int(size_str[:-2]) * 1024 * 1024 * 1024
    else:
        return int(size_str)


# Initialize logging on module import
setup_logging()
