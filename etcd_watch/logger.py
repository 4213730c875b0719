"""Structured logging utility and error types for etcd-watch.

Provides JSON-formatted logging with context and the exception hierarchy
shared by the transport, reply decoder, client and watch controller.
"""
import logging
import json
import os
import sys
import traceback
from typing import Any, Dict, Optional
from datetime import datetime, timezone

# Configure root logger with LOG_LEVEL from environment
_log_level_str = os.environ.get("LOG_LEVEL", "INFO").upper()
_log_level = getattr(logging, _log_level_str, logging.INFO)
logging.basicConfig(
    level=_log_level,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[logging.StreamHandler(sys.stderr)]
)

# Cache loggers to avoid repeated lookups
_logger_cache: Dict[str, logging.Logger] = {}


class JSONFormatter(logging.Formatter):
    """Format log records as JSON for structured logging."""

    __slots__ = ()

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info and record.exc_info[0] is not None:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "traceback": traceback.format_exception(*record.exc_info),
            }

        extra = getattr(record, 'extra_fields', None)
        if extra:
            log_data.update(extra)

        return json.dumps(log_data, default=str)


def get_logger(name: str, json_format: Optional[bool] = None) -> logging.Logger:
    """Get a logger instance with optional JSON formatting.

    Args:
        name: Logger name (typically __name__)
        json_format: If True, use JSON formatter; None follows LOG_FORMAT=json

    Returns:
        Configured logger instance
    """
    if json_format is None:
        json_format = os.environ.get("LOG_FORMAT", "").strip().lower() == "json"
    cache_key = f"{name}:{json_format}"
    if cache_key in _logger_cache:
        return _logger_cache[cache_key]

    logger = logging.getLogger(name)
    logger.setLevel(_log_level)

    if json_format and not any(isinstance(h.formatter, JSONFormatter) for h in logger.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(JSONFormatter())
        logger.addHandler(handler)
        logger.propagate = False

    _logger_cache[cache_key] = logger
    return logger


class ContextLogger:
    """Logger wrapper that adds context fields to all log messages."""

    __slots__ = ('logger', 'context')

    def __init__(self, logger: logging.Logger, **context):
        self.logger = logger
        self.context = context

    def bind(self, **context) -> "ContextLogger":
        """Return a new ContextLogger with extra context merged in."""
        return ContextLogger(self.logger, **{**self.context, **context})

    def _log(self, level: int, msg: str, exc_info: Any = None, **extra):
        if not self.logger.isEnabledFor(level):
            return
        merged = {**self.context, **extra} if extra else self.context
        record = self.logger.makeRecord(
            self.logger.name,
            level,
            "(unknown file)",
            0,
            msg,
            (),
            exc_info,
        )
        record.extra_fields = merged
        self.logger.handle(record)

    def debug(self, msg: str, **extra):
        self._log(logging.DEBUG, msg, **extra)

    def info(self, msg: str, **extra):
        self._log(logging.INFO, msg, **extra)

    def warning(self, msg: str, **extra):
        self._log(logging.WARNING, msg, **extra)

    def error(self, msg: str, exc_info: Any = None, **extra):
        self._log(logging.ERROR, msg, exc_info=exc_info, **extra)


# Exceptions shared across the package
class EtcdError(Exception):
    """Base exception for all etcd-watch errors."""
    pass


class ClientException(EtcdError):
    """Fatal error for the current client or watch call."""
    pass


class ConfigurationError(EtcdError):
    """Error in configuration or environment setup."""
    pass


class TransportError(EtcdError):
    """The HTTP request itself failed (network, timeout, empty error response)."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ReplyParseError(EtcdError):
    """The response body could not be decoded."""
    pass


class ReplyException(EtcdError):
    """Application-level error returned by the server.

    etcd encodes these as ``{"errorCode": N, "message": ..., "cause": ...,
    "index": ...}``. Code 401 means the requested watch index was cleared.
    """

    def __init__(self, error_code: int, message: str = "",
                 cause: Optional[str] = None, index: Optional[int] = None):
        super().__init__(f"[{error_code}] {message}" + (f" ({cause})" if cause else ""))
        self.error_code = error_code
        self.message = message
        self.cause = cause
        self.index = index


def safe_int(value: Any, default: int, logger: Optional[logging.Logger] = None, context: str = "") -> int:
    """Safely convert value to int with logging on failure.

    Args:
        value: Value to convert
        default: Default value if conversion fails
        logger: Optional logger for warnings
        context: Context string for log message

    Returns:
        Converted int or default
    """
    try:
        if value is None or (isinstance(value, str) and value.strip() == ""):
            return default
        return int(value)
    except (ValueError, TypeError) as e:
        if logger:
            logger.warning(f"Failed to convert {context} to int: {value}", exc_info=e)
        return default


def safe_float(value: Any, default: float, logger: Optional[logging.Logger] = None, context: str = "") -> float:
    """Safely convert value to float with logging on failure."""
    try:
        if value is None or (isinstance(value, str) and value.strip() == ""):
            return default
        return float(value)
    except (ValueError, TypeError) as e:
        if logger:
            logger.warning(f"Failed to convert {context} to float: {value}", exc_info=e)
        return default
