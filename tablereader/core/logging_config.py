"""Logging configuration with request correlation ids.

Recognition requests run on worker threads; each one can be tagged with a
correlation id so that preprocessing, recognizer and archive log lines of
the same request can be grouped.
"""
import logging
import logging.handlers
import sys
import json
import uuid
from datetime import datetime, timezone
from typing import Dict, Optional, Union
from pathlib import Path
from contextvars import ContextVar

correlation_id: ContextVar[Optional[str]] = ContextVar('correlation_id', default=None)

_RESERVED_ATTRS = frozenset({
    'name', 'msg', 'args', 'levelname', 'levelno', 'pathname', 'filename',
    'module', 'lineno', 'funcName', 'created', 'msecs', 'relativeCreated',
    'thread', 'threadName', 'processName', 'process', 'exc_info', 'exc_text',
    'stack_info', 'correlation_id', 'taskName', 'message', 'asctime',
})


class CorrelationIDFilter(logging.Filter):
    """Filter to add correlation IDs to log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = correlation_id.get() or '-'
        return True


class StructuredFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            'timestamp': datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'correlation_id': getattr(record, 'correlation_id', '-'),
            'thread': record.threadName,
        }
        if record.exc_info:
            entry['exception'] = self.formatException(record.exc_info)

        extra = {k: v for k, v in record.__dict__.items() if k not in _RESERVED_ATTRS}
        if extra:
            entry['extra'] = extra
        return json.dumps(entry, default=str)


class HumanReadableFormatter(logging.Formatter):
    """Human-readable formatter for development and console output."""

    def __init__(self, include_correlation_id: bool = True):
        self.include_correlation_id = include_correlation_id
        format_string = (
            '%(asctime)s - %(name)s - %(levelname)s'
            + (' - %(correlation_id)s' if include_correlation_id else '')
            + ' - %(message)s'
        )
        super().__init__(format_string)


class LoggingManager:
    """Owns the handlers installed on the package logger."""

    LOGGER_NAME = 'tablereader'

    def __init__(self):
        self._configured = False
        self._log_dir: Optional[Path] = None
        self._handlers: Dict[str, logging.Handler] = {}

    @property
    def configured(self) -> bool:
        return self._configured

    def configure(
        self,
        log_level: str = 'INFO',
        log_dir: Optional[Union[str, Path]] = None,
        enable_file_logging: bool = False,
        enable_console_logging: bool = True,
        structured_logging: bool = False,
        max_file_size: int = 5 * 1024 * 1024,
        backup_count: int = 3,
        application_name: str = 'table-reader'
    ) -> None:
        """Configure logging for the package.

        Args:
            log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
            log_dir: Directory for log files; defaults to ./logs when file
                logging is on
            enable_file_logging: Add a rotating file handler
            enable_console_logging: Add a stdout handler
            structured_logging: Use JSON lines instead of plain text
            max_file_size: Rotation size in bytes
            backup_count: Number of rotated files to keep
            application_name: Base name of the log file
        """
        if self._configured:
            return

        level = getattr(logging, str(log_level).upper(), logging.INFO)
        package_logger = logging.getLogger(self.LOGGER_NAME)
        package_logger.setLevel(level)
        correlation_filter = CorrelationIDFilter()

        def make_formatter() -> logging.Formatter:
            if structured_logging:
                return StructuredFormatter()
            return HumanReadableFormatter(include_correlation_id=True)

        if enable_console_logging:
            console_handler = logging.StreamHandler(sys.stdout)
            console_handler.setLevel(level)
            console_handler.setFormatter(make_formatter())
            console_handler.addFilter(correlation_filter)
            package_logger.addHandler(console_handler)
            self._handlers['console'] = console_handler

        if enable_file_logging:
            self._log_dir = Path(log_dir) if log_dir else Path('logs')
            self._log_dir.mkdir(parents=True, exist_ok=True)
            file_handler = logging.handlers.RotatingFileHandler(
                self._log_dir / f'{application_name}.log',
                maxBytes=max_file_size,
                backupCount=backup_count,
                encoding='utf-8'
            )
            file_handler.setLevel(level)
            file_handler.setFormatter(make_formatter())
            file_handler.addFilter(correlation_filter)
            package_logger.addHandler(file_handler)
            self._handlers['file'] = file_handler

        # Third-party noise
        logging.getLogger('PIL').setLevel(logging.WARNING)
        logging.getLogger('ultralytics').setLevel(logging.WARNING)

        self._configured = True
        package_logger.info(
            f"Logging configured - Level: {log_level}, File: {enable_file_logging}, "
            f"Console: {enable_console_logging}")

    def set_correlation_id(self, corr_id: Optional[str] = None) -> str:
        if corr_id is None:
            corr_id = uuid.uuid4().hex[:12]
        correlation_id.set(corr_id)
        return corr_id

    def get_correlation_id(self) -> Optional[str]:
        return correlation_id.get()

    def clear_correlation_id(self) -> None:
        correlation_id.set(None)

    def shutdown(self) -> None:
        """Detach and close all handlers."""
        package_logger = logging.getLogger(self.LOGGER_NAME)
        for handler in self._handlers.values():
            package_logger.removeHandler(handler)
            handler.close()
        self._handlers.clear()
        self._configured = False


# Global logging manager instance
logging_manager = LoggingManager()


def configure_logging(**kwargs) -> None:
    """Configure package logging."""
    logging_manager.configure(**kwargs)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def set_correlation_id(corr_id: Optional[str] = None) -> str:
    return logging_manager.set_correlation_id(corr_id)


def get_correlation_id() -> Optional[str]:
    return logging_manager.get_correlation_id()


class CorrelationContext:
    """Context manager that tags log records with a correlation id."""

    def __init__(self, corr_id: Optional[str] = None):
        self.corr_id = corr_id
        self._token = None

    def __enter__(self) -> str:
        corr_id = self.corr_id or uuid.uuid4().hex[:12]
        self._token = correlation_id.set(corr_id)
        return corr_id

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        correlation_id.reset(self._token)
