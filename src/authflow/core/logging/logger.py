"""
Structured request logger.

Wraps a stdlib logger with console / rotating-file handlers and masks
sensitive values (tokens, passwords, Authorization headers) before they reach
any handler.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, List, Optional

from .config import LoggingConfig, LogLevel
from .filters import CorrelationIdFilter, ExtraFieldsFilter
from .formatters import get_formatter
from ...utils.sanitizer import mask_sensitive_data


def create_console_handler(
    level: int,
    formatter: logging.Formatter,
    filters: Optional[List[logging.Filter]] = None
) -> logging.StreamHandler:
    """Console handler writing to stderr."""
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(formatter)
    for f in filters or []:
        handler.addFilter(f)
    return handler


def create_file_handler(
    file_path: str,
    level: int,
    formatter: logging.Formatter,
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 5,
    filters: Optional[List[logging.Filter]] = None
) -> RotatingFileHandler:
    """Rotating file handler; creates the parent directory if needed."""
    Path(file_path).parent.mkdir(parents=True, exist_ok=True)

    handler = RotatingFileHandler(
        filename=file_path,
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding='utf-8'
    )
    handler.setLevel(level)
    handler.setFormatter(formatter)
    for f in filters or []:
        handler.addFilter(f)
    return handler


class ClientLogger:
    """
    Logger used by RequestExecutor when ``ClientConfig.logging`` is set.

    Example:
        >>> logger = ClientLogger(LoggingConfig.create(level="DEBUG", format="json"))
        >>> logger.info("Request started", method="GET", path="/users")
        >>> logger.close()
    """

    def __init__(self, config: Optional[LoggingConfig] = None, name: str = "authflow.requests"):
        self.config = config or LoggingConfig()
        self.name = name
        self._closed = False

        level = self._get_level(self.config.level)
        self._logger = logging.getLogger(name)
        self._logger.setLevel(level)
        self._logger.propagate = False
        self._logger.handlers.clear()

        filters: List[logging.Filter] = []
        if self.config.enable_correlation_id:
            filters.append(CorrelationIdFilter())
        if self.config.extra_fields:
            filters.append(ExtraFieldsFilter(self.config.extra_fields))

        formatter = get_formatter(self.config.format.value)

        if self.config.enable_console:
            self._logger.addHandler(create_console_handler(level, formatter, filters))

        if self.config.enable_file and self.config.file_path:
            self._logger.addHandler(create_file_handler(
                file_path=self.config.file_path,
                level=level,
                formatter=formatter,
                max_bytes=self.config.max_bytes,
                backup_count=self.config.backup_count,
                filters=filters
            ))

    @staticmethod
    def _get_level(level: LogLevel) -> int:
        return getattr(logging, level.value)

    def log(self, level: int, message: str, **fields: Any) -> None:
        """Log ``message`` with masked ``fields`` as extra attributes."""
        self._logger.log(level, message, extra=mask_sensitive_data(fields))

    def debug(self, message: str, **fields: Any) -> None:
        self.log(logging.DEBUG, message, **fields)

    def info(self, message: str, **fields: Any) -> None:
        self.log(logging.INFO, message, **fields)

    def warning(self, message: str, **fields: Any) -> None:
        self.log(logging.WARNING, message, **fields)

    def error(self, message: str, **fields: Any) -> None:
        self.log(logging.ERROR, message, **fields)

    def exception(self, message: str, **fields: Any) -> None:
        """Log at ERROR with the current exception's traceback."""
        self._logger.exception(message, extra=mask_sensitive_data(fields))

    def close(self) -> None:
        """Flush and close all handlers. Idempotent."""
        if self._closed:
            return

        for handler in self._logger.handlers[:]:
            handler.flush()
            handler.close()
            self._logger.removeHandler(handler)

        self._closed = True

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
