"""
Structured logging for authflow.

Example:
    >>> from authflow.core.logging import LoggingConfig
    >>> from authflow import ClientConfig, RequestExecutor
    >>>
    >>> config = ClientConfig.create(
    ...     host="api.example.com",
    ...     logging=LoggingConfig.create(level="DEBUG", format="json"),
    ... )
    >>> executor = RequestExecutor(config)
"""

from .config import LoggingConfig, LogLevel, LogFormat
from .logger import ClientLogger, create_console_handler, create_file_handler
from .formatters import JSONFormatter, TextFormatter, get_formatter
from .filters import (
    CorrelationIdFilter,
    ExtraFieldsFilter,
    set_correlation_id,
    get_correlation_id,
    clear_correlation_id,
)

__all__ = [
    "LoggingConfig",
    "LogLevel",
    "LogFormat",
    "ClientLogger",
    "create_console_handler",
    "create_file_handler",
    "JSONFormatter",
    "TextFormatter",
    "get_formatter",
    "CorrelationIdFilter",
    "ExtraFieldsFilter",
    "set_correlation_id",
    "get_correlation_id",
    "clear_correlation_id",
]
