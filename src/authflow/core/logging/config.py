"""
Logging configuration for authflow.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Dict, Any


class LogLevel(str, Enum):
    """Log levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogFormat(str, Enum):
    """Log output formats."""
    JSON = "json"
    TEXT = "text"


@dataclass(frozen=True)
class LoggingConfig:
    """
    Configuration for the structured request logger.

    Attributes:
        level: Log level
        format: Output format (json, text)
        enable_console: Log to stderr
        enable_file: Log to a rotating file
        file_path: Log file path (required if enable_file=True)
        max_bytes: Max log file size before rotation
        backup_count: Rotated files to keep
        enable_correlation_id: Add the request id to every record
        extra_fields: Static fields added to every record

    Example:
        >>> LoggingConfig.create(level="DEBUG", format="json")
    """

    level: LogLevel = LogLevel.INFO
    format: LogFormat = LogFormat.TEXT
    enable_console: bool = True
    enable_file: bool = False
    file_path: Optional[str] = None
    max_bytes: int = 10 * 1024 * 1024
    backup_count: int = 5
    enable_correlation_id: bool = True
    extra_fields: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if self.enable_file and not self.file_path:
            raise ValueError("file_path is required when enable_file=True")

    @classmethod
    def create(
        cls,
        level: str = "INFO",
        format: str = "text",
        enable_console: bool = True,
        enable_file: bool = False,
        file_path: Optional[str] = None,
        max_bytes: int = 10 * 1024 * 1024,
        backup_count: int = 5,
        enable_correlation_id: bool = True,
        extra_fields: Optional[Dict[str, Any]] = None
    ) -> "LoggingConfig":
        """Create LoggingConfig from plain strings."""
        return cls(
            level=LogLevel(level.upper()),
            format=LogFormat(format.lower()),
            enable_console=enable_console,
            enable_file=enable_file,
            file_path=file_path,
            max_bytes=max_bytes,
            backup_count=backup_count,
            enable_correlation_id=enable_correlation_id,
            extra_fields=extra_fields or {}
        )
