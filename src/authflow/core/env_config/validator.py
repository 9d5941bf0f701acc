"""
Pydantic settings for environment configuration.
"""

from typing import Literal, Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ClientSettings(BaseSettings):
    """
    RequestExecutor configuration from environment variables.

    Reads from:
    1. Environment variables (AUTHFLOW_*)
    2. .env file
    3. Defaults

    Example .env file:
        AUTHFLOW_HOST=api.example.com
        AUTHFLOW_PORT=8443
        AUTHFLOW_TIMEOUT_CONNECT=10
        AUTHFLOW_RETRY_MAX_RETRIES=3
        AUTHFLOW_RETRY_STATUS_CODES=401,403,503
        AUTHFLOW_LOG_ENABLED=true
        AUTHFLOW_LOG_LEVEL=DEBUG

    Usage:
        >>> settings = ClientSettings()
        >>> settings.host
        'api.example.com'
    """

    model_config = SettingsConfigDict(
        env_prefix='AUTHFLOW_',
        env_file='.env',
        env_file_encoding='utf-8',
        case_sensitive=False,
        extra='ignore',
    )

    # Transport
    host: str = Field(default="localhost", min_length=1, description="Host or full base URL")
    port: Optional[int] = Field(default=None, gt=0, lt=65536)
    use_ssl: bool = Field(default=True)
    verify_ssl: bool = Field(default=True)
    timeout_connect: float = Field(default=30.0, gt=0)
    timeout_read: float = Field(default=30.0, gt=0)

    # Retry
    retry_max_retries: int = Field(default=3, ge=0)
    retry_delay_ms: int = Field(default=1000, ge=0)
    retry_status_codes: str = Field(default="401,403,503", description="Comma separated status codes")
    retry_max_refresh_attempts: Optional[int] = Field(default=None, ge=0)

    # Executor
    auto_refresh_token: bool = Field(default=True)
    max_workers: int = Field(default=8, ge=1)
    refresh_timeout: float = Field(default=60.0, gt=0)

    # Logging
    log_enabled: bool = Field(default=False)
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(default="INFO")
    log_format: Literal["json", "text"] = Field(default="text")
    log_enable_console: bool = Field(default=True)
    log_enable_file: bool = Field(default=False)
    log_file_path: Optional[str] = None
    log_max_bytes: int = Field(default=10 * 1024 * 1024, gt=0)
    log_backup_count: int = Field(default=5, ge=0)
    log_enable_correlation_id: bool = Field(default=True)

    @field_validator('retry_status_codes')
    @classmethod
    def validate_status_codes(cls, v: str) -> str:
        """Every entry must be an integer status code (0 = transport error)."""
        for item in v.split(','):
            item = item.strip()
            if not item:
                continue
            if not item.isdigit() or int(item) > 599:
                raise ValueError(f"invalid status code: {item!r}")
        return v

    @model_validator(mode='after')
    def validate_file_path(self) -> 'ClientSettings':
        """log_file_path is required when log_enable_file=True."""
        if self.log_enable_file and not self.log_file_path:
            raise ValueError("log_file_path is required when log_enable_file=True")
        return self

    def status_codes(self) -> frozenset:
        """Parsed retry_status_codes."""
        return frozenset(
            int(item) for item in self.retry_status_codes.split(',') if item.strip()
        )
