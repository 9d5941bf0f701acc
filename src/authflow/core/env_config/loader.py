"""
Configuration loader from environment variables and .env files.
"""

from typing import Optional

from ..config import ClientConfig, RetryPolicy, TimeoutConfig, TransportConfig
from ..logging.config import LoggingConfig
from .validator import ClientSettings


def load_from_env(env_file: Optional[str] = None, **overrides) -> ClientConfig:
    """
    Load ClientConfig from environment variables.

    Priority (highest to lowest):
    1. **overrides - explicit parameters (field names of ClientSettings)
    2. Environment variables (AUTHFLOW_*)
    3. .env file
    4. Defaults

    Args:
        env_file: Custom .env file path (default: ".env" in the working dir)
        **overrides: Explicit config overrides

    Returns:
        ClientConfig instance

    Example:
        >>> config = load_from_env()
        >>> config = load_from_env(env_file=".env.staging", host="staging.example.com")
    """
    settings_kwargs = {}
    if env_file is not None:
        settings_kwargs['_env_file'] = env_file
    settings = ClientSettings(**settings_kwargs, **overrides)

    transport = TransportConfig(
        host=settings.host,
        port=settings.port,
        use_ssl=settings.use_ssl,
        verify_ssl=settings.verify_ssl,
        timeout=TimeoutConfig(
            connect=settings.timeout_connect,
            read=settings.timeout_read,
        ),
    )

    retry = RetryPolicy(
        max_retries=settings.retry_max_retries,
        retry_delay_ms=settings.retry_delay_ms,
        retryable_status_codes=settings.status_codes(),
        max_refresh_attempts=settings.retry_max_refresh_attempts,
    )

    logging_config = None
    if settings.log_enabled:
        logging_config = LoggingConfig.create(
            level=settings.log_level,
            format=settings.log_format,
            enable_console=settings.log_enable_console,
            enable_file=settings.log_enable_file,
            file_path=settings.log_file_path,
            max_bytes=settings.log_max_bytes,
            backup_count=settings.log_backup_count,
            enable_correlation_id=settings.log_enable_correlation_id,
        )

    return ClientConfig(
        transport=transport,
        retry=retry,
        auto_refresh_token=settings.auto_refresh_token,
        max_workers=settings.max_workers,
        refresh_timeout=settings.refresh_timeout,
        logging=logging_config,
    )
