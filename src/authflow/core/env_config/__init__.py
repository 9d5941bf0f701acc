"""
Environment configuration for authflow.

Load ClientConfig from .env files and AUTHFLOW_* environment variables.

Example:
    >>> from authflow.core.env_config import load_from_env
    >>>
    >>> config = load_from_env()
    >>> config = load_from_env(env_file=".env.production", max_workers=16)
"""

from .loader import load_from_env
from .validator import ClientSettings

__all__ = [
    "load_from_env",
    "ClientSettings",
]
