"""authflow - async request executor with bearer auth, retries and token refresh."""

import logging
from importlib.metadata import version, PackageNotFoundError

from .core.config import ClientConfig, RetryPolicy, TimeoutConfig, TransportConfig
from .core.context import MultipartPart, RequestSpec
from .core.executor import PendingRequest, RequestExecutor
from .core.headers import HeaderMap
from .core.response import ResponseOutcome
from .core.token_store import RefreshingTokenProvider, TokenProvider, TokenStore
from .core.transport import RequestsTransport, Transport
from .core.env_config import load_from_env
from .core.exceptions import (
    AuthFlowException,
    TransportError,
    TimeoutError,
    ConnectionError,
    HTTPError,
    RefreshError,
    InvalidRequestError,
    RequestCancelledError,
    ConfigurationError,
)
from .session import UserSession

# NullHandler: пользователь сам настраивает logging.getLogger('authflow')
logging.getLogger('authflow').addHandler(logging.NullHandler())

try:
    __version__ = version("authflow-http")
except PackageNotFoundError:
    # Package is not installed (development mode)
    __version__ = "0.0.0-dev"

__all__ = [
    # Core
    "RequestExecutor",
    "PendingRequest",
    "UserSession",
    # Config
    "ClientConfig",
    "RetryPolicy",
    "TimeoutConfig",
    "TransportConfig",
    "load_from_env",
    # Request / response
    "RequestSpec",
    "MultipartPart",
    "HeaderMap",
    "ResponseOutcome",
    # Tokens
    "TokenProvider",
    "TokenStore",
    "RefreshingTokenProvider",
    # Transport
    "Transport",
    "RequestsTransport",
    # Exceptions
    "AuthFlowException",
    "TransportError",
    "TimeoutError",
    "ConnectionError",
    "HTTPError",
    "RefreshError",
    "InvalidRequestError",
    "RequestCancelledError",
    "ConfigurationError",
    "__version__",
]
