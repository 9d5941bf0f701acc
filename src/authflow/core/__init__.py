"""Core authflow модули."""

from .config import (
    TimeoutConfig,
    RetryPolicy,
    TransportConfig,
    ClientConfig,
)
from .context import HTTPMethod, MultipartPart, RequestSpec
from .headers import HeaderMap
from .response import ResponseOutcome
from .classifier import ResponseClassifier, extract_error_message
from .retry_engine import RetryAction, RetryCoordinator
from .token_store import (
    TokenProvider,
    TokenStore,
    RefreshingTokenProvider,
    RefreshCoordinator,
)
from .transport import Transport, TransportRequest, TransportResult, RequestsTransport
from .executor import RequestExecutor, PendingRequest
from .exceptions import (
    AuthFlowException,
    TemporaryError,
    FatalError,
    TransportError,
    TimeoutError,
    ConnectionError,
    DNSError,
    SSLError,
    HTTPError,
    RefreshError,
    InvalidRequestError,
    RequestCancelledError,
    ConfigurationError,
    classify_requests_exception,
)

__all__ = [
    # Config
    "TimeoutConfig",
    "RetryPolicy",
    "TransportConfig",
    "ClientConfig",
    # Request / response
    "HTTPMethod",
    "MultipartPart",
    "RequestSpec",
    "HeaderMap",
    "ResponseOutcome",
    "ResponseClassifier",
    "extract_error_message",
    # Retry
    "RetryAction",
    "RetryCoordinator",
    # Tokens
    "TokenProvider",
    "TokenStore",
    "RefreshingTokenProvider",
    "RefreshCoordinator",
    # Transport
    "Transport",
    "TransportRequest",
    "TransportResult",
    "RequestsTransport",
    # Executor
    "RequestExecutor",
    "PendingRequest",
    # Exceptions
    "AuthFlowException",
    "TemporaryError",
    "FatalError",
    "TransportError",
    "TimeoutError",
    "ConnectionError",
    "DNSError",
    "SSLError",
    "HTTPError",
    "RefreshError",
    "InvalidRequestError",
    "RequestCancelledError",
    "ConfigurationError",
    "classify_requests_exception",
]
