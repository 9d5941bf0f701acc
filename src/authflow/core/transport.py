# src/authflow/core/transport.py
"""
Transport boundary: one blocking HTTP exchange per call.

``Transport.send`` never raises for network problems; a failed exchange is
returned as a ``TransportResult`` carrying a ``TransportError``.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
import logging
import threading
from typing import List, Optional, Tuple, Union

import requests
from requests.adapters import HTTPAdapter

from .config import TransportConfig
from .context import MultipartPart
from .exceptions import TransportError, classify_requests_exception
from .headers import HeaderMap
from .session_manager import ThreadSafeSessionManager

logger = logging.getLogger(__name__)


@dataclass
class TransportRequest:
    """Fully assembled request handed to a Transport."""

    method: str
    path: str
    headers: HeaderMap = field(default_factory=HeaderMap)
    params: List[Tuple[str, str]] = field(default_factory=list)
    body: Optional[Union[bytes, str]] = None
    multipart: List[MultipartPart] = field(default_factory=list)


@dataclass(frozen=True)
class TransportResult:
    """Raw exchange result: either a response or a transport error."""

    status_code: int = 0
    body: bytes = b""
    headers: HeaderMap = field(default_factory=HeaderMap)
    error: Optional[TransportError] = None

    @property
    def ok(self) -> bool:
        """True when an HTTP response was obtained (any status)."""
        return self.error is None


class Transport(ABC):
    """Base class for transports. Swap in a stub for tests."""

    @abstractmethod
    def send(self, request: TransportRequest) -> TransportResult:
        """Perform one blocking exchange."""

    def configure(self, config: TransportConfig) -> None:
        """Apply new timeouts / TLS settings. Optional for stubs."""

    def close(self) -> None:
        """Release resources."""


class RequestsTransport(Transport):
    """
    Transport backed by requests with one Session per worker thread.

    Example:
        >>> transport = RequestsTransport(TransportConfig(host="api.example.com"))
        >>> result = transport.send(TransportRequest("GET", "/health"))
        >>> result.status_code
        200
    """

    def __init__(self, config: Optional[TransportConfig] = None):
        self._config = config or TransportConfig()
        self._config_lock = threading.Lock()
        self._session_manager = ThreadSafeSessionManager(self._create_session)

    @property
    def config(self) -> TransportConfig:
        with self._config_lock:
            return self._config

    def configure(self, config: TransportConfig) -> None:
        with self._config_lock:
            self._config = config

    def update(self, **changes) -> None:
        """Replace selected fields of the current config atomically."""
        with self._config_lock:
            self._config = replace(self._config, **changes)

    def _create_session(self) -> requests.Session:
        session = requests.Session()
        # Retries belong to the executor
        adapter = HTTPAdapter(max_retries=0)
        session.mount('http://', adapter)
        session.mount('https://', adapter)
        return session

    def build_url(self, path: str) -> str:
        if path.startswith(("http://", "https://")):
            return path
        return f"{self.config.base_url}/{path.lstrip('/')}"

    def send(self, request: TransportRequest) -> TransportResult:
        config = self.config
        url = self.build_url(request.path)

        headers = request.headers.copy()
        if request.multipart:
            # requests generates the boundary itself
            headers.remove('Content-Type')

        kwargs = {
            'headers': headers.to_dict(),
            'timeout': config.timeout.as_tuple(),
            'verify': config.verify_ssl,
            'allow_redirects': True,
        }
        if request.params:
            kwargs['params'] = request.params
        if request.multipart:
            kwargs['files'] = [
                (part.name, (part.filename or None, part.content, part.content_type or None))
                for part in request.multipart
            ]
        elif request.body is not None:
            kwargs['data'] = request.body

        try:
            response = self._session_manager.get_session().request(
                request.method, url, **kwargs
            )
        except requests.exceptions.RequestException as e:
            error = classify_requests_exception(e, url)
            logger.debug("Transport error for %s %s: %s", request.method, url, e)
            return TransportResult(error=error)

        return TransportResult(
            status_code=response.status_code,
            body=response.content,
            headers=HeaderMap(response.headers),
        )

    def close(self) -> None:
        self._session_manager.close_all()
