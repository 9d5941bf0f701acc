"""Logical request description carried through every attempt."""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple, Union
import uuid

from .headers import HeaderMap


class HTTPMethod(str, Enum):
    """Methods the executor knows how to dispatch."""
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"
    PATCH = "PATCH"


SUPPORTED_METHODS = frozenset(m.value for m in HTTPMethod)


@dataclass(frozen=True)
class MultipartPart:
    """One part of a multipart/form-data body.

    Attributes:
        name: Form field name
        content: Part payload
        filename: File name (empty for plain form fields)
        content_type: Part content type (empty lets the encoder decide)
    """

    name: str
    content: Union[bytes, str]
    filename: str = ""
    content_type: str = ""


@dataclass
class RequestSpec:
    """A fully described logical request awaiting execution/retry.

    Attributes:
        method: HTTP method (GET, POST, PUT, DELETE, PATCH)
        path: Path relative to the transport base URL
        headers: Per-request headers (override defaults)
        params: Ordered query parameters (GET) or form fields
        body: Raw payload for mutating verbs
        content_type: Content type of ``body``
        multipart: Multipart parts (mutually exclusive with ``body``)
        attempt: Attempts already made, grows across retries
        request_id: Correlation id used in logs

    Example:
        >>> spec = RequestSpec('GET', '/users', params=[('page', '1')])
        >>> spec.validate() is None
        True
    """

    method: str
    path: str
    headers: HeaderMap = field(default_factory=HeaderMap)
    params: List[Tuple[str, str]] = field(default_factory=list)
    body: Optional[Union[bytes, str]] = None
    content_type: str = ""
    multipart: List[MultipartPart] = field(default_factory=list)
    attempt: int = 0
    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def __post_init__(self):
        if not isinstance(self.headers, HeaderMap):
            self.headers = HeaderMap(self.headers or {})
        if isinstance(self.params, dict):
            self.params = list(self.params.items())
        self.method = self.method.upper() if isinstance(self.method, str) else self.method

    def validate(self) -> Optional[str]:
        """Return a description of what is wrong, or None if the request can be dispatched."""
        if self.method not in SUPPORTED_METHODS:
            return f"Unknown method: {self.method}"
        if self.multipart and self.body not in (None, b"", ""):
            return "Invalid request: body and multipart parts are mutually exclusive"
        if self.multipart and self.method in (HTTPMethod.GET.value, HTTPMethod.DELETE.value):
            return f"Invalid request: multipart body is not supported for {self.method}"
        return None
