"""Normalized result of one transport attempt."""

from dataclasses import dataclass, field
import json
from typing import Any, Optional

from .headers import HeaderMap


@dataclass(frozen=True)
class ResponseOutcome:
    """
    Immutable outcome delivered to the caller.

    Attributes:
        status_code: HTTP status, 0 when no HTTP response was obtained
        body: Raw response body
        headers: Response headers
        success: True iff 200 <= status_code < 300
        error_message: Human readable message, present iff not success
        error: Exception describing the failure kind (TransportError,
            HTTPError, RefreshError, InvalidRequestError, ...)

    Example:
        >>> outcome = ResponseOutcome(status_code=200, body=b'{"id": 1}')
        >>> outcome.success, outcome.json()["id"]
        (True, 1)
    """

    status_code: int = 0
    body: bytes = b""
    headers: HeaderMap = field(default_factory=HeaderMap)
    success: bool = False
    error_message: Optional[str] = None
    error: Optional[BaseException] = field(default=None, compare=False)

    def __post_init__(self):
        object.__setattr__(self, 'success', 200 <= self.status_code < 300)
        if isinstance(self.body, str):
            object.__setattr__(self, 'body', self.body.encode('utf-8'))
        if not isinstance(self.headers, HeaderMap):
            object.__setattr__(self, 'headers', HeaderMap(self.headers or {}))
        if self.success:
            object.__setattr__(self, 'error_message', None)
        elif not self.error_message:
            object.__setattr__(self, 'error_message', f"Error {self.status_code}")

    @property
    def text(self) -> str:
        return self.body.decode('utf-8', errors='replace')

    def json(self) -> Any:
        """Parse body as JSON (raises ValueError on invalid JSON)."""
        return json.loads(self.text)

    def raise_for_status(self) -> None:
        """Raise the attached error if the outcome is a failure."""
        if self.success:
            return
        if self.error is not None:
            raise self.error
        from .exceptions import HTTPError
        raise HTTPError(self.status_code, message=self.error_message or "")
