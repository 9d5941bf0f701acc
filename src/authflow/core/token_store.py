# src/authflow/core/token_store.py
"""
Token storage and refresh coordination.

Two provider variants share the ``TokenProvider`` interface:

- ``TokenStore`` only holds the token pair; its refresh always fails.
- ``RefreshingTokenProvider`` additionally exchanges the refresh token for a
  new access token at a refresh endpoint.

``RefreshCoordinator`` makes sure at most one refresh per provider is in
flight; requests that hit 401 meanwhile wait for that refresh and reuse its
result.
"""

from abc import ABC, abstractmethod
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
import json
import logging
import threading
from typing import Callable, Optional, Tuple

from .classifier import ResponseClassifier
from .config import TransportConfig
from .headers import HeaderMap
from .transport import RequestsTransport, Transport, TransportRequest

logger = logging.getLogger(__name__)

RefreshCallback = Callable[[bool, str], None]


class TokenProvider(ABC):
    """Capability set every token provider offers. All methods are thread-safe."""

    @abstractmethod
    def get_access_token(self) -> str:
        """Current access token ("" when absent)."""

    @abstractmethod
    def get_refresh_token(self) -> str:
        """Current refresh token ("" when absent)."""

    @abstractmethod
    def set_tokens(self, access_token: str, refresh_token: str) -> None:
        """Replace the whole token pair."""

    @abstractmethod
    def refresh_access_token(self, on_complete: RefreshCallback) -> None:
        """
        Obtain a new access token asynchronously.

        ``on_complete(success, new_access_token)`` fires exactly once, on any
        thread.
        """

    def set_access_token(self, access_token: str) -> None:
        """Replace only the access token."""
        self.set_tokens(access_token, self.get_refresh_token())

    def set_refresh_token(self, refresh_token: str) -> None:
        """Replace only the refresh token."""
        self.set_tokens(self.get_access_token(), refresh_token)

    def clear(self) -> None:
        """Forget both tokens."""
        self.set_tokens("", "")

    def close(self) -> None:
        """Release background resources (none by default)."""


class TokenStore(TokenProvider):
    """
    Default provider: holds tokens, cannot refresh.

    Example:
        >>> store = TokenStore()
        >>> store.set_tokens("access", "refresh")
        >>> store.get_access_token()
        'access'
    """

    def __init__(self, access_token: str = "", refresh_token: str = ""):
        self._lock = threading.Lock()
        self._access_token = access_token or ""
        self._refresh_token = refresh_token or ""

    def get_access_token(self) -> str:
        with self._lock:
            return self._access_token

    def get_refresh_token(self) -> str:
        with self._lock:
            return self._refresh_token

    def set_tokens(self, access_token: str, refresh_token: str) -> None:
        with self._lock:
            self._access_token = access_token or ""
            self._refresh_token = refresh_token or ""

    def set_access_token(self, access_token: str) -> None:
        with self._lock:
            self._access_token = access_token or ""

    def set_refresh_token(self, refresh_token: str) -> None:
        with self._lock:
            self._refresh_token = refresh_token or ""

    def install_refreshed(self, access_token: str, refresh_token: str = "") -> None:
        """Install a refresh result; an empty refresh token keeps the old one."""
        with self._lock:
            self._access_token = access_token
            if refresh_token:
                self._refresh_token = refresh_token

    def refresh_access_token(self, on_complete: RefreshCallback) -> None:
        on_complete(False, "")


class RefreshingTokenProvider(TokenStore):
    """
    Provider that refreshes tokens through a refresh endpoint.

    The refresh call goes through its own Transport, without bearer
    injection, so a refresh never triggers another refresh.

    Args:
        transport: Transport for the refresh call (RequestsTransport by default)
        refresh_path: Refresh endpoint path
        transport_config: Used to build the default transport
        headers: Extra headers for the refresh call

    Example:
        >>> provider = RefreshingTokenProvider(
        ...     transport_config=TransportConfig(host="api.example.com")
        ... )
        >>> provider.set_tokens("", "refresh-123")
        >>> provider.refresh_access_token(lambda ok, token: print(ok, token))
    """

    def __init__(
        self,
        transport: Optional[Transport] = None,
        refresh_path: str = "/api/v1/auth/refresh",
        transport_config: Optional[TransportConfig] = None,
        headers: Optional[dict] = None,
        access_token: str = "",
        refresh_token: str = "",
    ):
        super().__init__(access_token, refresh_token)
        self._owns_transport = transport is None
        self._transport = transport or RequestsTransport(transport_config)
        self.refresh_path = refresh_path
        self._headers = HeaderMap({"Content-Type": "application/json"}).merged(headers)
        self._classifier = ResponseClassifier()
        self._pool = ThreadPoolExecutor(max_workers=1, thread_name_prefix="authflow-refresh")

    def refresh_access_token(self, on_complete: RefreshCallback) -> None:
        refresh_token = self.get_refresh_token()
        if not refresh_token:
            logger.debug("No refresh token, refresh declined")
            on_complete(False, "")
            return
        self._pool.submit(self._do_refresh, refresh_token, on_complete)

    def _do_refresh(self, refresh_token: str, on_complete: RefreshCallback) -> None:
        try:
            success, access_token = self._exchange(refresh_token)
        except Exception:
            logger.exception("Token refresh raised unexpectedly")
            success, access_token = False, ""
        on_complete(success, access_token)

    def _exchange(self, refresh_token: str) -> Tuple[bool, str]:
        request = TransportRequest(
            method="POST",
            path=self.refresh_path,
            headers=self._headers.copy(),
            body=json.dumps({"refresh_token": refresh_token}),
        )
        outcome = self._classifier.classify(self._transport.send(request), self.refresh_path)
        if not outcome.success:
            logger.warning(
                "Token refresh rejected: %s (status %d)",
                outcome.error_message, outcome.status_code
            )
            return False, ""

        try:
            payload = outcome.json()
        except (ValueError, RecursionError):
            logger.warning("Token refresh response is not valid JSON")
            return False, ""
        if not isinstance(payload, dict):
            return False, ""

        access_token = payload.get("access_token") or ""
        if not isinstance(access_token, str) or not access_token:
            logger.warning("Token refresh response has no access_token")
            return False, ""
        new_refresh = payload.get("refresh_token") or ""
        self.install_refreshed(access_token, new_refresh if isinstance(new_refresh, str) else "")
        return True, access_token

    def close(self) -> None:
        self._pool.shutdown(wait=False)
        if self._owns_transport:
            self._transport.close()


class RefreshCoordinator:
    """
    Coalesces concurrent refreshes of one provider into a single call.

    The first caller starts ``provider.refresh_access_token``; callers that
    arrive while it is running get the same future. A caller whose failed
    attempt used a token that has since been replaced gets the current token
    back without a new refresh.

    Example:
        >>> coordinator = RefreshCoordinator(provider)
        >>> future = coordinator.request_refresh(stale_token="old")
        >>> future.add_done_callback(lambda f: print(f.result()))
    """

    def __init__(self, provider: TokenProvider):
        self.provider = provider
        self._lock = threading.Lock()
        self._inflight: Optional[Future] = None

    @property
    def in_progress(self) -> bool:
        with self._lock:
            return self._inflight is not None

    def request_refresh(self, stale_token: Optional[str] = None) -> Future:
        """
        Join the in-flight refresh or start a new one. Never blocks.

        Args:
            stale_token: Access token the failed attempt was sent with

        Returns:
            Future resolving to (success, access_token)
        """
        with self._lock:
            if stale_token is not None:
                current = self.provider.get_access_token()
                if current and current != stale_token:
                    done: Future = Future()
                    done.set_result((True, current))
                    return done

            future = self._inflight
            starter = future is None
            if starter:
                future = Future()
                self._inflight = future

        if starter:
            self._start(future)
        return future

    def abandon(self, future: Future, timeout: float) -> None:
        """Forget a refresh that did not call back in time."""
        logger.warning("Token refresh did not complete within %.1fs", timeout)
        with self._lock:
            if self._inflight is future:
                self._inflight = None

    def refresh(self, stale_token: Optional[str] = None, timeout: float = 60.0) -> Tuple[bool, str]:
        """Blocking form of ``request_refresh``: wait up to ``timeout`` for the result."""
        future = self.request_refresh(stale_token)
        try:
            return future.result(timeout=timeout)
        except FutureTimeoutError:
            self.abandon(future, timeout)
            return False, ""

    def _start(self, future: Future) -> None:
        def on_complete(success: bool, access_token: str) -> None:
            ok = bool(success and access_token)
            with self._lock:
                if ok:
                    if isinstance(self.provider, TokenStore):
                        self.provider.install_refreshed(access_token)
                    else:
                        self.provider.set_access_token(access_token)
                if self._inflight is future:
                    self._inflight = None
            # waiter callbacks run outside the lock
            if not future.done():
                future.set_result((ok, access_token if ok else ""))

        try:
            self.provider.refresh_access_token(on_complete)
        except Exception:
            logger.exception("Token provider raised from refresh_access_token")
            on_complete(False, "")
