# src/authflow/session.py
"""
Login / logout facade over a RequestExecutor.

Example:
    >>> executor = RequestExecutor(ClientConfig.create(host="api.example.com"))
    >>> session = UserSession(executor)
    >>> session.login("user@example.com", "secret", lambda ok, msg: print(ok, msg))
"""

import logging
import threading
from typing import Callable, Optional

from .core.executor import PendingRequest, RequestExecutor
from .core.response import ResponseOutcome

logger = logging.getLogger(__name__)

LoginCallback = Callable[[bool, str], None]


class UserSession:
    """
    User state bound to one executor.

    Args:
        executor: Executor shared with the rest of the application
        login_path: Login endpoint path
    """

    def __init__(self, executor: RequestExecutor, login_path: str = "/api/v1/auth/login"):
        self.executor = executor
        self.login_path = login_path
        self._lock = threading.Lock()
        self._username = ""
        self._is_verified = False
        self._is_logged_in = False

    @property
    def is_logged_in(self) -> bool:
        with self._lock:
            return self._is_logged_in

    @property
    def username(self) -> str:
        with self._lock:
            return self._username

    @property
    def is_verified(self) -> bool:
        with self._lock:
            return self._is_verified

    def login(
        self,
        username: str,
        password: str,
        callback: Optional[LoginCallback] = None,
    ) -> PendingRequest:
        """
        POST credentials to the login endpoint.

        ``callback(success, message)`` fires once on a worker thread. On
        success the returned tokens are installed into the executor.
        """
        def on_complete(outcome: ResponseOutcome) -> None:
            success, message = self._handle_login(username, outcome)
            if callback is not None:
                callback(success, message)

        return self.executor.post(
            self.login_path,
            {"email": username, "password": password},
            on_complete=on_complete,
        )

    def _handle_login(self, username: str, outcome: ResponseOutcome):
        if not outcome.success:
            self._set_logged_out()
            logger.info("Login failed: %s", outcome.error_message)
            return False, outcome.error_message or ""

        try:
            payload = outcome.json()
            if not isinstance(payload, dict):
                raise ValueError("expected a JSON object")
            access_token = payload.get("access_token") or ""
            refresh_token = payload.get("refresh_token") or ""
            is_verified = bool(payload.get("is_verify", False))
        except ValueError as e:
            self._set_logged_out()
            return False, f"Failed to parse response: {e}"

        self.executor.set_tokens(access_token, refresh_token)
        with self._lock:
            self._username = username
            self._is_verified = is_verified
            self._is_logged_in = True
        logger.info("Login succeeded")
        return True, "Login successful"

    def _set_logged_out(self) -> None:
        with self._lock:
            self._is_verified = False
            self._is_logged_in = False

    def logout(self) -> None:
        """Forget all token state. No network call."""
        self.executor.clear_tokens()
        self._set_logged_out()
