"""
Pytest configuration and fixtures for authflow tests.
"""

import threading
from typing import Callable, List, Optional, Union

import pytest
import responses as responses_lib

from authflow.core.config import ClientConfig, TransportConfig
from authflow.core.executor import RequestExecutor
from authflow.core.headers import HeaderMap
from authflow.core.logging.config import LoggingConfig
from authflow.core.token_store import TokenStore
from authflow.core.transport import Transport, TransportRequest, TransportResult

Scripted = Union[TransportResult, Callable[[TransportRequest], TransportResult]]


def result(status_code: int = 200, body: Union[bytes, str] = b"", headers=None) -> TransportResult:
    """Shortcut for a scripted HTTP response."""
    if isinstance(body, str):
        body = body.encode("utf-8")
    return TransportResult(status_code=status_code, body=body, headers=HeaderMap(headers or {}))


class StubTransport(Transport):
    """
    In-memory transport: records every request and replays scripted results.

    The last scripted result repeats once the script runs out.
    """

    def __init__(self, *script: Scripted):
        self.script: List[Scripted] = list(script) or [result(200)]
        self.requests: List[TransportRequest] = []
        self.configured: List[TransportConfig] = []
        self.closed = False
        self._lock = threading.Lock()

    def send(self, request: TransportRequest) -> TransportResult:
        with self._lock:
            self.requests.append(request)
            index = min(len(self.requests), len(self.script)) - 1
            scripted = self.script[index]
        if callable(scripted):
            return scripted(request)
        return scripted

    def configure(self, config: TransportConfig) -> None:
        self.configured.append(config)

    def close(self) -> None:
        self.closed = True

    @property
    def call_count(self) -> int:
        with self._lock:
            return len(self.requests)

    def authorization_headers(self) -> List[Optional[str]]:
        with self._lock:
            return [r.headers.get("Authorization") for r in self.requests]


class ScriptedRefreshProvider(TokenStore):
    """TokenStore whose refresh hands out tokens from a list (or fails)."""

    def __init__(self, new_tokens=("new-token",), access_token="", refresh_token="refresh-1"):
        super().__init__(access_token, refresh_token)
        self.new_tokens = list(new_tokens)
        self.refresh_calls = 0
        self._calls_lock = threading.Lock()

    def refresh_access_token(self, on_complete):
        with self._calls_lock:
            self.refresh_calls += 1
            token = self.new_tokens.pop(0) if self.new_tokens else ""
        on_complete(bool(token), token)


@pytest.fixture
def base_url():
    """Base URL for testing."""
    return "https://api.example.com"


@pytest.fixture
def mock_responses():
    """Mock HTTP responses using responses library."""
    with responses_lib.RequestsMock() as rsps:
        yield rsps


@pytest.fixture
def fast_config():
    """ClientConfig without retry delays."""
    return ClientConfig.create(host="api.example.com", retry_delay_ms=0, max_workers=4)


@pytest.fixture
def stub_transport():
    return StubTransport()


@pytest.fixture
def make_executor(fast_config):
    """Factory: executor over a StubTransport; all executors closed on teardown."""
    created = []

    def factory(*script: Scripted, config: Optional[ClientConfig] = None, **kwargs):
        transport = StubTransport(*script)
        executor = RequestExecutor(config or fast_config, transport=transport, **kwargs)
        created.append(executor)
        return executor, transport

    yield factory

    for executor in created:
        executor.close()


@pytest.fixture
def logging_config_with_file(tmp_path):
    """
    LoggingConfig fixture with file logging enabled.

    Uses temporary directory for log files to avoid cleanup issues.
    """
    log_file = tmp_path / "test.log"
    return LoggingConfig.create(
        level="DEBUG",
        format="json",
        enable_console=False,
        enable_file=True,
        file_path=str(log_file)
    )
