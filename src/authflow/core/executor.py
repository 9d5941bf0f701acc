# src/authflow/core/executor.py
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import replace
import json
import logging
import threading
import time
from typing import Any, Callable, Iterable, List, Mapping, Optional, Tuple, Union
from urllib.parse import urlencode

from .classifier import ResponseClassifier
from .config import ClientConfig
from .context import HTTPMethod, MultipartPart, RequestSpec
from .exceptions import (
    ConfigurationError,
    InvalidRequestError,
    RefreshError,
    RequestCancelledError,
    TransportError,
)
from .headers import HeaderMap, HeadersLike
from .logging import ClientLogger
from .logging.filters import clear_correlation_id, set_correlation_id
from .response import ResponseOutcome
from .retry_engine import RetryAction, RetryCoordinator
from .token_store import RefreshCoordinator, TokenProvider, TokenStore
from .transport import RequestsTransport, Transport, TransportRequest, TransportResult
from ..utils.sanitizer import mask_headers, mask_sensitive_data

logger = logging.getLogger(__name__)

ResponseCallback = Callable[[ResponseOutcome], None]
RequestInterceptor = Callable[[HeaderMap], None]
Params = Union[Mapping[str, Any], Iterable[Tuple[str, Any]], None]

# Методы, для которых тело запроса отправляется
_BODY_METHODS = frozenset({HTTPMethod.POST.value, HTTPMethod.PUT.value, HTTPMethod.PATCH.value})
# Методы, для которых params уходят в query string
_QUERY_METHODS = frozenset({HTTPMethod.GET.value, HTTPMethod.DELETE.value})


def _normalize_params(params: Params) -> List[Tuple[str, str]]:
    if not params:
        return []
    items = params.items() if hasattr(params, 'items') else params
    return [(str(key), str(value)) for key, value in items]


class _Wakeup:
    """One-shot resume: fires on timer expiry, cancel or ``release()``, whichever comes first."""

    def __init__(self, delay: float, resume: Callable[[], None]):
        self._lock = threading.Lock()
        self._resume: Optional[Callable[[], None]] = resume
        self._timer = threading.Timer(delay, self.release)
        self._timer.daemon = True

    def start(self) -> None:
        self._timer.start()

    def release(self) -> None:
        with self._lock:
            resume, self._resume = self._resume, None
        if resume is None:
            return
        self._timer.cancel()
        resume()


class PendingRequest:
    """
    Handle for one logical request.

    Wraps the future that resolves to the final ``ResponseOutcome``.
    ``cancel()`` only prevents the next attempt from being scheduled; an
    attempt already on the wire runs to completion.

    Example:
        >>> pending = executor.get("/users")
        >>> outcome = pending.result(timeout=30)
    """

    def __init__(self, spec: RequestSpec):
        self.spec = spec
        self.future: Future = Future()
        self._cancel_event = threading.Event()
        self._lock = threading.Lock()
        self._wakeup: Optional[_Wakeup] = None

    @property
    def request_id(self) -> str:
        return self.spec.request_id

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    def cancel(self) -> None:
        self._cancel_event.set()
        with self._lock:
            wakeup = self._wakeup
        if wakeup is not None:
            wakeup.release()

    def park(self, delay: float, resume: Callable[[], None]) -> _Wakeup:
        """
        Suspend the request without holding a thread.

        ``resume`` runs once: after ``delay`` seconds, on ``cancel()`` or
        when the returned wakeup is released.
        """
        wakeup = _Wakeup(delay, resume)
        with self._lock:
            self._wakeup = wakeup
        wakeup.start()
        if self.cancelled:
            wakeup.release()
        return wakeup

    def done(self) -> bool:
        return self.future.done()

    def result(self, timeout: Optional[float] = None) -> ResponseOutcome:
        return self.future.result(timeout)


class _RequestChain:
    """Состояние цепочки попыток одного логического запроса между шагами."""

    def __init__(self, pending: PendingRequest, on_complete: Optional[ResponseCallback]):
        self.pending = pending
        self.on_complete = on_complete
        self.refresh_attempts = 0
        self.start_time = time.time()

    @property
    def spec(self) -> RequestSpec:
        return self.pending.spec

    @property
    def duration_ms(self) -> float:
        return round((time.time() - self.start_time) * 1000, 2)


class RequestExecutor:
    """
    Выполняет HTTP запросы асинхронно с bearer-авторизацией, повторами и
    координированным обновлением токена.

    Features:
        - Пул воркеров: публичный API никогда не блокирует вызывающего
        - Ровно один callback на каждый логический запрос
        - Authorization: Bearer <token> подставляется перед каждой попыткой
        - Повтор с паузой на retryable статусах
        - 401/403 -> refresh (один на provider одновременно) -> повтор
        - Пауза перед повтором и ожидание refresh не занимают воркер пула

    Example:
        >>> executor = RequestExecutor(ClientConfig.create(host="api.example.com"))
        >>> executor.set_access_token("abc")
        >>> executor.get("/me", on_complete=lambda outcome: print(outcome.status_code))
    """

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        transport: Optional[Transport] = None,
        token_provider: Optional[TokenProvider] = None,
        close_provider: bool = False,
    ):
        """
        Args:
            config: ClientConfig instance
            transport: Transport (RequestsTransport по умолчанию)
            token_provider: Provider с поддержкой refresh (опционально)
            close_provider: Закрыть token_provider в close(). По умолчанию
                жизненным циклом provider управляет вызывающий код
        """
        self._config = config or ClientConfig()
        self._state_lock = threading.Lock()

        self._owns_transport = transport is None
        self._transport = transport or RequestsTransport(self._config.transport)
        self._classifier = ResponseClassifier()
        self._retry = RetryCoordinator(self._config.retry)

        self._default_headers = HeaderMap(self._config.default_headers)
        self._interceptor: Optional[RequestInterceptor] = None
        self._auto_refresh = self._config.auto_refresh_token

        self._own_store = TokenStore()
        self._provider: Optional[TokenProvider] = None
        self._coordinator: Optional[RefreshCoordinator] = None
        if token_provider is not None:
            self.set_token_provider(token_provider)

        self._pool = ThreadPoolExecutor(
            max_workers=self._config.max_workers,
            thread_name_prefix="authflow-worker",
        )
        self._closed = False
        self._close_provider = close_provider
        # Принятые, но ещё не доставленные запросы (включая припаркованные)
        self._active = 0
        self._idle = threading.Condition(self._state_lock)

        self._logger: Optional[ClientLogger] = None
        if self._config.logging:
            self._logger = ClientLogger(self._config.logging)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    # ==================== Конфигурация ====================

    @property
    def config(self) -> ClientConfig:
        with self._state_lock:
            return self._config

    @property
    def retry_policy(self):
        return self._retry.policy

    @property
    def default_headers(self) -> HeaderMap:
        """Копия дефолтных заголовков."""
        with self._state_lock:
            return self._default_headers.copy()

    def set_default_header(self, key: str, value: str) -> None:
        with self._state_lock:
            self._default_headers.set(key, value)

    def remove_default_header(self, key: str) -> None:
        with self._state_lock:
            self._default_headers.remove(key)

    def set_timeout(self, connect: float, read: float) -> None:
        """Новые таймауты действуют со следующей попытки."""
        with self._state_lock:
            transport_cfg = replace(
                self._config.transport,
                timeout=replace(self._config.transport.timeout, connect=connect, read=read),
            )
            self._config = self._config.with_transport(transport_cfg)
        self._transport.configure(transport_cfg)

    def set_ssl_verification(self, verify: bool) -> None:
        with self._state_lock:
            transport_cfg = replace(self._config.transport, verify_ssl=verify)
            self._config = self._config.with_transport(transport_cfg)
        self._transport.configure(transport_cfg)

    def set_retry_config(
        self,
        max_retries: int,
        retry_delay_ms: int,
        status_codes: Iterable[int],
    ) -> None:
        policy = replace(
            self._retry.policy,
            max_retries=max_retries,
            retry_delay_ms=retry_delay_ms,
            retryable_status_codes=frozenset(status_codes),
        )
        self._retry.update_policy(policy)
        with self._state_lock:
            self._config = self._config.with_retry(policy)

    def set_auto_refresh_token(self, enable: bool) -> None:
        with self._state_lock:
            self._auto_refresh = enable

    def set_request_interceptor(self, interceptor: Optional[RequestInterceptor]) -> None:
        """
        Interceptor получает HeaderMap попытки и может его менять.

        Исключение из interceptor - ошибка программиста: попытка не
        отправляется, повтора нет, outcome.error содержит исходное исключение.
        """
        with self._state_lock:
            self._interceptor = interceptor

    # ==================== Токены ====================

    def set_token_provider(self, provider: Optional[TokenProvider]) -> None:
        with self._state_lock:
            self._provider = provider
            self._coordinator = RefreshCoordinator(provider) if provider is not None else None

    @property
    def token_provider(self) -> Optional[TokenProvider]:
        with self._state_lock:
            return self._provider

    @property
    def tokens(self) -> TokenProvider:
        """Provider, если настроен, иначе встроенный TokenStore."""
        with self._state_lock:
            return self._provider if self._provider is not None else self._own_store

    def set_access_token(self, token: str) -> None:
        self.tokens.set_access_token(token)

    def set_refresh_token(self, token: str) -> None:
        self.tokens.set_refresh_token(token)

    def set_tokens(self, access_token: str, refresh_token: str) -> None:
        self.tokens.set_tokens(access_token, refresh_token)

    def clear_tokens(self) -> None:
        self._own_store.clear()
        provider = self.token_provider
        if provider is not None:
            provider.clear()

    # ==================== Публичный API запросов ====================

    def execute(
        self,
        spec: RequestSpec,
        on_complete: Optional[ResponseCallback] = None,
    ) -> PendingRequest:
        """
        Запустить логический запрос.

        Никогда не блокирует. on_complete вызывается ровно один раз на
        потоке воркера. Невалидный spec (неизвестный метод, body вместе с
        multipart) отклоняется сразу, без обращения к транспорту.

        Raises:
            ConfigurationError: executor уже закрыт
        """
        chain = _RequestChain(PendingRequest(spec), on_complete)
        problem = spec.validate()

        with self._state_lock:
            if self._closed:
                raise ConfigurationError("RequestExecutor is closed")
            self._active += 1
            if problem is None:
                self._pool.submit(self._step, chain, self._begin)
            else:
                outcome = ResponseOutcome(
                    status_code=0,
                    error_message=problem,
                    error=InvalidRequestError(problem, spec.path),
                )
                self._pool.submit(self._deliver, chain, outcome)

        if problem is not None:
            self._log(logging.WARNING, "Request rejected", method=spec.method,
                      path=spec.path, reason=problem)
        return chain.pending

    def request(
        self,
        method: str,
        path: str,
        headers: HeadersLike = None,
        params: Params = None,
        body: Optional[Union[bytes, str]] = None,
        content_type: str = "",
        multipart: Optional[List[MultipartPart]] = None,
        on_complete: Optional[ResponseCallback] = None,
    ) -> PendingRequest:
        spec = RequestSpec(
            method=method,
            path=path,
            headers=HeaderMap(headers or {}),
            params=_normalize_params(params),
            body=body,
            content_type=content_type,
            multipart=list(multipart or []),
        )
        return self.execute(spec, on_complete)

    def get(self, path: str, headers: HeadersLike = None, params: Params = None,
            on_complete: Optional[ResponseCallback] = None) -> PendingRequest:
        return self.request("GET", path, headers=headers, params=params, on_complete=on_complete)

    def post(self, path: str, json_data: Any = None, headers: HeadersLike = None,
             on_complete: Optional[ResponseCallback] = None) -> PendingRequest:
        """POST с JSON телом."""
        return self.post_raw(path, json.dumps(json_data), "application/json",
                             headers=headers, on_complete=on_complete)

    def post_form(self, path: str, params: Params, headers: HeadersLike = None,
                  on_complete: Optional[ResponseCallback] = None) -> PendingRequest:
        """POST application/x-www-form-urlencoded."""
        body = urlencode(_normalize_params(params))
        return self.post_raw(path, body, "application/x-www-form-urlencoded",
                             headers=headers, on_complete=on_complete)

    def post_multipart(self, path: str, parts: List[MultipartPart], headers: HeadersLike = None,
                       on_complete: Optional[ResponseCallback] = None) -> PendingRequest:
        return self.request("POST", path, headers=headers, multipart=parts, on_complete=on_complete)

    def post_raw(self, path: str, body: Union[bytes, str], content_type: str,
                 headers: HeadersLike = None,
                 on_complete: Optional[ResponseCallback] = None) -> PendingRequest:
        return self.request("POST", path, headers=headers, body=body,
                            content_type=content_type, on_complete=on_complete)

    def put(self, path: str, json_data: Any = None, headers: HeadersLike = None,
            on_complete: Optional[ResponseCallback] = None) -> PendingRequest:
        return self.put_raw(path, json.dumps(json_data), "application/json",
                            headers=headers, on_complete=on_complete)

    def put_raw(self, path: str, body: Union[bytes, str], content_type: str,
                headers: HeadersLike = None,
                on_complete: Optional[ResponseCallback] = None) -> PendingRequest:
        return self.request("PUT", path, headers=headers, body=body,
                            content_type=content_type, on_complete=on_complete)

    def patch(self, path: str, json_data: Any = None, headers: HeadersLike = None,
              on_complete: Optional[ResponseCallback] = None) -> PendingRequest:
        return self.request("PATCH", path, headers=headers, body=json.dumps(json_data),
                            content_type="application/json", on_complete=on_complete)

    def delete(self, path: str, headers: HeadersLike = None,
               on_complete: Optional[ResponseCallback] = None) -> PendingRequest:
        return self.request("DELETE", path, headers=headers, on_complete=on_complete)

    # ==================== Жизненный цикл ====================

    def close(self, wait: bool = True) -> None:
        """
        Остановить пул и освободить транспорт.

        При wait=True дожидается доставки всех принятых запросов, в том
        числе ожидающих повтора или refresh. После wait=False проснувшийся
        запрос доставляется как отменённый.
        """
        with self._state_lock:
            if self._closed:
                return
            self._closed = True
            if wait:
                while self._active:
                    self._idle.wait()

        self._pool.shutdown(wait=wait)
        if self._owns_transport:
            self._transport.close()
        if self._close_provider:
            provider = self.token_provider
            if provider is not None:
                provider.close()
        if self._logger is not None:
            self._logger.close()

    # ==================== Внутренние методы ====================

    def _log(self, level: int, message: str, **fields: Any) -> None:
        if self._logger is not None:
            self._logger.log(level, message, **fields)
        elif logger.isEnabledFor(level):
            masked = mask_sensitive_data(fields)
            logger.log(level, "%s %s", message,
                       " ".join(f"{key}={value}" for key, value in masked.items()))

    def _deliver(self, chain: _RequestChain, outcome: ResponseOutcome) -> None:
        with self._state_lock:
            self._active -= 1
            if not self._active:
                self._idle.notify_all()

        pending = chain.pending
        if chain.on_complete is not None:
            try:
                chain.on_complete(outcome)
            except Exception as exc:
                logger.exception("on_complete callback raised for request %s", pending.request_id)
                pending.future.set_exception(exc)
                return
        pending.future.set_result(outcome)

    def _submit(self, chain: _RequestChain, handler: Callable[..., Optional[ResponseOutcome]],
                *args: Any) -> None:
        """Поставить следующий шаг цепочки в пул."""
        try:
            self._pool.submit(self._step, chain, handler, *args)
        except RuntimeError:
            # Пул остановлен close(wait=False)
            self._deliver(chain, self._cancelled(chain.spec))

    def _step(self, chain: _RequestChain, handler: Callable[..., Optional[ResponseOutcome]],
              *args: Any) -> None:
        """
        Выполнить шаг цепочки на воркере.

        handler возвращает итоговый outcome или None, если запрос
        припаркован и следующий шаг уже запланирован.
        """
        set_correlation_id(chain.pending.request_id)
        try:
            try:
                outcome = handler(chain, *args)
            except Exception as exc:
                logger.exception("Unexpected error while executing request %s",
                                 chain.pending.request_id)
                outcome = ResponseOutcome(
                    status_code=0,
                    error_message=f"Internal error: {exc}",
                    error=exc,
                )
            if outcome is not None:
                self._deliver(chain, outcome)
        finally:
            clear_correlation_id()

    def _can_refresh(self) -> Optional[RefreshCoordinator]:
        with self._state_lock:
            if self._auto_refresh and self._coordinator is not None:
                return self._coordinator
            return None

    def _begin(self, chain: _RequestChain) -> Optional[ResponseOutcome]:
        spec = chain.spec
        self._log(logging.INFO, "Request started", method=spec.method, path=spec.path,
                  request_id=spec.request_id)
        return self._attempt(chain)

    def _next_attempt(self, chain: _RequestChain) -> Optional[ResponseOutcome]:
        chain.spec.attempt += 1
        return self._attempt(chain)

    def _attempt(self, chain: _RequestChain) -> Optional[ResponseOutcome]:
        """Попытки: attempt -> classify -> deliver / retry / refresh."""
        spec = chain.spec

        while True:
            if chain.pending.cancelled:
                return self._cancelled(spec)

            try:
                headers, sent_token = self._prepare_headers(spec)
            except Exception as exc:
                if self._logger is not None:
                    self._logger.exception("Request interceptor failed", method=spec.method,
                                           path=spec.path)
                else:
                    logger.exception("Request interceptor failed for %s %s",
                                     spec.method, spec.path)
                return ResponseOutcome(
                    status_code=0,
                    error_message=f"Request interceptor failed: {exc}",
                    error=exc,
                )

            outcome = self._dispatch(spec, headers)

            coordinator = self._can_refresh()
            action = self._retry.next_action(
                outcome,
                spec.attempt,
                can_refresh=coordinator is not None,
                refresh_attempts=chain.refresh_attempts,
            )

            if action is RetryAction.DELIVER:
                if outcome.success:
                    self._log(logging.INFO, "Request completed", method=spec.method,
                              path=spec.path, status_code=outcome.status_code,
                              attempt=spec.attempt + 1, duration_ms=chain.duration_ms)
                else:
                    self._log(logging.ERROR, "Request failed", method=spec.method,
                              path=spec.path, status_code=outcome.status_code,
                              error_message=outcome.error_message,
                              attempt=spec.attempt + 1, duration_ms=chain.duration_ms)
                return outcome

            if action is RetryAction.REFRESH:
                chain.refresh_attempts += 1
                self._log(logging.WARNING, "Token refresh needed", method=spec.method,
                          path=spec.path, status_code=outcome.status_code,
                          refresh_attempt=chain.refresh_attempts)
                future = coordinator.request_refresh(stale_token=sent_token)
                if not future.done():
                    self._park_for_refresh(chain, coordinator, future)
                    return None
                failed = self._apply_refresh(chain, future)
                if failed is not None:
                    return failed
                spec.attempt += 1
                continue

            # RetryAction.RETRY
            delay = self._retry.policy.retry_delay
            self._log(logging.WARNING, "Request error (will retry)", method=spec.method,
                      path=spec.path, status_code=outcome.status_code,
                      error_message=outcome.error_message, attempt=spec.attempt + 1,
                      max_retries=self._retry.policy.max_retries,
                      delay_ms=int(delay * 1000))
            if delay > 0:
                chain.pending.park(delay, lambda: self._submit(chain, self._next_attempt))
            else:
                self._submit(chain, self._next_attempt)
            return None

    def _park_for_refresh(self, chain: _RequestChain, coordinator: RefreshCoordinator,
                          future: Future) -> None:
        """Освободить воркер до результата refresh, отмены или refresh_timeout."""
        timeout = self.config.refresh_timeout
        wakeup = chain.pending.park(
            timeout,
            lambda: self._submit(chain, self._after_refresh, coordinator, future, timeout),
        )
        future.add_done_callback(lambda _: wakeup.release())

    def _after_refresh(self, chain: _RequestChain, coordinator: RefreshCoordinator,
                       future: Future, timeout: float) -> Optional[ResponseOutcome]:
        if chain.pending.cancelled:
            return self._cancelled(chain.spec)
        if not future.done():
            coordinator.abandon(future, timeout)
            self._log(logging.ERROR, "Token refresh timed out", method=chain.spec.method,
                      path=chain.spec.path, duration_ms=chain.duration_ms)
            return self._refresh_failed(chain.spec, "Token refresh failed")
        failed = self._apply_refresh(chain, future)
        if failed is not None:
            return failed
        return self._next_attempt(chain)

    def _apply_refresh(self, chain: _RequestChain, future: Future) -> Optional[ResponseOutcome]:
        """None если токен обновлён и запрос можно повторить."""
        spec = chain.spec
        ok, _ = future.result()
        if not ok:
            self._log(logging.ERROR, "Token refresh failed", method=spec.method,
                      path=spec.path, duration_ms=chain.duration_ms)
            return self._refresh_failed(spec, "Token refresh failed")
        self._log(logging.INFO, "Token refreshed, resubmitting", method=spec.method,
                  path=spec.path)
        return None

    def _prepare_headers(self, spec: RequestSpec) -> Tuple[HeaderMap, str]:
        """
        defaults <- per-request, затем Authorization, затем interceptor.

        Returns:
            (headers, access token, с которым уходит попытка)
        """
        with self._state_lock:
            headers = self._default_headers.merged(spec.headers)
            interceptor = self._interceptor

        if spec.multipart:
            headers.remove('Content-Type')
        elif spec.content_type:
            headers.set('Content-Type', spec.content_type)

        headers.remove('Authorization')
        token = self.tokens.get_access_token()
        if token:
            headers.set('Authorization', f"Bearer {token}")

        if interceptor is not None:
            interceptor(headers)

        return headers, token

    def _dispatch(self, spec: RequestSpec, headers: HeaderMap) -> ResponseOutcome:
        request = TransportRequest(
            method=spec.method,
            path=spec.path,
            headers=headers,
            params=list(spec.params) if spec.method in _QUERY_METHODS else [],
            body=spec.body if spec.method in _BODY_METHODS else None,
            multipart=list(spec.multipart),
        )

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("Dispatching %s %s attempt=%d headers=%s", spec.method, spec.path,
                         spec.attempt + 1, mask_headers(headers))

        try:
            result = self._transport.send(request)
        except Exception as exc:
            logger.exception("Transport raised for %s %s", spec.method, spec.path)
            result = TransportResult(
                error=TransportError(f"Unexpected transport error: {exc}", spec.path)
            )

        return self._classifier.classify(result, spec.path)

    def _refresh_failed(self, spec: RequestSpec, message: str) -> ResponseOutcome:
        error = RefreshError(message, spec.path)
        return ResponseOutcome(status_code=403, error_message=message, error=error)

    def _cancelled(self, spec: RequestSpec) -> ResponseOutcome:
        self._log(logging.INFO, "Request cancelled", method=spec.method, path=spec.path,
                  attempt=spec.attempt)
        return ResponseOutcome(
            status_code=0,
            error_message="Request cancelled",
            error=RequestCancelledError("Request cancelled"),
        )
