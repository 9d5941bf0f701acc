"""
Иерархия исключений authflow.

Классификация:
- TemporaryError (retryable=True) - ответа нет, можно повторить
- FatalError (fatal=True) - ответ получен или запрос невалиден, НЕ ретраить

Исключения не пересекают асинхронную границу: они прикрепляются к
ResponseOutcome.error и выбрасываются через ResponseOutcome.raise_for_status().
"""

from typing import Optional
import requests

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# BASE
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class AuthFlowException(Exception):
    """Базовое исключение authflow."""

    retryable: bool = False
    fatal: bool = False

    def __init__(self, message: str, **kwargs):
        self.message = message
        super().__init__(message)

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# TRANSPORT ERRORS (status_code=0)
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class TemporaryError(AuthFlowException):
    """Временная ошибка - ответ не получен."""
    retryable = True

class TransportError(TemporaryError):
    """
    Транспорт не смог получить HTTP ответ.

    Args:
        message: Описание ошибки ("Could not connect to server", ...)
        url: URL запроса
    """

    status_code = 0

    def __init__(self, message: str, url: Optional[str] = None):
        self.url = url
        self.detail = message
        full_message = message
        if url:
            full_message += f" (url: {url})"
        super().__init__(full_message)

class TimeoutError(TransportError):
    """
    Таймаут запроса.

    Args:
        message: Сообщение об ошибке
        url: URL запроса
        timeout_type: Тип таймаута ('connect' или 'read')
    """

    def __init__(
        self,
        message: str,
        url: Optional[str] = None,
        timeout_type: Optional[str] = None
    ):
        self.timeout_type = timeout_type
        msg = message
        if timeout_type:
            msg += f" ({timeout_type} timeout)"
        super().__init__(msg, url)

class ConnectionError(TransportError):
    """Connection refused / reset / unreachable."""
    pass

class DNSError(ConnectionError):
    """DNS resolution failed."""
    pass

class SSLError(ConnectionError):
    """TLS handshake or certificate verification failed."""
    pass

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# FATAL ERRORS (fatal=True)
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class FatalError(AuthFlowException):
    """Фатальная ошибка - цепочка попыток завершена."""
    fatal = True

class HTTPError(FatalError):
    """
    Ответ получен, но статус не 2xx.

    Args:
        status_code: HTTP статус
        url: URL (path) запроса
        message: Человекочитаемое сообщение (из таблицы или тела ответа)
    """

    def __init__(self, status_code: int, url: Optional[str] = None, message: str = ""):
        self.status_code = status_code
        self.url = url
        self.reason = message

        msg = f"HTTP {status_code} error"
        if url:
            msg += f" for {url}"
        if message:
            msg += f": {message}"

        super().__init__(msg)

class RefreshError(HTTPError):
    """
    Цикл обновления токена не удался или не настроен.

    Всегда проявляется как синтетический ответ со статусом 403.
    """

    def __init__(self, message: str = "Token refresh failed", url: Optional[str] = None):
        super().__init__(403, url, message)

class InvalidRequestError(HTTPError):
    """
    Ошибка программиста: неизвестный метод, body вместе с multipart,
    упавший request interceptor. Статус всегда 0, сеть не трогаем.
    """

    def __init__(self, message: str, url: Optional[str] = None):
        super().__init__(0, url, message)

class RequestCancelledError(FatalError):
    """Запрос отменён до следующей попытки."""

    status_code = 0

class ConfigurationError(AuthFlowException):
    """Ошибка конфигурации."""
    fatal = True

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# УТИЛИТЫ
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

def classify_requests_exception(
    exc: Exception,
    url: Optional[str] = None
) -> TransportError:
    """
    Конвертировать requests.exceptions в TransportError.

    Args:
        exc: Исключение из requests
        url: URL запроса

    Returns:
        TransportError с сообщением для "Network error: ..."

    Examples:
        >>> exc = requests.exceptions.ConnectTimeout()
        >>> err = classify_requests_exception(exc, "https://example.com")
        >>> assert isinstance(err, TimeoutError)
    """
    if isinstance(exc, requests.exceptions.ConnectTimeout):
        return TimeoutError("Request timed out", url, timeout_type="connect")

    elif isinstance(exc, requests.exceptions.Timeout):
        return TimeoutError("Request timed out", url, timeout_type="read")

    elif isinstance(exc, requests.exceptions.SSLError):
        return SSLError("SSL error", url)

    elif isinstance(exc, requests.exceptions.ConnectionError):
        text = str(exc)
        if "Name or service not known" in text or "getaddrinfo failed" in text \
                or "nodename nor servname" in text or "NameResolutionError" in text:
            return DNSError("Could not resolve host", url)
        return ConnectionError("Could not connect to server", url)

    elif isinstance(exc, requests.exceptions.RequestException):
        return TransportError(f"Request failed: {exc}", url)

    else:
        return TransportError(f"Unexpected transport error: {exc}", url)
