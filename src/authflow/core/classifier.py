# src/authflow/core/classifier.py

import json
from typing import Any, Optional

from .exceptions import HTTPError
from .response import ResponseOutcome
from .transport import TransportResult


STATUS_MESSAGES = {
    400: "Bad request",
    401: "Invalid credentials",
    403: "Access forbidden",
    404: "Login endpoint not found",
    429: "Too many login attempts",
    500: "Server error",
}

# Порядок важен: первое непустое строковое поле выигрывает
ERROR_FIELDS = ("error", "message", "detail", "error_description", "msg")
NESTED_ERROR_FIELDS = ("message", "detail", "description")


def extract_error_message(payload: Any) -> Optional[str]:
    """
    Ищет сообщение об ошибке в распарсенном JSON.

    Сначала строковые поля верхнего уровня (error, message, detail,
    error_description, msg), затем вложенный объект error
    (message, detail, description).

    Example:
        >>> extract_error_message({"error": {"message": "Bad password"}})
        'Bad password'
        >>> extract_error_message({}) is None
        True
    """
    if not isinstance(payload, dict):
        return None

    for name in ERROR_FIELDS:
        value = payload.get(name)
        if isinstance(value, str) and value:
            return value

    nested = payload.get("error")
    if isinstance(nested, dict):
        for name in NESTED_ERROR_FIELDS:
            value = nested.get(name)
            if isinstance(value, str) and value:
                return value

    return None


class ResponseClassifier:
    """Класс для нормализации результата транспорта в ResponseOutcome"""

    def __init__(self, status_messages: Optional[dict] = None):
        self.status_messages = dict(STATUS_MESSAGES)
        if status_messages:
            self.status_messages.update(status_messages)

    def message_for(self, status_code: int) -> str:
        return self.status_messages.get(status_code, f"Error {status_code}")

    def classify(self, result: TransportResult, url: Optional[str] = None) -> ResponseOutcome:
        """Transport error -> status 0, HTTP response -> success iff 2xx"""

        if result.error is not None:
            return ResponseOutcome(
                status_code=0,
                error_message=f"Network error: {result.error.detail}",
                error=result.error,
            )

        status_code = result.status_code
        if 200 <= status_code < 300:
            return ResponseOutcome(
                status_code=status_code,
                body=result.body,
                headers=result.headers,
            )

        message = self.message_for(status_code)
        if result.body:
            try:
                extracted = extract_error_message(json.loads(result.body))
            except (ValueError, RecursionError):
                # Тело не JSON (или слишком глубокое) - оставляем сообщение из таблицы
                extracted = None
            if extracted:
                message = extracted

        return ResponseOutcome(
            status_code=status_code,
            body=result.body,
            headers=result.headers,
            error_message=message,
            error=HTTPError(status_code, url, message),
        )
