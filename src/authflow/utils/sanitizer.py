# src/authflow/utils/sanitizer.py
"""
Маскирование чувствительных данных перед логированием.

Токены, пароли и заголовок Authorization не должны попадать в логи ни в
каком виде.
"""

import re
from typing import Any, Dict


# Точные имена (case-insensitive)
SENSITIVE_KEYS = {
    'password', 'passwd', 'pwd',
    'token', 'access_token', 'refresh_token', 'id_token', 'new_token',
    'secret', 'client_secret', 'api_key', 'apikey',
    'authorization', 'proxy-authorization', 'cookie', 'set-cookie',
}

# Подстроки: ключ, содержащий их, тоже маскируется
SENSITIVE_FRAGMENTS = ('token', 'password', 'secret', 'authorization')

SENSITIVE_PATTERNS = [
    (re.compile(r'(Bearer\s+)([A-Za-z0-9\-._~+/]+=*)', re.IGNORECASE), r'\1***REDACTED***'),
    (re.compile(r'(Basic\s+)([A-Za-z0-9+/]+=*)', re.IGNORECASE), r'\1***REDACTED***'),
    (re.compile(r'("?(?:access_|refresh_)?token"?\s*[:=]\s*"?)([^\s"&,;]+)', re.IGNORECASE),
     r'\1***REDACTED***'),
    (re.compile(r'("?password"?\s*[:=]\s*"?)([^\s"&,;]+)', re.IGNORECASE), r'\1***REDACTED***'),
]


def mask_sensitive_data(data: Any, mask: str = "***REDACTED***") -> Any:
    """
    Рекурсивно маскирует чувствительные данные в словарях, списках, строках.

    Args:
        data: Данные для маскирования
        mask: Строка-заменитель

    Returns:
        Копия данных с замаскированными полями

    Examples:
        >>> mask_sensitive_data({"Authorization": "Bearer abc", "page": 1})
        {'Authorization': '***REDACTED***', 'page': 1}

        >>> mask_sensitive_data("Authorization: Bearer abc.def")
        'Authorization: Bearer ***REDACTED***'
    """
    if data is None or isinstance(data, (bool, int, float)):
        return data

    if isinstance(data, str):
        return _mask_string(data)

    if isinstance(data, dict) or hasattr(data, 'items'):
        return _mask_dict(data, mask)

    if isinstance(data, (list, tuple)):
        return type(data)(mask_sensitive_data(item, mask) for item in data)

    return data


def _mask_dict(data: Dict[str, Any], mask: str) -> Dict[str, Any]:
    result = {}
    for key, value in data.items():
        if is_sensitive_key(str(key)):
            result[key] = mask
        else:
            result[key] = mask_sensitive_data(value, mask)
    return result


def _mask_string(text: str) -> str:
    for pattern, replacement in SENSITIVE_PATTERNS:
        text = pattern.sub(replacement, text)
    return text


def is_sensitive_key(key: str) -> bool:
    """
    Чувствительный ли ключ.

    Examples:
        >>> is_sensitive_key("X-Refresh-Token")
        True
        >>> is_sensitive_key("status_code")
        False
    """
    key = key.lower()
    if key in SENSITIVE_KEYS:
        return True
    return any(fragment in key for fragment in SENSITIVE_FRAGMENTS)


def mask_headers(headers: Dict[str, str], mask: str = "***REDACTED***") -> Dict[str, str]:
    """
    Маскирует чувствительные заголовки HTTP.

    Examples:
        >>> mask_headers({"Authorization": "Bearer t", "Accept": "*/*"})
        {'Authorization': '***REDACTED***', 'Accept': '*/*'}
    """
    return _mask_dict(dict(headers.items()), mask)
