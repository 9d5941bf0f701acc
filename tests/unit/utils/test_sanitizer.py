"""Тесты маскирования чувствительных данных."""

import pytest

from authflow.utils import is_sensitive_key, mask_headers, mask_sensitive_data


@pytest.mark.parametrize("key", [
    "Authorization", "password", "refresh_token", "X-Refresh-Token", "client_secret", "Cookie",
])
def test_sensitive_keys(key):
    assert is_sensitive_key(key) is True


@pytest.mark.parametrize("key", ["status_code", "path", "Content-Type", "attempt"])
def test_regular_keys(key):
    assert is_sensitive_key(key) is False


def test_mask_nested():
    data = {
        "user": {"email": "a@b.c", "password": "hunter2"},
        "items": [{"access_token": "t1"}, {"id": 1}],
        "count": 2,
    }
    masked = mask_sensitive_data(data)

    assert masked["user"] == {"email": "a@b.c", "password": "***REDACTED***"}
    assert masked["items"] == [{"access_token": "***REDACTED***"}, {"id": 1}]
    assert masked["count"] == 2
    assert data["user"]["password"] == "hunter2"


@pytest.mark.parametrize("text,secret", [
    ("Authorization: Bearer abc.def-ghi", "abc.def-ghi"),
    ("Basic dXNlcjpwYXNz", "dXNlcjpwYXNz"),
    ('{"refresh_token": "r-123"}', "r-123"),
    ("password=hunter2&x=1", "hunter2"),
])
def test_mask_strings(text, secret):
    masked = mask_sensitive_data(text)
    assert secret not in masked
    assert "***REDACTED***" in masked


def test_scalars_untouched():
    assert mask_sensitive_data(None) is None
    assert mask_sensitive_data(42) == 42
    assert mask_sensitive_data(True) is True


def test_mask_headers():
    masked = mask_headers({"Authorization": "Bearer t", "Accept": "*/*"})
    assert masked == {"Authorization": "***REDACTED***", "Accept": "*/*"}


def test_custom_mask():
    assert mask_sensitive_data({"token": "x"}, mask="<hidden>") == {"token": "<hidden>"}
