"""Тесты HeaderMap."""

from authflow.core.headers import HeaderMap


def test_keys_case_insensitive():
    headers = HeaderMap({"Content-Type": "application/json"})
    assert headers["content-type"] == "application/json"
    assert "CONTENT-TYPE" in headers


def test_set_replaces_in_place():
    """Запись существующего ключа заменяет значение, порядок сохраняется."""
    headers = HeaderMap([("Accept", "*/*"), ("X-Trace", "1")])
    headers.set("accept", "application/json")

    assert list(headers.items()) == [("accept", "application/json"), ("X-Trace", "1")]
    assert len(headers) == 2


def test_remove_returns_old_value():
    headers = HeaderMap({"Authorization": "Bearer x"})
    assert headers.remove("authorization") == "Bearer x"
    assert headers.remove("authorization") is None
    assert len(headers) == 0


def test_merged_does_not_mutate_original():
    """merged() возвращает новую карту, оригинал не меняется."""
    defaults = HeaderMap({"Content-Type": "application/json", "Accept": "*/*"})
    merged = defaults.merged({"content-type": "text/plain", "X-Extra": "1"})

    assert merged["Content-Type"] == "text/plain"
    assert merged["X-Extra"] == "1"
    assert defaults["Content-Type"] == "application/json"
    assert "X-Extra" not in defaults


def test_merged_with_none():
    defaults = HeaderMap({"A": "1"})
    merged = defaults.merged(None)
    assert merged == defaults
    assert merged is not defaults


def test_to_dict():
    assert HeaderMap({"A": "1"}).to_dict() == {"A": "1"}
