"""Ordered, case-insensitive header mapping."""

from typing import Iterable, Mapping, Optional, Tuple, Union

from requests.structures import CaseInsensitiveDict

HeadersLike = Union[Mapping[str, str], Iterable[Tuple[str, str]], None]


class HeaderMap(CaseInsensitiveDict):
    """
    Header mapping with explicit ``set`` and ``merged`` operations.

    Keys compare case-insensitively, insertion order is kept, and writing an
    existing key replaces its value in place (last write wins).

    Example:
        >>> defaults = HeaderMap({"Content-Type": "application/json"})
        >>> merged = defaults.merged({"content-type": "text/plain"})
        >>> merged["Content-Type"]
        'text/plain'
        >>> defaults["Content-Type"]
        'application/json'
    """

    def set(self, key: str, value: str) -> None:
        """Replace-if-present, otherwise append."""
        self[key] = value

    def remove(self, key: str) -> Optional[str]:
        """Drop ``key`` if present and return its old value."""
        return self.pop(key, None)

    def merged(self, overlay: HeadersLike = None) -> 'HeaderMap':
        """Return a new map: this one overridden by ``overlay``."""
        result = HeaderMap(self)
        if overlay:
            result.update(overlay)
        return result

    def copy(self) -> 'HeaderMap':
        return HeaderMap(self)

    def to_dict(self) -> dict:
        return dict(self.items())
