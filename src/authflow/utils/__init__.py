"""Utility modules for authflow."""

from .sanitizer import (
    mask_sensitive_data,
    mask_headers,
    is_sensitive_key,
)

__all__ = [
    'mask_sensitive_data',
    'mask_headers',
    'is_sensitive_key',
]
