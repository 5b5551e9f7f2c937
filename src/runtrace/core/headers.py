# src/runtrace/core/headers.py
"""Backend auth header parsing."""

from __future__ import annotations


def parse_header_string(value: str | None) -> dict[str, str]:
    """Parse a ``"key: value, key: value"`` header string into a dict.

    Entries without a colon, or with an empty key or value, are dropped.
    Only the first colon separates key from value, so values such as
    URLs or ``Basic`` credentials keep their own colons.

    Example:
        >>> parse_header_string("Authorization: Bearer abc, X-Scope: tenant1")
        {'Authorization': 'Bearer abc', 'X-Scope': 'tenant1'}
    """
    headers: dict[str, str] = {}
    if not value:
        return headers

    for item in value.split(","):
        key, sep, header_value = item.partition(":")
        key = key.strip()
        header_value = header_value.strip()
        if sep and key and header_value:
            headers[key] = header_value
    return headers
