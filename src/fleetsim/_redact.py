"""Helpers for safe debug logging.

Hub URLs carry bearer tokens as query parameters and broker settings carry
passwords. This module masks both before they reach a log line.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

_MASK = "<redacted>"

_SENSITIVE_KEYS: frozenset[str] = frozenset(
    {
        "password",
        "token",
        "access_token",
        "accesstoken",
        "authorization",
        "api_key",
        "apikey",
    }
)


def _is_sensitive(key: str) -> bool:
    return key.lower() in _SENSITIVE_KEYS


def redact_settings(values: Mapping[str, Any]) -> dict[str, Any]:
    """Shallow copy of a settings mapping with credentials masked.

    Unset credentials (``None``) are kept as ``None`` so the log still shows
    whether one was configured.
    """
    return {key: _MASK if _is_sensitive(key) and value is not None else value for key, value in values.items()}


def redact_url(url: str) -> str:
    """Mask sensitive query parameters (``?token=...``) and userinfo passwords."""
    try:
        parts = urlsplit(url)
    except ValueError:
        return "<unparseable-url>"
    netloc = parts.netloc
    if "@" in netloc:
        userinfo, _, host = netloc.rpartition("@")
        if ":" in userinfo:
            netloc = f"{userinfo.split(':', 1)[0]}:{_MASK}@{host}"
    query = parts.query
    if query:
        pairs = [(k, _MASK if _is_sensitive(k) else v) for k, v in parse_qsl(query, keep_blank_values=True)]
        query = urlencode(pairs, safe="<>")
    return urlunsplit((parts.scheme, netloc, parts.path, query, parts.fragment))
