"""Masking of device credentials in debug logs.

Three secrets cross the transport: the device password (login form), the
CSRF token (login form and ``X-CSRFToken`` header) and the session cookie.
:func:`redact_for_log` covers header mappings and JSON payloads;
:func:`redact_form` covers the urlencoded login body.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any
from urllib.parse import unquote

MASK = "<redacted>"

_SECRET_KEYS: frozenset[str] = frozenset(
    {
        "password",
        "csrf_token",
        "csrftoken",
        "x-csrftoken",
        "cookie",
        "set-cookie",
    }
)

_MAX_DEPTH = 8


def is_secret_key(key: object) -> bool:
    return str(key).strip().lower() in _SECRET_KEYS


def redact_form(body: str | None) -> str | None:
    """Mask the values of secret fields in a urlencoded form body.

    Field order and non-secret fields are kept, so the logged body still
    shows what was sent::

        >>> redact_form("password=s3cr%2Bt&csrf_token=abc")
        'password=<redacted>&csrf_token=<redacted>'
    """
    if body is None:
        return None
    fields = []
    for field in body.split("&"):
        name, sep, _ = field.partition("=")
        fields.append(f"{name}={MASK}" if sep and is_secret_key(unquote(name)) else field)
    return "&".join(fields)


def redact_for_log(value: Any, *, max_string: int = 512) -> Any:
    """Return a copy of *value* with secrets masked and long data shortened.

    Mappings are walked recursively; a value whose key names a secret is
    replaced by ``<redacted>`` whatever its type.  Camera frames and other
    binary data are summarised by length.
    """
    return _redact(value, max_string, 0)


def _redact(value: Any, max_string: int, depth: int) -> Any:
    if depth > _MAX_DEPTH:
        return "<max-depth>"
    if value is None or isinstance(value, (bool, int, float)):
        return value
    if isinstance(value, str):
        return value if len(value) <= max_string else f"{value[:max_string]}…<truncated>"
    if isinstance(value, (bytes, bytearray, memoryview)):
        return f"<bytes:{len(value)}b>"
    if isinstance(value, Mapping):
        return {
            str(key): MASK if is_secret_key(key) else _redact(item, max_string, depth + 1)
            for key, item in value.items()
        }
    if isinstance(value, Sequence):
        return [_redact(item, max_string, depth + 1) for item in value]
    return repr(value)
