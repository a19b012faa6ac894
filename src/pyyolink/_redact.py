"""Helpers for safe debug logging.

pyyolink handles client secrets, OAuth tokens and device-scoped tokens.
Wire traffic passes through :func:`redact_for_log` before it reaches a
DEBUG log line.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel

REDACTED = "<redacted>"

# Compared case-insensitively.
_SECRET_KEYS: frozenset[str] = frozenset(
    {
        "client_secret",
        "secret_key",
        "access_token",
        "refresh_token",
        "token",
        "authorization",
        "password",
    }
)

_MAX_DEPTH = 20


def redact_for_log(value: Any, *, max_string: int = 512) -> Any:
    """Return a copy of *value* with secrets replaced and long strings cut.

    Mappings keep their keys; values under a secret key become
    ``"<redacted>"``. Pydantic models are dumped by alias first, so a model
    can be logged the same way as the dict it was parsed from.
    """
    return _walk(value, max_string, 0)


def _walk(value: Any, max_string: int, depth: int) -> Any:
    if depth > _MAX_DEPTH:
        return "<max-depth>"
    if value is None or isinstance(value, (bool, int, float)):
        return value
    if isinstance(value, str):
        return value if len(value) <= max_string else f"{value[:max_string]}…<truncated>"
    if isinstance(value, (bytes, bytearray)):
        return f"<bytes:{len(value)}b>"
    if isinstance(value, BaseModel):
        return _walk(value.model_dump(by_alias=True, exclude={"raw"}), max_string, depth + 1)
    if isinstance(value, Mapping):
        return {
            str(key): REDACTED if str(key).lower() in _SECRET_KEYS else _walk(item, max_string, depth + 1)
            for key, item in value.items()
        }
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_walk(item, max_string, depth + 1) for item in value]
    return repr(value)
