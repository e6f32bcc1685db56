"""Secret redaction for diagnostic payloads.

Redaction is keyed on field *names* only: any dict key whose lowercase
form contains a sensitive fragment has its value masked, whatever the
value looks like. Values elsewhere are never inspected.

INVARIANT: Input trees are never mutated; a redacted copy is returned.
"""

from __future__ import annotations

from typing import Any

SENSITIVE_FRAGMENTS: tuple[str, ...] = (
    "token",
    "password",
    "secret",
    "key",
    "authorization",
    "auth",
    "credential",
    "access_token",
    "refresh_token",
)

REDACTED = "***REDACTED***"

_MASK_MIN_LENGTH = 12
_MASK_EDGE = 4


def is_sensitive_key(key: object) -> bool:
    """True when *key* names a credential-like field."""
    if not isinstance(key, str):
        return False
    lowered = key.lower()
    return any(fragment in lowered for fragment in SENSITIVE_FRAGMENTS)


def mask_value(value: Any) -> str:
    """Mask a sensitive value, keeping the edges of long strings for debugging.

    Examples:
        >>> mask_value("abcdefghijklmnopqrstuvwxyz")
        'abcd...wxyz'
        >>> mask_value("short")
        '***REDACTED***'
    """
    if isinstance(value, str) and len(value) > _MASK_MIN_LENGTH:
        return f"{value[:_MASK_EDGE]}...{value[-_MASK_EDGE:]}"
    return REDACTED


def sanitize(value: Any) -> Any:
    """Return a copy of *value* with every sensitive field masked.

    Walks dicts, lists and tuples recursively. Trees are assumed acyclic.
    """
    if isinstance(value, dict):
        return {
            key: mask_value(item) if is_sensitive_key(key) else sanitize(item)
            for key, item in value.items()
        }
    if isinstance(value, list):
        return [sanitize(item) for item in value]
    if isinstance(value, tuple):
        return tuple(sanitize(item) for item in value)
    return value
