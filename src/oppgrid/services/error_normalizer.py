"""Flatten backend failures into user-readable messages.

Errors arrive in several shapes:
- BackendError (or any object) with body / message / status_text attributes
- dict payloads such as {"body": {"message": ...}} or {"body": [{"message": ...}]}
- plain exceptions (str(exc) is the fallback)
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any


def _get(error: Any, key: str, attr: str | None = None) -> Any:
    """Read a key from a mapping or an attribute from an object."""
    if isinstance(error, Mapping):
        return error.get(key)
    return getattr(error, attr or key, None)


def _messages_for(error: Any) -> list[Any]:
    body = _get(error, "body")

    if isinstance(body, (list, tuple)):
        return [_get(sub_error, "message") for sub_error in body if sub_error is not None]

    if body is not None:
        nested = _get(body, "message")
        if isinstance(nested, str):
            return [nested]

    message = _get(error, "message")
    if isinstance(message, str) and message:
        return [message]

    status_text = _get(error, "statusText", "status_text")
    if status_text:
        return [status_text]

    # Exceptions without any of the above
    if isinstance(error, BaseException):
        return [str(error)]
    return []


def reduce_errors(errors: Any) -> list[str]:
    """Convert one error or a list of errors into a flat list of messages.

    None entries are skipped and empty messages are dropped; order is kept.

    Args:
        errors: A single error value or a list of them

    Returns:
        List of message strings
    """
    if not isinstance(errors, (list, tuple)):
        errors = [errors]

    messages: list[str] = []
    for error in errors:
        if not error:
            continue
        messages.extend(str(message) for message in _messages_for(error) if message)
    return messages


def format_errors(errors: Any, separator: str = ", ") -> str:
    """Join the reduced messages for display."""
    return separator.join(reduce_errors(errors))
