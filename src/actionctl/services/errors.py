"""Provider-error classification and envelope construction.

Handler failures are classified exactly once, at the execution boundary,
into an :class:`ErrorKind`. Structured provider codes are consulted
first; status codes and message text are the fallback, because most
collaborators only ever raise plain exceptions.

INVARIANT: Provider detail and stack traces only ever appear in the
envelope of a debug-enabled request.
"""

from __future__ import annotations

import json
import traceback
from collections.abc import Iterable
from typing import Any

from actionctl.domain.sanitize import sanitize
from actionctl.services.result import ErrorDescriptor, ErrorKind, FieldError, ResponseEnvelope
from actionctl.services.tracing import RequestContext, add_trace, build_debug_info


class ProviderError(Exception):
    """Failure raised by an external collaborator.

    Collaborators are free to raise any exception; this class simply
    carries the structured fields the classifier knows how to read.
    """

    def __init__(
        self,
        message: str,
        *,
        status: int | None = None,
        code: str | None = None,
        errors: list[Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status = status
        self.code = code
        self.errors = errors or []


# Structured provider codes, checked before any heuristics.
PROVIDER_CODES: dict[str, ErrorKind] = {
    "UNAUTHORIZED": ErrorKind.AUTHORIZATION,
    "INVALID_TOKEN": ErrorKind.AUTHORIZATION,
    "NOT_FOUND": ErrorKind.NOT_FOUND,
    "RECORD_NOT_FOUND": ErrorKind.NOT_FOUND,
    "VALIDATION_ERROR": ErrorKind.VALIDATION,
    "INVALID_FIELD": ErrorKind.VALIDATION,
    "STALE_ITEM_VERSION": ErrorKind.VERSION_CONFLICT,
    "VERSION_CONFLICT": ErrorKind.VERSION_CONFLICT,
}

ERROR_MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.AUTHORIZATION: (
        "Invalid API token or insufficient permissions. Please check your credentials."
    ),
    ErrorKind.NOT_FOUND: "not found. Please check the ID and try again.",
    ErrorKind.VALIDATION: "Validation error. Please check your input data.",
    ErrorKind.VERSION_CONFLICT: (
        "Version conflict. The resource has been modified since you retrieved it. "
        "Please fetch the latest version and try again."
    ),
    ErrorKind.UNKNOWN: "An error occurred while processing your request.",
}

LOCALIZATION_GUIDANCE = """Localization error. Please check that:
1. For localized fields, you provide values for ALL locales that should be preserved, \
not just the ones you are updating
2. The locales are consistent across all localized fields
3. You are using the locale codes defined in the project settings"""


def status_of(exc: BaseException) -> int | None:
    """HTTP-ish status carried by *exc*, if any."""
    for attr in ("status", "status_code"):
        value = getattr(exc, attr, None)
        if isinstance(value, int):
            return value
    response = getattr(exc, "response", None)
    value = getattr(response, "status_code", None)
    return value if isinstance(value, int) else None


def message_of(exc: BaseException) -> str:
    """Best human-readable text for *exc*."""
    message = getattr(exc, "message", None)
    if isinstance(message, str) and message:
        return message
    text = str(exc)
    return text or exc.__class__.__name__


def classify(exc: BaseException) -> ErrorKind:
    """Map a raised error onto the failure taxonomy.

    Precedence: structured ``code`` attribute, then status / message text
    in the order Authorization, NotFound, Validation, VersionConflict.
    Message matching is case-insensitive.
    """
    code = getattr(exc, "code", None)
    if isinstance(code, str) and code.upper() in PROVIDER_CODES:
        return PROVIDER_CODES[code.upper()]

    status = status_of(exc)
    text = message_of(exc).lower()

    if status == 401 or "401" in text or "unauthorized" in text:
        return ErrorKind.AUTHORIZATION
    if status == 404 or "404" in text or "not found" in text:
        return ErrorKind.NOT_FOUND
    if status == 422 or "422" in text or "validation" in text:
        return ErrorKind.VALIDATION
    if "version" in text and "conflict" in text:
        return ErrorKind.VERSION_CONFLICT
    return ErrorKind.UNKNOWN


def extract_detail(exc: BaseException) -> str:
    """Flatten status, code, message and nested provider errors into one line."""
    parts: list[str] = []
    status = status_of(exc)
    if status is not None:
        parts.append(f"Status: {status}")
    code = getattr(exc, "code", None)
    if isinstance(code, str) and code:
        parts.append(f"Code: {code}")
    parts.append(message_of(exc))
    detail = " - ".join(parts)

    errors = getattr(exc, "errors", None)
    if isinstance(errors, list) and errors:
        detail += f"\nDetails: {json.dumps(sanitize(errors), default=str)}"
    return detail


def describe_failure(
    kind: ErrorKind,
    exc: BaseException,
    *,
    handler_name: str | None = None,
    resource: str | None = None,
    resource_id: str | None = None,
) -> str:
    """Build the caller-facing message for a classified failure."""
    prefix = f"Error in {handler_name}: " if handler_name else "Error: "
    detail = extract_detail(exc)

    if kind is ErrorKind.AUTHORIZATION:
        return f"{prefix}{ERROR_MESSAGES[kind]}"
    if kind is ErrorKind.NOT_FOUND:
        subject = resource or "Resource"
        if resource_id:
            subject = f"{subject} with ID '{resource_id}'"
        return f"{prefix}{subject} {ERROR_MESSAGES[kind]} ({message_of(exc)})"
    if kind is ErrorKind.VALIDATION:
        if "locale" in detail.lower():
            return f"{prefix}{LOCALIZATION_GUIDANCE}\n{detail}"
        return f"{prefix}{ERROR_MESSAGES[kind]} {detail}"
    if kind is ErrorKind.VERSION_CONFLICT:
        return f"{prefix}{ERROR_MESSAGES[kind]}"
    return f"{prefix}{detail}"


def provider_detail(exc: BaseException) -> dict[str, Any]:
    """Debug-only error block: type, status, code, nested errors, stack."""
    detail: dict[str, Any] = {
        "type": exc.__class__.__name__,
        "message": message_of(exc),
        "stack": "".join(traceback.format_exception(exc)),
    }
    status = status_of(exc)
    if status is not None:
        detail["status"] = status
    code = getattr(exc, "code", None)
    if code is not None:
        detail["code"] = code
    errors = getattr(exc, "errors", None)
    if isinstance(errors, list) and errors:
        detail["errors"] = errors
    return sanitize(detail)


def build_success_envelope(data: Any, context: RequestContext | None = None) -> ResponseEnvelope:
    """Successful envelope, with a debug block for debug-enabled contexts."""
    return ResponseEnvelope(success=True, data=data, debug=build_debug_info(context))


def build_error_envelope(
    kind: ErrorKind,
    message: str,
    context: RequestContext | None = None,
    *,
    exc: BaseException | None = None,
    field_errors: Iterable[FieldError] = (),
    allowed_actions: Iterable[str] = (),
    remediation: str | None = None,
) -> ResponseEnvelope:
    """Failed envelope.

    Provider detail (including the stack) is attached only when *context*
    is debug-enabled; otherwise it is absent from the payload entirely.
    """
    debug = build_debug_info(context)
    detail = provider_detail(exc) if exc is not None and debug is not None else None
    error = ErrorDescriptor(
        kind=kind,
        message=message,
        provider_detail=detail,
        field_errors=list(field_errors),
        allowed_actions=list(allowed_actions),
        remediation=remediation,
    )
    return ResponseEnvelope(success=False, error=error, debug=debug)


def envelope_from_exception(
    exc: BaseException,
    context: RequestContext | None = None,
    *,
    resource: str | None = None,
    resource_id: str | None = None,
) -> ResponseEnvelope:
    """Classify *exc* and wrap it in a failed envelope."""
    kind = classify(exc)
    handler_name = context.handler_name if context is not None else None
    message = describe_failure(
        kind,
        exc,
        handler_name=handler_name,
        resource=resource,
        resource_id=resource_id,
    )
    if context is not None:
        add_trace(context, f"ERROR: {kind.value}: {message_of(exc)}")
    return build_error_envelope(kind, message, context, exc=exc)
