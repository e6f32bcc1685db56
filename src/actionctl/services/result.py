"""ResponseEnvelope and ErrorDescriptor — the universal dispatch contract.

INVARIANT: Every dispatched action returns a ResponseEnvelope.
INVARIANT: An envelope never carries both ``data`` and ``error``.
The CLI, the MCP adapter, and tests all consume this type.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field, model_validator


class ErrorKind(StrEnum):
    """Failure taxonomy shared by every domain."""

    AUTHORIZATION = "Authorization"
    NOT_FOUND = "NotFound"
    VALIDATION = "Validation"
    VERSION_CONFLICT = "VersionConflict"
    UNKNOWN = "Unknown"


class FieldError(BaseModel):
    """One offending input field, addressed by dotted path."""

    model_config = {"frozen": True}

    path: str
    message: str


class ErrorDescriptor(BaseModel):
    """Structured error payload within a ResponseEnvelope.

    Attributes:
        kind: Classified failure kind.
        message: Human-readable message, always present.
        provider_detail: Raw collaborator detail (status, code, stack).
            Only ever populated for debug-enabled requests.
        field_errors: Every schema violation, for pre-execution failures.
        allowed_actions: Valid action names, for unknown-action failures.
        remediation: Next step the caller should take.
    """

    model_config = {"frozen": True}

    kind: ErrorKind
    message: str
    provider_detail: dict[str, Any] | None = None
    field_errors: list[FieldError] = Field(default_factory=list)
    allowed_actions: list[str] = Field(default_factory=list)
    remediation: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Compact dict form: empty optional members are omitted."""
        payload: dict[str, Any] = {"kind": self.kind.value, "message": self.message}
        if self.field_errors:
            payload["field_errors"] = [e.model_dump() for e in self.field_errors]
        if self.allowed_actions:
            payload["allowed_actions"] = list(self.allowed_actions)
        if self.remediation:
            payload["remediation"] = self.remediation
        if self.provider_detail is not None:
            payload["provider_detail"] = self.provider_detail
        return payload


class DebugInfo(BaseModel):
    """Diagnostics attached to envelopes of debug-enabled requests."""

    model_config = {"frozen": True}

    trace: list[str] = Field(default_factory=list)
    performance: dict[str, Any] = Field(default_factory=dict)
    context: dict[str, Any] = Field(default_factory=dict)


class ResponseEnvelope(BaseModel):
    """Uniform return type for every dispatched action.

    Attributes:
        success: Whether the action succeeded.
        data: Action payload, present iff ``success``.
        error: Structured error, present iff not ``success``.
        debug: Trace, timings, and sanitized context (debug requests only).
    """

    model_config = {"frozen": True}

    success: bool
    data: Any = None
    error: ErrorDescriptor | None = None
    debug: DebugInfo | None = None

    @model_validator(mode="after")
    def _exactly_one_of_data_or_error(self) -> ResponseEnvelope:
        if self.success and self.error is not None:
            raise ValueError("successful envelope cannot carry an error")
        if not self.success:
            if self.error is None:
                raise ValueError("failed envelope requires an error")
            if self.data is not None:
                raise ValueError("failed envelope cannot carry data")
        return self

    def to_dict(self) -> dict[str, Any]:
        """Wire form: ``data`` xor ``error``, ``debug`` only when attached."""
        payload: dict[str, Any] = {"success": self.success}
        if self.success:
            payload["data"] = self.data
        else:
            assert self.error is not None
            payload["error"] = self.error.to_dict()
        if self.debug is not None:
            payload["debug"] = self.debug.model_dump(mode="json")
        return payload
