"""Schema validation engine — loosely typed argument bags in, typed models out.

Schemas are pydantic models. The engine never looks inside them: it calls
``model_validate`` on a deep copy of the raw arguments, so defaults are
applied by the schema and the caller's dict is left untouched.

INVARIANT: Every offending field is reported, not just the first.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from actionctl.services.result import FieldError


class ActionArgs(BaseModel):
    """Base schema for action arguments.

    Accepts both ``snake_case`` and ``camelCase`` keys (agents send
    either) and ignores unknown keys, matching how providers treat extras.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        loc_by_alias=False,
        extra="ignore",
    )


class ConfirmationArgs(ActionArgs):
    """Destructive actions: the caller must opt in explicitly."""

    confirmation: bool = Field(
        default=False,
        description="Must be true to perform the destructive action.",
    )
    return_only_confirmation: bool = Field(
        default=False,
        description="Return a short confirmation string instead of the deleted entity.",
    )


class LocalizedReadArgs(ActionArgs):
    """Single-entity reads that may carry localized fields."""

    return_all_locales: bool = Field(
        default=False,
        description="Keep every locale instead of only the most populated one.",
    )


class ListArgs(ActionArgs):
    """Collection reads."""

    return_all_locales: bool = Field(
        default=False,
        description="Keep every locale in each item instead of only its most populated one.",
    )
    return_only_ids: bool = Field(
        default=False,
        description="Return only item IDs to save tokens.",
    )
    limit: int = Field(default=100, ge=1, le=500)
    offset: int = Field(default=0, ge=0)


class WriteArgs(ActionArgs):
    """Create/update actions."""

    return_only_confirmation: bool = Field(
        default=False,
        description="Return a short confirmation string instead of the entity.",
    )


@dataclass(frozen=True)
class ValidationResult[T: BaseModel]:
    """Outcome of :func:`validate` — a typed value or every field error."""

    ok: bool
    value: T | None = None
    field_errors: tuple[FieldError, ...] = field(default_factory=tuple)
    message: str = ""


def _path_of(loc: tuple[int | str, ...]) -> str:
    return ".".join(str(part) for part in loc)


def summarize(field_errors: tuple[FieldError, ...] | list[FieldError]) -> str:
    """One-line summary highlighting the first error and the total count.

    Examples:
        >>> summarize([FieldError(path="item_id", message="Field required")])
        'Error in field "item_id": Field required'
    """
    if not field_errors:
        return "Validation error"
    first = field_errors[0]
    where = first.path or "input"
    if len(field_errors) == 1:
        return f'Error in field "{where}": {first.message}'
    return (
        f"Found {len(field_errors)} validation errors. "
        f'First error: "{where}": {first.message}'
    )


def field_errors_from(exc: ValidationError) -> tuple[FieldError, ...]:
    """Flatten a pydantic ValidationError into (path, message) pairs."""
    return tuple(
        FieldError(path=_path_of(tuple(err["loc"])), message=err["msg"]) for err in exc.errors()
    )


def validate[T: BaseModel](schema: type[T], raw_args: Any) -> ValidationResult[T]:
    """Parse *raw_args* against *schema*.

    Pure: no I/O, and *raw_args* is copied before parsing so neither
    validation nor the resulting model can alias the caller's data.
    """
    try:
        value = schema.model_validate(copy.deepcopy(raw_args))
    except ValidationError as exc:
        errors = field_errors_from(exc)
        return ValidationResult(ok=False, field_errors=errors, message=summarize(errors))
    return ValidationResult(ok=True, value=value)
