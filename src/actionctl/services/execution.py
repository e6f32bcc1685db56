"""Handler execution adapter — invoke a collaborator, normalize its outcome.

Handlers return plain values (or, for legacy collaborators, an already
built :class:`ResponseEnvelope`). Both are folded into one
:data:`HandlerOutcome` before any shaping happens, so the router never
has to sniff result types.

INVARIANT: No exception raised by a handler escapes :meth:`execute`.
INVARIANT: Destructive actions never reach their handler unconfirmed.
"""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel

from actionctl.domain.locales import resolve_dominant_locale
from actionctl.domain.sanitize import sanitize
from actionctl.services.errors import (
    build_error_envelope,
    build_success_envelope,
    envelope_from_exception,
)
from actionctl.services.registry import ActionDescriptor, HandlerShape
from actionctl.services.result import ErrorKind, ResponseEnvelope
from actionctl.services.tracing import RequestContext, add_trace, build_debug_info

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Value:
    """A plain handler result, still to be shaped."""

    payload: Any


@dataclass(frozen=True)
class Prebuilt:
    """An envelope the handler built itself; passed through as-is."""

    envelope: ResponseEnvelope


HandlerOutcome = Value | Prebuilt


def to_outcome(result: Any) -> HandlerOutcome:
    """Fold any handler return value into a :data:`HandlerOutcome`."""
    if isinstance(result, (Value, Prebuilt)):
        return result
    if isinstance(result, ResponseEnvelope):
        return Prebuilt(result)
    return Value(result)


def to_plain(value: Any) -> Any:
    """Convert pydantic models (at any depth) into JSON-like data."""
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if isinstance(value, dict):
        return {key: to_plain(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_plain(item) for item in value]
    return value


def confirmation_refusal(
    descriptor: ActionDescriptor, context: RequestContext | None = None
) -> ResponseEnvelope:
    """Envelope returned when a destructive action lacks ``confirmation=true``."""
    return build_error_envelope(
        ErrorKind.VALIDATION,
        (
            f"Action '{descriptor.qualified_name}' is destructive and requires "
            "explicit confirmation. Nothing was executed."
        ),
        context,
        remediation="Ask the user to confirm, then repeat the call with confirmation=true.",
    )


class ExecutionAdapter:
    """Runs handlers and turns every outcome into a ResponseEnvelope.

    Args:
        locale_shaping: Collapse locale bundles in ``get`` payloads unless
            the caller asks for all locales.
    """

    def __init__(self, *, locale_shaping: bool = True) -> None:
        self._locale_shaping = locale_shaping

    async def execute(
        self,
        descriptor: ActionDescriptor,
        args: BaseModel,
        context: RequestContext,
        *,
        confirmed: bool = False,
    ) -> ResponseEnvelope:
        """Invoke the handler for *descriptor* with validated *args*."""
        if descriptor.is_destructive and not confirmed:
            add_trace(context, "Refused unconfirmed destructive action")
            return confirmation_refusal(descriptor, context)

        add_trace(context, f"Invoking {descriptor.qualified_name}")
        try:
            with context.stage("handler"):
                result = descriptor.handler(args, context)
                if inspect.isawaitable(result):
                    result = await result
        except Exception as exc:
            logger.debug("Handler %s failed", descriptor.qualified_name, exc_info=True)
            return envelope_from_exception(
                exc,
                context,
                resource=descriptor.resource,
                resource_id=self._resource_id(descriptor, args),
            )
        add_trace(context, "Handler completed")

        outcome = to_outcome(result)
        if isinstance(outcome, Prebuilt):
            return self._adopt(outcome.envelope, context)

        with context.stage("shaping"):
            data = self.shape(descriptor, args, outcome.payload)
        add_trace(context, f"Shaped {descriptor.shape.value} response")
        return build_success_envelope(data, context)

    def shape(self, descriptor: ActionDescriptor, args: BaseModel, payload: Any) -> Any:
        """Apply the response convention of ``descriptor.shape`` to *payload*."""
        payload = to_plain(payload)
        shape = descriptor.shape

        keep_all = not self._locale_shaping or bool(getattr(args, "return_all_locales", False))
        if shape is HandlerShape.GET:
            return resolve_dominant_locale(payload, keep_all_locales=keep_all)

        if shape is HandlerShape.LIST:
            only_ids = bool(getattr(args, "return_only_ids", False))
            data = self._shape_list(payload, return_only_ids=only_ids)
            if not only_ids:
                data["items"] = [
                    resolve_dominant_locale(item, keep_all_locales=keep_all)
                    for item in data["items"]
                ]
            return data

        if shape in (HandlerShape.CREATE, HandlerShape.UPDATE, HandlerShape.DELETE):
            verb = {
                HandlerShape.CREATE: "created",
                HandlerShape.UPDATE: "updated",
                HandlerShape.DELETE: "deleted",
            }[shape]
            only_confirmation = bool(getattr(args, "return_only_confirmation", False))
            if only_confirmation or (shape is HandlerShape.DELETE and payload is None):
                return self._confirmation(descriptor, args, payload, verb)
            return payload

        return payload

    @staticmethod
    def _shape_list(payload: Any, *, return_only_ids: bool) -> dict[str, Any]:
        total: int | None = None
        if isinstance(payload, dict) and "items" in payload:
            total = payload.get("total")
            items = list(payload["items"] or [])
        elif payload is None:
            items = []
        else:
            items = list(payload)
        if return_only_ids:
            items = [item.get("id") if isinstance(item, dict) else item for item in items]
        data: dict[str, Any] = {"items": items, "count": len(items)}
        if total is not None:
            data["total"] = total
        return data

    def _confirmation(
        self, descriptor: ActionDescriptor, args: BaseModel, payload: Any, verb: str
    ) -> str:
        entity_id = payload.get("id") if isinstance(payload, dict) else None
        if entity_id is None:
            entity_id = self._resource_id(descriptor, args)
        resource = descriptor.resource or descriptor.domain.rstrip("s").capitalize()
        if entity_id is None:
            return f"{resource} was successfully {verb}."
        return f"{resource} {entity_id} was successfully {verb}."

    @staticmethod
    def _resource_id(descriptor: ActionDescriptor, args: BaseModel) -> str | None:
        if not descriptor.id_param:
            return None
        value = getattr(args, descriptor.id_param, None)
        return None if value is None else str(value)

    @staticmethod
    def _adopt(envelope: ResponseEnvelope, context: RequestContext) -> ResponseEnvelope:
        """Accept a handler-built envelope under this request's debug policy.

        Whatever diagnostics the handler attached are discarded: a
        non-debug request gets neither a debug block nor provider detail,
        and a debug request gets this context's block with the detail
        sanitized.
        """
        debug = build_debug_info(context)
        error = envelope.error
        if error is not None and error.provider_detail is not None:
            detail = sanitize(error.provider_detail) if debug is not None else None
            error = error.model_copy(update={"provider_detail": detail})
        if debug is None and error is envelope.error and envelope.debug is None:
            return envelope
        return envelope.model_copy(update={"debug": debug, "error": error})
