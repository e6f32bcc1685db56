"""Action router — resolve, guide, gate, validate, execute.

``Router.dispatch`` is the single entry point every transport calls. It
owns the request lifecycle: one RequestContext is opened per call and
the outcome is always a :class:`ResponseEnvelope`.

INVARIANT: Validation always precedes handler invocation.
INVARIANT: No exception crosses :meth:`Router.dispatch`.
"""

from __future__ import annotations

from typing import Any

import structlog

from actionctl.services.errors import build_error_envelope, build_success_envelope
from actionctl.services.execution import ExecutionAdapter, confirmation_refusal
from actionctl.services.registry import (
    ActionDescriptor,
    ActionRegistry,
    HandlerShape,
    UnknownActionError,
)
from actionctl.services.result import ErrorKind, ResponseEnvelope
from actionctl.services.tracing import (
    DebugDefaults,
    RequestContext,
    add_trace,
    create_context,
    log_context,
)
from actionctl.services.validation import validate

log = structlog.get_logger(__name__)

# Per-request switches; never forwarded to schemas or handlers.
CONTROL_KEYS = frozenset({"debug", "request_id", "requestId"})

# Shapes whose argument bags are large enough that a near-empty call is
# almost certainly a guess at the parameters.
_GUIDED_SHAPES = frozenset({HandlerShape.CREATE, HandlerShape.UPDATE})


def split_control(raw_args: dict[str, Any]) -> tuple[dict[str, Any], bool | None, str | None]:
    """Separate control keys from the action's own arguments."""
    args = {key: value for key, value in raw_args.items() if key not in CONTROL_KEYS}
    debug = raw_args.get("debug")
    request_id = raw_args.get("request_id", raw_args.get("requestId"))
    return (
        args,
        debug if isinstance(debug, bool) else None,
        str(request_id) if request_id else None,
    )


class Router:
    """Dispatches ``(domain, action, args)`` through the request pipeline.

    Args:
        registry: Frozen action registry.
        debug_defaults: Process-wide diagnostic defaults.
        guidance_min_args: Default argument-count floor for create/update
            actions that do not declare their own ``min_args``.
        locale_shaping: Collapse locale bundles in ``get`` responses.
    """

    def __init__(
        self,
        registry: ActionRegistry,
        *,
        debug_defaults: DebugDefaults | None = None,
        guidance_min_args: int = 3,
        locale_shaping: bool = True,
        adapter: ExecutionAdapter | None = None,
    ) -> None:
        self.registry = registry
        self.debug_defaults = debug_defaults or DebugDefaults()
        self.guidance_min_args = guidance_min_args
        self.adapter = adapter or ExecutionAdapter(locale_shaping=locale_shaping)

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    async def dispatch(
        self,
        domain: str,
        name: str,
        raw_args: dict[str, Any] | None = None,
        *,
        debug: bool | None = None,
    ) -> ResponseEnvelope:
        """Run one action and return its envelope.

        *debug* overrides a ``debug`` key inside *raw_args*; both override
        the process default.
        """
        raw_args = {} if raw_args is None else raw_args
        if not isinstance(raw_args, dict):
            return build_error_envelope(
                ErrorKind.VALIDATION,
                f"Arguments for '{domain}.{name}' must be an object, "
                f"got {type(raw_args).__name__}.",
            )

        args, arg_debug, request_id = split_control(raw_args)
        context = create_context(
            name,
            f"{domain}.{name}",
            domain,
            debug if debug is not None else arg_debug,
            args,
            defaults=self.debug_defaults,
            request_id=request_id,
        )
        add_trace(context, f"Dispatching {domain}.{name}")

        try:
            envelope = await self._run(domain, name, args, context)
        except Exception as exc:
            # Pipeline defect, not a handler failure: report, don't raise.
            log.exception(
                "action.failed", action=context.handler_name, request_id=context.request_id
            )
            envelope = build_error_envelope(
                ErrorKind.UNKNOWN,
                f"Error in {context.handler_name}: {exc}",
                context,
                exc=exc,
            )

        self._log_outcome(context, envelope)
        return envelope

    async def _run(
        self, domain: str, name: str, args: dict[str, Any], context: RequestContext
    ) -> ResponseEnvelope:
        descriptor = self.registry.lookup(domain, name)
        if descriptor is None:
            return self._unknown(domain, name, context)

        if self.needs_guidance(descriptor, args):
            add_trace(context, "Insufficient arguments; returning parameter guidance")
            return self._guidance(descriptor, context)

        confirmed = False
        if descriptor.is_destructive:
            confirmed = args.get("confirmation") is True
            if not confirmed:
                add_trace(context, "Refused unconfirmed destructive action")
                return confirmation_refusal(descriptor, context)

        with context.stage("validation"):
            result = validate(descriptor.schema, args)
        if not result.ok:
            add_trace(context, f"Validation failed with {len(result.field_errors)} error(s)")
            return build_error_envelope(
                ErrorKind.VALIDATION,
                f"Invalid arguments for {descriptor.qualified_name}: {result.message}",
                context,
                field_errors=result.field_errors,
                remediation=self._describe_hint(descriptor),
            )
        add_trace(context, "Arguments validated")

        return await self.adapter.execute(descriptor, result.value, context, confirmed=confirmed)

    def needs_guidance(self, descriptor: ActionDescriptor, args: dict[str, Any]) -> bool:
        """Whether *args* is too sparse to be a deliberate call."""
        if not args:
            return True
        if descriptor.min_args is not None:
            return len(args) < descriptor.min_args
        if descriptor.shape in _GUIDED_SHAPES:
            return len(args) < self.guidance_min_args
        return False

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------

    def describe(self, domain: str, name: str) -> ResponseEnvelope:
        """Parameter schema and metadata for one action."""
        try:
            descriptor = self.registry.get(domain, name)
        except UnknownActionError:
            return self._unknown(domain, name)
        schema = descriptor.schema.model_json_schema(by_alias=True)
        return build_success_envelope(
            {
                "domain": descriptor.domain,
                "action": descriptor.name,
                "summary": descriptor.summary,
                "shape": descriptor.shape.value,
                "read_only": descriptor.read_only,
                "destructive": descriptor.is_destructive,
                "required": list(schema.get("required", [])),
                "schema": schema,
            }
        )

    def catalog(self) -> ResponseEnvelope:
        """Every domain with its actions and summaries."""
        domains: dict[str, list[dict[str, Any]]] = {}
        for descriptor in self.registry:
            domains.setdefault(descriptor.domain, []).append(
                {
                    "action": descriptor.name,
                    "summary": descriptor.summary,
                    "shape": descriptor.shape.value,
                    "read_only": descriptor.read_only,
                }
            )
        return build_success_envelope({"domains": domains, "count": len(self.registry)})

    # ------------------------------------------------------------------
    # Envelopes
    # ------------------------------------------------------------------

    def _unknown(
        self, domain: str, name: str, context: RequestContext | None = None
    ) -> ResponseEnvelope:
        domains = self.registry.domains()
        if domain not in domains:
            return build_error_envelope(
                ErrorKind.VALIDATION,
                f"Unknown domain '{domain}'. Valid domains: {', '.join(domains) or 'none'}",
                context,
                allowed_actions=domains,
                remediation="Call the catalog tool to list every domain and action.",
            )
        allowed = self.registry.action_names(domain)
        return build_error_envelope(
            ErrorKind.VALIDATION,
            f"Unknown action '{name}' for {domain}. Valid actions: {', '.join(allowed)}",
            context,
            allowed_actions=allowed,
            remediation="Use one of the valid actions listed above.",
        )

    def _guidance(self, descriptor: ActionDescriptor, context: RequestContext) -> ResponseEnvelope:
        required = descriptor.schema.model_json_schema(by_alias=True).get("required", [])
        message = (
            f"Not enough arguments for {descriptor.qualified_name}. "
            "Fetch the parameter schema before calling this action."
        )
        if required:
            message += f" Required fields: {', '.join(required)}."
        return build_error_envelope(
            ErrorKind.VALIDATION,
            message,
            context,
            remediation=self._describe_hint(descriptor),
        )

    @staticmethod
    def _describe_hint(descriptor: ActionDescriptor) -> str:
        return (
            f"Call the parameters tool with domain='{descriptor.domain}' and "
            f"action='{descriptor.name}' to see the full parameter schema."
        )

    @staticmethod
    def _log_outcome(context: RequestContext, envelope: ResponseEnvelope) -> None:
        if envelope.success:
            log.info("action.dispatch", action=context.handler_name, request_id=context.request_id)
        else:
            kind = envelope.error.kind.value if envelope.error else None
            log.warning(
                "action.failed",
                action=context.handler_name,
                request_id=context.request_id,
                kind=kind,
            )
        log_context(context, ok=envelope.success)
