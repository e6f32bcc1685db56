"""Request-scoped diagnostics — RequestContext, traces, stage timings.

Every dispatch owns exactly one RequestContext, created by the router and
dropped once the envelope is built. Nothing here is global: the
process-wide defaults arrive as an explicit :class:`DebugDefaults` value,
and the per-request flag always wins over them.

INVARIANT: Parameters are sanitized before they are stored on a context.
INVARIANT: Trace entries strictly increase in elapsed time.
"""

from __future__ import annotations

import time
import uuid
from collections.abc import Generator
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

import structlog

from actionctl.domain.sanitize import sanitize
from actionctl.services.result import DebugInfo

log = structlog.get_logger(__name__)

# Smallest step between two trace entries, in milliseconds.
_TRACE_RESOLUTION_MS = 0.001


@dataclass(frozen=True)
class DebugDefaults:
    """Process-wide diagnostic defaults, read once from settings."""

    enabled: bool = False
    track_performance: bool = False


@dataclass
class PerformanceMetrics:
    """Wall-clock bookkeeping for one request."""

    started_at: float = field(default_factory=time.perf_counter)
    ended_at: float | None = None
    total_ms: float | None = None
    stage_durations: dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"stageDurations": dict(self.stage_durations)}
        if self.total_ms is not None:
            result["totalMs"] = round(self.total_ms, 3)
        return result


@dataclass
class RequestContext:
    """Diagnostic state owned by a single request.

    Attributes:
        operation: Action name (``get``, ``list`` ...).
        handler_name: Qualified handler label, ``<domain>.<action>``.
        domain: Action domain.
        sanitized_params: Redacted copy of the caller's arguments.
        debug_enabled: Effective flag after request/default resolution.
        performance: Present when timing is tracked for this request.
    """

    operation: str
    handler_name: str
    domain: str
    sanitized_params: dict[str, Any]
    debug_enabled: bool
    request_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    created_at: str = field(default_factory=lambda: datetime.now(UTC).isoformat())
    trace: list[str] = field(default_factory=list)
    performance: PerformanceMetrics | None = None
    _origin: float = field(default_factory=time.perf_counter, repr=False)
    _last_elapsed: float = field(default=-1.0, repr=False)

    def elapsed_ms(self) -> float:
        return (time.perf_counter() - self._origin) * 1000

    @contextmanager
    def stage(self, name: str) -> Generator[None]:
        """Time a pipeline stage and record it on the context."""
        start = time.perf_counter()
        try:
            yield
        finally:
            update_performance(self, name, (time.perf_counter() - start) * 1000)

    def describe(self) -> dict[str, Any]:
        """Context block for debug payloads; parameters were sanitized on creation.

        Keys are camelCase like the argument bags callers send.
        """
        return {
            "requestId": self.request_id,
            "operation": self.operation,
            "handlerName": self.handler_name,
            "domain": self.domain,
            "createdAt": self.created_at,
            "sanitizedParams": dict(self.sanitized_params),
        }


def resolve_debug(request_debug: bool | None, defaults: DebugDefaults) -> bool:
    """Per-request flag when given, else the process default."""
    if request_debug is not None:
        return request_debug
    return defaults.enabled


def create_context(
    operation: str,
    handler_name: str,
    domain: str,
    request_debug: bool | None,
    parameters: dict[str, Any] | None,
    *,
    defaults: DebugDefaults,
    request_id: str | None = None,
) -> RequestContext:
    """Open a fresh context for one request.

    Performance tracking starts when debug is effectively enabled or the
    process tracks performance by default.
    """
    debug_enabled = resolve_debug(request_debug, defaults)
    context = RequestContext(
        operation=operation,
        handler_name=handler_name,
        domain=domain,
        sanitized_params=sanitize(dict(parameters or {})),
        debug_enabled=debug_enabled,
    )
    if request_id:
        context.request_id = request_id
    if debug_enabled or defaults.track_performance:
        context.performance = PerformanceMetrics()
    return context


def add_trace(context: RequestContext, message: str) -> None:
    """Append ``+{elapsed}ms {message}``. No-op unless debug is enabled."""
    if not context.debug_enabled:
        return
    elapsed = round(context.elapsed_ms(), 3)
    if elapsed <= context._last_elapsed:
        elapsed = round(context._last_elapsed + _TRACE_RESOLUTION_MS, 3)
    context._last_elapsed = elapsed
    context.trace.append(f"+{elapsed:.3f}ms {message}")


def update_performance(
    context: RequestContext,
    stage: str | None = None,
    duration_ms: float | None = None,
) -> None:
    """Record an optional stage duration and refresh the total."""
    perf = context.performance
    if perf is None:
        return
    if stage is not None and duration_ms is not None:
        perf.stage_durations[stage] = round(duration_ms, 3)
    perf.ended_at = time.perf_counter()
    perf.total_ms = (perf.ended_at - perf.started_at) * 1000


def build_debug_info(context: RequestContext | None) -> DebugInfo | None:
    """Render the debug block, or None for contexts without debug."""
    if context is None or not context.debug_enabled:
        return None
    update_performance(context)
    performance = context.performance.to_dict() if context.performance else {}
    return DebugInfo(
        trace=list(context.trace),
        performance=performance,
        context=context.describe(),
    )


def log_context(context: RequestContext, *, ok: bool) -> None:
    """Log a completed request via structlog."""
    total = context.performance.total_ms if context.performance else None
    log.debug(
        "request.complete",
        request_id=context.request_id,
        handler=context.handler_name,
        ok=ok,
        total_ms=round(total, 3) if total is not None else None,
    )
