"""Tests for the handler execution adapter."""

from __future__ import annotations

import pytest
from pydantic import BaseModel

from actionctl.services.errors import ProviderError, build_success_envelope
from actionctl.services.execution import (
    ExecutionAdapter,
    Prebuilt,
    Value,
    to_outcome,
    to_plain,
)
from actionctl.services.registry import ActionRegistry, HandlerShape
from actionctl.services.result import DebugInfo, ErrorDescriptor, ErrorKind, ResponseEnvelope
from actionctl.services.tracing import DebugDefaults, create_context
from actionctl.services.validation import (
    ConfirmationArgs,
    ListArgs,
    LocalizedReadArgs,
    WriteArgs,
)


class _GetArgs(LocalizedReadArgs):
    item_id: str


class _WriteArgs(WriteArgs):
    item_id: str | None = None


class _DeleteArgs(ConfirmationArgs):
    item_id: str


class _NoArgs(BaseModel):
    pass


def _context(debug: bool = False):
    return create_context("op", "things.op", "things", debug, {}, defaults=DebugDefaults())


def _leaky_envelope() -> ResponseEnvelope:
    """Handler-built failure carrying its own diagnostics and a raw token."""
    return ResponseEnvelope(
        success=False,
        error=ErrorDescriptor(
            kind=ErrorKind.NOT_FOUND,
            message="Thing t1 not found",
            provider_detail={"stack": "Traceback ...", "apiToken": "tok_1234567890123456"},
        ),
        debug=DebugInfo(context={"params": {"apiToken": "tok_1234567890123456"}}),
    )


def _descriptor(shape: HandlerShape, handler, schema=_NoArgs, **meta):
    reg = ActionRegistry()
    return reg.register("things", shape.value, schema, handler, shape=shape, resource="Thing", **meta)


class TestOutcome:
    def test_plain_value(self) -> None:
        assert to_outcome({"a": 1}) == Value({"a": 1})

    def test_envelope_is_prebuilt(self) -> None:
        env = build_success_envelope(1)
        assert to_outcome(env) == Prebuilt(env)

    def test_outcomes_pass_through(self) -> None:
        outcome = Value(None)
        assert to_outcome(outcome) is outcome

    def test_to_plain_dumps_models(self) -> None:
        class Item(BaseModel):
            id: str

        assert to_plain({"items": [Item(id="a")]}) == {"items": [{"id": "a"}]}


class TestExecute:
    def test_sync_handler(self, run) -> None:
        descriptor = _descriptor(HandlerShape.CUSTOM, lambda args, ctx: {"pong": True})
        env = run(ExecutionAdapter().execute(descriptor, _NoArgs(), _context()))
        assert env.success
        assert env.data == {"pong": True}

    def test_async_handler(self, run) -> None:
        async def handler(args, ctx):
            return [1, 2]

        descriptor = _descriptor(HandlerShape.CUSTOM, handler)
        env = run(ExecutionAdapter().execute(descriptor, _NoArgs(), _context()))
        assert env.data == [1, 2]

    def test_exception_becomes_envelope(self, run) -> None:
        def handler(args, ctx):
            raise ProviderError("Thing t1 not found", status=404)

        descriptor = _descriptor(HandlerShape.GET, handler, _GetArgs, id_param="item_id")
        env = run(ExecutionAdapter().execute(descriptor, _GetArgs(item_id="t1"), _context()))
        assert not env.success
        assert env.error.kind is ErrorKind.NOT_FOUND
        assert "Thing with ID 't1'" in env.error.message

    def test_prebuilt_envelope_passed_through(self, run) -> None:
        prebuilt = build_success_envelope({"legacy": True})
        descriptor = _descriptor(HandlerShape.GET, lambda args, ctx: prebuilt)
        env = run(ExecutionAdapter().execute(descriptor, _NoArgs(), _context()))
        assert env is prebuilt

    def test_prebuilt_envelope_gains_debug(self, run) -> None:
        prebuilt = build_success_envelope({"legacy": True})
        descriptor = _descriptor(HandlerShape.CUSTOM, lambda args, ctx: prebuilt)
        env = run(ExecutionAdapter().execute(descriptor, _NoArgs(), _context(debug=True)))
        assert env.data == {"legacy": True}
        assert env.debug is not None

    def test_prebuilt_diagnostics_dropped_without_debug(self, run) -> None:
        leaky = _leaky_envelope()
        descriptor = _descriptor(HandlerShape.CUSTOM, lambda args, ctx: leaky)
        env = run(ExecutionAdapter().execute(descriptor, _NoArgs(), _context()))
        wire = env.to_dict()
        assert "debug" not in wire
        assert "provider_detail" not in wire["error"]
        assert wire["error"]["kind"] == "NotFound"

    def test_prebuilt_diagnostics_replaced_and_sanitized(self, run) -> None:
        leaky = _leaky_envelope()
        descriptor = _descriptor(HandlerShape.CUSTOM, lambda args, ctx: leaky)
        env = run(ExecutionAdapter().execute(descriptor, _NoArgs(), _context(debug=True)))
        assert env.debug is not None
        assert "params" not in env.debug.context
        assert env.debug.context["handlerName"] == "things.op"
        assert env.error.provider_detail["apiToken"] == "tok_...3456"
        assert "tok_1234567890123456" not in str(env.to_dict())

    def test_unconfirmed_delete_never_invokes_handler(self, run) -> None:
        calls: list[object] = []
        descriptor = _descriptor(HandlerShape.DELETE, lambda args, ctx: calls.append(args), _DeleteArgs)
        args = _DeleteArgs(item_id="t1", confirmation=True)
        env = run(ExecutionAdapter().execute(descriptor, args, _context()))
        assert not env.success
        assert env.error.kind is ErrorKind.VALIDATION
        assert calls == []

    def test_confirmed_delete_runs(self, run) -> None:
        descriptor = _descriptor(HandlerShape.DELETE, lambda args, ctx: None, _DeleteArgs, id_param="item_id")
        args = _DeleteArgs(item_id="t1", confirmation=True)
        env = run(ExecutionAdapter().execute(descriptor, args, _context(), confirmed=True))
        assert env.data == "Thing t1 was successfully deleted."


class TestShape:
    @pytest.fixture
    def adapter(self) -> ExecutionAdapter:
        return ExecutionAdapter()

    def test_get_collapses_locales(self, adapter: ExecutionAdapter) -> None:
        descriptor = _descriptor(HandlerShape.GET, lambda a, c: None, _GetArgs)
        payload = {"id": "t1", "title": {"en": "Hello", "it": ""}}
        assert adapter.shape(descriptor, _GetArgs(item_id="t1"), payload) == {"id": "t1", "title": "Hello"}

    def test_get_keeps_all_locales_on_request(self, adapter: ExecutionAdapter) -> None:
        descriptor = _descriptor(HandlerShape.GET, lambda a, c: None, _GetArgs)
        payload = {"title": {"en": "Hello", "it": "Ciao"}}
        args = _GetArgs(item_id="t1", return_all_locales=True)
        assert adapter.shape(descriptor, args, payload) == payload

    def test_locale_shaping_disabled(self) -> None:
        descriptor = _descriptor(HandlerShape.GET, lambda a, c: None, _GetArgs)
        payload = {"title": {"en": "Hello", "it": "Ciao"}}
        shaped = ExecutionAdapter(locale_shaping=False).shape(descriptor, _GetArgs(item_id="t"), payload)
        assert shaped == payload

    def test_list_wraps_items(self, adapter: ExecutionAdapter) -> None:
        descriptor = _descriptor(HandlerShape.LIST, lambda a, c: None, ListArgs)
        shaped = adapter.shape(descriptor, ListArgs(), [{"id": "a"}, {"id": "b"}])
        assert shaped == {"items": [{"id": "a"}, {"id": "b"}], "count": 2}

    def test_list_only_ids_keeps_total(self, adapter: ExecutionAdapter) -> None:
        descriptor = _descriptor(HandlerShape.LIST, lambda a, c: None, ListArgs)
        payload = {"items": [{"id": "a", "x": 1}], "total": 7}
        shaped = adapter.shape(descriptor, ListArgs(return_only_ids=True), payload)
        assert shaped == {"items": ["a"], "count": 1, "total": 7}

    def test_list_items_collapse_locales(self, adapter: ExecutionAdapter) -> None:
        descriptor = _descriptor(HandlerShape.LIST, lambda a, c: None, ListArgs)
        payload = [{"id": "a", "title": {"en": "Hello", "it": "Ciao", "de": ""}}]
        shaped = adapter.shape(descriptor, ListArgs(), payload)
        assert shaped == {"items": [{"id": "a", "title": "Hello"}], "count": 1}

    def test_list_items_resolved_independently(self, adapter: ExecutionAdapter) -> None:
        descriptor = _descriptor(HandlerShape.LIST, lambda a, c: None, ListArgs)
        payload = [{"title": {"en": "Hi", "it": ""}}, {"title": {"en": "", "it": "Ciao"}}]
        shaped = adapter.shape(descriptor, ListArgs(), payload)
        assert shaped["items"] == [{"title": "Hi"}, {"title": "Ciao"}]

    def test_list_keeps_all_locales_on_request(self, adapter: ExecutionAdapter) -> None:
        descriptor = _descriptor(HandlerShape.LIST, lambda a, c: None, ListArgs)
        payload = [{"id": "a", "title": {"en": "Hello", "it": "Ciao"}}]
        shaped = adapter.shape(descriptor, ListArgs(return_all_locales=True), payload)
        assert shaped["items"] == payload

    def test_list_locale_shaping_disabled(self) -> None:
        descriptor = _descriptor(HandlerShape.LIST, lambda a, c: None, ListArgs)
        payload = [{"id": "a", "title": {"en": "Hello", "it": "Ciao"}}]
        shaped = ExecutionAdapter(locale_shaping=False).shape(descriptor, ListArgs(), payload)
        assert shaped["items"] == payload

    def test_create_confirmation_string(self, adapter: ExecutionAdapter) -> None:
        descriptor = _descriptor(HandlerShape.CREATE, lambda a, c: None, _WriteArgs)
        args = _WriteArgs(return_only_confirmation=True)
        assert adapter.shape(descriptor, args, {"id": "t9"}) == "Thing t9 was successfully created."

    def test_update_returns_entity_by_default(self, adapter: ExecutionAdapter) -> None:
        descriptor = _descriptor(HandlerShape.UPDATE, lambda a, c: None, _WriteArgs)
        assert adapter.shape(descriptor, _WriteArgs(), {"id": "t9"}) == {"id": "t9"}

    def test_update_confirmation_falls_back_to_id_param(self, adapter: ExecutionAdapter) -> None:
        descriptor = _descriptor(HandlerShape.UPDATE, lambda a, c: None, _WriteArgs, id_param="item_id")
        args = _WriteArgs(item_id="t3", return_only_confirmation=True)
        assert adapter.shape(descriptor, args, {"ok": True}) == "Thing t3 was successfully updated."

    def test_custom_passes_through(self, adapter: ExecutionAdapter) -> None:
        descriptor = _descriptor(HandlerShape.CUSTOM, lambda a, c: None)
        payload = {"title": {"en": "x"}}
        assert adapter.shape(descriptor, _NoArgs(), payload) == payload
