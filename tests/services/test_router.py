"""Tests for Router dispatch, guidance, gating, and discovery."""

from __future__ import annotations

import re
from collections import Counter

import pytest

from actionctl.services.errors import ProviderError
from actionctl.services.registry import ActionRegistry, HandlerShape
from actionctl.services.result import ErrorKind
from actionctl.services.router import Router, split_control
from actionctl.services.tracing import DebugDefaults
from actionctl.services.validation import ActionArgs, ConfirmationArgs, LocalizedReadArgs, WriteArgs

TOKEN = "tok_1234567890123456"


class _Auth(ActionArgs):
    api_token: str


class _GetArgs(_Auth, LocalizedReadArgs):
    item_id: str


class _CreateArgs(_Auth, WriteArgs):
    item_type: str
    attributes: dict


class _DeleteArgs(_Auth, ConfirmationArgs):
    item_id: str


class _Recorder:
    """Handlers that count their invocations."""

    def __init__(self) -> None:
        self.calls: Counter[str] = Counter()

    async def get(self, args: _GetArgs, context):
        self.calls["get"] += 1
        if args.item_id == "abc":
            raise ProviderError(f"Record {args.item_id} not found", status=404)
        return {"id": args.item_id, "title": {"en": "Hello", "it": ""}}

    def create(self, args: _CreateArgs, context):
        self.calls["create"] += 1
        return {"id": "rec_9", "item_type": args.item_type}

    def delete(self, args: _DeleteArgs, context):
        self.calls["delete"] += 1
        return {"id": args.item_id}

    def boom(self, args, context):
        self.calls["boom"] += 1
        raise RuntimeError("kaboom")


@pytest.fixture
def recorder() -> _Recorder:
    return _Recorder()


@pytest.fixture
def counted_router(recorder: _Recorder) -> Router:
    reg = ActionRegistry()
    reg.register(
        "records",
        "get",
        _GetArgs,
        recorder.get,
        shape=HandlerShape.GET,
        resource="Record",
        id_param="item_id",
        summary="Fetch one.",
    )
    reg.register(
        "records", "create", _CreateArgs, recorder.create, shape=HandlerShape.CREATE, resource="Record"
    )
    reg.register(
        "records",
        "delete",
        _DeleteArgs,
        recorder.delete,
        shape=HandlerShape.DELETE,
        resource="Record",
        id_param="item_id",
    )
    reg.register("records", "boom", ActionArgs, recorder.boom)
    reg.freeze()
    return Router(reg, debug_defaults=DebugDefaults())


def _elapsed(entry: str) -> float:
    match = re.match(r"^\+(\d+\.\d+)ms ", entry)
    assert match, entry
    return float(match.group(1))


class TestSplitControl:
    def test_control_keys_removed(self) -> None:
        args, debug, request_id = split_control({"itemId": "a", "debug": True, "request_id": "r1"})
        assert args == {"itemId": "a"}
        assert debug is True
        assert request_id == "r1"

    def test_non_bool_debug_ignored(self) -> None:
        assert split_control({"debug": "yes"})[1] is None


class TestGuidance:
    def test_empty_args_never_reach_any_handler(self, run, counted_router, recorder) -> None:
        for descriptor in counted_router.registry:
            env = run(counted_router.dispatch(descriptor.domain, descriptor.name, {}))
            assert not env.success
            assert env.error.kind is ErrorKind.VALIDATION
            assert "parameters" in env.error.remediation
        assert sum(recorder.calls.values()) == 0

    def test_sparse_create_gets_guidance(self, run, counted_router, recorder) -> None:
        env = run(counted_router.dispatch("records", "create", {"apiToken": TOKEN, "itemType": "a"}))
        assert not env.success
        assert "Required fields" in env.error.message
        assert recorder.calls["create"] == 0

    def test_control_keys_do_not_count(self, run, counted_router, recorder) -> None:
        env = run(counted_router.dispatch("records", "get", {"debug": True}))
        assert not env.success
        assert recorder.calls["get"] == 0

    def test_configurable_threshold(self, run, counted_router, recorder) -> None:
        router = Router(counted_router.registry, guidance_min_args=1)
        env = run(router.dispatch("records", "create", {"apiToken": TOKEN, "itemType": "a"}))
        # Past guidance, so schema validation reports the missing field.
        assert env.error.field_errors[0].path == "attributes"


class TestUnknownActions:
    def test_unknown_action_lists_allowed(self, run, counted_router) -> None:
        env = run(counted_router.dispatch("records", "publish", {"x": 1}))
        assert env.error.kind is ErrorKind.VALIDATION
        assert env.error.allowed_actions == ["get", "create", "delete", "boom"]

    def test_unknown_domain_lists_domains(self, run, counted_router) -> None:
        env = run(counted_router.dispatch("widgets", "get", {"x": 1}))
        assert "Unknown domain 'widgets'" in env.error.message
        assert env.error.allowed_actions == ["records"]

    def test_non_dict_args(self, run, counted_router) -> None:
        env = run(counted_router.dispatch("records", "get", ["a"]))  # type: ignore[arg-type]
        assert env.error.kind is ErrorKind.VALIDATION


class TestDestructiveGate:
    @pytest.mark.parametrize(
        "args",
        [
            {"itemId": "x"},
            {"apiToken": TOKEN, "itemId": "x"},
            {"apiToken": TOKEN, "itemId": "x", "confirmation": False},
            {"apiToken": TOKEN, "itemId": "x", "confirmation": "true"},
        ],
    )
    def test_unconfirmed_delete_refused(self, run, counted_router, recorder, args) -> None:
        env = run(counted_router.dispatch("records", "delete", args))
        assert not env.success
        assert "confirmation" in env.error.message
        assert recorder.calls["delete"] == 0

    def test_confirmed_delete_runs(self, run, counted_router, recorder) -> None:
        args = {"apiToken": TOKEN, "itemId": "x", "confirmation": True}
        env = run(counted_router.dispatch("records", "delete", args))
        assert env.success
        assert env.data == {"id": "x"}
        assert recorder.calls["delete"] == 1


class TestDispatch:
    def test_validation_failure_skips_handler(self, run, counted_router, recorder) -> None:
        env = run(counted_router.dispatch("records", "get", {"apiToken": TOKEN}))
        assert env.error.kind is ErrorKind.VALIDATION
        assert [e.path for e in env.error.field_errors] == ["item_id"]
        assert env.error.message.startswith("Invalid arguments for records.get:")
        assert recorder.calls["get"] == 0

    def test_success_is_locale_shaped(self, run, counted_router) -> None:
        env = run(counted_router.dispatch("records", "get", {"apiToken": TOKEN, "itemId": "r1"}))
        assert env.success
        assert env.data == {"id": "r1", "title": "Hello"}
        assert env.debug is None

    def test_not_found_end_to_end(self, run, counted_router) -> None:
        args = {"apiToken": TOKEN, "itemId": "abc"}
        env = run(counted_router.dispatch("records", "get", args))
        payload = env.to_dict()
        assert payload["success"] is False
        assert payload["error"]["kind"] == "NotFound"
        assert "abc" in payload["error"]["message"]
        assert "debug" not in payload
        assert "provider_detail" not in payload["error"]

    def test_not_found_with_debug(self, run, counted_router) -> None:
        args = {"apiToken": TOKEN, "itemId": "abc", "debug": True}
        payload = run(counted_router.dispatch("records", "get", args)).to_dict()
        assert payload["error"]["kind"] == "NotFound"
        debug = payload["debug"]
        assert debug["context"]["sanitizedParams"]["apiToken"] == "tok_...3456"
        assert debug["trace"]
        elapsed = [_elapsed(entry) for entry in debug["trace"]]
        assert all(b > a for a, b in zip(elapsed, elapsed[1:], strict=False))
        assert TOKEN not in str(payload)

    def test_debug_keyword_overrides_args(self, run, counted_router) -> None:
        args = {"apiToken": TOKEN, "itemId": "r1", "debug": True}
        env = run(counted_router.dispatch("records", "get", args, debug=False))
        assert env.debug is None

    def test_process_default_enables_debug(self, run, counted_router) -> None:
        router = Router(counted_router.registry, debug_defaults=DebugDefaults(enabled=True))
        env = run(router.dispatch("records", "get", {"apiToken": TOKEN, "itemId": "r1"}))
        assert env.debug is not None
        assert "validation" in env.debug.performance["stageDurations"]

    def test_request_id_propagates(self, run, counted_router) -> None:
        args = {"apiToken": TOKEN, "itemId": "r1", "debug": True, "requestId": "req-42"}
        env = run(counted_router.dispatch("records", "get", args))
        assert env.debug.context["requestId"] == "req-42"

    def test_handler_crash_is_unknown(self, run, counted_router) -> None:
        env = run(counted_router.dispatch("records", "boom", {"x": 1}))
        assert env.error.kind is ErrorKind.UNKNOWN
        assert "kaboom" in env.error.message

    def test_create_confirmation_only(self, run, counted_router) -> None:
        args = {"apiToken": TOKEN, "itemType": "a", "attributes": {}, "returnOnlyConfirmation": True}
        env = run(counted_router.dispatch("records", "create", args))
        assert env.data == "Record rec_9 was successfully created."


class TestDiscovery:
    def test_describe_returns_schema(self, counted_router) -> None:
        env = counted_router.describe("records", "get")
        assert env.success
        assert env.data["required"] == ["apiToken", "itemId"]
        assert "returnAllLocales" in env.data["schema"]["properties"]
        assert env.data["read_only"] is True
        assert env.data["summary"] == "Fetch one."

    def test_describe_unknown(self, counted_router) -> None:
        env = counted_router.describe("records", "nope")
        assert not env.success
        assert "get" in env.error.allowed_actions

    def test_catalog(self, counted_router) -> None:
        env = counted_router.catalog()
        actions = [entry["action"] for entry in env.data["domains"]["records"]]
        assert actions == ["get", "create", "delete", "boom"]
        assert env.data["count"] == 4
