"""Built-in ``records`` domain backed by an in-memory store.

A small but faithful stand-in for a content-management provider: records
carry localized attributes and an optimistic ``version``, and failures
are raised as :class:`ProviderError` with the status codes and error
codes a real API would use. Useful for demos, the CLI, and tests.
"""

from __future__ import annotations

import copy
import itertools
import logging
from datetime import UTC, datetime
from typing import Any

from pydantic import Field

from actionctl.domain.locales import is_locale_bundle
from actionctl.plugins.hookspecs import hookimpl
from actionctl.services.errors import ProviderError
from actionctl.services.registry import ActionRegistry, HandlerShape
from actionctl.services.tracing import RequestContext, add_trace
from actionctl.services.validation import (
    ActionArgs,
    ConfirmationArgs,
    ListArgs,
    LocalizedReadArgs,
    WriteArgs,
)

logger = logging.getLogger(__name__)

DOMAIN = "records"

SEED_RECORDS: list[dict[str, Any]] = [
    {
        "item_type": "article",
        "attributes": {
            "title": {"en": "Hello world", "it": "Ciao mondo", "de": ""},
            "body": {"en": "First post.", "it": "", "de": ""},
            "slug": "hello-world",
        },
    },
    {
        "item_type": "article",
        "attributes": {
            "title": {"en": "", "it": "Seconda voce", "de": "Zweiter Eintrag"},
            "body": {"en": "", "it": "Testo.", "de": "Text."},
            "slug": "second-entry",
        },
    },
]


# ── Schemas ──────────────────────────────────────────────────────────


class RecordsArgs(ActionArgs):
    api_token: str = Field(min_length=1, description="Provider API token.")


class GetRecordArgs(RecordsArgs, LocalizedReadArgs):
    item_id: str = Field(min_length=1)


class ListRecordsArgs(RecordsArgs, ListArgs):
    item_type: str | None = None


class CreateRecordArgs(RecordsArgs, WriteArgs):
    item_type: str = Field(min_length=1)
    attributes: dict[str, Any]


class UpdateRecordArgs(RecordsArgs, WriteArgs):
    item_id: str = Field(min_length=1)
    attributes: dict[str, Any]
    version: int | None = Field(
        default=None,
        description="Expected current version; a mismatch is a version conflict.",
    )


class DeleteRecordArgs(RecordsArgs, ConfirmationArgs):
    item_id: str = Field(min_length=1)


class DuplicateRecordArgs(RecordsArgs, WriteArgs):
    item_id: str = Field(min_length=1)


# ── Store ────────────────────────────────────────────────────────────


class RecordStore:
    """In-memory record store with token check and optimistic versions.

    Args:
        api_token: When set, every call must present this token.
        seed: Initial records (``item_type`` + ``attributes``).
    """

    def __init__(
        self,
        *,
        api_token: str | None = None,
        seed: list[dict[str, Any]] | None = None,
    ) -> None:
        self._api_token = api_token
        self._records: dict[str, dict[str, Any]] = {}
        self._ids = itertools.count(1)
        for entry in SEED_RECORDS if seed is None else seed:
            self._insert(entry["item_type"], entry["attributes"])

    def authorize(self, token: str) -> None:
        if self._api_token is not None and token != self._api_token:
            raise ProviderError(
                "401 Unauthorized: invalid API token", status=401, code="INVALID_TOKEN"
            )

    def get(self, item_id: str) -> dict[str, Any]:
        record = self._records.get(item_id)
        if record is None:
            raise ProviderError(f"Record {item_id} not found", status=404, code="NOT_FOUND")
        return copy.deepcopy(record)

    def query(self, *, item_type: str | None, limit: int, offset: int) -> dict[str, Any]:
        matching = [
            r for r in self._records.values() if item_type is None or r["item_type"] == item_type
        ]
        page = matching[offset : offset + limit]
        return {"items": copy.deepcopy(page), "total": len(matching)}

    def create(self, item_type: str, attributes: dict[str, Any]) -> dict[str, Any]:
        self._check_locales(attributes)
        return copy.deepcopy(self._insert(item_type, attributes))

    def update(
        self, item_id: str, attributes: dict[str, Any], *, version: int | None = None
    ) -> dict[str, Any]:
        record = self._records.get(item_id)
        if record is None:
            raise ProviderError(f"Record {item_id} not found", status=404, code="NOT_FOUND")
        if version is not None and version != record["version"]:
            raise ProviderError(
                f"Version conflict on record {item_id}: expected {version}, "
                f"current is {record['version']}",
                status=409,
                code="STALE_ITEM_VERSION",
            )
        merged = {**record["attributes"], **copy.deepcopy(attributes)}
        self._check_locales(merged)
        record["attributes"] = merged
        record["version"] += 1
        record["meta"]["updated_at"] = _now()
        return copy.deepcopy(record)

    def delete(self, item_id: str) -> dict[str, Any]:
        record = self._records.pop(item_id, None)
        if record is None:
            raise ProviderError(f"Record {item_id} not found", status=404, code="NOT_FOUND")
        return record

    def duplicate(self, item_id: str) -> dict[str, Any]:
        source = self.get(item_id)
        return copy.deepcopy(self._insert(source["item_type"], source["attributes"]))

    def _insert(self, item_type: str, attributes: dict[str, Any]) -> dict[str, Any]:
        item_id = f"rec_{next(self._ids)}"
        stamp = _now()
        record = {
            "id": item_id,
            "item_type": item_type,
            "version": 1,
            "attributes": copy.deepcopy(attributes),
            "meta": {"created_at": stamp, "updated_at": stamp},
        }
        self._records[item_id] = record
        return record

    @staticmethod
    def _check_locales(attributes: dict[str, Any]) -> None:
        """Every localized attribute must use the same set of locales."""
        locale_sets = {
            name: frozenset(value) for name, value in attributes.items() if is_locale_bundle(value)
        }
        if len(set(locale_sets.values())) > 1:
            detail = [
                {"field": name, "locales": sorted(locales)} for name, locales in locale_sets.items()
            ]
            raise ProviderError(
                "422 Unprocessable: localized fields must all use the same locales",
                status=422,
                code="INVALID_FIELD",
                errors=detail,
            )


def _now() -> str:
    return datetime.now(UTC).isoformat()


# ── Plugin ───────────────────────────────────────────────────────────


class RecordsPlugin:
    """Registers ``records.{get,list,create,update,delete,duplicate}``."""

    def __init__(self, store: RecordStore | None = None) -> None:
        self.store = store or RecordStore()

    @hookimpl
    def register_actions(self, registry: ActionRegistry) -> None:
        registry.register(
            DOMAIN,
            "get",
            GetRecordArgs,
            self.get_record,
            shape=HandlerShape.GET,
            summary="Fetch one record by ID.",
            resource="Record",
            id_param="item_id",
        )
        registry.register(
            DOMAIN,
            "list",
            ListRecordsArgs,
            self.list_records,
            shape=HandlerShape.LIST,
            summary="List records, optionally filtered by item type.",
            resource="Record",
        )
        registry.register(
            DOMAIN,
            "create",
            CreateRecordArgs,
            self.create_record,
            shape=HandlerShape.CREATE,
            summary="Create a record.",
            resource="Record",
        )
        registry.register(
            DOMAIN,
            "update",
            UpdateRecordArgs,
            self.update_record,
            shape=HandlerShape.UPDATE,
            summary="Update record attributes.",
            resource="Record",
            id_param="item_id",
        )
        registry.register(
            DOMAIN,
            "delete",
            DeleteRecordArgs,
            self.delete_record,
            shape=HandlerShape.DELETE,
            summary="Delete a record (requires confirmation).",
            resource="Record",
            id_param="item_id",
        )
        registry.register(
            DOMAIN,
            "duplicate",
            DuplicateRecordArgs,
            self.duplicate_record,
            shape=HandlerShape.CREATE,
            summary="Copy a record under a new ID.",
            min_args=2,
            resource="Record",
            id_param="item_id",
        )

    # Handlers: reads are async, writes sync; the adapter accepts both.

    async def get_record(
        self, args: GetRecordArgs, context: RequestContext | None
    ) -> dict[str, Any]:
        self.store.authorize(args.api_token)
        if context is not None:
            add_trace(context, f"Fetching record {args.item_id}")
        return self.store.get(args.item_id)

    async def list_records(
        self, args: ListRecordsArgs, context: RequestContext | None
    ) -> dict[str, Any]:
        self.store.authorize(args.api_token)
        return self.store.query(item_type=args.item_type, limit=args.limit, offset=args.offset)

    def create_record(
        self, args: CreateRecordArgs, context: RequestContext | None
    ) -> dict[str, Any]:
        self.store.authorize(args.api_token)
        record = self.store.create(args.item_type, args.attributes)
        logger.debug("Created record %s", record["id"])
        return record

    def update_record(
        self, args: UpdateRecordArgs, context: RequestContext | None
    ) -> dict[str, Any]:
        self.store.authorize(args.api_token)
        return self.store.update(args.item_id, args.attributes, version=args.version)

    def delete_record(
        self, args: DeleteRecordArgs, context: RequestContext | None
    ) -> dict[str, Any]:
        self.store.authorize(args.api_token)
        return self.store.delete(args.item_id)

    def duplicate_record(
        self, args: DuplicateRecordArgs, context: RequestContext | None
    ) -> dict[str, Any]:
        self.store.authorize(args.api_token)
        return self.store.duplicate(args.item_id)
