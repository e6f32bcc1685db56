"""Action registry — one table of ``(domain, action)`` descriptors.

Populated once at startup (plugins call :meth:`ActionRegistry.register`)
and frozen before the first request. After that it is read-only, so
concurrent requests read it without locking.

INVARIANT: Each ``(domain, name)`` maps to exactly one schema and handler.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Iterator
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel

if TYPE_CHECKING:
    from actionctl.services.tracing import RequestContext

logger = logging.getLogger(__name__)

Handler = Callable[[Any, "RequestContext | None"], Any | Awaitable[Any]]


class HandlerShape(StrEnum):
    """Response convention of a handler, normalized by the execution adapter."""

    GET = "get"
    LIST = "list"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    CUSTOM = "custom"


_READ_ONLY_SHAPES = frozenset({HandlerShape.GET, HandlerShape.LIST})


class RegistryError(Exception):
    """Base for startup-time registry failures."""


class DuplicateActionError(RegistryError):
    """Raised when ``(domain, name)`` is registered twice."""

    def __init__(self, domain: str, name: str) -> None:
        super().__init__(f"Action '{domain}.{name}' is already registered")
        self.domain = domain
        self.name = name


class RegistryFrozenError(RegistryError):
    """Raised when registering after startup has completed."""


class UnknownActionError(LookupError):
    """Raised by :meth:`ActionRegistry.get` for unregistered actions."""

    def __init__(self, domain: str, name: str, allowed: list[str]) -> None:
        super().__init__(f"Unknown action '{domain}.{name}'")
        self.domain = domain
        self.name = name
        self.allowed = allowed


@dataclass(frozen=True)
class ActionDescriptor:
    """Immutable description of one callable action.

    Attributes:
        domain: Entity grouping (``records``, ``environments`` ...).
        name: Action name within the domain.
        schema: Pydantic model validating the argument bag.
        handler: External collaborator, sync or async.
        shape: Response convention applied by the execution adapter.
        read_only: Whether the action has no side effects.
        summary: One-line description for catalogs and guidance.
        min_args: Fewest argument keys accepted before the router answers
            with parameter guidance instead; None uses the router default.
        resource: Human label for the entity (``Record``), used in messages.
        id_param: Argument field naming the target entity, if any.
    """

    domain: str
    name: str
    schema: type[BaseModel]
    handler: Handler
    shape: HandlerShape = HandlerShape.CUSTOM
    read_only: bool = False
    summary: str = ""
    min_args: int | None = None
    resource: str | None = None
    id_param: str | None = None

    @property
    def qualified_name(self) -> str:
        return f"{self.domain}.{self.name}"

    @property
    def is_destructive(self) -> bool:
        return self.shape is HandlerShape.DELETE


class ActionRegistry:
    """Registry of action descriptors keyed by ``(domain, name)``."""

    def __init__(self) -> None:
        self._actions: dict[tuple[str, str], ActionDescriptor] = {}
        self._frozen = False

    def register(
        self,
        domain: str,
        name: str,
        schema: type[BaseModel],
        handler: Handler,
        *,
        shape: HandlerShape = HandlerShape.CUSTOM,
        read_only: bool | None = None,
        summary: str = "",
        min_args: int | None = None,
        resource: str | None = None,
        id_param: str | None = None,
    ) -> ActionDescriptor:
        """Add an action. Duplicate keys and late registration are fatal."""
        if self._frozen:
            raise RegistryFrozenError(f"Cannot register '{domain}.{name}': registry is frozen")
        key = (domain, name)
        if key in self._actions:
            raise DuplicateActionError(domain, name)
        descriptor = ActionDescriptor(
            domain=domain,
            name=name,
            schema=schema,
            handler=handler,
            shape=shape,
            read_only=shape in _READ_ONLY_SHAPES if read_only is None else read_only,
            summary=summary,
            min_args=min_args,
            resource=resource,
            id_param=id_param,
        )
        self._actions[key] = descriptor
        logger.debug("Registered action %s", descriptor.qualified_name)
        return descriptor

    def action(
        self,
        domain: str,
        name: str,
        schema: type[BaseModel],
        **meta: Any,
    ) -> Callable[[Handler], Handler]:
        """Decorator form of :meth:`register`.

        Usage::

            @registry.action("records", "get", GetRecordArgs, shape=HandlerShape.GET)
            async def get_record(args, context): ...
        """

        def decorator(handler: Handler) -> Handler:
            self.register(domain, name, schema, handler, **meta)
            return handler

        return decorator

    def merge(self, staged: ActionRegistry) -> None:
        """Copy every action of *staged* in, or none of them on conflict."""
        if self._frozen:
            raise RegistryFrozenError("Cannot merge actions: registry is frozen")
        for domain, name in staged._actions:
            if (domain, name) in self._actions:
                raise DuplicateActionError(domain, name)
        self._actions.update(staged._actions)

    def freeze(self) -> None:
        """Make the registry read-only for the rest of the process."""
        self._frozen = True

    @property
    def is_frozen(self) -> bool:
        return self._frozen

    def lookup(self, domain: str, name: str) -> ActionDescriptor | None:
        return self._actions.get((domain, name))

    def get(self, domain: str, name: str) -> ActionDescriptor:
        """Return the descriptor or raise :class:`UnknownActionError`."""
        descriptor = self.lookup(domain, name)
        if descriptor is None:
            raise UnknownActionError(domain, name, self.action_names(domain))
        return descriptor

    def domains(self) -> list[str]:
        """Registered domains in registration order."""
        return list(dict.fromkeys(domain for domain, _ in self._actions))

    def action_names(self, domain: str) -> list[str]:
        """Action names of *domain* in registration order."""
        return [name for d, name in self._actions if d == domain]

    def descriptors(self, domain: str | None = None) -> list[ActionDescriptor]:
        return [d for d in self._actions.values() if domain is None or d.domain == domain]

    def __contains__(self, key: object) -> bool:
        return key in self._actions

    def __iter__(self) -> Iterator[ActionDescriptor]:
        return iter(list(self._actions.values()))

    def __len__(self) -> int:
        return len(self._actions)
