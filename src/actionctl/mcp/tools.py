"""MCP tool definitions — one tool per domain, plus discovery tools.

Every domain becomes a single tool taking ``(action, args)``, mirroring
how agents are told to call it. ``parameters`` and ``catalog`` expose
the registry so an agent can look before it calls.

Each tool has a ``*_impl`` function testable without the mcp package.
``register_tools()`` wraps them with FastMCP decorators.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any

from actionctl.services.router import Router


async def dispatch_impl(
    router: Router,
    domain: str,
    action: str,
    args: dict[str, Any] | None = None,
    *,
    debug: bool | None = None,
) -> dict[str, Any]:
    """Run *action* of *domain* and return the envelope as a dict."""
    envelope = await router.dispatch(domain, action, args or {}, debug=debug)
    return envelope.to_dict()


def parameters_impl(router: Router, domain: str, action: str) -> dict[str, Any]:
    """Parameter schema for one action."""
    return router.describe(domain, action).to_dict()


def catalog_impl(router: Router) -> dict[str, Any]:
    """Every domain and action the server knows."""
    return router.catalog().to_dict()


def domain_description(router: Router, domain: str) -> str:
    """Tool description listing a domain's actions."""
    lines = [f"Operations on {domain}. Pass the action name and its arguments."]
    lines.append("Call `parameters` first to see an action's argument schema.")
    lines.append("Actions:")
    for descriptor in router.registry.descriptors(domain):
        suffix = " (destructive, needs confirmation=true)" if descriptor.is_destructive else ""
        lines.append(f"- {descriptor.name}: {descriptor.summary}{suffix}")
    return "\n".join(lines)


def _domain_tool(
    router: Router, domain: str
) -> Callable[..., Awaitable[dict[str, Any]]]:
    async def tool(
        action: str,
        args: dict[str, Any] | None = None,
        debug: bool | None = None,
    ) -> dict[str, Any]:
        return await dispatch_impl(router, domain, action, args, debug=debug)

    tool.__name__ = domain
    return tool


def register_tools(server: Any, router: Router) -> list[str]:
    """Register domain tools and discovery tools; return their names."""
    names: list[str] = []
    for domain in router.registry.domains():
        server.tool(name=domain, description=domain_description(router, domain))(
            _domain_tool(router, domain)
        )
        names.append(domain)

    @server.tool()  # type: ignore[untyped-decorator]
    def parameters(domain: str, action: str) -> dict[str, Any]:
        """Return the argument schema, required fields, and summary of one action."""
        return parameters_impl(router, domain, action)

    @server.tool()  # type: ignore[untyped-decorator]
    def catalog() -> dict[str, Any]:
        """List every domain and its actions."""
        return catalog_impl(router)

    names.extend(["parameters", "catalog"])
    return names
