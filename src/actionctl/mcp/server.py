"""FastMCP server setup.

Optional extra: FastMCP is imported lazily and ``mcp_available`` reports
whether it is installed. Transport: stdio by default, HTTP optional.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

mcp_available = False
_FastMCP: Any = None

try:
    from mcp.server.fastmcp import FastMCP as _FastMCP  # type: ignore[no-redef,import-not-found]

    mcp_available = True
except ImportError:
    pass

if TYPE_CHECKING:
    from actionctl.config.settings import ActionSettings
    from actionctl.services.router import Router

__all__ = ["create_server", "mcp_available"]


def create_server(
    settings: ActionSettings | None = None,
    *,
    router: Router | None = None,
    host: str = "127.0.0.1",
    port: int = 8000,
) -> Any:
    """Create the MCP server with one tool per registered domain.

    *router* defaults to one built from *settings* (loaded from the
    environment and ``actionctl.toml`` when omitted).

    Raises RuntimeError if the mcp extra is not installed.
    """
    if not mcp_available or _FastMCP is None:
        raise RuntimeError("MCP extra not installed. Install with: pip install actionctl[mcp]")

    from actionctl.bootstrap import build_router
    from actionctl.config.settings import ActionSettings
    from actionctl.mcp.tools import register_tools

    settings = settings or ActionSettings.from_cli()
    router = router or build_router(settings)

    server = _FastMCP(settings.mcp.server_name, host=host, port=port)
    register_tools(server, router)
    return server
