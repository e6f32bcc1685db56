"""serve — start the MCP server (requires actionctl[mcp] extra)."""

from __future__ import annotations

import click

from actionctl.commands._base import ActionCommand
from actionctl.commands._context import AppContext


@click.command(
    cls=ActionCommand,
    examples="""\
  # stdio transport, for agent hosts that spawn the server
  actionctl serve

  # Streamable HTTP on a custom address
  actionctl serve --transport streamable-http --host 0.0.0.0 --port 9000""",
)
@click.option(
    "--transport",
    default=None,
    type=click.Choice(["stdio", "sse", "streamable-http"]),
    help="MCP transport protocol (default: [mcp] transport).",
)
@click.option("--host", default="127.0.0.1", help="Bind address (HTTP transports only).")
@click.option("--port", default=8000, type=int, help="Listen port (HTTP transports only).")
@click.pass_obj
def serve(app: AppContext, transport: str | None, host: str, port: int) -> None:
    """Start the MCP server (requires actionctl[mcp] extra)."""
    from actionctl.mcp.server import create_server, mcp_available

    if not mcp_available:
        click.echo("MCP not installed. Install with: pip install actionctl[mcp]", err=True)
        raise SystemExit(1)
    if not app.settings.mcp.enabled:
        click.echo("MCP server disabled by [mcp] enabled = false.", err=True)
        raise SystemExit(1)

    server = create_server(app.settings, router=app.router, host=host, port=port)
    server.run(transport=transport or app.settings.mcp.transport)
