"""params — show the argument schema of one action."""

from __future__ import annotations

import click

from actionctl.commands._base import ActionCommand
from actionctl.commands._context import AppContext


@click.command(
    cls=ActionCommand,
    examples="""\
  # Required fields and JSON schema for records.create
  actionctl params records create

  # Raw schema for tooling
  actionctl --json params records update""",
)
@click.argument("domain")
@click.argument("action")
@click.pass_obj
def params(app: AppContext, domain: str, action: str) -> None:
    """Show the parameter schema of DOMAIN ACTION."""
    app.emit(app.router.describe(domain, action), f"{domain}.{action}")
