"""actions — list registered domains and actions."""

from __future__ import annotations

import click

from actionctl.commands._base import ActionCommand
from actionctl.commands._context import AppContext
from actionctl.services.errors import build_success_envelope


@click.command(
    cls=ActionCommand,
    examples="""\
  # Everything the server exposes
  actionctl actions

  # One domain, as JSON
  actionctl --json actions records""",
)
@click.argument("domain", required=False)
@click.pass_obj
def actions(app: AppContext, domain: str | None) -> None:
    """List domains and their actions."""
    envelope = app.router.catalog()
    if domain is not None and envelope.success:
        domains = envelope.data["domains"]
        if domain not in domains:
            raise click.BadParameter(
                f"unknown domain {domain!r} (known: {', '.join(domains) or 'none'})",
                param_hint="DOMAIN",
            )
        envelope = build_success_envelope({"items": domains[domain], "count": len(domains[domain])})
    app.emit(envelope, "catalog" if domain is None else f"{domain}.*")
