"""call — dispatch one action through the request pipeline."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any

import click

from actionctl.commands._base import ActionCommand
from actionctl.commands._context import AppContext


def _load_args(raw: str | None, args_file: Path | None) -> dict[str, Any]:
    if raw is not None and args_file is not None:
        raise click.UsageError("Use either --args or --args-file, not both.")
    text = args_file.read_text(encoding="utf-8") if args_file is not None else raw
    if not text:
        return {}
    try:
        value = json.loads(text)
    except json.JSONDecodeError as exc:
        raise click.BadParameter(f"invalid JSON: {exc}", param_hint="--args") from exc
    if not isinstance(value, dict):
        raise click.BadParameter("arguments must be a JSON object", param_hint="--args")
    return value


@click.command(
    cls=ActionCommand,
    examples="""\
  # Fetch a record, shaped to its most populated locale
  actionctl call records get --args '{"apiToken": "tok", "itemId": "rec_1"}'

  # Same call with trace and timings
  actionctl call records get --debug --args '{"apiToken": "tok", "itemId": "rec_1"}'

  # Destructive actions need explicit confirmation
  actionctl call records delete \\
    --args '{"apiToken": "tok", "itemId": "rec_2", "confirmation": true}'""",
)
@click.argument("domain")
@click.argument("action")
@click.option("--args", "raw_args", default=None, help="Arguments as a JSON object.")
@click.option(
    "--args-file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Read the JSON arguments from a file.",
)
@click.option(
    "--debug/--no-debug",
    default=None,
    help="Force diagnostics on or off for this request.",
)
@click.pass_obj
def call(
    app: AppContext,
    domain: str,
    action: str,
    raw_args: str | None,
    args_file: Path | None,
    debug: bool | None,
) -> None:
    """Run DOMAIN ACTION with JSON arguments."""
    args = _load_args(raw_args, args_file)
    envelope = asyncio.run(app.router.dispatch(domain, action, args, debug=debug))
    app.emit(envelope, f"{domain}.{action}")
