"""Root CLI group for actionctl with global flags and command registration."""

from __future__ import annotations

import click

from actionctl import __version__
from actionctl.commands import register_commands
from actionctl.commands._base import ActionGroup
from actionctl.commands._context import AppContext
from actionctl.config.settings import ActionSettings


@click.group(
    cls=ActionGroup,
    invoke_without_command=True,
    examples="""\
  actionctl actions
  actionctl params records get
  actionctl call records list --args '{"apiToken": "tok", "returnOnlyIds": true}'""",
)
@click.version_option(version=__version__, prog_name="actionctl")
@click.option("--json", "json_output", is_flag=True, help="Print envelopes as JSON.")
@click.option("-q", "--quiet", is_flag=True, help="Minimal output.")
@click.option("-v", "--verbose", is_flag=True, help="Debug logging and full diagnostics.")
@click.option("--log-json", is_flag=True, help="Structured JSON log output to stderr.")
@click.option("-c", "--config", "config_path", default=None, help="Override config file path.")
@click.pass_context
def cli(
    ctx: click.Context,
    json_output: bool,
    quiet: bool,
    verbose: bool,
    log_json: bool,
    config_path: str | None,
) -> None:
    """actionctl — schema-validated action dispatch for agent tool servers."""
    settings = ActionSettings.from_cli(
        config_path=config_path,
        json_output=json_output,
        quiet=quiet,
        verbose=verbose,
        log_json=log_json,
    )
    ctx.obj = AppContext(settings)
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


register_commands(cli)
