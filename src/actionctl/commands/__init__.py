"""Subcommand modules for actionctl.

register_commands() imports each command on registration so the root
module stays small.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click


def register_commands(cli: click.Group) -> None:
    """Register every standalone command on the root CLI group."""
    from actionctl.commands.actions import actions
    from actionctl.commands.call import call
    from actionctl.commands.params import params
    from actionctl.commands.serve import serve

    cli.add_command(actions)
    cli.add_command(params)
    cli.add_command(call)
    cli.add_command(serve)
