"""AppContext — shared Click context for all commands.

Created once by the root CLI group and passed to subcommands via
``@click.pass_obj``. The router (and with it plugin loading) is built
lazily so ``--help`` and ``--version`` never touch plugins.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from actionctl.config.logging import configure_logging
from actionctl.output.formatters import OutputSettings, format_envelope

if TYPE_CHECKING:
    from actionctl.config.settings import ActionSettings
    from actionctl.services.result import ResponseEnvelope
    from actionctl.services.router import Router


class AppContext:
    """Shared context flowing through Click's command hierarchy."""

    def __init__(self, settings: ActionSettings, *, router: Router | None = None) -> None:
        self.settings = settings
        self._router = router
        configure_logging(verbose=settings.verbose, log_json=settings.log_json)

    @property
    def router(self) -> Router:
        """The request router (built from plugins on first access)."""
        if self._router is None:
            from actionctl.bootstrap import build_router

            self._router = build_router(self.settings)
        return self._router

    def emit(self, envelope: ResponseEnvelope, label: str) -> None:
        """Print *envelope*; failures go to stderr and exit with code 1."""
        output = format_envelope(
            envelope,
            label,
            settings=OutputSettings(
                json_output=self.settings.json_output,
                quiet=self.settings.quiet,
                verbose=self.settings.verbose,
            ),
        )
        if envelope.success:
            click.echo(output)
            return
        click.echo(output, err=True)
        raise SystemExit(1)
