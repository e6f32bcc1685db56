"""Pluggy hook specifications for actionctl action providers.

A provider contributes one or more domains at startup by registering
actions on the shared registry. Registration happens exactly once,
before the registry is frozen.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import pluggy

if TYPE_CHECKING:
    from actionctl.services.registry import ActionRegistry

PROJECT_NAME = "actionctl"

hookspec = pluggy.HookspecMarker(PROJECT_NAME)
hookimpl = pluggy.HookimplMarker(PROJECT_NAME)


class ActionctlHookSpec:
    """Hook specifications for the actionctl plugin system."""

    @hookspec
    def register_actions(self, registry: ActionRegistry) -> None:
        """Register this provider's actions on *registry*."""
