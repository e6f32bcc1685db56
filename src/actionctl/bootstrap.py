"""Startup wiring — settings in, frozen registry and Router out.

This is the only place where configuration meets the pipeline: plugins
fill the registry, the registry is frozen, and the router receives the
few settings values it needs as plain arguments.
"""

from __future__ import annotations

import logging
from pathlib import Path

from actionctl.config.settings import ActionSettings
from actionctl.plugins.manager import PluginManager
from actionctl.services.registry import ActionRegistry
from actionctl.services.router import Router

LOCAL_PLUGIN_DIR = Path(".actionctl") / "plugins"

logger = logging.getLogger(__name__)


def local_plugin_dir(settings: ActionSettings) -> Path:
    """``.actionctl/plugins`` beside the loaded config file, else under cwd."""
    base = settings.config_path.parent if settings.config_path else Path.cwd()
    return base / LOCAL_PLUGIN_DIR


def build_registry(
    settings: ActionSettings,
    *,
    plugins: PluginManager | None = None,
) -> ActionRegistry:
    """Load plugins per ``[plugins]``, register their actions, and freeze."""
    manager = plugins or PluginManager()
    if not manager.is_loaded:
        manager.discover_and_load(
            entry_points=settings.plugins.entry_points,
            builtins=settings.plugins.builtins,
            local_dir=local_plugin_dir(settings),
        )
    registry = manager.register_actions(ActionRegistry())
    registry.freeze()
    logger.debug(
        "Registry ready: %d actions across %d domains",
        len(registry),
        len(registry.domains()),
    )
    return registry


def build_router(
    settings: ActionSettings,
    *,
    registry: ActionRegistry | None = None,
) -> Router:
    """Router over *registry* (built from plugins when omitted)."""
    return Router(
        registry if registry is not None else build_registry(settings),
        debug_defaults=settings.debug_defaults(),
        guidance_min_args=settings.pipeline.guidance_min_args,
        locale_shaping=settings.pipeline.locale_shaping,
    )
