"""Action providers — discovery, loading, and the register_actions hook.

Providers come from three places, in order: installed packages exposing
the ``actionctl.plugins`` entry-point group, built-ins named in
``[plugins] builtins``, and single-file plugins in ``.actionctl/plugins/``.
"""

from __future__ import annotations

import importlib
import importlib.util
import inspect
import logging
import sys
from collections.abc import Iterable
from pathlib import Path
from types import ModuleType

import pluggy

from actionctl.plugins.hookspecs import PROJECT_NAME, ActionctlHookSpec
from actionctl.services.registry import ActionRegistry, RegistryError

ENTRY_POINT_GROUP = "actionctl.plugins"

BUILTIN_PLUGINS: dict[str, str] = {
    "records": "actionctl.plugins.builtins.records:RecordsPlugin",
}

logger = logging.getLogger(__name__)


class PluginManager:
    """Manages plugin discovery, loading, and action registration."""

    def __init__(self) -> None:
        self._pm = pluggy.PluginManager(PROJECT_NAME)
        self._pm.add_hookspecs(ActionctlHookSpec)
        self._loaded = False

    def discover_and_load(
        self,
        *,
        entry_points: bool = True,
        builtins: Iterable[str] = (),
        local_dir: Path | None = None,
    ) -> list[str]:
        """Load plugins from every enabled source.

        Returns the names of all registered plugins.
        """
        if entry_points:
            self._pm.load_setuptools_entrypoints(ENTRY_POINT_GROUP)
            self._normalize_plugin_instances()
        for name in builtins:
            self._load_builtin(name)
        if local_dir is not None:
            self._discover_local(local_dir)
        self._loaded = True
        return self.list_plugin_names()

    def register_plugin(self, plugin: object, name: str | None = None) -> None:
        """Register a plugin instance directly."""
        resolved_name = name or plugin.__class__.__name__
        self._pm.register(plugin, name=resolved_name)
        logger.debug("Registered plugin: %s", resolved_name)

    def unregister(self, plugin: object) -> None:
        self._pm.unregister(plugin)

    @property
    def is_loaded(self) -> bool:
        """Whether discover_and_load() has been called."""
        return self._loaded

    @property
    def hook(self) -> pluggy.HookRelay:
        return self._pm.hook

    def get_plugins(self) -> list[object]:
        return list(self._pm.get_plugins())

    def list_plugin_names(self) -> list[str]:
        return [self._pm.get_name(p) or p.__class__.__name__ for p in self._pm.get_plugins()]

    def register_actions(self, registry: ActionRegistry) -> ActionRegistry:
        """Let every plugin register its actions, one plugin at a time.

        Each plugin registers into its own staging registry that is merged
        only when the hook returns, so a plugin that raises contributes no
        actions at all and is logged and skipped. Registry conflicts
        (duplicate actions, late registration) are startup errors and
        propagate.
        """
        for impl in self._pm.hook.register_actions.get_hookimpls():
            staged = ActionRegistry()
            try:
                impl.function(registry=staged)
            except RegistryError:
                raise
            except Exception:
                logger.warning(
                    "Plugin %s failed to register its actions; none were added",
                    impl.plugin_name,
                    exc_info=True,
                )
                continue
            registry.merge(staged)
        return registry

    # ------------------------------------------------------------------
    # Built-ins
    # ------------------------------------------------------------------

    def _load_builtin(self, name: str) -> None:
        target = BUILTIN_PLUGINS.get(name)
        if target is None:
            logger.warning(
                "Unknown built-in plugin %r (known: %s)", name, ", ".join(BUILTIN_PLUGINS)
            )
            return
        if self._pm.has_plugin(name):
            return
        module_name, _, class_name = target.partition(":")
        try:
            plugin_cls = getattr(importlib.import_module(module_name), class_name)
            self.register_plugin(plugin_cls(), name=name)
        except Exception:
            logger.warning("Failed to load built-in plugin %s", name, exc_info=True)

    # ------------------------------------------------------------------
    # Local plugin files
    # ------------------------------------------------------------------

    def _discover_local(self, local_dir: Path) -> None:
        """Register plugin classes from ``*.py`` files in *local_dir*.

        Files starting with ``_`` are skipped. A file that fails to import
        or a class that fails to instantiate is logged and skipped.
        """
        if not local_dir.is_dir():
            return
        candidates = (p for p in sorted(local_dir.glob("*.py")) if not p.name.startswith("_"))
        for path in candidates:
            module = _import_file(f"actionctl_local_plugin_{path.stem}", path)
            if module is None:
                continue
            for plugin_cls in _plugin_classes(module):
                try:
                    self.register_plugin(plugin_cls(), name=module.__name__)
                except Exception:
                    logger.warning(
                        "Could not instantiate %s from local plugin %s",
                        plugin_cls.__name__,
                        path,
                        exc_info=True,
                    )

    def _normalize_plugin_instances(self) -> None:
        """Swap entry-point plugin classes for instances.

        pluggy calls hookimpls on whatever object was registered; a class
        would leave ``self`` unbound.
        """
        classes = [p for p in self._pm.get_plugins() if inspect.isclass(p) and has_hookimpls(p)]
        for plugin_cls in classes:
            name = self._pm.get_name(plugin_cls) or plugin_cls.__name__
            self._pm.unregister(plugin_cls)
            try:
                self._pm.register(plugin_cls(), name=name)
            except Exception:
                logger.warning("Could not instantiate entry-point plugin %s", name, exc_info=True)


def has_hookimpls(cls: type) -> bool:
    """Whether any public attribute of *cls* is marked with ``@hookimpl``."""
    marker = f"{PROJECT_NAME}_impl"
    return any(
        callable(attr) and getattr(attr, marker, None)
        for attr in (getattr(cls, name, None) for name in dir(cls) if not name.startswith("_"))
    )


def _import_file(module_name: str, path: Path) -> ModuleType | None:
    spec = importlib.util.spec_from_file_location(module_name, path)
    if spec is None or spec.loader is None:
        logger.warning("Failed to load local plugin %s: no module spec", path)
        return None
    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module
    try:
        spec.loader.exec_module(module)
    except Exception:
        sys.modules.pop(module_name, None)
        logger.warning("Failed to load local plugin %s", path, exc_info=True)
        return None
    return module


def _plugin_classes(module: ModuleType) -> list[type]:
    """Classes defined in *module* itself that carry hookimpls."""
    return [
        obj
        for _, obj in inspect.getmembers(module, inspect.isclass)
        if obj.__module__ == module.__name__ and has_hookimpls(obj)
    ]
