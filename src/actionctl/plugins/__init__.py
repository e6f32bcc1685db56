"""Extension layer — action providers via pluggy.

Discovery: entry_points (``actionctl.plugins``), built-in providers named
in ``[plugins] builtins``, and single-file plugins in ``.actionctl/plugins/``.
INVARIANT: Plugin failures are warnings, never errors.
"""

from actionctl.plugins.hookspecs import hookimpl
from actionctl.plugins.manager import PluginManager

__all__ = ["PluginManager", "hookimpl"]
