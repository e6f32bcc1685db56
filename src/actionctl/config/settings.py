"""ActionSettings — one frozen object built from flags, env, and TOML.

Later sources lose to earlier ones:
  1. keyword arguments (the root CLI flags)
  2. ``ACTIONCTL_*`` environment variables, ``__`` between nested names
     (``ACTIONCTL_PIPELINE__GUIDANCE_MIN_ARGS=5``)
  3. the ``actionctl.toml`` found by :func:`find_config`
  4. defaults declared on the section models

Settings are read once per process. The pipeline never sees this object:
:meth:`ActionSettings.debug_defaults` hands the router the only values
it needs.
"""

from __future__ import annotations

import threading
import tomllib
from pathlib import Path
from typing import Any

import click
from pydantic import Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

from actionctl.config.discovery import find_config
from actionctl.config.models import DebugConfig, McpConfig, PipelineConfig, PluginsConfig
from actionctl.services.tracing import DebugDefaults


class TomlSettingsSource(PydanticBaseSettingsSource):
    """Read settings from an ``actionctl.toml`` file."""

    def __init__(self, settings_cls: type[BaseSettings], toml_path: Path | None) -> None:
        super().__init__(settings_cls)
        self._data: dict[str, Any] = {}
        if toml_path and toml_path.is_file():
            try:
                self._data = tomllib.loads(toml_path.read_text(encoding="utf-8"))
            except tomllib.TOMLDecodeError as exc:
                raise click.ClickException(f"Invalid TOML in {toml_path}: {exc}") from exc

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        return self._data.get(field_name), field_name, field_name in self._data

    def __call__(self) -> dict[str, Any]:
        return self._data


# TOML path handed to settings_customise_sources during construction.
_tls = threading.local()


class ActionSettings(BaseSettings):
    """Process settings for the CLI and the MCP server.

    Attributes:
        config_path: The TOML file actually loaded, if any.
        json_output: Render envelopes as JSON instead of rich text.
        verbose: DEBUG-level logging for the ``actionctl`` logger.
        log_json: JSON log lines on stderr.
    """

    model_config = {
        "frozen": True,
        "env_prefix": "ACTIONCTL_",
        "env_nested_delimiter": "__",
    }

    config_path: Path | None = None

    # --- CLI flags ---
    json_output: bool = False
    quiet: bool = False
    verbose: bool = False
    log_json: bool = False

    # --- TOML sections ---
    debug: DebugConfig = Field(default_factory=DebugConfig)
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)
    mcp: McpConfig = Field(default_factory=McpConfig)
    plugins: PluginsConfig = Field(default_factory=PluginsConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Insert the TOML source between env vars and defaults."""
        return (
            init_settings,
            env_settings,
            TomlSettingsSource(settings_cls, getattr(_tls, "toml_path", None)),
        )

    @classmethod
    def from_cli(
        cls,
        *,
        config_path: str | None = None,
        start: Path | None = None,
        **cli_flags: Any,
    ) -> ActionSettings:
        """Construct settings for a CLI invocation.

        An explicit *config_path* that does not exist is an error; without
        one, ``actionctl.toml`` is discovered by walking up from *start*.
        """
        toml_path: Path | None
        if config_path:
            toml_path = Path(config_path)
            if not toml_path.is_file():
                raise click.ClickException(f"Config file not found: {config_path}")
        else:
            toml_path = find_config(start)

        _tls.toml_path = toml_path
        try:
            return cls(config_path=toml_path, **cli_flags)
        finally:
            _tls.toml_path = None

    def debug_defaults(self) -> DebugDefaults:
        """Process-wide diagnostic defaults for the router."""
        return DebugDefaults(
            enabled=self.debug.enabled,
            track_performance=self.debug.track_performance,
        )
