"""Pydantic configuration models with code-baked defaults.

Sparse TOML contract: defaults baked here, actionctl.toml only contains
overrides. A fresh install needs no config file at all.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class DebugConfig(BaseModel):
    """[debug] section — process-wide defaults, overridable per request."""

    model_config = {"frozen": True}

    enabled: bool = False
    track_performance: bool = False


class PipelineConfig(BaseModel):
    """[pipeline] section."""

    model_config = {"frozen": True}

    # Mutating actions with fewer argument keys than this get the
    # "fetch the parameter schema first" guidance instead of a call.
    guidance_min_args: int = 3
    locale_shaping: bool = True


class McpConfig(BaseModel):
    """[mcp] section."""

    model_config = {"frozen": True}

    enabled: bool = True
    transport: str = "stdio"
    server_name: str = "actionctl"


class PluginsConfig(BaseModel):
    """[plugins] section."""

    model_config = {"frozen": True}

    entry_points: bool = True
    builtins: list[str] = Field(default_factory=lambda: ["records"])

