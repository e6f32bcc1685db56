"""Shared pytest fixtures for actionctl tests."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Coroutine, Generator
from pathlib import Path
from typing import Any

import pytest
import structlog
from click.testing import CliRunner

from actionctl.plugins.builtins.records import RecordsPlugin, RecordStore
from actionctl.services.registry import ActionRegistry
from actionctl.services.router import Router
from actionctl.services.tracing import DebugDefaults

API_TOKEN = "tok_1234567890123456"


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def run() -> Callable[[Coroutine[Any, Any, Any]], Any]:
    """Drive a coroutine to completion (dispatch is async)."""
    return asyncio.run


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """No ambient ACTIONCTL_* variables leak into tests."""
    import os

    for name in list(os.environ):
        if name.startswith("ACTIONCTL_"):
            monkeypatch.delenv(name)


@pytest.fixture
def isolated_cwd(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Run from an empty temp directory so no actionctl.toml is discovered."""
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def store() -> RecordStore:
    """Seeded record store that requires :data:`API_TOKEN`."""
    return RecordStore(api_token=API_TOKEN)


@pytest.fixture
def registry(store: RecordStore) -> ActionRegistry:
    """Frozen registry holding the built-in records domain."""
    reg = ActionRegistry()
    RecordsPlugin(store).register_actions(reg)
    reg.freeze()
    return reg


@pytest.fixture
def router(registry: ActionRegistry) -> Router:
    """Router with diagnostics off by default."""
    return Router(registry, debug_defaults=DebugDefaults())


@pytest.fixture(autouse=True)
def _restore_logging() -> Generator[None]:
    """Undo configure_logging() calls made by CLI invocations."""
    root = logging.getLogger()
    original_handlers = root.handlers[:]
    original_level = root.level
    pkg = logging.getLogger("actionctl")
    pkg_level = pkg.level
    yield
    root.handlers = original_handlers
    root.setLevel(original_level)
    pkg.setLevel(pkg_level)
    structlog.reset_defaults()
