"""Tests for the params command."""

from __future__ import annotations

import json
from pathlib import Path

from click.testing import CliRunner

from actionctl.cli import cli


class TestParams:
    def test_schema_json(self, cli_runner: CliRunner, isolated_cwd: Path) -> None:
        result = cli_runner.invoke(cli, ["--json", "params", "records", "create"])
        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)["data"]
        assert data["shape"] == "create"
        assert set(data["required"]) == {"apiToken", "itemType", "attributes"}
        assert "returnOnlyConfirmation" in data["schema"]["properties"]

    def test_delete_is_destructive(self, cli_runner: CliRunner, isolated_cwd: Path) -> None:
        result = cli_runner.invoke(cli, ["--json", "params", "records", "delete"])
        data = json.loads(result.stdout)["data"]
        assert data["destructive"] is True
        assert data["read_only"] is False

    def test_rich_output(self, cli_runner: CliRunner, isolated_cwd: Path) -> None:
        result = cli_runner.invoke(cli, ["params", "records", "get"])
        assert result.exit_code == 0, result.output
        assert "summary: Fetch one record by ID." in result.stdout

    def test_unknown_action(self, cli_runner: CliRunner, isolated_cwd: Path) -> None:
        result = cli_runner.invoke(cli, ["params", "records", "explode"])
        assert result.exit_code == 1
        assert "Unknown action 'explode'" in result.stderr
