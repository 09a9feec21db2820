"""CLI integration tests for the map command."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from mapty.cli import main

RUN_ARGS = ["add", "running", "--at", "48.85,2.35", "--distance", "5", "--duration", "30", "--cadence", "180"]


def _add_run(cli_runner: CliRunner, cli_env: dict[str, str]) -> str:
    result = cli_runner.invoke(main, ["--json", *RUN_ARGS], env=cli_env)
    assert result.exit_code == 0, f"Command failed: {result.output}"
    return json.loads(result.output)["activity"]["id"]


class TestMap:
    """Tests for mapty map command."""

    @pytest.mark.ai_generated
    def test_map_to_file(self, cli_runner: CliRunner, cli_env: dict[str, str], tmp_path: Path) -> None:
        """Verify the map page is written with markers and list."""
        activity_id = _add_run(cli_runner, cli_env)
        output = tmp_path / "map.html"

        result = cli_runner.invoke(main, ["map", "-o", str(output)], env=cli_env)

        assert result.exit_code == 0, f"Command failed: {result.output}"
        html = output.read_text()
        assert "leaflet" in html
        assert f'data-id="{activity_id}"' in html
        assert "running-popup" in html
        assert "Current position" in html

    @pytest.mark.ai_generated
    def test_map_json(self, cli_runner: CliRunner, cli_env: dict[str, str], tmp_path: Path) -> None:
        """Verify --json summarizes the written map."""
        _add_run(cli_runner, cli_env)
        output = tmp_path / "map.html"

        result = cli_runner.invoke(main, ["--json", "map", "-o", str(output)], env=cli_env)

        assert result.exit_code == 0, f"Command failed: {result.output}"
        data = json.loads(result.output)
        assert data["status"] == "success"
        assert data["center"] == [51.5, -0.1]
        # Current position plus one activity
        assert data["markers"] == 2

    @pytest.mark.ai_generated
    def test_map_focus(self, cli_runner: CliRunner, cli_env: dict[str, str], tmp_path: Path) -> None:
        """Verify --focus centers the map on the activity."""
        activity_id = _add_run(cli_runner, cli_env)
        output = tmp_path / "map.html"

        result = cli_runner.invoke(
            main, ["--json", "map", "-o", str(output), "--focus", activity_id], env=cli_env
        )

        assert result.exit_code == 0, f"Command failed: {result.output}"
        assert json.loads(result.output)["center"] == [48.85, 2.35]

    @pytest.mark.ai_generated
    def test_map_focus_unknown(self, cli_runner: CliRunner, cli_env: dict[str, str], tmp_path: Path) -> None:
        """Verify an unknown focus id only warns."""
        output = tmp_path / "map.html"

        result = cli_runner.invoke(main, ["map", "-o", str(output), "--focus", "nope"], env=cli_env)

        assert result.exit_code == 0, f"Command failed: {result.output}"
        assert "No activity with id nope" in result.output
        assert output.exists()

    @pytest.mark.ai_generated
    def test_map_to_stdout(self, cli_runner: CliRunner, cli_env: dict[str, str]) -> None:
        """Verify the page is printed without -o."""
        result = cli_runner.invoke(main, ["map"], env=cli_env)

        assert result.exit_code == 0, f"Command failed: {result.output}"
        assert result.output.startswith("<!DOCTYPE html>")

    @pytest.mark.ai_generated
    def test_map_without_position(self, cli_runner: CliRunner, cli_env: dict[str, str]) -> None:
        """Verify the map command fails without a position."""
        env = {**cli_env, "MAPTY_LOCATION_SOURCE": "none"}

        result = cli_runner.invoke(main, ["map"], env=env)

        assert result.exit_code == 1
        assert "Map is unavailable" in result.output
