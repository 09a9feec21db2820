"""CLI integration tests for the list command."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from mapty.cli import main

RUN_ARGS = ["add", "running", "--at", "51.505,-0.09", "--distance", "5", "--duration", "30", "--cadence", "180"]
RIDE_ARGS = ["add", "cycling", "--at", "51.51,-0.1", "--distance", "27", "--duration", "95", "--elevation", "523"]


class TestList:
    """Tests for mapty list command."""

    @pytest.mark.ai_generated
    def test_list_empty(self, cli_runner: CliRunner, cli_env: dict[str, str]) -> None:
        """Verify an empty log is reported."""
        result = cli_runner.invoke(main, ["list"], env=cli_env)

        assert result.exit_code == 0, f"Command failed: {result.output}"
        assert "No activities logged yet" in result.output

    @pytest.mark.ai_generated
    def test_list_newest_first(self, cli_runner: CliRunner, cli_env: dict[str, str]) -> None:
        """Verify activities are listed newest first with derived values."""
        cli_runner.invoke(main, RUN_ARGS, env=cli_env)
        cli_runner.invoke(main, RIDE_ARGS, env=cli_env)

        result = cli_runner.invoke(main, ["list"], env=cli_env)

        assert result.exit_code == 0, f"Command failed: {result.output}"
        lines = result.output.strip().splitlines()
        assert len(lines) == 2
        assert "Cycling on" in lines[0]
        assert "523 m" in lines[0]
        assert "Running on" in lines[1]
        assert "6.0 min/km" in lines[1]
        assert "180 spm" in lines[1]

    @pytest.mark.ai_generated
    def test_list_json(self, cli_runner: CliRunner, cli_env: dict[str, str]) -> None:
        """Verify --json lists activities newest first."""
        cli_runner.invoke(main, RUN_ARGS, env=cli_env)
        cli_runner.invoke(main, RIDE_ARGS, env=cli_env)

        result = cli_runner.invoke(main, ["--json", "list"], env=cli_env)

        assert result.exit_code == 0, f"Command failed: {result.output}"
        data = json.loads(result.output)
        assert data["count"] == 2
        assert [a["kind"] for a in data["activities"]] == ["cycling", "running"]

    @pytest.mark.ai_generated
    def test_list_works_without_position(self, cli_runner: CliRunner, cli_env: dict[str, str]) -> None:
        """Verify listing never needs a position."""
        cli_runner.invoke(main, RUN_ARGS, env=cli_env)
        env = {**cli_env, "MAPTY_LOCATION_SOURCE": "none"}

        result = cli_runner.invoke(main, ["--json", "list"], env=env)

        assert result.exit_code == 0, f"Command failed: {result.output}"
        assert json.loads(result.output)["count"] == 1

    @pytest.mark.ai_generated
    def test_list_corrupt_storage(self, cli_runner: CliRunner, cli_env: dict[str, str]) -> None:
        """Verify corrupt persisted data is reported and treated as empty."""
        data_dir = Path(cli_env["MAPTY_DATA_DIR"])
        data_dir.mkdir(parents=True)
        (data_dir / "storage.json").write_text(json.dumps({"workouts": "[{\"kind\": \"swimming\"}]"}))

        result = cli_runner.invoke(main, ["list"], env=cli_env)

        assert result.exit_code == 0, f"Command failed: {result.output}"
        assert "could not be loaded" in result.output
        assert "No activities logged yet" in result.output

    @pytest.mark.ai_generated
    def test_list_uses_config_file(self, cli_runner: CliRunner, cli_env: dict[str, str], tmp_path: Path) -> None:
        """Verify the storage key comes from the configuration file."""
        config_path = tmp_path / "config.toml"
        config_path.write_text('[storage]\nkey = "other"\n')
        env = {**cli_env, "MAPTY_CONFIG": str(config_path)}
        cli_runner.invoke(main, RUN_ARGS, env=cli_env)

        result = cli_runner.invoke(main, ["--json", "list"], env=env)

        assert json.loads(result.output)["count"] == 0

    @pytest.mark.ai_generated
    def test_invalid_config(self, cli_runner: CliRunner, cli_env: dict[str, str]) -> None:
        """Verify configuration errors exit with a usage code."""
        env = {**cli_env, "MAPTY_LOCATION_SOURCE": "gps"}

        result = cli_runner.invoke(main, ["list"], env=env)

        assert result.exit_code == 2
        assert "Invalid configuration" in result.output
