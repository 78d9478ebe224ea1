"""Tests for configuration CLI commands."""

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from causeway.configuration.cli import config_app
from causeway.configuration.settings import load_settings


@pytest.fixture
def runner():
    """Create CLI test runner."""
    return CliRunner()


@pytest.fixture
def config_path(tmp_path: Path) -> Path:
    return tmp_path / "config.json"


def test_init_writes_config(runner, config_path, tmp_path):
    result = runner.invoke(
        config_app,
        [
            "init",
            "--config-path",
            str(config_path),
            "--artifacts-dir",
            str(tmp_path / "runs"),
            "--max-rounds",
            "4",
        ],
    )

    assert result.exit_code == 0
    assert "Configuration initialized" in result.output
    assert "Max rounds: 4" in result.output
    settings = load_settings(config_path)
    assert settings.output.artifacts_dir == tmp_path / "runs"


def test_init_rejects_invalid_rounds(runner, config_path):
    result = runner.invoke(config_app, ["init", "--config-path", str(config_path), "--max-rounds", "0"])
    assert result.exit_code == 1


def test_show(runner, config_path):
    runner.invoke(config_app, ["init", "--config-path", str(config_path)])
    result = runner.invoke(config_app, ["show", "--config-path", str(config_path)])
    assert result.exit_code == 0
    assert json.loads(result.output)["params"]["max_rounds"] == 3


def test_set_nested_value(runner, config_path):
    runner.invoke(config_app, ["init", "--config-path", str(config_path)])
    result = runner.invoke(
        config_app, ["set", "params.linker.k_local", "5", "--config-path", str(config_path)]
    )
    assert result.exit_code == 0
    assert load_settings(config_path).params.linker.k_local == 5


def test_set_invalid_value(runner, config_path):
    runner.invoke(config_app, ["init", "--config-path", str(config_path)])
    result = runner.invoke(
        config_app, ["set", "params.linker.hill_tau", "0", "--config-path", str(config_path)]
    )
    assert result.exit_code == 1
    assert load_settings(config_path).params.linker.hill_tau == 8.0


def test_validate(runner, config_path):
    runner.invoke(config_app, ["init", "--config-path", str(config_path)])
    result = runner.invoke(config_app, ["validate", "--config-path", str(config_path)])
    assert result.exit_code == 0
    assert "✅ Configuration valid" in result.output


def test_validate_missing(runner, config_path):
    result = runner.invoke(config_app, ["validate", "--config-path", str(config_path)])
    assert result.exit_code == 1


def test_set_through_scalar_rejected(runner, config_path):
    runner.invoke(config_app, ["init", "--config-path", str(config_path)])
    result = runner.invoke(
        config_app, ["set", "params.max_rounds.x", "1", "--config-path", str(config_path)]
    )
    assert result.exit_code == 1
    assert "Invalid value for params.max_rounds.x" in result.output
    assert load_settings(config_path).params.max_rounds == 3


def test_validate_unparseable(runner, tmp_path):
    config_path = tmp_path / "config.yaml"
    config_path.write_text("params: [unclosed\n")
    result = runner.invoke(config_app, ["validate", "--config-path", str(config_path)])
    assert result.exit_code == 1
    assert "Configuration invalid" in result.output


def test_set_enables_optional_section(runner, config_path):
    runner.invoke(config_app, ["init", "--config-path", str(config_path)])
    result = runner.invoke(
        config_app, ["set", "params.levers.locality", "0.5", "--config-path", str(config_path)]
    )
    assert result.exit_code == 0
    levers = load_settings(config_path).params.levers
    assert levers.locality == 0.5
    assert levers.coupling == 1.0
