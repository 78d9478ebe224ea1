"""Tests for hierarchy CLI commands."""

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from causeway.cli import cli


@pytest.fixture
def runner():
    """Create CLI test runner."""
    return CliRunner()


@pytest.fixture
def config_path(tmp_path: Path) -> Path:
    """Settings path that does not exist yet, so defaults apply."""
    return tmp_path / "settings" / "config.json"


def _run_json(runner, bundle_file, config_path, *extra):
    result = runner.invoke(
        cli,
        ["hierarchy", "run", str(bundle_file), "--config", str(config_path), "--no-artifacts", "--json", *extra],
    )
    assert result.exit_code == 0, result.output
    return json.loads(result.stdout)


def test_run_json(runner, bundle_file, config_path):
    payload = _run_json(runner, bundle_file, config_path)

    assert payload["session_id"] == "s1"
    assert payload["kernel_version"] == "causeway-hier-v1"
    assert len(payload["param_hash"]) == 64
    assert payload["rounds_completed"] == 3
    assert payload["final_nodes"] == 1
    assert payload["artifacts_dir"] is None
    assert [p["label"] for p in payload["phases"]][:2] == ["round1/link", "round1/anneal"]
    assert not config_path.exists()


def test_run_flags_override_settings(runner, bundle_file, config_path):
    payload = _run_json(runner, bundle_file, config_path, "--max-rounds", "1")
    assert payload["rounds_completed"] == 1
    assert payload["final_nodes"] == 4

    payload = _run_json(runner, bundle_file, config_path, "--max-rounds", "5", "--no-converge")
    assert payload["rounds_completed"] == 5
    assert payload["converged"] is False


def test_run_params_file(runner, bundle_file, config_path, tmp_path):
    params_path = tmp_path / "params.yaml"
    params_path.write_text("max_rounds: 2\n")
    payload = _run_json(runner, bundle_file, config_path, "--params", str(params_path))
    assert payload["rounds_completed"] == 2


def test_run_table_output(runner, bundle_file, config_path):
    result = runner.invoke(
        cli, ["hierarchy", "run", str(bundle_file), "--config", str(config_path), "--no-artifacts"]
    )
    assert result.exit_code == 0
    assert "Hierarchy s1" in result.output
    assert "round1/link" in result.output
    assert "final nodes: 1" in result.output


def test_run_writes_artifacts(runner, bundle_file, config_path, tmp_path):
    out_dir = tmp_path / "runs"
    result = runner.invoke(
        cli,
        [
            "hierarchy",
            "run",
            str(bundle_file),
            "--config",
            str(config_path),
            "--out-dir",
            str(out_dir),
            "--traces",
            "--json",
        ],
    )
    assert result.exit_code == 0, result.output
    run_dir = Path(json.loads(result.stdout)["artifacts_dir"])
    assert run_dir.parent == out_dir / "s1"
    assert (run_dir / "round1" / "link" / "traces.json").is_file()
    assert (run_dir / "final" / "outline.topk.md").is_file()


def test_nothing_to_analyze(runner, config_path, tmp_path):
    bundle = tmp_path / "empty.json"
    bundle.write_text(json.dumps({"session_id": "empty", "transcript": []}))

    result = runner.invoke(cli, ["hierarchy", "run", str(bundle), "--config", str(config_path)])

    assert result.exit_code == 1
    assert "NOTHING_TO_ANALYZE" in result.output


def test_missing_bundle(runner, config_path, tmp_path):
    result = runner.invoke(
        cli, ["hierarchy", "run", str(tmp_path / "absent.json"), "--config", str(config_path)]
    )
    assert result.exit_code == 1
    assert "SESSION_LOAD_ERROR" in result.output


def test_invalid_rounds(runner, bundle_file, config_path):
    result = runner.invoke(
        cli,
        ["hierarchy", "run", str(bundle_file), "--config", str(config_path), "--max-rounds", "0"],
    )
    assert result.exit_code == 1
    assert "INVALID_PARAMETERS" in result.output


def test_outline(runner, bundle_file, config_path):
    result = runner.invoke(
        cli, ["hierarchy", "outline", str(bundle_file), "--config", str(config_path), "-k", "2"]
    )
    assert result.exit_code == 0
    assert "# Hierarchy Outline (Top 2, mode=composites_only)" in result.output
    assert "[L3 composite" in result.output
    assert 'L0 (Kael): "I search the chest for the golden key"' in result.output


def test_params(runner, config_path):
    result = runner.invoke(cli, ["hierarchy", "params", "--config", str(config_path)])
    assert result.exit_code == 0
    lines = result.output.splitlines()
    assert lines[0] == "kernel: causeway-hier-v1"
    assert lines[1].startswith("param_hash: ")
    assert json.loads("\n".join(lines[2:]))["max_rounds"] == 3


def test_config_subcommands_are_mounted(runner, config_path):
    result = runner.invoke(cli, ["config", "init", "--config-path", str(config_path)])
    assert result.exit_code == 0
    assert config_path.exists()


def test_malformed_params_file(runner, bundle_file, config_path, tmp_path):
    params_path = tmp_path / "params.yaml"
    params_path.write_text("linker: [unclosed\n")

    result = runner.invoke(
        cli,
        ["hierarchy", "run", str(bundle_file), "--config", str(config_path), "--params", str(params_path)],
    )

    assert result.exit_code == 1
    assert result.exception is None or isinstance(result.exception, SystemExit)
    assert "Error [INVALID_PARAMETERS]: The hierarchy parameters are invalid." in result.output
    assert "Suggestion:" in result.output
