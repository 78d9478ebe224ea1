"""CLI commands for managing causeway settings."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Optional

import typer
import yaml

from causeway.configuration.settings import (
    DEFAULT_CONFIG_PATH,
    CausewaySettings,
    bootstrap_settings,
    load_settings,
    save_settings,
)
from causeway.hierarchy.provenance import build_provenance


config_app = typer.Typer(help="Manage causeway configuration")


@config_app.command("init")
def init_config(
    config_path: Path = typer.Option(DEFAULT_CONFIG_PATH, help="Path to config file"),
    artifacts_dir: Optional[Path] = typer.Option(None, help="Override artifacts directory"),
    max_rounds: Optional[int] = typer.Option(None, help="Override maximum rounds"),
) -> None:
    """Initialize the causeway settings file."""

    overrides: Dict[str, Any] = {}
    if artifacts_dir:
        overrides.setdefault("output", {})["artifacts_dir"] = str(artifacts_dir)
    if max_rounds is not None:
        overrides.setdefault("params", {})["max_rounds"] = max_rounds

    try:
        settings = bootstrap_settings(path=config_path, overrides=overrides)
    except ValueError as e:
        typer.echo(f"❌ {e}", err=True)
        raise typer.Exit(code=1)
    typer.echo(f"Configuration initialized at {config_path}")
    typer.echo(_summarize_settings(settings))


@config_app.command("show")
def show_config(config_path: Path = typer.Option(DEFAULT_CONFIG_PATH, help="Path to config")) -> None:
    """Display the effective configuration."""

    settings = load_settings(config_path)
    typer.echo(json.dumps(settings.model_dump(mode="json"), indent=2))


@config_app.command("set")
def set_config(
    key: str = typer.Argument(..., help="Configuration key, e.g. params.linker.k_local"),
    value: str = typer.Argument(..., help="New value"),
    config_path: Path = typer.Option(DEFAULT_CONFIG_PATH, help="Path to config"),
) -> None:
    """Update a configuration value."""

    settings = load_settings(config_path)
    payload = settings.model_dump(mode="python")
    try:
        _assign(payload, key.split("."), yaml.safe_load(value))
        updated = CausewaySettings.model_validate(payload)
    except (ValueError, yaml.YAMLError) as e:
        typer.echo(f"❌ Invalid value for {key}: {e}", err=True)
        raise typer.Exit(code=1)
    save_settings(updated, config_path)
    typer.echo(f"Updated {key}")


@config_app.command("validate")
def validate_config(
    config_path: Path = typer.Option(DEFAULT_CONFIG_PATH, help="Path to config file"),
) -> None:
    """Validate configuration file for correctness."""

    try:
        settings = load_settings(config_path)
    except (FileNotFoundError, ValueError) as e:
        typer.echo(f"❌ Configuration invalid: {e}", err=True)
        raise typer.Exit(code=1)
    typer.echo(f"✅ Configuration valid at {config_path}")
    typer.echo(_summarize_settings(settings))


def _assign(payload: Dict[str, Any], path: List[str], value: Any) -> None:
    cursor = payload
    for part in path[:-1]:
        section = cursor.get(part)
        if section is None:
            section = cursor[part] = {}
        elif not isinstance(section, dict):
            raise ValueError(f"{part} is not a section")
        cursor = section
    cursor[path[-1]] = value


def _summarize_settings(settings: CausewaySettings) -> str:
    params = settings.params
    return "\n".join(
        [
            f"   Param hash: {build_provenance(params).short_hash}",
            f"   Max rounds: {params.max_rounds} (converge={params.converge})",
            f"   Artifacts: {settings.output.artifacts_dir}",
            f"   Outline top-K: {settings.output.outline_top_k}",
        ]
    )
