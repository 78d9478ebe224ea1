"""Typed settings management for causeway.

This module wraps user configuration in Pydantic models so CLI commands can
rely on validated settings: the hierarchy parameters plus output options.
Settings persist as JSON (YAML is accepted when the file suffix says so) and
a handful of environment variables override the stored values.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError

from causeway.errors import InvalidParametersError
from causeway.hierarchy.params import HierarchyParams


DEFAULT_CONFIG_PATH = Path.home() / ".causeway" / "config.json"
DEFAULT_ARTIFACTS_DIR = Path.home() / ".causeway" / "runs"


class OutputSettings(BaseModel):
    """Where and how run artifacts are written."""

    artifacts_dir: Path = Field(default=DEFAULT_ARTIFACTS_DIR, description="Root of run directories")
    outline_top_k: int = Field(50, ge=1, le=500)
    write_artifacts: bool = Field(True, description="Write artifacts after every run")


class CausewaySettings(BaseModel):
    """Root configuration state."""

    params: HierarchyParams = Field(default_factory=HierarchyParams)
    output: OutputSettings = Field(default_factory=OutputSettings)


def _read_payload(path: Path) -> Dict[str, Any]:
    """Parse a JSON/YAML mapping, raising ValueError on malformed content."""
    text = path.read_text(encoding="utf-8")
    try:
        if path.suffix.lower() in {".yaml", ".yml"}:
            payload = yaml.safe_load(text)
        else:
            payload = json.loads(text)
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise ValueError(f"Cannot parse {path}: {exc}") from exc
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValueError(f"{path} does not contain a mapping")
    return payload


def load_settings(path: Path = DEFAULT_CONFIG_PATH) -> CausewaySettings:
    """Load settings from disk or raise if invalid."""

    if not path.exists():
        raise FileNotFoundError(f"Settings file not found at {path}")
    payload = _read_payload(path)
    try:
        return CausewaySettings.model_validate(payload)
    except ValidationError as exc:
        raise ValueError(f"Invalid configuration: {exc}") from exc


def save_settings(settings: CausewaySettings, path: Path = DEFAULT_CONFIG_PATH) -> None:
    """Persist settings to disk."""

    payload = settings.model_dump(mode="json")
    path.parent.mkdir(parents=True, exist_ok=True)
    if path.suffix.lower() in {".yaml", ".yml"}:
        path.write_text(yaml.safe_dump(payload, sort_keys=True))
    else:
        path.write_text(json.dumps(payload, indent=2))


def bootstrap_settings(
    *,
    path: Path = DEFAULT_CONFIG_PATH,
    overrides: Optional[Dict[str, Any]] = None,
    persist: bool = True,
) -> CausewaySettings:
    """Create or load settings respecting overrides and environment variables."""

    overrides = overrides or {}

    if path.exists():
        settings = load_settings(path)
    else:
        settings = CausewaySettings()

    merged = settings.model_dump(mode="python")
    merged = _apply_overrides(merged, overrides)
    merged = _apply_env_overrides(merged)

    try:
        resolved = CausewaySettings.model_validate(merged)
    except ValidationError as exc:
        raise ValueError(f"Invalid configuration: {exc}") from exc
    if persist:
        save_settings(resolved, path)
    return resolved


def load_params_file(path: Path) -> HierarchyParams:
    """Read hierarchy parameters from a JSON/YAML file.

    The file may hold a bare parameter mapping or a full settings document
    with a ``params`` section.
    """

    try:
        payload = _read_payload(path)
    except (OSError, ValueError) as exc:
        raise InvalidParametersError(str(exc), details={"path": str(path)}) from exc
    if "params" in payload:
        payload = payload["params"]
    if not isinstance(payload, dict):
        raise InvalidParametersError(
            f"The params section of {path} is not a mapping", details={"path": str(path)}
        )
    return HierarchyParams.from_mapping(payload)


def _apply_overrides(base: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    merged = base.copy()
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _apply_overrides(merged[key], value)
        else:
            merged[key] = value
    return merged


def _apply_env_overrides(data: Dict[str, Any]) -> Dict[str, Any]:
    output = data.setdefault("output", {})
    _set_env_override(output, "artifacts_dir", "CAUSEWAY_ARTIFACTS_DIR")
    _set_env_override(output, "outline_top_k", "CAUSEWAY_OUTLINE_TOP_K", cast_int=True)
    _set_env_override(output, "write_artifacts", "CAUSEWAY_WRITE_ARTIFACTS", cast_bool=True)

    params = data.setdefault("params", {})
    _set_env_override(params, "max_rounds", "CAUSEWAY_MAX_ROUNDS", cast_int=True)
    _set_env_override(params, "converge", "CAUSEWAY_CONVERGE", cast_bool=True)
    _set_env_override(params, "use_idf", "CAUSEWAY_USE_IDF", cast_bool=True)
    return data


def _set_env_override(
    mapping: Dict[str, Any],
    key: str,
    env_name: str,
    *,
    cast_bool: bool = False,
    cast_int: bool = False,
) -> None:
    raw = os.getenv(env_name)
    if raw is None:
        return
    if cast_bool:
        mapping[key] = raw.lower() in {"1", "true", "yes"}
    elif cast_int:
        mapping[key] = int(raw)
    else:
        mapping[key] = raw
