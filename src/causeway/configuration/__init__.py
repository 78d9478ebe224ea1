"""Configuration for causeway."""

from causeway.configuration.settings import (
    DEFAULT_ARTIFACTS_DIR,
    DEFAULT_CONFIG_PATH,
    CausewaySettings,
    OutputSettings,
    bootstrap_settings,
    load_params_file,
    load_settings,
    save_settings,
)

__all__ = [
    "DEFAULT_ARTIFACTS_DIR",
    "DEFAULT_CONFIG_PATH",
    "CausewaySettings",
    "OutputSettings",
    "bootstrap_settings",
    "load_params_file",
    "load_settings",
    "save_settings",
]
