# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/valfleet/config/loader.py

import logging
import os
import yaml
from pathlib import Path
from pydantic import ValidationError

from .models import FleetConfig
from ..errors import ConfigurationError

log = logging.getLogger("valfleet")

DEFAULT_CONFIG_NAME = "valfleet.yaml"


def _find_config_file(explicit: Path | None) -> Path | None:
    """
    Locate the fleet config using this priority:

    1. explicit path (``--config``)
    2. VALFLEET_CONFIG environment variable
    3. valfleet.yaml in the current directory
    """
    if explicit is not None:
        if not explicit.is_file():
            raise ConfigurationError(f"Config file {explicit} does not exist")
        return explicit

    env = os.environ.get("VALFLEET_CONFIG")
    if env:
        p = Path(env)
        if p.is_file():
            return p
        log.warning("VALFLEET_CONFIG=%s does not exist; using defaults", env)
        return None

    p = Path.cwd() / DEFAULT_CONFIG_NAME
    if p.is_file():
        return p

    return None


def _load_yaml(path: Path) -> dict:
    """Load a YAML file, expanding ${ENV_VAR} references."""
    raw = path.read_text()
    expanded = os.path.expandvars(raw)
    try:
        data = yaml.safe_load(expanded)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"{path} must contain a mapping at the top level")
    return data


def load_config(path: str | Path | None = None) -> FleetConfig:
    """
    Load and validate the fleet config.

    Relative ``workspace`` values are taken relative to the config file;
    without a file the current directory is the workspace.
    """
    found = _find_config_file(Path(path) if path is not None else None)
    if found is None:
        log.debug("No config file found, using built-in defaults")
        return FleetConfig(workspace=Path.cwd())

    log.debug("Loading config from %s", found)
    data = _load_yaml(found)
    workspace = Path(data.get("workspace") or ".")
    if not workspace.is_absolute():
        workspace = (found.parent / workspace).resolve()
    data["workspace"] = workspace

    try:
        return FleetConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid config {found}:\n{e}") from e
