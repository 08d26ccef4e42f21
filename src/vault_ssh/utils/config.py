"""
Configuration utilities for loading sync settings from YAML.
"""

import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import ValidationError

from ..errors import ConfigNotFoundError
from ..models import SyncSettings

DEFAULT_CONFIG_FILE = Path.home() / ".config" / "vault-ssh" / "config.yaml"
CONFIG_ENV_VAR = "VAULT_SSH_CONFIG"
SECTION_KEY = "vault_ssh"


def _read_yaml(yaml_file_path: Path) -> Dict[str, Any]:
    try:
        with open(yaml_file_path, "r") as file:
            config = yaml.safe_load(file)
    except yaml.YAMLError as e:
        raise ConfigNotFoundError(f"Error parsing YAML file {yaml_file_path}: {e}")

    if config is None:
        return {}
    if not isinstance(config, dict):
        raise ConfigNotFoundError(f"Expected a mapping at the top of {yaml_file_path}")

    # Settings may be nested under a `vault_ssh:` section or given flat
    if SECTION_KEY in config:
        config = config[SECTION_KEY] or {}
        if not isinstance(config, dict):
            raise ConfigNotFoundError(f"'{SECTION_KEY}' in {yaml_file_path} must be a mapping")

    return config


def load_settings(
    config_file: Optional[str] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> SyncSettings:
    """
    Load sync settings from YAML and apply overrides.

    The file is taken from `config_file`, then the VAULT_SSH_CONFIG environment
    variable, then the default location. Only the default location may be missing.

    Args:
        config_file: Explicit path to the YAML settings file
        overrides: Values that take precedence over the file (None values are ignored)

    Returns:
        SyncSettings: Validated settings

    Raises:
        ConfigNotFoundError: If an explicitly requested file is missing or invalid
    """
    explicit = config_file or os.environ.get(CONFIG_ENV_VAR)
    path = Path(explicit).expanduser() if explicit else DEFAULT_CONFIG_FILE

    values: Dict[str, Any] = {}
    if path.is_file():
        values = _read_yaml(path)
    elif explicit:
        raise ConfigNotFoundError(f"Settings file not found at path: {path}")

    for key, value in (overrides or {}).items():
        if value is not None:
            values[key] = value

    try:
        return SyncSettings(**values)
    except ValidationError as e:
        raise ConfigNotFoundError(f"Invalid settings in {path}: {e}")
