"""YAML configuration loading.

Uses ``yaml.safe_load`` so a config file can only produce plain data
(strings, numbers, lists, dicts). Consumed by
[ClonePipeline.from_yaml()][excalibur.services.clone.ClonePipeline.from_yaml]
and the CLI.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from .exceptions import ConfigurationError


def load_yaml(config_path: str | Path) -> dict[str, Any]:
    """Load and parse a YAML configuration file.

    Args:
        config_path: Path to the YAML file.

    Returns:
        Parsed mapping; ``{}`` for an empty file.

    Raises:
        FileNotFoundError: If the file does not exist.
        ConfigurationError: If the file is not valid YAML or its top level
            is not a mapping.

    Warning:
        The returned dictionary is not validated. Pass it to
        [CloneConfig][excalibur.services.clone.CloneConfig].
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with path.open(encoding="utf-8") as f:
        try:
            data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {config_path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Config file {config_path} must contain a mapping, got {type(data).__name__}"
        )
    return data
