"""
Layout Configuration Files

Loads SpringBHConfig values from YAML so layouts can be tuned without
modifying code. A file may hold the options at the top level or under a
``spring_bh`` section. ``edge_length`` sets a constant rest length for
every edge; per-edge length functions can only be given in code.
"""

import dataclasses
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from .errors import ConfigError
from .layout.spring_bh import SpringBHConfig

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).parent / "default_layout.yaml"

SECTION = "spring_bh"

# Options that cannot be expressed in a YAML file
_CODE_ONLY = {"length_function"}


def _allowed_keys():
    return {f.name for f in dataclasses.fields(SpringBHConfig)} - _CODE_ONLY


def config_from_dict(values: Dict[str, Any]) -> SpringBHConfig:
    """Build a SpringBHConfig from a plain mapping, rejecting unknown keys."""
    if not isinstance(values, dict):
        raise ConfigError(
            f"Layout configuration must be a mapping, got {type(values).__name__}"
        )

    unknown = sorted(set(values) - _allowed_keys())
    if unknown:
        raise ConfigError(f"Unknown layout configuration keys: {unknown}")

    try:
        return SpringBHConfig(**values)
    except TypeError as e:
        raise ConfigError(f"Invalid layout configuration: {e}") from e


def load_config(config_path: Union[str, Path]) -> SpringBHConfig:
    """
    Load a layout configuration from a YAML file.

    Args:
        config_path: Path to a YAML file

    Returns:
        SpringBHConfig with the file's values over the defaults
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Layout configuration file not found: {path}")

    # Security: Check for symlinks to prevent reading unintended files
    if path.is_symlink():
        raise ConfigError(f"Layout configuration file cannot be a symlink: {path}")

    with open(path, 'r') as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Could not parse layout configuration {path}: {e}") from e

    if data is None:
        data = {}
    if isinstance(data, dict) and SECTION in data:
        data = data[SECTION] or {}

    config = config_from_dict(data)
    logger.debug("Loaded layout configuration from %s", path)
    return config


def default_config(config_path: Optional[Union[str, Path]] = None) -> SpringBHConfig:
    """Load the bundled default configuration (or ``config_path`` if given)."""
    return load_config(config_path or DEFAULT_CONFIG_PATH)


def dump_config(config: SpringBHConfig) -> str:
    """Serialize a configuration to YAML under the ``spring_bh`` section."""
    values = {name: getattr(config, name) for name in sorted(_allowed_keys())}
    return yaml.safe_dump({SECTION: values}, default_flow_style=False, sort_keys=True)
