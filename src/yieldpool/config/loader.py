"""Configuration loader from YAML.

Without a path the packaged defaults.yaml is read through importlib.resources,
so it is found from an installed wheel as well as from a source checkout.
"""

from importlib import resources
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from .schema import Config

DEFAULTS_FILE = "defaults.yaml"


def read_defaults() -> Dict[str, Any]:
    """Packaged default settings as a plain dict."""
    text = resources.files(__package__).joinpath(DEFAULTS_FILE).read_text()
    return yaml.safe_load(text) or {}


def load_config(
    yaml_path: Optional[Union[str, Path]] = None,
    overrides: Optional[List[str]] = None
) -> Config:
    """
    Load configuration from a YAML file.

    Args:
        yaml_path: Path to YAML file (defaults to the packaged defaults.yaml)
        overrides: "section.key=value" strings applied before validation

    Returns:
        Config object
    """
    if yaml_path is None:
        data = read_defaults()
    else:
        data = yaml.safe_load(Path(yaml_path).read_text()) or {}

    for override in overrides or []:
        apply_override(data, override)

    return Config.from_dict(data)


def apply_override(data: Dict[str, Any], override: str) -> None:
    """
    Set one dotted key in a raw config dict, e.g. "rate_model.kind=ema".

    The value is parsed as YAML so numbers and booleans keep their type.
    """
    key, sep, raw_value = override.partition("=")
    if not sep or not key.strip():
        raise ValueError(f"Override must look like section.key=value: {override!r}")
    *sections, leaf = key.strip().split(".")
    target = data
    for section in sections:
        target = target.setdefault(section, {})
        if not isinstance(target, dict):
            raise ValueError(f"Override path {key!r} runs through a non-section value")
    target[leaf] = yaml.safe_load(raw_value)


def config_from_dict(data: Dict[str, Any]) -> Config:
    """
    Create config from dictionary.

    Args:
        data: Configuration dictionary

    Returns:
        Config object
    """
    return Config.from_dict(data)
