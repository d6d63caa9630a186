"""
Configuration management for generation runs.

Handles loading and merging configuration from JSON files (comments
allowed) and command-line overrides, providing defaults and validation.
"""

import json
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .exceptions import ConfigError
from .jsonc import strip_comments
from .logging_config import get_logger
from .paths import TEMPLATE_EXT

logger = get_logger(__name__)


@dataclass
class GeneratorConfig:
    """Settings for one generation run."""

    # Template argument settings
    template_ext: str = TEMPLATE_EXT

    # Formatter selection
    use_external: bool = False
    external_commands: Dict[str, List[str]] = field(default_factory=dict)

    # Named variables exposed to templates as D
    variables: Dict[str, str] = field(default_factory=dict)


def _load_config_file(config_path: Union[str, Path]) -> Dict[str, Any]:
    """Load configuration from a JSON file."""
    path = Path(config_path)

    if not path.exists():
        raise ConfigError(f"Configuration file not found: {path}")

    try:
        config = json.loads(strip_comments(path.read_bytes()))
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ConfigError(f"Invalid JSON in configuration file {path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Failed to load configuration file {path}: {e}") from e

    if not isinstance(config, dict):
        raise ConfigError(f"Configuration file must contain a JSON object: {path}")

    logger.debug("Loaded configuration from %s", path)
    return config


def _dict_to_config(config_dict: Dict[str, Any]) -> GeneratorConfig:
    """Convert dictionary to GeneratorConfig instance."""
    known_fields = {f.name for f in fields(GeneratorConfig)}
    unknown = sorted(set(config_dict) - known_fields)
    if unknown:
        raise ConfigError(f"Unknown configuration keys: {', '.join(unknown)}")
    return GeneratorConfig(**config_dict)


def validate_config(config: GeneratorConfig) -> None:
    """
    Validate configuration values.

    Raises:
        ConfigError: On the first invalid setting
    """
    if not isinstance(config.use_external, bool):
        raise ConfigError(
            f"use_external must be true or false, got {config.use_external!r}"
        )

    if not isinstance(config.template_ext, str) or not config.template_ext.startswith("."):
        raise ConfigError(f"Invalid template_ext: {config.template_ext!r}")
    if len(config.template_ext) < 2:
        raise ConfigError(f"Invalid template_ext: {config.template_ext!r}")

    if not isinstance(config.external_commands, dict):
        raise ConfigError("external_commands must be an object")
    for kind, argv in config.external_commands.items():
        if (
            not isinstance(argv, list)
            or not argv
            or not all(isinstance(a, str) for a in argv)
        ):
            raise ConfigError(
                f"external_commands.{kind} must be a non-empty list of strings"
            )

    if not isinstance(config.variables, dict) or not all(
        isinstance(k, str) and isinstance(v, str) for k, v in config.variables.items()
    ):
        raise ConfigError("variables must map names to strings")


def load_config(
    config_file: Optional[Union[str, Path]] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> GeneratorConfig:
    """
    Build the run configuration.

    Args:
        config_file: Path to JSON configuration file
        overrides: Values from the command line; ``variables`` are merged
            into the file's variables rather than replacing them

    Returns:
        Merged, validated configuration
    """
    base_config: Dict[str, Any] = {}

    if config_file:
        base_config.update(_load_config_file(config_file))

    if overrides:
        overrides = dict(overrides)
        variables = overrides.pop("variables", None)
        base_config.update(overrides)
        if variables:
            existing = base_config.get("variables") or {}
            if not isinstance(existing, dict):
                raise ConfigError("variables must map names to strings")
            merged = dict(existing)
            merged.update(variables)
            base_config["variables"] = merged

    config = _dict_to_config(base_config)
    validate_config(config)
    return config
