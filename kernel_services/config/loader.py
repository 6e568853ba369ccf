"""Configuration loading for kernel_services.

This module handles loading manager configuration from an optional YAML
file and environment variables.

Contract:
- Inputs: Config file path, environment variables
- Outputs: ManagerSettings objects
- Side Effects: None
"""

import logging
import os
from pathlib import Path

import yaml

from .settings import ManagerSettings

logger = logging.getLogger(__name__)

ENV_PREFIX = "KERNEL_SERVICES_"


def get_config_path() -> Path:
    """Get path to the default config file.

    Honors KERNEL_SERVICES_CONFIG, otherwise ~/.config/kernel_services/manager.yaml.
    The file is optional and never created.

    Returns:
        Path to manager.yaml (may not exist)

    Example:
        >>> config_path = get_config_path()
        >>> assert config_path.suffix == ".yaml"
    """
    env_override = os.environ.get(f"{ENV_PREFIX}CONFIG")
    if env_override:
        return Path(env_override).expanduser().resolve()
    return Path("~/.config/kernel_services/manager.yaml").expanduser()


def load_config(config_path: Path | None = None) -> ManagerSettings:
    """Load manager configuration from YAML and environment.

    Environment variables take precedence over YAML settings.
    Variables should be prefixed with KERNEL_SERVICES_ (e.g., KERNEL_SERVICES_TOKEN).

    Args:
        config_path: Optional config file path (default: get_config_path())

    Returns:
        Validated manager settings

    Raises:
        pydantic.ValidationError: If the merged settings are invalid
    """
    if config_path is None:
        config_path = get_config_path()

    yaml_settings: dict = {}
    if config_path.exists():
        try:
            with open(config_path, encoding="utf-8") as f:
                yaml_settings = yaml.safe_load(f) or {}
            logger.debug(f"Loaded config from {config_path}")
        except (OSError, yaml.YAMLError) as e:
            logger.warning(f"Failed to load config from {config_path}: {e}")
            logger.info("Using default settings and environment variables")

    if not isinstance(yaml_settings, dict):
        logger.warning(f"Ignoring config at {config_path}: expected a mapping, got {type(yaml_settings).__name__}")
        yaml_settings = {}

    # Only pass YAML values that don't have corresponding env vars
    filtered_yaml = {}
    for key, value in yaml_settings.items():
        env_key = f"{ENV_PREFIX}{key.upper()}"
        if env_key not in os.environ:
            filtered_yaml[key] = value

    settings = ManagerSettings(**filtered_yaml)

    logger.info(
        f"Manager configuration loaded: base_url={settings.base_url}, standby={settings.standby}, "
        f"kernel_poll_interval={settings.kernel_poll_interval}, spec_poll_interval={settings.spec_poll_interval}"
    )

    return settings
