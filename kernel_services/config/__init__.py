"""Configuration module for kernel_services.

Provides manager configuration loading from YAML and environment variables.

Public Interface:
    - ManagerSettings: Settings model
    - Standby: Standby policy literal type
    - load_config: Load configuration
    - get_config_path: Get config file path
"""

from .loader import get_config_path
from .loader import load_config
from .settings import ManagerSettings
from .settings import Standby

__all__ = [
    "ManagerSettings",
    "Standby",
    "load_config",
    "get_config_path",
]
