"""Logging setup for applications embedding kernel_services."""

import logging

from .config import ManagerSettings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str | None = None) -> None:
    """Configure root logging with the package's standard format.

    Args:
        level: Level name (debug, info, warning, error, critical).
            Defaults to ManagerSettings.log_level (KERNEL_SERVICES_LOG_LEVEL).

    Raises:
        ValueError: If the level name is unknown
    """
    if level is None:
        level = ManagerSettings().log_level
    numeric = logging.getLevelName(level.upper())
    if not isinstance(numeric, int):
        raise ValueError(f"Unknown log level: {level}")
    logging.basicConfig(level=numeric, format=LOG_FORMAT)
    # APScheduler logs every job execution at INFO
    logging.getLogger("apscheduler").setLevel(max(numeric, logging.WARNING))
