"""Settings models for kernel_services managers.

This module defines the connection and polling configuration shared by
KernelManager and KernelSpecManager.

Contract:
- Inputs: Environment variables, YAML files
- Outputs: Validated settings objects
- Side Effects: None (read-only)
"""

from typing import Literal

from pydantic import Field
from pydantic import field_validator
from pydantic import model_validator
from pydantic_settings import BaseSettings
from pydantic_settings import SettingsConfigDict

Standby = Literal["never", "when-hidden"]


class ManagerSettings(BaseSettings):
    """Configuration for kernel and kernel spec managers.

    The server connection fields are opaque to the managers themselves; they
    are only consumed by the default REST client.

    Attributes:
        base_url: Kernel server REST base URL (default: http://localhost:8888)
        token: Authentication token sent with every request
        request_timeout: Per-request timeout in seconds
        log_level: Level used by configure_logging() when none is given
        standby: When polling is suspended (never | when-hidden)
        kernel_poll_interval: Base polling interval for running kernels
        kernel_poll_max: Maximum backed-off interval for running kernels
        spec_poll_interval: Base polling interval for kernel specs
        spec_poll_max: Maximum backed-off interval for kernel specs
        poll_backoff: Growth factor applied per consecutive failure (1 disables)

    Example:
        >>> settings = ManagerSettings()
        >>> assert settings.kernel_poll_interval == 10.0
        >>> assert settings.standby == "when-hidden"
    """

    model_config = SettingsConfigDict(
        env_prefix="KERNEL_SERVICES_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    base_url: str = "http://localhost:8888"
    token: str = ""
    request_timeout: float = Field(default=30.0, gt=0)
    log_level: str = "info"

    standby: Standby = "when-hidden"

    kernel_poll_interval: float = Field(default=10.0, gt=0)
    kernel_poll_max: float = Field(default=300.0, gt=0)
    spec_poll_interval: float = Field(default=61.0, gt=0)
    spec_poll_max: float = Field(default=300.0, gt=0)
    poll_backoff: float = Field(default=2.0, ge=1.0)

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalize base URL so paths can be appended with a single slash.

        Args:
            v: Base URL string

        Returns:
            URL without trailing slash
        """
        return v.rstrip("/")

    @model_validator(mode="after")
    def check_poll_bounds(self) -> "ManagerSettings":
        """Ensure no maximum interval is below its base interval."""
        if self.kernel_poll_max < self.kernel_poll_interval:
            raise ValueError("kernel_poll_max must be >= kernel_poll_interval")
        if self.spec_poll_max < self.spec_poll_interval:
            raise ValueError("spec_poll_max must be >= spec_poll_interval")
        return self
