"""Kernel models as reported by the kernel server REST API."""

from datetime import datetime
from typing import Any

from pydantic import Field

from .base import SnapshotModel


class KernelModel(SnapshotModel):
    """A running kernel as last observed on the server.

    The id is the kernel's identity; it is unique within a snapshot.
    """

    id: str = Field(description="Unique kernel identifier")
    name: str = Field(default="", description="Kernel spec name the kernel was started from")
    last_activity: datetime | None = Field(default=None, description="Last activity timestamp")
    execution_state: str | None = Field(default=None, description="Execution state (idle, busy, starting)")
    connections: int | None = Field(default=None, description="Number of client connections")


class KernelOptions(SnapshotModel):
    """Options for starting a new kernel."""

    name: str | None = Field(default=None, description="Kernel spec name (server default if None)")
    path: str | None = Field(default=None, description="Working directory for the kernel, relative to server root")
    env: dict[str, Any] = Field(default_factory=dict, description="Extra environment variables")

    def request_body(self) -> dict[str, Any]:
        """Build the JSON body for a start request, omitting unset fields."""
        return self.model_dump(exclude_none=True, exclude_defaults=True)
