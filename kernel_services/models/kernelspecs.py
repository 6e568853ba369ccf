"""Kernel spec models as reported by the kernel server REST API."""

from typing import Any

from pydantic import Field

from .base import SnapshotModel


class KernelSpecModel(SnapshotModel):
    """A single installed kernel spec."""

    name: str = Field(description="Kernel spec name")
    spec: dict[str, Any] = Field(default_factory=dict, description="kernel.json contents (argv, display_name, language)")
    resources: dict[str, str] = Field(default_factory=dict, description="Resource name to URL (logos, kernel.js)")


class KernelSpecsModel(SnapshotModel):
    """The kernel specs document: the default spec name and all installed specs."""

    default: str = Field(default="", description="Name of the default kernel spec")
    kernelspecs: dict[str, KernelSpecModel] = Field(default_factory=dict, description="Installed kernel specs by name")
