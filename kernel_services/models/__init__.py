"""Models for kernel_services."""

from .base import SnapshotModel
from .kernels import KernelModel
from .kernels import KernelOptions
from .kernelspecs import KernelSpecModel
from .kernelspecs import KernelSpecsModel

__all__ = [
    "SnapshotModel",
    "KernelModel",
    "KernelOptions",
    "KernelSpecModel",
    "KernelSpecsModel",
]
