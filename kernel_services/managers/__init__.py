"""Kernel and kernel spec managers.

Public Interface:
    - KernelManager: Running kernels, live handles, start/shutdown
    - KernelSpecManager: Kernel specs document
    - KernelRegistry: Cached models plus owned live handles
    - PollingManager: Shared readiness/polling/disposal base
"""

from .base import PollingManager
from .kernels import KernelManager
from .kernelspecs import KernelSpecManager
from .registry import KernelRegistry

__all__ = [
    "PollingManager",
    "KernelManager",
    "KernelSpecManager",
    "KernelRegistry",
]
