"""Kernel server clients and live kernel handles.

Public Interface:
    - KernelAPI, KernelSpecAPI, LiveKernel: Collaborator protocols
    - KernelHandle: Default live kernel handle
    - RestKernelClient: httpx-backed REST client
"""

from .base import KernelAPI
from .base import KernelSpecAPI
from .base import LiveKernel
from .handle import KernelHandle
from .rest import RestKernelClient

__all__ = [
    "KernelAPI",
    "KernelSpecAPI",
    "LiveKernel",
    "KernelHandle",
    "RestKernelClient",
]
