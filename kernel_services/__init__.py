"""Kernel services: client-side reconciliation of kernel server state.

Keeps a local cache of running kernels and kernel specs synchronized with
a kernel server, with backoff polling and change notifications.

Public Interface:
    Modules:
    - config: Settings and configuration loading
    - models: Kernel and kernel spec snapshot models
    - client: Collaborator protocols, live handles, REST client
    - managers: KernelManager and KernelSpecManager
    - polling: Backoff poller
    - signaling: Notification channels
    - diff: Snapshot comparison
"""

from .client import KernelHandle
from .client import RestKernelClient
from .config import ManagerSettings
from .config import load_config
from .errors import DisposedStateError
from .errors import FatalFetchError
from .errors import KernelServicesError
from .errors import NetworkError
from .errors import RemoteCreationError
from .errors import RemoteShutdownError
from .errors import ResponseError
from .errors import TransientFetchError
from .logging_config import configure_logging
from .managers import KernelManager
from .managers import KernelSpecManager
from .models import KernelModel
from .models import KernelOptions
from .models import KernelSpecModel
from .models import KernelSpecsModel
from .polling import Poll
from .signaling import Signal

__all__ = [
    "KernelManager",
    "KernelSpecManager",
    "KernelHandle",
    "RestKernelClient",
    "ManagerSettings",
    "load_config",
    "configure_logging",
    "KernelModel",
    "KernelOptions",
    "KernelSpecModel",
    "KernelSpecsModel",
    "Poll",
    "Signal",
    "KernelServicesError",
    "NetworkError",
    "ResponseError",
    "TransientFetchError",
    "FatalFetchError",
    "RemoteCreationError",
    "RemoteShutdownError",
    "DisposedStateError",
]
