"""Collaborator interfaces consumed by the managers.

The managers never talk to the network themselves; they call an object
satisfying KernelAPI or KernelSpecAPI and receive LiveKernel handles.
"""

from typing import Protocol
from typing import runtime_checkable

from kernel_services.models import KernelModel
from kernel_services.models import KernelOptions
from kernel_services.models import KernelSpecsModel
from kernel_services.signaling import Signal


@runtime_checkable
class LiveKernel(Protocol):
    """A locally owned handle bound to one running kernel."""

    @property
    def id(self) -> str: ...

    @property
    def model(self) -> KernelModel: ...

    @property
    def disposed(self) -> Signal: ...

    @property
    def is_disposed(self) -> bool: ...

    def dispose(self) -> None: ...


class KernelAPI(Protocol):
    """Remote kernel operations.

    list_running raises NetworkError when the server is unreachable and
    ResponseError for error statuses; the manager classifies them.
    """

    async def list_running(self) -> list[KernelModel]: ...

    async def start_new(self, options: KernelOptions) -> LiveKernel: ...

    def connect_to(self, model: KernelModel) -> LiveKernel: ...

    async def shutdown(self, kernel_id: str) -> None: ...

    async def find_by_id(self, kernel_id: str) -> KernelModel: ...


class KernelSpecAPI(Protocol):
    """Remote kernel spec operations."""

    async def get_specs(self) -> KernelSpecsModel: ...
