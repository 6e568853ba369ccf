"""Pytest configuration and shared fixtures.

Provides in-memory fakes of the kernel server API so managers can be
exercised without a network.
"""

import asyncio
import uuid

import pytest

from kernel_services.client import KernelHandle
from kernel_services.config import ManagerSettings
from kernel_services.errors import ResponseError
from kernel_services.models import KernelModel
from kernel_services.models import KernelOptions
from kernel_services.models import KernelSpecModel
from kernel_services.models import KernelSpecsModel


class FakeKernelAPI:
    """In-memory KernelAPI with knobs for failures and slow responses."""

    def __init__(self, models: list[KernelModel] | None = None) -> None:
        self.models: list[KernelModel] = list(models or [])
        self.list_calls = 0
        self.list_error: Exception | None = None
        self.gate: asyncio.Event | None = None
        self.start_error: Exception | None = None
        self.next_id: str | None = None
        self.shutdown_calls: list[str] = []
        self.shutdown_errors: dict[str, Exception] = {}

    async def list_running(self) -> list[KernelModel]:
        self.list_calls += 1
        if self.gate is not None:
            await self.gate.wait()
        if self.list_error is not None:
            raise self.list_error
        return list(self.models)

    async def start_new(self, options: KernelOptions) -> KernelHandle:
        if self.start_error is not None:
            raise self.start_error
        kernel_id = self.next_id or uuid.uuid4().hex
        self.next_id = None
        model = KernelModel(id=kernel_id, name=options.name or "python3")
        self.models.append(model)
        return KernelHandle(model)

    def connect_to(self, model: KernelModel) -> KernelHandle:
        return KernelHandle(model)

    async def shutdown(self, kernel_id: str) -> None:
        self.shutdown_calls.append(kernel_id)
        if kernel_id in self.shutdown_errors:
            raise self.shutdown_errors[kernel_id]
        self.models = [model for model in self.models if model.id != kernel_id]

    async def find_by_id(self, kernel_id: str) -> KernelModel:
        for model in self.models:
            if model.id == kernel_id:
                return model
        raise ResponseError(404, f"Kernel does not exist: {kernel_id}")


class FakeKernelSpecAPI:
    """In-memory KernelSpecAPI."""

    def __init__(self, specs: KernelSpecsModel | None = None) -> None:
        self.specs = specs or make_specs("python3")
        self.calls = 0
        self.error: Exception | None = None

    async def get_specs(self) -> KernelSpecsModel:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.specs


def make_specs(*names: str) -> KernelSpecsModel:
    """Build a specs document with one spec per name; the first is the default."""
    return KernelSpecsModel(
        default=names[0] if names else "",
        kernelspecs={
            name: KernelSpecModel(
                name=name,
                spec={"argv": [name, "-f", "{connection_file}"], "display_name": name.title(), "language": "python"},
                resources={"logo-64x64": f"/kernelspecs/{name}/logo-64x64.png"},
            )
            for name in names
        },
    )


@pytest.fixture
def settings() -> ManagerSettings:
    """Settings with intervals long enough that no scheduled tick fires during a test."""
    return ManagerSettings(
        base_url="http://kernels.test",
        standby="never",
        kernel_poll_interval=1000,
        kernel_poll_max=1000,
        spec_poll_interval=1000,
        spec_poll_max=1000,
    )


@pytest.fixture
def kernel_api() -> FakeKernelAPI:
    return FakeKernelAPI()


@pytest.fixture
def spec_api() -> FakeKernelSpecAPI:
    return FakeKernelSpecAPI()
