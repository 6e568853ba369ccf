"""Tests for KernelManager."""

import asyncio

import httpx
import pytest

from kernel_services.client import RestKernelClient
from kernel_services.config import ManagerSettings
from kernel_services.errors import DisposedStateError
from kernel_services.errors import FatalFetchError
from kernel_services.errors import NetworkError
from kernel_services.errors import RemoteCreationError
from kernel_services.errors import RemoteShutdownError
from kernel_services.errors import ResponseError
from kernel_services.errors import TransientFetchError
from kernel_services.managers import KernelManager
from kernel_services.models import KernelModel
from kernel_services.models import KernelOptions

from .conftest import FakeKernelAPI


class Recorder:
    """Collects every payload emitted on a signal."""

    def __init__(self) -> None:
        self.payloads: list = []

    def __call__(self, payload) -> None:
        self.payloads.append(payload)


@pytest.fixture
async def manager(settings: ManagerSettings, kernel_api: FakeKernelAPI):
    """Ready KernelManager over the fake API."""
    manager = KernelManager(settings=settings, client=kernel_api)
    await manager.ready
    yield manager
    manager.dispose()


def ids(manager: KernelManager) -> list[str]:
    return [model.id for model in manager.running()]


class TestReadiness:
    """Test the readiness sequence."""

    @pytest.mark.asyncio
    async def test_first_fetch_populates_cache_and_emits(
        self, settings: ManagerSettings, kernel_api: FakeKernelAPI
    ) -> None:
        """Cache starts empty, server reports one kernel."""
        kernel_api.models = [KernelModel(id="k1")]
        manager = KernelManager(settings=settings, client=kernel_api)
        changes = Recorder()
        manager.running_changed.connect(changes)

        assert manager.is_ready is False
        await manager.ready

        assert manager.is_ready is True
        assert list(manager.running()) == [KernelModel(id="k1")]
        assert changes.payloads == [[KernelModel(id="k1")]]
        assert manager.poll.is_running is True
        manager.dispose()

    @pytest.mark.asyncio
    async def test_service_unavailable_still_becomes_ready(
        self, settings: ManagerSettings, kernel_api: FakeKernelAPI
    ) -> None:
        """A 503 on the first fetch is a connection failure, not an error."""
        kernel_api.list_error = ResponseError(503, "Service Unavailable")
        manager = KernelManager(settings=settings, client=kernel_api)
        failures = Recorder()
        changes = Recorder()
        manager.connection_failure.connect(failures)
        manager.running_changed.connect(changes)

        await manager.ready

        assert manager.is_ready is True
        assert len(failures.payloads) == 1
        assert isinstance(failures.payloads[0], TransientFetchError)
        assert failures.payloads[0].error.status_code == 503
        assert list(manager.running()) == []
        assert changes.payloads == []
        manager.dispose()

    @pytest.mark.asyncio
    async def test_fatal_first_fetch_still_becomes_ready(
        self, settings: ManagerSettings, kernel_api: FakeKernelAPI
    ) -> None:
        kernel_api.list_error = ResponseError(500, "Internal Server Error")
        manager = KernelManager(settings=settings, client=kernel_api)

        await manager.ready

        assert manager.is_ready is True
        assert manager.poll.failures == 1
        manager.dispose()

    @pytest.mark.asyncio
    async def test_ready_resolves_when_disposed_before_first_fetch(
        self, settings: ManagerSettings, kernel_api: FakeKernelAPI
    ) -> None:
        manager = KernelManager(settings=settings, client=kernel_api)
        manager.dispose()

        await manager.ready

        assert manager.is_ready is False
        assert manager.is_disposed is True


class TestRefresh:
    """Test polling and change detection."""

    @pytest.mark.asyncio
    async def test_unchanged_snapshot_does_not_emit(self, manager: KernelManager, kernel_api: FakeKernelAPI) -> None:
        kernel_api.models = [KernelModel(id="k1")]
        changes = Recorder()
        manager.running_changed.connect(changes)

        await manager.refresh_running()
        await manager.refresh_running()

        assert changes.payloads == [[KernelModel(id="k1")]]

    @pytest.mark.asyncio
    async def test_changed_snapshot_replaces_cache(self, manager: KernelManager, kernel_api: FakeKernelAPI) -> None:
        kernel_api.models = [KernelModel(id="k1", execution_state="idle")]
        await manager.refresh_running()

        kernel_api.models = [KernelModel(id="k1", execution_state="busy")]
        await manager.refresh_running()

        assert list(manager.running()) == [KernelModel(id="k1", execution_state="busy")]

    @pytest.mark.asyncio
    async def test_concurrent_refreshes_share_one_fetch(
        self, manager: KernelManager, kernel_api: FakeKernelAPI
    ) -> None:
        calls_before = kernel_api.list_calls
        kernel_api.gate = asyncio.Event()

        first = asyncio.create_task(manager.refresh_running())
        second = asyncio.create_task(manager.refresh_running())
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        assert not first.done()
        assert not second.done()

        kernel_api.gate.set()
        await asyncio.gather(first, second)

        assert kernel_api.list_calls == calls_before + 1

    @pytest.mark.asyncio
    async def test_transient_failure_keeps_cache(self, manager: KernelManager, kernel_api: FakeKernelAPI) -> None:
        kernel_api.models = [KernelModel(id="k1")]
        await manager.refresh_running()
        handle = manager.connect_to(KernelModel(id="k1"))
        changes = Recorder()
        failures = Recorder()
        manager.running_changed.connect(changes)
        manager.connection_failure.connect(failures)

        kernel_api.list_error = NetworkError("connection refused")
        await manager.refresh_running()

        assert ids(manager) == ["k1"]
        assert handle.is_disposed is False
        assert changes.payloads == []
        assert len(failures.payloads) == 1

    @pytest.mark.asyncio
    async def test_fatal_failure_propagates_and_backs_off(
        self, manager: KernelManager, kernel_api: FakeKernelAPI
    ) -> None:
        kernel_api.models = [KernelModel(id="k1")]
        await manager.refresh_running()

        kernel_api.list_error = ResponseError(500, "boom")
        with pytest.raises(FatalFetchError):
            await manager.refresh_running()

        assert ids(manager) == ["k1"]
        assert manager.poll.failures == 1
        assert manager.poll.interval == min(1000 * 2, 1000)

    @pytest.mark.asyncio
    async def test_vanished_kernel_handles_are_disposed(
        self, manager: KernelManager, kernel_api: FakeKernelAPI
    ) -> None:
        kernel_api.models = [KernelModel(id="k1"), KernelModel(id="k2")]
        await manager.refresh_running()
        k1 = manager.connect_to(KernelModel(id="k1"))
        k2 = manager.connect_to(KernelModel(id="k2"))
        changes = Recorder()
        manager.running_changed.connect(changes)

        # k2 shut down by another client
        kernel_api.models = [KernelModel(id="k1")]
        await manager.refresh_running()

        assert k2.is_disposed is True
        assert k1.is_disposed is False
        assert ids(manager) == ["k1"]
        assert changes.payloads == [[KernelModel(id="k1")]]

    @pytest.mark.asyncio
    async def test_running_iterates_snapshot_at_call_time(
        self, manager: KernelManager, kernel_api: FakeKernelAPI
    ) -> None:
        kernel_api.models = [KernelModel(id="k1")]
        await manager.refresh_running()
        snapshot = manager.running()

        kernel_api.models = []
        await manager.refresh_running()

        assert [m.id for m in snapshot] == ["k1"]
        assert [m.id for m in snapshot] == ["k1"]
        assert ids(manager) == []


class TestConnectAndStart:
    """Test creating live handles."""

    @pytest.mark.asyncio
    async def test_connect_to_registers_handle(self, manager: KernelManager) -> None:
        changes = Recorder()
        manager.running_changed.connect(changes)

        handle = manager.connect_to(KernelModel(id="k9", name="ir"))

        assert handle.id == "k9"
        assert ids(manager) == ["k9"]
        assert changes.payloads == [[KernelModel(id="k9", name="ir")]]

    @pytest.mark.asyncio
    async def test_start_new_is_visible_immediately(self, manager: KernelManager, kernel_api: FakeKernelAPI) -> None:
        kernel_api.next_id = "k2"
        list_calls = kernel_api.list_calls

        handle = await manager.start_new(KernelOptions(name="python3"))

        assert handle.id == "k2"
        assert "k2" in ids(manager)
        assert kernel_api.list_calls == list_calls

    @pytest.mark.asyncio
    async def test_start_new_failure_leaves_state_unchanged(
        self, manager: KernelManager, kernel_api: FakeKernelAPI
    ) -> None:
        kernel_api.start_error = ResponseError(500, "No such kernel spec")
        changes = Recorder()
        manager.running_changed.connect(changes)

        with pytest.raises(RemoteCreationError) as exc_info:
            await manager.start_new(KernelOptions(name="missing"))

        assert isinstance(exc_info.value.__cause__, ResponseError)
        assert ids(manager) == []
        assert changes.payloads == []

    @pytest.mark.asyncio
    async def test_disposing_handle_removes_kernel_from_cache(self, manager: KernelManager) -> None:
        handle = manager.connect_to(KernelModel(id="k1"))

        handle.dispose()

        assert ids(manager) == []

    @pytest.mark.asyncio
    async def test_find_by_id_does_not_touch_cache(self, manager: KernelManager, kernel_api: FakeKernelAPI) -> None:
        kernel_api.models = [KernelModel(id="k5", name="julia")]

        model = await manager.find_by_id("k5")

        assert model.name == "julia"
        assert ids(manager) == []


class TestShutdown:
    """Test shutting kernels down."""

    @pytest.mark.asyncio
    async def test_shutdown_removes_before_remote_call(self, manager: KernelManager, kernel_api: FakeKernelAPI) -> None:
        kernel_api.models = [KernelModel(id="k1"), KernelModel(id="k2")]
        await manager.refresh_running()
        handle = manager.connect_to(KernelModel(id="k1"))
        changes = Recorder()
        manager.running_changed.connect(changes)

        await manager.shutdown("k1")

        assert handle.is_disposed is True
        assert ids(manager) == ["k2"]
        assert changes.payloads == [[KernelModel(id="k2")]]
        assert kernel_api.shutdown_calls == ["k1"]

    @pytest.mark.asyncio
    async def test_shutdown_unknown_id_is_a_noop(self, manager: KernelManager, kernel_api: FakeKernelAPI) -> None:
        await manager.shutdown("nope")
        assert kernel_api.shutdown_calls == []

    @pytest.mark.asyncio
    async def test_shutdown_failure_keeps_local_removal(
        self, manager: KernelManager, kernel_api: FakeKernelAPI
    ) -> None:
        handle = manager.connect_to(KernelModel(id="k1"))
        kernel_api.shutdown_errors["k1"] = ResponseError(500, "boom")

        with pytest.raises(RemoteShutdownError):
            await manager.shutdown("k1")

        assert handle.is_disposed is True
        assert "k1" not in ids(manager)
        assert manager._registry.kernels == []

    @pytest.mark.asyncio
    async def test_shutdown_all(self, manager: KernelManager, kernel_api: FakeKernelAPI) -> None:
        kernel_api.models = [KernelModel(id="k1"), KernelModel(id="k2")]
        await manager.refresh_running()
        changes = Recorder()
        manager.running_changed.connect(changes)

        await manager.shutdown_all()

        assert sorted(kernel_api.shutdown_calls) == ["k1", "k2"]
        assert ids(manager) == []
        assert changes.payloads == [[]]

    @pytest.mark.asyncio
    async def test_shutdown_all_cleans_up_when_one_shutdown_fails(
        self, manager: KernelManager, kernel_api: FakeKernelAPI
    ) -> None:
        kernel_api.models = [KernelModel(id="k1"), KernelModel(id="k2")]
        await manager.refresh_running()
        k1 = manager.connect_to(KernelModel(id="k1"))
        k2 = manager.connect_to(KernelModel(id="k2"))
        kernel_api.shutdown_errors["k2"] = ResponseError(500, "boom")
        changes = Recorder()
        manager.running_changed.connect(changes)

        with pytest.raises(RemoteShutdownError) as exc_info:
            await manager.shutdown_all()

        assert len(exc_info.value.errors) == 1
        assert k1.is_disposed is True
        assert k2.is_disposed is True
        assert ids(manager) == []
        assert changes.payloads == [[]]

    @pytest.mark.asyncio
    async def test_shutdown_all_on_empty_server_does_not_emit(self, manager: KernelManager) -> None:
        changes = Recorder()
        manager.running_changed.connect(changes)

        await manager.shutdown_all()

        assert changes.payloads == []


class TestDispose:
    """Test teardown."""

    @pytest.mark.asyncio
    async def test_dispose_is_idempotent(self, settings: ManagerSettings, kernel_api: FakeKernelAPI) -> None:
        kernel_api.models = [KernelModel(id="k1")]
        manager = KernelManager(settings=settings, client=kernel_api)
        await manager.ready

        manager.dispose()
        manager.dispose()

        assert manager.is_disposed is True
        assert manager.is_ready is True
        assert ids(manager) == []
        assert manager.poll.is_disposed is True

    @pytest.mark.asyncio
    async def test_dispose_severs_subscribers(self, manager: KernelManager) -> None:
        manager.running_changed.connect(Recorder())
        manager.connection_failure.connect(Recorder())

        manager.dispose()

        assert manager.running_changed.slot_count == 0
        assert manager.connection_failure.slot_count == 0

    @pytest.mark.asyncio
    async def test_dispose_leaves_caller_handles_alive(self, manager: KernelManager) -> None:
        handle = manager.connect_to(KernelModel(id="k1"))

        manager.dispose()

        assert handle.is_disposed is False
        handle.dispose()
        assert ids(manager) == []

    @pytest.mark.asyncio
    async def test_operations_after_dispose_are_rejected(self, manager: KernelManager) -> None:
        manager.dispose()

        with pytest.raises(DisposedStateError):
            await manager.start_new()
        with pytest.raises(DisposedStateError):
            manager.connect_to(KernelModel(id="k1"))
        with pytest.raises(DisposedStateError):
            await manager.shutdown("k1")
        with pytest.raises(DisposedStateError):
            await manager.shutdown_all()
        with pytest.raises(DisposedStateError):
            await manager.refresh_running()

    @pytest.mark.asyncio
    async def test_dispose_closes_client_created_by_manager(self, settings: ManagerSettings) -> None:
        manager = KernelManager(settings=settings)
        client = manager.client
        assert isinstance(client, RestKernelClient)

        await manager.aclose()

        assert manager.is_disposed is True
        assert client.is_closed is True
        await manager.ready

    @pytest.mark.asyncio
    async def test_dispose_leaves_injected_client_open(self, settings: ManagerSettings) -> None:
        http_client = httpx.AsyncClient(
            transport=httpx.MockTransport(lambda request: httpx.Response(200, json=[])),
            base_url="http://kernels.test",
        )
        client = RestKernelClient(settings, http_client=http_client)
        manager = KernelManager(settings=settings, client=client)
        await manager.ready

        await manager.aclose()

        assert http_client.is_closed is False
        await http_client.aclose()
