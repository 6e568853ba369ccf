"""Kernel manager: a polled mirror of the server's running kernels.

Keeps the running-kernel list in sync with the server, owns the live
handles it hands out, and emits ``running_changed`` only when the list
actually changes.

Contract:
- Inputs: KernelAPI client, ManagerSettings
- Outputs: Cached KernelModel snapshots, LiveKernel handles, notifications
- Side Effects: Remote start/shutdown calls; background polling until disposed
"""

import asyncio
import logging
from collections.abc import Callable

from kernel_services.client import KernelAPI
from kernel_services.client import LiveKernel
from kernel_services.client import RestKernelClient
from kernel_services.config import ManagerSettings
from kernel_services.diff import deep_equal
from kernel_services.errors import RemoteCreationError
from kernel_services.errors import RemoteShutdownError
from kernel_services.models import KernelModel
from kernel_services.models import KernelOptions
from kernel_services.polling import StandbyPolicy
from kernel_services.signaling import Signal

from .base import PollingManager
from .registry import KernelRegistry

logger = logging.getLogger(__name__)


class KernelManager(PollingManager):
    """Manages the running kernels of one kernel server.

    Example:
        >>> manager = KernelManager(client=client)
        >>> await manager.ready
        >>> kernel = await manager.start_new(KernelOptions(name="python3"))
        >>> [model.id for model in manager.running()]
        ['...']
        >>> await manager.shutdown(kernel.id)
        >>> manager.dispose()
    """

    def __init__(
        self,
        settings: ManagerSettings | None = None,
        client: KernelAPI | None = None,
        standby: StandbyPolicy | None = None,
        is_hidden: Callable[[], bool] | None = None,
    ) -> None:
        """Initialize kernel manager and start the readiness sequence.

        Args:
            settings: Manager settings (default: ManagerSettings())
            client: Kernel API client (default: RestKernelClient(settings))
            standby: Standby policy overriding settings.standby
            is_hidden: Visibility probe for the "when-hidden" policy
        """
        settings = settings or ManagerSettings()
        owned_client = None
        if client is None:
            client = owned_client = RestKernelClient(settings)
        self.client: KernelAPI = client
        self.running_changed: Signal[list[KernelModel]] = Signal("kernels:running_changed")
        self._registry = KernelRegistry(self.running_changed)
        super().__init__(
            settings,
            name="kernel_services:KernelManager#models",
            interval=settings.kernel_poll_interval,
            max_interval=settings.kernel_poll_max,
            standby=standby,
            is_hidden=is_hidden,
            owned_client=owned_client,
        )

    def running(self) -> list[KernelModel]:
        """Get the most recently cached running kernels.

        Returns a copy taken at call time; it can be iterated any number of
        times and does not follow later refreshes.
        """
        return self._registry.models

    async def refresh_running(self) -> None:
        """Force a refresh of the running kernels and wait for it.

        Joins a refresh already in flight instead of starting another one.

        Raises:
            DisposedStateError: If the manager is disposed
            FatalFetchError: If the fetch failed with a non-transient error
        """
        self._check_disposed()
        await self._poll.refresh()

    def connect_to(self, model: KernelModel) -> LiveKernel:
        """Connect to an existing kernel. No request is made.

        Args:
            model: Model of the target kernel

        Returns:
            Live handle owned by this manager until disposed
        """
        self._check_disposed()
        kernel = self.client.connect_to(model)
        self._registry.register(kernel)
        return kernel

    async def start_new(self, options: KernelOptions | None = None) -> LiveKernel:
        """Start a new kernel on the server.

        The kernel appears in running() as soon as this returns.

        Args:
            options: Kernel options (default: server default kernel)

        Returns:
            Live handle bound to the new kernel

        Raises:
            DisposedStateError: If the manager is disposed
            RemoteCreationError: If the server failed to start the kernel
        """
        self._check_disposed()
        options = options or KernelOptions()
        try:
            kernel = await self.client.start_new(options)
        except Exception as e:
            logger.error(f"Failed to start kernel {options.name or '(default)'}: {e}")
            raise RemoteCreationError(f"Failed to start kernel: {e}") from e

        if self._is_disposed:
            logger.warning(f"Manager disposed while starting kernel {kernel.id}; not registering it")
            return kernel
        self._registry.register(kernel)
        return kernel

    async def shutdown(self, kernel_id: str) -> None:
        """Shut down a kernel by id.

        The kernel is removed from the cache and its handles disposed before
        the remote call is made; the removal is kept even if that call fails.
        Unknown ids are ignored.

        Raises:
            DisposedStateError: If the manager is disposed
            RemoteShutdownError: If the remote call failed
        """
        self._check_disposed()
        if self._registry.find(kernel_id) is None:
            return

        self._registry.unregister(kernel_id)

        try:
            await self.client.shutdown(kernel_id)
        except Exception as e:
            logger.error(f"Failed to shut down kernel {kernel_id}: {e}")
            raise RemoteShutdownError(f"Failed to shut down kernel {kernel_id}: {e}", [e]) from e
        logger.info(f"Shut down kernel {kernel_id}")

    async def shutdown_all(self) -> None:
        """Shut down every kernel on the server.

        Refreshes the list first, then shuts kernels down concurrently. Owned
        handles are disposed and the cache is cleared whatever the outcome.

        Raises:
            DisposedStateError: If the manager is disposed
            FatalFetchError: If the preliminary refresh failed
            RemoteShutdownError: If any remote shutdown failed
        """
        self._check_disposed()
        errors: list[BaseException] = []
        owned = self._registry.kernels
        try:
            await self._poll.refresh()
            owned.extend(kernel for kernel in self._registry.kernels if kernel not in owned)
            ids = [model.id for model in self._registry.models]
            logger.info(f"Shutting down {len(ids)} kernels")
            results = await asyncio.gather(
                *(self.client.shutdown(kernel_id) for kernel_id in ids),
                return_exceptions=True,
            )
            for kernel_id, result in zip(ids, results, strict=True):
                if isinstance(result, BaseException):
                    logger.error(f"Failed to shut down kernel {kernel_id}: {result}")
                    errors.append(result)
        finally:
            self._registry.clear()
            # Handles owned here are torn down even if the manager was disposed meanwhile.
            for kernel in owned:
                kernel.dispose()

        if errors:
            raise RemoteShutdownError(f"Failed to shut down {len(errors)} kernels", errors) from errors[0]

    async def find_by_id(self, kernel_id: str) -> KernelModel:
        """Look up a kernel's current model on the server. The cache is not touched."""
        self._check_disposed()
        return await self.client.find_by_id(kernel_id)

    async def _request(self) -> None:
        models = await self._fetch(self.client.list_running)
        if models is None or self._is_disposed:
            return
        if deep_equal(models, self._registry.models):
            return

        self._registry.replace(models)
        self._registry.reconcile(models)
        logger.debug(f"Running kernels changed: {len(models)} kernels")
        self.running_changed.emit(list(models))

    def _on_dispose(self) -> None:
        self._registry.detach()
        self.running_changed.clear()
