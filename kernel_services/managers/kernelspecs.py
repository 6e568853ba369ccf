"""Kernel spec manager: a polled mirror of the server's kernel specs document."""

import logging
from collections.abc import Callable

from kernel_services.client import KernelSpecAPI
from kernel_services.client import RestKernelClient
from kernel_services.config import ManagerSettings
from kernel_services.diff import deep_equal
from kernel_services.models import KernelSpecsModel
from kernel_services.polling import StandbyPolicy
from kernel_services.signaling import Signal

from .base import PollingManager

logger = logging.getLogger(__name__)


class KernelSpecManager(PollingManager):
    """Manages the kernel specs of one kernel server.

    Specs change rarely, so the default poll interval is much longer than
    the kernel manager's.
    """

    def __init__(
        self,
        settings: ManagerSettings | None = None,
        client: KernelSpecAPI | None = None,
        standby: StandbyPolicy | None = None,
        is_hidden: Callable[[], bool] | None = None,
    ) -> None:
        settings = settings or ManagerSettings()
        owned_client = None
        if client is None:
            client = owned_client = RestKernelClient(settings)
        self.client: KernelSpecAPI = client
        self.specs_changed: Signal[KernelSpecsModel] = Signal("kernelspecs:specs_changed")
        self._specs: KernelSpecsModel | None = None
        super().__init__(
            settings,
            name="kernel_services:KernelSpecManager#specs",
            interval=settings.spec_poll_interval,
            max_interval=settings.spec_poll_max,
            standby=standby,
            is_hidden=is_hidden,
            owned_client=owned_client,
        )

    @property
    def specs(self) -> KernelSpecsModel | None:
        """The most recently fetched specs, or None before the first successful fetch."""
        return self._specs

    async def refresh_specs(self) -> None:
        """Force a refresh of the specs and wait for it.

        Intended for explicit user actions; the manager keeps itself current.

        Raises:
            DisposedStateError: If the manager is disposed
            FatalFetchError: If the fetch failed with a non-transient error
        """
        self._check_disposed()
        await self._poll.refresh()

    async def _request(self) -> None:
        specs = await self._fetch(self.client.get_specs)
        if specs is None or self._is_disposed:
            return
        if deep_equal(specs, self._specs):
            return

        self._specs = specs
        logger.debug(f"Kernel specs changed: {', '.join(specs.kernelspecs) or '(none)'}")
        self.specs_changed.emit(specs)

    def _on_dispose(self) -> None:
        self._specs = None
        self.specs_changed.clear()
