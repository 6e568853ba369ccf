"""Shared readiness, polling and disposal pattern for managers."""

import asyncio
import logging
from abc import ABC
from abc import abstractmethod
from collections.abc import Awaitable
from collections.abc import Callable
from typing import TypeVar

from kernel_services.client import RestKernelClient
from kernel_services.config import ManagerSettings
from kernel_services.errors import DisposedStateError
from kernel_services.errors import FatalFetchError
from kernel_services.errors import TransientFetchError
from kernel_services.errors import is_transient
from kernel_services.polling import Poll
from kernel_services.polling import StandbyPolicy
from kernel_services.signaling import Signal

logger = logging.getLogger(__name__)

T = TypeVar("T")


class PollingManager(ABC):
    """Base class for managers that mirror a remote snapshot.

    Construction starts the readiness sequence: one fetch through the poll,
    after which the manager is ready (whatever the fetch outcome) and the
    poll is armed. Must be constructed inside a running event loop.

    Lifecycle: constructed -> readiness pending -> ready -> disposed.
    """

    def __init__(
        self,
        settings: ManagerSettings | None,
        *,
        name: str,
        interval: float,
        max_interval: float,
        standby: StandbyPolicy | None = None,
        is_hidden: Callable[[], bool] | None = None,
        owned_client: RestKernelClient | None = None,
    ) -> None:
        self.settings = settings or ManagerSettings()
        self._is_disposed = False
        self._is_ready = False
        self._loop = asyncio.get_running_loop()
        # Set only when the manager created the client itself; closed on dispose
        self._owned_client = owned_client
        self._closing: asyncio.Task | None = None
        self.connection_failure: Signal[TransientFetchError] = Signal(f"{name}:connection_failure")

        self._poll = Poll(
            self._request,
            name=name,
            interval=interval,
            backoff=self.settings.poll_backoff,
            max_interval=max_interval,
            standby=standby or self.settings.standby,
            is_hidden=is_hidden,
        )
        self._ready = self._loop.create_task(self._initialize())

    @property
    def is_disposed(self) -> bool:
        return self._is_disposed

    @property
    def is_ready(self) -> bool:
        return self._is_ready

    @property
    def ready(self) -> Awaitable[None]:
        """Awaitable resolved once the first fetch has settled."""
        return self._ready

    @property
    def poll(self) -> Poll:
        return self._poll

    def dispose(self) -> None:
        """Stop polling and sever subscriptions. Idempotent.

        An HTTP client created by the manager is closed in the background;
        await aclose() to wait for it.
        """
        if self._is_disposed:
            return
        self._is_disposed = True
        self._poll.dispose()
        self.connection_failure.clear()
        self._on_dispose()
        if self._owned_client is not None and not self._loop.is_closed():
            self._closing = self._loop.create_task(self._owned_client.aclose())
        logger.info(f"Disposed {type(self).__name__}")

    async def aclose(self) -> None:
        """Dispose and wait until the HTTP client created by the manager is closed.

        Use instead of dispose() when the manager was built without a client
        and the caller needs the connection pool released before moving on.
        """
        self.dispose()
        if self._closing is not None:
            await self._closing

    async def _initialize(self) -> None:
        if self._is_disposed:
            return
        try:
            await self._poll.refresh()
        except Exception as e:
            logger.warning(f"Initial fetch for {type(self).__name__} failed: {e}")
        if self._is_disposed:
            return
        self._is_ready = True
        logger.info(f"{type(self).__name__} is ready")
        self._poll.start()

    async def _fetch(self, call: Callable[[], Awaitable[T]]) -> T | None:
        """Run a remote fetch and classify its failure.

        Returns:
            The fetched value, or None after a transient failure (already
            emitted on ``connection_failure``)

        Raises:
            FatalFetchError: For any non-transient failure
        """
        try:
            return await call()
        except Exception as e:
            if not is_transient(e):
                raise FatalFetchError(e) from e
            logger.warning(f"Connection failure in {type(self).__name__}: {e}")
            if not self._is_disposed:
                self.connection_failure.emit(TransientFetchError(e))
            return None

    def _check_disposed(self) -> None:
        if self._is_disposed:
            raise DisposedStateError(f"{type(self).__name__} is disposed")

    @abstractmethod
    async def _request(self) -> None:
        """Fetch the remote snapshot and reconcile the cache."""

    @abstractmethod
    def _on_dispose(self) -> None:
        """Release cached state and subscriptions specific to the manager."""
