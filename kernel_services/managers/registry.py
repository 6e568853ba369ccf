"""Registry of live kernel handles and the cached running-kernel snapshot.

Provides:
- KernelRegistry: owns the cached KernelModel list and the handles the
  manager created, and keeps the two consistent
"""

import logging
from collections.abc import Callable
from collections.abc import Iterable

from kernel_services.client import LiveKernel
from kernel_services.models import KernelModel
from kernel_services.signaling import Signal

logger = logging.getLogger(__name__)


class KernelRegistry:
    """Cache of running kernels plus the live handles bound to them.

    Every owned handle's id is present in the cached models, or the handle
    was dropped in the same pass that removed the model. Operations are
    local and never raise for unknown ids.
    """

    def __init__(self, changed: Signal[list[KernelModel]]) -> None:
        """Initialize registry.

        Args:
            changed: Channel emitted with a copy of the models whenever the cache changes
        """
        self._changed = changed
        self._models: list[KernelModel] = []
        self._kernels: dict[LiveKernel, Callable[[LiveKernel], None]] = {}

    @property
    def models(self) -> list[KernelModel]:
        """Copy of the cached models, in server order."""
        return list(self._models)

    @property
    def kernels(self) -> list[LiveKernel]:
        """Owned live handles."""
        return list(self._kernels)

    def find(self, kernel_id: str) -> KernelModel | None:
        """Get the cached model for an id."""
        for model in self._models:
            if model.id == kernel_id:
                return model
        return None

    def replace(self, models: Iterable[KernelModel]) -> None:
        """Replace the cached models without emitting."""
        self._models = list(models)

    def register(self, kernel: LiveKernel) -> None:
        """Take ownership of a handle.

        Adds the handle's model to the cache when its id is not cached yet,
        and unregisters the id automatically once the handle is disposed.

        Args:
            kernel: Handle to own
        """
        if kernel in self._kernels:
            return

        def on_disposed(_: LiveKernel) -> None:
            self._on_kernel_disposed(kernel)

        self._kernels[kernel] = on_disposed
        kernel.disposed.connect(on_disposed)
        logger.debug(f"Registered handle for kernel {kernel.id}")

        if self.find(kernel.id) is None:
            self._models.append(kernel.model)
            self._emit()

    def unregister(self, kernel_id: str) -> bool:
        """Drop and dispose every handle for an id and remove its cached model.

        Args:
            kernel_id: Kernel identifier

        Returns:
            True if the cached models changed (changed was emitted)
        """
        self._drop_where(lambda kernel: kernel.id == kernel_id)

        before = len(self._models)
        self._models = [model for model in self._models if model.id != kernel_id]
        if len(self._models) == before:
            return False
        self._emit()
        return True

    def reconcile(self, models: Iterable[KernelModel]) -> list[str]:
        """Dispose handles whose kernel is absent from a fresh snapshot.

        Args:
            models: Snapshot just fetched from the server

        Returns:
            Ids of the handles that were dropped
        """
        ids = {model.id for model in models}
        dropped = self._drop_where(lambda kernel: kernel.id not in ids)
        if dropped:
            logger.info(f"Dropped handles for vanished kernels: {', '.join(dropped)}")
        return dropped

    def clear(self) -> None:
        """Dispose every owned handle and empty the cache.

        Emits an empty list once if the cache was not already empty.
        """
        self._drop_where(lambda kernel: True)
        if self._models:
            self._models = []
            self._emit()

    def detach(self) -> None:
        """Forget owned handles and cached models without disposing the handles."""
        for kernel, slot in list(self._kernels.items()):
            kernel.disposed.disconnect(slot)
        self._kernels.clear()
        self._models = []

    def _drop_where(self, predicate: Callable[[LiveKernel], bool]) -> list[str]:
        dropped = [kernel for kernel in self._kernels if predicate(kernel)]
        # Disconnect before disposing so the disposal does not re-enter unregister.
        for kernel in dropped:
            slot = self._kernels.pop(kernel)
            kernel.disposed.disconnect(slot)
        for kernel in dropped:
            kernel.dispose()
        return [kernel.id for kernel in dropped]

    def _on_kernel_disposed(self, kernel: LiveKernel) -> None:
        if kernel not in self._kernels:
            return
        logger.debug(f"Handle for kernel {kernel.id} disposed")
        self.unregister(kernel.id)

    def _emit(self) -> None:
        self._changed.emit(list(self._models))
