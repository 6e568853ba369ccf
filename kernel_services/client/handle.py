"""Default live kernel handle."""

import logging

from kernel_services.models import KernelModel
from kernel_services.signaling import Signal

logger = logging.getLogger(__name__)


class KernelHandle:
    """Local handle for a running kernel.

    Holds the kernel's model and announces its own disposal. Messaging
    over the kernel's channels is left to higher layers that wrap the handle.
    """

    def __init__(self, model: KernelModel) -> None:
        """Initialize handle.

        Args:
            model: Model of the kernel this handle is bound to
        """
        self._model = model
        self._is_disposed = False
        self.disposed: Signal["KernelHandle"] = Signal(f"kernel:{model.id}:disposed")

    @property
    def id(self) -> str:
        return self._model.id

    @property
    def model(self) -> KernelModel:
        return self._model

    @property
    def is_disposed(self) -> bool:
        return self._is_disposed

    def dispose(self) -> None:
        """Dispose the handle and emit ``disposed`` once."""
        if self._is_disposed:
            return
        self._is_disposed = True
        logger.debug(f"Disposed handle for kernel {self.id}")
        self.disposed.emit(self)
        self.disposed.clear()

    def __repr__(self) -> str:
        state = "disposed" if self._is_disposed else "live"
        return f"KernelHandle(id={self.id!r}, name={self._model.name!r}, {state})"
