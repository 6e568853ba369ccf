"""Typed notification channels.

One Signal per semantically distinct event. Slots are plain callables
invoked synchronously with the payload; asyncio consumers can subscribe a
queue instead.
"""

import asyncio
import logging
from collections.abc import Callable
from typing import Generic
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

Slot = Callable[[T], object]


class Signal(Generic[T]):
    """Publish/subscribe channel for a single event kind.

    Emission iterates a point-in-time copy of the connected slots, so
    slots connected or disconnected during an emission only take effect
    on the next one. A slot that raises is logged and the remaining slots
    still run.

    Example:
        >>> changed: Signal[list[str]] = Signal("running_changed")
        >>> seen = []
        >>> changed.connect(seen.append)
        True
        >>> changed.emit(["k1"])
        >>> seen
        [['k1']]
    """

    def __init__(self, name: str = "signal") -> None:
        self.name = name
        self._slots: list[Slot] = []
        self._queues: list[asyncio.Queue] = []

    def connect(self, slot: Slot) -> bool:
        """Connect a slot.

        Args:
            slot: Callable receiving the payload

        Returns:
            True if connected, False if it was already connected
        """
        if slot in self._slots:
            return False
        self._slots.append(slot)
        return True

    def disconnect(self, slot: Slot) -> bool:
        """Disconnect a slot.

        Returns:
            True if the slot was connected
        """
        if slot not in self._slots:
            return False
        self._slots.remove(slot)
        return True

    def subscribe(self) -> asyncio.Queue:
        """Create a queue that receives every emitted payload.

        Returns:
            asyncio.Queue fed without blocking on each emission
        """
        queue: asyncio.Queue = asyncio.Queue()
        self._queues.append(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue) -> None:
        """Remove a subscriber queue.

        Args:
            queue: Queue returned by subscribe()
        """
        if queue in self._queues:
            self._queues.remove(queue)

    def emit(self, payload: T) -> None:
        """Deliver payload to every slot and queue connected right now."""
        for slot in list(self._slots):
            try:
                slot(payload)
            except Exception as e:
                logger.error(f"Slot {slot!r} failed handling {self.name}: {e}", exc_info=True)
        for queue in list(self._queues):
            queue.put_nowait(payload)

    def clear(self) -> None:
        """Sever every subscription."""
        self._slots.clear()
        self._queues.clear()

    @property
    def slot_count(self) -> int:
        """Number of connected slots and queues."""
        return len(self._slots) + len(self._queues)
