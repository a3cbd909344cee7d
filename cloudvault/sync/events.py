"""Observer channel for status, progress and error events."""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable

logger = logging.getLogger(__name__)

STATUS = "status"
PROGRESS = "progress"
ERROR = "error"


@dataclass(frozen=True)
class SyncEvent:
    """An event emitted by the sync engine.

    ``kind`` is one of ``status``, ``progress`` or ``error``.
    """

    kind: str
    data: dict[str, Any] = field(default_factory=dict)


SyncListener = Callable[[SyncEvent], None]


class SyncEventBus:
    """Fan-out of SyncEvents to registered listeners.

    Listeners are called synchronously on the event loop thread, in
    registration order. An exception raised by one listener is logged and
    does not reach the engine or the other listeners.
    """

    def __init__(self) -> None:
        self._listeners: list[SyncListener] = []

    def subscribe(self, listener: SyncListener) -> Callable[[], None]:
        """Register a listener.

        Returns:
            A function that removes the listener again
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            self.unsubscribe(listener)

        return unsubscribe

    def unsubscribe(self, listener: SyncListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def emit(self, kind: str, **data: Any) -> None:
        event = SyncEvent(kind=kind, data=data)
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception(f"Sync event listener failed on {kind} event")

    def __len__(self) -> int:
        return len(self._listeners)
