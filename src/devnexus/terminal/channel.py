"""Queue-backed event channels for terminal output and exit notifications."""

from __future__ import annotations

import queue
import threading
from collections.abc import Iterator

from devnexus.terminal.models import ExitEvent, OutputEvent

_CLOSED = object()


class EventChannel:
    """Ordered, thread-safe event queue with an explicit ``close()``.

    A channel bound to one session (``session_id`` set) finishes iteration
    after that session's :class:`ExitEvent`. An unbound channel receives
    events for every session until closed.
    """

    def __init__(self, session_id: int | None = None) -> None:
        self.session_id = session_id
        self._queue: queue.Queue[object] = queue.Queue()
        self._closed = threading.Event()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def publish(self, event: OutputEvent | ExitEvent) -> bool:
        if self._closed.is_set():
            return False
        self._queue.put(event)
        return True

    def get(self, timeout: float | None = None) -> OutputEvent | ExitEvent | None:
        """Next event, or ``None`` once the channel is closed and drained.

        Raises :class:`queue.Empty` when ``timeout`` elapses first.
        """
        item = self._queue.get(timeout=timeout)
        if item is _CLOSED:
            # Keep the sentinel for other consumers blocked on this channel.
            self._queue.put(_CLOSED)
            return None
        return item  # type: ignore[return-value]

    def close(self) -> None:
        if self._closed.is_set():
            return
        self._closed.set()
        self._queue.put(_CLOSED)

    def __iter__(self) -> Iterator[OutputEvent | ExitEvent]:
        while True:
            event = self.get()
            if event is None:
                return
            yield event
            if self.session_id is not None and isinstance(event, ExitEvent):
                return
