"""In-memory state store that plays the role of the external state sink."""

from __future__ import annotations

import asyncio
import logging
from threading import Lock

log = logging.getLogger(__name__)


class StateStore:
    """Keeps the latest value per state id and fans updates out to subscribers."""

    def __init__(self, queue_size: int = 64) -> None:
        self._lock = Lock()
        self._values: dict[str, str] = {}
        self._subscribers: list[asyncio.Queue[tuple[str, str]]] = []
        self._queue_size = queue_size

    def update(self, state_id: str, value: str) -> None:
        with self._lock:
            self._values[state_id] = value
            subscribers = list(self._subscribers)
        log.debug("State %s updated (%d chars)", state_id, len(value))
        for queue in subscribers:
            if queue.full():
                # Slow consumer: drop its oldest pending update.
                try:
                    queue.get_nowait()
                except asyncio.QueueEmpty:
                    pass
            queue.put_nowait((state_id, value))

    def get(self, state_id: str) -> str | None:
        with self._lock:
            return self._values.get(state_id)

    def snapshot(self) -> dict[str, str]:
        with self._lock:
            return dict(self._values)

    def subscribe(self) -> asyncio.Queue[tuple[str, str]]:
        queue: asyncio.Queue[tuple[str, str]] = asyncio.Queue(maxsize=self._queue_size)
        with self._lock:
            self._subscribers.append(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue[tuple[str, str]]) -> None:
        with self._lock:
            if queue in self._subscribers:
                self._subscribers.remove(queue)
