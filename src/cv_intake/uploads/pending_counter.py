from __future__ import annotations

import threading
from typing import Callable

CountListener = Callable[[int], None]


class PendingUploadCounter:
    """Number of upload batches currently in flight."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._count = 0
        self._listeners: list[CountListener] = []

    @property
    def count(self) -> int:
        return self._count

    def subscribe(self, listener: CountListener) -> None:
        self._listeners.append(listener)

    def increment(self) -> int:
        return self._set(lambda current: current + 1)

    def decrement(self) -> int:
        return self._set(lambda current: max(0, current - 1))

    def reset(self) -> int:
        return self._set(lambda current: 0)

    def _set(self, update: Callable[[int], int]) -> int:
        with self._lock:
            self._count = update(self._count)
            value = self._count
        for listener in list(self._listeners):
            listener(value)
        return value
