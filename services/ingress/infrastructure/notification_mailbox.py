from __future__ import annotations

from collections import deque
from threading import Lock
from typing import Deque, List

from ..domain.webhook_notification import WebhookNotification

DEFAULT_CAPACITY = 100


class InMemoryNotificationMailbox:
    """Process-local ring buffer; the oldest entry is evicted once full."""

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError("Mailbox capacity must be at least 1")
        self._lock = Lock()
        self._capacity = capacity
        self._notifications: Deque[WebhookNotification] = deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        return self._capacity

    def append(self, notification: WebhookNotification) -> None:
        with self._lock:
            self._notifications.append(notification)

    def list_recent(self) -> List[WebhookNotification]:
        with self._lock:
            return list(reversed(self._notifications))

    def reset(self) -> None:
        with self._lock:
            self._notifications.clear()
