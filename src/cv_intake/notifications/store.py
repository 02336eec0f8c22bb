from __future__ import annotations

import asyncio
import logging
import threading
from dataclasses import replace
from typing import Callable, Iterable, Sequence

from cv_intake.notifications.notification import (
    Notification,
    NotificationDraft,
    new_notification_id,
    now_ms,
)
from cv_intake.notifications.storage import NotificationStorage

LOGGER = logging.getLogger(__name__)

Listener = Callable[[Sequence[Notification]], None]


class NotificationStore:
    """Most-recent-first notification list shared by UI actions and the poller.

    Every mutation runs under one lock and is keyed by notification id, so a
    background merge interleaved with a local add never drops either entry.
    """

    def __init__(
        self,
        *,
        storage: NotificationStorage | None = None,
        clock_ms: Callable[[], int] = now_ms,
    ) -> None:
        self._storage = storage
        self._clock_ms = clock_ms
        self._lock = threading.RLock()
        self._notifications: list[Notification] = []
        self._listeners: list[Listener] = []

    @property
    def notifications(self) -> tuple[Notification, ...]:
        with self._lock:
            return tuple(self._notifications)

    @property
    def unread_count(self) -> int:
        with self._lock:
            return sum(1 for n in self._notifications if not n.read)

    def unread(self) -> list[Notification]:
        with self._lock:
            return [n for n in self._notifications if not n.read]

    def get(self, notification_id: str) -> Notification | None:
        with self._lock:
            return next((n for n in self._notifications if n.id == notification_id), None)

    def __contains__(self, notification_id: object) -> bool:
        return self.get(notification_id) is not None  # type: ignore[arg-type]

    def __len__(self) -> int:
        with self._lock:
            return len(self._notifications)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def load(self) -> int:
        """Hydrate from storage; returns how many entries were added."""
        if self._storage is None:
            return 0
        stored = self._storage.load()
        with self._lock:
            known = {n.id for n in self._notifications}
            fresh = []
            for notification in stored:
                if notification.id not in known:
                    known.add(notification.id)
                    fresh.append(notification)
            self._notifications.extend(fresh)
        self._commit()
        return len(fresh)

    def add(self, item: NotificationDraft | Notification) -> Notification:
        if isinstance(item, NotificationDraft):
            timestamp = self._clock_ms()
            notification = item.materialize(
                notification_id=new_notification_id(timestamp_ms=timestamp),
                timestamp=timestamp,
            )
        else:
            notification = item
        with self._lock:
            existing = next(
                (n for n in self._notifications if n.id == notification.id), None
            )
            if existing is not None:
                return existing
            self._notifications.insert(0, notification)
        self._commit()
        if notification.expires:
            self._schedule_expiry(notification)
        return notification

    def merge(self, items: Iterable[Notification]) -> list[Notification]:
        """Set-union by id; genuinely new items go in front, in the order given."""
        with self._lock:
            known = {n.id for n in self._notifications}
            fresh: list[Notification] = []
            for item in items:
                if item.id in known:
                    continue
                known.add(item.id)
                fresh.append(_unread(item))
            if not fresh:
                return []
            self._notifications[:0] = fresh
        self._commit()
        for notification in fresh:
            if notification.expires:
                self._schedule_expiry(notification)
        return fresh

    def mark_as_read(self, notification_id: str) -> bool:
        with self._lock:
            for index, notification in enumerate(self._notifications):
                if notification.id == notification_id:
                    if notification.read:
                        return False
                    self._notifications[index] = notification.mark_read()
                    break
            else:
                return False
        self._commit()
        return True

    def mark_all_as_read(self) -> None:
        with self._lock:
            self._notifications = [n.mark_read() for n in self._notifications]
        self._commit()

    def remove(self, notification_id: str) -> bool:
        with self._lock:
            remaining = [n for n in self._notifications if n.id != notification_id]
            if len(remaining) == len(self._notifications):
                return False
            self._notifications = remaining
        self._commit()
        return True

    def hide(self, notification_id: str) -> bool:
        notification = self.get(notification_id)
        if notification is None or not notification.can_hide:
            return False
        return self.remove(notification_id)

    def clear_all(self) -> None:
        with self._lock:
            self._notifications = []
        if self._storage is not None:
            self._storage.clear()
        self._notify()

    def _commit(self) -> None:
        if self._storage is not None:
            with self._lock:
                self._storage.save(self._notifications)
        self._notify()

    def _notify(self) -> None:
        snapshot = self.notifications
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(snapshot)
            except Exception:
                LOGGER.exception("Notification listener failed")

    def _schedule_expiry(self, notification: Notification) -> None:
        delay = float(notification.duration or 0)
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            timer = threading.Timer(delay, self.remove, args=(notification.id,))
            timer.daemon = True
            timer.start()
        else:
            loop.call_later(delay, self.remove, notification.id)


def _unread(notification: Notification) -> Notification:
    if not notification.read:
        return notification
    return replace(notification, read=False)
