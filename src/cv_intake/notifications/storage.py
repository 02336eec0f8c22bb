from __future__ import annotations

import json
import logging
import os
import tempfile
from datetime import timedelta
from pathlib import Path
from typing import Callable, Iterable, Protocol

from cv_intake.notifications.notification import Notification, now_ms

LOGGER = logging.getLogger(__name__)

RETENTION = timedelta(days=7)


class NotificationStorage(Protocol):
    def save(self, notifications: Iterable[Notification]) -> None: ...

    def load(self) -> list[Notification]: ...

    def clear(self) -> None: ...


class JsonNotificationStorage:
    """Keeps notifications in a JSON file between sessions.

    Everything except entries explicitly created with ``persistent=False`` is
    written. Entries older than ``retention`` are dropped when loading.
    """

    def __init__(
        self,
        path: str | Path,
        *,
        retention: timedelta = RETENTION,
        clock_ms: Callable[[], int] = now_ms,
    ) -> None:
        self._path = Path(path).expanduser()
        self._retention_ms = int(retention.total_seconds() * 1000)
        self._clock_ms = clock_ms

    @property
    def path(self) -> Path:
        return self._path

    def save(self, notifications: Iterable[Notification]) -> None:
        payload = [n.to_payload() for n in notifications if n.persistent is not False]
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self._path.parent, prefix=self._path.name, suffix=".tmp"
            )
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(payload, handle)
            os.replace(tmp_name, self._path)
        except OSError as exc:
            LOGGER.error("Failed to save notifications to %s: %s", self._path, exc)

    def load(self) -> list[Notification]:
        try:
            raw = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return []
        except OSError as exc:
            LOGGER.error("Failed to load notifications from %s: %s", self._path, exc)
            return []
        try:
            entries = json.loads(raw)
            notifications = [Notification.from_payload(entry) for entry in entries]
        except (TypeError, ValueError) as exc:
            LOGGER.error("Discarding unreadable notifications in %s: %s", self._path, exc)
            return []
        cutoff = self._clock_ms() - self._retention_ms
        return [n for n in notifications if n.timestamp > cutoff]

    def clear(self) -> None:
        try:
            self._path.unlink(missing_ok=True)
        except OSError as exc:
            LOGGER.error("Failed to clear notifications at %s: %s", self._path, exc)
