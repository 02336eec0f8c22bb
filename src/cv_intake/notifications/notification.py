from __future__ import annotations

import secrets
import string
import time
from dataclasses import asdict, dataclass, replace
from typing import Any, Literal, Mapping

NotificationType = Literal[
    "cv_analysis",
    "file_upload",
    "system",
    "success",
    "error",
    "warning",
    "info",
]
Priority = Literal["low", "medium", "high"]

_ID_ALPHABET = string.ascii_lowercase + string.digits

# snake_case attribute -> camelCase wire key
_WIRE_KEYS = {
    "can_hide": "canHide",
    "auto_close": "autoClose",
    "original_message": "originalMessage",
}


def now_ms() -> int:
    return int(time.time() * 1000)


def new_notification_id(prefix: str = "notification", timestamp_ms: int | None = None) -> str:
    stamp = now_ms() if timestamp_ms is None else timestamp_ms
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(9))
    return f"{prefix}_{stamp}_{suffix}"


@dataclass(frozen=True)
class Notification:
    id: str
    title: str
    message: str
    type: NotificationType = "info"
    priority: Priority = "medium"
    timestamp: int = 0
    read: bool = False
    candidate: str | None = None
    can_hide: bool = True
    persistent: bool | None = None
    auto_close: bool = False
    duration: float | None = None
    original_message: str | None = None

    @property
    def expires(self) -> bool:
        return self.auto_close and bool(self.duration)

    def mark_read(self) -> "Notification":
        return self if self.read else replace(self, read=True)

    def to_payload(self) -> dict[str, Any]:
        return {_WIRE_KEYS.get(key, key): value for key, value in asdict(self).items()}

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "Notification":
        """Build from the camelCase wire form; unknown keys are ignored."""
        values = {}
        for field_name in cls.__dataclass_fields__:
            wire_key = _WIRE_KEYS.get(field_name, field_name)
            if wire_key in payload:
                values[field_name] = payload[wire_key]
            elif field_name in payload:
                values[field_name] = payload[field_name]
        if "id" not in values or "title" not in values or "message" not in values:
            raise ValueError("Notification payload requires id, title and message")
        if values.get("type") is None:
            values["type"] = "cv_analysis"
        if values.get("priority") is None:
            values["priority"] = "medium"
        if values.get("timestamp") is None:
            values["timestamp"] = now_ms()
        if values.get("can_hide") is None:
            values["can_hide"] = True
        return cls(**values)


@dataclass(frozen=True)
class NotificationDraft:
    """What local callers supply; the store assigns id, timestamp and read state."""

    title: str
    message: str
    type: NotificationType = "info"
    priority: Priority = "medium"
    candidate: str | None = None
    can_hide: bool = True
    persistent: bool | None = None
    auto_close: bool = False
    duration: float | None = None

    def materialize(self, *, notification_id: str, timestamp: int) -> Notification:
        return Notification(
            id=notification_id,
            title=self.title,
            message=self.message,
            type=self.type,
            priority=self.priority or "medium",
            timestamp=timestamp,
            read=False,
            candidate=self.candidate,
            can_hide=self.can_hide is not False,
            persistent=self.persistent,
            auto_close=self.auto_close,
            duration=self.duration,
        )
