from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Literal

NotificationType = Literal["cv_analysis", "success", "error", "warning", "info"]
Priority = Literal["low", "medium", "high"]

_CLASSIFICATION: dict[str, tuple[NotificationType, Priority]] = {
    "success": ("cv_analysis", "medium"),
    "error": ("error", "high"),
    "warning": ("warning", "medium"),
}


def classify(status: str) -> tuple[NotificationType, Priority]:
    return _CLASSIFICATION.get(status, ("info", "low"))


@dataclass(frozen=True)
class WebhookNotification:
    id: str
    title: str
    message: str
    type: NotificationType
    priority: Priority
    timestamp: int
    candidate: str | None
    original_message: str
    read: bool = False
    can_hide: bool = True

    @classmethod
    def from_callback(
        cls,
        *,
        notification_id: str,
        status: str,
        message: str,
        candidate: str | None,
        timestamp_ms: int | None = None,
    ) -> "WebhookNotification":
        kind, priority = classify(status)
        return cls(
            id=notification_id,
            title=f"CV Analysis: {candidate}" if candidate else "CV Analysis Update",
            message=f"Analysis completed for {candidate}" if candidate else message,
            type=kind,
            priority=priority,
            timestamp=timestamp_ms if timestamp_ms is not None else int(time.time() * 1000),
            candidate=candidate or None,
            original_message=message,
        )

    def to_payload(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "message": self.message,
            "type": self.type,
            "priority": self.priority,
            "timestamp": self.timestamp,
            "read": self.read,
            "candidate": self.candidate,
            "canHide": self.can_hide,
            "originalMessage": self.original_message,
        }

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "WebhookNotification":
        return cls(
            id=payload["id"],
            title=payload["title"],
            message=payload["message"],
            type=payload["type"],
            priority=payload["priority"],
            timestamp=int(payload["timestamp"]),
            candidate=payload.get("candidate"),
            original_message=payload.get("originalMessage", payload["message"]),
            read=bool(payload.get("read", False)),
            can_hide=bool(payload.get("canHide", True)),
        )
