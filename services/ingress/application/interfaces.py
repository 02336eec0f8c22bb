from __future__ import annotations

from typing import TYPE_CHECKING, Any, Mapping, Protocol

if TYPE_CHECKING:
    from ..domain.cv_record import CvRecord, SortDirection, SortField
    from ..domain.upload import ForwardedUpload
    from ..domain.webhook_notification import WebhookNotification


class IdProvider(Protocol):
    def generate(self) -> str: ...


class NotificationMailbox(Protocol):
    """Bounded FIFO of the most recent ingress notifications."""

    @property
    def capacity(self) -> int: ...

    def append(self, notification: "WebhookNotification") -> None: ...

    def list_recent(self) -> list["WebhookNotification"]: ...

    def reset(self) -> None: ...


class AnalysisWebhook(Protocol):
    def forward(self, upload: "ForwardedUpload") -> Mapping[str, Any] | None: ...


class CvRecordRepository(Protocol):
    def search(
        self,
        *,
        search: str,
        sort_field: "SortField",
        direction: "SortDirection",
    ) -> list["CvRecord"]: ...
